"""Synthetic product catalogs for load testing."""

from __future__ import annotations

import csv
import random
import string
from pathlib import Path

PRODUCT_HEADER = ["sku", "name", "category", "price", "stock", "warehouse_location"]
CATEGORIES = ["Electronics", "Furniture", "Accessories", "Office Supplies", "Kitchen"]
LOCATIONS = ["A-01", "B-12", "C-05", "D-99", "E-10", "W-Warehouse"]


def product_row(index: int, rng: random.Random) -> list[str]:
    suffix = "".join(rng.choices(string.ascii_lowercase + string.digits, k=6))
    return [
        f"SKU-{1_000_000 + index}",
        f"Product Item Number {index} - {suffix}",
        rng.choice(CATEGORIES),
        f"{rng.uniform(0, 1000):.2f}",
        str(rng.randint(0, 5000)),
        rng.choice(LOCATIONS),
    ]


def write_products_csv(path: Path | str, rows: int = 100_000, seed: int | None = None) -> Path:
    """Write a products CSV with unique SKUs 1..rows.

    Rows are written one at a time, so memory stays flat for any row count.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    rng = random.Random(seed)
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(PRODUCT_HEADER)
        for index in range(1, rows + 1):
            writer.writerow(product_row(index, rng))
    return path
