"""sheetsink: stream CSV and Excel files into relational tables.

Example:
    from sheetsink import analyze, upload

    analysis = analyze("products.csv", cleanup=False)
    result = upload("products.csv", "products")
"""

__version__ = "0.1.0"

from sheetsink.core.models import ColumnDefinition, DuplicatePolicy, IngestResult
from sheetsink.ingest import AnalysisResult, analyze, create_table, upload

__all__ = [
    "AnalysisResult",
    "ColumnDefinition",
    "DuplicatePolicy",
    "IngestResult",
    "__version__",
    "analyze",
    "create_table",
    "upload",
]
