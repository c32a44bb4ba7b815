"""API server entry point.

Usage:
    # Via script (recommended)
    uv run sheetsink-api

    # Via uvicorn directly
    uv run uvicorn sheetsink.api.main:create_app --factory --reload
"""

import os

from sqlalchemy.engine import make_url

from sheetsink.core.config import get_settings


def main() -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    reload = os.environ.get("SHEETSINK_API_RELOAD", "false").lower() == "true"
    settings.upload_dir.mkdir(parents=True, exist_ok=True)

    print("Starting sheetsink API server...")
    print(f"  Host: {settings.api_host}:{settings.api_port}")
    print(f"  Sink: {make_url(settings.database_url).render_as_string(hide_password=True)}")
    print(f"  Upload dir: {settings.upload_dir}")
    print()

    uvicorn.run(
        "sheetsink.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=reload,
    )


if __name__ == "__main__":
    main()
