"""Run the API server: ``python -m catalog_rag``."""

import uvicorn

from catalog_rag.config import get_settings


def main() -> None:
    """Serve the FastAPI app on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "catalog_rag.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
