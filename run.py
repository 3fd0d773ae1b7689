import os

from delta_coverage.logger import get_logger

logger = get_logger()


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    display_url = f"http://localhost:{port}"

    logger.info(f"Starting Delta Coverage Checks API on {display_url} (binding to {host}:{port})")

    import uvicorn

    uvicorn.run(
        app="delta_coverage.main:app",
        host=host,
        port=port,
        workers=1,
        log_level="info",
    )


if __name__ == "__main__":
    main()
