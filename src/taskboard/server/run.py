"""CLI entry point for launching the FastAPI app with uvicorn."""

import uvicorn

from .dependencies import get_config


def main() -> None:
    """Run the API server."""
    config = get_config()
    uvicorn.run(
        "taskboard.server.app:create_app",
        host=config.server.host,
        port=config.server.port,
        factory=True,
    )


if __name__ == "__main__":
    main()
