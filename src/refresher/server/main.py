"""Main entry point for the Refresher server."""

import uvicorn

from refresher.server.config import get_settings


def run():
    """Run the webhook server."""
    settings = get_settings()

    uvicorn.run(
        "refresher.server.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
