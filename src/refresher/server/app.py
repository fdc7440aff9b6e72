"""FastAPI application for push webhook handling."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException, BackgroundTasks

from refresher import __version__
from refresher.server.config import get_settings
from refresher.server.runtime import get_runtime
from refresher.server.webhooks import (
    EVENT_HEADER,
    WebhookEvent,
    handle_webhook,
    verify_webhook_signature,
)
from refresher.server.api import router as api_router


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info(f"Starting Refresher server on {settings.host}:{settings.port}")
    logger.info(f"Repositories root: {settings.repositories_root or 'per project'}")
    logger.info(f"Hook URLs: {len(settings.hook_urls)}")
    runtime = get_runtime()
    yield
    logger.info("Shutting down Refresher server")
    runtime.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="Refresher",
        description="Keeps merge requests in sync with pushed branches",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    @app.get("/")
    async def root():
        """Root endpoint with app info."""
        return {
            "name": "Refresher",
            "version": __version__,
            "description": "Merge request refresh engine",
            "status": "running",
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.post("/webhook")
    async def webhook(request: Request, background_tasks: BackgroundTasks):
        """Push webhook endpoint.

        Receives push events from the git hook layer and refreshes
        merge requests in the background.
        """
        # Get raw body for signature verification
        body = await request.body()

        await verify_webhook_signature(request, body)

        try:
            payload = await request.json()
        except Exception:
            raise HTTPException(status_code=400, detail="Invalid JSON payload")

        event_type = request.headers.get(EVENT_HEADER, "")
        if not event_type:
            raise HTTPException(status_code=400, detail=f"Missing {EVENT_HEADER} header")

        if event_type == WebhookEvent.PING:
            return {"status": "pong"}

        background_tasks.add_task(process_webhook_async, event_type, payload)

        return {
            "status": "accepted",
            "event": event_type,
            "ref": payload.get("ref", ""),
        }

    app.include_router(api_router)

    return app


async def process_webhook_async(event_type: str, payload: dict):
    """Process webhook asynchronously.

    Args:
        event_type: Event type
        payload: Webhook payload
    """
    try:
        result = await handle_webhook(event_type, payload)
        logger.info(f"Webhook processed: {result}")
    except Exception as e:
        logger.exception(f"Error processing webhook: {e}")


# Create default app instance
app = create_app()
