"""Webhook handlers for push events."""

import asyncio
import hashlib
import hmac
import logging
from dataclasses import dataclass
from enum import Enum

from fastapi import Request, HTTPException

from refresher.errors import AbsentProject, InvalidRefKind
from refresher.push.descriptor import is_branch_ref
from refresher.server.config import get_settings
from refresher.server.runtime import get_runtime


logger = logging.getLogger(__name__)

EVENT_HEADER = "X-Refresher-Event"
SIGNATURE_HEADER = "X-Hub-Signature-256"


class WebhookEvent(str, Enum):
    """Supported webhook events."""

    PING = "ping"
    PUSH = "push"


@dataclass
class PushPayload:
    """Parsed push webhook payload."""

    project_id: int
    ref: str
    before: str
    after: str
    user_id: int | None
    user_name: str


async def verify_webhook_signature(request: Request, body: bytes) -> bool:
    """Verify the HMAC signature of a webhook delivery.

    Args:
        request: FastAPI request
        body: Raw request body

    Returns:
        True if signature is valid

    Raises:
        HTTPException: If signature is invalid
    """
    settings = get_settings()

    if not settings.webhook_secret:
        logger.warning("Webhook secret not configured, skipping verification")
        return True

    signature_header = request.headers.get(SIGNATURE_HEADER, "")
    if not signature_header:
        raise HTTPException(status_code=401, detail="Missing signature header")

    expected_signature = (
        "sha256="
        + hmac.new(
            settings.webhook_secret.encode(),
            body,
            hashlib.sha256,
        ).hexdigest()
    )

    if not hmac.compare_digest(signature_header, expected_signature):
        raise HTTPException(status_code=401, detail="Invalid signature")

    return True


def parse_push_payload(payload: dict) -> PushPayload:
    """Parse a push webhook payload into a structured format.

    Args:
        payload: Raw payload dictionary

    Returns:
        Parsed PushPayload

    Raises:
        ValueError: If required fields are missing
    """
    project_id = payload.get("project_id") or payload.get("project", {}).get("id")
    if project_id is None:
        raise ValueError("Push payload has no project id")

    for key in ("ref", "before", "after"):
        if not payload.get(key):
            raise ValueError(f"Push payload has no '{key}'")

    return PushPayload(
        project_id=int(project_id),
        ref=payload["ref"],
        before=payload["before"],
        after=payload["after"],
        user_id=payload.get("user_id"),
        user_name=payload.get("user_username", ""),
    )


async def handle_push_event(payload: PushPayload) -> dict:
    """Run the refresh engine for a push.

    Args:
        payload: Parsed push payload

    Returns:
        Result dictionary
    """
    if not is_branch_ref(payload.ref):
        logger.info(f"Skipping push to {payload.ref} - not a branch")
        return {"status": "skipped", "reason": "not a branch ref"}

    runtime = get_runtime()

    try:
        result = await asyncio.to_thread(
            runtime.service.execute,
            payload.project_id,
            payload.before,
            payload.after,
            payload.ref,
            payload.user_id,
        )
    except InvalidRefKind as e:
        return {"status": "skipped", "reason": str(e)}
    except AbsentProject as e:
        logger.warning(f"Push for unknown project: {e}")
        return {"status": "skipped", "reason": "unknown project"}
    except Exception as e:
        logger.exception(f"Error refreshing merge requests for {payload.ref}")
        return {"status": "error", "error": str(e)}

    return {
        "status": "success" if result.success else "partial",
        **result.to_dict(),
    }


async def handle_webhook(event_type: str, payload: dict) -> dict:
    """Main webhook handler that routes to specific handlers.

    Args:
        event_type: Event type from the event header
        payload: Webhook payload

    Returns:
        Handler result
    """
    logger.info(f"Received webhook: {event_type}")

    if event_type == WebhookEvent.PUSH:
        try:
            parsed = parse_push_payload(payload)
        except ValueError as e:
            logger.warning(f"Malformed push payload: {e}")
            return {"status": "error", "error": str(e)}
        return await handle_push_event(parsed)

    logger.debug(f"Ignoring event type: {event_type}")
    return {"status": "ignored", "event": event_type}
