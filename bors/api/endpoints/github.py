"""GitHub webhook endpoint: authenticate, parse and enqueue deliveries."""

import json
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request

from bors.core.logging import get_logger
from bors.github.security import verify_signature
from bors.github.webhook import WebhookParseError, parse_webhook_event
from bors.process import ProcessClosedError

logger = get_logger(__name__)

router = APIRouter()


@router.post("")
async def handle_github_webhook(
    request: Request,
    x_github_event: str = Header(...),
    x_hub_signature_256: Optional[str] = Header(None),
    x_github_delivery: Optional[str] = Header(None),
):
    """
    Receive a GitHub webhook delivery.

    The delivery is only enqueued for the event process; the response does not
    wait for it to be handled.

    Raises:
        HTTPException: 401 for a bad signature, 400 for a malformed payload,
            503 if the event process no longer accepts events.
    """
    raw_body = await request.body()
    secret = request.app.state.settings.WEBHOOK_SECRET.get_secret_value()
    if not verify_signature(raw_body, secret, x_hub_signature_256):
        logger.warning("Rejected %s delivery %s: invalid signature", x_github_event, x_github_delivery)
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from e

    try:
        event = parse_webhook_event(x_github_event, payload, x_github_delivery)
    except WebhookParseError as e:
        logger.warning("Cannot parse %s delivery %s: %s", x_github_event, x_github_delivery, e)
        raise HTTPException(status_code=400, detail=str(e)) from e

    if event is None:
        logger.debug("Ignoring %s delivery %s", x_github_event, x_github_delivery)
        return {"message": "Event ignored", "event": x_github_event}

    try:
        request.app.state.process.enqueue(event)
    except ProcessClosedError as e:
        raise HTTPException(status_code=503, detail="Bot is shutting down") from e

    logger.info("Queued %s (delivery %s)", event.event_name, x_github_delivery)
    return {"message": "Event queued", "event": event.event_name}
