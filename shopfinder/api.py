"""
HTTP front door for the messaging webhook.

Routes:
    GET  /health        liveness check, plain "ok"
    POST <WEBHOOK_PATH> Telegram updates, authenticated by the secret header

Anything else falls through to FastAPI's 404.
"""

import hmac
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from shopfinder.config import WebhookConfig
from shopfinder.conversation.dispatcher import Dispatcher
from shopfinder.transport.telegram import parse_update

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def create_app(webhook: WebhookConfig, dispatcher: Dispatcher) -> FastAPI:
    app = FastAPI(title="shopfinder", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/health", response_class=PlainTextResponse)
    async def health() -> str:
        return "ok"

    @app.post(webhook.path)
    async def webhook_update(request: Request):
        if webhook.secret_token:
            supplied = request.headers.get(SECRET_HEADER, "")
            if not hmac.compare_digest(supplied.encode(), webhook.secret_token.encode()):
                logger.warning("Rejected webhook call with bad secret token")
                return PlainTextResponse("unauthorized", status_code=401)

        try:
            update = await request.json()
        except ValueError:
            return PlainTextResponse("bad request", status_code=400)
        if not isinstance(update, dict):
            return PlainTextResponse("bad request", status_code=400)

        event = parse_update(update)
        if event is None:
            return JSONResponse({"ok": True})

        try:
            await dispatcher.handle(event)
        except Exception:
            # Telegram retries non-2xx responses, so the failure must be visible here.
            logger.exception("Unhandled error for update %s", update.get("update_id"))
            return PlainTextResponse("error", status_code=500)
        return JSONResponse({"ok": True})

    return app
