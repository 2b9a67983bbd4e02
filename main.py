"""
Shopfinder entry point.

Serves the Telegram webhook over HTTP, or runs the console client for
development.

Usage:
    Webhook server: python main.py serve
    Console mode:   python main.py console
"""

import logging
import sys

logger = logging.getLogger(__name__)


def _run_server() -> None:
    """Start the webhook server (requires bot and Google credentials)."""
    import uvicorn

    from shopfinder.api import create_app
    from shopfinder.config import load_config
    from shopfinder.container import build_dispatcher
    from shopfinder.transport.telegram import TelegramTransport

    config = load_config()
    transport = TelegramTransport(config.webhook.bot_token, timeout=config.http_timeout_sec)
    app = create_app(config.webhook, build_dispatcher(config, transport))
    logger.info("Serving webhook at %s", config.webhook.path)
    uvicorn.run(app, host=config.webhook.host, port=config.webhook.port, log_config=None)


def _run_console_mode() -> None:
    """Start the interactive console client."""
    from console_demo import main as console_main

    console_main()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_server()
