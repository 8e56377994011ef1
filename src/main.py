"""Router entry point."""

import asyncio
import logging

from src.channels.webhook_channel import WebhookChannel
from src.config import settings
from src.dispatch.core import BotDispatcher
from src.messages.models import Message, MessageResponse
from src.messages.store import SQLiteMessageStore
from src.webhooks.server import WebhookServer, create_web_app

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def echo_handler(message: Message) -> MessageResponse | None:
    """Default application handler: reply with the received text."""
    if not message.text.strip():
        return None
    return MessageResponse(text=message.text, context=message.context)


def build_dispatcher(app, channel: WebhookChannel) -> BotDispatcher:
    """Wire the dispatcher, store, channel and APIs from settings."""
    store = SQLiteMessageStore() if settings.persistence_enabled else None
    dispatcher = BotDispatcher(app.router, echo_handler, store=store)
    dispatcher.register_channel(settings.webhook_channel_name, channel)

    if settings.push_enabled:
        dispatcher.enable_push(settings.push_security_token, settings.push_path)
    else:
        logger.warning("PUSH_SECURITY_TOKEN empty; push endpoint disabled")

    if settings.history_enabled:
        dispatcher.enable_history(settings.history_token, settings.history_path)
    else:
        logger.warning("HISTORY_TOKEN empty; history endpoints disabled")
    return dispatcher


async def serve() -> None:
    """Run the HTTP server until cancelled."""
    app = create_web_app()
    channel = WebhookChannel(
        settings.webhook_channel_outbound_url,
        secret=settings.webhook_channel_secret,
    )
    build_dispatcher(app, channel)

    server = WebhookServer(app)
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()
        await channel.close()


def main() -> None:
    """Start the router."""
    logger.info("Starting message router on port %d...", settings.webhook_port)
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
