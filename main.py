"""
Recrutas Live headless runner.

Usage: python main.py ROOM_ID [ROOM_ID ...]
Connects as the user behind API_TOKEN, joins the given rooms and logs updates.
"""
import asyncio
import logging
import sys

from recrutas_live import LiveClient, settings
from recrutas_live.core.exceptions import LiveClientError

logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)


def _log_messages(room_id, messages):
    latest = messages[-1].body if messages else None
    logger.info("Room %s: %s messages, latest: %r", room_id, len(messages), latest)


def _log_toast(notification):
    logger.info("[%s] %s: %s", notification.priority.value, notification.title, notification.message)


async def run(room_ids):
    client = LiveClient(on_toast=_log_toast, poller_options={"on_count": lambda c: logger.info("Unread: %s", c)})
    try:
        async with client:
            for room_id in room_ids:
                await client.open_room(room_id, _log_messages)
            await asyncio.Event().wait()
    finally:
        await client.api.aclose()


def main(argv):
    try:
        room_ids = [int(arg) for arg in argv]
    except ValueError:
        logger.error("Room ids must be integers: %s", " ".join(argv))
        return 2
    logger.info("Starting %s against %s", settings.PROJECT_NAME, settings.API_BASE_URL)
    try:
        asyncio.run(run(room_ids))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except LiveClientError as e:
        logger.error("%s: %s", e.code, e.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
