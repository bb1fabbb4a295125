# file: scripts/notification_scheduler.py

import asyncio
import logging
import os
import sys

# Add the project root to the Python path so the script can run standalone.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from food4need.config import NotificationSettings, load_settings
from food4need.database.connection import init_db
from food4need.database.repositories import SqlAlchemyUserRepository
from food4need.services.dispatcher import NotificationDispatcher
from food4need.services.push_service import build_push_sink

logger = logging.getLogger(__name__)


def build_dispatcher(settings: NotificationSettings) -> NotificationDispatcher:
    return NotificationDispatcher(
        users=SqlAlchemyUserRepository(),
        push_sink=build_push_sink(settings),
        settings=settings,
    )


async def run_scheduler_cycle(dispatcher: NotificationDispatcher) -> bool:
    """Runs one reminder sweep. Returns False if the cycle failed; never raises."""
    try:
        await dispatcher.run_reminder_sweep()
        return True
    except Exception as e:
        logger.exception(f"An error occurred in the reminder sweep: {e}")
        return False


async def main_scheduler_loop(settings: NotificationSettings):
    """The main event loop for the scheduler daemon."""
    await init_db()
    dispatcher = build_dispatcher(settings)
    interval = settings.poll_interval_minutes * 60
    while True:
        logger.info(f"--- STARTING NEW REMINDER CYCLE ({settings.time_zone}) ---")
        await run_scheduler_cycle(dispatcher)
        logger.info(f"--- Cycle finished. Waiting for {settings.poll_interval_minutes} minutes. ---")
        await asyncio.sleep(interval)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Starting notification scheduler...")
    asyncio.run(main_scheduler_loop(load_settings()))
