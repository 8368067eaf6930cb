"""Recall entry point — runs the background job scheduler until interrupted."""

import asyncio
import logging
import signal

from recall.app import build_app
from recall.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def run() -> None:
    """Start the scheduler and block until SIGINT or SIGTERM."""
    app = build_app(settings)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await app.scheduler.start()
    for status in app.scheduler.get_status()["jobs"]:
        logger.info("Job %s: next run %s", status["name"], status["next_run"])
    try:
        await stop.wait()
    finally:
        logger.info("Shutting down...")
        await app.scheduler.stop()


def main() -> None:
    """Run Recall's background jobs."""
    if not settings.embeddings_enabled:
        logger.warning("OPENAI_API_KEY is not set, indexing jobs will be skipped")
    logger.info("Starting Recall (data_dir=%s)...", settings.data_dir)
    asyncio.run(run())


if __name__ == "__main__":
    main()
