"""Headless worker: runs the supervised sync services without HTTP.

Usage:
    python -m app.worker
"""

import asyncio
import logging
import signal
import sys

from app.core.bootstrap import build_platform, install_fault_handler
from app.core.config import get_settings
from app.core.database import init_db
from app.core.exceptions import ServiceStartupError

logger = logging.getLogger(__name__)


async def run() -> int:
    settings = get_settings()
    init_db()

    platform = build_platform(settings)
    supervisor = platform.supervisor
    loop = asyncio.get_running_loop()

    install_fault_handler(loop, supervisor)
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(
            sig, lambda s=sig: asyncio.create_task(supervisor.graceful_shutdown(s.name))
        )

    try:
        await supervisor.start()
    except ServiceStartupError as e:
        logger.critical(f"Worker failed to start: {e}")
        await platform.aclose()
        return 1

    logger.info(f"{settings.app_name} worker running; press Ctrl+C to stop")
    try:
        code = await supervisor.wait_for_exit()
        await supervisor.flush_events()
        return code
    finally:
        await platform.aclose()


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
