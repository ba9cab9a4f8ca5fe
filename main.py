#!/usr/bin/env python3
"""
Warden - Entry Point
====================

Loads the environment, validates configuration and runs the bot.

Features:
- .env loading
- Configuration validation before connecting
- Single instance enforcement (two processes would race on the JSON stores)
- Graceful error handling
"""

import asyncio
import fcntl
import os
import sys
from typing import IO, Optional

from dotenv import load_dotenv

load_dotenv()

from warden.bot import WardenBot  # noqa: E402
from warden.core.config import ConfigValidationError, get_config, validate_and_log_config  # noqa: E402
from warden.core.logger import logger  # noqa: E402
from warden.utils.error_handler import ErrorHandler  # noqa: E402


LOCK_FILE_NAME = "warden.lock"

_lock_handle: Optional[IO[str]] = None


def acquire_instance_lock() -> bool:
    """
    Take an exclusive lock on a file in the data directory.

    The lock is released by the OS when the process exits, so a crash
    never leaves a stale lock behind.

    Returns:
        True if the lock was acquired, False if another instance holds it.
    """
    global _lock_handle

    data_dir = get_config().data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    lock_path = data_dir / LOCK_FILE_NAME

    handle = open(lock_path, "a+")
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        handle.close()
        logger.error("Another Warden instance is already running", [
            ("Lock File", str(lock_path)),
        ])
        return False

    handle.seek(0)
    handle.truncate()
    handle.write(str(os.getpid()))
    handle.flush()
    _lock_handle = handle

    logger.info(f"Instance lock acquired - PID: {os.getpid()}, Lock file: {lock_path}")
    return True


async def main() -> None:
    """
    Run the bot until it is stopped.

    Raises:
        SystemExit: If configuration is invalid or the bot fails to start.
    """
    logger.tree("WARDEN STARTING", [
        ("Python", sys.version.split()[0]),
        ("PID", str(os.getpid())),
    ], emoji="🛡️")

    try:
        validate_and_log_config()
    except ConfigValidationError as e:
        ErrorHandler.handle(e, location="main.main", critical=True)
        sys.exit(1)

    try:
        bot = WardenBot()
        async with bot:
            await bot.start(get_config().discord_token)
    except Exception as e:
        ErrorHandler.handle(e, location="main.main", critical=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        if not acquire_instance_lock():
            logger.error("Startup aborted - another instance is already running")
            sys.exit(1)
    except ConfigValidationError as e:
        ErrorHandler.handle(e, location="main.__main__", critical=True)
        sys.exit(1)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (Ctrl+C)")
    except Exception as e:
        ErrorHandler.handle(e, location="main.__main__", critical=True)
        sys.exit(1)
