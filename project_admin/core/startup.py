"""
Startup stages.

Startup is split into two independently awaitable stages:

- accepting: the application has been composed and the server is about to
  take requests
- database ready: the database answered and tables exist

In background mode the database stage runs concurrently with request
handling. A database stage that exhausts its attempts logs the failure and
terminates the process with a non-zero exit code.
"""
import asyncio
import logging
import os
from typing import Callable, Optional

from project_admin.config.database import Database
from project_admin.utils.errors import DatabaseConnectionError
from project_admin.utils.logger import get_logger

logger = get_logger(__name__)

DATABASE_FAILURE_EXIT_CODE = 1


def terminate_process(exit_code: int) -> None:
    """Flush logs and exit immediately, from any thread or task."""
    logging.shutdown()
    os._exit(exit_code)


class StartupState:
    """Observable startup stages of one application instance."""

    def __init__(self):
        self.accepting = asyncio.Event()
        self.database_ready = asyncio.Event()
        self.database_error: Optional[BaseException] = None
        self.database_task: Optional[asyncio.Task] = None

    def mark_accepting(self) -> None:
        self.accepting.set()

    async def wait_until_accepting(self) -> None:
        await self.accepting.wait()

    async def wait_until_database_ready(self) -> None:
        await self.database_ready.wait()


async def connect_with_retry(
    database: Database,
    attempts: int = 3,
    backoff_seconds: float = 1.0,
    sleep: Callable = asyncio.sleep,
) -> None:
    """
    Connect to the database, retrying with exponential backoff.

    Raises:
        DatabaseConnectionError: If every attempt failed
    """
    delay = backoff_seconds
    last_error: Optional[Exception] = None

    for attempt in range(1, attempts + 1):
        try:
            await asyncio.to_thread(database.connect)
            return
        except Exception as e:
            last_error = e
            logger.warning(
                "Database connection attempt failed",
                attempt=attempt,
                attempts=attempts,
                error=str(e),
            )
            if attempt < attempts:
                await sleep(delay)
                delay *= 2

    raise DatabaseConnectionError(
        f"Database connection failed after {attempts} attempt(s): {last_error}",
        attempts=attempts,
    ) from last_error


async def run_database_stage(
    state: StartupState,
    database: Database,
    attempts: int,
    backoff_seconds: float,
    exit_process: Callable[[int], None] = terminate_process,
) -> bool:
    """
    Database stage of startup.

    On success marks the stage ready. On failure records the error, logs it
    and invokes `exit_process` with a non-zero code.

    Returns:
        True if the database is ready
    """
    try:
        await connect_with_retry(database, attempts=attempts, backoff_seconds=backoff_seconds)
    except DatabaseConnectionError as e:
        state.database_error = e
        logger.critical(
            "Database connection failed - shutting down",
            error=e.message,
            attempts=e.attempts,
        )
        exit_process(DATABASE_FAILURE_EXIT_CODE)
        return False

    state.database_ready.set()
    logger.info("Database ready")
    return True
