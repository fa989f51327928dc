"""
Database diagnostics: a timed connect -> read -> write -> delete cycle,
aggregate task statistics, and a static check of the configured URL.
"""
import logging
import os
import time
from typing import Optional

from database import Database, count_tasks, create_task_db, delete_task_db, find_one_task
from models import DatabaseStats, HealthStatus

logger = logging.getLogger(__name__)

HEALTH_CHECK_TASK = {
    "title": "Health Check Test Task",
    "description": "This task is created during database health check",
    "category": "personal",
    "priority": "low",
    "aiGenerated": False,
}

RECOGNIZED_PREFIXES = ("sqlite:///", "sqlite+pysqlite:///")


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


async def check_health(db: Database) -> HealthStatus:
    """
    Run each step in order and stop at the first failure.

    A step's flag is set only when that step itself succeeds, so steps after
    a failure stay False. Failures are reported in `error`, not raised.
    """
    status = HealthStatus()

    try:
        logger.info("Testing database connection...")
        start = time.perf_counter()
        conn = await db.connect()
        status.details.connection_time = _elapsed_ms(start)
        status.connection = True
        logger.info("Database connection successful (%dms)", status.details.connection_time)

        logger.info("Testing read operation...")
        start = time.perf_counter()
        existing = find_one_task(conn)
        status.details.read_time = _elapsed_ms(start)
        status.read = True
        logger.info(
            "Read operation successful (%dms) - found %d tasks",
            status.details.read_time, 0 if existing is None else 1
        )

        logger.info("Testing write operation...")
        start = time.perf_counter()
        test_task = create_task_db(conn, HEALTH_CHECK_TASK)
        status.details.write_time = _elapsed_ms(start)
        status.write = True
        logger.info("Write operation successful (%dms) - created task %s", status.details.write_time, test_task.id)

        logger.info("Testing delete operation...")
        start = time.perf_counter()
        if delete_task_db(conn, test_task.id) is None:
            raise LookupError(f"Health check task {test_task.id} disappeared before it could be deleted")
        status.details.delete_time = _elapsed_ms(start)
        status.delete = True
        logger.info("Delete operation successful (%dms)", status.details.delete_time)

    except Exception as e:
        status.error = str(e) or type(e).__name__
        logger.error("Database health check failed: %s", status.error)

    return status


def _rate(part: int, total: int) -> str:
    if total <= 0:
        return "0"
    return f"{part / total * 100:.1f}"


async def get_stats(db: Database) -> DatabaseStats:
    conn = await db.connect()

    total = count_tasks(conn)
    completed = count_tasks(conn, completed=True)
    ai_generated = count_tasks(conn, ai_generated=True)

    stats = DatabaseStats(
        total_tasks=total,
        completed_tasks=completed,
        ai_generated_tasks=ai_generated,
        completion_rate=_rate(completed, total),
        ai_generated_rate=_rate(ai_generated, total),
    )
    logger.info(
        "Database statistics: total=%d completed=%d ai_generated=%d completion=%s%% ai=%s%%",
        stats.total_tasks, stats.completed_tasks, stats.ai_generated_tasks,
        stats.completion_rate, stats.ai_generated_rate
    )
    return stats


def validate_connection_string(url: Optional[str]) -> bool:
    """
    Static sanity check of a database URL; nothing is opened.

    Requires a recognized sqlite prefix, a location after it, and either a
    database file name or query parameters.
    """
    if not url:
        logger.error("DATABASE_URL is not defined in environment variables")
        return False

    has_protocol = url.startswith(RECOGNIZED_PREFIXES)
    location = url.split(":///", 1)[1] if has_protocol else ""
    path, _, query = location.partition("?")
    has_location = bool(path) and path != ":memory:"
    has_database = bool(query) or bool(os.path.basename(path))

    logger.info(
        "Connection string check: protocol=%s location=%s database=%s",
        has_protocol, has_location, has_database
    )
    return has_protocol and has_location and has_database
