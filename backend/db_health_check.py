"""
Command-line database diagnostic.

    python db_health_check.py

Checks DATABASE_URL, runs the connect/read/write/delete cycle, prints task
statistics, and exits 0 when everything works, 1 otherwise.
"""
import asyncio
import sys

import config
from database import Database
from health import check_health, get_stats, validate_connection_string


def _mark(ok: bool) -> str:
    return "OK" if ok else "FAILED"


def _ms(value) -> str:
    return f"{value}ms" if value is not None else "N/A"


async def run(url: str | None) -> int:
    print("Database Health Check")
    print("=====================")
    print()

    print("1. Testing connection string...")
    if not validate_connection_string(url):
        print("   Result: FAILED")
        print("Connection string is invalid. Please check DATABASE_URL in .env")
        return 1
    print("   Result: OK")
    print()

    print("2. Testing database operations...")
    db = Database(url)
    try:
        status = await check_health(db)

        print(f"   Connection: {_mark(status.connection)}")
        print(f"   Read: {_mark(status.read)}")
        print(f"   Write: {_mark(status.write)}")
        print(f"   Delete: {_mark(status.delete)}")
        if status.error:
            print(f"   Error: {status.error}")

        print()
        print("   Timings:")
        print(f"   Connection: {_ms(status.details.connection_time)}")
        print(f"   Read: {_ms(status.details.read_time)}")
        print(f"   Write: {_ms(status.details.write_time)}")
        print(f"   Delete: {_ms(status.details.delete_time)}")

        if status.connection:
            print()
            print("3. Getting database statistics...")
            stats = await get_stats(db)
            print(f"   Total tasks: {stats.total_tasks}")
            print(f"   Completed tasks: {stats.completed_tasks}")
            print(f"   AI generated tasks: {stats.ai_generated_tasks}")
            print(f"   Completion rate: {stats.completion_rate}%")
            print(f"   AI generated rate: {stats.ai_generated_rate}%")
    finally:
        db.close()

    print()
    if status.healthy:
        print("Database is healthy and all operations are working!")
        return 0
    print("Database has issues. Please check your configuration.")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(run(config.DATABASE_URL)))
