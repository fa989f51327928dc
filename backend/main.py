from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import json
import logging

import anthropic
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

import config
from database import (
    Database,
    get_all_tasks,
    create_task_db,
    update_task_db,
    delete_task_db,
)
from health import check_health, get_stats, validate_connection_string
from models import SuggestionRequest, Task, TaskCreate, TaskUpdate
from suggestions import error_message_for, generate_suggestions, get_ai_client, status_for

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Malformed or non-UTF-8 JSON bodies and field validation failures
CLIENT_ERRORS = (json.JSONDecodeError, UnicodeDecodeError, ValidationError)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: the connection itself is opened on first use
    app.state.database = Database(config.DATABASE_URL)
    yield
    # Shutdown
    app.state.database.close()

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_database(request: Request) -> Database:
    return request.app.state.database


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _task_failure(message: str, exc: Exception) -> JSONResponse:
    """Every task route failure is a 500 unless STRICT_VALIDATION is on."""
    if config.STRICT_VALIDATION and isinstance(exc, CLIENT_ERRORS):
        return _error(400, "Invalid task data")
    return _error(500, message)


@app.get("/tasks", response_model=list[Task])
async def get_tasks(db: Database = Depends(get_database)):
    try:
        conn = await db.connect()
        return get_all_tasks(conn)
    except Exception:
        logger.exception("Failed to fetch tasks")
        return _error(500, "Failed to fetch tasks")


@app.post("/tasks", response_model=Task, status_code=201)
async def create_task(request: Request, db: Database = Depends(get_database)):
    try:
        task_data = TaskCreate.model_validate(await request.json())
        conn = await db.connect()
        return create_task_db(conn, task_data)
    except Exception as e:
        logger.exception("Failed to create task")
        return _task_failure("Failed to create task", e)


@app.put("/tasks/{task_id}", response_model=Task)
async def update_task(task_id: str, request: Request, db: Database = Depends(get_database)):
    try:
        task_update = TaskUpdate.model_validate(await request.json())
        conn = await db.connect()
        result = update_task_db(conn, task_id, task_update)
    except Exception as e:
        logger.exception("Failed to update task %s", task_id)
        return _task_failure("Failed to update task", e)

    if result is None:
        return _error(404, "Task not found")
    return result


@app.delete("/tasks/{task_id}")
async def delete_task(task_id: str, db: Database = Depends(get_database)):
    try:
        conn = await db.connect()
        deleted = delete_task_db(conn, task_id)
    except Exception:
        logger.exception("Failed to delete task %s", task_id)
        return _error(500, "Failed to delete task")

    if deleted is None:
        return _error(404, "Task not found")
    return {"message": "Task deleted successfully"}


@app.post("/ai/generate-tasks")
async def generate_tasks(
    request: Request,
    client: Optional[anthropic.AsyncAnthropic] = Depends(get_ai_client)
):
    """Ask the completion service for three tasks suited to the user's state."""
    if client is None:
        logger.warning("AI task generation requested but ANTHROPIC_API_KEY is not configured")
        return _error(503, "AI service not configured")

    try:
        suggestion_request = SuggestionRequest.model_validate(await request.json())
        result = await generate_suggestions(client, suggestion_request)
    except Exception:
        logger.exception("AI task generation error")
        return _error(500, "Failed to generate tasks")

    if not result.ok:
        return _error(status_for(result), error_message_for(result))
    return result.tasks


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@app.get("/health/database")
async def database_health(
    stats: Optional[str] = None,
    test: Optional[str] = None,
    db: Database = Depends(get_database)
):
    """
    Exercise the database end to end.

    ?test=true adds a static check of DATABASE_URL, ?stats=true adds task
    counts when the connection works. Any other value of either flag means
    false. 200 only when every step passed.
    """
    include_stats = stats == "true"
    include_test = test == "true"

    try:
        health_status = await check_health(db)

        response = {
            "status": "success",
            "timestamp": _timestamp(),
            "database": health_status.model_dump(mode="json", by_alias=True, exclude_none=True),
        }

        if include_test:
            url = db.url or config.DATABASE_URL
            response["connectionString"] = {
                "valid": validate_connection_string(url),
                "uri": "***configured***" if url else "not configured",
            }

        if include_stats and health_status.connection:
            try:
                response["stats"] = (await get_stats(db)).model_dump(by_alias=True)
            except Exception:
                logger.exception("Failed to get database stats")
                response["stats"] = {"error": "Failed to get stats"}

        return JSONResponse(status_code=200 if health_status.healthy else 503, content=response)

    except Exception as e:
        logger.exception("Database health endpoint failed")
        error_message = str(e) or "Unknown error"
        return JSONResponse(status_code=500, content={
            "status": "error",
            "timestamp": _timestamp(),
            "error": error_message,
            "database": {
                "connection": False,
                "read": False,
                "write": False,
                "delete": False,
                "error": error_message,
            },
        })


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
