from datetime import datetime, timezone
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

Priority = Literal["low", "medium", "high"]

# Categories the client offers; the store accepts any non-empty category
RECOGNIZED_CATEGORIES = (
    "personal",
    "work",
    "health",
    "learning",
    "creative",
    "social",
    "focus",
    "planning",
)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken as UTC so stored ISO strings sort correctly."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Text = Annotated[str, StringConstraints(strip_whitespace=True)]
Category = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Task(CamelModel):
    id: str
    title: Title
    description: Optional[Text] = None
    category: Category = "personal"
    priority: Priority = "medium"
    completed: bool = False
    created_at: UtcDatetime
    completed_at: Optional[UtcDatetime] = None
    ai_generated: bool = False
    estimated_time: int = 25  # minutes


class TaskCreate(CamelModel):
    """Request body for POST /tasks. Only title is required."""
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = None
    title: Title
    description: Optional[Text] = None
    category: Category = "personal"
    priority: Priority = "medium"
    completed: bool = False
    created_at: Optional[UtcDatetime] = None
    completed_at: Optional[UtcDatetime] = None
    ai_generated: bool = False
    estimated_time: int = 25


class TaskUpdate(CamelModel):
    """Request body for PUT /tasks/{id}.

    Every field is optional; only fields present in the body are applied.
    An explicit null clears an optional field (e.g. completedAt when a task
    is un-completed). id and createdAt cannot be changed.
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[Title] = None
    description: Optional[Text] = None
    category: Optional[Category] = None
    priority: Optional[Priority] = None
    completed: Optional[bool] = None
    completed_at: Optional[UtcDatetime] = None
    ai_generated: Optional[bool] = None
    estimated_time: Optional[int] = None


class SuggestionRequest(CamelModel):
    mood: str
    energy_level: int  # 1-10
    available_time: int  # minutes
    schedule_notes: Optional[str] = None


class HealthDetails(CamelModel):
    """Per-step timings in milliseconds; a step that never ran stays None."""
    connection_time: Optional[int] = None
    read_time: Optional[int] = None
    write_time: Optional[int] = None
    delete_time: Optional[int] = None


class HealthStatus(BaseModel):
    connection: bool = False
    read: bool = False
    write: bool = False
    delete: bool = False
    error: Optional[str] = None
    details: HealthDetails = Field(default_factory=HealthDetails)

    @property
    def healthy(self) -> bool:
        return self.connection and self.read and self.write and self.delete


class DatabaseStats(CamelModel):
    total_tasks: int
    completed_tasks: int
    ai_generated_tasks: int
    completion_rate: str  # percentage, one decimal, "0" when there are no tasks
    ai_generated_rate: str
