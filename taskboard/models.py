# taskboard/models.py
"""Task and user models for the taskboard API."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import field_validator
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Current time as aware UTC, the form timestamps are stored in."""
    return datetime.now(timezone.utc)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert to aware UTC. Naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class RecurrenceFrequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    none = "none"


# -- users -------------------------------------------------------------------


class User(SQLModel, table=True):
    """Task owner. Carries the per-user settings."""
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(max_length=254, unique=True, index=True)
    name: str = Field(default="", max_length=100)
    dark_mode: bool = Field(default=False)
    notifications_enabled: bool = Field(default=True)
    theme: str = Field(default="purple", max_length=30)
    created_at: datetime = Field(default_factory=utcnow)


class UserCreate(SQLModel):
    email: str = Field(min_length=3, max_length=254)
    name: str = Field(default="", max_length=100)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Must be a valid email address")
        return v


class UserRead(SQLModel):
    id: int
    email: str
    name: str


class UserSettings(SQLModel):
    dark_mode: bool
    notifications_enabled: bool
    theme: str


class UserSettingsUpdate(SQLModel):
    """Settings fields a user may change. Unknown keys are ignored."""
    dark_mode: Optional[bool] = None
    notifications_enabled: Optional[bool] = None
    theme: Optional[str] = Field(default=None, min_length=1, max_length=30)


# -- embedded task descriptors -------------------------------------------------


class Recurrence(SQLModel):
    is_recurring: bool = False
    frequency: RecurrenceFrequency = RecurrenceFrequency.none
    end_date: Optional[datetime] = None

    @field_validator("end_date")
    @classmethod
    def normalize_end_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v)


class ReminderInput(SQLModel):
    """Reminder block as sent by clients. Delivery state is never client-set."""
    enabled: bool = False
    time: Optional[datetime] = None

    @field_validator("time")
    @classmethod
    def normalize_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v)


class Reminder(SQLModel):
    enabled: bool = False
    time: Optional[datetime] = None
    sent: bool = False


# -- tasks -----------------------------------------------------------------------


def _clean_tags(tags: list[str]) -> list[str]:
    return [tag.strip() for tag in tags if tag and tag.strip()]


class TaskBase(SQLModel):
    """Shared fields for create/read operations."""
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None)
    status: TaskStatus = Field(default=TaskStatus.pending)
    priority: TaskPriority = Field(default=TaskPriority.medium)
    category: Optional[str] = Field(default=None, max_length=50)
    due_date: Optional[datetime] = Field(default=None)


class Task(TaskBase, table=True):
    """Task database table. Recurrence and reminder blocks are stored flat."""
    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)
    position: int = Field(default=0, index=True)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    is_recurring: bool = Field(default=False)
    recurrence_frequency: RecurrenceFrequency = Field(default=RecurrenceFrequency.none)
    recurrence_end_date: Optional[datetime] = Field(default=None)

    reminder_enabled: bool = Field(default=False, index=True)
    reminder_time: Optional[datetime] = Field(default=None)
    reminder_sent: bool = Field(default=False)
    reminder_attempts: int = Field(default=0)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def reminder(self) -> Reminder:
        return Reminder(
            enabled=self.reminder_enabled,
            time=self.reminder_time,
            sent=self.reminder_sent,
        )

    @property
    def recurring(self) -> Recurrence:
        return Recurrence(
            is_recurring=self.is_recurring,
            frequency=self.recurrence_frequency,
            end_date=self.recurrence_end_date,
        )


class TaskCreate(TaskBase):
    """Schema for creating a task. Title is required, rest have defaults."""
    tags: list[str] = Field(default_factory=list)
    recurring: Recurrence = Field(default_factory=Recurrence)
    reminder: ReminderInput = Field(default_factory=ReminderInput)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v)


class TaskUpdate(SQLModel):
    """Schema for updating a task. All fields optional.

    Owner and position are not part of this schema; an update never
    changes them.
    """
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category: Optional[str] = Field(default=None, max_length=50)
    due_date: Optional[datetime] = None
    tags: Optional[list[str]] = None
    recurring: Optional[Recurrence] = None
    reminder: Optional[ReminderInput] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: Optional[str]) -> str:
        if v is None or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

    @field_validator("status", "priority")
    @classmethod
    def reject_null(cls, v):
        # Omit the key to leave the value unchanged; the columns are NOT NULL.
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: Optional[list[str]]) -> list[str]:
        return _clean_tags(v or [])

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v)


class TaskRead(TaskBase):
    """Task as returned to clients, with nested recurrence and reminder blocks."""
    id: int
    position: int
    tags: list[str] = Field(default_factory=list)
    recurring: Recurrence
    reminder: Reminder
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_task(cls, task: Task) -> "TaskRead":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            category=task.category,
            due_date=task.due_date,
            position=task.position,
            tags=list(task.tags or []),
            recurring=task.recurring,
            reminder=task.reminder,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class ReorderRequest(SQLModel):
    task_id: int
    new_position: int


class TaskAnalytics(SQLModel):
    """Aggregate counts for one owner, computed on read."""
    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    by_category: dict[str, int]
