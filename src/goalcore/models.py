# src/goalcore/models.py
"""
Core data models for the GoalCore library.

This module defines the Pydantic models used to represent auto-scaling
goals: the persisted ``Goal`` record with its embedded history ledger and
sub-period reset logs, the typed input structures accepted by create and
update operations, and the tree node returned by hierarchy reads.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(v: Any) -> Any:
    """Coerce ISO strings and naive datetimes to timezone-aware UTC datetimes."""
    if isinstance(v, str):
        v = datetime.fromisoformat(v[:-1] + "+00:00" if v.endswith("Z") else v)
    if isinstance(v, datetime):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
    return v


class _CaseInsensitiveEnum(str, Enum):
    """String enum that accepts values regardless of case."""

    @classmethod
    def _missing_(cls, value: object):  # type: ignore[misc]
        if isinstance(value, str):
            lower_value = value.lower()
            for member in cls:
                if member.value == lower_value:
                    return member
        return None


class Timeframe(_CaseInsensitiveEnum):
    """Length of a goal's outer scaling period."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ANNUALLY = "annually"


class ResetFrequency(_CaseInsensitiveEnum):
    """
    How often progress resets inside a scaling period.

    ``NEVER`` means progress accumulates across the whole period; any other
    value means the target counts successful sub-periods.
    """
    NEVER = "never"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class GoalDirection(_CaseInsensitiveEnum):
    """Whether success means reaching-or-exceeding or staying at-or-under the target."""
    INCREASE = "increase"
    DECREASE = "decrease"


class ScaleDirection(_CaseInsensitiveEnum):
    """Direction requested by a manual scale."""
    UP = "up"
    DOWN = "down"


class ResetLog(BaseModel):
    """Outcome of one closed sub-period of a reset-frequency goal."""
    model_config = ConfigDict(frozen=True)

    date: datetime = Field(description="Start of the sub-period (the previous last_reset).")
    progress: float = Field(ge=0, description="Amount logged during the sub-period.")
    target_met: bool = Field(description="Whether the sub-period reached the reset target.")

    @field_validator("date", mode="before")
    @classmethod
    def ensure_utc_date(cls, v: Any) -> Any:
        return ensure_utc(v)


class HistoryEntry(BaseModel):
    """
    Outcome of one closed scaling period.

    Entries are appended to ``Goal.history`` and never mutated afterwards.

    Attributes:
        period_start: When the closed period began.
        period_end: When it was closed.
        target: Target in force during the period (pre-scaling).
        achieved: Cumulative progress, or resets completed for reset-frequency goals.
        success: Whether the period counted as achieved.
        scaled_to: Target after scaling.
        manual: True if the period was closed by a manual scale.
        reset_logs: Snapshot of the sub-period logs at closure (reset-frequency goals only).
        reset_target: Snapshot of the reset target at closure (reset-frequency goals only).
    """
    model_config = ConfigDict(frozen=True)

    period_start: datetime
    period_end: datetime
    target: float
    achieved: float
    success: bool
    scaled_to: float
    manual: bool = False
    reset_logs: Optional[Tuple[ResetLog, ...]] = None
    reset_target: Optional[float] = None

    @field_validator("period_start", "period_end", mode="before")
    @classmethod
    def ensure_utc_period(cls, v: Any) -> Any:
        return ensure_utc(v)


class Goal(BaseModel):
    """
    A user-owned numeric goal whose target rescales at period boundaries.

    Goals form a forest through ``parent_id``; a goal with no parent is a
    root. The meaning of ``target`` depends on ``reset_frequency``: under
    ``never`` it is the amount to accumulate in the current period,
    otherwise it is the number of sub-periods that must succeed.
    """
    id: str = Field(default_factory=lambda: f"goal_{uuid.uuid4().hex[:12]}")
    user_id: str = Field(min_length=1)
    parent_id: Optional[str] = None

    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    unit: str = Field(min_length=1, max_length=50)

    target: float = Field(ge=0)
    progress: float = Field(default=0, ge=0)
    timeframe: Timeframe
    current_period_start: datetime = Field(default_factory=utc_now)

    # Sub-period tracking
    reset_frequency: ResetFrequency = ResetFrequency.NEVER
    current_reset_progress: float = Field(default=0, ge=0)
    reset_target: Optional[float] = Field(default=None, ge=0)
    resets_completed: int = Field(default=0, ge=0)
    last_reset: datetime = Field(default_factory=utc_now)
    reset_logs: List[ResetLog] = Field(default_factory=list)

    # Scaling parameters
    goal_direction: GoalDirection = GoalDirection.INCREASE
    scale_percent: float = Field(default=5, ge=0.1, le=100)
    scale_up_enabled: bool = True
    scale_down_enabled: bool = True
    round_up: bool = True
    min_target: float = Field(default=1, ge=0)
    max_target: float = Field(default=100, ge=1)

    is_active: bool = True
    is_archived: bool = False

    history: List[HistoryEntry] = Field(default_factory=list)

    created: datetime = Field(default_factory=utc_now)
    updated: datetime = Field(default_factory=utc_now)
    version: int = Field(default=0, ge=0)

    @field_validator("current_period_start", "last_reset", "created", "updated", mode="before")
    @classmethod
    def ensure_utc_timestamps(cls, v: Any) -> Any:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_target_bounds(self) -> "Goal":
        if self.min_target > self.max_target:
            raise ValueError(
                f"min_target ({self.min_target}) must not exceed max_target ({self.max_target})"
            )
        return self

    @property
    def tracks_resets(self) -> bool:
        """True if progress is tracked per sub-period."""
        return self.reset_frequency != ResetFrequency.NEVER

    @property
    def is_visible(self) -> bool:
        """True if the goal shows up in default listings and trees."""
        return self.is_active and not self.is_archived


class GoalCreate(BaseModel):
    """
    Typed input for creating a goal.

    Scaling parameters left as ``None`` are filled from the configured
    goal defaults.
    """
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    unit: str = Field(min_length=1, max_length=50)
    target: float = Field(ge=0)
    timeframe: Timeframe
    parent_id: Optional[str] = None

    reset_frequency: ResetFrequency = ResetFrequency.NEVER
    reset_target: Optional[float] = Field(default=None, ge=0)

    goal_direction: Optional[GoalDirection] = None
    scale_percent: Optional[float] = Field(default=None, ge=0.1, le=100)
    scale_up_enabled: Optional[bool] = None
    scale_down_enabled: Optional[bool] = None
    round_up: Optional[bool] = None
    min_target: Optional[float] = Field(default=None, ge=0)
    max_target: Optional[float] = Field(default=None, ge=1)

    is_active: bool = True


class GoalUpdate(BaseModel):
    """
    Typed input for a partial goal update.

    Only fields explicitly set are applied. There is deliberately no
    ``user_id`` field: ownership cannot change after creation.
    """
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    unit: Optional[str] = Field(default=None, min_length=1, max_length=50)
    target: Optional[float] = Field(default=None, ge=0)
    timeframe: Optional[Timeframe] = None
    parent_id: Optional[str] = None

    reset_frequency: Optional[ResetFrequency] = None
    reset_target: Optional[float] = Field(default=None, ge=0)

    goal_direction: Optional[GoalDirection] = None
    scale_percent: Optional[float] = Field(default=None, ge=0.1, le=100)
    scale_up_enabled: Optional[bool] = None
    scale_down_enabled: Optional[bool] = None
    round_up: Optional[bool] = None
    min_target: Optional[float] = Field(default=None, ge=0)
    max_target: Optional[float] = Field(default=None, ge=1)

    is_active: Optional[bool] = None
    is_archived: Optional[bool] = None

    # Fields that may be explicitly cleared to null.
    NULLABLE_FIELDS: ClassVar[frozenset] = frozenset({"description", "parent_id", "reset_target"})

    def changes(self) -> dict[str, Any]:
        """Return the explicitly set fields, dropping nulls for non-nullable ones."""
        data = self.model_dump(exclude_unset=True)
        return {
            k: v for k, v in data.items()
            if v is not None or k in self.NULLABLE_FIELDS
        }


class GoalTreeNode(BaseModel):
    """A goal together with its visible descendants."""
    goal: Goal
    subgoals: List["GoalTreeNode"] = Field(default_factory=list)

    def iter_goals(self):
        """Yield this node's goal and every descendant goal, depth-first."""
        yield self.goal
        for child in self.subgoals:
            yield from child.iter_goals()


GoalTreeNode.model_rebuild()
