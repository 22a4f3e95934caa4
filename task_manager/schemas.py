from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)

# Calendar date prefix; keeps bare numbers from parsing as unix timestamps
ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}"

_iso_date_or_datetime = TypeAdapter(Union[datetime, date])


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def validate_iso8601(value: Optional[str]) -> Optional[str]:
    """Accept an ISO 8601 date or date-time string and return it unchanged"""
    if value is None:
        return None
    try:
        _iso_date_or_datetime.validate_python(value)
    except ValidationError:
        raise ValueError("due_date must be ISO 8601")
    return value


class TaskBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default="", max_length=1000)
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[str] = Field(None, pattern=ISO_DATE_PATTERN)

    @field_validator("description")
    @classmethod
    def description_not_none(cls, value: Optional[str]) -> str:
        return value or ""

    @field_validator("due_date")
    @classmethod
    def check_due_date(cls, value: Optional[str]) -> Optional[str]:
        return validate_iso8601(value)


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied"""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[str] = Field(None, pattern=ISO_DATE_PATTERN)

    @field_validator("title", "description", "status", "priority")
    @classmethod
    def reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        # Only due_date can be cleared
        if value is None:
            raise ValueError(f"{info.field_name} may not be null")
        return value

    @field_validator("due_date")
    @classmethod
    def check_due_date(cls, value: Optional[str]) -> Optional[str]:
        return validate_iso8601(value)

    def changes(self) -> Dict[str, Any]:
        """Fields the caller explicitly supplied"""
        return self.model_dump(exclude_unset=True)


class TaskFilter(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    search: Optional[str] = None

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[str] = None
    created_at: str
    updated_at: str


class TaskStats(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0


class FieldViolation(BaseModel):
    field: str
    location: str
    message: str
    type: str


class ValidationErrorResponse(BaseModel):
    errors: List[FieldViolation]


def violations_from_errors(errors: List[Dict[str, Any]]) -> List[FieldViolation]:
    """Flatten pydantic error dicts into one violation per failing field"""
    violations = []
    for error in errors:
        raw_loc = list(error.get("loc", ()))
        loc = [str(part) for part in raw_loc]
        location = loc[0] if loc and loc[0] in ("body", "query", "path") else "body"
        field_parts = loc[1:] if loc and loc[0] == location else loc
        # Malformed JSON reports a character offset, not a field name
        if loc and loc[0] == location and len(raw_loc) > 1 and isinstance(raw_loc[1], int):
            field_parts = []
        violations.append(
            FieldViolation(
                field=".".join(field_parts) or location,
                location=location,
                message=error.get("msg", "Invalid value"),
                type=error.get("type", "value_error"),
            )
        )
    return violations
