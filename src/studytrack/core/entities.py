from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import date
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple

from studytrack.core.dates import to_date


def _serialize(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return list(value)
    return value


@dataclass
class Entity:
    """Base for rows that carry a server-issued id. Field names match column names."""

    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ()
    NULLABLE_FIELDS: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls) if f.name != "id")

    @classmethod
    def coerce(cls, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate field names and nulls of a partial update and normalize date values."""
        allowed = cls.field_names()
        unknown = [name for name in changes if name not in allowed]
        if unknown:
            raise ValueError(f"Unknown {cls.__name__} fields: {', '.join(sorted(unknown))}")
        nulled = [name for name, value in changes.items() if value is None and name not in cls.NULLABLE_FIELDS]
        if nulled:
            raise ValueError(f"{cls.__name__} fields cannot be null: {', '.join(sorted(nulled))}")
        coerced = dict(changes)
        for name in cls.DATE_FIELDS:
            if name in coerced and coerced[name] is not None:
                coerced[name] = to_date(coerced[name])
        return coerced

    @classmethod
    def to_columns(cls, changes: Mapping[str, Any]) -> Dict[str, Any]:
        return {name: _serialize(value) for name, value in cls.coerce(changes).items()}

    def to_row(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("id", None)
        return {name: _serialize(value) for name, value in data.items()}

    @classmethod
    def from_row(cls, row: Mapping[str, Any]):
        values: Dict[str, Any] = {"id": str(row.get("$id") or row.get("id") or "")}
        for f in fields(cls):
            if f.name == "id" or f.name not in row:
                continue
            values[f.name] = row[f.name]
        for name in cls.DATE_FIELDS:
            if values.get(name):
                values[name] = to_date(values[name])
        return cls(**values)


@dataclass
class Homework(Entity):
    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ("due_date", "assigned_date")
    NULLABLE_FIELDS: ClassVar[Tuple[str, ...]] = ("submission_link",)

    subject: str
    assignment: str
    due_date: date
    assigned_date: date
    status: str = "Not Started"
    priority: str = "Medium"
    notes: str = ""
    submission_link: Optional[str] = None
    id: str = ""


@dataclass
class CalendarEvent(Entity):
    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ("date",)

    date: date
    time: str
    event_type: str
    subject: str
    description: str
    location: str = ""
    reminder_set: bool = False
    preparation_checklist: List[str] = field(default_factory=list)
    id: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CalendarEvent":
        event = super().from_row(row)
        event.preparation_checklist = list(event.preparation_checklist or [])
        event.location = event.location or ""
        return event


@dataclass
class Grade(Entity):
    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ("date_graded",)

    subject: str
    assessment_name: str
    type: str
    max_marks: int
    marks_obtained: int
    date_graded: date
    grade: str = ""
    feedback: str = ""
    weight: float = 1.0
    id: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Grade":
        grade = super().from_row(row)
        grade.max_marks = int(grade.max_marks)
        grade.marks_obtained = int(grade.marks_obtained)
        grade.weight = float(grade.weight)
        grade.feedback = grade.feedback or ""
        return grade


@dataclass
class TimetableSlot:
    """Identified by (day, time); the remote row id is not part of the domain."""

    day: str
    time: str
    subject: str
    notes: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        return self.day, self.time

    def to_row(self) -> Dict[str, Any]:
        return {"day": self.day, "time": self.time, "subject": self.subject, "notes": self.notes}

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TimetableSlot":
        return cls(
            day=str(row.get("day", "")),
            time=str(row.get("time", "")),
            subject=str(row.get("subject", "")),
            notes=row.get("notes"),
        )
