from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Subject:
    name: str
    color: str


SUBJECTS: Tuple[Subject, ...] = (
    Subject("Math", "#3B82F6"),
    Subject("English", "#10B981"),
    Subject("Science", "#8B5CF6"),
    Subject("History", "#F59E0B"),
    Subject("Geography", "#EF4444"),
    Subject("Computer", "#06B6D4"),
    Subject("Art", "#EC4899"),
    Subject("PE", "#84CC16"),
)

DAYS: Tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")

TIME_SLOTS: Tuple[str, ...] = (
    "8:00-9:00",
    "9:00-10:00",
    "10:00-11:00",
    "11:00-12:00",
    "12:00-1:00",
    "1:00-2:00",
    "2:00-3:00",
)

HOMEWORK_STATUSES: Tuple[str, ...] = ("Not Started", "In Progress", "Needs Revision", "Completed", "Submitted")
DONE_STATUSES: Tuple[str, ...] = ("Completed", "Submitted")
PRIORITIES: Tuple[str, ...] = ("High", "Medium", "Low")
EVENT_TYPES: Tuple[str, ...] = ("Exam", "Quiz", "Homework Due", "Project", "Assignment")
GRADE_TYPES: Tuple[str, ...] = ("Exam", "Assignment", "Quiz", "Project")


def subject_color(name: str, default: str = "#6B7280") -> str:
    subject: Optional[Subject] = next((s for s in SUBJECTS if s.name == name), None)
    return subject.color if subject else default
