from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Tuple

from studytrack.core.catalog import DAYS, DONE_STATUSES, TIME_SLOTS
from studytrack.core.dates import days_left, is_overdue, next_upcoming
from studytrack.core.entities import CalendarEvent, Grade, Homework, TimetableSlot
from studytrack.core.grades import letter_grade, weighted_average


UPCOMING_WINDOW_DAYS = 7
UPCOMING_LIMIT = 5


@dataclass
class HomeworkBuckets:
    overdue: List[Homework] = field(default_factory=list)
    upcoming: List[Homework] = field(default_factory=list)
    completed: List[Homework] = field(default_factory=list)


@dataclass(frozen=True)
class Deadline:
    title: str
    subject: str
    kind: str
    due_date: date
    days_left: int
    source_id: str


@dataclass
class DashboardSummary:
    overdue_count: int
    upcoming_count: int
    completed_count: int
    overall_average: int
    overall_letter: str
    next_homework: Optional[Homework]
    next_exam: Optional[CalendarEvent]
    upcoming_deadlines: List[Deadline]
    todays_classes: List[TimetableSlot]


def is_done(homework: Homework) -> bool:
    return homework.status in DONE_STATUSES


def partition_homework(homework: Sequence[Homework], *, today: Optional[date] = None) -> HomeworkBuckets:
    """
    Overdue goes by date alone. Upcoming excludes done work, so status beats date
    there: a Completed item past its due date lands in overdue and completed, never
    in upcoming.
    """
    buckets = HomeworkBuckets()
    for hw in homework:
        overdue = is_overdue(hw.due_date, today=today)
        if overdue:
            buckets.overdue.append(hw)
        elif not is_done(hw):
            buckets.upcoming.append(hw)
        if is_done(hw):
            buckets.completed.append(hw)
    return buckets


def upcoming_deadlines(
    homework: Sequence[Homework],
    events: Sequence[CalendarEvent],
    *,
    today: Optional[date] = None,
    window: int = UPCOMING_WINDOW_DAYS,
    limit: int = UPCOMING_LIMIT,
) -> List[Deadline]:
    """
    Upcoming homework plus every calendar event due within `window` days.

    Past-due events stay in the list (negative days_left sorts them first);
    homework only contributes its upcoming bucket.
    """
    deadlines: List[Deadline] = []
    for hw in partition_homework(homework, today=today).upcoming:
        deadlines.append(
            Deadline(
                title=hw.assignment,
                subject=hw.subject,
                kind="Homework",
                due_date=hw.due_date,
                days_left=days_left(hw.due_date, today=today),
                source_id=hw.id,
            )
        )
    for event in events:
        deadlines.append(
            Deadline(
                title=event.description or event.event_type,
                subject=event.subject,
                kind=event.event_type,
                due_date=event.date,
                days_left=days_left(event.date, today=today),
                source_id=event.id,
            )
        )

    within = [item for item in deadlines if item.days_left <= window]
    within.sort(key=lambda item: item.days_left)
    return within[:limit]


def sort_homework_for_tracker(homework: Sequence[Homework], *, today: Optional[date] = None) -> List[Homework]:
    return sorted(
        homework,
        key=lambda hw: (not is_overdue(hw.due_date, today=today), days_left(hw.due_date, today=today)),
    )


def split_events(
    events: Sequence[CalendarEvent], *, today: Optional[date] = None
) -> Tuple[List[CalendarEvent], List[CalendarEvent]]:
    ordered = sorted(events, key=lambda event: event.date)
    upcoming = [event for event in ordered if not is_overdue(event.date, today=today)]
    past = [event for event in ordered if is_overdue(event.date, today=today)]
    return upcoming, past


def weekday_name(day: date) -> str:
    return ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")[day.weekday()]


def sort_slots(slots: Sequence[TimetableSlot]) -> List[TimetableSlot]:
    def position(slot: TimetableSlot) -> Tuple[int, int]:
        day_index = DAYS.index(slot.day) if slot.day in DAYS else len(DAYS)
        time_index = TIME_SLOTS.index(slot.time) if slot.time in TIME_SLOTS else len(TIME_SLOTS)
        return day_index, time_index

    return sorted(slots, key=position)


def classes_on(slots: Sequence[TimetableSlot], day: date) -> List[TimetableSlot]:
    name = weekday_name(day)
    return sort_slots([slot for slot in slots if slot.day == name])


def build_summary(
    homework: Sequence[Homework],
    events: Sequence[CalendarEvent],
    grades: Sequence[Grade],
    timetable: Sequence[TimetableSlot],
    *,
    today: Optional[date] = None,
) -> DashboardSummary:
    current = today or date.today()
    buckets = partition_homework(homework, today=current)
    overall = weighted_average(grades)
    exams = [event for event in events if event.event_type == "Exam"]

    return DashboardSummary(
        overdue_count=len(buckets.overdue),
        upcoming_count=len(buckets.upcoming),
        completed_count=len(buckets.completed),
        overall_average=overall,
        overall_letter=letter_grade(overall),
        next_homework=next_upcoming(buckets.upcoming, today=current),
        next_exam=next_upcoming(exams, today=current),
        upcoming_deadlines=upcoming_deadlines(homework, events, today=current),
        todays_classes=classes_on(timetable, current),
    )
