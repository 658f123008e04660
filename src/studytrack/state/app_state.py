from dataclasses import dataclass
from datetime import date
from typing import Optional

from studytrack.config.settings import Settings, settings
from studytrack.core.dashboard import DashboardSummary, build_summary
from studytrack.services.appwrite_service import AppwriteService
from studytrack.state.session_state import SessionState
from studytrack.state.stores import CalendarEventStore, GradeStore, HomeworkStore, TimetableStore


@dataclass
class AppState:
    session: SessionState
    homework: HomeworkStore
    events: CalendarEventStore
    grades: GradeStore
    timetable: TimetableStore

    @classmethod
    def create(cls, rows: AppwriteService, config: Settings = settings) -> "AppState":
        session = SessionState()
        return cls(
            session=session,
            homework=HomeworkStore(session, rows, config.appwrite_homework_collection_id),
            events=CalendarEventStore(session, rows, config.appwrite_calendar_events_collection_id),
            grades=GradeStore(session, rows, config.appwrite_grades_collection_id),
            timetable=TimetableStore(session, rows, config.appwrite_timetable_collection_id),
        )

    def refresh(self) -> bool:
        results = [store.load() for store in (self.homework, self.events, self.grades, self.timetable)]
        return all(results)

    def dashboard(self, today: Optional[date] = None) -> DashboardSummary:
        return build_summary(
            self.homework.items,
            self.events.items,
            self.grades.items,
            self.timetable.items,
            today=today,
        )


_app_state: Optional[AppState] = None


def get_app_state() -> AppState:
    global _app_state
    if _app_state is None:
        _app_state = AppState.create(AppwriteService.from_settings())
    return _app_state
