from dataclasses import asdict
import datetime
import logging
import secrets
from typing import ClassVar, Dict, FrozenSet, List, Literal, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, model_validator

from studytrack.config.settings import settings
from studytrack.core import catalog
from studytrack.core.entities import CalendarEvent, Grade, Homework, TimetableSlot
from studytrack.core.grades import letter_grade, subject_averages, weighted_average
from studytrack.services.auth_service import AppwriteAuthService, AuthResult, AuthServiceError
from studytrack.state.app_state import AppState, get_app_state
from studytrack.state.stores import EntityStore


logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="StudyTrack API", version="1.0.0")

SESSION_HEADER = "X-Session-Secret"

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


HomeworkStatus = Literal["Not Started", "In Progress", "Needs Revision", "Completed", "Submitted"]
Priority = Literal["High", "Medium", "Low"]
EventType = Literal["Exam", "Quiz", "Homework Due", "Project", "Assignment"]
GradeType = Literal["Exam", "Assignment", "Quiz", "Project"]
Day = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
TimeSlot = Literal["8:00-9:00", "9:00-10:00", "10:00-11:00", "11:00-12:00", "12:00-1:00", "1:00-2:00", "2:00-3:00"]


class AuthPayload(BaseModel):
    email: str
    password: str
    name: Optional[str] = None


class HomeworkPayload(BaseModel):
    subject: str = Field(min_length=1)
    assignment: str = Field(min_length=1)
    due_date: datetime.date
    assigned_date: datetime.date = Field(default_factory=datetime.date.today)
    status: HomeworkStatus = "Not Started"
    priority: Priority = "Medium"
    notes: str = ""
    submission_link: Optional[str] = None


class _PartialPayload(BaseModel):
    """Partial update: omitted fields stay as they are, explicit nulls only where the column allows them."""

    NULLABLE: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_nulls(self):
        nulled = sorted(name for name in self.model_fields_set - self.NULLABLE if getattr(self, name) is None)
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self


class HomeworkUpdatePayload(_PartialPayload):
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset({"submission_link"})

    subject: Optional[str] = Field(default=None, min_length=1)
    assignment: Optional[str] = Field(default=None, min_length=1)
    due_date: Optional[datetime.date] = None
    assigned_date: Optional[datetime.date] = None
    status: Optional[HomeworkStatus] = None
    priority: Optional[Priority] = None
    notes: Optional[str] = None
    submission_link: Optional[str] = None


class EventPayload(BaseModel):
    date: datetime.date
    time: str = Field(min_length=1)
    event_type: EventType
    subject: str = Field(min_length=1)
    description: str = Field(min_length=1)
    location: str = ""
    reminder_set: bool = False
    preparation_checklist: List[str] = Field(default_factory=list)


class EventUpdatePayload(_PartialPayload):
    date: Optional[datetime.date] = None
    time: Optional[str] = Field(default=None, min_length=1)
    event_type: Optional[EventType] = None
    subject: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = None
    reminder_set: Optional[bool] = None
    preparation_checklist: Optional[List[str]] = None


class GradePayload(BaseModel):
    subject: str = Field(min_length=1)
    assessment_name: str = Field(min_length=1)
    type: GradeType
    max_marks: int = Field(ge=1)
    marks_obtained: int = Field(ge=0)
    date_graded: datetime.date = Field(default_factory=datetime.date.today)
    feedback: str = ""
    weight: float = Field(default=1.0, gt=0)


class GradeUpdatePayload(_PartialPayload):
    subject: Optional[str] = Field(default=None, min_length=1)
    assessment_name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[GradeType] = None
    max_marks: Optional[int] = Field(default=None, ge=1)
    marks_obtained: Optional[int] = Field(default=None, ge=0)
    date_graded: Optional[datetime.date] = None
    feedback: Optional[str] = None
    weight: Optional[float] = Field(default=None, gt=0)


class TimetableSlotPayload(BaseModel):
    day: Day
    time: TimeSlot
    subject: str = ""
    notes: Optional[str] = None


class TimetablePayload(BaseModel):
    slots: List[TimetableSlotPayload]


def get_auth_service() -> AppwriteAuthService:
    return AppwriteAuthService.from_settings()


def _session_matches(state: AppState, session_secret: Optional[str]) -> bool:
    expected = state.session.session_secret
    if not state.session.is_authenticated or not expected or not session_secret:
        return False
    return secrets.compare_digest(session_secret.encode(), expected.encode())


def current_state(
    state: AppState = Depends(get_app_state),
    session_secret: Optional[str] = Header(default=None, alias=SESSION_HEADER),
) -> AppState:
    if not _session_matches(state, session_secret):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in")
    return state


def _remote_failure(store) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=store.last_error or "Remote store unavailable",
    )


def _require_item(store: EntityStore, item_id: str) -> None:
    if store.get(item_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{item_id} not found")


def _add(store: EntityStore, item) -> Dict:
    try:
        created = store.add(item)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if created is None:
        raise _remote_failure(store)
    return asdict(created)


def _update(store: EntityStore, item_id: str, payload: BaseModel) -> Dict:
    _require_item(store, item_id)
    try:
        updated = store.update(item_id, **payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if not updated:
        raise _remote_failure(store)
    return asdict(store.get(item_id))


def _delete(store: EntityStore, item_id: str) -> Dict[str, str]:
    _require_item(store, item_id)
    if not store.delete(item_id):
        raise _remote_failure(store)
    return {"status": "deleted"}


def _signed_in(state: AppState, result: AuthResult) -> Dict:
    state.session.sign_in(result)
    return {"uid": result.uid, "email": result.email, "session_secret": result.session_secret}


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/catalog")
def get_catalog() -> Dict:
    return {
        "subjects": [asdict(subject) for subject in catalog.SUBJECTS],
        "days": list(catalog.DAYS),
        "time_slots": list(catalog.TIME_SLOTS),
        "homework_statuses": list(catalog.HOMEWORK_STATUSES),
        "priorities": list(catalog.PRIORITIES),
        "event_types": list(catalog.EVENT_TYPES),
        "grade_types": list(catalog.GRADE_TYPES),
    }


@app.post("/auth/signup")
def sign_up(
    payload: AuthPayload,
    state: AppState = Depends(get_app_state),
    auth: AppwriteAuthService = Depends(get_auth_service),
) -> Dict:
    try:
        result = auth.sign_up(payload.email, payload.password, payload.name)
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _signed_in(state, result)


@app.post("/auth/login")
def login(
    payload: AuthPayload,
    state: AppState = Depends(get_app_state),
    auth: AppwriteAuthService = Depends(get_auth_service),
) -> Dict:
    try:
        result = auth.sign_in(payload.email, payload.password)
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return _signed_in(state, result)


@app.post("/auth/logout")
def logout(
    state: AppState = Depends(current_state),
    auth: AppwriteAuthService = Depends(get_auth_service),
) -> Dict[str, str]:
    try:
        auth.sign_out(state.session.session_secret or "")
    except AuthServiceError as exc:
        logger.warning("Remote sign-out failed, clearing local session anyway: %s", exc)
    state.session.clear()
    return {"status": "signed_out"}


@app.get("/session")
def get_session(
    state: AppState = Depends(get_app_state),
    session_secret: Optional[str] = Header(default=None, alias=SESSION_HEADER),
) -> Dict:
    if not _session_matches(state, session_secret):
        return {"authenticated": False, "uid": None, "email": None}
    return {"authenticated": True, "uid": state.session.uid, "email": state.session.email}


@app.post("/refresh")
def refresh(state: AppState = Depends(current_state)) -> Dict[str, str]:
    if not state.refresh():
        errors = [
            store.last_error
            for store in (state.homework, state.events, state.grades, state.timetable)
            if store.last_error
        ]
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="; ".join(errors) or "Refresh failed")
    return {"status": "refreshed"}


@app.get("/homework")
def list_homework(state: AppState = Depends(current_state)) -> List[Dict]:
    return [asdict(hw) for hw in state.homework.items]


@app.post("/homework")
def create_homework(payload: HomeworkPayload, state: AppState = Depends(current_state)) -> Dict:
    return _add(state.homework, Homework(**payload.model_dump()))


@app.patch("/homework/{homework_id}")
def update_homework(
    homework_id: str,
    payload: HomeworkUpdatePayload,
    state: AppState = Depends(current_state),
) -> Dict:
    return _update(state.homework, homework_id, payload)


@app.delete("/homework/{homework_id}")
def delete_homework(homework_id: str, state: AppState = Depends(current_state)) -> Dict[str, str]:
    return _delete(state.homework, homework_id)


@app.get("/events")
def list_events(state: AppState = Depends(current_state)) -> List[Dict]:
    return [asdict(event) for event in state.events.items]


@app.post("/events")
def create_event(payload: EventPayload, state: AppState = Depends(current_state)) -> Dict:
    return _add(state.events, CalendarEvent(**payload.model_dump()))


@app.patch("/events/{event_id}")
def update_event(event_id: str, payload: EventUpdatePayload, state: AppState = Depends(current_state)) -> Dict:
    return _update(state.events, event_id, payload)


@app.delete("/events/{event_id}")
def delete_event(event_id: str, state: AppState = Depends(current_state)) -> Dict[str, str]:
    return _delete(state.events, event_id)


@app.get("/grades")
def list_grades(state: AppState = Depends(current_state)) -> List[Dict]:
    return [asdict(grade) for grade in state.grades.items]


@app.post("/grades")
def create_grade(payload: GradePayload, state: AppState = Depends(current_state)) -> Dict:
    return _add(state.grades, Grade(**payload.model_dump()))


@app.patch("/grades/{grade_id}")
def update_grade(grade_id: str, payload: GradeUpdatePayload, state: AppState = Depends(current_state)) -> Dict:
    return _update(state.grades, grade_id, payload)


@app.delete("/grades/{grade_id}")
def delete_grade(grade_id: str, state: AppState = Depends(current_state)) -> Dict[str, str]:
    return _delete(state.grades, grade_id)


@app.get("/grades/summary")
def grades_summary(state: AppState = Depends(current_state)) -> Dict:
    grades = state.grades.items
    overall = weighted_average(grades)
    return {
        "overall_average": overall,
        "overall_letter": letter_grade(overall),
        "subjects": [asdict(row) for row in subject_averages(grades)],
    }


@app.get("/timetable")
def get_timetable(state: AppState = Depends(current_state)) -> List[Dict]:
    return [asdict(slot) for slot in state.timetable.items]


@app.put("/timetable")
def put_timetable(payload: TimetablePayload, state: AppState = Depends(current_state)) -> List[Dict]:
    # blank cells in the weekly grid are not persisted
    slots = [TimetableSlot(**slot.model_dump()) for slot in payload.slots if slot.subject.strip()]
    try:
        replaced = state.timetable.replace(slots)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if not replaced:
        raise _remote_failure(state.timetable)
    return [asdict(slot) for slot in state.timetable.items]


@app.get("/dashboard")
def get_dashboard(today: Optional[datetime.date] = None, state: AppState = Depends(current_state)) -> Dict:
    return asdict(state.dashboard(today=today))
