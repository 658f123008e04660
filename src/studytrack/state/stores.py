from dataclasses import replace
import logging
import threading
from typing import Any, Dict, Generic, List, Optional, Sequence, Set, Tuple, Type, TypeVar

from studytrack.core.dashboard import sort_slots
from studytrack.core.entities import CalendarEvent, Entity, Grade, Homework, TimetableSlot
from studytrack.core.grades import grade_for_marks
from studytrack.services.appwrite_service import AppwriteService, AppwriteServiceError
from studytrack.state.session_state import SessionState


logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class _Store:
    """
    In-memory mirror of one remote per-user table.

    The collection only changes after the remote confirms, and a result is dropped
    if the identity that issued the call is no longer the active one.
    """

    def __init__(self, session: SessionState, rows: AppwriteService, collection_id: str) -> None:
        self.session = session
        self.rows = rows
        self.collection_id = collection_id
        self.last_error: Optional[str] = None
        self._lock = threading.RLock()
        session.subscribe(self.on_identity_change)

    def on_identity_change(self, uid: Optional[str]) -> None:
        if uid is None:
            self.clear()
            return
        self.load()

    def clear(self) -> None:
        with self._lock:
            self._reset()
            self.last_error = None

    def load(self) -> bool:
        raise NotImplementedError

    def _reset(self) -> None:
        raise NotImplementedError

    def _current_uid(self, action: str) -> Optional[str]:
        uid = self.session.uid
        if not uid:
            logger.debug("Skipping %s on %s: no signed-in user", action, self.collection_id)
        return uid

    def _is_stale(self, uid: str, action: str) -> bool:
        if self.session.uid != uid:
            logger.warning("Discarding %s result on %s: identity changed mid-flight", action, self.collection_id)
            return True
        return False

    def _failed(self, action: str, exc: Exception) -> None:
        logger.error("Could not %s %s: %s", action, self.collection_id, exc)
        self.last_error = str(exc) or type(exc).__name__


class EntityStore(_Store, Generic[E]):
    entity_cls: Type[E]
    order_by: str
    descending: bool = False

    def __init__(self, session: SessionState, rows: AppwriteService, collection_id: str) -> None:
        self._items: List[E] = []
        super().__init__(session, rows, collection_id)

    @property
    def items(self) -> List[E]:
        with self._lock:
            return list(self._items)

    def get(self, item_id: str) -> Optional[E]:
        with self._lock:
            return next((item for item in self._items if item.id == item_id), None)

    def _reset(self) -> None:
        self._items = []

    def _prepare_new(self, item: E) -> E:
        return item

    def _prepare_changes(self, item_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return changes

    def load(self) -> bool:
        uid = self._current_uid("load")
        if not uid:
            return False
        try:
            docs = self.rows.list_rows(self.collection_id, uid, order_by=self.order_by, descending=self.descending)
            loaded = [self.entity_cls.from_row(doc) for doc in docs]
        except (AppwriteServiceError, TypeError, ValueError) as exc:
            self._failed("load", exc)
            return False

        with self._lock:
            if self._is_stale(uid, "load"):
                return False
            self._items = loaded
            self.last_error = None
        logger.debug("Loaded %d rows from %s", len(loaded), self.collection_id)
        return True

    def add(self, item: E) -> Optional[E]:
        uid = self._current_uid("add")
        if not uid:
            return None
        prepared = self._prepare_new(item)
        try:
            doc = self.rows.create_row(self.collection_id, uid, prepared.to_row())
            created = self.entity_cls.from_row(doc)
        except (AppwriteServiceError, TypeError, ValueError) as exc:
            self._failed("add to", exc)
            return None

        with self._lock:
            if self._is_stale(uid, "add"):
                return None
            self._items.append(created)
            self.last_error = None
        return created

    def update(self, item_id: str, **changes: Any) -> bool:
        uid = self._current_uid("update")
        if not uid:
            return False
        coerced = self._prepare_changes(item_id, self.entity_cls.coerce(changes))
        if not coerced:
            return True
        try:
            self.rows.update_row(self.collection_id, uid, item_id, self.entity_cls.to_columns(coerced))
        except AppwriteServiceError as exc:
            self._failed("update", exc)
            return False

        with self._lock:
            if self._is_stale(uid, "update"):
                return False
            self._items = [replace(item, **coerced) if item.id == item_id else item for item in self._items]
            self.last_error = None
        return True

    def delete(self, item_id: str) -> bool:
        uid = self._current_uid("delete")
        if not uid:
            return False
        try:
            self.rows.delete_row(self.collection_id, uid, item_id)
        except AppwriteServiceError as exc:
            self._failed("delete from", exc)
            return False

        with self._lock:
            if self._is_stale(uid, "delete"):
                return False
            self._items = [item for item in self._items if item.id != item_id]
            self.last_error = None
        return True


class HomeworkStore(EntityStore[Homework]):
    entity_cls = Homework
    order_by = "due_date"


class CalendarEventStore(EntityStore[CalendarEvent]):
    entity_cls = CalendarEvent
    order_by = "date"

    @staticmethod
    def _clean_checklist(items: Optional[Sequence[str]]) -> List[str]:
        return [entry for entry in (items or []) if entry.strip()]

    def _prepare_new(self, item: CalendarEvent) -> CalendarEvent:
        return replace(item, preparation_checklist=self._clean_checklist(item.preparation_checklist))

    def _prepare_changes(self, item_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        if "preparation_checklist" in changes:
            changes["preparation_checklist"] = self._clean_checklist(changes["preparation_checklist"])
        return changes


class GradeStore(EntityStore[Grade]):
    entity_cls = Grade
    order_by = "date_graded"
    descending = True

    def _prepare_new(self, item: Grade) -> Grade:
        return replace(item, grade=grade_for_marks(item.marks_obtained, item.max_marks))

    def _prepare_changes(self, item_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        if "marks_obtained" not in changes and "max_marks" not in changes:
            return changes
        current = self.get(item_id)
        if current is None and not ("marks_obtained" in changes and "max_marks" in changes):
            raise ValueError(f"Grade {item_id} is not loaded; send both marks_obtained and max_marks")
        marks = changes.get("marks_obtained", current.marks_obtained if current else None)
        max_marks = changes.get("max_marks", current.max_marks if current else None)
        changes["grade"] = grade_for_marks(marks, max_marks)
        return changes


class TimetableStore(_Store):
    """Weekly timetable, written as a whole: delete every slot, then insert the new set."""

    def __init__(self, session: SessionState, rows: AppwriteService, collection_id: str) -> None:
        self._slots: List[TimetableSlot] = []
        super().__init__(session, rows, collection_id)

    @property
    def items(self) -> List[TimetableSlot]:
        with self._lock:
            return list(self._slots)

    def _reset(self) -> None:
        self._slots = []

    def grid(self) -> Dict[Tuple[str, str], TimetableSlot]:
        return {slot.key: slot for slot in self.items}

    def slots_for_day(self, day: str) -> List[TimetableSlot]:
        return [slot for slot in self.items if slot.day == day]

    def load(self) -> bool:
        uid = self._current_uid("load")
        if not uid:
            return False
        try:
            docs = self.rows.list_rows(self.collection_id, uid)
            loaded = sort_slots([TimetableSlot.from_row(doc) for doc in docs])
        except AppwriteServiceError as exc:
            self._failed("load", exc)
            return False

        with self._lock:
            if self._is_stale(uid, "load"):
                return False
            self._slots = loaded
            self.last_error = None
        return True

    def replace(self, slots: Sequence[TimetableSlot]) -> bool:
        new_slots = list(slots)
        seen: Set[Tuple[str, str]] = set()
        for slot in new_slots:
            if slot.key in seen:
                raise ValueError(f"Duplicate timetable slot for {slot.day} {slot.time}")
            seen.add(slot.key)

        uid = self._current_uid("replace")
        if not uid:
            return False
        previous = self.items

        try:
            self.rows.delete_all_rows(self.collection_id, uid)
        except AppwriteServiceError as exc:
            self._failed("clear", exc)
            self._restore(uid, previous)
            return False

        try:
            if new_slots:
                self.rows.create_rows(self.collection_id, uid, [slot.to_row() for slot in new_slots])
        except AppwriteServiceError as exc:
            self._failed("replace", exc)
            self._restore(uid, previous)
            return False

        with self._lock:
            if self._is_stale(uid, "replace"):
                return False
            self._slots = sort_slots(new_slots)
            self.last_error = None
        return True

    def _restore(self, uid: str, previous: List[TimetableSlot]) -> None:
        """Put back the previous slots that are no longer on the remote, then re-sync."""
        try:
            remaining = {TimetableSlot.from_row(doc).key for doc in self.rows.list_rows(self.collection_id, uid)}
            missing = [slot for slot in previous if slot.key not in remaining]
            if missing:
                self.rows.create_rows(self.collection_id, uid, [slot.to_row() for slot in missing])
            logger.info("Restored %d timetable slots after a failed replace", len(missing))
        except AppwriteServiceError:
            logger.exception("Could not restore the previous timetable, re-syncing from remote")
        self._resync()

    def _resync(self) -> None:
        error = self.last_error
        self.load()
        self.last_error = error
