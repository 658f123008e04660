import unittest

from fake_rows import InMemoryRows

from studytrack.core.entities import TimetableSlot
from studytrack.services.auth_service import AuthResult
from studytrack.state.session_state import SessionState
from studytrack.state.stores import TimetableStore


USER_A = AuthResult("user-a", "a@example.com", "secret-a", "sess-a")


def _remote_slots(rows):
    return sorted((doc["day"], doc["time"], doc["subject"]) for doc in rows.rows_for("timetable", "user-a"))


class TimetableStoreTests(unittest.TestCase):
    def setUp(self):
        self.rows = InMemoryRows()
        self.session = SessionState()
        self.store = TimetableStore(self.session, self.rows, "timetable")

    def test_load_orders_by_weekday_and_slot(self):
        self.rows.seed("timetable", "user-a", day="Wednesday", time="8:00-9:00", subject="Art", notes=None)
        self.rows.seed("timetable", "user-a", day="Monday", time="12:00-1:00", subject="PE", notes=None)
        self.rows.seed("timetable", "user-a", day="Monday", time="9:00-10:00", subject="Math", notes="Room 4")
        self.session.sign_in(USER_A)

        self.assertEqual(
            [(slot.day, slot.time) for slot in self.store.items],
            [("Monday", "9:00-10:00"), ("Monday", "12:00-1:00"), ("Wednesday", "8:00-9:00")],
        )
        self.assertEqual(self.store.slots_for_day("Monday")[0].notes, "Room 4")
        self.assertIn(("Wednesday", "8:00-9:00"), self.store.grid())

    def test_replace_leaves_exactly_the_new_slots(self):
        self.rows.seed("timetable", "user-a", day="Monday", time="8:00-9:00", subject="Math", notes=None)
        self.session.sign_in(USER_A)

        new_slots = [TimetableSlot("Tuesday", "9:00-10:00", "English")]
        self.assertTrue(self.store.replace(new_slots))

        self.assertEqual(self.store.items, new_slots)
        self.assertEqual(_remote_slots(self.rows), [("Tuesday", "9:00-10:00", "English")])

    def test_replace_with_nothing_clears(self):
        self.rows.seed("timetable", "user-a", day="Monday", time="8:00-9:00", subject="Math", notes=None)
        self.session.sign_in(USER_A)

        self.assertTrue(self.store.replace([]))
        self.assertEqual(self.store.items, [])
        self.assertEqual(_remote_slots(self.rows), [])
        self.assertNotIn("create_rows", self.rows.calls)

    def test_duplicate_slots_are_rejected(self):
        self.session.sign_in(USER_A)
        calls = list(self.rows.calls)
        with self.assertRaises(ValueError):
            self.store.replace(
                [TimetableSlot("Friday", "1:00-2:00", "Art"), TimetableSlot("Friday", "1:00-2:00", "PE")]
            )
        self.assertEqual(self.rows.calls, calls)

    def test_failed_insert_restores_previous_slots(self):
        self.rows.seed("timetable", "user-a", day="Monday", time="8:00-9:00", subject="Math", notes=None)
        self.session.sign_in(USER_A)
        previous = self.store.items
        self.rows.fail("create_rows")

        self.assertFalse(self.store.replace([TimetableSlot("Tuesday", "9:00-10:00", "English")]))

        self.assertEqual(self.store.items, previous)
        self.assertEqual(_remote_slots(self.rows), [("Monday", "8:00-9:00", "Math")])
        self.assertEqual(self.store.last_error, "create_rows failed")

    def test_failed_restore_resyncs_from_remote(self):
        self.rows.seed("timetable", "user-a", day="Monday", time="8:00-9:00", subject="Math", notes=None)
        self.session.sign_in(USER_A)
        self.rows.fail("create_rows", times=2)

        self.assertFalse(self.store.replace([TimetableSlot("Tuesday", "9:00-10:00", "English")]))

        self.assertEqual(self.store.items, [])
        self.assertEqual(self.store.last_error, "create_rows failed")

    def test_failed_delete_keeps_slots(self):
        self.rows.seed("timetable", "user-a", day="Monday", time="8:00-9:00", subject="Math", notes=None)
        self.session.sign_in(USER_A)
        self.rows.fail("delete_all_rows")

        self.assertFalse(self.store.replace([TimetableSlot("Tuesday", "9:00-10:00", "English")]))
        self.assertEqual([slot.subject for slot in self.store.items], ["Math"])
        self.assertEqual(self.store.last_error, "delete_all_rows failed")

    def test_partial_clear_puts_deleted_slots_back(self):
        self.rows.seed("timetable", "user-a", day="Monday", time="8:00-9:00", subject="Math", notes=None)
        self.rows.seed("timetable", "user-a", day="Tuesday", time="9:00-10:00", subject="Art", notes=None)
        self.session.sign_in(USER_A)

        def drop_first_slot(operation):
            if operation == "delete_all_rows":
                self.rows.docs["timetable"].pop(0)

        self.rows.before_call = drop_first_slot
        self.rows.fail("delete_all_rows")

        self.assertFalse(self.store.replace([TimetableSlot("Wednesday", "1:00-2:00", "PE")]))

        self.assertEqual(
            _remote_slots(self.rows),
            [("Monday", "8:00-9:00", "Math"), ("Tuesday", "9:00-10:00", "Art")],
        )
        self.assertEqual([slot.subject for slot in self.store.items], ["Math", "Art"])
        self.assertEqual(self.store.last_error, "delete_all_rows failed")


if __name__ == "__main__":
    unittest.main()
