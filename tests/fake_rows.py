from collections import defaultdict
import itertools
from typing import Callable, Dict, List, Optional

from studytrack.services.appwrite_service import AppwriteServiceError


class InMemoryRows:
    """Row store double with the same per-user scoping as AppwriteService."""

    def __init__(self) -> None:
        self.docs: Dict[str, List[Dict]] = defaultdict(list)
        self.calls: List[str] = []
        self.failures: Dict[str, int] = {}
        self.before_call: Optional[Callable[[str], None]] = None
        self._ids = itertools.count(1)

    def fail(self, operation: str, times: int = 1) -> None:
        self.failures[operation] = times

    def seed(self, collection_id: str, uid: str, **data) -> Dict:
        row_id = data.pop("id", None) or f"doc{next(self._ids)}"
        doc = {**data, "user_id": uid, "$id": row_id}
        self.docs[collection_id].append(doc)
        return doc

    def rows_for(self, collection_id: str, uid: str) -> List[Dict]:
        return [doc for doc in self.docs[collection_id] if doc["user_id"] == uid]

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.before_call:
            self.before_call(operation)
        if self.failures.get(operation, 0) > 0:
            self.failures[operation] -= 1
            raise AppwriteServiceError(f"{operation} failed")

    def list_rows(self, collection_id, uid, *, order_by=None, descending=False):
        self._check("list_rows")
        rows = [dict(doc) for doc in self.rows_for(collection_id, uid)]
        if order_by:
            rows.sort(key=lambda doc: doc[order_by], reverse=descending)
        return rows

    def create_row(self, collection_id, uid, data):
        self._check("create_row")
        doc = {**data, "user_id": uid, "$id": f"doc{next(self._ids)}"}
        self.docs[collection_id].append(doc)
        return dict(doc)

    def create_rows(self, collection_id, uid, rows):
        self._check("create_rows")
        return [self.create_row(collection_id, uid, data) for data in rows]

    def update_row(self, collection_id, uid, row_id, data):
        self._check("update_row")
        for doc in self.rows_for(collection_id, uid):
            if doc["$id"] == row_id:
                doc.update(data)
                return dict(doc)
        raise AppwriteServiceError(f"Row {row_id} not found in {collection_id}.")

    def delete_row(self, collection_id, uid, row_id):
        self._check("delete_row")
        self.docs[collection_id] = [
            doc for doc in self.docs[collection_id] if not (doc["$id"] == row_id and doc["user_id"] == uid)
        ]

    def delete_all_rows(self, collection_id, uid):
        self._check("delete_all_rows")
        owned = self.rows_for(collection_id, uid)
        self.docs[collection_id] = [doc for doc in self.docs[collection_id] if doc["user_id"] != uid]
        return len(owned)
