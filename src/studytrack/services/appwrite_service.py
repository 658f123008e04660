from datetime import datetime, timezone
import logging
from typing import Dict, Iterable, List, Optional

from appwrite.client import Client
from appwrite.exception import AppwriteException
from appwrite.id import ID
from appwrite.query import Query
from appwrite.services.databases import Databases

from studytrack.config.settings import settings


logger = logging.getLogger(__name__)

PAGE_SIZE = 100


class AppwriteServiceError(Exception):
    pass


class AppwriteService:
    """Per-user row storage. Every document carries a user_id and every query is filtered by it."""

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        api_key: str,
        database_id: str,
    ) -> None:
        if not endpoint:
            raise AppwriteServiceError("Missing APPWRITE_ENDPOINT in environment")
        if not project_id:
            raise AppwriteServiceError("Missing APPWRITE_PROJECT_ID in environment")
        if not api_key:
            raise AppwriteServiceError("Missing APPWRITE_API_KEY in environment")
        if not database_id:
            raise AppwriteServiceError("Missing APPWRITE_DATABASE_ID in environment")

        self.database_id = database_id

        client = Client()
        client.set_endpoint(endpoint.rstrip("/"))
        client.set_project(project_id)
        client.set_key(api_key)

        self.db = Databases(client)

    @classmethod
    def from_settings(cls) -> "AppwriteService":
        return cls(
            endpoint=settings.appwrite_endpoint,
            project_id=settings.appwrite_project_id,
            api_key=settings.appwrite_api_key,
            database_id=settings.appwrite_database_id,
        )

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    def _list_documents(self, collection_id: str, queries: List[str]) -> List[Dict]:
        try:
            result = self.db.list_documents(self.database_id, collection_id, queries=queries)
            return list(result.get("documents", []))
        except AppwriteException as exc:
            raise AppwriteServiceError(str(exc)) from exc

    def _create_document(self, collection_id: str, data: Dict) -> Dict:
        try:
            return self.db.create_document(self.database_id, collection_id, ID.unique(), data)
        except AppwriteException as exc:
            raise AppwriteServiceError(str(exc)) from exc

    def _update_document(self, collection_id: str, document_id: str, data: Dict) -> Dict:
        try:
            return self.db.update_document(self.database_id, collection_id, document_id, data)
        except AppwriteException as exc:
            raise AppwriteServiceError(str(exc)) from exc

    def _delete_document(self, collection_id: str, document_id: str) -> None:
        try:
            self.db.delete_document(self.database_id, collection_id, document_id)
        except AppwriteException as exc:
            raise AppwriteServiceError(str(exc)) from exc

    def _find_owned(self, collection_id: str, uid: str, row_id: str) -> Optional[Dict]:
        docs = self._list_documents(
            collection_id,
            [
                Query.equal("$id", [row_id]),
                Query.equal("user_id", [uid]),
                Query.limit(1),
            ],
        )
        if not docs:
            return None
        return docs[0]

    def list_rows(
        self,
        collection_id: str,
        uid: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict]:
        base: List[str] = [Query.equal("user_id", [uid])]
        if order_by:
            base.append(Query.order_desc(order_by) if descending else Query.order_asc(order_by))

        results: List[Dict] = []
        cursor: Optional[str] = None
        while True:
            queries = [*base, Query.limit(PAGE_SIZE)]
            if cursor:
                queries.append(Query.cursor_after(cursor))
            page = self._list_documents(collection_id, queries)
            results.extend(page)
            if len(page) < PAGE_SIZE:
                break
            cursor = page[-1]["$id"]
        return results

    def create_row(self, collection_id: str, uid: str, data: Dict) -> Dict:
        return self._create_document(
            collection_id,
            {**data, "user_id": uid, "created_at": self._now_iso(), "updated_at": self._now_iso()},
        )

    def create_rows(self, collection_id: str, uid: str, rows: Iterable[Dict]) -> List[Dict]:
        """Insert several rows; if one fails, the ones already created are removed before raising."""
        created: List[Dict] = []
        try:
            for data in rows:
                created.append(self.create_row(collection_id, uid, data))
        except AppwriteServiceError:
            for doc in created:
                try:
                    self._delete_document(collection_id, doc["$id"])
                except AppwriteServiceError:
                    logger.exception("Could not remove partially inserted row %s from %s", doc["$id"], collection_id)
            raise
        return created

    def update_row(self, collection_id: str, uid: str, row_id: str, data: Dict) -> Dict:
        row = self._find_owned(collection_id, uid, row_id)
        if not row:
            raise AppwriteServiceError(f"Row {row_id} not found in {collection_id}.")
        return self._update_document(collection_id, row_id, {**data, "updated_at": self._now_iso()})

    def delete_row(self, collection_id: str, uid: str, row_id: str) -> None:
        row = self._find_owned(collection_id, uid, row_id)
        if not row:
            return
        self._delete_document(collection_id, row_id)

    def delete_all_rows(self, collection_id: str, uid: str) -> int:
        rows = self.list_rows(collection_id, uid)
        for row in rows:
            self._delete_document(collection_id, row["$id"])
        return len(rows)
