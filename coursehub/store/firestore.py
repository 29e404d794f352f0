"""
Firestore backend (firebase_admin + google-cloud-firestore AsyncClient)

Collection paths are native Firestore paths, so existing ``courses/{id}/module``
and ``courses/{id}/modules`` data is read without any translation.
"""

import functools
from typing import Any, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from coursehub.core.config import Settings
from coursehub.core.errors import NotFoundError, StoreUnavailableError, ValidationError
from coursehub.store.base import Document, DocumentStore, StoreTransaction

# Firestore rejects write batches above this size
MAX_BATCH_WRITES = 500


def check_batch_size(refs) -> None:
    """Reject deletes larger than one atomic batch"""
    if len(refs) > MAX_BATCH_WRITES:
        raise ValidationError(
            f"Cannot delete {len(refs)} documents atomically; the limit is {MAX_BATCH_WRITES}",
            {"documents": len(refs), "limit": MAX_BATCH_WRITES},
        )


def init_firebase_app(settings: Settings) -> firebase_admin.App:
    """Initialize the Firebase Admin SDK once per process"""
    if not firebase_admin._apps:
        if settings.has_service_account:
            cred = credentials.Certificate({
                "type": "service_account",
                "project_id": settings.FIREBASE_PROJECT_ID,
                "private_key": settings.FIREBASE_PRIVATE_KEY,
                "client_email": settings.FIREBASE_CLIENT_EMAIL,
                "token_uri": "https://oauth2.googleapis.com/token",
            })
        else:
            cred = credentials.ApplicationDefault()

        options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
        firebase_admin.initialize_app(cred, options)
    return firebase_admin.get_app()


def to_document(path: str, snapshot) -> Optional[Document]:
    if not snapshot.exists:
        return None
    return Document(id=snapshot.id, path=path, data=snapshot.to_dict() or {})


def wrap_errors(operation: str):
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except google_exceptions.NotFound as e:
                raise NotFoundError(str(e)) from e
            except google_exceptions.GoogleAPIError as e:
                raise StoreUnavailableError(f"Firestore {operation} failed: {e}") from e
        return wrapper

    return decorator


# ==================== TRANSACTION ====================

class FirestoreTransaction(StoreTransaction):
    def __init__(self, client: firestore.AsyncClient, transaction):
        self.client = client
        self.transaction = transaction

    async def get_document(self, path: str, doc_id: str) -> Optional[Document]:
        snapshot = await self.client.collection(path).document(doc_id).get(transaction=self.transaction)
        return to_document(path, snapshot)

    async def query_equals(self, path: str, field_name: str, value: Any, limit: Optional[int] = None) -> List[Document]:
        query = self.client.collection(path).where(filter=FieldFilter(field_name, "==", value))
        if limit:
            query = query.limit(limit)
        return [to_document(path, snap) async for snap in query.stream(transaction=self.transaction)]

    def set_document(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.transaction.set(self.client.collection(path).document(doc_id), data)

    def update_document(self, path: str, doc_id: str, patch: Dict[str, Any]) -> None:
        self.transaction.update(self.client.collection(path).document(doc_id), patch)


# ==================== STORE ====================

class FirestoreDocumentStore(DocumentStore):
    name = "firestore"

    def __init__(self, client: firestore.AsyncClient):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirestoreDocumentStore":
        app = init_firebase_app(settings)
        return cls(firestore_async.client(app))

    @wrap_errors("get")
    async def get_document(self, path: str, doc_id: str) -> Optional[Document]:
        snapshot = await self.client.collection(path).document(doc_id).get()
        return to_document(path, snapshot)

    @wrap_errors("query")
    async def query_equals(self, path: str, field_name: str, value: Any, limit: Optional[int] = None) -> List[Document]:
        query = self.client.collection(path).where(filter=FieldFilter(field_name, "==", value))
        if limit:
            query = query.limit(limit)
        return [to_document(path, snap) async for snap in query.stream()]

    @wrap_errors("list")
    async def list_documents(self, path: str, limit: Optional[int] = None) -> List[Document]:
        query = self.client.collection(path)
        if limit:
            query = query.limit(limit)
        return [to_document(path, snap) async for snap in query.stream()]

    @wrap_errors("add")
    async def add_document(self, path: str, data: Dict[str, Any]) -> str:
        _, ref = await self.client.collection(path).add(data)
        return ref.id

    @wrap_errors("set")
    async def set_document(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        await self.client.collection(path).document(doc_id).set(data)

    @wrap_errors("update")
    async def update_document(self, path: str, doc_id: str, patch: Dict[str, Any]) -> None:
        await self.client.collection(path).document(doc_id).update(patch)

    @wrap_errors("delete")
    async def delete_document(self, path: str, doc_id: str) -> None:
        await self.client.collection(path).document(doc_id).delete()

    @wrap_errors("transaction")
    async def run_transaction(self, fn):
        @firestore.async_transactional
        async def _run(transaction):
            return await fn(FirestoreTransaction(self.client, transaction))

        return await _run(self.client.transaction())

    @wrap_errors("batch delete")
    async def batch_delete(self, refs) -> int:
        refs = list(refs)
        if not refs:
            return 0
        check_batch_size(refs)

        batch = self.client.batch()
        for ref in refs:
            batch.delete(self.client.collection(ref.path).document(ref.id))
        await batch.commit()
        return len(refs)

    async def ping(self) -> bool:
        try:
            async for _ in self.client.collections():
                break
            return True
        except google_exceptions.GoogleAPIError:
            return False
