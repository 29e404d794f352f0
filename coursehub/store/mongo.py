"""
MongoDB backend (motor)

A slash-separated collection path maps to a dot-separated Mongo collection
name: ``courses/C1/modules`` -> ``courses.C1.modules``. The document id is
stored as ``_id``.
"""

import functools
import uuid
from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from coursehub.core.errors import NotFoundError, StoreUnavailableError
from coursehub.store.base import Document, DocumentStore, StoreTransaction


def collection_name(path: str) -> str:
    """Mongo collection name for a collection path"""
    segments = [segment for segment in path.strip("/").split("/") if segment]
    if not segments:
        raise ValueError("Collection path cannot be empty")
    for segment in segments:
        if "$" in segment or "\x00" in segment:
            raise ValueError(f"Illegal character in collection path segment: {segment!r}")
    return ".".join(segments)


def to_document(path: str, raw: Optional[dict]) -> Optional[Document]:
    if raw is None:
        return None
    data = dict(raw)
    doc_id = str(data.pop("_id"))
    return Document(id=doc_id, path=path, data=data)


def _strip_id(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k != "_id"}


def wrap_errors(operation: str):
    """Translate driver failures into StoreUnavailableError"""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except PyMongoError as e:
                raise StoreUnavailableError(f"MongoDB {operation} failed: {e}") from e
        return wrapper

    return decorator


# ==================== TRANSACTION ====================

class MongoTransaction(StoreTransaction):
    """Reads go through the session immediately; writes are buffered and
    applied inside the same session right before commit."""

    def __init__(self, db: AsyncIOMotorDatabase, session):
        self.db = db
        self.session = session
        self._writes: List[Tuple[str, str, str, Dict[str, Any]]] = []

    async def get_document(self, path: str, doc_id: str) -> Optional[Document]:
        raw = await self.db[collection_name(path)].find_one({"_id": doc_id}, session=self.session)
        return to_document(path, raw)

    async def query_equals(self, path: str, field_name: str, value: Any, limit: Optional[int] = None) -> List[Document]:
        cursor = self.db[collection_name(path)].find({field_name: value}, session=self.session)
        if limit:
            cursor = cursor.limit(limit)
        return [to_document(path, raw) for raw in await cursor.to_list(length=limit)]

    def set_document(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._writes.append(("set", path, doc_id, _strip_id(data)))

    def update_document(self, path: str, doc_id: str, patch: Dict[str, Any]) -> None:
        self._writes.append(("update", path, doc_id, _strip_id(patch)))

    async def apply_writes(self) -> None:
        for kind, path, doc_id, data in self._writes:
            collection = self.db[collection_name(path)]
            if kind == "set":
                await collection.replace_one({"_id": doc_id}, data, upsert=True, session=self.session)
            else:
                result = await collection.update_one({"_id": doc_id}, {"$set": data}, session=self.session)
                if result.matched_count == 0:
                    raise NotFoundError(f"Document {path}/{doc_id} not found")
        self._writes.clear()


# ==================== STORE ====================

class MongoDocumentStore(DocumentStore):
    """DocumentStore on top of motor. Transactions need a replica set."""

    name = "mongo"

    def __init__(self, client: AsyncIOMotorClient, db_name: str):
        self.client = client
        self.db: AsyncIOMotorDatabase = client[db_name]

    @classmethod
    def from_url(cls, mongo_url: str, db_name: str) -> "MongoDocumentStore":
        return cls(AsyncIOMotorClient(mongo_url), db_name)

    @wrap_errors("get")
    async def get_document(self, path: str, doc_id: str) -> Optional[Document]:
        raw = await self.db[collection_name(path)].find_one({"_id": doc_id})
        return to_document(path, raw)

    @wrap_errors("query")
    async def query_equals(self, path: str, field_name: str, value: Any, limit: Optional[int] = None) -> List[Document]:
        cursor = self.db[collection_name(path)].find({field_name: value})
        if limit:
            cursor = cursor.limit(limit)
        return [to_document(path, raw) for raw in await cursor.to_list(length=limit)]

    @wrap_errors("list")
    async def list_documents(self, path: str, limit: Optional[int] = None) -> List[Document]:
        cursor = self.db[collection_name(path)].find({})
        if limit:
            cursor = cursor.limit(limit)
        return [to_document(path, raw) for raw in await cursor.to_list(length=limit)]

    @wrap_errors("insert")
    async def add_document(self, path: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        await self.db[collection_name(path)].insert_one({"_id": doc_id, **_strip_id(data)})
        return doc_id

    @wrap_errors("set")
    async def set_document(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        await self.db[collection_name(path)].replace_one({"_id": doc_id}, _strip_id(data), upsert=True)

    @wrap_errors("update")
    async def update_document(self, path: str, doc_id: str, patch: Dict[str, Any]) -> None:
        result = await self.db[collection_name(path)].update_one({"_id": doc_id}, {"$set": _strip_id(patch)})
        if result.matched_count == 0:
            raise NotFoundError(f"Document {path}/{doc_id} not found")

    @wrap_errors("delete")
    async def delete_document(self, path: str, doc_id: str) -> None:
        await self.db[collection_name(path)].delete_one({"_id": doc_id})

    @wrap_errors("transaction")
    async def run_transaction(self, fn):
        async with await self.client.start_session() as session:
            async def callback(s):
                txn = MongoTransaction(self.db, s)
                result = await fn(txn)
                await txn.apply_writes()
                return result

            return await session.with_transaction(callback)

    @wrap_errors("batch delete")
    async def batch_delete(self, refs) -> int:
        refs = list(refs)
        if not refs:
            return 0

        async with await self.client.start_session() as session:
            async def callback(s):
                for ref in refs:
                    await self.db[collection_name(ref.path)].delete_one({"_id": ref.id}, session=s)
                return len(refs)

            return await session.with_transaction(callback)

    async def ping(self) -> bool:
        try:
            await self.client.admin.command("ping")
            return True
        except PyMongoError:
            return False

    async def close(self) -> None:
        self.client.close()
