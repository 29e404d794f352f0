"""
Document Store Interface
Async, collection-path addressed access to a schemaless document database.

Collection paths are slash separated, e.g. ``courses/C1/modules`` or
``courses/C1/module/M1/lessons``. Each backend maps them onto its own
storage; callers only ever see paths and document ids.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, NamedTuple, Optional, TypeVar

T = TypeVar("T")


class DocumentRef(NamedTuple):
    path: str
    id: str


@dataclass
class Document:
    """A document read from the store"""

    id: str
    path: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def ref(self) -> DocumentRef:
        return DocumentRef(self.path, self.id)


def join_path(*parts: str) -> str:
    """Join path segments, rejecting empty ones"""
    cleaned = []
    for part in parts:
        part = str(part).strip("/")
        if not part:
            raise ValueError(f"Empty path segment in {parts!r}")
        cleaned.append(part)
    return "/".join(cleaned)


# ==================== TRANSACTION ====================

class StoreTransaction(ABC):
    """Reads and buffered writes that commit together"""

    @abstractmethod
    async def get_document(self, path: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def query_equals(self, path: str, field_name: str, value: Any, limit: Optional[int] = None) -> List[Document]:
        ...

    @abstractmethod
    def set_document(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def update_document(self, path: str, doc_id: str, patch: Dict[str, Any]) -> None:
        ...


# ==================== STORE ====================

class DocumentStore(ABC):
    """
    Backend-neutral document store.

    Every method raises StoreUnavailableError when the backend fails for any
    reason other than "document missing". ``run_transaction`` lets errors
    raised by the callback propagate unchanged after aborting.
    """

    name = "abstract"

    @abstractmethod
    async def get_document(self, path: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def query_equals(self, path: str, field_name: str, value: Any, limit: Optional[int] = None) -> List[Document]:
        ...

    @abstractmethod
    async def list_documents(self, path: str, limit: Optional[int] = None) -> List[Document]:
        ...

    @abstractmethod
    async def add_document(self, path: str, data: Dict[str, Any]) -> str:
        ...

    @abstractmethod
    async def set_document(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def update_document(self, path: str, doc_id: str, patch: Dict[str, Any]) -> None:
        """Merge ``patch`` into an existing document; NotFoundError if it is missing"""

    @abstractmethod
    async def delete_document(self, path: str, doc_id: str) -> None:
        ...

    @abstractmethod
    async def run_transaction(self, fn: Callable[[StoreTransaction], Awaitable[T]]) -> T:
        """Run ``fn`` atomically. ``fn`` may be re-run on contention."""

    @abstractmethod
    async def batch_delete(self, refs: Iterable[DocumentRef]) -> int:
        """Delete every ref or none of them; returns the number deleted"""

    @abstractmethod
    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        return None
