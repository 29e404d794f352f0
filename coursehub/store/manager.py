"""
Document store lifecycle
Builds the configured backend on first use and hands it to FastAPI dependencies
"""

import logging
from typing import Optional

from coursehub.core.config import Settings, settings as default_settings
from coursehub.store.base import DocumentStore

logger = logging.getLogger(__name__)


class StoreManager:
    """Owns the process-wide DocumentStore"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.store: Optional[DocumentStore] = None

    def connect(self) -> DocumentStore:
        """Create the backend selected by DOCUMENT_STORE"""
        if self.store is not None:
            return self.store

        backend = self.settings.DOCUMENT_STORE
        if backend == "mongo":
            from coursehub.store.mongo import MongoDocumentStore

            mongo_url = self.settings.require("MONGO_URL", self.settings.MONGO_URL)
            self.store = MongoDocumentStore.from_url(mongo_url, self.settings.MONGO_DB_NAME)
        else:
            from coursehub.store.firestore import FirestoreDocumentStore

            self.store = FirestoreDocumentStore.from_settings(self.settings)

        logger.info("Document store connected: %s", backend)
        return self.store

    async def disconnect(self) -> None:
        if self.store is not None:
            await self.store.close()
            logger.info("Document store disconnected: %s", self.store.name)
            self.store = None

    def get_store(self) -> DocumentStore:
        return self.store or self.connect()


store_manager = StoreManager(default_settings)


def get_store() -> DocumentStore:
    """FastAPI dependency for store access"""
    return store_manager.get_store()


def get_store_or_none() -> Optional[DocumentStore]:
    """Like get_store, but None when the backend cannot be built"""
    try:
        return store_manager.get_store()
    except Exception as e:
        logger.error("Document store unavailable: %s", e)
        return None
