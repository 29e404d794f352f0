"""Tests for backend-independent pieces of the store layer."""

import pytest

from coursehub.store.base import Document, DocumentRef, join_path
from coursehub.store.mongo import collection_name, to_document


class TestPaths:
    def test_join_path(self):
        assert join_path("courses", "c1", "modules") == "courses/c1/modules"
        assert join_path("/courses/", "c1") == "courses/c1"

    def test_join_path_rejects_empty_segment(self):
        with pytest.raises(ValueError):
            join_path("courses", "", "modules")

    def test_document_ref(self):
        doc = Document("m1", "courses/c1/modules", {"title": "Basics"})
        assert doc.ref == DocumentRef("courses/c1/modules", "m1")


class TestMongoMapping:
    def test_collection_name(self):
        assert collection_name("courses/c1/module/m1/lessons") == "courses.c1.module.m1.lessons"
        assert collection_name("lessons") == "lessons"

    def test_collection_name_rejects_operators(self):
        with pytest.raises(ValueError):
            collection_name("courses/$where")
        with pytest.raises(ValueError):
            collection_name("/")

    def test_to_document_moves_id(self):
        doc = to_document("users", {"_id": "u1", "email": "ada@example.com"})

        assert doc.id == "u1"
        assert doc.data == {"email": "ada@example.com"}
        assert to_document("users", None) is None


class TestFirestoreBatchLimit:
    def test_oversized_batch_is_a_client_error(self):
        from coursehub.core.errors import ValidationError
        from coursehub.store.firestore import MAX_BATCH_WRITES, check_batch_size

        refs = [DocumentRef("lessons", str(i)) for i in range(MAX_BATCH_WRITES + 1)]

        with pytest.raises(ValidationError) as exc_info:
            check_batch_size(refs)
        assert exc_info.value.status_code == 400
        assert exc_info.value.details["documents"] == MAX_BATCH_WRITES + 1

    def test_full_batch_allowed(self):
        from coursehub.store.firestore import MAX_BATCH_WRITES, check_batch_size

        check_batch_size([DocumentRef("lessons", str(i)) for i in range(MAX_BATCH_WRITES)])
