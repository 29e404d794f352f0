"""Shared fixtures: an in-memory store, a recording sink and an API client bound to both."""

import os

import pytest

# Keep the app on the default backend; nothing connects during tests
os.environ.setdefault("DOCUMENT_STORE", "firestore")
os.environ.setdefault("ENVIRONMENT", "test")

from fake_store import FakeDocumentStore, RecordingSink  # noqa: E402


@pytest.fixture
def store():
    return FakeDocumentStore()


@pytest.fixture
def events():
    return RecordingSink()


@pytest.fixture
def python_course(store):
    """One course with a module under the plural convention and two nested lessons"""
    store.seed("courses", "python_course", {"courseName": "Python", "enrolledUsers": [], "isPublished": True})
    store.seed("courses/python_course/modules", "python_m1", {"title": "Basics", "order": 1})
    store.seed("courses/python_course/modules/python_m1/lessons", "l1", {"title": "Loops", "order": 2})
    store.seed(
        "courses/python_course/modules/python_m1/lessons",
        "l2",
        {"title": "Functions and Methods", "order": 1},
    )
    return store


@pytest.fixture
def client(store, events):
    from fastapi.testclient import TestClient

    from coursehub.courses.dependencies import get_events
    from coursehub.main import app
    from coursehub.store.manager import get_store, get_store_or_none

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_store_or_none] = lambda: store
    app.dependency_overrides[get_events] = lambda: events
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
