import os

# Settings are read at import time; keep the app off the real database and
# stop the startup hook from launching the purge timer.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["PURGE_ENABLED"] = "false"

import pytest
from datetime import datetime, timezone
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from drivecore.main import app
from drivecore.core.database import Base, get_db
from drivecore.core.exceptions import StorageError
from drivecore.core.security import Actor, create_access_token
from drivecore.models.file import File
from drivecore.models.folder import Folder
from drivecore.services.change_notifier import ChangeNotifier
from drivecore.utils.blob_store import BlobStore

# SQLite in-memory database shared by every connection of the test engine
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class MemoryBlobStore(BlobStore):
    """Blob store kept in a dict; failures can be switched on per test."""

    def __init__(self):
        self.blobs = {}
        self.fail_put = False
        self.fail_delete = False
        self.deleted = []

    def put(self, path, data):
        if self.fail_put:
            raise StorageError("Failed to store file content")
        self.blobs[path] = data
        return path

    def get(self, ref):
        if ref not in self.blobs:
            raise StorageError("Failed to read file content")
        return self.blobs[ref]

    def delete(self, ref):
        if self.fail_delete:
            raise StorageError("Failed to delete file content")
        self.blobs.pop(ref, None)
        self.deleted.append(ref)

    def exists(self, ref):
        return ref in self.blobs


class RecordingSubscriber:
    def __init__(self):
        self.events = []

    def deliver(self, room, event, payload):
        self.events.append((room, event, payload))

    @property
    def names(self):
        return [event for _, event, _ in self.events]


@pytest.fixture(scope="function")
def db_session():
    """Fresh database session for every test"""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def notifier():
    return ChangeNotifier()


@pytest.fixture
def recorder():
    return RecordingSubscriber()


@pytest.fixture
def actor():
    return Actor(id="user-1", name="Alice")


@pytest.fixture
def other_actor():
    return Actor(id="user-2", name="Bob")


@pytest.fixture
def make_folder(db_session, actor):
    """Factory fixture inserting folder rows directly"""

    def _make_folder(name, parent=None, owner_id=None, deleted_at=None, **extra):
        now = datetime.now(timezone.utc)
        folder = Folder(
            name=name,
            parent_id=parent.id if isinstance(parent, Folder) else parent,
            owner_id=owner_id or actor.id,
            deleted_at=deleted_at,
            tags=[],
            folder_metadata={},
            created_at=now,
            updated_at=now,
            **extra,
        )
        db_session.add(folder)
        db_session.commit()
        db_session.refresh(folder)
        return folder

    return _make_folder


@pytest.fixture
def make_file(db_session, blob_store, actor):
    """Factory fixture inserting file rows whose content lives in the blob store"""

    def _make_file(name, folder=None, owner_id=None, data=b"content", mime_type="text/plain", deleted_at=None):
        owner_id = owner_id or actor.id
        ref = blob_store.put(f"{owner_id}/{name}-{len(blob_store.blobs)}", data)
        now = datetime.now(timezone.utc)
        file = File(
            name=name,
            folder_id=folder.id if isinstance(folder, Folder) else folder,
            owner_id=owner_id,
            size=len(data),
            mime_type=mime_type,
            blob_ref=ref,
            deleted_at=deleted_at,
            created_at=now,
            updated_at=now,
        )
        db_session.add(file)
        db_session.commit()
        db_session.refresh(file)
        return file

    return _make_file


@pytest.fixture(scope="function")
def client(db_session, blob_store, notifier):
    """Test client with the database session, blob store and notifier overridden"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.blob_store = blob_store
    app.state.notifier = notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def bearer(actor):
    token = create_access_token(data={"sub": actor.id, "name": actor.name})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def authenticated_client(client, actor):
    """Client sending a valid access token for ``actor``"""
    client.headers = {**client.headers, **bearer(actor)}
    return client, actor


@pytest.fixture
def headers_for():
    """Authorization headers for any actor"""
    return bearer
