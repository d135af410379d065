"""Shared test fixtures for the DocVault backend test suite.

Every test gets a fresh in-memory SQLite database (StaticPool keeps the single
connection alive, so the schema survives across sessions). Service tests use
the ``db`` session directly; API tests go through ``client``, whose ``get_db``
dependency is overridden to hand out that same session.
"""

import os

# Force auth off and keep logs readable before any app imports.
os.environ["AUTH_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"

from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.database import Base, build_session_factory, enable_sqlite_foreign_keys, get_db
from app.main import create_app
from app.models import GrantLevel
from app.services.document_service import DocumentService
from app.services.folder_service import FolderService
from app.services.sharing_service import SharingService
from app.services.storage import LocalFileStorage


@pytest.fixture()
def settings(tmp_path) -> Settings:
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    return Settings(
        database_url="sqlite://",
        upload_dir=str(upload_dir),
        auth_enabled=False,
        log_format="text",
    )


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    """Per-test database session."""
    session = build_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture()
def storage(settings) -> LocalFileStorage:
    return LocalFileStorage(config=settings)


@pytest.fixture()
def folders(db, storage, settings) -> FolderService:
    return FolderService(db, storage=storage, config=settings)


@pytest.fixture()
def documents(db, storage, settings) -> DocumentService:
    return DocumentService(db, storage=storage, config=settings)


@pytest.fixture()
def sharing(db) -> SharingService:
    return SharingService(db)


@pytest.fixture()
def client(db, engine, settings):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""
    app = create_app(settings=settings, engine=engine)

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def as_user(user_id: str) -> dict:
    """Headers identifying the caller while auth is disabled."""
    return {"X-User-Id": user_id}


def make_folder(db, owner: str, name: str = "Folder", parent_id: Optional[int] = None):
    return FolderService(db).create_folder(name, owner, parent_id=parent_id)


def make_document(
    db,
    owner: str,
    title: str = "Test Document",
    folder_id: Optional[int] = None,
    text: Optional[str] = None,
    file_path: Optional[str] = None,
):
    return DocumentService(db).create_document(
        owner,
        title=title,
        file_name=f"{title}.txt",
        file_path=file_path,
        file_type="text/plain",
        file_size=len(text or ""),
        extracted_text=text,
        folder_id=folder_id,
    )


def share(db, folder_id: int, owner: str, grantee: str, level: GrantLevel = GrantLevel.VIEWER):
    grant, _ = SharingService(db).share(folder_id, grantee, level, owner)
    return grant


def document_payload(
    title: str = "Test Document",
    folder_id: Optional[int] = None,
    text: Optional[str] = "Hello world.",
    **overrides,
) -> dict:
    """Factory for document upload payloads."""
    payload = {
        "title": title,
        "file_name": f"{title}.txt",
        "file_path": f"{title}.txt",
        "file_type": "text/plain",
        "file_size": 12,
        "extracted_text": text,
        "folder_id": folder_id,
    }
    payload.update(overrides)
    return payload
