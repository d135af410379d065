"""Tests for per-user labels."""

import pytest

from app.exceptions import ConflictError, LabelNotFoundError, ValidationError
from app.models import DocumentLabel
from app.services.label_service import LabelService
from tests.conftest import make_document


@pytest.fixture()
def labels(db) -> LabelService:
    return LabelService(db)


class TestLabels:

    def test_create_and_list(self, labels):
        labels.create_label("alice", "work", color="#ff0000")
        labels.create_label("alice", "  tax  ")
        labels.create_label("bob", "work")

        assert [l.name for l in labels.list_labels("alice")] == ["tax", "work"]

    def test_invalid_name(self, labels):
        with pytest.raises(ValidationError):
            labels.create_label("alice", "   ")
        with pytest.raises(ValidationError):
            labels.create_label("alice", "x" * 101)

    def test_duplicate_name(self, labels):
        labels.create_label("alice", "work")
        with pytest.raises(ConflictError):
            labels.create_label("alice", "work")

    def test_delete_detaches_documents(self, labels, documents, db):
        doc = make_document(db, "alice")
        label = labels.create_label("alice", "work")
        documents.add_labels(doc.id, "alice", [label.id])

        labels.delete_label(label.id, "alice")

        assert labels.list_labels("alice") == []
        assert db.query(DocumentLabel).count() == 0

    def test_other_users_label_is_not_found(self, labels):
        label = labels.create_label("alice", "work")
        with pytest.raises(LabelNotFoundError):
            labels.delete_label(label.id, "bob")
