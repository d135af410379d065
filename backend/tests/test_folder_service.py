"""Unit tests for FolderService: tree mutations, cascading delete, copy and reads.

Tests the service layer directly with an in-memory SQLite database,
bypassing the HTTP stack.
"""

import os

import pytest
from sqlalchemy.exc import OperationalError

from app.exceptions import (
    CircularReferenceError,
    ConflictError,
    FolderNotEmptyError,
    ForbiddenRoleError,
    NotFoundOrDeniedError,
    ValidationError,
)
from app.models import (
    ClassificationRule,
    Document,
    DocumentActivity,
    DocumentLabel,
    Folder,
    FolderPermission,
    GrantLevel,
    Label,
)
from app.repositories import FolderRepository
from app.services.classification_service import ClassificationService
from app.services.document_service import DocumentService
from tests.conftest import make_document, make_folder, share


def _ancestors(db, folder_id):
    seen = []
    current = db.get(Folder, folder_id).parent_id
    while current is not None:
        assert current not in seen, "cycle in folder tree"
        seen.append(current)
        current = db.get(Folder, current).parent_id
    return seen


class TestCreate:

    def test_create_trims_name_and_sets_owner(self, folders):
        folder = folders.create_folder("  Reports  ", "alice")
        assert folder.name == "Reports"
        assert folder.owner_id == "alice"
        assert folder.parent_id is None

    @pytest.mark.parametrize("name", ["", "   ", None, "x" * 256])
    def test_invalid_names_rejected(self, folders, name):
        with pytest.raises(ValidationError):
            folders.create_folder(name, "alice")

    def test_duplicate_root_name_conflicts(self, folders):
        folders.create_folder("Reports", "alice")
        with pytest.raises(ConflictError):
            folders.create_folder("Reports", "alice")

    def test_same_name_allowed_for_other_owner_or_parent(self, folders):
        a = folders.create_folder("Reports", "alice")
        folders.create_folder("Reports", "bob")
        folders.create_folder("Reports", "alice", parent_id=a.id)

    def test_names_are_case_sensitive(self, folders):
        folders.create_folder("Reports", "alice")
        folders.create_folder("reports", "alice")

    def test_storage_constraint_catches_duplicates_the_lookup_missed(self, folders, monkeypatch):
        # Two concurrent creates both pass the lookup; the unique indexes decide.
        monkeypatch.setattr(FolderRepository, "find_duplicate", lambda self, *args, **kwargs: None)

        folders.create_folder("Dup", "alice")
        with pytest.raises(ConflictError):
            folders.create_folder("Dup", "alice")

        parent = folders.create_folder("Parent", "alice")
        folders.create_folder("Sub", "alice", parent_id=parent.id)
        with pytest.raises(ConflictError):
            folders.create_folder("Sub", "alice", parent_id=parent.id)

        assert folders.db.query(Folder).filter(Folder.name.in_(["Dup", "Sub"])).count() == 2

    def test_parent_must_be_readable(self, folders, db):
        parent = make_folder(db, "alice", "Private")
        with pytest.raises(NotFoundOrDeniedError):
            folders.create_folder("Sneaky", "bob", parent_id=parent.id)

    def test_grantee_creates_own_subfolder_in_shared_folder(self, folders, db):
        parent = make_folder(db, "alice", "Team")
        share(db, parent.id, "alice", "bob", GrantLevel.VIEWER)
        child = folders.create_folder("Bob's", "bob", parent_id=parent.id)
        assert child.owner_id == "bob"
        assert child.parent_id == parent.id


class TestRename:

    def test_owner_renames(self, folders, db):
        folder = make_folder(db, "alice", "Old")
        assert folders.rename_folder(folder.id, "alice", " New ").name == "New"

    def test_rename_to_sibling_name_conflicts(self, folders, db):
        make_folder(db, "alice", "A")
        b = make_folder(db, "alice", "B")
        with pytest.raises(ConflictError):
            folders.rename_folder(b.id, "alice", "A")

    def test_rename_to_own_name_is_allowed(self, folders, db):
        folder = make_folder(db, "alice", "Same")
        assert folders.rename_folder(folder.id, "alice", "Same").name == "Same"

    def test_editor_cannot_rename(self, folders, db):
        folder = make_folder(db, "alice", "Shared")
        share(db, folder.id, "alice", "bob", GrantLevel.EDITOR)
        with pytest.raises(ForbiddenRoleError):
            folders.rename_folder(folder.id, "bob", "Mine now")

    def test_stranger_gets_not_found_or_denied(self, folders, db):
        folder = make_folder(db, "alice", "Private")
        with pytest.raises(NotFoundOrDeniedError):
            folders.rename_folder(folder.id, "bob", "x")


class TestMove:

    def test_move_under_other_folder(self, folders, db):
        a = make_folder(db, "alice", "A")
        b = make_folder(db, "alice", "B")
        moved = folders.move_folder(b.id, "alice", a.id)
        assert moved.parent_id == a.id

    def test_move_to_root(self, folders, db):
        a = make_folder(db, "alice", "A")
        b = make_folder(db, "alice", "B", parent_id=a.id)
        assert folders.move_folder(b.id, "alice", None).parent_id is None

    def test_move_into_itself_is_circular(self, folders, db):
        a = make_folder(db, "alice", "A")
        with pytest.raises(CircularReferenceError):
            folders.move_folder(a.id, "alice", a.id)

    def test_move_under_descendant_is_circular(self, folders, db):
        reports = make_folder(db, "alice", "Reports")
        invoices = make_folder(db, "alice", "Invoices", parent_id=reports.id)
        deep = make_folder(db, "alice", "2024", parent_id=invoices.id)

        for target in (invoices.id, deep.id):
            with pytest.raises(CircularReferenceError):
                folders.move_folder(reports.id, "alice", target)

        db.expire_all()
        assert db.get(Folder, reports.id).parent_id is None

    def test_move_under_sibling_subtree_is_fine(self, folders, db):
        a = make_folder(db, "alice", "A")
        b = make_folder(db, "alice", "B")
        b1 = make_folder(db, "alice", "B1", parent_id=b.id)
        folders.move_folder(a.id, "alice", b1.id)
        assert _ancestors(db, a.id) == [b1.id, b.id]

    def test_no_cycles_after_sequence_of_moves(self, folders, db):
        ids = [make_folder(db, "alice", f"F{i}").id for i in range(5)]
        moves = [(1, 0), (2, 1), (3, 2), (0, 3), (4, 0), (0, 4), (2, None), (0, 2)]
        for src, dst in moves:
            try:
                folders.move_folder(ids[src], "alice", ids[dst] if dst is not None else None)
            except CircularReferenceError:
                pass
        db.expire_all()
        for fid in ids:
            _ancestors(db, fid)

    def test_corrupt_ancestry_is_rejected(self, db, storage, settings):
        from app.services.folder_service import FolderService

        a = make_folder(db, "alice", "A")
        b = make_folder(db, "alice", "B", parent_id=a.id)
        target = make_folder(db, "alice", "Target")
        # Corrupt the tree directly: A <-> B.
        db.get(Folder, a.id).parent_id = b.id
        db.commit()

        service = FolderService(db, storage=storage, config=settings)
        with pytest.raises(CircularReferenceError):
            service.move_folder(target.id, "alice", a.id)

    def test_destination_must_be_readable(self, folders, db):
        mine = make_folder(db, "alice", "Mine")
        theirs = make_folder(db, "bob", "Theirs")
        with pytest.raises(NotFoundOrDeniedError):
            folders.move_folder(mine.id, "alice", theirs.id)

    def test_name_conflict_in_destination(self, folders, db):
        dest = make_folder(db, "alice", "Dest")
        make_folder(db, "alice", "Same", parent_id=dest.id)
        mover = make_folder(db, "alice", "Same")
        with pytest.raises(ConflictError):
            folders.move_folder(mover.id, "alice", dest.id)

    def test_viewer_cannot_move(self, folders, db):
        folder = make_folder(db, "alice", "Shared")
        share(db, folder.id, "alice", "bob", GrantLevel.VIEWER)
        with pytest.raises(ForbiddenRoleError):
            folders.move_folder(folder.id, "bob", None)


class TestDepthLimit:

    @staticmethod
    def _chain(db, owner, length, prefix="L"):
        ids, parent_id = [], None
        for i in range(1, length + 1):
            parent_id = make_folder(db, owner, f"{prefix}{i}", parent_id=parent_id).id
            ids.append(parent_id)
        return ids

    def test_create_stops_at_limit(self, folders, db, settings):
        settings.max_folder_depth = 3
        l1, l2, l3 = self._chain(db, "alice", 3)

        assert folders.create_folder("Fits", "alice", parent_id=l2).parent_id == l2
        with pytest.raises(ValidationError):
            folders.create_folder("Too deep", "alice", parent_id=l3)

    def test_move_counts_the_moved_subtree(self, folders, db, settings):
        settings.max_folder_depth = 3
        l1, l2, _ = self._chain(db, "alice", 3)
        top, _ = self._chain(db, "alice", 2, prefix="M")

        with pytest.raises(ValidationError):
            folders.move_folder(top, "alice", l2)
        assert folders.move_folder(top, "alice", l1).parent_id == l1

    def test_legitimate_full_depth_is_not_a_cycle(self, folders, db, settings):
        settings.max_folder_depth = 3
        _, _, l3 = self._chain(db, "alice", 3)
        loose = make_folder(db, "alice", "Loose")

        with pytest.raises(ValidationError):
            folders.move_folder(loose.id, "alice", l3)

    def test_tree_deeper_than_limit_reports_the_limit(self, folders, db, settings):
        # Built under a larger limit, then the limit was lowered.
        deepest = self._chain(db, "alice", 5)[-1]
        loose = make_folder(db, "alice", "Loose")
        settings.max_folder_depth = 3

        with pytest.raises(CircularReferenceError) as exc_info:
            folders.move_folder(loose.id, "alice", deepest)
        assert "3 levels deep" in exc_info.value.message

    def test_copy_respects_limit(self, folders, db, settings):
        settings.max_folder_depth = 3
        src, _ = self._chain(db, "alice", 2, prefix="S")
        share(db, src, "alice", "bob", GrantLevel.EDITOR)
        share(db, db.query(Folder).filter_by(name="S2").one().id, "alice", "bob", GrantLevel.VIEWER)
        _, b2 = self._chain(db, "bob", 2, prefix="B")

        with pytest.raises(ValidationError):
            folders.copy_folder(src, "bob", new_parent_id=b2)
        assert db.query(Folder).filter(Folder.owner_id == "bob").count() == 2


class TestDelete:

    def test_delete_empty_folder(self, folders, db):
        folder = make_folder(db, "alice", "Empty")
        result = folders.delete_folder(folder.id, "alice")
        assert result.deleted_folders == 1
        assert db.query(Folder).count() == 0

    def test_non_force_delete_of_non_leaf_changes_nothing(self, folders, db):
        parent = make_folder(db, "alice", "Parent")
        make_folder(db, "alice", "Child", parent_id=parent.id)
        make_document(db, "alice", "Doc", folder_id=parent.id)

        with pytest.raises(FolderNotEmptyError) as exc:
            folders.delete_folder(parent.id, "alice")
        assert exc.value.details["subfolder_count"] == 1
        assert exc.value.details["document_count"] == 1
        assert db.query(Folder).count() == 2
        assert db.query(Document).count() == 1

    def test_failed_cascade_removes_nothing(self, folders, db, settings, monkeypatch):
        path = os.path.join(settings.upload_dir, "kept.txt")
        with open(path, "w") as f:
            f.write("bytes")
        root = make_folder(db, "alice", "Root")
        child = make_folder(db, "alice", "Child", parent_id=root.id)
        make_document(db, "alice", "Doc", folder_id=child.id, file_path="kept.txt")
        share(db, root.id, "alice", "bob", GrantLevel.EDITOR)

        original = FolderRepository.delete_rows
        calls = []

        def fail_on_second_folder(self, folder_id):
            calls.append(folder_id)
            if len(calls) == 2:
                raise OperationalError("DELETE FROM folders", {}, Exception("disk I/O error"))
            return original(self, folder_id)

        monkeypatch.setattr(FolderRepository, "delete_rows", fail_on_second_folder)

        with pytest.raises(OperationalError):
            folders.delete_folder(root.id, "alice", force=True)

        db.expire_all()
        assert calls == [child.id, root.id]
        assert db.query(Folder).count() == 2
        assert db.query(Document).count() == 1
        assert db.query(FolderPermission).count() == 1
        assert db.query(DocumentActivity).count() == 1
        assert os.path.exists(path)

    def test_force_delete_removes_whole_subtree(self, folders, db, storage, settings):
        root = make_folder(db, "alice", "Root")
        child = make_folder(db, "alice", "Child", parent_id=root.id)
        grandchild = make_folder(db, "alice", "Grandchild", parent_id=child.id)
        outside = make_folder(db, "alice", "Outside")
        share(db, child.id, "alice", "bob", GrantLevel.EDITOR)

        (storage.root / "deep.txt").write_text("bytes")
        deep_doc = make_document(db, "alice", "Deep", folder_id=grandchild.id, file_path="deep.txt")
        bobs_doc = make_document(db, "bob", "Bob's", folder_id=child.id)
        kept_doc = make_document(db, "alice", "Kept", folder_id=outside.id)

        label = Label(user_id="alice", name="tax")
        db.add(label)
        db.flush()
        db.add(DocumentLabel(document_id=deep_doc.id, label_id=label.id))
        db.commit()

        classifier = ClassificationService(db)
        classifier.create_rule("alice", "invoice", grandchild.id)
        classifier.create_rule("alice", "kept", outside.id)
        DocumentService(db, storage=storage, config=settings).view_document(bobs_doc.id, "bob")

        result = folders.delete_folder(root.id, "alice", force=True)

        assert result.deleted_folders == 3
        assert result.deleted_documents == 2
        db.expire_all()
        assert [f.id for f in db.query(Folder).all()] == [outside.id]
        assert [d.id for d in db.query(Document).all()] == [kept_doc.id]
        assert db.query(FolderPermission).count() == 0
        assert db.query(DocumentLabel).count() == 0
        assert db.query(DocumentActivity).filter(
            DocumentActivity.document_id != kept_doc.id
        ).count() == 0
        assert [r.keyword for r in db.query(ClassificationRule).all()] == ["kept"]
        assert db.query(Label).count() == 1  # labels themselves survive
        assert not (storage.root / "deep.txt").exists()

    def test_only_owner_may_delete(self, folders, db):
        folder = make_folder(db, "alice", "Shared")
        share(db, folder.id, "alice", "bob", GrantLevel.EDITOR)
        with pytest.raises(ForbiddenRoleError):
            folders.delete_folder(folder.id, "bob", force=True)
        with pytest.raises(NotFoundOrDeniedError):
            folders.delete_folder(folder.id, "carol", force=True)


class TestCopy:

    def _shared_tree(self, db):
        src = make_folder(db, "alice", "Projects")
        sub = make_folder(db, "alice", "Drafts", parent_id=src.id)
        make_document(db, "alice", "Plan", folder_id=src.id, text="the plan")
        make_document(db, "alice", "Draft", folder_id=sub.id)
        share(db, src.id, "alice", "bob", GrantLevel.EDITOR)
        share(db, sub.id, "alice", "bob", GrantLevel.VIEWER)
        return src, sub

    def test_editor_copies_into_own_tree(self, folders, db):
        src, _ = self._shared_tree(db)
        copy = folders.copy_folder(src.id, "bob")

        assert copy.name == "Projects - Copy"
        assert copy.owner_id == "bob"
        assert copy.parent_id is None
        children = db.query(Folder).filter(Folder.parent_id == copy.id).all()
        assert [(c.name, c.owner_id) for c in children] == [("Drafts", "bob")]
        copied_docs = db.query(Document).filter(Document.owner_id == "bob").all()
        assert sorted(d.title for d in copied_docs) == ["Draft", "Plan"]
        assert db.query(FolderPermission).filter(FolderPermission.folder_id == copy.id).count() == 0

    def test_repeat_copies_get_numbered_names(self, folders, db):
        src, _ = self._shared_tree(db)
        names = [folders.copy_folder(src.id, "bob").name for _ in range(3)]
        assert names == ["Projects - Copy", "Projects - Copy (2)", "Projects - Copy (3)"]

    def test_unreadable_subfolders_are_skipped(self, folders, db):
        src = make_folder(db, "alice", "Projects")
        make_folder(db, "alice", "Secret", parent_id=src.id)
        share(db, src.id, "alice", "bob", GrantLevel.EDITOR)

        copy = folders.copy_folder(src.id, "bob")
        assert db.query(Folder).filter(Folder.parent_id == copy.id).count() == 0

    def test_labels_are_recreated_for_the_copier(self, folders, db):
        src = make_folder(db, "alice", "Projects")
        doc = make_document(db, "alice", "Plan", folder_id=src.id)
        label = Label(user_id="alice", name="urgent")
        db.add(label)
        db.flush()
        db.add(DocumentLabel(document_id=doc.id, label_id=label.id))
        db.commit()
        share(db, src.id, "alice", "bob", GrantLevel.EDITOR)

        folders.copy_folder(src.id, "bob")
        bobs_label = db.query(Label).filter(Label.user_id == "bob").one()
        assert bobs_label.name == "urgent"
        assert db.query(DocumentLabel).filter(DocumentLabel.label_id == bobs_label.id).count() == 1

    def test_file_bytes_are_duplicated(self, folders, db, storage):
        (storage.root / "plan.pdf").write_bytes(b"%PDF")
        src = make_folder(db, "alice", "Projects")
        make_document(db, "alice", "Plan", folder_id=src.id, file_path="plan.pdf")
        share(db, src.id, "alice", "bob", GrantLevel.EDITOR)

        folders.copy_folder(src.id, "bob")
        copied = db.query(Document).filter(Document.owner_id == "bob").one()
        assert copied.file_path != "plan.pdf"
        assert open(copied.file_path, "rb").read() == b"%PDF"

    def test_copy_permission_rules(self, folders, db):
        src = make_folder(db, "alice", "Projects")
        share(db, src.id, "alice", "bob", GrantLevel.VIEWER)
        with pytest.raises(ValidationError):
            folders.copy_folder(src.id, "alice")
        with pytest.raises(ForbiddenRoleError):
            folders.copy_folder(src.id, "bob")
        with pytest.raises(NotFoundOrDeniedError):
            folders.copy_folder(src.id, "carol")
        with pytest.raises(NotFoundOrDeniedError):
            folders.copy_folder(999, "bob")


class TestReads:

    def test_get_folder_lists_readable_children_and_documents(self, folders, db):
        root = make_folder(db, "alice", "Root")
        visible = make_folder(db, "alice", "Visible", parent_id=root.id)
        make_folder(db, "alice", "Hidden", parent_id=root.id)
        make_document(db, "alice", "Doc", folder_id=root.id)
        share(db, root.id, "alice", "bob", GrantLevel.VIEWER)
        share(db, visible.id, "alice", "bob", GrantLevel.EDITOR)

        detail = folders.get_folder(root.id, "bob")
        assert detail.folder.access_level == "viewer"
        assert detail.folder.document_count == 1
        assert [(s.name, s.access_level) for s in detail.subfolders] == [("Visible", "editor")]
        assert [d.title for d in detail.documents] == ["Doc"]

    def test_list_folders_at_root(self, folders, db):
        make_folder(db, "alice", "B")
        make_folder(db, "alice", "A")
        theirs = make_folder(db, "bob", "Shared")
        make_folder(db, "bob", "Private")
        share(db, theirs.id, "bob", "alice", GrantLevel.VIEWER)

        listing = folders.list_folders("alice")
        assert [(f.name, f.access_level) for f in listing] == [
            ("A", "owner"), ("B", "owner"), ("Shared", "viewer"),
        ]

    def test_breadcrumb_stops_at_unreadable_ancestor(self, folders, db):
        top = make_folder(db, "alice", "Top")
        mid = make_folder(db, "alice", "Mid", parent_id=top.id)
        leaf = make_folder(db, "alice", "Leaf", parent_id=mid.id)

        assert [b.name for b in folders.breadcrumb(leaf.id, "alice")] == ["Top", "Mid", "Leaf"]

        share(db, leaf.id, "alice", "bob", GrantLevel.VIEWER)
        share(db, mid.id, "alice", "bob", GrantLevel.VIEWER)
        assert [b.name for b in folders.breadcrumb(leaf.id, "bob")] == ["Mid", "Leaf"]

    def test_tree_nests_and_promotes_orphans(self, folders, db):
        top = make_folder(db, "alice", "Top")
        child = make_folder(db, "alice", "Child", parent_id=top.id)
        make_folder(db, "alice", "Grandchild", parent_id=child.id)
        share(db, child.id, "alice", "bob", GrantLevel.VIEWER)

        tree = folders.get_tree("alice")
        assert [n.name for n in tree] == ["Top"]
        assert tree[0].children[0].name == "Child"
        assert tree[0].children[0].children[0].name == "Grandchild"

        bobs = folders.get_tree("bob")
        assert [(n.name, n.access_level, n.children) for n in bobs] == [("Child", "viewer", [])]
