"""Deep module for all folder operations: create, rename, move, delete, copy and tree reads.

Callers interact with high-level operations and never walk parent links,
resolve grants or order cascades themselves. Every mutation is owner-gated
through AccessResolver and commits exactly once.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..exceptions import (
    CircularReferenceError,
    ConflictError,
    FolderNotEmptyError,
    ForbiddenRoleError,
    NotFoundOrDeniedError,
    ValidationError,
)
from ..models import Document, Folder
from ..models.folder import FOLDER_NAME_MAX_LENGTH
from ..repositories import (
    DocumentRepository,
    FolderRepository,
    GrantRepository,
    LabelRepository,
    RuleRepository,
    MISSING,
)
from ..schemas.document import DocumentResponse
from ..schemas.folder import (
    BreadcrumbItem,
    FolderDeleteResponse,
    FolderDetail,
    FolderSummary,
    TreeNode,
)
from .access_resolver import AccessLevel, AccessResolver, level_from
from .storage import FileStorage, LocalFileStorage

DUPLICATE_NAME_MESSAGE = "A folder with this name already exists in this location"

logger = logging.getLogger(__name__)


def validate_folder_name(name: Optional[str]) -> str:
    """Trim and validate a folder name."""
    if name is None:
        raise ValidationError("Folder name is required", field="name")
    name = name.strip()
    if not name:
        raise ValidationError("Folder name cannot be empty", field="name")
    if len(name) > FOLDER_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Folder name must be {FOLDER_NAME_MAX_LENGTH} characters or less", field="name"
        )
    return name


def _fit(base: str, suffix: str) -> str:
    return base[: FOLDER_NAME_MAX_LENGTH - len(suffix)] + suffix


def _copy_names(name: str) -> Iterator[str]:
    """'X - Copy', 'X - Copy (2)', 'X - Copy (3)', ..."""
    yield _fit(name, " - Copy")
    n = 2
    while True:
        yield _fit(name, f" - Copy ({n})")
        n += 1


def _sibling_names(name: str) -> Iterator[str]:
    yield name
    n = 2
    while True:
        yield _fit(name, f" ({n})")
        n += 1


def _first_free(candidates: Iterable[str], taken: Set[str]) -> str:
    for candidate in candidates:
        if candidate not in taken:
            taken.add(candidate)
            return candidate
    raise AssertionError("candidate generator exhausted")


class FolderService:
    """All folder and tree operations behind a simple interface.

    Public methods:
        create_folder   -- new folder owned by the caller
        rename_folder   -- owner only
        move_folder     -- owner only; rejects cycles
        delete_folder   -- owner only; force=True cascades bottom-up
        copy_folder     -- deep copy of a folder shared with the caller as editor
        get_folder      -- folder, readable subfolders and documents
        list_folders    -- readable folders under one parent
        breadcrumb      -- readable ancestors, root first
        get_tree        -- every readable folder as a nested tree
    """

    def __init__(
        self,
        db: Session,
        storage: Optional[FileStorage] = None,
        config: Optional[Settings] = None,
    ):
        self.db = db
        self.config = config or default_settings
        self.storage = storage or LocalFileStorage(config=self.config)
        self.access = AccessResolver(db)
        self.folder_repo = FolderRepository(db)
        self.grant_repo = GrantRepository(db)
        self.doc_repo = DocumentRepository(db)
        self.rule_repo = RuleRepository(db)
        self.label_repo = LabelRepository(db)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_folder(self, name: str, user_id: str, parent_id: Optional[int] = None) -> Folder:
        name = validate_folder_name(name)
        if parent_id is not None:
            self.access.require_read(parent_id, user_id)
            self._ensure_depth(parent_id, 1)

        if self.folder_repo.find_duplicate(name, parent_id, user_id):
            raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"name": name})

        try:
            folder = self.folder_repo.create(name, parent_id, user_id)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"name": name})

        logger.info(
            "Created folder",
            extra={"folder_id": folder.id, "parent_id": parent_id, "user_id": user_id},
        )
        return folder

    def rename_folder(self, folder_id: int, user_id: str, name: str) -> Folder:
        folder = self.access.require_owner(folder_id, user_id)
        name = validate_folder_name(name)

        if self.folder_repo.find_duplicate(name, folder.parent_id, folder.owner_id, exclude_id=folder.id):
            raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"name": name})

        folder.name = name
        self._commit_or_conflict(name)
        self.db.refresh(folder)
        logger.info("Renamed folder", extra={"folder_id": folder_id, "user_id": user_id})
        return folder

    def move_folder(self, folder_id: int, user_id: str, new_parent_id: Optional[int]) -> Folder:
        """Re-parent a folder. ``new_parent_id=None`` makes it a root folder."""
        folder = self.access.require_owner(folder_id, user_id)

        if new_parent_id is not None:
            self.access.require_read(new_parent_id, user_id)
            self._ensure_not_descendant(folder_id, new_parent_id)
            self._ensure_depth(new_parent_id, max(self.folder_repo.load_subtree(folder).levels().values()))

        if self.folder_repo.find_duplicate(folder.name, new_parent_id, folder.owner_id, exclude_id=folder.id):
            raise ConflictError(
                "A folder with this name already exists in the destination",
                details={"name": folder.name},
            )

        old_parent_id = folder.parent_id
        folder.parent_id = new_parent_id
        self._commit_or_conflict(folder.name)
        self.db.refresh(folder)
        logger.info(
            "Moved folder",
            extra={
                "folder_id": folder_id,
                "old_parent_id": old_parent_id,
                "new_parent_id": new_parent_id,
                "user_id": user_id,
            },
        )
        return folder

    def delete_folder(self, folder_id: int, user_id: str, force: bool = False) -> FolderDeleteResponse:
        """Delete a folder.

        force=False -- only an empty folder is removed; otherwise not_empty.
        force=True  -- the whole subtree goes, with its documents, grants,
                       label links, activity rows and the rules targeting it.
        Stored files are removed after the commit, best-effort.
        """
        folder = self.access.require_owner(folder_id, user_id)

        if not force:
            subfolders = self.folder_repo.count_children(folder_id)
            documents = self.folder_repo.count_documents(folder_id)
            if subfolders or documents:
                raise FolderNotEmptyError(folder_id, subfolders, documents)

        tree = self.folder_repo.load_subtree(folder)
        file_paths: List[str] = []
        deleted_documents = 0

        try:
            for fid in tree.bottom_up():
                files = self.doc_repo.files_in_folder(fid)
                deleted_documents += self.doc_repo.delete_with_links([doc_id for doc_id, _ in files])
                file_paths.extend(path for _, path in files if path)
                self.grant_repo.delete_for_folder(fid)
                self.rule_repo.delete_targeting(fid)
                self.folder_repo.delete_rows(fid)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Folder delete rolled back: %s", e, extra={"folder_id": folder_id})
            raise ConflictError(
                "Folder contents changed while deleting; nothing was removed",
                details={"folder_id": folder_id},
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise

        for path in file_paths:
            self.storage.delete_file(path)

        logger.info(
            "Deleted folder",
            extra={
                "folder_id": folder_id,
                "deleted_folders": len(tree.order),
                "deleted_documents": deleted_documents,
                "user_id": user_id,
            },
        )
        return FolderDeleteResponse(
            folder_id=folder_id,
            deleted_folders=len(tree.order),
            deleted_documents=deleted_documents,
        )

    def copy_folder(self, folder_id: int, user_id: str, new_parent_id: Optional[int] = None) -> Folder:
        """Deep-copy a folder shared with the caller as editor into their own tree.

        Only the part of the subtree the caller can read is copied. Copies of
        documents and folders are owned by the caller; labels are re-created
        by name in the caller's label set. Grants and rules stay behind.
        """
        source = self.folder_repo.get_by_id_optional(folder_id)
        if source is None:
            raise NotFoundOrDeniedError("Folder", folder_id)
        level = self.access.level_for_folder(source, user_id)
        if level is AccessLevel.OWNER:
            raise ValidationError("You already own this folder; there is nothing to copy")
        if level is AccessLevel.NONE:
            raise NotFoundOrDeniedError("Folder", folder_id)
        if level is AccessLevel.VIEWER:
            raise ForbiddenRoleError("Editor access is required to copy this folder")

        if new_parent_id is not None:
            self.access.require_read(new_parent_id, user_id)

        tree = self.folder_repo.load_subtree(source)
        levels = self.access.levels_for(tree.folders.values(), user_id)
        to_copy = [source.id]
        selected = {source.id}
        for fid in tree.order[1:]:
            if levels[fid].can_read and tree.folders[fid].parent_id in selected:
                to_copy.append(fid)
                selected.add(fid)

        tree_levels = tree.levels()
        self._ensure_depth(new_parent_id, max(tree_levels[fid] for fid in to_copy))

        documents: Dict[int, List[Document]] = {fid: self.doc_repo.list_in_folder(fid) for fid in to_copy}
        all_doc_ids = [doc.id for docs in documents.values() for doc in docs]
        labels = self.doc_repo.label_names(all_doc_ids)

        # Bytes are duplicated before any row is written.
        new_paths: Dict[int, str] = {}
        created_files: List[str] = []
        for docs in documents.values():
            for doc in docs:
                copied = self.storage.copy_file(doc.file_path)
                if copied:
                    created_files.append(copied)
                new_paths[doc.id] = copied or doc.file_path

        root_name = _first_free(_copy_names(source.name), self.folder_repo.names_in_scope(new_parent_id, user_id))
        mapping: Dict[int, int] = {}
        taken: Dict[int, Set[str]] = {}

        try:
            for fid in to_copy:
                original = tree.folders[fid]
                if fid == source.id:
                    name, parent_id = root_name, new_parent_id
                else:
                    parent_id = mapping[original.parent_id]
                    name = _first_free(_sibling_names(original.name), taken.setdefault(parent_id, set()))
                copy = self.folder_repo.create(name, parent_id, user_id)
                mapping[fid] = copy.id

                for doc in documents[fid]:
                    new_doc = self.doc_repo.create(
                        title=doc.title,
                        file_name=doc.file_name,
                        file_path=new_paths[doc.id],
                        file_type=doc.file_type,
                        file_size=doc.file_size,
                        owner_id=user_id,
                        folder_id=copy.id,
                        content=doc.content,
                        auto_classified=False,
                    )
                    for label_name in labels.get(doc.id, []):
                        label = self.label_repo.get_or_create(user_id, label_name)
                        self.label_repo.link(new_doc.id, label.id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            for path in created_files:
                self.storage.delete_file(path)
            if isinstance(e, IntegrityError):
                raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"name": root_name})
            raise

        logger.info(
            "Copied folder",
            extra={
                "source_folder_id": folder_id,
                "new_folder_id": mapping[source.id],
                "folders": len(mapping),
                "documents": len(all_doc_ids),
                "user_id": user_id,
            },
        )
        return self.folder_repo.get_by_id(mapping[source.id])

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_folder(self, folder_id: int, user_id: str) -> FolderDetail:
        folder = self.access.require_read(folder_id, user_id)
        level = self.access.level_for_folder(folder, user_id)

        rows = self.folder_repo.list_readable(user_id, parent_id=folder_id)
        counts = self.folder_repo.document_counts([folder.id] + [sub.id for sub, _ in rows])
        documents = self.doc_repo.list_in_folder(folder.id)
        labels = self.doc_repo.label_names([doc.id for doc in documents])

        return FolderDetail(
            folder=self._summary(folder, level, counts[folder.id]),
            subfolders=[
                self._summary(sub, level_from(sub, user_id, grant), counts[sub.id])
                for sub, grant in rows
            ],
            documents=[DocumentResponse.from_document(doc, labels.get(doc.id)) for doc in documents],
        )

    def list_folders(self, user_id: str, parent_id: Optional[int] = None) -> List[FolderSummary]:
        """Readable folders directly under *parent_id* (root level when None), by name."""
        rows = self.folder_repo.list_readable(user_id, parent_id=parent_id)
        counts = self.folder_repo.document_counts([folder.id for folder, _ in rows])
        return [
            self._summary(folder, level_from(folder, user_id, grant), counts[folder.id])
            for folder, grant in rows
        ]

    def breadcrumb(self, folder_id: int, user_id: str) -> List[BreadcrumbItem]:
        """Path from the top-most readable ancestor down to the folder."""
        folder = self.access.require_read(folder_id, user_id)
        chain = [folder]
        visited = {folder.id}
        current = folder.parent_id
        while current is not None and len(chain) < self.config.max_folder_depth:
            if current in visited:
                logger.error("Cycle in folder ancestry", extra={"folder_id": folder_id, "at": current})
                break
            ancestor = self.folder_repo.get_by_id_optional(current)
            if ancestor is None or not self.access.level_for_folder(ancestor, user_id).can_read:
                break
            visited.add(current)
            chain.append(ancestor)
            current = ancestor.parent_id
        return [BreadcrumbItem(id=f.id, name=f.name) for f in reversed(chain)]

    def get_tree(self, user_id: str) -> List[TreeNode]:
        """Every readable folder, nested.

        A readable folder whose parent is unreadable (or missing) is a
        top-level node.
        """
        rows = self.folder_repo.list_readable(user_id, any_parent=True)
        counts = self.folder_repo.document_counts([folder.id for folder, _ in rows])
        nodes: Dict[int, TreeNode] = {}
        children: Dict[int, List[int]] = {}
        for folder, grant in rows:
            nodes[folder.id] = TreeNode(
                id=folder.id,
                name=folder.name,
                parent_id=folder.parent_id,
                owner_id=folder.owner_id,
                access_level=level_from(folder, user_id, grant).value,
                document_count=counts[folder.id],
            )
            children.setdefault(folder.parent_id, []).append(folder.id)

        roots = [nid for nid, node in nodes.items() if node.parent_id not in nodes]

        # Attach children with an explicit stack; ids in a corrupt cycle are never reached.
        visited: Set[int] = set()
        stack = list(roots)
        while stack:
            nid = stack.pop()
            if nid in visited:
                continue
            visited.add(nid)
            for child_id in children.get(nid, []):
                if child_id not in visited:
                    nodes[nid].children.append(nodes[child_id])
                    stack.append(child_id)

        return [nodes[nid] for nid in roots]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_not_descendant(self, folder_id: int, target_parent_id: int) -> None:
        """Walk up from the destination; reaching *folder_id* means a cycle."""
        current = target_parent_id
        visited: Set[int] = set()
        while current is not None:
            if current == folder_id:
                raise CircularReferenceError(folder_id, target_parent_id)
            if current in visited:
                logger.error(
                    "Folder ancestry loops; treating move as circular",
                    extra={"folder_id": folder_id, "target_parent_id": target_parent_id, "at": current},
                )
                raise CircularReferenceError(folder_id, target_parent_id)
            if len(visited) >= self.config.max_folder_depth:
                logger.error(
                    "Folder ancestry exceeds max_folder_depth; treating move as circular",
                    extra={"folder_id": folder_id, "target_parent_id": target_parent_id, "at": current},
                )
                raise CircularReferenceError(
                    folder_id,
                    target_parent_id,
                    message=(
                        f"Destination is more than {self.config.max_folder_depth} levels deep; "
                        "its ancestry cannot be verified"
                    ),
                )
            visited.add(current)
            parent = self.folder_repo.parent_of(current)
            if parent is MISSING:
                return
            current = parent

    def _depth(self, folder_id: int) -> int:
        """Number of folders from the root down to *folder_id*, both included."""
        depth = 0
        current = folder_id
        visited: Set[int] = set()
        while current is not None and current is not MISSING:
            if current in visited or depth > self.config.max_folder_depth:
                break
            visited.add(current)
            depth += 1
            current = self.folder_repo.parent_of(current)
        return depth

    def _ensure_depth(self, parent_id: Optional[int], height: int) -> None:
        """Placing a subtree *height* levels tall under *parent_id* must stay within max_folder_depth."""
        limit = self.config.max_folder_depth
        base = self._depth(parent_id) if parent_id is not None else 0
        if base + height > limit:
            raise ValidationError(
                f"Folder tree cannot be more than {limit} levels deep", field="parent_id"
            )

    def _commit_or_conflict(self, name: str) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"name": name})

    @staticmethod
    def _summary(folder: Folder, level: AccessLevel, document_count: int) -> FolderSummary:
        return FolderSummary(
            id=folder.id,
            name=folder.name,
            parent_id=folder.parent_id,
            owner_id=folder.owner_id,
            created_at=folder.created_at,
            updated_at=folder.updated_at,
            access_level=level.value,
            document_count=document_count,
        )
