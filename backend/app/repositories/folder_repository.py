"""Repository for folder rows and subtree loading."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Query

from ..exceptions import FolderNotFoundError
from ..models import Document, Folder, FolderPermission, GrantLevel
from .base import BaseRepository

# Sentinel returned by parent_of() for a folder id that does not exist.
MISSING = object()


@dataclass
class Subtree:
    """A folder subtree loaded into an id-keyed arena.

    ``order`` lists ids parents-first (the root first); iterate it reversed
    to visit descendants before their ancestors.
    """

    root_id: int
    folders: Dict[int, Folder] = field(default_factory=dict)
    children: Dict[int, List[int]] = field(default_factory=dict)
    order: List[int] = field(default_factory=list)

    def bottom_up(self) -> List[int]:
        return list(reversed(self.order))

    def levels(self) -> Dict[int, int]:
        """Level of every folder below the root, the root itself being 1."""
        levels = {self.root_id: 1}
        for fid in self.order:
            for child_id in self.children.get(fid, []):
                levels.setdefault(child_id, levels[fid] + 1)
        return levels


class FolderRepository(BaseRepository[Folder]):
    """Data access layer for folders."""

    model_class = Folder
    not_found_error = FolderNotFoundError

    def create(self, name: str, parent_id: Optional[int], owner_id: str) -> Folder:
        return self.add(Folder(name=name, parent_id=parent_id, owner_id=owner_id))

    @staticmethod
    def _parent_filter(parent_id: Optional[int]):
        if parent_id is None:
            return Folder.parent_id.is_(None)
        return Folder.parent_id == parent_id

    def find_duplicate(
        self,
        name: str,
        parent_id: Optional[int],
        owner_id: str,
        exclude_id: Optional[int] = None,
    ) -> Optional[Folder]:
        """Folder with exactly this name in the (parent_id, owner_id) scope."""
        query = self.db.query(Folder).filter(
            Folder.name == name,
            self._parent_filter(parent_id),
            Folder.owner_id == owner_id,
        )
        if exclude_id is not None:
            query = query.filter(Folder.id != exclude_id)
        return query.first()

    def names_in_scope(self, parent_id: Optional[int], owner_id: str) -> Set[str]:
        rows = (
            self.db.query(Folder.name)
            .filter(self._parent_filter(parent_id), Folder.owner_id == owner_id)
            .all()
        )
        return {name for (name,) in rows}

    def parent_of(self, folder_id: int):
        """Return the parent id of *folder_id*, or MISSING if the row is gone."""
        row = self.db.query(Folder.parent_id).filter(Folder.id == folder_id).first()
        if row is None:
            return MISSING
        return row[0]

    def count_children(self, folder_id: int) -> int:
        return self.db.query(func.count(Folder.id)).filter(Folder.parent_id == folder_id).scalar()

    def count_documents(self, folder_id: int) -> int:
        return self.db.query(func.count(Document.id)).filter(Document.folder_id == folder_id).scalar()

    def document_counts(self, folder_ids: List[int]) -> Dict[int, int]:
        """Number of documents directly inside each folder."""
        if not folder_ids:
            return {}
        rows = (
            self.db.query(Document.folder_id, func.count(Document.id))
            .filter(Document.folder_id.in_(folder_ids))
            .group_by(Document.folder_id)
            .all()
        )
        counts = {fid: 0 for fid in folder_ids}
        counts.update({fid: count for fid, count in rows})
        return counts

    def _readable_query(self, user_id: str) -> Query:
        """Folders the user owns or holds a grant on, with the grant level (or None)."""
        return (
            self.db.query(Folder, FolderPermission.level)
            .outerjoin(
                FolderPermission,
                (FolderPermission.folder_id == Folder.id) & (FolderPermission.user_id == user_id),
            )
            .filter(or_(Folder.owner_id == user_id, FolderPermission.id.isnot(None)))
        )

    def list_readable(
        self, user_id: str, parent_id: Optional[int] = None, any_parent: bool = False
    ) -> List[Tuple[Folder, Optional[GrantLevel]]]:
        """Readable folders, either directly under *parent_id* or (any_parent) all of them."""
        query = self._readable_query(user_id)
        if not any_parent:
            query = query.filter(self._parent_filter(parent_id))
        return query.order_by(Folder.name, Folder.id).all()

    def list_writable(self, user_id: str) -> List[Folder]:
        """Folders the user owns or holds an editor grant on."""
        return [
            folder
            for folder, level in self.list_readable(user_id, any_parent=True)
            if folder.owner_id == user_id or level == GrantLevel.EDITOR
        ]

    def load_subtree(self, root: Folder) -> Subtree:
        """Batch-load *root* and all its descendants, one query per tree level.

        A visited set guards against corrupt parent links; ids seen twice are
        skipped instead of looping.
        """
        tree = Subtree(root_id=root.id)
        tree.folders[root.id] = root
        tree.children[root.id] = []

        frontier = [root.id]
        while frontier:
            rows = (
                self.db.query(Folder)
                .filter(Folder.parent_id.in_(frontier))
                .order_by(Folder.id)
                .all()
            )
            next_frontier = []
            for folder in rows:
                if folder.id in tree.folders:
                    continue
                tree.folders[folder.id] = folder
                tree.children.setdefault(folder.parent_id, []).append(folder.id)
                tree.children[folder.id] = []
                next_frontier.append(folder.id)
            frontier = next_frontier

        # Pre-order via explicit stack: parents always precede their children.
        stack = [root.id]
        visited = set()
        while stack:
            fid = stack.pop()
            if fid in visited:
                continue
            visited.add(fid)
            tree.order.append(fid)
            stack.extend(reversed(tree.children.get(fid, [])))

        return tree

    def delete_rows(self, folder_id: int) -> None:
        self.db.query(Folder).filter(Folder.id == folder_id).delete(synchronize_session=False)
