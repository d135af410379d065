"""File storage collaborator.

Document rows only hold a path; the bytes live under ``settings.upload_dir``.
Both operations are best-effort: a failure is logged and reported through the
return value, never raised, so database work is not undone by a missing file.
"""

import logging
import shutil
import uuid
from pathlib import Path
from typing import Optional, Protocol

from ..core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class FileStorage(Protocol):
    def delete_file(self, path: Optional[str]) -> bool: ...

    def copy_file(self, path: Optional[str]) -> Optional[str]: ...


class LocalFileStorage:
    """FileStorage over a local directory."""

    def __init__(self, root: Optional[str] = None, config: Optional[Settings] = None):
        config = config or default_settings
        self.root = Path(root or config.upload_dir).resolve()

    def _resolve(self, path: Optional[str]) -> Optional[Path]:
        """Absolute path inside the upload root, or None if it escapes it."""
        if not path:
            return None
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        candidate = candidate.resolve()
        if candidate != self.root and self.root not in candidate.parents:
            logger.warning(
                "Refusing file operation outside upload directory",
                extra={"path": path, "upload_dir": str(self.root)},
            )
            return None
        return candidate

    def delete_file(self, path: Optional[str]) -> bool:
        target = self._resolve(path)
        if target is None:
            return False
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning("File already gone", extra={"path": str(target)})
            return False
        except OSError as e:
            logger.warning("Failed to delete file %s: %s", target, e)
            return False
        logger.info("Deleted file", extra={"path": str(target)})
        return True

    def copy_file(self, path: Optional[str]) -> Optional[str]:
        """Duplicate a stored file next to the original; returns the new path."""
        source = self._resolve(path)
        if source is None:
            return None
        destination = source.with_name(f"{uuid.uuid4().hex}-{source.name}")
        try:
            shutil.copy2(source, destination)
        except OSError as e:
            logger.warning("Failed to copy file %s: %s", source, e)
            return None
        return str(destination)
