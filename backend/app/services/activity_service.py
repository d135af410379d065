"""Document activity log: who created, viewed, edited, downloaded or shared what.

Usage in service layer:
    activity_service.record(db, document_id=7, user_id="alice", kind="viewed")

``record`` is fire-and-forget. It never raises; activity failures are logged
but don't break the operation that triggered them.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..models import DocumentActivity
from ..models.activity import ACTIVITY_TYPES

logger = logging.getLogger(__name__)


def record(
    db: Session,
    document_id: int,
    user_id: str,
    kind: str,
    config: Optional[Settings] = None,
) -> bool:
    """Append one activity row and commit it. Returns True if a row was written.

    Unknown kinds are ignored. A repeat of the same (document, user, kind)
    inside the dedup window is skipped.
    """
    config = config or default_settings
    if kind not in ACTIVITY_TYPES:
        logger.warning("Ignoring unknown activity type %r", kind, extra={"document_id": document_id})
        return False

    try:
        if config.activity_dedup_seconds > 0:
            cutoff = datetime.now(timezone.utc) - timedelta(seconds=config.activity_dedup_seconds)
            recent = (
                db.query(DocumentActivity.id)
                .filter(
                    DocumentActivity.document_id == document_id,
                    DocumentActivity.user_id == user_id,
                    DocumentActivity.activity_type == kind,
                    DocumentActivity.created_at >= cutoff,
                )
                .first()
            )
            if recent is not None:
                return False

        db.add(DocumentActivity(
            document_id=document_id,
            user_id=user_id,
            activity_type=kind,
            created_at=datetime.now(timezone.utc),
        ))
        db.commit()
        return True
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to record activity: %s", e)
        db.rollback()
        return False


def history(db: Session, document_id: int, limit: int = 50) -> List[DocumentActivity]:
    """Activity for one document, newest first."""
    return (
        db.query(DocumentActivity)
        .filter(DocumentActivity.document_id == document_id)
        .order_by(DocumentActivity.created_at.desc(), DocumentActivity.id.desc())
        .limit(limit)
        .all()
    )
