"""Keyword rules that route uploads into folders.

Each user keeps an ordered list of rules (priority desc, then oldest first).
At upload time the first active rule whose keyword occurs in the extracted
text, case-insensitively, decides the folder. An explicit folder choice by
the uploader always wins, and classification never fails an upload.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, ValidationError
from ..models import ClassificationRule, Folder
from ..models.classification_rule import KEYWORD_MAX_LENGTH
from ..repositories import FolderRepository, RuleRepository
from .access_resolver import AccessResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationResult:
    target_folder_id: Optional[int] = None
    matched: bool = False
    rule_id: Optional[int] = None
    matched_keyword: Optional[str] = None


NO_MATCH = ClassificationResult()


def validate_keyword(keyword: Optional[str]) -> str:
    if keyword is None or not keyword.strip():
        raise ValidationError("Keyword is required", field="keyword")
    keyword = keyword.strip()
    if len(keyword) > KEYWORD_MAX_LENGTH:
        raise ValidationError(
            f"Keyword must be {KEYWORD_MAX_LENGTH} characters or less", field="keyword"
        )
    return keyword


def match_rules(text: Optional[str], rules: List[ClassificationRule]) -> ClassificationResult:
    """First rule, in the given order, whose keyword occurs in *text*."""
    if not text:
        return NO_MATCH
    haystack = text.lower()
    for rule in rules:
        if rule.keyword and rule.keyword.lower() in haystack:
            return ClassificationResult(
                target_folder_id=rule.target_folder_id,
                matched=True,
                rule_id=rule.id,
                matched_keyword=rule.keyword,
            )
    return NO_MATCH


class ClassificationService:
    def __init__(self, db: Session):
        self.db = db
        self.access = AccessResolver(db)
        self.rule_repo = RuleRepository(db)
        self.folder_repo = FolderRepository(db)

    def classify(
        self, text: Optional[str], user_id: str, manual_folder_id: Optional[int] = None
    ) -> ClassificationResult:
        if manual_folder_id is not None:
            return ClassificationResult(target_folder_id=manual_folder_id, matched=False)
        if not text:
            return NO_MATCH
        try:
            rules = self.rule_repo.active_for_user(user_id)
        except sqlalchemy.exc.SQLAlchemyError as e:
            logger.warning("Failed to load classification rules: %s", e, extra={"user_id": user_id})
            self.db.rollback()
            return NO_MATCH

        result = match_rules(text, rules)
        if result.matched:
            logger.info(
                "Document auto-classified",
                extra={"user_id": user_id, "rule_id": result.rule_id, "folder_id": result.target_folder_id},
            )
        return result

    # -- Rule management -------------------------------------------------------

    def list_rules(self, user_id: str) -> List[ClassificationRule]:
        return self.rule_repo.list_for_user(user_id)

    def get_rule(self, rule_id: int, user_id: str) -> ClassificationRule:
        return self.rule_repo.get_for_user(rule_id, user_id)

    def create_rule(
        self, user_id: str, keyword: str, target_folder_id: int, priority: int = 0
    ) -> ClassificationRule:
        keyword = validate_keyword(keyword)
        self.access.require_write(target_folder_id, user_id)
        self._ensure_unique_keyword(user_id, keyword)

        rule = self.rule_repo.create(
            user_id=user_id,
            keyword=keyword,
            target_folder_id=target_folder_id,
            priority=priority or 0,
            is_active=True,
        )
        self.db.commit()
        self.db.refresh(rule)
        logger.info("Created classification rule", extra={"rule_id": rule.id, "user_id": user_id})
        return rule

    def update_rule(
        self,
        rule_id: int,
        user_id: str,
        keyword: Optional[str] = None,
        target_folder_id: Optional[int] = None,
        priority: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> ClassificationRule:
        """Partial update; only the given fields change."""
        rule = self.rule_repo.get_for_user(rule_id, user_id)

        new_keyword = validate_keyword(keyword) if keyword is not None else rule.keyword
        new_active = rule.is_active if is_active is None else is_active

        if target_folder_id is not None and target_folder_id != rule.target_folder_id:
            self.access.require_write(target_folder_id, user_id)
            rule.target_folder_id = target_folder_id
        if new_active and (keyword is not None or not rule.is_active):
            self._ensure_unique_keyword(user_id, new_keyword, exclude_id=rule.id)

        rule.keyword = new_keyword
        rule.is_active = new_active
        if priority is not None:
            rule.priority = priority
        self.db.commit()
        self.db.refresh(rule)
        logger.info("Updated classification rule", extra={"rule_id": rule.id, "user_id": user_id})
        return rule

    def delete_rule(self, rule_id: int, user_id: str) -> None:
        rule = self.rule_repo.get_for_user(rule_id, user_id)
        self.rule_repo.delete(rule)
        self.db.commit()
        logger.info("Deleted classification rule", extra={"rule_id": rule_id, "user_id": user_id})

    def writable_folders(self, user_id: str) -> List[Folder]:
        """Folders usable as rule targets."""
        return self.folder_repo.list_writable(user_id)

    def _ensure_unique_keyword(self, user_id: str, keyword: str, exclude_id: Optional[int] = None) -> None:
        if self.rule_repo.find_active_keyword(user_id, keyword, exclude_id=exclude_id):
            raise ConflictError(
                "A rule with this keyword already exists", details={"keyword": keyword}
            )
