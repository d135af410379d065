"""Repository for classification rules."""

from typing import List, Optional

from sqlalchemy import func

from ..exceptions import RuleNotFoundError
from ..models import ClassificationRule
from .base import BaseRepository


class RuleRepository(BaseRepository[ClassificationRule]):
    """Data access layer for the classification_rules table."""

    model_class = ClassificationRule
    not_found_error = RuleNotFoundError

    def create(self, **fields) -> ClassificationRule:
        return self.add(ClassificationRule(**fields))

    def get_for_user(self, rule_id: int, user_id: str) -> ClassificationRule:
        """A rule owned by *user_id*; other users' rules look missing."""
        rule = (
            self.db.query(ClassificationRule)
            .filter(ClassificationRule.id == rule_id, ClassificationRule.user_id == user_id)
            .first()
        )
        if rule is None:
            raise RuleNotFoundError(rule_id)
        return rule

    def list_for_user(self, user_id: str) -> List[ClassificationRule]:
        """All of a user's rules in match order."""
        return (
            self.db.query(ClassificationRule)
            .filter(ClassificationRule.user_id == user_id)
            .order_by(
                ClassificationRule.priority.desc(),
                ClassificationRule.created_at.asc(),
                ClassificationRule.id.asc(),
            )
            .all()
        )

    def active_for_user(self, user_id: str) -> List[ClassificationRule]:
        return [rule for rule in self.list_for_user(user_id) if rule.is_active]

    def find_active_keyword(
        self, user_id: str, keyword: str, exclude_id: Optional[int] = None
    ) -> Optional[ClassificationRule]:
        """Active rule of this user whose keyword matches case-insensitively."""
        query = self.db.query(ClassificationRule).filter(
            ClassificationRule.user_id == user_id,
            ClassificationRule.is_active.is_(True),
            func.lower(ClassificationRule.keyword) == keyword.lower(),
        )
        if exclude_id is not None:
            query = query.filter(ClassificationRule.id != exclude_id)
        return query.first()

    def delete(self, rule: ClassificationRule) -> None:
        self.db.delete(rule)
        self.db.flush()

    def delete_targeting(self, folder_id: int) -> int:
        return (
            self.db.query(ClassificationRule)
            .filter(ClassificationRule.target_folder_id == folder_id)
            .delete(synchronize_session=False)
        )
