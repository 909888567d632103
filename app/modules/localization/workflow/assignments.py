"""Assignment rules for submitted translations.

Rules come from ``LOCALIZATION_ASSIGNMENT_RULES``; the first rule whose
criteria all match a row wins. A rule without criteria matches everything.
"""

from datetime import datetime, timedelta
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from modules.localization.domain.models import Translation, normalize_language_code


class AssignmentRule(BaseModel):
    assignee: str = Field(..., min_length=1)
    target_language: Optional[str] = None
    resource_type: Optional[str] = None
    priority: Optional[str] = None
    due_in_hours: Optional[int] = Field(default=None, gt=0)

    @field_validator("target_language", mode="before")
    @classmethod
    def _normalize_target(cls, value: Any) -> Any:
        return normalize_language_code(value) if value else None

    def matches(self, row: Translation) -> bool:
        if self.target_language and self.target_language != row.target_language:
            return False
        if self.resource_type and self.resource_type != row.resource_type:
            return False
        if self.priority and self.priority != row.workflow.priority:
            return False
        return True


class AssignmentRules:
    def __init__(self, rules: Iterable[Mapping[str, Any]] = ()):
        self.rules: List[AssignmentRule] = [AssignmentRule.model_validate(r) for r in rules]

    def match(self, row: Translation) -> Optional[AssignmentRule]:
        return next((rule for rule in self.rules if rule.matches(row)), None)

    def changes_for(self, row: Translation, now: datetime) -> dict:
        """Workflow changes applied on submit (existing values are kept)."""
        rule = self.match(row)
        if rule is None:
            return {}
        changes = {}
        if not row.workflow.assignee:
            changes["workflow.assignee"] = rule.assignee
        if rule.due_in_hours and row.workflow.due_date is None:
            changes["workflow.due_date"] = now + timedelta(hours=rule.due_in_hours)
        return changes
