"""Translation workflow: state machine, assignments and the auto-translation queue."""

from modules.localization.workflow.assignments import AssignmentRule, AssignmentRules
from modules.localization.workflow.engine import SYSTEM_REVIEWER, WorkflowEngine
from modules.localization.workflow.processor import AutoTranslateProcessor
from modules.localization.workflow.queue import AUTO_TRANSLATE, TranslationWorkQueue

__all__ = [
    "AssignmentRule",
    "AssignmentRules",
    "SYSTEM_REVIEWER",
    "WorkflowEngine",
    "AutoTranslateProcessor",
    "AUTO_TRANSLATE",
    "TranslationWorkQueue",
]
