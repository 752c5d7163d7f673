"""Nightly batch re-evaluation of learners whose XP changed"""

from .batch_badge_eval import (
    CompleteBatchSystem,
    NightlyBatchProcessor,
    NightlyScheduler,
    PendingEvaluationEntry,
    PendingEvaluationsManager,
    XpChangeMonitor,
)

__all__ = [
    "CompleteBatchSystem", "NightlyBatchProcessor", "NightlyScheduler",
    "PendingEvaluationEntry", "PendingEvaluationsManager", "XpChangeMonitor",
]
