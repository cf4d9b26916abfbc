"""
audit_engines -- pure audit rule engines.

    EntryValidator      per-entry rule evaluation
    score_confidence    problem list -> confidence in [0, 1]
    CorrectionAdvisor   heuristic correction suggestions
    BatchCrossChecker   whole-batch debit/credit balance

Engines do no I/O of their own; collaborators arrive through
``audit_kernel.domain.ports``.
"""

from audit_engines.correction import CorrectionAdvisor
from audit_engines.cross_check import BatchCrossChecker
from audit_engines.scoring import SEVERITY_PENALTIES, score_confidence
from audit_engines.validator import EntryValidator

__all__ = [
    "BatchCrossChecker",
    "CorrectionAdvisor",
    "EntryValidator",
    "SEVERITY_PENALTIES",
    "score_confidence",
]
