"""
audit_services -- imperative shell around the audit engines.

    AuditOrchestrator          batch and full-client audits, monitoring
    CancellationToken          cooperative cancellation of long runs
    ReferenceTableStatistics   category averages from the reference data
    SqlHistoryRecorder         verification history on SQLAlchemy
    LoggingNotificationSink    notifications to the structured log
"""

from audit_services.cancellation import CancellationToken
from audit_services.history import SqlHistoryRecorder
from audit_services.notifications import LoggingNotificationSink
from audit_services.orchestrator import AuditOrchestrator, MonitoringMode, summarize_results
from audit_services.statistics import ReferenceTableStatistics

__all__ = [
    "AuditOrchestrator",
    "CancellationToken",
    "LoggingNotificationSink",
    "MonitoringMode",
    "ReferenceTableStatistics",
    "SqlHistoryRecorder",
    "summarize_results",
]
