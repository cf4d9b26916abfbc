"""
audit_batch -- periodic scheduling of full-client audits.

``schedule`` holds the pure evaluation functions; ``scheduler`` the
in-process polling loop driving ``AuditOrchestrator.run_full_audit`` for
daily and weekly monitoring.
"""
