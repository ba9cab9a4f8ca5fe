"""
Warden - Audit Log Package
==========================

Review workflow whose state lives in posted log records.

Structure:
    constants.py: Workflow kinds, custom_id format, labels and fields
    records.py: AuditRecord / Affordance and the AuditLog interface
    discord_log.py: AuditLog backed by channel history
    views.py: Persistent WorkflowButton
    service.py: WorkflowService (publish, derive_state, transition, clicks)
"""

from .constants import WORKFLOWS, WorkflowKind
from .records import Affordance, AuditLog, AuditLogUnavailable, AuditRecord
from .service import EscalationState, WorkflowService
from .views import WorkflowButton, setup_workflow_views

__all__ = [
    "WORKFLOWS",
    "WorkflowKind",
    "Affordance",
    "AuditLog",
    "AuditLogUnavailable",
    "AuditRecord",
    "EscalationState",
    "WorkflowService",
    "WorkflowButton",
    "setup_workflow_views",
]
