"""
Warden - Workflow Constants
===========================

Fixed shapes of the four review workflows.

DESIGN:
    Each workflow kind maps to one custom_id prefix, one record title and
    a fixed set of affordances. The prefix is both how a clicked button is
    routed back to its workflow and how a record found in a log channel is
    attributed to a kind (ban and unban records may share a channel).
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from warden.core.case_ids import PunishmentType
from warden.core.config import EmbedColors


# =============================================================================
# Affordances
# =============================================================================

APPROVE = "approve"
DENY = "deny"
ESCALATE = "escalate"
REMIND = "remind"

ALL_AFFORDANCES = (APPROVE, DENY, ESCALATE, REMIND)

DEFAULT_LABELS = {
    APPROVE: "Approve",
    ESCALATE: "Escalate",
    REMIND: "Remind for Proof",
}

TRANSITION_LABELS = {
    APPROVE: "Approved by {actor}",
    DENY: "Denied by {actor}",
    ESCALATE: "Escalated by {actor}",
    REMIND: "Reminded by {actor}",
}

ESCALATED_LABEL = re.compile(r"^Escalated by .+")


# =============================================================================
# Record Fields
# =============================================================================

FIELD_CASE_ID = "Case ID"
FIELD_STAFF = "Staff Member"
FIELD_STAFF_ID = "Staff Member ID"
FIELD_USER_ID = "User Id"
FIELD_USERNAME = "Username"
FIELD_REASON = "Reason"
FIELD_ROLES_BEFORE = "Roles Before Blacklist"


# =============================================================================
# Workflow Kinds
# =============================================================================

class WorkflowKind(str, Enum):
    GLOBAL_BAN = "global_ban"
    GLOBAL_UNBAN = "global_unban"
    BLACKLIST = "blacklist"
    UNBLACKLIST = "unblacklist"


@dataclass(frozen=True)
class WorkflowShape:
    """
    Everything that differs between workflow kinds.

    Attributes:
        prefix: custom_id prefix of the record's buttons.
        title: Embed title of a published record.
        deny_label: Initial label of the deny button.
        affordances: Buttons attached to a new record, in display order.
        channel_attr: Config attribute holding the log channel ID.
        color: Embed color.
        punishment: Ledger kind written when the action is taken.
        clears_escalation_of: Kind whose older records lose their
            escalation when this kind is published.
        thread_name: Sub-thread name template, or None for no thread.
        thread_prompt: First message of the sub-thread.
    """

    prefix: str
    title: str
    deny_label: str
    affordances: Tuple[str, ...]
    channel_attr: str
    color: int
    punishment: PunishmentType
    clears_escalation_of: Optional[WorkflowKind] = None
    thread_name: Optional[str] = None
    thread_prompt: Optional[str] = None


WORKFLOWS: Dict[WorkflowKind, WorkflowShape] = {
    WorkflowKind.GLOBAL_BAN: WorkflowShape(
        prefix="gban",
        title="Global Ban Executed",
        deny_label="Deny Global Ban",
        affordances=ALL_AFFORDANCES,
        channel_attr="global_ban_log_channel_id",
        color=EmbedColors.GLOBAL_BAN,
        punishment=PunishmentType.GLOBAL_BAN,
        clears_escalation_of=WorkflowKind.GLOBAL_BAN,
        thread_name="Proof Request - {user_id}",
        thread_prompt="<@{staff_id}> Please provide proof for this global ban.",
    ),
    WorkflowKind.GLOBAL_UNBAN: WorkflowShape(
        prefix="gunban",
        title="Global Unban Executed",
        deny_label="Deny Global Unban",
        affordances=(APPROVE, DENY),
        channel_attr="global_unban_log_channel_id",
        color=EmbedColors.GLOBAL_UNBAN,
        punishment=PunishmentType.GLOBAL_UNBAN,
        clears_escalation_of=WorkflowKind.GLOBAL_BAN,
    ),
    WorkflowKind.BLACKLIST: WorkflowShape(
        prefix="bl",
        title="User Blacklisted",
        deny_label="Deny Blacklist",
        affordances=ALL_AFFORDANCES,
        channel_attr="blacklist_log_channel_id",
        color=EmbedColors.BLACKLIST,
        punishment=PunishmentType.BLACKLIST,
        clears_escalation_of=WorkflowKind.BLACKLIST,
        thread_name="Proof Request - {user_id}",
        thread_prompt="<@{staff_id}> Please provide proof for this blacklist.",
    ),
    WorkflowKind.UNBLACKLIST: WorkflowShape(
        prefix="ubl",
        title="User Unblacklisted",
        deny_label="Deny Unblacklist",
        affordances=(APPROVE, DENY),
        channel_attr="unblacklist_log_channel_id",
        color=EmbedColors.UNBLACKLIST,
        punishment=PunishmentType.UNBLACKLIST,
        clears_escalation_of=WorkflowKind.BLACKLIST,
        thread_name="Unblacklist Review - {user_id}",
        thread_prompt="<@{staff_id}> Unblacklist recorded. Use this thread for review.",
    ),
}

PREFIX_TO_KIND: Dict[str, WorkflowKind] = {shape.prefix: kind for kind, shape in WORKFLOWS.items()}

CUSTOM_ID_PATTERN = re.compile(
    r"^(?P<prefix>gban|gunban|bl|ubl)_(?P<action>approve|deny|escalate|remind)_(?P<user_id>\d+)$"
)


def build_custom_id(kind: WorkflowKind, action: str, user_id: int) -> str:
    return f"{WORKFLOWS[kind].prefix}_{action}_{user_id}"


def initial_label(kind: WorkflowKind, action: str) -> str:
    if action == DENY:
        return WORKFLOWS[kind].deny_label
    return DEFAULT_LABELS[action]


__all__ = [
    "APPROVE",
    "DENY",
    "ESCALATE",
    "REMIND",
    "ALL_AFFORDANCES",
    "DEFAULT_LABELS",
    "TRANSITION_LABELS",
    "ESCALATED_LABEL",
    "FIELD_CASE_ID",
    "FIELD_STAFF",
    "FIELD_STAFF_ID",
    "FIELD_USER_ID",
    "FIELD_USERNAME",
    "FIELD_REASON",
    "FIELD_ROLES_BEFORE",
    "WorkflowKind",
    "WorkflowShape",
    "WORKFLOWS",
    "PREFIX_TO_KIND",
    "CUSTOM_ID_PATTERN",
    "build_custom_id",
    "initial_label",
]
