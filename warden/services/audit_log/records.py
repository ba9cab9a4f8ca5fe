"""
Warden - Audit Log Records
==========================

Parsed view of a posted workflow record and the log interface behind it.

DESIGN:
    Workflow state is never stored locally. A record is whatever a log
    channel currently shows: its embed fields and the labels and disabled
    flags of its buttons. AuditLog is the only way the workflow reads or
    writes that state, so the Discord implementation and the in-memory
    test double are interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .constants import ESCALATE, ESCALATED_LABEL, FIELD_CASE_ID, FIELD_STAFF_ID, WorkflowKind


class AuditLogUnavailable(Exception):
    """Raised when a configured log channel cannot be read."""

    pass


@dataclass
class Affordance:
    """One button on a record."""

    name: str
    label: str
    disabled: bool = False
    custom_id: str = ""


@dataclass
class AuditRecord:
    """
    A workflow record as read back from its log channel.

    Attributes:
        channel_id: Channel the record was posted in.
        message_id: Message carrying the record.
        created_at: Creation time (epoch seconds) used to pick the newest.
        kind: Workflow kind, recovered from the button custom_ids.
        subject_id: User the record is about.
        fields: Embed fields by name.
        affordances: Buttons by affordance name, in display order.
    """

    channel_id: int
    message_id: int
    created_at: float
    kind: WorkflowKind
    subject_id: Optional[int]
    title: str = ""
    fields: Dict[str, str] = field(default_factory=dict)
    affordances: Dict[str, Affordance] = field(default_factory=dict)

    @property
    def is_escalated(self) -> bool:
        escalate = self.affordances.get(ESCALATE)
        return bool(escalate and escalate.disabled and ESCALATED_LABEL.match(escalate.label))

    @property
    def case_id(self) -> Optional[str]:
        value = self.fields.get(FIELD_CASE_ID)
        return value.strip("` ") if value else None

    @property
    def staff_id(self) -> Optional[int]:
        return parse_subject_id(self.fields.get(FIELD_STAFF_ID))


RecordPredicate = Callable[[AuditRecord], bool]


def parse_subject_id(value: Optional[str]) -> Optional[int]:
    """
    Read a user ID out of an embed field value.

    Accepts "123", "`123`" and "<@123>".
    """
    if not value:
        return None
    cleaned = value.strip().strip("`").strip()
    if cleaned.startswith("<@") and cleaned.endswith(">"):
        cleaned = cleaned[2:-1].lstrip("!")
    return int(cleaned) if cleaned.isdigit() else None


# =============================================================================
# Log Interface
# =============================================================================

class AuditLog(ABC):
    """Append-mostly log of workflow records."""

    @abstractmethod
    async def publish(
        self,
        channel_id: int,
        kind: WorkflowKind,
        title: str,
        color: int,
        fields: List[Tuple[str, str]],
        affordances: List[Affordance],
    ) -> Optional[AuditRecord]:
        """Post a new record. Returns None if it could not be posted."""
        pass

    @abstractmethod
    async def query(self, channel_id: int, predicate: RecordPredicate, limit: int) -> List[AuditRecord]:
        """
        Return records among the newest ``limit`` in a channel that match.

        Results are ordered newest first. Only records this bot posted
        are considered.

        Raises:
            AuditLogUnavailable: The channel exists in config but could
                not be read.
        """
        pass

    @abstractmethod
    async def fetch_record(self, channel_id: int, message_id: int) -> Optional[AuditRecord]:
        """Re-read one record live, or None if it no longer exists."""
        pass

    @abstractmethod
    async def mutate_affordance(self, record: AuditRecord, name: str, label: str, disabled: bool) -> bool:
        """Rewrite one button of a posted record, leaving the others as they are."""
        pass

    @abstractmethod
    async def open_thread(self, record: AuditRecord, name: str, content: str) -> bool:
        """Attach a sub-thread to a record and seed it with ``content``."""
        pass

    @abstractmethod
    async def post_to_thread(self, record: AuditRecord, content: str) -> bool:
        """Append a message to a record's sub-thread if it has one."""
        pass


__all__ = [
    "AuditLogUnavailable",
    "Affordance",
    "AuditRecord",
    "AuditLog",
    "RecordPredicate",
    "parse_subject_id",
]
