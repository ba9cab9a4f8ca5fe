"""
Warden - Discord Audit Log
==========================

AuditLog backed by Discord channel history.

DESIGN:
    A record is a bot message with one embed and a row of WorkflowButtons.
    Reading parses the embed fields and the button components back into an
    AuditRecord; writing rebuilds the whole view with one button changed
    and edits the message in place. The proof thread is created from the
    record message, so it shares the message's ID.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import discord

from warden.core.constants import EMBED_FIELD_VALUE_MAX, LOG_TRUNCATE_SHORT, PROOF_THREAD_ARCHIVE_MINUTES
from warden.core.logger import logger

from .constants import CUSTOM_ID_PATTERN, FIELD_REASON, FIELD_ROLES_BEFORE, FIELD_USER_ID, PREFIX_TO_KIND, WorkflowKind
from .records import (
    Affordance,
    AuditLog,
    AuditLogUnavailable,
    AuditRecord,
    RecordPredicate,
    parse_subject_id,
)
from .views import build_view

if TYPE_CHECKING:
    from warden.bot import WardenBot


WIDE_FIELDS = {FIELD_REASON, FIELD_ROLES_BEFORE}


def record_from_message(message: Any) -> Optional[AuditRecord]:
    """Parse a posted message into a record, or None if it is not one."""
    embeds = getattr(message, "embeds", None) or []
    if not embeds:
        return None

    affordances: Dict[str, Affordance] = {}
    kind: Optional[WorkflowKind] = None
    button_user_id: Optional[int] = None

    for row in getattr(message, "components", None) or []:
        for child in getattr(row, "children", None) or []:
            match = CUSTOM_ID_PATTERN.match(getattr(child, "custom_id", None) or "")
            if not match:
                continue
            kind = PREFIX_TO_KIND[match.group("prefix")]
            button_user_id = int(match.group("user_id"))
            affordances[match.group("action")] = Affordance(
                name=match.group("action"),
                label=child.label or "",
                disabled=bool(child.disabled),
                custom_id=child.custom_id,
            )

    if kind is None:
        return None

    embed = embeds[0]
    fields = {f.name: f.value for f in embed.fields}
    subject_id = parse_subject_id(fields.get(FIELD_USER_ID))

    return AuditRecord(
        channel_id=message.channel.id,
        message_id=message.id,
        created_at=message.created_at.timestamp(),
        kind=kind,
        subject_id=subject_id if subject_id is not None else button_user_id,
        title=embed.title or "",
        fields=fields,
        affordances=affordances,
    )


class DiscordAuditLog(AuditLog):
    """Workflow records stored as messages in log channels."""

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_channel(self, channel_id: int):
        channel = self.bot.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self.bot.fetch_channel(channel_id)
        except discord.HTTPException as e:
            logger.warning("Log Channel Unavailable", [
                ("Channel ID", str(channel_id)),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return None

    async def _fetch_message(self, channel_id: int, message_id: int):
        channel = await self._get_channel(channel_id)
        if channel is None:
            return None
        try:
            return await channel.fetch_message(message_id)
        except discord.NotFound:
            return None

    def _is_own(self, message: Any) -> bool:
        return self.bot.user is not None and message.author.id == self.bot.user.id

    # =========================================================================
    # AuditLog
    # =========================================================================

    async def publish(
        self,
        channel_id: int,
        kind: WorkflowKind,
        title: str,
        color: int,
        fields: List[Tuple[str, str]],
        affordances: List[Affordance],
    ) -> Optional[AuditRecord]:
        channel = await self._get_channel(channel_id)
        if channel is None:
            return None

        embed = discord.Embed(title=title, color=color, timestamp=datetime.now(timezone.utc))
        for name, value in fields:
            embed.add_field(
                name=name,
                value=(value or "None")[:EMBED_FIELD_VALUE_MAX],
                inline=name not in WIDE_FIELDS,
            )

        try:
            message = await channel.send(embed=embed, view=build_view(affordances))
        except discord.Forbidden:
            logger.warning("Workflow Record Not Posted", [
                ("Channel ID", str(channel_id)),
                ("Reason", "Missing permissions"),
            ])
            return None
        except discord.HTTPException as e:
            logger.warning("Workflow Record Not Posted", [
                ("Channel ID", str(channel_id)),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return None

        return record_from_message(message)

    async def query(self, channel_id: int, predicate: RecordPredicate, limit: int) -> List[AuditRecord]:
        channel = await self._get_channel(channel_id)
        if channel is None:
            raise AuditLogUnavailable(f"Channel {channel_id} is not accessible")

        matches: List[AuditRecord] = []
        try:
            async for message in channel.history(limit=limit):
                if not self._is_own(message):
                    continue
                record = record_from_message(message)
                if record is not None and predicate(record):
                    matches.append(record)
        except discord.HTTPException as e:
            raise AuditLogUnavailable(str(e)) from e

        matches.sort(key=lambda r: r.created_at, reverse=True)
        return matches

    async def fetch_record(self, channel_id: int, message_id: int) -> Optional[AuditRecord]:
        try:
            message = await self._fetch_message(channel_id, message_id)
        except discord.HTTPException as e:
            raise AuditLogUnavailable(str(e)) from e
        if message is None:
            return None
        return record_from_message(message)

    async def mutate_affordance(self, record: AuditRecord, name: str, label: str, disabled: bool) -> bool:
        try:
            message = await self._fetch_message(record.channel_id, record.message_id)
            if message is None:
                return False

            live = record_from_message(message)
            if live is None or name not in live.affordances:
                return False

            live.affordances[name].label = label
            live.affordances[name].disabled = disabled
            await message.edit(view=build_view(live.affordances.values()))
        except discord.HTTPException as e:
            logger.warning("Workflow Record Update Failed", [
                ("Message ID", str(record.message_id)),
                ("Affordance", name),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return False

        record.affordances = live.affordances
        return True

    async def open_thread(self, record: AuditRecord, name: str, content: str) -> bool:
        try:
            message = await self._fetch_message(record.channel_id, record.message_id)
            if message is None:
                return False
            thread = await message.create_thread(
                name=name,
                auto_archive_duration=PROOF_THREAD_ARCHIVE_MINUTES,
            )
            await thread.send(content)
        except discord.HTTPException as e:
            logger.warning("Proof Thread Not Created", [
                ("Message ID", str(record.message_id)),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return False
        return True

    async def post_to_thread(self, record: AuditRecord, content: str) -> bool:
        thread = self.bot.get_channel(record.message_id)
        try:
            if thread is None:
                thread = await self.bot.fetch_channel(record.message_id)
            await thread.send(content)
        except discord.NotFound:
            return False
        except discord.HTTPException as e:
            logger.debug("Thread Post Failed", [
                ("Thread ID", str(record.message_id)),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return False
        return True


__all__ = ["DiscordAuditLog", "record_from_message"]
