"""
Warden - Workflow Buttons
=========================

Persistent buttons attached to workflow records.

DESIGN:
    Buttons are DynamicItems so a click on any record ever posted, even
    before a restart, is routed by its custom_id alone:
        "<prefix>_<action>_<user_id>"   e.g. "gban_escalate_123456789"
    The button itself carries no state. Its callback hands the click to
    WorkflowService, which re-reads the live record before deciding.
"""

from typing import Iterable

import discord

from warden.core.logger import logger

from .constants import (
    APPROVE,
    CUSTOM_ID_PATTERN,
    DENY,
    ESCALATE,
    PREFIX_TO_KIND,
    WORKFLOWS,
    initial_label,
)
from .records import Affordance


BUTTON_STYLES = {
    APPROVE: discord.ButtonStyle.success,
    DENY: discord.ButtonStyle.danger,
    ESCALATE: discord.ButtonStyle.primary,
}


class WorkflowButton(
    discord.ui.DynamicItem[discord.ui.Button],
    template=r"(?P<prefix>gban|gunban|bl|ubl)_(?P<action>approve|deny|escalate|remind)_(?P<user_id>\d+)",
):
    """One affordance of a workflow record."""

    def __init__(self, prefix: str, action: str, user_id: int, label: str = None, disabled: bool = False):
        self.kind = PREFIX_TO_KIND[prefix]
        self.action = action
        self.user_id = user_id
        super().__init__(
            discord.ui.Button(
                label=label or initial_label(self.kind, action),
                style=BUTTON_STYLES.get(action, discord.ButtonStyle.secondary),
                custom_id=f"{prefix}_{action}_{user_id}",
                disabled=disabled,
            )
        )

    @classmethod
    async def from_custom_id(
        cls,
        interaction: discord.Interaction,
        item: discord.ui.Button,
        match,
    ) -> "WorkflowButton":
        return cls(
            match.group("prefix"),
            match.group("action"),
            int(match.group("user_id")),
            label=item.label,
            disabled=item.disabled,
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        logger.tree("Workflow Button Clicked", [
            ("Actor", f"{interaction.user.name} ({interaction.user.id})"),
            ("Workflow", WORKFLOWS[self.kind].title),
            ("Action", self.action),
            ("User ID", str(self.user_id)),
        ], emoji="🔘")

        service = getattr(interaction.client, "workflow_service", None)
        if service is None:
            await interaction.response.send_message(
                "The bot is still starting up. Try again in a moment.",
                ephemeral=True,
            )
            return

        await service.handle_action(interaction, self.kind, self.action, self.user_id)


def build_view(affordances: Iterable[Affordance]) -> discord.ui.View:
    """Build a persistent view showing ``affordances`` in order."""
    view = discord.ui.View(timeout=None)
    for affordance in affordances:
        match = CUSTOM_ID_PATTERN.match(affordance.custom_id)
        if not match:
            continue
        view.add_item(WorkflowButton(
            match.group("prefix"),
            match.group("action"),
            int(match.group("user_id")),
            label=affordance.label,
            disabled=affordance.disabled,
        ))
    return view


def setup_workflow_views(bot) -> None:
    """Register the dynamic button so clicks on old records keep working."""
    bot.add_dynamic_items(WorkflowButton)
    logger.debug("Workflow Views Registered", [("Items", "WorkflowButton")])


__all__ = ["WorkflowButton", "build_view", "setup_workflow_views"]
