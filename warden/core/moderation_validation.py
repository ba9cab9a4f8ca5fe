"""
Warden - Moderation Validation
==============================

Role hierarchy checks shared by the blacklist action and the temp role
commands.

Usage:
    from warden.core.moderation_validation import validate_role_hierarchy

    result = validate_role_hierarchy(moderator, member, guild, "blacklist")
    if not result.is_valid:
        return ActionResult(False, result.error_message)
"""

from dataclasses import dataclass
from typing import Optional

from warden.core.config import is_developer
from warden.core.logger import logger


# =============================================================================
# Result Type
# =============================================================================

@dataclass
class ValidationResult:
    """Result of a validation check."""

    is_valid: bool
    error_message: Optional[str] = None


VALID = ValidationResult(is_valid=True)


def _bypasses_hierarchy(moderator, guild) -> bool:
    return is_developer(moderator.id) or getattr(guild, "owner_id", None) == moderator.id


def _blocked(action: str, reason: str, details, message: str) -> ValidationResult:
    logger.tree(f"{action.upper()} BLOCKED", [("Reason", reason)] + details, emoji="🚫")
    return ValidationResult(is_valid=False, error_message=message)


# =============================================================================
# Member Targets
# =============================================================================

def validate_role_hierarchy(moderator, target, guild, action: str) -> ValidationResult:
    """
    Refuse actions on members whose top role is not below the moderator's
    and the bot's.

    The developer and the guild owner skip the moderator comparison; the
    bot comparison always applies.
    """
    if not _bypasses_hierarchy(moderator, guild) and target.top_role >= moderator.top_role:
        return _blocked(action, "Role hierarchy", [
            ("Moderator", f"{moderator} ({moderator.id})"),
            ("Mod Role", moderator.top_role.name),
            ("Target", f"{target} ({target.id})"),
            ("Target Role", target.top_role.name),
        ], f"You cannot {action} someone with an equal or higher role.")

    bot_member = getattr(guild, "me", None)
    if bot_member is not None and target.top_role >= bot_member.top_role:
        return _blocked(action, "Bot role too low", [
            ("Target Role", target.top_role.name),
            ("Bot Top Role", bot_member.top_role.name),
        ], f"I cannot {action} this user because their role is not below mine.")

    return VALID


# =============================================================================
# Role Targets
# =============================================================================

def validate_role_assignable(moderator, role, guild, action: str) -> ValidationResult:
    """
    Refuse giving or taking a role that is not below the moderator's top
    role, or that the bot cannot manage.

    The bot applies the role with its own permissions, so without this
    a moderator could hand out any role under the bot's.
    """
    if getattr(role, "managed", False) or role.is_default():
        return _blocked(action, "Unassignable role", [("Role", role.name)],
                        f"{role.mention} is managed by Discord and cannot be assigned.")

    if not _bypasses_hierarchy(moderator, guild) and role >= moderator.top_role:
        return _blocked(action, "Role hierarchy", [
            ("Moderator", f"{moderator} ({moderator.id})"),
            ("Mod Role", moderator.top_role.name),
            ("Role", role.name),
        ], f"You can only {action} roles below your highest role.")

    bot_member = getattr(guild, "me", None)
    if bot_member is not None and role >= bot_member.top_role:
        return _blocked(action, "Bot role too low", [
            ("Role", role.name),
            ("Bot Top Role", bot_member.top_role.name),
        ], f"I can't {action} {role.mention}. Move my role above it first.")

    return VALID


__all__ = [
    "ValidationResult",
    "validate_role_hierarchy",
    "validate_role_assignable",
]
