"""
Warden - Test Fixtures
======================

Shared fixtures for all tests.

The discord and aiohttp modules are replaced before any warden import so
tests run without a gateway connection. Stores run on tmp files with a
controllable clock.
"""

import copy
import os
import random
import sys
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set up test environment before importing modules
os.environ["TESTING"] = "1"
os.environ.setdefault("DISCORD_TOKEN", "test-token")
os.environ.setdefault("DEVELOPER_ID", "1")
os.environ["WARDEN_LOGS_DIR"] = tempfile.mkdtemp(prefix="warden-logs-")


# =============================================================================
# aiohttp Mock
# =============================================================================

class MockClientError(Exception):
    pass


aiohttp_mock = MagicMock()
aiohttp_mock.ClientError = MockClientError
sys.modules["aiohttp"] = aiohttp_mock


# =============================================================================
# discord Mock
# =============================================================================

class MockHTTPException(Exception):
    """Stand-in for discord.HTTPException; accepts any constructor args."""

    def __init__(self, *args, **kwargs):
        super().__init__(*(a for a in args if isinstance(a, str)))


class MockForbidden(MockHTTPException):
    pass


class MockNotFound(MockHTTPException):
    pass


class MockLoginFailure(Exception):
    pass


class MockObject:
    """Mock discord.Object (a bare snowflake)."""

    def __init__(self, id):
        self.id = id

    def __repr__(self):
        return f"<Object id={self.id}>"


class MockEmbedField:
    """Mock Discord Embed Field."""

    def __init__(self, name="", value="", inline=True):
        self.name = name
        self.value = value
        self.inline = inline


class MockEmbed:
    """Mock Discord Embed that tracks fields."""

    def __init__(self, **kwargs):
        self.title = kwargs.get("title", "")
        self.description = kwargs.get("description", "")
        self.color = kwargs.get("color")
        self.timestamp = kwargs.get("timestamp")
        self.fields = []

    def add_field(self, name="", value="", inline=True):
        self.fields.append(MockEmbedField(name, value, inline))
        return self


class MockView:
    """Mock Discord View that tracks items."""

    def __init__(self, timeout=None):
        self.timeout = timeout
        self.children = []

    def add_item(self, item):
        self.children.append(item)
        return self


class MockButton:
    """Mock Discord Button."""

    def __init__(self, label="", url=None, style=None, emoji=None, custom_id=None, row=None, disabled=False):
        self.label = label
        self.url = url
        self.style = style
        self.emoji = emoji
        self.custom_id = custom_id
        self.row = row
        self.disabled = disabled


class DynamicItemMeta(type):
    """Metaclass for DynamicItem that allows subscripting and template kwarg."""

    def __getitem__(cls, item):
        return cls

    def __new__(mcs, name, bases, namespace, template=None, **kwargs):
        return super().__new__(mcs, name, bases, namespace)


class MockDynamicItemBase(metaclass=DynamicItemMeta):
    """Mock base class for DynamicItem."""

    def __init__(self, item=None):
        self.item = item
        self.label = getattr(item, "label", "") if item else ""
        self.custom_id = getattr(item, "custom_id", None) if item else None
        self.disabled = getattr(item, "disabled", False) if item else False

    def __init_subclass__(cls, template=None, **kwargs):
        super().__init_subclass__(**kwargs)


discord_mock = MagicMock()
discord_mock.Embed = MockEmbed
discord_mock.Object = MockObject
discord_mock.ui = MagicMock()
discord_mock.ui.View = MockView
discord_mock.ui.Button = MockButton
discord_mock.ui.DynamicItem = MockDynamicItemBase
discord_mock.ButtonStyle = MagicMock()
discord_mock.HTTPException = MockHTTPException
discord_mock.Forbidden = MockForbidden
discord_mock.NotFound = MockNotFound
discord_mock.LoginFailure = MockLoginFailure


def _passthrough(*args, **kwargs):
    """Decorator factory that leaves the function untouched."""
    def decorator(func):
        return func
    return decorator


class MockCog:
    """Plain base class so cogs stay real classes with callable commands."""

    listener = staticmethod(_passthrough)

    def __init__(self, *args, **kwargs):
        pass


class MockCommandGroup:
    """Mock app_commands.Group; its subcommands stay plain methods."""

    def __init__(self, *args, **kwargs):
        pass

    def command(self, *args, **kwargs):
        return _passthrough()


app_commands_mock = MagicMock()
app_commands_mock.Group = MockCommandGroup
app_commands_mock.command = _passthrough
app_commands_mock.describe = _passthrough
app_commands_mock.guild_only = _passthrough
discord_mock.app_commands = app_commands_mock

commands_mock = MagicMock()
commands_mock.Cog = MockCog
ext_mock = MagicMock()
ext_mock.commands = commands_mock

sys.modules["discord"] = discord_mock
sys.modules["discord.app_commands"] = app_commands_mock
sys.modules["discord.ext"] = ext_mock
sys.modules["discord.ext.commands"] = commands_mock
sys.modules["discord.ui"] = discord_mock.ui


from warden.core import config as config_module  # noqa: E402
from warden.core.database import CaseLedger, RoleBackupStore, TempRoleStore  # noqa: E402
from warden.services.audit_log.records import AuditLog, AuditLogUnavailable  # noqa: E402


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# =============================================================================
# Config
# =============================================================================

OWNER_ROLE = 10
APPROVER_ROLE = 11
GLOBAL_BAN_ROLE = 12
BLACKLIST_STAFF_ROLE = 13
BLACKLIST_ROLE_ID = 500
VERIFIED_ROLE_ID = 501
GBAN_CHANNEL = 9001
BL_CHANNEL = 9002


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Install a Config with every workflow channel and role set."""
    config = config_module.Config(
        discord_token="test-token",
        developer_id=1,
        global_ban_log_channel_id=GBAN_CHANNEL,
        global_unban_log_channel_id=GBAN_CHANNEL,
        blacklist_log_channel_id=BL_CHANNEL,
        unblacklist_log_channel_id=BL_CHANNEL,
        blacklist_role_id=BLACKLIST_ROLE_ID,
        verified_role_id=VERIFIED_ROLE_ID,
        ownership_role_ids={OWNER_ROLE},
        approver_role_ids={APPROVER_ROLE},
        global_ban_role_ids={GLOBAL_BAN_ROLE},
        blacklist_role_ids={BLACKLIST_STAFF_ROLE},
        send_dms=False,
        data_dir=tmp_path,
    )
    monkeypatch.setattr(config_module, "_config", config)
    return config


# =============================================================================
# Stores
# =============================================================================

@pytest.fixture
def ledger(tmp_path, clock, test_config):
    return CaseLedger(tmp_path / "case_database.json", clock=clock, rng=random.Random(0))


@pytest.fixture
def backups(tmp_path, clock, test_config):
    return RoleBackupStore(tmp_path / "role_backups.json", clock=clock)


@pytest.fixture
def temp_store(tmp_path, clock, test_config):
    return TempRoleStore(tmp_path / "temp_roles.json", clock=clock)


# =============================================================================
# Discord Fakes
# =============================================================================

class FakeRole:
    """Role with identity equality and position ordering, like discord.Role."""

    def __init__(self, id, name="role", default=False, managed=False, position=1):
        self.id = id
        self.name = name
        self.managed = managed
        self.position = 0 if default else position
        self._default = default
        self.mention = f"<@&{id}>"

    def is_default(self):
        return self._default

    def _key(self):
        return (self.position, self.id)

    def __lt__(self, other):
        return self._key() < other._key()

    def __le__(self, other):
        return self._key() <= other._key()

    def __gt__(self, other):
        return self._key() > other._key()

    def __ge__(self, other):
        return self._key() >= other._key()

    def __repr__(self):
        return f"<FakeRole {self.name} ({self.id})>"


class FakeMember:
    """Member whose add_roles/remove_roles really change ``roles``."""

    def __init__(self, id, name="member", roles=None, guild=None):
        self.id = id
        self.name = name
        self.roles = list(roles or [])
        self.guild = guild
        self.mention = f"<@{id}>"
        self.add_roles = AsyncMock(side_effect=self._add_roles)
        self.remove_roles = AsyncMock(side_effect=self._remove_roles)
        self.send = AsyncMock()

    @property
    def top_role(self):
        if self.roles:
            return max(self.roles, key=FakeRole._key)
        return self.guild.default_role if self.guild else FakeRole(0, "@everyone", default=True)

    async def _add_roles(self, *roles, reason=None):
        for role in roles:
            if role not in self.roles:
                self.roles.append(role)

    async def _remove_roles(self, *roles, reason=None):
        for role in roles:
            if role in self.roles:
                self.roles.remove(role)

    def __str__(self):
        return self.name


BOT_ROLE_POSITION = 50


class FakeGuild:
    """Guild that resolves roles and members from plain dicts."""

    def __init__(self, id, name="guild", roles=None, members=None, owner_id=None):
        self.id = id
        self.name = name
        self.owner_id = owner_id
        self._roles = {r.id: r for r in roles or []}
        self._members = {}
        self.default_role = FakeRole(id, "@everyone", default=True)
        self.me = FakeMember(
            999, "Warden",
            roles=[self.default_role, FakeRole(900, "Warden", position=BOT_ROLE_POSITION)],
            guild=self,
        )
        for member in members or []:
            self.add_member(member)
        self.ban = AsyncMock()
        self.unban = AsyncMock()

    def add_member(self, member):
        member.guild = self
        self._members[member.id] = member
        return member

    def get_role(self, role_id):
        return self._roles.get(role_id)

    def get_member(self, user_id):
        return self._members.get(user_id)

    async def fetch_member(self, user_id):
        member = self._members.get(user_id)
        if member is None:
            raise MockNotFound("Unknown Member")
        return member


@pytest.fixture
def blacklist_role():
    return FakeRole(BLACKLIST_ROLE_ID, "Blacklisted", position=1)


@pytest.fixture
def verified_role():
    return FakeRole(VERIFIED_ROLE_ID, "Verified", position=2)


@pytest.fixture
def guild(test_config, blacklist_role, verified_role):
    """Main server. Depends on test_config so role-class checks see the test roles."""
    return FakeGuild(
        100,
        "Main Server",
        roles=[
            blacklist_role,
            verified_role,
            FakeRole(OWNER_ROLE, "Owner", position=10),
            FakeRole(APPROVER_ROLE, "Approver", position=5),
            FakeRole(GLOBAL_BAN_ROLE, "Global Ban Staff", position=6),
            FakeRole(BLACKLIST_STAFF_ROLE, "Blacklist Staff", position=7),
        ],
    )


def _staff(guild, user_id, name, *role_ids):
    member = FakeMember(user_id, name, roles=[guild.default_role] + [guild.get_role(r) for r in role_ids])
    return guild.add_member(member)


@pytest.fixture
def owner(guild):
    return _staff(guild, 2001, "owner", OWNER_ROLE)


@pytest.fixture
def approver(guild):
    return _staff(guild, 2002, "approver", APPROVER_ROLE)


@pytest.fixture
def staff(guild):
    """Can run global bans and blacklists but cannot approve or deny."""
    return _staff(guild, 2003, "staff", GLOBAL_BAN_ROLE, BLACKLIST_STAFF_ROLE)


@pytest.fixture
def outsider(guild):
    return _staff(guild, 2004, "outsider")


@pytest.fixture
def subject(guild, verified_role):
    return guild.add_member(FakeMember(3001, "subject", roles=[guild.default_role, verified_role]))


@pytest.fixture
def mock_bot(guild):
    """Create a mock bot instance with one guild."""
    bot = MagicMock()
    bot.guilds = [guild]
    bot.get_guild = MagicMock(side_effect=lambda gid: {g.id: g for g in bot.guilds}.get(gid))
    bot.get_channel = MagicMock(return_value=None)
    bot.wait_until_ready = AsyncMock()
    bot.moderation = None
    return bot


# =============================================================================
# Audit Log Fake
# =============================================================================

class FakeAuditLog(AuditLog):
    """In-memory AuditLog. Reads return copies so only mutate_affordance changes state."""

    def __init__(self, clock):
        self.clock = clock
        self.records = []
        self.threads = {}
        self.mutations = []
        self.unavailable = False
        self._seq = 0

    def _find(self, message_id):
        for record in self.records:
            if record.message_id == message_id:
                return record
        return None

    async def publish(self, channel_id, kind, title, color, fields, affordances):
        from warden.services.audit_log.records import AuditRecord, parse_subject_id
        from warden.services.audit_log.constants import FIELD_USER_ID

        self._seq += 1
        field_map = dict(fields)
        record = AuditRecord(
            channel_id=channel_id,
            message_id=10_000 + self._seq,
            created_at=self.clock() + self._seq * 0.001,
            kind=kind,
            subject_id=parse_subject_id(field_map.get(FIELD_USER_ID)),
            title=title,
            fields=field_map,
            affordances={a.name: copy.deepcopy(a) for a in affordances},
        )
        self.records.append(record)
        return copy.deepcopy(record)

    async def query(self, channel_id, predicate, limit):
        if self.unavailable:
            raise AuditLogUnavailable("channel unreadable")
        window = sorted(
            (r for r in self.records if r.channel_id == channel_id),
            key=lambda r: r.created_at,
            reverse=True,
        )[:limit]
        return [copy.deepcopy(r) for r in window if predicate(r)]

    async def fetch_record(self, channel_id, message_id):
        if self.unavailable:
            raise AuditLogUnavailable("channel unreadable")
        record = self._find(message_id)
        return copy.deepcopy(record) if record else None

    async def mutate_affordance(self, record, name, label, disabled):
        stored = self._find(record.message_id)
        if stored is None or name not in stored.affordances:
            return False
        stored.affordances[name].label = label
        stored.affordances[name].disabled = disabled
        record.affordances = copy.deepcopy(stored.affordances)
        self.mutations.append((record.message_id, name, label, disabled))
        return True

    async def open_thread(self, record, name, content):
        self.threads[record.message_id] = {"name": name, "messages": [content]}
        return True

    async def post_to_thread(self, record, content):
        thread = self.threads.get(record.message_id)
        if thread is None:
            return False
        thread["messages"].append(content)
        return True


@pytest.fixture
def audit_log(clock):
    return FakeAuditLog(clock)


@pytest.fixture
def workflow(mock_bot, audit_log, test_config):
    from warden.services.audit_log import WorkflowService
    return WorkflowService(mock_bot, audit_log)


@pytest.fixture
def moderation(mock_bot, workflow, ledger, backups):
    from warden.services.moderation import ModerationService
    service = ModerationService(mock_bot, workflow, ledger=ledger, backups=backups)
    mock_bot.moderation = service
    return service


def make_interaction(user, guild, record):
    """Interaction for a click on ``record`` by ``user``."""
    interaction = MagicMock()
    interaction.user = user
    interaction.guild = guild
    interaction.channel_id = record.channel_id
    interaction.message.id = record.message_id
    interaction.response.defer = AsyncMock()
    interaction.response.send_message = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction
