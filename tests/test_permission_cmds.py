import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import discord
import pytest

from rolegate.cog.commands import permission_cmds
from rolegate.datatypes.permission_datatypes import ContextType
from rolegate.permissions.permission_system import PermissionSystem
from rolegate.permissions.role_permissions import PERMISSION_ERRORS
from rolegate.util.duration import HOUR_MS

GUILD = 42


class Ctx:
    def __init__(self, user, guild_id=GUILD):
        self.guild_id = guild_id
        self.user = user
        self.responses = []

    async def respond(self, content=None, **kwargs):
        self.responses.append((content, kwargs))

    @property
    def last(self):
        return self.responses[-1][0]


@pytest.fixture()
def system(clock):
    return PermissionSystem(clock=clock, rng=lambda: 0.99)


@pytest.fixture()
def cog(system):
    return permission_cmds.PermissionCommandsCog(SimpleNamespace(), system)


@pytest.fixture()
def admin_ctx(make_member):
    return Ctx(make_member(user_id=9, administrator=True))


def _channel(channel_id="chan1", category_id=None):
    return SimpleNamespace(id=channel_id, category_id=category_id, mention=f"<#{channel_id}>")


def test_setup_adds_cog(system):
    captured = {}

    def fake_add_cog(cog):
        captured["cog"] = cog

    permission_cmds.setup(SimpleNamespace(add_cog=fake_add_cog), system)

    assert isinstance(captured["cog"], permission_cmds.PermissionCommandsCog)
    assert captured["cog"].system is system


def test_split_names():
    assert permission_cmds.split_names("economy, shop ticket") == ["economy", "shop", "ticket"]
    assert permission_cmds.split_names(None) == []


def test_context_of_channel_kinds():
    category = MagicMock(spec=discord.CategoryChannel)
    thread = MagicMock(spec=discord.Thread)
    thread.parent_id = 55

    assert permission_cmds.context_of(category) == (ContextType.CATEGORY, None)
    assert permission_cmds.context_of(thread) == (ContextType.THREAD, 55)
    assert permission_cmds.context_of(_channel(category_id=7)) == (ContextType.CHANNEL, 7)


@pytest.mark.asyncio
async def test_commands_require_a_guild(cog, make_member):
    ctx = Ctx(make_member(administrator=True), guild_id=None)

    await cog.handle_list(ctx)

    assert ctx.last == "This command can only be used in a server."


@pytest.mark.asyncio
async def test_commands_require_admin(cog, system, make_member):
    ctx = Ctx(make_member())
    target = make_member(user_id=5)

    await cog.handle_grant(ctx, target, "economy", "1h", "test")

    assert ctx.last == PERMISSION_ERRORS["admin"]
    assert ctx.responses[-1][1] == {"ephemeral": True}
    assert system.temporary_grants.get_user_grant(5, GUILD) is None


@pytest.mark.asyncio
async def test_grant_revoke_and_list(cog, system, clock, admin_ctx, make_member):
    target = make_member(user_id=5)

    await cog.handle_grant(admin_ctx, target, "economy,shop", "1h", "cover")
    assert admin_ctx.last.startswith("✅ Granted **economy, shop** to <@5> for 1h 0m")
    assert system.temporary_grants.has(5, GUILD, "shop") is True

    clock.advance(HOUR_MS // 2)
    await cog.handle_list(admin_ctx)
    assert "<@5>: economy, shop (30m 0s left)" in admin_ctx.last

    await cog.handle_revoke(admin_ctx, target, "shop", "done")
    assert admin_ctx.last == "✅ Revoked **shop** from <@5>. Remaining: economy."

    await cog.handle_revoke(admin_ctx, target, None, "done")
    await cog.handle_revoke(admin_ctx, target, None, "done")
    assert admin_ctx.last == "❌ No temporary permissions found for this user"


@pytest.mark.asyncio
async def test_grant_failure_is_reported(cog, admin_ctx, make_member):
    await cog.handle_grant(admin_ctx, make_member(user_id=5), "economy,root", "1h", "x")

    assert admin_ctx.last == "❌ Invalid permissions: root"


@pytest.mark.asyncio
async def test_check_lists_every_source(cog, system, admin_ctx, make_member):
    target = make_member(user_id=5)
    system.temporary_grants.grant(5, GUILD, "ticket", "1h", "9")
    system.groups.assign_to_user(5, GUILD, "shop-assistant")

    await cog.handle_check(admin_ctx, target)

    assert "Temporary: ticket (1h 0m left)" in admin_ctx.last
    assert "User groups: shop-assistant" in admin_ctx.last
    assert "Effective: shop, ticket" in admin_ctx.last


@pytest.mark.asyncio
async def test_group_commands(cog, system, admin_ctx):
    role = MagicMock(spec=discord.Role)
    role.id = 900
    role.mention = "<@&900>"

    await cog.handle_group_create(admin_ctx, "g1", "shop", None, "Shop helpers")
    assert admin_ctx.last == "✅ Created group **g1** with shop."

    await cog.handle_group_assign(admin_ctx, role, "g1", "x")
    assert system.groups.get_role_groups(900) == ["g1"]

    await cog.handle_group_delete(admin_ctx, "g1")
    assert admin_ctx.last == "❌ Cannot delete group that is currently in use"

    await cog.handle_group_remove(admin_ctx, role, "g1", "x")
    assert admin_ctx.last == "✅ Removed **g1** from <@&900>. Remaining: none."

    await cog.handle_group_tree(admin_ctx, "senior-staff")
    assert admin_ctx.last.splitlines()[0].startswith("└ **senior-staff**")

    await cog.handle_group_tree(admin_ctx, "ghost")
    assert admin_ctx.last == "❌ Permission group not found"


@pytest.mark.asyncio
async def test_context_set_and_check(cog, system, admin_ctx, make_member):
    channel = _channel("chan1", category_id="cat1")
    category = MagicMock(spec=discord.CategoryChannel)
    category.id = "cat1"
    category.mention = "<#cat1>"

    await cog.handle_context_set(admin_ctx, channel, "{not json", "x")
    assert admin_ctx.last.startswith("❌ Invalid JSON")

    await cog.handle_context_set(admin_ctx, category, json.dumps({"permissions": {"ticket": "r1"}}), "x")
    assert system.contexts.get_context_config("cat1").context_type is ContextType.CATEGORY

    await cog.handle_context_set(admin_ctx, channel, json.dumps({"settings": {"inheritFromParent": True}}), "x")
    await cog.handle_context_check(admin_ctx, make_member(user_id=5, role_ids=["r1"]), channel, "ticket")
    assert admin_ctx.last.endswith("**ALLOWED**")

    await cog.handle_context_get(admin_ctx, category)
    assert "✅ ticket: role r1" in admin_ctx.last

    await cog.handle_context_remove(admin_ctx, category, "x")
    await cog.handle_context_check(admin_ctx, make_member(user_id=5, role_ids=["r1"]), channel, "ticket")
    assert admin_ctx.last.endswith("**DENIED**")


@pytest.mark.asyncio
async def test_context_set_rejects_bad_config(cog, admin_ctx):
    await cog.handle_context_set(admin_ctx, _channel(), json.dumps({"permissions": {"root": True}}), "x")

    assert admin_ctx.last == "❌ Invalid permission: root"


@pytest.mark.asyncio
async def test_user_override_with_duration(cog, system, clock, admin_ctx, make_member):
    await cog.handle_user_override(admin_ctx, make_member(user_id=5), _channel(), "economy", None, "1h", "x")

    override = system.contexts.get_user_override(5, "chan1")
    assert override.expiry == clock.now + HOUR_MS
    assert admin_ctx.last == "✅ Override set for <@5> in <#chan1> for 1h 0m."

    await cog.handle_user_override(admin_ctx, make_member(user_id=5), _channel(), "economy", None, "soon", "x")
    assert admin_ctx.last == "❌ Invalid duration specified"


@pytest.mark.asyncio
async def test_role_permissions_and_list(cog, system, admin_ctx):
    role = SimpleNamespace(id=900, mention="<@&900>")

    await cog.handle_context_list(admin_ctx)
    assert admin_ctx.last == "No context permissions configured."

    await cog.handle_role_permissions(admin_ctx, role, _channel(), "economy", "x")
    assert system.contexts.get_role_context_permissions(900, "chan1").permissions == ["economy"]


@pytest.mark.asyncio
async def test_rate_limit_commands(cog, system, admin_ctx, make_member):
    target = make_member(user_id=5)
    system.rate_limiter.check_rate_limit(5, "economy")

    await cog.handle_rate_status(admin_ctx, target, "economy")
    assert "1/20 uses" in admin_ctx.last

    await cog.handle_rate_status(admin_ctx, target, "general")
    assert admin_ctx.last == "Category **general** has no rate limit."

    await cog.handle_rate_reset(admin_ctx, target, None, None)
    assert admin_ctx.last.startswith("❌")

    await cog.handle_rate_reset(admin_ctx, target, "economy", None)
    assert system.rate_limiter.get_rate_limit_status(5, "economy").uses == 0

    await cog.handle_set_cooldown(admin_ctx, "daily", -1)
    assert admin_ctx.last == "❌ Cooldown cannot be negative."

    await cog.handle_set_cooldown(admin_ctx, "daily", 30)
    assert system.rate_limiter.command_cooldowns["daily"] == 30000

    await cog.handle_rate_stats(admin_ctx)
    assert admin_ctx.last.startswith("Active cooldowns: 0")
