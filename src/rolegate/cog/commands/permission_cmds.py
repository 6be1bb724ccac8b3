"""
Permission administration cog.

Four slash command groups expose the permission core to server admins:
- /temppermissions: grant, revoke, extend, list and inspect temporary permissions
- /permgroups: manage permission groups and their user/role assignments
- /contextperms: per-channel configurations, user overrides and role grants
- /ratelimits: inspect and reset cooldowns and rate limit windows

Every command requires the admin permission and replies ephemerally.
The handlers only translate between Discord objects and the stores; all
validation happens in the stores.
"""

import json
from typing import List, Optional, Tuple

import discord
from discord import Option
from discord.ext import commands

from rolegate.datatypes.permission_datatypes import ALL_PERMISSIONS, ContextType, OperationResult
from rolegate.datatypes.rule_datatypes import describe_rule
from rolegate.permissions.permission_system import PermissionSystem
from rolegate.ratelimit.rate_limiter import DEFAULT_COOLDOWNS
from rolegate.util.duration import DURATION_CHOICES, SECOND_MS, format_duration, parse_duration
from rolegate.util.logger import get_logger

logger = get_logger("permission_commands")

PERMISSION_CHOICES = sorted(ALL_PERMISSIONS)
CATEGORY_CHOICES = list(DEFAULT_COOLDOWNS)


def split_names(text: Optional[str]) -> List[str]:
    """Split a comma or space separated list typed into a command option."""
    if not text:
        return []
    return [part for part in text.replace(",", " ").split() if part]


def context_of(channel) -> Tuple[ContextType, Optional[int]]:
    """Context type of a guild channel and the id of the context enclosing it."""
    if isinstance(channel, discord.CategoryChannel):
        return ContextType.CATEGORY, None
    if isinstance(channel, discord.Thread):
        return ContextType.THREAD, channel.parent_id
    if isinstance(channel, discord.StageChannel):
        return ContextType.STAGE, channel.category_id
    if isinstance(channel, discord.VoiceChannel):
        return ContextType.VOICE, channel.category_id
    return ContextType.CHANNEL, getattr(channel, "category_id", None)


def failure_message(result: OperationResult) -> str:
    return f"❌ {result.error}"


class PermissionCommandsCog(commands.Cog):
    """Slash commands administering temporary permissions, groups, context rules and rate limits."""

    temppermissions = discord.SlashCommandGroup("temppermissions", "Manage temporary permissions")
    permgroups = discord.SlashCommandGroup("permgroups", "Manage permission groups")
    contextperms = discord.SlashCommandGroup("contextperms", "Manage per-channel permissions")
    ratelimits = discord.SlashCommandGroup("ratelimits", "Inspect and reset cooldowns and rate limits")

    def __init__(self, discord_bot_instance, system: PermissionSystem):
        self.discord_bot_instance = discord_bot_instance
        self.system = system
        logger.info("[PERMISSION CMDS] Permission cog loaded")

    # --------------------------
    # Shared helpers
    # --------------------------
    async def _reply(self, ctx: discord.ApplicationContext, content: str) -> None:
        await ctx.respond(content, ephemeral=True)

    async def _check_admin(self, ctx: discord.ApplicationContext) -> bool:
        if not ctx.guild_id:
            await self._reply(ctx, "This command can only be used in a server.")
            return False
        error = self.system.resolver.check_permission(ctx.user, "admin")
        if error:
            await self._reply(ctx, error)
            return False
        return True

    # --------------------------
    # /temppermissions
    # --------------------------
    async def handle_grant(self, ctx, user, permissions: str, duration: str, reason: str) -> None:
        if not await self._check_admin(ctx):
            return
        result = self.system.temporary_grants.grant(
            user.id, ctx.guild_id, split_names(permissions), duration, str(ctx.user.id), reason
        )
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        details = result.details
        await self._reply(
            ctx,
            f"✅ Granted **{', '.join(details['permissions'])}** to {user.mention} for "
            f"{details['duration_formatted']} (expires <t:{details['expiry'] // 1000}:R>).",
        )

    async def handle_revoke(self, ctx, user, permissions: Optional[str], reason: str) -> None:
        if not await self._check_admin(ctx):
            return
        wanted = split_names(permissions) if permissions else None
        result = self.system.temporary_grants.revoke(user.id, ctx.guild_id, wanted, str(ctx.user.id), reason)
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        remaining = result.details["remaining_permissions"]
        await self._reply(
            ctx,
            f"✅ Revoked **{', '.join(result.details['revoked_permissions'])}** from {user.mention}. "
            f"Remaining: {', '.join(remaining) or 'none'}.",
        )

    async def handle_extend(self, ctx, user, duration: str, reason: str) -> None:
        if not await self._check_admin(ctx):
            return
        result = self.system.temporary_grants.extend(user.id, ctx.guild_id, duration, str(ctx.user.id), reason)
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        details = result.details
        await self._reply(
            ctx,
            f"✅ Extended {user.mention}'s temporary permissions by {details['additional_duration_formatted']} "
            f"(now expires <t:{details['new_expiry'] // 1000}:R>).",
        )

    async def handle_list(self, ctx) -> None:
        if not await self._check_admin(ctx):
            return
        grants = self.system.temporary_grants.get_all_active(ctx.guild_id)
        if not grants:
            await self._reply(ctx, "No active temporary permissions in this server.")
            return
        now = self.system.clock()
        lines = [
            f"<@{grant.user_id}>: {', '.join(grant.permissions)} ({format_duration(grant.time_remaining(now))} left)"
            for grant in grants
        ]
        await self._reply(ctx, "**Active temporary permissions**\n" + "\n".join(lines))

    async def handle_check(self, ctx, user) -> None:
        if not await self._check_admin(ctx):
            return
        snapshot = self.system.resolver.get_complete_user_permissions(user)
        direct = [name for name, held in snapshot.direct_permissions.items() if held]
        lines = [
            f"**Permissions for {user.mention}**",
            f"Direct: {', '.join(direct) or 'none'}",
        ]
        if snapshot.temporary_permissions is not None:
            grant = snapshot.temporary_permissions
            remaining = format_duration(grant.time_remaining(self.system.clock()))
            lines.append(f"Temporary: {', '.join(grant.permissions)} ({remaining} left)")
        else:
            lines.append("Temporary: none")
        lines.append(f"Inherited: {', '.join(snapshot.inherited_permissions) or 'none'}")
        lines.append(f"User groups: {', '.join(snapshot.user_groups) or 'none'}")
        for binding in snapshot.role_groups:
            lines.append(f"Role {binding.role_name}: {', '.join(binding.groups)}")
        lines.append(f"Effective: {', '.join(snapshot.all_permissions) or 'none'}")
        await self._reply(ctx, "\n".join(lines))

    @temppermissions.command(name="grant", description="Temporarily grant permissions to a user")
    async def temp_grant(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "User receiving the permissions.", required=True),  # type: ignore
        permissions: Option(str, "Comma separated permissions, e.g. economy,shop.", required=True),  # type: ignore
        duration: Option(str, "How long the grant lasts.", choices=DURATION_CHOICES, default="1h"),  # type: ignore
        reason: Option(str, "Reason for the grant.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_grant(ctx, user, permissions, duration, reason)

    @temppermissions.command(name="revoke", description="Revoke temporary permissions from a user")
    async def temp_revoke(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "User losing the permissions.", required=True),  # type: ignore
        permissions: Option(str, "Permissions to revoke; all when omitted.", required=False, default=None),  # type: ignore
        reason: Option(str, "Reason for the revocation.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_revoke(ctx, user, permissions, reason)

    @temppermissions.command(name="extend", description="Extend a user's temporary permissions")
    async def temp_extend(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "User whose grant is extended.", required=True),  # type: ignore
        duration: Option(str, "Additional time.", choices=DURATION_CHOICES, required=True),  # type: ignore
        reason: Option(str, "Reason for the extension.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_extend(ctx, user, duration, reason)

    @temppermissions.command(name="list", description="List active temporary permissions in this server")
    async def temp_list(self, ctx: discord.ApplicationContext):
        await self.handle_list(ctx)

    @temppermissions.command(name="check", description="Show every source of a user's permissions")
    async def temp_check(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "User to inspect.", required=True),  # type: ignore
    ):
        await self.handle_check(ctx, user)

    # --------------------------
    # /permgroups
    # --------------------------
    async def handle_group_list(self, ctx) -> None:
        if not await self._check_admin(ctx):
            return
        lines = []
        for name, group in sorted(self.system.groups.get_all_groups().items()):
            marker = "🔧" if group.custom else "🏛️"
            permissions = ", ".join(sorted(self.system.groups.resolve(name))) or "none"
            lines.append(f"{marker} **{name}**: {permissions}")
        await self._reply(ctx, "**Permission groups**\n" + "\n".join(lines))

    async def handle_group_create(self, ctx, name: str, permissions: str, inherits: Optional[str], description: str) -> None:
        if not await self._check_admin(ctx):
            return
        result = self.system.groups.create(
            name, split_names(permissions), split_names(inherits), description, str(ctx.user.id)
        )
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        await self._reply(
            ctx,
            f"✅ Created group **{result.details['group_name']}** with {', '.join(result.details['permissions']) or 'no permissions'}.",
        )

    async def handle_group_delete(self, ctx, name: str) -> None:
        if not await self._check_admin(ctx):
            return
        result = self.system.groups.delete(name, str(ctx.user.id))
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        await self._reply(ctx, f"✅ Deleted group **{result.details['deleted_group']}**.")

    async def handle_group_assign(self, ctx, target, group: str, reason: str) -> None:
        if not await self._check_admin(ctx):
            return
        if isinstance(target, discord.Role):
            result = self.system.groups.assign_to_role(target.id, group, str(ctx.user.id), reason)
        else:
            result = self.system.groups.assign_to_user(target.id, ctx.guild_id, group, str(ctx.user.id), reason)
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        await self._reply(
            ctx,
            f"✅ Assigned **{group}** to {target.mention} ({', '.join(result.details['permissions']) or 'no permissions'}).",
        )

    async def handle_group_remove(self, ctx, target, group: str, reason: str) -> None:
        if not await self._check_admin(ctx):
            return
        if isinstance(target, discord.Role):
            result = self.system.groups.remove_from_role(target.id, group, str(ctx.user.id), reason)
        else:
            result = self.system.groups.remove_from_user(target.id, ctx.guild_id, group, str(ctx.user.id), reason)
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        await self._reply(
            ctx,
            f"✅ Removed **{group}** from {target.mention}. Remaining: {', '.join(result.details['remaining_groups']) or 'none'}.",
        )

    async def handle_group_tree(self, ctx, group: str) -> None:
        if not await self._check_admin(ctx):
            return
        tree = self.system.groups.get_inheritance_tree(group)
        if not tree:
            await self._reply(ctx, "❌ Permission group not found")
            return
        lines = [
            f"{'  ' * node.depth}└ **{node.name}**: {', '.join(node.permissions) or 'none'}"
            for node in tree
        ]
        await self._reply(ctx, "\n".join(lines))

    @permgroups.command(name="list", description="List all permission groups")
    async def group_list(self, ctx: discord.ApplicationContext):
        await self.handle_group_list(ctx)

    @permgroups.command(name="create", description="Create a custom permission group")
    async def group_create(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Group name.", required=True),  # type: ignore
        permissions: Option(str, "Comma separated permissions.", required=True),  # type: ignore
        inherits: Option(str, "Comma separated groups to inherit.", required=False, default=None),  # type: ignore
        description: Option(str, "Group description.", default=""),  # type: ignore
    ):
        await self.handle_group_create(ctx, name, permissions, inherits, description)

    @permgroups.command(name="delete", description="Delete an unused custom permission group")
    async def group_delete(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Group name.", required=True),  # type: ignore
    ):
        await self.handle_group_delete(ctx, name)

    @permgroups.command(name="assign-user", description="Assign a permission group to a user")
    async def group_assign_user(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "User receiving the group.", required=True),  # type: ignore
        group: Option(str, "Group name.", required=True),  # type: ignore
        reason: Option(str, "Reason for the assignment.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_group_assign(ctx, user, group, reason)

    @permgroups.command(name="remove-user", description="Remove a permission group from a user")
    async def group_remove_user(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "User losing the group.", required=True),  # type: ignore
        group: Option(str, "Group name.", required=True),  # type: ignore
        reason: Option(str, "Reason for the removal.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_group_remove(ctx, user, group, reason)

    @permgroups.command(name="assign-role", description="Assign a permission group to a role")
    async def group_assign_role(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "Role receiving the group.", required=True),  # type: ignore
        group: Option(str, "Group name.", required=True),  # type: ignore
        reason: Option(str, "Reason for the assignment.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_group_assign(ctx, role, group, reason)

    @permgroups.command(name="remove-role", description="Remove a permission group from a role")
    async def group_remove_role(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "Role losing the group.", required=True),  # type: ignore
        group: Option(str, "Group name.", required=True),  # type: ignore
        reason: Option(str, "Reason for the removal.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_group_remove(ctx, role, group, reason)

    @permgroups.command(name="tree", description="Show a group's inheritance tree")
    async def group_tree(
        self,
        ctx: discord.ApplicationContext,
        group: Option(str, "Group name.", required=True),  # type: ignore
    ):
        await self.handle_group_tree(ctx, group)

    # --------------------------
    # /contextperms
    # --------------------------
    async def handle_context_set(self, ctx, channel, config_json: str, reason: str) -> None:
        if not await self._check_admin(ctx):
            return
        try:
            config = json.loads(config_json)
        except json.JSONDecodeError as exc:
            await self._reply(ctx, f"❌ Invalid JSON: {exc.msg}")
            return
        context_type, _ = context_of(channel)
        result = self.system.contexts.set_context_config(channel.id, context_type, config, str(ctx.user.id), reason)
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        await self._reply(ctx, f"✅ Context permissions set for {context_type.label} {channel.mention}.")

    async def handle_context_get(self, ctx, channel) -> None:
        if not await self._check_admin(ctx):
            return
        config = self.system.contexts.get_context_config(channel.id)
        if config is None:
            await self._reply(ctx, f"No context permissions set for {channel.mention}.")
            return
        lines = [f"**{config.context_type.label} {channel.mention}** (set by <@{config.set_by}>)"]
        lines += [f"✅ {name}: {describe_rule(rule)}" for name, rule in config.permissions.items()]
        lines += [f"⛔ {name}: {describe_rule(rule)}" for name, rule in config.restrictions.items()]
        if config.inherit_from_parent:
            lines.append("Inherits from parent")
        await self._reply(ctx, "\n".join(lines))

    async def handle_context_remove(self, ctx, channel, reason: str) -> None:
        if not await self._check_admin(ctx):
            return
        result = self.system.contexts.remove_context_config(channel.id, str(ctx.user.id), reason)
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        await self._reply(ctx, f"✅ Context permissions removed from {channel.mention}.")

    async def handle_user_override(
        self, ctx, user, channel, grant: Optional[str], restrict: Optional[str], duration: Optional[str], reason: str
    ) -> None:
        if not await self._check_admin(ctx):
            return
        expiry = None
        if duration:
            duration_ms = parse_duration(duration)
            if duration_ms <= 0:
                await self._reply(ctx, "❌ Invalid duration specified")
                return
            expiry = self.system.clock() + duration_ms
        result = self.system.contexts.set_user_override(
            user.id, channel.id, split_names(grant), split_names(restrict), expiry, str(ctx.user.id), reason
        )
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        until = f" for {format_duration(parse_duration(duration))}" if duration else ""
        await self._reply(ctx, f"✅ Override set for {user.mention} in {channel.mention}{until}.")

    async def handle_role_permissions(self, ctx, role, channel, permissions: str, reason: str) -> None:
        if not await self._check_admin(ctx):
            return
        result = self.system.contexts.set_role_context_permissions(
            role.id, channel.id, split_names(permissions), str(ctx.user.id), reason
        )
        if not result.success:
            await self._reply(ctx, failure_message(result))
            return
        await self._reply(ctx, f"✅ {role.mention} may use {', '.join(split_names(permissions))} in {channel.mention}.")

    async def handle_context_check(self, ctx, user, channel, permission: str) -> None:
        if not await self._check_admin(ctx):
            return
        context_type, parent_id = context_of(channel)
        allowed = self.system.resolver.has_context_permission(user, permission, channel.id, context_type, parent_id)
        verdict = "ALLOWED" if allowed else "DENIED"
        await self._reply(ctx, f"{user.mention} / **{permission}** in {channel.mention}: **{verdict}**")

    async def handle_context_list(self, ctx) -> None:
        if not await self._check_admin(ctx):
            return
        configs = self.system.contexts.get_all_context_configs()
        if not configs:
            await self._reply(ctx, "No context permissions configured.")
            return
        lines = [
            f"<#{config.context_id}> ({config.context_type}): "
            f"{len(config.permissions)} rule(s), {len(config.restrictions)} restriction(s)"
            for config in configs
        ]
        await self._reply(ctx, "**Context permissions**\n" + "\n".join(lines))

    @contextperms.command(name="set", description="Set permission rules for a channel or category")
    async def context_set(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.abc.GuildChannel, "Channel or category.", required=True),  # type: ignore
        config: Option(str, 'JSON such as {"permissions": {"economy": true}}.', required=True),  # type: ignore
        reason: Option(str, "Reason for the change.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_context_set(ctx, channel, config, reason)

    @contextperms.command(name="get", description="Show the permission rules of a channel")
    async def context_get(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.abc.GuildChannel, "Channel or category.", required=True),  # type: ignore
    ):
        await self.handle_context_get(ctx, channel)

    @contextperms.command(name="remove", description="Remove the permission rules of a channel")
    async def context_remove(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.abc.GuildChannel, "Channel or category.", required=True),  # type: ignore
        reason: Option(str, "Reason for the removal.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_context_remove(ctx, channel, reason)

    @contextperms.command(name="user-override", description="Grant or restrict permissions for a user in a channel")
    async def context_user_override(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "User the override applies to.", required=True),  # type: ignore
        channel: Option(discord.abc.GuildChannel, "Channel or category.", required=True),  # type: ignore
        grant: Option(str, "Comma separated permissions to grant.", required=False, default=None),  # type: ignore
        restrict: Option(str, "Comma separated permissions to restrict.", required=False, default=None),  # type: ignore
        duration: Option(str, "Override lifetime; permanent when omitted.", choices=DURATION_CHOICES, required=False, default=None),  # type: ignore
        reason: Option(str, "Reason for the override.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_user_override(ctx, user, channel, grant, restrict, duration, reason)

    @contextperms.command(name="role-perms", description="Grant permissions to a role inside a channel")
    async def context_role_permissions(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "Role receiving the permissions.", required=True),  # type: ignore
        channel: Option(discord.abc.GuildChannel, "Channel or category.", required=True),  # type: ignore
        permissions: Option(str, "Comma separated permissions.", required=True),  # type: ignore
        reason: Option(str, "Reason for the change.", default="No reason provided."),  # type: ignore
    ):
        await self.handle_role_permissions(ctx, role, channel, permissions, reason)

    @contextperms.command(name="check", description="Check whether a user holds a permission in a channel")
    async def context_check(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "User to check.", required=True),  # type: ignore
        channel: Option(discord.abc.GuildChannel, "Channel or category.", required=True),  # type: ignore
        permission: Option(str, "Permission to check.", choices=PERMISSION_CHOICES, required=True),  # type: ignore
    ):
        await self.handle_context_check(ctx, user, channel, permission)

    @contextperms.command(name="list", description="List every channel with permission rules")
    async def context_list(self, ctx: discord.ApplicationContext):
        await self.handle_context_list(ctx)

    # --------------------------
    # /ratelimits
    # --------------------------
    async def handle_rate_status(self, ctx, user, category: str) -> None:
        if not await self._check_admin(ctx):
            return
        usage = self.system.rate_limiter.get_rate_limit_status(user.id, category)
        if usage is None:
            await self._reply(ctx, f"Category **{category}** has no rate limit.")
            return
        await self._reply(
            ctx,
            f"{user.mention} in **{category}**: {usage.uses}/{usage.max_uses} uses "
            f"({usage.percentage}%), resets in {usage.reset_in}s.",
        )

    async def handle_rate_reset(self, ctx, user, category: Optional[str], command_name: Optional[str]) -> None:
        if not await self._check_admin(ctx):
            return
        if not category and not command_name:
            await self._reply(ctx, "❌ Give a category, a command name, or both.")
            return
        if category:
            self.system.rate_limiter.reset_rate_limit(user.id, category)
        if command_name:
            self.system.rate_limiter.reset_cooldown(user.id, command_name)
        logger.info(
            "[RATE_LIMITER] Limits reset for user %s (category=%s, command=%s) by %s",
            user.id, category, command_name, ctx.user.id,
        )
        await self._reply(ctx, f"✅ Limits reset for {user.mention}.")

    async def handle_set_cooldown(self, ctx, command_name: str, seconds: int) -> None:
        if not await self._check_admin(ctx):
            return
        if seconds < 0:
            await self._reply(ctx, "❌ Cooldown cannot be negative.")
            return
        self.system.rate_limiter.set_custom_cooldown(command_name, seconds * SECOND_MS)
        await self._reply(ctx, f"✅ Cooldown for **{command_name}** set to {seconds}s.")

    async def handle_rate_stats(self, ctx) -> None:
        if not await self._check_admin(ctx):
            return
        stats = self.system.rate_limiter.get_stats()
        await self._reply(
            ctx,
            f"Active cooldowns: {stats['active_cooldowns']}\n"
            f"Active rate limit windows: {stats['active_rate_limits']}\n"
            f"Limited categories: {', '.join(stats['rate_limit_categories'])}",
        )

    @ratelimits.command(name="status", description="Show a user's rate limit usage in a category")
    async def rate_status(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "User to inspect.", required=True),  # type: ignore
        category: Option(str, "Command category.", choices=CATEGORY_CHOICES, required=True),  # type: ignore
    ):
        await self.handle_rate_status(ctx, user, category)

    @ratelimits.command(name="reset", description="Reset a user's rate limit window and/or command cooldown")
    async def rate_reset(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "User to reset.", required=True),  # type: ignore
        category: Option(str, "Category window to reset.", choices=CATEGORY_CHOICES, required=False, default=None),  # type: ignore
        command: Option(str, "Command cooldown to reset.", required=False, default=None),  # type: ignore
    ):
        await self.handle_rate_reset(ctx, user, category, command)

    @ratelimits.command(name="cooldown", description="Set a custom cooldown for one command")
    async def rate_cooldown(
        self,
        ctx: discord.ApplicationContext,
        command: Option(str, "Command name.", required=True),  # type: ignore
        seconds: Option(int, "Cooldown in seconds.", required=True),  # type: ignore
    ):
        await self.handle_set_cooldown(ctx, command, seconds)

    @ratelimits.command(name="stats", description="Show rate limiter statistics")
    async def rate_stats(self, ctx: discord.ApplicationContext):
        await self.handle_rate_stats(ctx)


def setup(discord_bot_instance, system: PermissionSystem):
    discord_bot_instance.add_cog(PermissionCommandsCog(discord_bot_instance, system))
