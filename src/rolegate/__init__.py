"""
Rolegate - permission resolution and rate limiting for Discord community bots

Rolegate decides whether a guild member may run a command, combining several
layers of authorization, and throttles how often commands run.

Core Components:

- **Static checks**: Configured staff roles, bot owners and guild permission
  flags (Administrator, Manage Guild, moderation flags)
- **Temporary grants**: Time-limited permissions per user and guild, capped at
  seven days and swept periodically
- **Permission groups**: Named bundles of permissions with inheritance, resolved
  with a cycle-safe traversal and assignable to users or roles
- **Context overrides**: Per-channel, category and thread rules, user overrides
  and role grants evaluated with a fixed precedence
- **Rate limiter**: Per-command cooldowns and fixed-window rate limits per
  command category

Usage:
    from rolegate.configuration.app_configuration import app_config
    from rolegate.permissions.permission_system import PermissionSystem

    system = PermissionSystem.from_config(app_config)
    error = system.resolver.check_permission(member, "economy")
"""
