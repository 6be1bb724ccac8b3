"""
Permission stores and the authorization facade.

- **temporary_grants.py**: Time-limited permission grants per user and guild.
- **permission_groups.py**: Builtin and custom permission groups with inheritance.
- **context_overrides.py**: Per-channel rules, user overrides and role grants.
- **role_permissions.py**: Static role checks and ``PermissionResolver``, which
  combines every layer into one decision.
- **permission_system.py**: Builds and wires all of the above from configuration
  and owns their background sweeps.
"""
