"""
Type-safe wrappers for the Discord identifiers used as store keys.

Snowflakes are 64-bit integers but are kept as strings so a key built from a
``discord.Member`` and a key built from a command argument compare equal.
Role and context identifiers are looser: configuration files may bind
placeholder names, so any non-empty string is accepted for them.
"""

from __future__ import annotations

from typing import Union

import discord


class DiscordID:
    """
    Base class for string-backed Discord identifiers.

    Subclasses set ``numeric`` to require an integer snowflake. Equality holds
    against another identifier of the same class, a ``str`` or an ``int``.

    Attributes:
        _value (str): The identifier stored as a string.
    """

    __slots__ = ("_value",)

    numeric: bool = True

    def __init__(self, value: Union[str, int, "DiscordID"]) -> None:
        """
        Initialize from a string, int, or another identifier of the same kind.

        Raises:
            ValueError: If the value cannot be converted to a valid identifier.
        """
        if isinstance(value, DiscordID):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            stripped = value.strip()
            if self.numeric:
                # Validate that it's a valid integer string
                stripped = str(int(stripped))
            elif not stripped:
                raise ValueError(f"Cannot create {type(self).__name__} from an empty string")
            self._value = stripped
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    def to_int(self) -> int:
        """
        Convert to an integer for Discord API calls.

        Raises:
            ValueError: If the identifier is not numeric.
        """
        return int(self._value)

    def __int__(self) -> int:
        return self.to_int()

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, type(self)):
            return self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(DiscordID):
    """
    Discord user snowflake.

    Example:
        >>> uid = UserID(123456789012345678)
        >>> str(uid)
        '123456789012345678'
        >>> uid == "123456789012345678"
        True
    """

    __slots__ = ()

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        return cls(member.id)


class GuildID(DiscordID):
    """Discord guild snowflake."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        return cls(guild.id)


class RoleID(DiscordID):
    """
    Discord role identifier.

    Normally a snowflake, but any non-empty string is allowed so rules in the
    YAML configuration may name roles before they exist.
    """

    __slots__ = ()

    numeric = False

    @classmethod
    def from_role(cls, role: discord.Role) -> "RoleID":
        return cls(role.id)


class ContextID(DiscordID):
    """Identifier of a channel, category, thread, voice or stage channel acting as a permission scope."""

    __slots__ = ()

    numeric = False

    @classmethod
    def from_channel(cls, channel: discord.abc.Snowflake) -> "ContextID":
        return cls(channel.id)
