"""Py-cord cogs exposing Rolegate to Discord."""
