"""
Utility functions and helpers for Rolegate.

This package provides reusable utilities:

- **logger.py**: Centralized logging configuration with colored console output
  and rotating file handlers. Uses prompt_toolkit for non-blocking console I/O.
  ``log_event`` writes the category-tagged audit line every state change emits.

- **duration.py**: Parsing of ``"30m"``/``"2h"``/``"7d"`` style durations into
  milliseconds and compact formatting back into text.

- **member_utils.py**: Read-only role and guild permission lookups on members.

- **errors.py**: Decorator converting unexpected exceptions in store mutations
  into failed operation results.
"""
