"""
Scheduled background work.

- **sweep_scheduler.py**: Asyncio task that periodically removes expired
  temporary grants and context overrides. Keeps running when a sweep fails
  and supports graceful shutdown.
"""
