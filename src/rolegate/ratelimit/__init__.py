"""Command cooldowns and per-category rate limit windows."""
