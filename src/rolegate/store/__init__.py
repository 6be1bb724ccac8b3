"""In-memory storage primitives used by the permission stores."""
