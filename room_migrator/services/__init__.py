"""Row transformation and batched writes to the target store."""

__all__ = [
    "event_transformer",
    "writer",
]
