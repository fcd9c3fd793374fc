"""Utility functions for placement and partitioning."""

Box = tuple[int, int, int, int]


def intersect(a: Box, b: Box) -> Box:
    """Calculate intersection of two bounding boxes."""
    inter = (max(a[0], b[0]), max(a[1], b[1]), min(a[2], b[2]), min(a[3], b[3]))
    if inter[0] >= inter[2] or inter[1] >= inter[3]:
        return (0, 0, 0, 0)
    return inter


def is_empty(box: Box) -> bool:
    """Whether the bounding box covers no pixel."""
    return box[0] >= box[2] or box[1] >= box[3]


def partition(total: int, parts: int) -> list[tuple[int, int]]:
    """
    Split ``range(total)`` into at most ``parts`` balanced, contiguous
    ``(start, stop)`` chunks.

    Chunk lengths differ by at most one, and no chunk is empty.
    """
    if total <= 0:
        return []
    parts = max(1, min(parts, total))
    size, extra = divmod(total, parts)
    chunks = []
    start = 0
    for i in range(parts):
        stop = start + size + (1 if i < extra else 0)
        chunks.append((start, stop))
        start = stop
    return chunks
