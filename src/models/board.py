"""
Data models for the mind-map board.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class MindmapNode:
    """Mind-map node with its text content cleaned of markup."""

    id: str
    content: str
    parent_id: str | None = None
    is_root: bool = False


@dataclass(frozen=True)
class FocusArea:
    """First-level area under the target node with its second-level blocks."""

    area: str
    blocks: list[str] = field(default_factory=list)
