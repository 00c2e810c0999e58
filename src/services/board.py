"""
Focus areas and preparation notes from the Miro mind-map board.
"""

import html
import re

import httpx

from core.config import (
    BOSS_PREPARATION_LABEL,
    CONCEPTUAL_THOUGHTS_LABEL,
    MEETING_SELECTION_LABEL,
    MIRO_API_BASE_URL,
    MIRO_PAGE_LIMIT,
    TARGET_WIDGET_LABEL,
    MiroConfig,
)
from core.http import create_client, request_with_retry
from core.logging import get_logger
from models.board import FocusArea, MindmapNode
from models.events import BossPreparationData

logger = get_logger(__name__)


class BoardError(Exception):
    """Raised when the board cannot be read or lacks the target node."""


def clean_content(raw: str) -> str:
    """Strip HTML tags and entities from node content."""
    text = re.sub(r"<[^>]*>", "", raw)
    return html.unescape(text).replace("\xa0", " ").strip()


def parse_node(data: dict) -> MindmapNode:
    node_data = data.get("data") or {}
    node_view = node_data.get("nodeView") or {}
    content = (node_view.get("data") or {}).get("content") or ""
    parent = data.get("parent") or {}
    return MindmapNode(
        id=str(data["id"]),
        content=clean_content(content),
        parent_id=str(parent["id"]) if parent.get("id") else None,
        is_root=bool(node_data.get("isRoot", False)),
    )


def children_of(nodes: list[MindmapNode], parent_id: str) -> list[MindmapNode]:
    return [n for n in nodes if n.parent_id == parent_id]


def find_target_node(nodes: list[MindmapNode], target_id: str) -> MindmapNode:
    """Find the focus-area root by ID, falling back to its label."""
    for node in nodes:
        if node.id == target_id:
            return node

    logger.info("Target node not found by ID, searching by content", target_id=target_id)
    for node in nodes:
        if TARGET_WIDGET_LABEL.casefold() in node.content.casefold():
            return node

    raise BoardError(f"Widget '{TARGET_WIDGET_LABEL}' not found on the board")


def focus_areas_from(nodes: list[MindmapNode], target_id: str) -> list[str]:
    """First-level labels under the target node."""
    target = find_target_node(nodes, target_id)
    areas = [n.content for n in children_of(nodes, target.id) if n.content]
    logger.info("Found focus areas", count=len(areas))
    return areas


def focus_areas_with_blocks_from(nodes: list[MindmapNode], target_id: str) -> list[FocusArea]:
    target = find_target_node(nodes, target_id)
    return [
        FocusArea(
            area=area.content,
            blocks=[n.content for n in children_of(nodes, area.id) if n.content],
        )
        for area in children_of(nodes, target.id)
    ]


def preparation_notes_from(nodes: list[MindmapNode]) -> BossPreparationData | None:
    """
    Read the boss-status notes.

    Expects a node labelled BOSS_PREPARATION_LABEL whose children are the
    "conceptual thoughts" and "meeting selection" lists. Returns None when
    the board has no such node.
    """
    label = BOSS_PREPARATION_LABEL.casefold()
    prep_node = next((n for n in nodes if n.content.casefold() == label), None)
    if prep_node is None:
        return None

    thoughts: list[str] = []
    selection: list[str] = []
    for section in children_of(nodes, prep_node.id):
        items = [n.content for n in children_of(nodes, section.id) if n.content]
        name = section.content.casefold()
        if name == CONCEPTUAL_THOUGHTS_LABEL.casefold():
            thoughts.extend(items)
        elif name == MEETING_SELECTION_LABEL.casefold():
            selection.extend(items)

    return BossPreparationData(conceptual_thoughts=thoughts, meeting_selection=selection)


class MiroService:
    """Reads mind-map nodes of one board."""

    def __init__(self, config: MiroConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = client or create_client(
            headers={
                "Authorization": f"Bearer {config.access_token}",
                "Accept": "application/json",
            }
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "MiroService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_json(self, url: str, params: dict) -> dict:
        try:
            response = await request_with_retry(self._client, "GET", url, params=params)
        except httpx.HTTPError as e:
            raise BoardError(f"Miro request failed: {e}") from e

        if response.status_code != 200:
            raise BoardError(f"Miro API error: {response.status_code} - {response.text}")

        try:
            data = response.json()
        except ValueError as e:
            raise BoardError(f"Invalid Miro response: {e}") from e

        if not isinstance(data, dict):
            raise BoardError(f"Invalid Miro response: expected an object, got {type(data).__name__}")
        return data

    async def fetch_all_mindmap_nodes(self) -> list[MindmapNode]:
        """Fetch every mind-map node, following the pagination cursor."""
        url = f"{MIRO_API_BASE_URL}/boards/{self.config.board_id}/mindmap_nodes"
        nodes: list[MindmapNode] = []
        cursor = None

        while True:
            params = {"limit": MIRO_PAGE_LIMIT}
            if cursor:
                params["cursor"] = cursor
            page = await self._get_json(url, params)

            try:
                nodes.extend(parse_node(item) for item in page.get("data", []))
            except (KeyError, TypeError) as e:
                raise BoardError(f"Unexpected mind-map node payload: {e}") from e

            cursor = page.get("cursor")
            if not cursor:
                break

        logger.info("Fetched mind-map nodes", count=len(nodes))
        return nodes

    async def fetch_focus_areas(self) -> list[str]:
        nodes = await self.fetch_all_mindmap_nodes()
        return focus_areas_from(nodes, self.config.target_widget_id)

    async def fetch_focus_areas_with_blocks(self) -> list[FocusArea]:
        nodes = await self.fetch_all_mindmap_nodes()
        return focus_areas_with_blocks_from(nodes, self.config.target_widget_id)

    async def fetch_preparation_notes(self) -> BossPreparationData | None:
        nodes = await self.fetch_all_mindmap_nodes()
        return preparation_notes_from(nodes)
