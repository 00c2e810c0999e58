"""
Tests for reading focus areas and preparation notes from the Miro board.
"""

import httpx
import pytest

from models.board import FocusArea, MindmapNode
from services.board import (
    BoardError,
    MiroService,
    clean_content,
    find_target_node,
    focus_areas_from,
    parse_node,
    preparation_notes_from,
)


def raw_node(node_id, content, parent_id=None, is_root=False):
    node = {
        "id": node_id,
        "data": {"isRoot": is_root, "nodeView": {"data": {"content": content}}},
    }
    if parent_id:
        node["parent"] = {"id": parent_id}
    return node


BOARD = [
    raw_node("root-1", "<p>Ключевые векторы</p>", is_root=True),
    raw_node("a-1", "<p>Growth</p>", "root-1"),
    raw_node("a-2", "<p>Профессиональное развитие</p>", "root-1"),
    raw_node("a-3", "<p>Hiring &amp; team</p>", "root-1"),
    raw_node("b-1", "Activation funnel", "a-1"),
    raw_node("b-2", "Referral program", "a-1"),
    raw_node("prep", "<strong>Boss status</strong>", is_root=True),
    raw_node("s-1", "Conceptual thoughts", "prep"),
    raw_node("s-2", "Meeting selection", "prep"),
    raw_node("t-1", "Pricing model", "s-1"),
    raw_node("t-2", "Unit economics", "s-1"),
    raw_node("m-1", "Retention cohort", "s-2"),
]


def nodes(raw=BOARD):
    return [parse_node(item) for item in raw]


class FakeMiroApi:
    """Serves BOARD two nodes per page."""

    def __init__(self, raw=BOARD, page_size=2, status=200):
        self.raw = raw
        self.page_size = page_size
        self.status = status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(self.status, json={"message": "forbidden"})

        offset = int(request.url.params.get("cursor") or 0)
        page = {"data": self.raw[offset : offset + self.page_size]}
        if offset + self.page_size < len(self.raw):
            page["cursor"] = str(offset + self.page_size)
        return httpx.Response(200, json=page)


def make_service(app_config, api, **config_overrides):
    config = app_config.miro.model_copy(update=config_overrides)
    return MiroService(config, client=httpx.AsyncClient(transport=httpx.MockTransport(api)))


def test_clean_content():
    assert clean_content("<p>Hiring&nbsp;&amp; team </p>") == "Hiring & team"
    assert clean_content("") == ""


def test_parse_node():
    node = parse_node(raw_node("a-1", "<p>Growth</p>", "root-1"))
    assert node == MindmapNode(id="a-1", content="Growth", parent_id="root-1", is_root=False)

    root = parse_node({"id": 7, "data": {"isRoot": True}})
    assert root == MindmapNode(id="7", content="", parent_id=None, is_root=True)


def test_focus_areas_by_target_id():
    assert focus_areas_from(nodes(), "root-1") == [
        "Growth",
        "Профессиональное развитие",
        "Hiring & team",
    ]


def test_target_falls_back_to_label():
    assert find_target_node(nodes(), "stale-id").id == "root-1"


def test_missing_target_raises():
    board = [raw_node("x", "Something else")]
    with pytest.raises(BoardError, match="ключевые векторы"):
        find_target_node(nodes(board), "stale-id")


def test_preparation_notes():
    notes = preparation_notes_from(nodes())

    assert notes.conceptual_thoughts == ["Pricing model", "Unit economics"]
    assert notes.meeting_selection == ["Retention cohort"]


def test_no_preparation_node():
    assert preparation_notes_from(nodes(BOARD[:6])) is None


@pytest.mark.asyncio
async def test_fetch_all_nodes_follows_cursor(app_config):
    api = FakeMiroApi()

    async with make_service(app_config, api) as miro:
        fetched = await miro.fetch_all_mindmap_nodes()

    assert [n.id for n in fetched] == [item["id"] for item in BOARD]
    assert len(api.requests) == 6
    first, second = api.requests[:2]
    assert first.url.path == "/v2-experimental/boards/board-1/mindmap_nodes"
    assert first.url.params["limit"] == "50"
    assert "cursor" not in first.url.params
    assert second.url.params["cursor"] == "2"
    assert first.headers["Authorization"] == "Bearer miro-token"


@pytest.mark.asyncio
async def test_fetch_focus_areas_with_blocks(app_config):
    async with make_service(app_config, FakeMiroApi(page_size=50)) as miro:
        areas = await miro.fetch_focus_areas_with_blocks()

    assert areas[0] == FocusArea(area="Growth", blocks=["Activation funnel", "Referral program"])
    assert areas[1].blocks == []


@pytest.mark.asyncio
async def test_fetch_preparation_notes(app_config):
    async with make_service(app_config, FakeMiroApi(page_size=5)) as miro:
        notes = await miro.fetch_preparation_notes()

    assert notes.meeting_selection == ["Retention cohort"]


@pytest.mark.asyncio
async def test_api_error_raises_board_error(app_config):
    async with make_service(app_config, FakeMiroApi(status=403)) as miro:
        with pytest.raises(BoardError, match="403"):
            await miro.fetch_focus_areas()


@pytest.mark.asyncio
async def test_malformed_node_raises_board_error(app_config):
    api = FakeMiroApi(raw=[{"data": {}}])

    async with make_service(app_config, api) as miro:
        with pytest.raises(BoardError, match="Unexpected"):
            await miro.fetch_all_mindmap_nodes()


@pytest.mark.asyncio
async def test_non_json_reply_raises_board_error(app_config):
    def maintenance_page(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    async with make_service(app_config, maintenance_page) as miro:
        with pytest.raises(BoardError, match="Invalid Miro response"):
            await miro.fetch_all_mindmap_nodes()


@pytest.mark.asyncio
async def test_non_object_reply_raises_board_error(app_config):
    async with make_service(app_config, lambda request: httpx.Response(200, json=[])) as miro:
        with pytest.raises(BoardError, match="expected an object"):
            await miro.fetch_all_mindmap_nodes()
