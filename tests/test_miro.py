from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, List

import httpx
import pytest

from boardflow.board import MiroBoard, nearest_sticky_color
from boardflow.config import BoardSettings
from boardflow.errors import BoardUnavailableError
from boardflow.models import LinkStyle

from conftest import build_pipeline

FRAME = {
    "id": "f1",
    "type": "frame",
    "data": {"title": "Scores"},
    "position": {"x": 1450.0, "y": 800.0},
    "geometry": {"width": 900.0, "height": 1600.0},
}


def _board(handler: Callable[[httpx.Request], httpx.Response]) -> MiroBoard:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://api.miro.com/v2")
    return MiroBoard(BoardSettings(backend="miro", board_id="b1"), client=client)


class Recorder:
    def __init__(self, routes: dict[tuple[str, str], Any]) -> None:
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        response = self.routes.get(key)
        if response is None:
            return httpx.Response(404, json={"message": "not found"})
        if callable(response):
            return response(request)
        return httpx.Response(200, json=response)

    def body(self, index: int) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


def test_find_region_follows_pagination() -> None:
    def items(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("cursor") == "page-2":
            return httpx.Response(200, json={"data": [FRAME]})
        other = dict(FRAME, id="f0", data={"title": "Elsewhere"})
        return httpx.Response(200, json={"data": [other], "cursor": "page-2"})

    recorder = Recorder({("GET", "/v2/boards/b1/items"): items})
    board = _board(recorder)

    region = asyncio.run(board.find_region_by_title("Scores"))

    assert region is not None
    assert (region.id, region.left, region.top) == ("f1", 1000.0, 0.0)
    assert [request.url.params.get("type") for request in recorder.requests] == ["frame", "frame"]


def test_card_is_created_then_attached_relative_to_frame() -> None:
    def sticky(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(
            201,
            json={
                "id": "n1",
                "data": body["data"],
                "position": body["position"],
                "geometry": {"width": 300.0},
                "style": body["style"],
            },
        )

    recorder = Recorder(
        {
            ("GET", "/v2/boards/b1/items"): {"data": [FRAME]},
            ("POST", "/v2/boards/b1/sticky_notes"): sticky,
            ("PATCH", "/v2/boards/b1/sticky_notes/n1"): {},
        }
    )
    board = _board(recorder)

    async def runner():
        region = await board.find_region_by_title("Scores")
        card = await board.create_card("Keep tabs visible", 1170.0, 140.0, 300.0, "#faf4ac")
        await board.add_to_region(region.id, card.id)
        return card

    card = asyncio.run(runner())

    assert recorder.body(1)["style"] == {"fillColor": "light_yellow"}
    assert recorder.body(1)["position"] == {"x": 1170.0, "y": 140.0, "origin": "center"}
    assert recorder.body(2) == {"parent": {"id": "f1"}, "position": {"x": 170.0, "y": 140.0}}
    assert card.color == "#faf4ac"
    assert card.parent_id == "f1"


def test_items_in_frame_use_absolute_coordinates() -> None:
    note = {
        "id": "n7",
        "data": {"content": "<p>Use tabs</p>"},
        "position": {"x": 170.0, "y": 140.0},
        "geometry": {"width": 300.0},
        "style": {"fillColor": "light_yellow"},
        "parent": {"id": "f1"},
    }

    def items(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("type") == "frame":
            return httpx.Response(200, json={"data": [FRAME]})
        assert request.url.params.get("parent_item_id") == "f1"
        return httpx.Response(200, json={"data": [note]})

    board = _board(Recorder({("GET", "/v2/boards/b1/items"): items}))

    async def runner():
        region = await board.find_region_by_title("Scores")
        return await board.get_items(parent_id=region.id)

    (card,) = asyncio.run(runner())

    assert (card.x, card.y) == (1170.0, 140.0)
    assert card.content == "<p>Use tabs</p>"
    assert card.parent_id == "f1"


def test_connector_uses_percentage_anchors() -> None:
    recorder = Recorder({("POST", "/v2/boards/b1/connectors"): {"id": "c1"}})
    board = _board(recorder)

    link = asyncio.run(board.create_link("n1", "n2", LinkStyle(stroke_color="#4262ff")))

    body = recorder.body(0)
    assert link.id == "c1"
    assert body["startItem"] == {"id": "n1", "position": {"x": "50%", "y": "100%"}}
    assert body["endItem"] == {"id": "n2", "position": {"x": "50%", "y": "0%"}}
    assert body["style"]["strokeStyle"] == "dashed"


def test_http_errors_become_board_unavailable() -> None:
    board = _board(lambda request: httpx.Response(503, json={"message": "maintenance"}))

    with pytest.raises(BoardUnavailableError):
        asyncio.run(board.ping())
    with pytest.raises(BoardUnavailableError):
        asyncio.run(board.create_card("text", 0.0, 0.0, 300.0, "#fff9b1"))


def test_missing_board_id_is_rejected() -> None:
    with pytest.raises(BoardUnavailableError):
        MiroBoard(BoardSettings(backend="miro", access_token="token"))


def test_nearest_sticky_color() -> None:
    assert nearest_sticky_color("#fff9b1") == "light_yellow"
    assert nearest_sticky_color("#d0f18d") == "light_green"
    assert nearest_sticky_color("light_pink") == "light_pink"
    assert nearest_sticky_color("not-a-color") == "light_yellow"


def test_non_json_body_becomes_board_unavailable() -> None:
    board = _board(lambda request: httpx.Response(200, text="<html>maintenance</html>"))

    with pytest.raises(BoardUnavailableError):
        asyncio.run(board.create_card("text", 0.0, 0.0, 300.0, "#fff9b1"))


def test_garbled_card_responses_are_counted_as_failures(settings) -> None:
    def items(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("type") == "frame":
            return httpx.Response(200, json={"data": [FRAME]})
        return httpx.Response(200, json={"data": []})

    recorder = Recorder(
        {
            ("GET", "/v2/boards/b1/items"): items,
            ("POST", "/v2/boards/b1/sticky_notes"): lambda request: httpx.Response(200, text="<html>"),
        }
    )
    pipeline = build_pipeline(_board(recorder), settings)

    run = asyncio.run(
        pipeline.process_points("s-1", ["Keep the tab bar visible", "Show unread badges"], region_name="Scores")
    )

    assert run.report.failed == 2
    assert run.report.placed == 0
    posts = [request for request in recorder.requests if request.method == "POST"]
    assert len(posts) == 6
