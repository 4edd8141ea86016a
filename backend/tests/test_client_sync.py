"""Tests for the synchronization protocol between the client store and the API.

Happy paths run against the real app through an ASGI transport. Failure
and ordering cases use an in-memory fake server behind httpx.MockTransport
so a test can decide when each response comes back.
"""

import asyncio
import json
from typing import Optional

import httpx

from overlay_studio.client.api import OverlayApiClient
from overlay_studio.client.store import OverlayStore, StreamStore
from overlay_studio.client.sync import OverlaySync, StreamSettingsSync
from overlay_studio.services.overlay_rules import merge_fields

from conftest import asgi_http_client, mock_http_client, overlay_wire, run_async


class FakeOverlayServer:
    """Just enough of /api/v1/overlays to drive the sync layer."""

    def __init__(self, *overlays: dict):
        self.overlays = {o["id"]: o for o in overlays}
        self.requests: list[tuple[str, str]] = []
        self.fail_with: Optional[httpx.Response] = None
        self.fail_methods: set[str] = set()
        # position.x of a PUT body -> event the response waits for
        self.gates: dict[float, asyncio.Event] = {}

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.requests if m == method)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        if self.fail_with is not None and request.method in self.fail_methods:
            return self.fail_with

        path = request.url.path.removeprefix("/api/v1")
        if path == "/overlays" and request.method == "GET":
            ordered = sorted(self.overlays.values(), key=lambda o: o["zIndex"])
            return httpx.Response(200, json=ordered)

        overlay_id = path.rsplit("/", 1)[-1]
        if overlay_id not in self.overlays:
            return httpx.Response(404, json={"message": "Overlay not found", "error": "NotFound"})

        if request.method == "PUT":
            changes = json.loads(request.content)
            gate = self.gates.get(changes.get("position", {}).get("x"))
            if gate is not None:
                await gate.wait()
            # Applied when the server gets to it, not when the client sent it
            self.overlays[overlay_id] = merge_fields(self.overlays[overlay_id], changes)
            return httpx.Response(200, json=self.overlays[overlay_id])

        if request.method == "DELETE":
            del self.overlays[overlay_id]
            return httpx.Response(200, json={"message": "Overlay deleted successfully"})

        return httpx.Response(200, json=self.overlays[overlay_id])


def _with_fake(server: FakeOverlayServer, scenario, *, rollback_on_failure=False):
    async def do_test():
        async with mock_http_client(server.handler) as http:
            store = OverlayStore()
            sync = OverlaySync(store, OverlayApiClient(client=http), rollback_on_failure=rollback_on_failure)
            await scenario(store, sync)

    run_async(do_test())


class TestFetch:
    def test_mount_fetches_once(self):
        server = FakeOverlayServer(overlay_wire("text", "A", zIndex=2), overlay_wire("image", "B", zIndex=1))

        async def scenario(store, sync):
            await sync.mount()
            await sync.mount()
            assert [o.name for o in store.overlays] == ["B", "A"]
            assert server.count("GET") == 1
            assert store.is_loading is False
            assert store.error is None

        _with_fake(server, scenario)

    def test_non_json_response_sets_error_and_keeps_state(self):
        server = FakeOverlayServer(overlay_wire("text", "Kept"))

        async def scenario(store, sync):
            await sync.fetch_overlays()
            server.fail_with = httpx.Response(200, text="<html>maintenance</html>", headers={"content-type": "text/html"})
            server.fail_methods = {"GET"}

            ok = await sync.fetch_overlays()

            assert ok is False
            assert store.error == "Server returned an invalid response format"
            assert [o.name for o in store.overlays] == ["Kept"]
            assert store.is_loading is False

        _with_fake(server, scenario)


class TestCreate:
    def test_create_refreshes_from_server(self):
        async def do_test():
            async with asgi_http_client() as http:
                store = OverlayStore()
                sync = OverlaySync(store, OverlayApiClient(client=http))

                created = await sync.create_text_overlay()

                assert created is not None
                assert [o.id for o in store.overlays] == [created.id]
                assert store.overlays[0].name == "Text Overlay 1"
                assert store.overlays[0].style.text_align == "center"

                await sync.create_image_overlay()
                names = [o.name for o in store.overlays]
                assert names == ["Text Overlay 1", "Image Overlay 2"]

        run_async(do_test())

    def test_failed_create_leaves_store_alone(self):
        server = FakeOverlayServer()
        server.fail_with = httpx.Response(
            400, json={"message": "Missing required fields: type and name", "error": "MissingField"}
        )
        server.fail_methods = {"POST"}

        async def scenario(store, sync):
            result = await sync.create_overlay({"type": "image"})

            assert result is None
            assert store.overlays == ()
            assert store.error == "Missing required fields: type and name"
            assert server.count("GET") == 0

        _with_fake(server, scenario)


class TestUpdate:
    def test_drag_is_optimistic_then_confirmed(self):
        async def do_test():
            async with asgi_http_client() as http:
                api = OverlayApiClient(client=http)
                created = await api.create_overlay({"type": "image", "name": "Logo"})
                store = OverlayStore()
                sync = OverlaySync(store, api)
                await sync.mount()

                seen = []
                store.subscribe(lambda s: seen.append(s.get(created.id).position.x))

                await sync.move_overlay(created.id, 250, 40)

                # Error cleared, then the local patch, before any response
                assert seen[:2] == [10, 250]
                assert store.get(created.id).position.x == 250
                stored = await api.get_overlay(created.id)
                assert (stored.position.x, stored.position.y) == (250, 40)

        run_async(do_test())

    def test_resize_and_style_edit_persist(self):
        async def do_test():
            async with asgi_http_client() as http:
                api = OverlayApiClient(client=http)
                created = await api.create_overlay({"type": "text", "name": "Ticker"})
                store = OverlayStore()
                sync = OverlaySync(store, api)
                await sync.mount()

                await sync.resize_overlay(created.id, 640, 60)
                await sync.update_overlay(created.id, {"style": {"opacity": 0.5}})

                stored = await api.get_overlay(created.id)
                assert (stored.size.width, stored.size.height) == (640, 60)
                assert stored.style.opacity == 0.5
                assert stored.style.font_family == "Arial"
                assert store.get(created.id) == stored

        run_async(do_test())

    def test_failed_update_keeps_optimistic_state(self):
        wire = overlay_wire("text", "Title")
        server = FakeOverlayServer(wire)

        async def scenario(store, sync):
            await sync.mount()
            server.fail_with = httpx.Response(500, json={"message": "Failed to update overlay", "error": "boom"})
            server.fail_methods = {"PUT"}

            result = await sync.move_overlay(wire["id"], 300, 300)

            assert result is None
            assert store.error == "Failed to update overlay"
            assert store.get(wire["id"]).position.x == 300
            assert server.overlays[wire["id"]]["position"]["x"] == 10

        _with_fake(server, scenario)

    def test_failed_update_rolls_back_when_enabled(self):
        wire = overlay_wire("text", "Title")
        server = FakeOverlayServer(wire)

        async def scenario(store, sync):
            await sync.mount()
            server.fail_with = httpx.Response(500, json={"message": "Failed to update overlay", "error": "boom"})
            server.fail_methods = {"PUT"}

            await sync.move_overlay(wire["id"], 300, 300)

            assert store.error == "Failed to update overlay"
            assert store.get(wire["id"]).position.x == 10

        _with_fake(server, scenario, rollback_on_failure=True)

    def test_locally_rejected_change_is_never_sent(self):
        wire = overlay_wire("text", "Title")
        server = FakeOverlayServer(wire)

        async def scenario(store, sync):
            await sync.mount()

            result = await sync.update_overlay(wire["id"], {"type": "image"})

            assert result is None
            assert store.error == "Cannot change overlay type"
            assert server.count("PUT") == 0
            assert store.get(wire["id"]).type == "text"

        _with_fake(server, scenario)

    def test_non_finite_drag_is_never_sent(self):
        wire = overlay_wire("image", "Logo")
        server = FakeOverlayServer(wire)

        async def scenario(store, sync):
            await sync.mount()

            result = await sync.move_overlay(wire["id"], float("nan"), 20)

            assert result is None
            assert store.error is not None
            assert server.count("PUT") == 0
            assert store.get(wire["id"]).position.x == 10

        _with_fake(server, scenario)

    def test_last_resolved_response_wins(self):
        """Two drags of one overlay; the first request's response arrives last."""
        wire = overlay_wire("image", "Logo")
        server = FakeOverlayServer(wire)
        first_gate = asyncio.Event()
        second_gate = asyncio.Event()
        server.gates = {100: first_gate, 200: second_gate}

        async def scenario(store, sync):
            await sync.mount()

            first = asyncio.create_task(sync.move_overlay(wire["id"], 100, 10))
            second = asyncio.create_task(sync.move_overlay(wire["id"], 200, 20))
            while server.count("PUT") < 2:
                await asyncio.sleep(0)

            # Both optimistic patches applied, the later one on top
            assert store.get(wire["id"]).position.x == 200

            second_gate.set()
            await second
            assert store.get(wire["id"]).position.x == 200

            first_gate.set()
            await first
            final = store.get(wire["id"])
            assert (final.position.x, final.position.y) == (100, 10)

        _with_fake(server, scenario)


class TestDelete:
    def test_delete_removes_after_confirmation(self):
        wire = overlay_wire("text", "Temp")
        server = FakeOverlayServer(wire)

        async def scenario(store, sync):
            await sync.mount()
            store.select(store.get(wire["id"]))

            ok = await sync.delete_overlay(wire["id"])

            assert ok is True
            assert store.overlays == ()
            assert store.selected_overlay is None

        _with_fake(server, scenario)

    def test_failed_delete_keeps_overlay(self):
        wire = overlay_wire("text", "Stays")
        server = FakeOverlayServer(wire)

        async def scenario(store, sync):
            await sync.mount()
            server.fail_with = httpx.Response(500, json={"message": "Failed to delete overlay", "error": "boom"})
            server.fail_methods = {"DELETE"}

            ok = await sync.delete_overlay(wire["id"])

            assert ok is False
            assert store.error == "Failed to delete overlay"
            assert store.get(wire["id"]) is not None

        _with_fake(server, scenario)

    def test_delete_unknown_id_reports_not_found(self):
        server = FakeOverlayServer()

        async def scenario(store, sync):
            ok = await sync.delete_overlay("8e0f0c1a-7d2b-4d5e-9a3c-1b2c3d4e5f60")
            assert ok is False
            assert store.error == "Overlay not found"

        _with_fake(server, scenario)


class TestStreamSettingsSync:
    def test_fetch_then_save_current(self):
        async def do_test():
            async with asgi_http_client() as http:
                stream = StreamStore()
                sync = StreamSettingsSync(stream, OverlayApiClient(client=http))

                await sync.mount()
                assert stream.stream_name == "Default Stream"
                assert stream.rtsp_url

                stream.set_rtsp_url("rtsp://studio/live")
                stream.set_volume(0.2)
                saved = await sync.save_current_settings()

                assert saved is not None
                assert saved.rtsp_url == "rtsp://studio/live"
                assert saved.default_volume == 0.2
                assert stream.error is None

        run_async(do_test())

    def test_fetch_failure_sets_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async def do_test():
            async with mock_http_client(handler) as http:
                stream = StreamStore("rtsp://before/live")
                sync = StreamSettingsSync(stream, OverlayApiClient(client=http))

                assert await sync.fetch_settings() is None
                assert stream.error is not None
                assert stream.rtsp_url == "rtsp://before/live"

        run_async(do_test())
