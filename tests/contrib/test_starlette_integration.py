from __future__ import annotations

import time

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from parley.conf import Settings
from parley.contrib.starlette import create_app
from parley.hub import RelayHub
from parley.identity import ClientIdentity, Role

T1 = ClientIdentity(Role.TEACHER, "t1")
S1 = ClientIdentity(Role.STUDENT, "s1")


def wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


@pytest.fixture
def hub() -> RelayHub:
    return RelayHub()


@pytest.fixture
def client(hub: RelayHub):
    app = create_app(hub=hub, settings=Settings())
    with TestClient(app) as client:
        yield client


def test_healthz_and_metrics(client, hub):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "active_clients": 0}

    response = client.get("/metrics")
    assert response.status_code == 200

    data = response.json()

    assert data["active_clients"] == 0
    assert "messages_forwarded" in data
    assert "evictions" in data


def test_message_is_relayed_between_websocket_clients(client, hub):
    with client.websocket_connect("/ws") as teacher, client.websocket_connect("/ws") as student:
        teacher.send_json({"type": 1, "id": "t1"})
        student.send_json({"type": 0, "id": "s1"})
        wait_for(lambda: T1 in hub.registry and S1 in hub.registry)

        student.send_json({"from": "s1", "type": 1, "id": "t1", "msg": "hello"})

        assert teacher.receive_json() == {"from": "s1", "msg": "hello"}

        teacher.send_text("close")
        with pytest.raises(WebSocketDisconnect):
            teacher.receive_text()

        wait_for(lambda: T1 not in hub.registry)
        assert S1 in hub.registry


def test_invalid_registration_closes_websocket(client, hub):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")

        with pytest.raises(WebSocketDisconnect):
            ws.receive_text()

    assert len(hub.registry) == 0
    assert hub.metrics.malformed_frames == 1


def test_custom_paths_are_honoured(hub):
    settings = Settings(path="/relay", health_path="/health")
    app = create_app(hub=hub, settings=settings)

    with TestClient(app) as client:
        assert client.get("/health").json()["status"] == "ok"

        with client.websocket_connect("/relay") as ws:
            ws.send_json({"type": 1, "id": "t1"})
            wait_for(lambda: T1 in hub.registry)


def test_utf8_binary_frames_are_read_as_text(client, hub):
    with client.websocket_connect("/ws") as teacher, client.websocket_connect("/ws") as student:
        teacher.send_bytes(b'{"type": 1, "id": "t1"}')
        student.send_json({"type": 0, "id": "s1"})
        wait_for(lambda: T1 in hub.registry and S1 in hub.registry)

        student.send_bytes('{"from": "s1", "type": 1, "id": "t1", "msg": "héllo"}'.encode("utf-8"))

        assert teacher.receive_json() == {"from": "s1", "msg": "héllo"}


def test_invalid_utf8_binary_frame_closes_websocket(client, hub):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": 1, "id": "t1"})
        wait_for(lambda: T1 in hub.registry)

        ws.send_bytes(b"\xff")

        with pytest.raises(WebSocketDisconnect):
            ws.receive_text()

    wait_for(lambda: T1 not in hub.registry)
    assert hub.metrics.transport_errors == 1
