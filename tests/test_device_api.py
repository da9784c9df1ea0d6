"""Device control endpoints: play, stop and status."""

from __future__ import annotations

import asyncio
import logging

import pytest
from fastapi.testclient import TestClient

from speakercast.device import PlaybackController
from speakercast.device.server import create_device_app, log_pump_exit

URL = "http://server.local/audio/clip.mp3"


@pytest.fixture
def device_client(amplifier, fake_decoder) -> TestClient:
    controller = PlaybackController(amplifier, fake_decoder, switch_grace_seconds=0)
    return TestClient(create_device_app(controller=controller))


def test_play_starts_stream(device_client, amplifier, fake_decoder):
    response = device_client.post("/api/play", json={"url": URL})

    assert response.status_code == 200
    assert response.json() == {"status": "playing"}
    assert fake_decoder.current == URL
    assert amplifier.is_enabled


@pytest.mark.parametrize("payload", [{}, {"url": ""}, {"url": "   "}])
def test_play_without_url_is_rejected(device_client, fake_decoder, payload):
    response = device_client.post("/api/play", json=payload)

    assert response.status_code == 400
    assert response.json() == {"detail": "Missing 'url'"}
    assert fake_decoder.opened == []


def test_play_with_malformed_body_is_rejected(device_client):
    response = device_client.post(
        "/api/play",
        content=b"url=http://x",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400


def test_play_failure_is_reported_and_device_stays_idle(device_client, amplifier):
    response = device_client.post("/api/play", json={"url": "ftp://server.local/clip.mp3"})

    assert response.status_code == 500
    assert "Unsupported stream URL" in response.json()["detail"]
    assert device_client.get("/api/status").json() == {
        "state": "idle",
        "url": None,
        "amplifier": False,
    }
    assert not amplifier.is_enabled


def test_switch_then_stop_twice(device_client, amplifier, fake_decoder):
    device_client.post("/api/play", json={"url": URL})
    device_client.post("/api/play", json={"url": "http://server.local/audio/next.mp3"})

    status = device_client.get("/api/status").json()
    assert status == {
        "state": "active",
        "url": "http://server.local/audio/next.mp3",
        "amplifier": True,
    }
    assert amplifier.enable_count == 1

    for _ in range(2):
        response = device_client.post("/api/stop")
        assert response.status_code == 200
        assert response.json() == {"status": "stopped"}

    assert device_client.get("/api/status").json()["state"] == "idle"
    assert not amplifier.is_enabled


def test_stop_reports_success_when_decoder_close_fails(device_client, amplifier, fake_decoder):
    device_client.post("/api/play", json={"url": URL})
    fake_decoder.close_error = OSError("socket already reset")

    response = device_client.post("/api/stop")

    assert response.status_code == 200
    assert response.json() == {"status": "stopped"}
    assert not amplifier.is_enabled


def test_dead_pump_task_is_logged(caplog):
    async def _crash():
        raise RuntimeError("decoder glitch")

    async def _run_and_report():
        task = asyncio.create_task(_crash())
        task.add_done_callback(log_pump_exit)
        await asyncio.wait({task})
        await asyncio.sleep(0)

    with caplog.at_level(logging.ERROR, logger="speakercast.device.server"):
        asyncio.run(_run_and_report())

    assert "Playback pump stopped" in caplog.text
    assert "decoder glitch" in caplog.text


def test_play_stopped_while_opening_is_a_conflict(amplifier, fake_decoder, monkeypatch):
    controller = PlaybackController(amplifier, fake_decoder, switch_grace_seconds=0)
    client = TestClient(create_device_app(controller=controller))
    open_stream = fake_decoder.open
    fake_decoder.open_delay = 0.5
    stops = []

    async def _open_then_stop(url):
        stops.append(asyncio.get_running_loop().create_task(controller.stop()))
        await open_stream(url)

    monkeypatch.setattr(fake_decoder, "open", _open_then_stop)

    response = client.post("/api/play", json={"url": URL})

    assert response.status_code == 409
    assert "interrupted" in response.json()["detail"]
    assert len(stops) == 1 and stops[0].done()
    assert client.get("/api/status").json() == {"state": "idle", "url": None, "amplifier": False}
