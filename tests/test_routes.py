from __future__ import annotations

import re

from fastapi.testclient import TestClient

from voicemix.main import app


def test_root_route_ok() -> None:
    client = TestClient(app)
    data = client.get("/").json()
    assert data["ok"] is True
    assert data["name"] == "voicemix-api"
    assert isinstance(data["ts"], int)


def test_health_routes() -> None:
    client = TestClient(app)
    assert client.get("/health").json() == {"ok": True}
    assert client.get("/healthz").json()["status"] == "ok"


def test_ffmpeg_check_shape() -> None:
    client = TestClient(app)
    data = client.get("/ffmpeg-check").json()
    assert set(data) == {"path", "exists"}


def test_render_success(client, store, mixer) -> None:
    r = client.post(
        "/render",
        json={"voiceKey": "uploads/abc-voice.wav", "musicKey": "uploads/def-music.wav"},
    )

    assert r.status_code == 200, r.text
    data = r.json()
    assert data["ok"] is True
    assert re.match(r"^output/[0-9a-f\-]{36}\.mp3$", data["outputKey"])
    assert data["url"] == store.public_url(data["outputKey"])
    assert list(store.objects) == [data["outputKey"]]
    assert not mixer.calls[0][2].exists()


def test_render_empty_body_is_400_without_side_effects(client, store, mixer) -> None:
    r = client.post("/render", json={})

    assert r.status_code == 400
    assert r.json() == {"ok": False, "error": "Missing voiceKey or musicKey"}
    assert store.calls == []
    assert mixer.calls == []


def test_render_pipeline_failure_hides_detail(client, store, mixer) -> None:
    mixer.error = "ffmpeg exited with 1: /tmp/mix-secret.mp3 403 Forbidden"

    r = client.post(
        "/render",
        json={"voiceKey": "uploads/abc-voice.wav", "musicKey": "uploads/def-music.wav"},
    )

    assert r.status_code == 500
    assert r.json() == {"ok": False, "error": "Render failed"}
    assert store.writes == []


def test_render_without_storage_is_503() -> None:
    client = TestClient(app)
    app.state.object_store = None

    r = client.post("/render", json={"voiceKey": "a", "musicKey": "b"})

    assert r.status_code == 503
    assert r.json() == {"ok": False, "error": "Storage is not configured"}


def test_startup_without_storage_keeps_health_up(monkeypatch) -> None:
    for name in (
        "R2_ENDPOINT",
        "R2_ENDPOINT_URL",
        "R2_BUCKET_NAME",
        "R2_BUCKET",
        "R2_ACCOUNT_ID",
        "R2_ACCESS_KEY_ID",
        "R2_ACCESS_KEY",
        "R2_SECRET_ACCESS_KEY",
        "R2_SECRET_KEY",
    ):
        monkeypatch.delenv(name, raising=False)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert client.get("/healthz").json() == {"status": "ok", "storage": False}


def test_upload_success(client, store) -> None:
    r = client.post("/upload", files={"file": ("my voice.wav", b"RIFFdata", "audio/wav")})

    assert r.status_code == 200, r.text
    data = r.json()
    assert data["ok"] is True
    assert data["key"].startswith("uploads/")
    assert data["key"].endswith("-my-voice.wav")
    assert data["url"] == store.public_url(data["key"])
    assert store.objects[data["key"]] == (b"RIFFdata", "audio/wav")


def test_upload_missing_file(client, store) -> None:
    r = client.post("/upload")

    assert r.status_code == 400
    assert r.json() == {"ok": False, "error": "Missing file"}
    assert store.calls == []


def test_upload_too_large(client, store, monkeypatch) -> None:
    from voicemix.app.config import get_settings

    monkeypatch.setattr(get_settings(), "max_upload_bytes", 4)

    r = client.post("/upload", files={"file": ("voice.wav", b"RIFFdata", "audio/wav")})

    assert r.status_code == 413
    assert store.calls == []


def test_upload_store_failure(client, store) -> None:
    store.fail_put = True

    r = client.post("/upload", files={"file": ("voice.wav", b"RIFFdata", "audio/wav")})

    assert r.status_code == 500
    assert r.json() == {"ok": False, "error": "Upload failed"}


def test_render_empty_body_is_400_even_without_storage() -> None:
    client = TestClient(app)
    app.state.object_store = None

    r = client.post("/render", json={})

    assert r.status_code == 400
    assert r.json() == {"ok": False, "error": "Missing voiceKey or musicKey"}


def test_upload_missing_file_is_400_even_without_storage() -> None:
    client = TestClient(app)
    app.state.object_store = None

    r = client.post("/upload")

    assert r.status_code == 400
    assert r.json() == {"ok": False, "error": "Missing file"}


def test_render_non_string_key_is_400_without_echo(client, store, mixer) -> None:
    r = client.post("/render", json={"voiceKey": 123, "musicKey": "uploads/def-music.wav"})

    assert r.status_code == 400
    assert r.json() == {"ok": False, "error": "Invalid request"}
    assert store.calls == []
    assert mixer.calls == []


def test_render_malformed_json_is_400(client, store) -> None:
    r = client.post("/render", content=b"{not json", headers={"Content-Type": "application/json"})

    assert r.status_code == 400
    assert r.json() == {"ok": False, "error": "Invalid request"}
    assert store.calls == []


def test_request_id_header_is_echoed_or_generated() -> None:
    client = TestClient(app)

    echoed = client.get("/health", headers={"X-Request-ID": "abc123"})
    generated = client.get("/health")

    assert echoed.headers["X-Request-ID"] == "abc123"
    assert re.match(r"^[0-9a-f]{12}$", generated.headers["X-Request-ID"])
