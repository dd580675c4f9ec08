import asyncio

from fastapi.testclient import TestClient

from remote_executor.app import create_app
from remote_executor.config import GatewayConfig

from .conftest import SECRET


def test_root_and_health(client, sandbox_root):
    assert client.get("/").json() == {"ok": True, "service": "LLM Remote Executor"}
    data = client.get("/health").json()
    assert data["ok"] is True
    assert data["base_dir"] == str(sandbox_root.resolve())
    assert data["disk"]["total"] > 0


def test_scenario_write_read_escape_shell(client, sandbox_root):
    r = client.get("/api", params={"token": SECRET, "action": "write_file", "path": "a/b.txt", "content": "hello"})
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert (sandbox_root / "a" / "b.txt").read_text() == "hello"

    r = client.get("/api", params={"token": SECRET, "action": "read_file", "path": "a/b.txt"})
    assert r.status_code == 200
    assert r.text == "hello"
    assert r.headers["content-type"].startswith("text/plain")

    r = client.get("/api", params={"token": SECRET, "action": "read_file", "path": "../../etc/passwd"})
    assert r.status_code == 500
    assert "error" in r.json()

    r = client.get("/api", params={"token": SECRET, "action": "shell", "command": "echo hi"})
    assert r.status_code == 200
    data = r.json()
    assert "hi" in data["stdout"]
    assert data["error"] is None


def test_get_bad_token(client, sandbox_root):
    r = client.get("/api", params={"token": "nope", "action": "write_file", "path": "x", "content": "y"})
    assert r.status_code == 403
    assert r.json() == {"error": "Forbidden"}
    assert not (sandbox_root / "x").exists()


def test_get_missing_action(client):
    r = client.get("/api", params={"token": SECRET})
    assert r.status_code == 400
    assert r.json() == {"error": "Action required"}


def test_post_json_body(client, sandbox_root):
    r = client.post("/api", json={"token": SECRET, "action": "write_file", "path": "j.txt", "content": "from json"})
    assert r.status_code == 200
    assert (sandbox_root / "j.txt").read_text() == "from json"

    r = client.post("/api", json={"token": SECRET, "action": "read_file", "path": "j.txt"})
    assert r.json() == {"success": True, "content": "from json"}


def test_post_json_ignores_query_string(client):
    r = client.post("/api?token=" + SECRET, json={"action": "list_dir"})
    assert r.status_code == 403


def test_post_json_non_object_is_forbidden(client):
    r = client.post("/api", json=["token", SECRET])
    assert r.status_code == 403


def test_post_invalid_json(client):
    r = client.post("/api", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid JSON body"}


def test_post_form_merges_query(client, sandbox_root):
    r = client.post(
        "/api",
        params={"token": SECRET, "action": "list_dir"},
        data={"action": "write_file", "path": "form.txt", "content": "a=b&c"},
    )
    assert r.status_code == 200
    assert (sandbox_root / "form.txt").read_text() == "a=b&c"


def test_post_text_plain_body_is_content(client, sandbox_root):
    text = "raw body\nwith lines\n"
    r = client.post(
        "/api",
        params={"token": SECRET, "action": "write_file", "path": "plain.txt", "content": "ignored"},
        content=text.encode("utf-8"),
        headers={"content-type": "text/plain; charset=utf-8"},
    )
    assert r.status_code == 200
    assert r.json()["contentLength"] == len(text)
    assert (sandbox_root / "plain.txt").read_text() == text


def test_post_shell(client):
    r = client.post("/api", json={"token": SECRET, "action": "shell", "command": "echo oops 1>&2; exit 1"})
    assert r.status_code == 200
    data = r.json()
    assert "oops" in data["stderr"]
    assert data["error"] is not None


def test_post_payload_too_large(sandbox_root):
    config = GatewayConfig(secret_token=SECRET, base_dir=sandbox_root, max_body_bytes=16)
    with TestClient(create_app(config)) as c:
        r = c.post("/api", json={"token": SECRET, "action": "write_file", "path": "big", "content": "x" * 64})
    assert r.status_code == 413
    assert r.json() == {"error": "Payload too large"}
    assert not (sandbox_root / "big").exists()


def test_list_dir_fresh_sandbox(client):
    r = client.get("/api", params={"token": SECRET, "action": "list_dir"})
    assert r.json() == {"success": True, "files": []}


def test_post_text_plain_honors_charset(client, sandbox_root):
    r = client.post(
        "/api",
        params={"token": SECRET, "action": "write_file", "path": "latin.txt"},
        content="café crème".encode("latin-1"),
        headers={"content-type": "text/plain; charset=latin-1"},
    )
    assert r.status_code == 200
    assert (sandbox_root / "latin.txt").read_text(encoding="utf-8") == "café crème"


def test_post_text_plain_unknown_charset(client):
    r = client.post(
        "/api",
        params={"token": SECRET, "action": "write_file", "path": "x.txt"},
        content=b"abc",
        headers={"content-type": "text/plain; charset=no-such-codec"},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid text body"}


def test_post_chunked_body_over_limit_stops_reading(sandbox_root):
    config = GatewayConfig(secret_token=SECRET, base_dir=sandbox_root, max_body_bytes=16)
    app = create_app(config)
    pulled = []
    sent = []

    async def receive():
        pulled.append(1024)
        return {"type": "http.request", "body": b"x" * 1024, "more_body": len(pulled) < 200}

    async def send(message):
        sent.append(message)

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/api",
        "raw_path": b"/api",
        "root_path": "",
        "query_string": f"token={SECRET}&action=write_file&path=big".encode(),
        "headers": [(b"content-type", b"text/plain"), (b"transfer-encoding", b"chunked")],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }
    asyncio.run(app(scope, receive, send))

    start = next(m for m in sent if m["type"] == "http.response.start")
    assert start["status"] == 413
    assert len(pulled) <= 2
    assert not (sandbox_root / "big").exists()


def test_post_chunked_form_body_within_limit(client, sandbox_root):
    def chunks():
        yield b"action=write_file&path=chunk.txt"
        yield b"&content=streamed"

    r = client.post(
        "/api",
        params={"token": SECRET},
        content=chunks(),
        headers={"content-type": "application/x-www-form-urlencoded"},
    )
    assert r.status_code == 200
    assert (sandbox_root / "chunk.txt").read_text() == "streamed"
