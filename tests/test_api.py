import json

from fastapi.testclient import TestClient

from conftest import BrokenStore, CountingRenderer
from mermaid_permalink.api.main import create_app
from mermaid_permalink.api.services.cache_store import FileCacheStore
from mermaid_permalink.core.codec import decode, encode
from mermaid_permalink.core.errors import RenderFailure


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_index_page(client):
    for path in ("/", "/index.html"):
        response = client.get(path)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Mermaid" in response.text


def test_submission_end_to_end(client):
    response = client.post("/submissions", json={"code": "flowchart TD\n A-->B"})

    assert response.status_code == 200
    data = response.json()
    assert set(data) == {"token", "cleanedCode", "svgUrl", "pngUrl"}
    assert data["cleanedCode"] == "flowchart TD\n A-->B"
    assert decode(data["token"]) == data["cleanedCode"]
    assert data["svgUrl"] == f"http://testserver/render/svg/{data['token']}"
    assert data["pngUrl"] == f"http://testserver/render/png/{data['token']}"


def test_submission_strips_header_and_fence(client):
    response = client.post("/submissions", json={"code": "# header\n```mermaid\nA-->B\n```"})
    assert response.json()["cleanedCode"] == "A-->B"


def test_submission_requires_code(client):
    for body in ({}, {"code": ""}, {"code": "   "}):
        response = client.post("/submissions", json=body)
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_SOURCE"


def test_submission_cors_preflight(client):
    response = client.options(
        "/submissions",
        headers={
            "Origin": "https://docs.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )
    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == "*"


def test_submission_bare_options(client):
    assert client.options("/submissions").status_code == 204


def test_submission_url_round_trips_through_render(client, renderer):
    data = client.post("/submissions", json={"code": "graph LR\n A-->B"}).json()

    response = client.get(data["svgUrl"])

    assert response.status_code == 200
    assert renderer.calls[0][0] == "graph LR\n A-->B"


def test_render_svg_then_cached(client, renderer):
    path = f"/render/svg/{encode('A-->B')}"

    first = client.get(path)
    assert first.status_code == 200
    assert first.headers["content-type"] == "image/svg+xml"
    assert first.headers["cache-control"] == "public, max-age=86400, immutable"
    assert first.headers["access-control-allow-origin"] == "*"
    assert first.headers["x-cache"] == "MISS"

    for _ in range(3):
        again = client.get(path)
        assert again.status_code == 200
        assert again.content == first.content
        assert again.headers["x-cache"] == "HIT"

    assert len(renderer.calls) == 1


def test_formats_are_cached_separately(client, renderer):
    token = encode("A-->B")

    svg = client.get(f"/render/svg/{token}")
    png = client.get(f"/render/png/{token}")

    assert svg.headers["content-type"] == "image/svg+xml"
    assert png.headers["content-type"] == "image/png"
    assert png.content.startswith(b"\x89PNG")
    assert len(renderer.calls) == 2


def test_invalid_token_is_client_error(client, renderer):
    response = client.get("/render/svg/not-valid-base64!!!")

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text.startswith("Invalid diagram token")
    assert renderer.calls == []


def test_render_failure_is_server_error_and_not_cached(client, renderer):
    renderer.fail_with = RenderFailure("Parse error on line 1")
    path = f"/render/png/{encode('A-->')}"

    first = client.get(path)
    assert first.status_code == 500
    assert first.headers["content-type"].startswith("text/plain")
    assert first.text == "Error rendering diagram: Parse error on line 1"

    renderer.fail_with = None
    second = client.get(path)
    assert second.status_code == 200
    assert len(renderer.calls) == 2


def test_unknown_format_and_path_are_404(client):
    assert client.get(f"/render/gif/{encode('A-->B')}").status_code == 404
    assert client.get("/render/svg").status_code == 404
    assert client.get("/nowhere").status_code == 404


def test_unreachable_cache_still_renders(config):
    renderer = CountingRenderer()
    client = TestClient(create_app(config, renderer=renderer, cache_store=BrokenStore()))
    path = f"/render/svg/{encode('A-->B')}"

    assert client.get(path).status_code == 200
    assert client.get(path).status_code == 200
    assert len(renderer.calls) == 2


def test_corrupt_disk_entry_is_rendered_again(config, tmp_path):
    renderer = CountingRenderer()
    store = FileCacheStore(str(tmp_path))
    client = TestClient(create_app(config, renderer=renderer, cache_store=store))
    path = f"/render/svg/{encode('A-->B')}"

    first = client.get(path)
    for meta_path in (tmp_path / "entries").glob("*.json"):
        meta_path.write_text(json.dumps({"key": f"svg:{path}"}))

    second = client.get(path)
    third = client.get(path)

    assert second.status_code == 200
    assert second.content == first.content
    assert second.headers["x-cache"] == "MISS"
    assert third.headers["x-cache"] == "HIT"
    assert len(renderer.calls) == 2
