"""
Tests for the render API routes.
"""

import base64
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

BASE_URL = "https://presenta.test"


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_request_id_echoed(client: TestClient) -> None:
    resp = client.get("/", headers={"X-Request-ID": "req_test"})
    assert resp.headers["X-Request-ID"] == "req_test"


def test_render_returns_binary(client: TestClient, mock_request: MagicMock) -> None:
    resp = client.post("/render", json={"template_id": "t1", "filename": "invoice.pdf"})

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.headers["content-disposition"] == 'attachment; filename="invoice.pdf"'
    assert resp.content == mock_request.return_value.content
    # Falls back to the configured token
    assert mock_request.call_args.kwargs["headers"]["Authorization"] == "Bearer env-token"


def test_render_forwards_bearer_token(client: TestClient, mock_request: MagicMock) -> None:
    client.post(
        "/render",
        json={"template_id": "t1"},
        headers={"Authorization": "Bearer from-caller"},
    )
    assert mock_request.call_args.kwargs["headers"]["Authorization"] == "Bearer from-caller"


def test_render_image(client: TestClient, mock_request: MagicMock, make_response) -> None:
    mock_request.return_value = make_response(content=b"RIFF....WEBP")

    resp = client.post("/render", json={"template_id": "t1", "export_format": "webp"})

    assert resp.headers["content-type"] == "image/webp"
    assert 'filename="document.webp"' in resp.headers["content-disposition"]


def test_render_non_ascii_filename(client: TestClient, mock_request: MagicMock) -> None:
    resp = client.post("/render", json={"template_id": "t1", "filename": "报告.pdf"})

    assert resp.status_code == 200
    assert resp.headers["content-disposition"] == (
        "attachment; filename=\"__.pdf\"; filename*=UTF-8''%E6%8A%A5%E5%91%8A.pdf"
    )


def test_render_filename_with_quotes(client: TestClient, mock_request: MagicMock) -> None:
    resp = client.post("/render", json={"template_id": "t1", "filename": 'a"b\\c.pdf'})

    assert resp.status_code == 200
    disposition = resp.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="a_b_c.pdf"; filename*=UTF-8\'\'')
    assert disposition.endswith("a%22b%5Cc.pdf")


def test_render_debug_returns_json(client: TestClient, mock_request: MagicMock) -> None:
    resp = client.post("/render", json={"template_id": "t1", "debug": True})

    assert resp.status_code == 200
    data = resp.json()
    assert base64.b64decode(data["artifact"]["data"]) == mock_request.return_value.content
    assert data["diagnostics"]["request"]["headers"]["Authorization"] == "Bearer ***"
    assert data["diagnostics"]["request"]["url"] == f"{BASE_URL}/api/render/t1"


def test_render_invalid_payload(client: TestClient, mock_request: MagicMock) -> None:
    resp = client.post("/render", json={"template_id": "t1", "payload": "[1, 2]"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_PAYLOAD_SHAPE"
    mock_request.assert_not_called()


def test_render_missing_template_id(client: TestClient, mock_request: MagicMock) -> None:
    resp = client.post("/render", json={"payload": {}})
    assert resp.status_code == 422
    mock_request.assert_not_called()


def test_render_upstream_failure(client: TestClient, mock_request: MagicMock, make_response) -> None:
    mock_request.return_value = make_response(status_code=401, content=b"unauthorized")

    resp = client.post("/render", json={"template_id": "t1"})

    assert resp.status_code == 502
    error = resp.json()["error"]
    assert error["code"] == "UPSTREAM_REQUEST_FAILED"
    assert error["details"]["status_code"] == 401


def test_render_missing_credential(client: TestClient, settings, mock_request: MagicMock) -> None:
    settings.api_token = None

    resp = client.post("/render", json={"template_id": "t1"})

    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "MISSING_CREDENTIAL"
    mock_request.assert_not_called()


def test_batch_continue_on_fail(client: TestClient, mock_request: MagicMock) -> None:
    resp = client.post("/render/batch", json={
        "items": [
            {"template_id": "t1", "export_format": "png"},
            {"template_id": "t2", "payload": "{bad"},
        ],
        "continue_on_fail": True,
    })

    assert resp.status_code == 200
    data = resp.json()
    assert data["succeeded"] == 1
    assert data["failed"] == 1
    first, second = data["items"]
    assert first["result"]["artifact"]["mime_type"] == "image/png"
    assert base64.b64decode(first["result"]["artifact"]["data"]) == mock_request.return_value.content
    assert second["error"]["code"] == "INVALID_PAYLOAD_FORMAT"
    assert second["result"] is None


def test_batch_aborts_on_failure(client: TestClient, mock_request: MagicMock) -> None:
    resp = client.post("/render/batch", json={
        "items": [{"template_id": ""}, {"template_id": "t2"}],
        "continue_on_fail": False,
    })

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "INVALID_CONFIG"
    mock_request.assert_not_called()


def test_credential_status(client: TestClient) -> None:
    with patch("presenta_connector.modules.render.client.requests.get") as mock_get:
        mock_get.return_value = MagicMock(status_code=200)
        resp = client.get("/render/status")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "base_url": BASE_URL}
    assert mock_get.call_args.args[0] == f"{BASE_URL}/api/status"
    assert mock_get.call_args.kwargs["headers"]["Authorization"] == "Bearer env-token"
