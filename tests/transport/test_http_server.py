import json

import pytest
from starlette.testclient import TestClient

from fsbridge.protocol.base import EXECUTION_ERROR, INVALID_REQUEST, UNAUTHORIZED
from fsbridge.transport.http.server import HttpServerTransport

AUTH_TOKEN = "test-token"
HEADERS = {"Authorization": f"Bearer {AUTH_TOKEN}"}


@pytest.fixture
def transport(config):
    return HttpServerTransport.from_config(config)


@pytest.fixture
def client(transport):
    return TestClient(transport.app)


def tool_call(name, arguments, request_id=1):
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tool_call",
        "params": {"name": name, "arguments": arguments},
    }


class TestAuthentication:
    def test_missing_header_is_rejected(self, client):
        # Act
        response = client.post("/mcp", json=tool_call("search_files", {"query": "a"}))

        # Assert
        assert response.status_code == 401
        assert response.json() == {
            "jsonrpc": "2.0",
            "id": None,
            "error": {"code": UNAUTHORIZED, "message": "Unauthorized"},
        }

    @pytest.mark.parametrize(
        "header",
        [
            "Bearer wrong-token",
            AUTH_TOKEN,
            f"bearer {AUTH_TOKEN}",
            "Bearer ",
        ],
    )
    def test_wrong_credential_is_rejected(self, client, header):
        # Act
        response = client.post(
            "/mcp",
            json=tool_call("search_files", {"query": "a"}),
            headers={"Authorization": header},
        )

        # Assert
        assert response.status_code == 401
        assert response.json()["error"]["code"] == UNAUTHORIZED

    def test_rejected_request_has_no_side_effects(self, client, root_dir):
        # Arrange
        (root_dir / "a.txt").write_text("keep")

        # Act
        client.post(
            "/mcp",
            json=tool_call(
                "replace_text", {"filename": "a.txt", "search": "keep", "replace": "x"}
            ),
            headers={"Authorization": "Bearer nope"},
        )

        # Assert
        assert (root_dir / "a.txt").read_text() == "keep"

    def test_authentication_precedes_parsing(self, client):
        # Act
        response = client.post("/mcp", content=b"{not json")

        # Assert
        assert response.status_code == 401


class TestRouting:
    @pytest.mark.parametrize("path", ["/", "/other", "/mcp/", "/mcp/extra"])
    def test_unknown_path_is_not_found(self, client, path):
        # Act
        response = client.post(path, json={}, headers=HEADERS)

        # Assert
        assert response.status_code == 404
        assert response.json() == {
            "jsonrpc": "2.0",
            "id": None,
            "error": {"code": INVALID_REQUEST, "message": "Not Found"},
        }

    @pytest.mark.parametrize(
        "method", ["GET", "PUT", "DELETE", "OPTIONS", "PROPFIND", "TRACE"]
    )
    def test_other_methods_are_not_found(self, client, method):
        # Act
        response = client.request(method, "/mcp", headers=HEADERS)

        # Assert
        assert response.status_code == 404
        assert response.json()["error"]["code"] == INVALID_REQUEST

    def test_custom_endpoint_path(self, root_dir, config):
        # Arrange
        custom = config.model_copy(update={"endpoint_path": "/rpc"})
        client = TestClient(HttpServerTransport.from_config(custom).app)

        # Act
        ok = client.post(
            "/rpc", json={"jsonrpc": "2.0", "id": 1, "method": "initialize"}, headers=HEADERS
        )
        missing = client.post("/mcp", json={}, headers=HEADERS)

        # Assert
        assert ok.status_code == 200
        assert missing.status_code == 404


class TestParsing:
    @pytest.mark.parametrize("body", [b"{not json", b"", b"\xff\xfe"])
    def test_invalid_body_is_execution_error(self, client, body):
        # Act
        response = client.post("/mcp", content=body, headers=HEADERS)

        # Assert
        assert response.status_code == 500
        data = response.json()
        assert data["id"] is None
        assert data["error"]["code"] == EXECUTION_ERROR
        assert data["error"]["message"].startswith("Parse error")


class TestDispatch:
    def test_single_request_gets_single_response(self, client, root_dir):
        # Arrange
        (root_dir / "app.log").write_text("ERROR one\nINFO two\nERROR three\n")

        # Act
        response = client.post(
            "/mcp",
            json=tool_call("analyze_logs", {"filename": "app.log", "pattern": "ERROR"}, "a1"),
            headers=HEADERS,
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert isinstance(data, dict)
        assert data["id"] == "a1"
        assert json.loads(data["result"]["content"][0]["text"]) == {
            "matches": ["ERROR", "ERROR"],
            "count": 2,
        }

    def test_single_item_array_gets_array(self, client):
        # Act
        response = client.post(
            "/mcp",
            json=[{"jsonrpc": "2.0", "id": 1, "method": "initialize"}],
            headers=HEADERS,
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert isinstance(data, list)
        assert len(data) == 1

    def test_empty_array_gets_empty_array(self, client):
        # Act
        response = client.post("/mcp", json=[], headers=HEADERS)

        # Assert
        assert response.status_code == 200
        assert response.json() == []

    def test_batch_keeps_order_and_errors_inline(self, client, root_dir):
        # Arrange
        (root_dir / "notes.txt").write_text("hello")
        batch = [
            tool_call("search_files", {"query": "notes"}, 1),
            tool_call("analyze_logs", {"filename": "../../etc/passwd", "pattern": "root"}, 2),
            {"jsonrpc": "2.0", "id": 3, "method": "shutdown"},
            "garbage",
        ]

        # Act
        response = client.post("/mcp", json=batch, headers=HEADERS)

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert [item["id"] for item in data] == [1, 2, 3, None]
        assert json.loads(data[0]["result"]["content"][0]["text"]) == ["notes.txt"]
        assert data[1]["error"]["code"] == EXECUTION_ERROR
        assert data[2]["error"] == {"code": INVALID_REQUEST, "message": "Invalid method"}
        assert data[3]["error"]["code"] == INVALID_REQUEST

    def test_traversal_does_not_leak_outside_content(self, client):
        # Act
        response = client.post(
            "/mcp",
            json=tool_call(
                "analyze_logs", {"filename": "../root-sibling/secret.txt", "pattern": "."}
            ),
            headers=HEADERS,
        )

        # Assert
        assert response.status_code == 200
        assert "top secret" not in response.text
        assert response.json()["error"]["code"] == EXECUTION_ERROR

    def test_initialize_announces_enabled_tools(self, client):
        # Act
        response = client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 0, "method": "initialize", "params": {}},
            headers=HEADERS,
        )

        # Assert
        assert response.json()["result"]["capabilities"]["tools"] == [
            "analyze_logs",
            "search_files",
            "organize_files",
            "replace_text",
        ]

    def test_delete_round_trip_when_enabled(self, delete_config, root_dir):
        # Arrange
        (root_dir / "old.tmp").write_text("x")
        client = TestClient(HttpServerTransport.from_config(delete_config).app)

        # Act
        response = client.post(
            "/mcp", json=tool_call("delete_file", {"filename": "old.tmp"}), headers=HEADERS
        )

        # Assert
        assert json.loads(response.json()["result"]["content"][0]["text"]) == (
            "File deleted: old.tmp"
        )
        assert not (root_dir / "old.tmp").exists()


class TestConfiguration:
    def test_from_config_uses_config_values(self, config):
        # Arrange
        custom = config.model_copy(update={"host": "0.0.0.0", "port": 8123})

        # Act
        transport = HttpServerTransport.from_config(custom)

        # Assert
        assert transport.host == "0.0.0.0"
        assert transport.port == 8123
        assert transport.endpoint_path == "/mcp"
