"""Tests for the MCP tool dispatcher."""
from __future__ import annotations

import json
from unittest.mock import patch

import httpx
import pytest
import respx
from structlog.testing import capture_logs

from grafana_toolkit.config import Settings
from grafana_toolkit.server import call_tool, list_tools

BASE = "https://grafana.test"

GRAPHITE = {"id": 1, "name": "graphite", "type": "graphite", "url": "http://localhost:8080", "access": "proxy"}


@pytest.fixture(autouse=True)
def settings():
    s = Settings(grafana_url=BASE, api_token="glsa_test", ssl_verify=False, timeout=5.0)
    with patch("grafana_toolkit.server.get_settings", return_value=s):
        yield s


def _payload(result) -> dict:
    assert len(result) == 1
    return json.loads(result[0].text)


class TestListTools:
    @pytest.mark.asyncio
    async def test_all_tools_listed(self):
        names = {t.name for t in await list_tools()}
        assert names == {
            "list_datasources",
            "get_datasource",
            "create_datasource",
            "update_datasource",
            "delete_datasource",
            "regenerate_template_ids",
            "slug",
            "validate_json",
        }


class TestDatasourceTools:
    @respx.mock
    @pytest.mark.asyncio
    async def test_list_datasources(self):
        respx.get(f"{BASE}/api/datasources").mock(return_value=httpx.Response(200, json=[GRAPHITE]))
        data = _payload(await call_tool("list_datasources", {}))
        assert data["1"]["name"] == "graphite"

    @respx.mock
    @pytest.mark.asyncio
    async def test_get_datasource_by_name(self):
        respx.get(f"{BASE}/api/datasources").mock(return_value=httpx.Response(200, json=[GRAPHITE]))
        respx.get(f"{BASE}/api/datasources/1").mock(return_value=httpx.Response(200, json=GRAPHITE))
        data = _payload(await call_tool("get_datasource", {"datasource": "graphite"}))
        assert data["url"] == "http://localhost:8080"

    @respx.mock
    @pytest.mark.asyncio
    async def test_update_datasource(self):
        respx.get(f"{BASE}/api/datasources/1").mock(return_value=httpx.Response(200, json=GRAPHITE))
        put = respx.put(f"{BASE}/api/datasources/1").mock(
            return_value=httpx.Response(200, json={"message": "Datasource updated"})
        )
        data = _payload(await call_tool("update_datasource", {"datasource": 1, "data": {"url": "http://x:1"}}))
        assert data["message"] == "Datasource updated"
        sent = json.loads(put.calls.last.request.content)
        assert sent["url"] == "http://x:1"
        assert sent["type"] == "graphite"

    @respx.mock
    @pytest.mark.asyncio
    async def test_delete_unknown_is_not_found(self):
        respx.get(f"{BASE}/api/datasources").mock(return_value=httpx.Response(200, json=[GRAPHITE]))
        data = _payload(await call_tool("delete_datasource", {"datasource": "influx"}))
        assert data["status"] == 404

    @pytest.mark.asyncio
    async def test_invalid_type_reported_as_error(self):
        data = _payload(await call_tool(
            "create_datasource",
            {"type": "bogus", "name": "n", "database": "d", "url": "http://x"},
        ))
        assert "wrong datasource type" in data["error"]

    @respx.mock
    @pytest.mark.asyncio
    @pytest.mark.parametrize("tool", ["get_datasource", "delete_datasource"])
    async def test_bool_datasource_rejected_before_request(self, tool):
        route = respx.route(url__startswith=f"{BASE}/api/datasources").mock(
            return_value=httpx.Response(200, json={"message": "Data source deleted"})
        )
        data = _payload(await call_tool(tool, {"datasource": True}))
        assert data["error"].startswith("Input validation error")
        assert not route.called

    @respx.mock
    @pytest.mark.asyncio
    async def test_bool_datasource_rejected_on_update(self):
        route = respx.route(url__startswith=f"{BASE}/api/datasources").mock(
            return_value=httpx.Response(200, json=GRAPHITE)
        )
        data = _payload(await call_tool("update_datasource", {"datasource": False, "data": {"url": "http://x"}}))
        assert "error" in data
        assert not route.called

    @pytest.mark.asyncio
    async def test_numeric_string_is_a_name(self):
        with respx.mock:
            respx.get(f"{BASE}/api/datasources").mock(return_value=httpx.Response(200, json=[GRAPHITE]))
            data = _payload(await call_tool("get_datasource", {"datasource": "1"}))
        assert data["status"] == 404

    @pytest.mark.asyncio
    async def test_missing_input_reported_as_error(self):
        data = _payload(await call_tool("get_datasource", {}))
        assert data["error"].startswith("Input validation error")

    @pytest.mark.asyncio
    async def test_configuration_error(self):
        with patch("grafana_toolkit.server.get_settings", side_effect=RuntimeError("Grafana URL not found")):
            data = _payload(await call_tool("list_datasources", {}))
        assert "Configuration error" in data["error"]


class TestOfflineTools:
    @pytest.mark.asyncio
    async def test_regenerate_template_ids(self):
        doc = {"dashboard": {"rows": [{"panels": [{"id": 1}]}, {"panels": [{"id": 1}]}]}}
        result = await call_tool("regenerate_template_ids", {"dashboard_json": json.dumps(doc)})
        out = json.loads(result[0].text)
        assert [r["panels"][0]["id"] for r in out["dashboard"]["rows"]] == [10, 11]

    @pytest.mark.asyncio
    async def test_slug(self):
        assert _payload(await call_tool("slug", {"text": "My Dashboard"})) == {"slug": "my-dashboard"}

    @pytest.mark.asyncio
    async def test_validate_json(self):
        assert _payload(await call_tool("validate_json", {"text": "{}"})) == {"valid": True}
        assert _payload(await call_tool("validate_json", {"text": "{"})) == {"valid": False}

    @pytest.mark.asyncio
    async def test_validate_json_quiet_without_debug(self):
        with patch("grafana_toolkit.server._DEBUG", False), capture_logs() as logs:
            result = _payload(await call_tool("validate_json", {"text": "{"}))
        assert result == {"valid": False}
        assert [e for e in logs if e["event"] == "json.parse_error"] == []

    @pytest.mark.asyncio
    async def test_validate_json_logs_with_debug(self):
        with patch("grafana_toolkit.server._DEBUG", True), capture_logs() as logs:
            await call_tool("validate_json", {"text": "{"})
        assert [e["log_level"] for e in logs if e["event"] == "json.parse_error"] == ["error"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        assert "Unknown tool" in _payload(await call_tool("nope", {}))["error"]
