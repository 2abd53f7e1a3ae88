"""Tests for the admin CLI."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from logix_connector import cli
from logix_connector.upstream.logix import FetchResult
from logix_connector.utils.cli_helpers import CLIFormatter


@pytest.mark.asyncio
async def test_no_command_prints_help(capsys):
    assert await cli.main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


@pytest.mark.asyncio
async def test_enable_and_status(config_store, capsys):
    assert await cli.main(["enable"]) == 0
    assert config_store.is_caching_enabled() is True

    assert await cli.main(["status"]) == 0
    out = capsys.readouterr().out
    assert "Cache Status" in out
    assert "firebase" in out


@pytest.mark.asyncio
async def test_disable(config_store):
    config_store.set_caching_enabled(True)
    assert await cli.main(["disable"]) == 0
    assert config_store.is_caching_enabled() is False


@pytest.mark.asyncio
async def test_switch_to_proxy(config_store):
    assert await cli.main(["provider", "proxy"]) == 1

    assert await cli.main(["proxy-url", "https://cache.example.com/"]) == 0
    assert await cli.main(["provider", "proxy"]) == 0
    assert config_store.get_provider_name() == "proxy"
    assert config_store.get_proxy_base_url() == "https://cache.example.com"


@pytest.mark.asyncio
async def test_invalid_proxy_url(config_store):
    assert await cli.main(["proxy-url", "cache.example.com"]) == 1
    assert config_store.get_proxy_base_url() is None


@pytest.mark.asyncio
async def test_store_credentials_from_file(config_store, service_account, tmp_path):
    path = tmp_path / "service-account.json"
    path.write_text(json.dumps(service_account))

    assert await cli.main(["credentials", str(path)]) == 0
    assert config_store.get_service_account_creds() is not None


@pytest.mark.asyncio
async def test_store_credentials_missing_file(tmp_path, capsys):
    assert await cli.main(["credentials", str(tmp_path / "missing.json")]) == 1
    assert "Could not read" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_refresh_when_disabled(capsys):
    assert await cli.main(["refresh", "--deadline", "30"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["message"] == "Caching is disabled"
    assert payload["refreshed"] == 0


@pytest.mark.asyncio
async def test_clear_when_disabled(capsys):
    assert await cli.main(["clear"]) == 1
    assert "disabled" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_fetch_formats_rows(monkeypatch, capsys):
    fetcher = AsyncMock(return_value=FetchResult.ok([{"fund": "10", "amount": "2.50"}]))
    monkeypatch.setattr(cli, "LogixClient", MagicMock(return_value=fetcher))

    assert await cli.main(["fetch", "bellwood", "fund", "amount"]) == 0

    fetcher.assert_awaited_once_with(["fund", "amount"], "0001")
    assert json.loads(capsys.readouterr().out) == [{"values": ["10", 2.5]}]


@pytest.mark.asyncio
async def test_test_command_reports_unconfigured_provider(fake_session, capsys):
    assert await cli.main(["test", "--provider", "proxy"]) == 1
    assert "proxy provider test failed" in capsys.readouterr().out


def test_formatter_is_plain_without_terminal(monkeypatch):
    monkeypatch.setattr("sys.stdout.isatty", lambda: False)
    assert CLIFormatter.success("done") == "✓ done"
    assert CLIFormatter.field("Provider", "proxy") == "  Provider:    proxy"


@pytest.mark.asyncio
async def test_districts_lists_database_numbers(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdout.isatty", lambda: False)
    assert await cli.main(["districts"]) == 0
    out = capsys.readouterr().out
    assert "bellwood:" in out
    assert "0001  Bellwood" in out
    assert "0002  Proviso" in out


@pytest.mark.asyncio
async def test_element_types_for_district(monkeypatch, capsys):
    client = MagicMock()
    client.fetch_element_types = AsyncMock(return_value=["Fund", "Function"])
    monkeypatch.setattr(cli, "LogixClient", MagicMock(return_value=client))
    cleanup = AsyncMock()
    monkeypatch.setattr(cli, "cleanup_http_client", cleanup)

    assert await cli.main(["element-types", "proviso"]) == 0

    client.fetch_element_types.assert_awaited_once_with("0002")
    assert capsys.readouterr().out.splitlines() == ["Fund", "Function"]
    cleanup.assert_awaited_once()


@pytest.mark.asyncio
async def test_element_types_without_results(monkeypatch, capsys):
    client = MagicMock()
    client.fetch_element_types = AsyncMock(return_value=[])
    monkeypatch.setattr(cli, "LogixClient", MagicMock(return_value=client))

    assert await cli.main(["element-types", "demo"]) == 1
    assert "No element types returned" in capsys.readouterr().out
