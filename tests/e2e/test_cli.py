"""End-to-end CLI coverage for the commands exposed by wg-access-config.

These tests drive ``resolve`` with real files and environment variables and
replace only the host prober, so the precedence rules operators rely on are
exercised exactly as the console script runs them.
"""

from __future__ import annotations

import json
from ipaddress import IPv4Address
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from wg_access_config import ResolutionError, cli, core
from wg_access_config.application.secrets import generate_private_key
from wg_access_config.domain.errors import ProbeError
from wg_access_config.domain.sources import ENV_VARIABLES


class StaticProber:
    def default_interface(self) -> str:
        return "eth0"

    def link_address(self, name: str) -> IPv4Address:
        if name != "eth0":
            raise ProbeError(f"failed to find network interface {name}")
        return IPv4Address("192.0.2.10")


@pytest.fixture(autouse=True)
def _static_host(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the commands away from the real ``ip`` binary and the caller's environment."""

    for variable in ENV_VARIABLES.values():
        monkeypatch.delenv(variable, raising=False)
    monkeypatch.setattr(core, "IPRouteProber", StaticProber)
    monkeypatch.setattr(cli, "IPRouteProber", StaticProber)


def _runner() -> CliRunner:
    """Return a fresh CLI runner so each test starts from a clean state."""

    return CliRunner()


def _payload(result: Result) -> dict:
    """Return the JSON document printed by ``resolve``; log lines share the output."""

    line = next(line for line in result.output.splitlines() if line.startswith("{"))
    return json.loads(line)


def test_cli_resolve_prints_json(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("wireguard:\n  port: 9999\n")
    result = _runner().invoke(cli.cli, ["resolve", "--config", str(config)], env={})
    assert result.exit_code == 0, result.output
    payload = _payload(result)
    assert payload["wireguard"]["port"] == 9999
    assert payload["wireguard"]["interfaceName"] == "wg0"
    assert payload["wireguard"]["privateKey"] == "<redacted>"
    assert payload["vpn"]["gatewayInterface"] == "eth0"


def test_cli_flags_override_environment(tmp_path: Path) -> None:
    result = _runner().invoke(
        cli.cli,
        ["resolve", "--upstream-dns", "9.9.9.9", "--storage-directory", str(tmp_path / "flag")],
        env={"UPSTREAM_DNS": "1.1.1.1", "STORAGE_DIRECTORY": str(tmp_path / "env")},
    )
    assert result.exit_code == 0, result.output
    payload = _payload(result)
    assert payload["dns"]["upstream"] == ["9.9.9.9"]
    assert payload["storage"]["directory"] == str(tmp_path / "flag")
    assert (tmp_path / "flag").is_dir()
    assert not (tmp_path / "env").exists()


def test_cli_resolve_with_provenance() -> None:
    result = _runner().invoke(cli.cli, ["resolve", "--log-level", "error", "--provenance"], env={})
    assert result.exit_code == 0, result.output
    payload = _payload(result)
    assert payload["config"]["loglevel"] == "error"
    assert payload["provenance"]["loglevel"]["layer"] == "flags"
    assert payload["provenance"]["vpn.gatewayInterface"]["layer"] == "probe"


def test_cli_show_secrets_reveals_key() -> None:
    key = generate_private_key()
    result = _runner().invoke(
        cli.cli,
        ["resolve", "--log-level", "error", "--show-secrets"],
        env={"WIREGUARD_PRIVATE_KEY": key},
    )
    assert result.exit_code == 0, result.output
    assert _payload(result)["wireguard"]["privateKey"] == key


def test_cli_admin_password_never_printed() -> None:
    result = _runner().invoke(
        cli.cli,
        ["resolve", "--log-level", "error", "--admin-password", "secret", "--show-secrets"],
        env={},
    )
    assert result.exit_code == 0, result.output
    assert "secret" not in result.output
    (entry,) = _payload(result)["auth"]["basic"]["users"]
    assert entry.startswith("admin:$2")


def test_cli_invalid_log_level_exits_non_zero() -> None:
    result = _runner().invoke(cli.cli, ["resolve", "--log-level", "verbose"], env={})
    assert result.exit_code == 1
    assert "invalid log level 'verbose'" in result.output


def test_cli_traceback_reraises() -> None:
    result = _runner().invoke(cli.cli, ["--traceback", "resolve", "--log-level", "verbose"], env={})
    assert result.exit_code != 0
    assert isinstance(result.exception, ResolutionError)


def test_cli_default_interface() -> None:
    result = _runner().invoke(cli.cli, ["default-interface"])
    assert result.exit_code == 0
    assert result.output.strip() == "eth0"


def test_cli_link_address() -> None:
    result = _runner().invoke(cli.cli, ["link-address", "eth0"])
    assert result.exit_code == 0
    assert result.output.strip() == "192.0.2.10"


def test_cli_link_address_unknown_interface() -> None:
    result = _runner().invoke(cli.cli, ["link-address", "wg9"])
    assert result.exit_code == 1
    assert "failed to find network interface wg9" in result.output


def test_cli_info_mentions_distribution() -> None:
    result = _runner().invoke(cli.cli, ["info"])
    assert result.exit_code == 0
    assert "wg-access-config" in result.output


def test_main_returns_exit_codes(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["default-interface"]) == 0
    assert capsys.readouterr().out.strip() == "eth0"

    assert cli.main(["link-address", "wg9"]) == 1
    assert "Error: failed to find network interface wg9" in capsys.readouterr().err


def test_main_version() -> None:
    assert cli.main(["--version"]) == 0
