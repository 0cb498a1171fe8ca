"""Environment loader adapter tests.

The scenarios cover the documented variable names, empty values, boolean
coercion and randomised environments to prove the adapter only reads the
variables mirroring command-line flags.
"""

from __future__ import annotations

import logging

import pytest
from hypothesis import given
from hypothesis import strategies as st

from wg_access_config.adapters.env.default import DefaultEnvLoader
from wg_access_config.domain.errors import InvalidFormat
from wg_access_config.domain.sources import ENV_VARIABLES, SourceBundle


def test_env_loader_reads_documented_variables() -> None:
    """Every flag-equivalent variable should land in its slot; others are ignored."""

    environ = {
        "CONFIG": "/etc/wg/config.yaml",
        "LOG_LEVEL": "debug",
        "STORAGE_DIRECTORY": "/srv/wg",
        "WIREGUARD_PRIVATE_KEY": "a2V5",
        "DISABLE_METADATA": "true",
        "ADMIN_USERNAME": "root",
        "ADMIN_PASSWORD": "secret",
        "UPSTREAM_DNS": "1.1.1.1",
        "HOME": "/root",
    }
    bundle = DefaultEnvLoader(environ=environ).load()
    assert bundle == SourceBundle(
        config_path="/etc/wg/config.yaml",
        log_level="debug",
        storage_directory="/srv/wg",
        private_key="a2V5",
        disable_metadata=True,
        admin_username="root",
        admin_password="secret",
        upstream_dns="1.1.1.1",
    )


def test_empty_values_are_not_supplied() -> None:
    bundle = DefaultEnvLoader(environ={"LOG_LEVEL": "", "UPSTREAM_DNS": ""}).load()
    assert bundle == SourceBundle()


def test_reads_process_environment_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "trace")
    assert DefaultEnvLoader().load().log_level == "trace"


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("TRUE", True), ("on", True), ("0", False), ("no", False)])
def test_disable_metadata_is_coerced(raw: str, expected: bool) -> None:
    assert DefaultEnvLoader(environ={"DISABLE_METADATA": raw}).load().disable_metadata is expected


def test_disable_metadata_rejects_garbage() -> None:
    with pytest.raises(InvalidFormat, match="DISABLE_METADATA"):
        DefaultEnvLoader(environ={"DISABLE_METADATA": "maybe"}).load()


def test_secret_values_are_not_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="wg_access_config")
    DefaultEnvLoader(environ={"ADMIN_PASSWORD": "hunter2", "LOG_LEVEL": "debug"}).load()
    record = next(record for record in caplog.records if record.getMessage() == "env_variables_loaded")
    assert record.context["variables"] == ["ADMIN_PASSWORD", "LOG_LEVEL"]
    assert "hunter2" not in str(record.context)


TEXT_SLOTS = sorted(slot for slot in ENV_VARIABLES if slot != "disable_metadata")


@given(st.dictionaries(st.sampled_from(TEXT_SLOTS), st.text(min_size=1, max_size=8), max_size=4))
def test_env_loader_handles_random_environments(entries) -> None:
    """Randomised environments should map one-to-one onto bundle slots."""

    environ = {ENV_VARIABLES[slot]: value for slot, value in entries.items()}
    environ["IGNORED"] = "1"
    bundle = DefaultEnvLoader(environ=environ).load()
    for slot in TEXT_SLOTS:
        assert getattr(bundle, slot) == entries.get(slot)
