"""Shared fixtures keeping every test isolated from process-wide logging state."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from ipaddress import IPv4Address

import pytest

from wg_access_config.domain.errors import ProbeError
from wg_access_config.observability import bind_trace_id, reset_logging


@pytest.fixture(autouse=True)
def _isolated_logging() -> Iterator[None]:
    """Remove the resolver's sink and restore the root level after each test."""

    root = logging.getLogger()
    level = root.level
    yield
    reset_logging()
    root.setLevel(level)
    bind_trace_id(None)


class FakeProber:
    """Prober with a canned answer; ``None`` simulates a host that cannot answer."""

    def __init__(self, interface: str | None = "eth0", addresses: dict[str, str] | None = None) -> None:
        self.interface = interface
        self.addresses = addresses or {}
        self.calls = 0

    def default_interface(self) -> str:
        self.calls += 1
        if self.interface is None:
            raise ProbeError("could not determine the default network interface name")
        return self.interface

    def link_address(self, name: str) -> IPv4Address:
        if name not in self.addresses:
            raise ProbeError(f"failed to find network interface {name}")
        return IPv4Address(self.addresses[name])


@pytest.fixture()
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture()
def offline_prober() -> FakeProber:
    return FakeProber(interface=None)
