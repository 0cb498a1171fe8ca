"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts adapters satisfy so the assembler can drive
them without depending on concrete implementations (``ip`` commands, files,
``os.environ``).

Contents
--------
* :class:`NetworkProber` – read-only queries against the host network stack.
* :class:`FileLoader` – parses a structured configuration document.
* :class:`EnvLoader` – reads flag-equivalent environment variables.
"""

from __future__ import annotations

from ipaddress import IPv4Address
from typing import Mapping, Protocol, runtime_checkable

from ..domain.sources import SourceBundle


@runtime_checkable
class NetworkProber(Protocol):
    """Discover the gateway interface and per-link source addresses.

    Methods raise :class:`wg_access_config.domain.errors.ProbeError` when the
    host cannot answer.
    """

    def default_interface(self) -> str:
        """Return the link that owns the default IPv4 route."""

    def link_address(self, name: str) -> IPv4Address:
        """Return the source address of the first IPv4 route on link *name*."""


@runtime_checkable
class FileLoader(Protocol):
    """Parse a structured configuration file into a mapping."""

    def load(self, path: str) -> Mapping[str, object]:
        """Read *path* and return a mapping or raise ``NotFound``/``InvalidFormat``."""


@runtime_checkable
class EnvLoader(Protocol):
    """Translate environment variables into a :class:`SourceBundle`."""

    def load(self) -> SourceBundle:
        """Return the bundle of values supplied through the environment."""
