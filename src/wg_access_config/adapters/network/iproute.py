"""Host network prober backed by iproute2's JSON output.

Purpose
-------
Answer the two read-only questions the assembler asks about the host: which
link carries the default IPv4 route, and which source address a named link
uses. Queries go through ``ip -json`` so the adapter never mutates host state
and needs no privileges.

Contents
--------
* :class:`IPRouteProber` – implementation of
  :class:`wg_access_config.application.ports.NetworkProber`.
* :func:`run_ip` – default command runner (``subprocess``).
"""

from __future__ import annotations

import json
import subprocess
from ipaddress import IPv4Address
from typing import Any, Callable, Sequence

from ...domain.errors import ProbeError
from ...observability import log_debug

Runner = Callable[[Sequence[str]], str]


def run_ip(arguments: Sequence[str]) -> str:
    """Run ``ip -json <arguments>`` and return its standard output."""

    completed = subprocess.run(
        ["ip", "-json", *arguments],
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout


class IPRouteProber:
    """Inspect links and IPv4 routes through the ``ip`` command.

    Parameters
    ----------
    runner:
        Callable receiving the ``ip`` arguments and returning its JSON output.
        Tests substitute a canned table.

    Examples
    --------
    >>> tables = {
    ...     ("link", "show"): '[{"ifindex": 1, "ifname": "lo"}, {"ifindex": 2, "ifname": "eth0"}]',
    ...     ("-4", "route", "show", "dev", "lo"): '[]',
    ...     ("-4", "route", "show", "dev", "eth0"): '[{"dst": "default", "gateway": "192.0.2.1"}]',
    ... }
    >>> IPRouteProber(runner=lambda args: tables[tuple(args)]).default_interface()
    'eth0'
    """

    def __init__(self, *, runner: Runner | None = None) -> None:
        self._runner = runner or run_ip

    def default_interface(self) -> str:
        """Return the name of the first link owning a default IPv4 route.

        Links are visited in kernel index order and each link's routes in
        ascending metric order.

        Raises
        ------
        ProbeError
            When the query fails or no link has a default route.
        """

        for link in self._links():
            name = link["ifname"]
            for route in self._routes(name):
                if _is_default(route):
                    log_debug("default_interface_found", step="probe", field="vpn.gatewayInterface", interface=name)
                    return name
        raise ProbeError("could not determine the default network interface name")

    def link_address(self, name: str) -> IPv4Address:
        """Return the preferred source address of the first route on link *name*.

        Raises
        ------
        ProbeError
            When the link does not exist or none of its routes names a source.
        """

        if not any(link["ifname"] == name for link in self._links()):
            raise ProbeError(f"failed to find network interface {name}")
        for route in self._routes(name):
            source = route.get("prefsrc")
            if source:
                return IPv4Address(source)
        raise ProbeError(f"no source IP found for interface {name}")

    def _links(self) -> list[dict[str, Any]]:
        links = self._query(["link", "show"], "failed to list network interfaces")
        return sorted((link for link in links if "ifname" in link), key=lambda link: link.get("ifindex", 0))

    def _routes(self, name: str) -> list[dict[str, Any]]:
        routes = self._query(["-4", "route", "show", "dev", name], f"failed to list routes for interface {name}")
        return sorted(routes, key=lambda route: route.get("metric", 0))

    def _query(self, arguments: list[str], context: str) -> list[dict[str, Any]]:
        try:
            output = self._runner(arguments)
        except (OSError, subprocess.SubprocessError) as exc:
            raise ProbeError(f"{context}: {exc}") from exc
        try:
            payload = json.loads(output) if output.strip() else []
        except json.JSONDecodeError as exc:
            raise ProbeError(f"{context}: unreadable ip output: {exc}") from exc
        if not isinstance(payload, list):
            raise ProbeError(f"{context}: unexpected ip output")
        return [entry for entry in payload if isinstance(entry, dict)]


def _is_default(route: dict[str, Any]) -> bool:
    """A route without destination prefix is the catch-all route."""

    return route.get("dst") in {"default", "0.0.0.0/0", None}
