"""Configuration file schema and built-in defaults.

Purpose
-------
Describe, in one table, every leaf the configuration document may define and
the Python type it must carry. The same dotted keys (``wireguard.port``,
``vpn.rules.allowInternet``) are used by every merge layer and by provenance
metadata, so the file schema doubles as the canonical key space.

Contents
--------
* :data:`FIELD_TYPES` – dotted leaf key → expected type.
* :data:`BACKEND_GROUPS` – authentication groups whose mere presence enables a
  backend.
* :data:`GROUPS` – every dotted key that names a nested mapping.
* :func:`defaults_layer` – fresh copy of the built-in defaults table.
"""

from __future__ import annotations

from copy import deepcopy
from types import MappingProxyType
from typing import Final, Mapping

FIELD_TYPES: Final[Mapping[str, type]] = MappingProxyType(
    {
        "loglevel": str,
        "disableMetadata": bool,
        "adminSubject": str,
        "adminPassword": str,
        "storage.directory": str,
        "wireguard.interfaceName": str,
        "wireguard.privateKey": str,
        "wireguard.externalHost": str,
        "wireguard.port": int,
        "vpn.cidr": str,
        "vpn.gatewayInterface": str,
        "vpn.rules.allowVPNLAN": bool,
        "vpn.rules.allowServerLAN": bool,
        "vpn.rules.allowInternet": bool,
        "dns.upstream": list,
        "auth.basic.users": list,
        "auth.oidc.name": str,
        "auth.oidc.issuer": str,
        "auth.oidc.clientID": str,
        "auth.oidc.clientSecret": str,
        "auth.oidc.scopes": list,
        "auth.oidc.redirectURL": str,
        "auth.oidc.emailDomains": list,
        "auth.gitlab.name": str,
        "auth.gitlab.baseURL": str,
        "auth.gitlab.clientID": str,
        "auth.gitlab.clientSecret": str,
        "auth.gitlab.redirectURL": str,
        "auth.gitlab.emailDomains": list,
    }
)

BACKEND_GROUPS: Final[frozenset[str]] = frozenset({"auth.basic", "auth.oidc", "auth.gitlab"})


def _collect_groups(keys: frozenset[str] | set[str]) -> frozenset[str]:
    groups: set[str] = set()
    for key in keys:
        parts = key.split(".")
        for depth in range(1, len(parts)):
            groups.add(".".join(parts[:depth]))
    return frozenset(groups)


GROUPS: Final[frozenset[str]] = _collect_groups(set(FIELD_TYPES))

_DEFAULTS: Final[dict[str, object]] = {
    "loglevel": "info",
    "disableMetadata": False,
    "adminSubject": "admin",
    "storage": {"directory": ""},
    "wireguard": {"interfaceName": "wg0", "privateKey": "", "port": 51820},
    "vpn": {
        "cidr": "10.44.0.0/24",
        "gatewayInterface": "",
        "rules": {"allowVPNLAN": True, "allowServerLAN": True, "allowInternet": True},
    },
    "dns": {"upstream": []},
}


def defaults_layer() -> dict[str, object]:
    """Return a mutable copy of the built-in defaults keyed like the file schema.

    Examples
    --------
    >>> defaults_layer()["wireguard"]["port"]
    51820
    >>> layer = defaults_layer()
    >>> layer["wireguard"]["port"] = 1
    >>> defaults_layer()["wireguard"]["port"]
    51820
    """

    return deepcopy(_DEFAULTS)
