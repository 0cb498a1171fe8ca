"""Domain-level configuration value objects.

Purpose
-------
Anchor the immutable :class:`ResolvedConfig` that carries the finished access
server configuration, and its provenance, to every consumer. This module
belongs to the domain layer and performs no I/O.

Contents
--------
* :class:`SourceInfo` – typed metadata describing where a key came from.
* :class:`NetworkRules`, :class:`StorageConfig`, :class:`WireGuardConfig`,
  :class:`VPNConfig`, :class:`DNSConfig` – nested groups.
* :class:`BasicAuthConfig`, :class:`OIDCConfig`, :class:`GitlabConfig`,
  :class:`AuthConfig` – pluggable authentication backends.
* :class:`ResolvedConfig` – the root value with dotted lookups, provenance and
  JSON export.

System Role
-----------
:func:`wg_access_config.core.resolve_config` builds exactly one instance per
process start via :meth:`ResolvedConfig.from_mapping` and then only derives
new instances with :func:`dataclasses.replace`. Every exported key uses the
configuration file spelling (``wireguard.interfaceName``) so ``get`` and
``origin`` accept the same keys an operator writes in the file.
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, TypedDict

_REDACTED = "<redacted>"


class SourceInfo(TypedDict):
    """Describe the origin of a resolved configuration key.

    Attributes
    ----------
    layer:
        ``"default"``, ``"flags"``, ``"file"``, ``"probe"`` or
        ``"generated"``.
    path:
        Configuration file path for the ``file`` layer, otherwise ``None``.
    key:
        Fully qualified dotted key, e.g. ``"wireguard.port"``.
    """

    layer: str
    path: str | None
    key: str


@dataclass(frozen=True, slots=True)
class NetworkRules:
    """Isolation policy applied to VPN clients. Everything is allowed by default."""

    allow_vpn_lan: bool = True
    allow_server_lan: bool = True
    allow_internet: bool = True


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Device storage location; an empty directory selects the in-memory backend."""

    directory: str = ""


@dataclass(frozen=True, slots=True)
class WireGuardConfig:
    interface_name: str = "wg0"
    private_key: str = field(default="", repr=False)
    external_host: str | None = None
    port: int = 51820


@dataclass(frozen=True, slots=True)
class VPNConfig:
    cidr: str = "10.44.0.0/24"
    gateway_interface: str = ""
    rules: NetworkRules = field(default_factory=NetworkRules)


@dataclass(frozen=True, slots=True)
class DNSConfig:
    upstream: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BasicAuthConfig:
    """htpasswd-style ``subject:bcrypt-hash`` entries."""

    users: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class OIDCConfig:
    name: str = ""
    issuer: str = ""
    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    scopes: tuple[str, ...] = ()
    redirect_url: str = ""
    email_domains: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GitlabConfig:
    name: str = ""
    base_url: str = ""
    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    redirect_url: str = ""
    email_domains: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AuthConfig:
    """Authentication backends; ``None`` means the backend is not configured."""

    basic: BasicAuthConfig | None = None
    oidc: OIDCConfig | None = None
    gitlab: GitlabConfig | None = None

    @property
    def enabled(self) -> bool:
        """Return ``True`` when at least one backend is configured.

        Examples
        --------
        >>> AuthConfig().enabled
        False
        >>> AuthConfig(basic=BasicAuthConfig()).enabled
        True
        """

        return any(backend is not None for backend in (self.basic, self.oidc, self.gitlab))


# File-schema key -> attribute name, per group.
_ROOT_KEYS: Mapping[str, str] = {
    "loglevel": "log_level",
    "disableMetadata": "disable_metadata",
    "adminSubject": "admin_subject",
    "adminPasswordHash": "admin_password_hash",
}
_STORAGE_KEYS: Mapping[str, str] = {"directory": "directory"}
_WIREGUARD_KEYS: Mapping[str, str] = {
    "interfaceName": "interface_name",
    "privateKey": "private_key",
    "externalHost": "external_host",
    "port": "port",
}
_VPN_KEYS: Mapping[str, str] = {"cidr": "cidr", "gatewayInterface": "gateway_interface"}
_RULES_KEYS: Mapping[str, str] = {
    "allowVPNLAN": "allow_vpn_lan",
    "allowServerLAN": "allow_server_lan",
    "allowInternet": "allow_internet",
}
_DNS_KEYS: Mapping[str, str] = {"upstream": "upstream"}
_BASIC_KEYS: Mapping[str, str] = {"users": "users"}
_OIDC_KEYS: Mapping[str, str] = {
    "name": "name",
    "issuer": "issuer",
    "clientID": "client_id",
    "clientSecret": "client_secret",
    "scopes": "scopes",
    "redirectURL": "redirect_url",
    "emailDomains": "email_domains",
}
_GITLAB_KEYS: Mapping[str, str] = {
    "name": "name",
    "baseURL": "base_url",
    "clientID": "client_id",
    "clientSecret": "client_secret",
    "redirectURL": "redirect_url",
    "emailDomains": "email_domains",
}


@dataclass(frozen=True, slots=True)
class ResolvedConfig:
    """Immutable configuration handed to the rest of the access server.

    Why
    ----
    Consumers (data plane, web UI, device storage) need one read-only value
    that already satisfies the startup invariants: recognised log level,
    non-empty private key, absolute storage directory, non-null isolation
    rules.

    What
    ----
    Nested frozen dataclasses plus a read-only provenance mapping. Helper
    methods mirror the file schema so tooling can explain where each value
    came from.

    Examples
    --------
    >>> cfg = ResolvedConfig.from_mapping(
    ...     {"wireguard": {"port": 9999}},
    ...     {"wireguard.port": {"layer": "file", "path": "config.yaml", "key": "wireguard.port"}},
    ... )
    >>> cfg.wireguard.port, cfg.wireguard.interface_name
    (9999, 'wg0')
    >>> cfg.get("wireguard.port")
    9999
    >>> cfg.origin("wireguard.port")["layer"]
    'file'
    """

    log_level: str = "info"
    disable_metadata: bool = False
    admin_subject: str = "admin"
    admin_password_hash: str | None = field(default=None, repr=False)
    storage: StorageConfig = field(default_factory=StorageConfig)
    wireguard: WireGuardConfig = field(default_factory=WireGuardConfig)
    vpn: VPNConfig = field(default_factory=VPNConfig)
    dns: DNSConfig = field(default_factory=DNSConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    provenance: Mapping[str, SourceInfo] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Wrap provenance in ``MappingProxyType`` so it cannot be mutated."""

        object.__setattr__(self, "provenance", MappingProxyType(dict(self.provenance)))

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        provenance: Mapping[str, SourceInfo] | None = None,
    ) -> ResolvedConfig:
        """Build a value from a merged mapping keyed like the configuration file.

        Missing keys fall back to the dataclass defaults; lists become tuples.
        The transient ``adminPassword`` key is ignored: only its hash may ever
        be stored on the result.
        """

        vpn = _group(data, "vpn")
        rules = _group(vpn, "rules")
        return cls(
            **_pick(data, _ROOT_KEYS),
            storage=StorageConfig(**_pick(_group(data, "storage"), _STORAGE_KEYS)),
            wireguard=WireGuardConfig(**_pick(_group(data, "wireguard"), _WIREGUARD_KEYS)),
            vpn=VPNConfig(**_pick(vpn, _VPN_KEYS), rules=NetworkRules(**_pick(rules, _RULES_KEYS))),
            dns=DNSConfig(**_pick(_group(data, "dns"), _DNS_KEYS)),
            auth=_auth_from_mapping(_group(data, "auth")),
            provenance=provenance or {},
        )

    @property
    def public_key(self) -> str:
        """Return the WireGuard public key derived from :attr:`WireGuardConfig.private_key`."""

        from ..application.secrets import derive_public_key

        return derive_public_key(self.wireguard.private_key)

    def as_dict(self) -> dict[str, Any]:
        """Construct a deep (mutable) ``dict`` keyed like the configuration file.

        Examples
        --------
        >>> exported = ResolvedConfig().as_dict()
        >>> exported["vpn"]["rules"]["allowInternet"]
        True
        >>> exported["auth"]
        {}
        """

        exported = _export(self, _ROOT_KEYS)
        exported["storage"] = _export(self.storage, _STORAGE_KEYS)
        exported["wireguard"] = _export(self.wireguard, _WIREGUARD_KEYS)
        exported["vpn"] = _export(self.vpn, _VPN_KEYS)
        exported["vpn"]["rules"] = _export(self.vpn.rules, _RULES_KEYS)
        exported["dns"] = _export(self.dns, _DNS_KEYS)
        auth: dict[str, Any] = {}
        if self.auth.basic is not None:
            auth["basic"] = _export(self.auth.basic, _BASIC_KEYS)
        if self.auth.oidc is not None:
            auth["oidc"] = _export(self.auth.oidc, _OIDC_KEYS)
        if self.auth.gitlab is not None:
            auth["gitlab"] = _export(self.auth.gitlab, _GITLAB_KEYS)
        exported["auth"] = auth
        return exported

    def to_json(self, *, indent: int | None = None, redact: bool = True) -> str:
        """Serialise the configuration to JSON, hiding secrets unless *redact* is ``False``.

        Examples
        --------
        >>> cfg = ResolvedConfig(wireguard=WireGuardConfig(private_key="c2VjcmV0"))
        >>> '"privateKey":"<redacted>"' in cfg.to_json()
        True
        >>> '"privateKey":"c2VjcmV0"' in cfg.to_json(redact=False)
        True
        """

        import json

        payload = self.as_dict()
        if redact:
            _redact(payload)
        return json.dumps(payload, indent=indent, separators=(",", ":"), ensure_ascii=False)

    def get(self, key: str, *, default: Any = None) -> Any:
        """Resolve the dotted *key* on :meth:`as_dict` and return ``default`` when missing.

        Examples
        --------
        >>> ResolvedConfig().get("wireguard.interfaceName")
        'wg0'
        >>> ResolvedConfig().get("auth.basic.users", default=[])
        []
        """

        return _resolve_dotted_path(self.as_dict(), key, default)

    def origin(self, key: str) -> SourceInfo | None:
        """Return provenance for *key* or ``None`` when no layer produced it."""

        return self.provenance.get(key)


def _group(source: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    """Return the nested mapping stored under *key* or an empty mapping."""

    value = source.get(key)
    return value if isinstance(value, MappingABC) else {}


def _pick(source: Mapping[str, Any], names: Mapping[str, str]) -> dict[str, Any]:
    """Translate present, non-null file keys into dataclass keyword arguments."""

    picked: dict[str, Any] = {}
    for key, attribute in names.items():
        value = source.get(key)
        if value is None:
            continue
        picked[attribute] = tuple(value) if isinstance(value, (list, tuple)) else value
    return picked


def _auth_from_mapping(auth: Mapping[str, Any]) -> AuthConfig:
    """Enable each backend whose group is present, even when the group is empty."""

    def backend(name: str, factory: type, names: Mapping[str, str]) -> Any:
        group = auth.get(name)
        if not isinstance(group, MappingABC):
            return None
        return factory(**_pick(group, names))

    return AuthConfig(
        basic=backend("basic", BasicAuthConfig, _BASIC_KEYS),
        oidc=backend("oidc", OIDCConfig, _OIDC_KEYS),
        gitlab=backend("gitlab", GitlabConfig, _GITLAB_KEYS),
    )


def _export(source: object, names: Mapping[str, str]) -> dict[str, Any]:
    """Read dataclass attributes back into file-schema keys; tuples become lists."""

    exported: dict[str, Any] = {}
    for key, attribute in names.items():
        value = getattr(source, attribute)
        exported[key] = list(value) if isinstance(value, tuple) else value
    return exported


def _redact(payload: dict[str, Any]) -> None:
    """Replace secret values inside an exported payload in place."""

    wireguard = payload.get("wireguard", {})
    if wireguard.get("privateKey"):
        wireguard["privateKey"] = _REDACTED
    for backend in ("oidc", "gitlab"):
        group = payload.get("auth", {}).get(backend)
        if group and group.get("clientSecret"):
            group["clientSecret"] = _REDACTED


def _resolve_dotted_path(source: Mapping[str, Any], dotted: str, default: Any) -> Any:
    """Resolve *dotted* within *source*, returning *default* when missing."""

    current: Any = source
    for part in dotted.split("."):
        if not isinstance(current, MappingABC) or part not in current:
            return default
        current = current[part]
    return current
