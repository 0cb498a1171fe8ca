"""Composition root for ``wg_access_config``.

Purpose
-------
Provide the single entry point that merges the configuration sources, then
validates, derives and provisions whatever is still missing, and finally hands
back one immutable :class:`ResolvedConfig`.

Contents
--------
* :class:`ResolutionError` – fatal failure tagged with the step that failed.
* :func:`load_sources` – environment variables overlaid with explicit flags.
* :func:`resolve_config` – the assembler.
* ``_merge`` / ``_load_file_patch`` / ``_derive_gateway`` / ``_provision_key`` /
  ``_resolve_storage`` / ``_add_admin`` – one helper per resolution step.

System Role
-----------
Connects adapters (environment, file loaders, host prober) with the domain
value object. Helpers raise; fatal conditions leave this module as
:class:`ResolutionError` so the CLI remains the only place that terminates the
process. Recoverable conditions are logged once and the field keeps its safe
default.
"""

from __future__ import annotations

import os
from dataclasses import replace
from typing import Callable, Mapping

from .adapters.env.default import DefaultEnvLoader
from .adapters.file_loaders.structured import loader_for
from .adapters.network.iproute import IPRouteProber
from .application.merge import Provenance, merge_sources
from .application.patch import build_patch
from .application.ports import NetworkProber
from .application.secrets import add_admin_user, generate_private_key, hash_password, validate_private_key
from .domain.config import ResolvedConfig, SourceInfo
from .domain.errors import (
    ConfigError,
    InvalidFormat,
    NotFound,
    ProbeError,
    ProvisioningError,
    StorageError,
    ValidationError,
)
from .domain.schema import defaults_layer
from .domain.sources import SourceBundle
from .observability import (
    bind_trace_id,
    configure_logging,
    log_debug,
    log_info,
    log_warning,
    make_event,
    parse_level,
)

STORAGE_MODE = 0o700
DEFAULT_ADMIN_SUBJECT = "admin"


class ResolutionError(ConfigError):
    """Raised when the configuration cannot be resolved into a trustworthy value.

    Why
    ----
    Callers (the CLI in particular) need to report *which* step failed while
    still catching a single exception family.

    Attributes
    ----------
    step:
        ``"sources"``, ``"file"``, ``"log-level"``, ``"private-key"``,
        ``"storage"`` or ``"admin-password"``.
    """

    def __init__(self, step: str, message: str) -> None:
        super().__init__(message)
        self.step = step


def load_sources(
    *,
    flags: SourceBundle | None = None,
    environ: Mapping[str, str] | None = None,
) -> SourceBundle:
    """Return environment values overlaid with explicitly passed *flags*.

    Examples
    --------
    >>> bundle = load_sources(flags=SourceBundle(log_level="trace"), environ={"LOG_LEVEL": "debug", "CONFIG": "c.yaml"})
    >>> bundle.log_level, bundle.config_path
    ('trace', 'c.yaml')
    """

    try:
        from_env = DefaultEnvLoader(environ=environ).load()
    except InvalidFormat as exc:
        raise ResolutionError("sources", f"invalid environment variable - {exc}") from exc
    return from_env.overlay(flags) if flags is not None else from_env


def resolve_config(
    sources: SourceBundle,
    *,
    prober: NetworkProber | None = None,
    key_generator: Callable[[], str] = generate_private_key,
    password_hasher: Callable[[str], str] = hash_password,
    configure_sink: bool = True,
) -> ResolvedConfig:
    """Resolve *sources* into the immutable runtime configuration.

    Why
    ----
    Every consumer of the access server needs the same fully populated value;
    the subtle parts (file-over-flags sparse precedence, best-effort gateway
    detection, ephemeral key generation, admin credential hashing) live here
    once.

    What
    ----
    Single pass, no retries:

    1. merge defaults, flags/env and the file patch;
    2. validate the log level and configure the process-wide sink;
    3. probe the gateway interface when unset (warn on failure);
    4. generate a private key when unset (warn), validate it otherwise;
    5. make the storage directory absolute and create it (``0o700``);
    6. hash the admin password into the basic-auth backend.

    Parameters
    ----------
    sources:
        Flag/environment values, typically from :func:`load_sources`.
    prober:
        Host network prober; defaults to :class:`IPRouteProber`.
    key_generator / password_hasher:
        Secret provisioners, injectable for tests.
    configure_sink:
        Apply the resolved level to the root logger.

    Raises
    ------
    ResolutionError
        On malformed files, unrecognised log levels, invalid or ungeneratable
        keys, hashing failures and storage path failures.

    Examples
    --------
    >>> class Offline:
    ...     def default_interface(self):
    ...         raise ProbeError("offline")
    ...     def link_address(self, name):
    ...         raise ProbeError("offline")
    >>> cfg = resolve_config(SourceBundle(), prober=Offline(), configure_sink=False)
    >>> cfg.wireguard.interface_name, cfg.vpn.gateway_interface, bool(cfg.wireguard.private_key)
    ('wg0', '', True)
    """

    bind_trace_id(None)
    merged, meta = _merge(sources)
    admin_password = merged.pop("adminPassword", None)
    meta.pop("adminPassword", None)

    try:
        level = parse_level(str(merged.get("loglevel", "info")))
    except ValidationError as exc:
        raise ResolutionError("log-level", str(exc)) from exc
    merged["loglevel"] = level
    if configure_sink:
        configure_logging(level)

    config = ResolvedConfig.from_mapping(merged, _as_source_info(meta))
    if config.disable_metadata:
        log_info(
            "Metadata collection has been disabled. No metrics or device connectivity information will be recorded or shown",
            **make_event("metadata", "disableMetadata"),
        )

    config = _derive_gateway(config, prober if prober is not None else IPRouteProber())
    config = _provision_key(config, key_generator)
    config = _resolve_storage(config)
    if admin_password:
        config = _add_admin(config, str(admin_password), password_hasher)

    log_debug("configuration_resolved", **make_event("final", None, {"keys": len(config.provenance)}))
    return config


def _merge(sources: SourceBundle) -> tuple[dict[str, object], Provenance]:
    """Step 1: merge the three layers; the file patch comes last."""

    file_patch = _load_file_patch(sources.config_path)
    return merge_sources(defaults_layer(), sources.as_layer(), file_patch, file_path=sources.config_path)


def _load_file_patch(path: str | None) -> dict[str, object]:
    """Read and validate the optional file; missing or unreadable means "no file"."""

    if not path:
        return {}
    try:
        document = loader_for(path).load(path)
        return build_patch(document, path=path)
    except NotFound as exc:
        log_debug("config_file_skipped", **make_event("file", None, {"path": path, "reason": str(exc)}))
        return {}
    except InvalidFormat as exc:
        raise ResolutionError("file", f"failed to bind configuration file {path}: {exc}") from exc


def _derive_gateway(config: ResolvedConfig, prober: NetworkProber) -> ResolvedConfig:
    """Step 3: best-effort default for ``vpn.gatewayInterface``."""

    if config.vpn.gateway_interface:
        return config
    try:
        interface = prober.default_interface()
    except ProbeError as exc:
        log_warning(
            f"failed to set default value for VPN.GatewayInterface: {exc}",
            **make_event("probe", "vpn.gatewayInterface"),
        )
        return config
    updated = replace(config, vpn=replace(config.vpn, gateway_interface=interface))
    return _record(updated, "vpn.gatewayInterface", "probe")


def _provision_key(config: ResolvedConfig, key_generator: Callable[[], str]) -> ResolvedConfig:
    """Step 4: validate the configured private key or generate an ephemeral one."""

    if config.wireguard.private_key:
        key = config.wireguard.private_key.strip()
        try:
            validate_private_key(key)
        except ValidationError as exc:
            raise ResolutionError("private-key", str(exc)) from exc
        return replace(config, wireguard=replace(config.wireguard, private_key=key))

    log_warning(
        "no private key has been configured! using an in-memory private key that will be lost when the process exits!",
        **make_event("private-key", "wireguard.privateKey"),
    )
    try:
        key = key_generator()
    except ProvisioningError as exc:
        raise ResolutionError("private-key", str(exc)) from exc
    if not key:
        raise ResolutionError("private-key", "failed to generate a server private key: empty key")
    updated = replace(config, wireguard=replace(config.wireguard, private_key=key))
    return _record(updated, "wireguard.privateKey", "generated")


def _resolve_storage(config: ResolvedConfig) -> ResolvedConfig:
    """Step 5: absolute, existing storage directory or the in-memory backend."""

    directory = config.storage.directory
    if not directory:
        log_warning(
            "storage directory not configured - using in-memory storage backend! "
            "wireguard devices will be lost when the process exits!",
            **make_event("storage", "storage.directory"),
        )
        return config
    try:
        absolute = _ensure_directory(directory)
    except StorageError as exc:
        raise ResolutionError("storage", str(exc)) from exc
    return replace(config, storage=replace(config.storage, directory=absolute))


def _ensure_directory(directory: str) -> str:
    try:
        absolute = os.path.abspath(directory)
    except OSError as exc:
        raise StorageError(f"failed to get absolute path to storage directory {directory}: {exc}") from exc
    try:
        os.makedirs(absolute, mode=STORAGE_MODE, exist_ok=True)
    except OSError as exc:
        raise StorageError(f"failed to create storage directory {absolute}: {exc}") from exc
    log_debug("storage_directory_ready", **make_event("storage", "storage.directory", {"path": absolute}))
    return absolute


def _add_admin(config: ResolvedConfig, password: str, password_hasher: Callable[[str], str]) -> ResolvedConfig:
    """Step 6: append ``subject:bcrypt-hash`` to the basic-auth backend.

    An empty subject falls back to ``admin``.
    """

    subject = config.admin_subject or DEFAULT_ADMIN_SUBJECT
    try:
        password_hash = password_hasher(password)
    except ProvisioningError as exc:
        raise ResolutionError("admin-password", str(exc)) from exc
    updated = replace(
        config,
        admin_subject=subject,
        admin_password_hash=password_hash,
        auth=add_admin_user(config.auth, subject, password_hash),
    )
    return _record(updated, "auth.basic.users", "generated")


def _record(config: ResolvedConfig, key: str, layer: str) -> ResolvedConfig:
    """Return *config* with provenance for *key* pointing at a derivation step."""

    provenance: dict[str, SourceInfo] = dict(config.provenance)
    provenance[key] = {"layer": layer, "path": None, "key": key}
    return replace(config, provenance=provenance)


def _as_source_info(meta: Provenance) -> dict[str, SourceInfo]:
    return {
        key: {"layer": str(entry["layer"]), "path": entry["path"], "key": key}  # type: ignore[typeddict-item]
        for key, entry in meta.items()
    }


__all__ = [
    "ResolutionError",
    "load_sources",
    "resolve_config",
]
