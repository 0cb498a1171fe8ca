"""Flag and environment inputs gathered before resolution.

Purpose
-------
Carry the values the operator supplied on the command line or through the
environment as a plain value object. The resolver receives it as an argument
and never reads process-global state itself.

Contents
--------
* :class:`SourceBundle` – one optional slot per logical field.
* :data:`ENV_VARIABLES` – slot name → environment variable name.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Final, Mapping

ENV_VARIABLES: Final[Mapping[str, str]] = MappingProxyType(
    {
        "config_path": "CONFIG",
        "log_level": "LOG_LEVEL",
        "storage_directory": "STORAGE_DIRECTORY",
        "private_key": "WIREGUARD_PRIVATE_KEY",
        "disable_metadata": "DISABLE_METADATA",
        "admin_username": "ADMIN_USERNAME",
        "admin_password": "ADMIN_PASSWORD",
        "upstream_dns": "UPSTREAM_DNS",
    }
)


@dataclass(frozen=True, slots=True)
class SourceBundle:
    """Values supplied through flags or environment variables.

    Why
    ----
    Flags and environment variables share one logical slot per field. ``None``
    means "not supplied", so the file or the built-in default decides.

    Examples
    --------
    >>> SourceBundle(log_level="debug", upstream_dns="1.1.1.1").as_layer()
    {'loglevel': 'debug', 'dns': {'upstream': ['1.1.1.1']}}
    >>> SourceBundle().as_layer()
    {}
    """

    config_path: str | None = None
    log_level: str | None = None
    storage_directory: str | None = None
    private_key: str | None = field(default=None, repr=False)
    disable_metadata: bool | None = None
    admin_username: str | None = None
    admin_password: str | None = field(default=None, repr=False)
    upstream_dns: str | None = None

    def overlay(self, other: SourceBundle) -> SourceBundle:
        """Return a bundle where every slot supplied by *other* replaces ours.

        Used to let explicit flags win over environment variables.

        Examples
        --------
        >>> env = SourceBundle(log_level="debug", storage_directory="/srv")
        >>> env.overlay(SourceBundle(log_level="trace")).log_level
        'trace'
        >>> env.overlay(SourceBundle(log_level="trace")).storage_directory
        '/srv'
        """

        supplied = {item.name: getattr(other, item.name) for item in fields(other)}
        return replace(self, **{name: value for name, value in supplied.items() if value is not None})

    def as_layer(self) -> dict[str, object]:
        """Translate supplied slots into a nested mapping keyed like the file schema."""

        layer: dict[str, object] = {}
        if self.log_level is not None:
            layer["loglevel"] = self.log_level
        if self.disable_metadata is not None:
            layer["disableMetadata"] = self.disable_metadata
        if self.admin_username:
            layer["adminSubject"] = self.admin_username
        if self.admin_password is not None:
            layer["adminPassword"] = self.admin_password
        if self.storage_directory is not None:
            layer["storage"] = {"directory": self.storage_directory}
        if self.private_key is not None:
            layer["wireguard"] = {"privateKey": self.private_key}
        if self.upstream_dns is not None:
            layer["dns"] = {"upstream": [self.upstream_dns]}
        return layer

