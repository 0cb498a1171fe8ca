"""Runtime configuration resolver for a WireGuard access server.

``resolve_config`` merges flags/environment (:class:`SourceBundle`), an
optional configuration file and built-in defaults, then fills whatever is
still missing: the gateway interface, an ephemeral private key, the storage
directory and the admin credentials.
"""

from __future__ import annotations

from .core import ResolutionError, load_sources, resolve_config
from .domain.config import (
    AuthConfig,
    BasicAuthConfig,
    DNSConfig,
    GitlabConfig,
    NetworkRules,
    OIDCConfig,
    ResolvedConfig,
    SourceInfo,
    StorageConfig,
    VPNConfig,
    WireGuardConfig,
)
from .domain.errors import (
    ConfigError,
    InvalidFormat,
    NotFound,
    ProbeError,
    ProvisioningError,
    StorageError,
    ValidationError,
)
from .domain.sources import SourceBundle
from .observability import bind_trace_id, configure_logging, get_logger

__all__ = [
    "AuthConfig",
    "BasicAuthConfig",
    "ConfigError",
    "DNSConfig",
    "GitlabConfig",
    "InvalidFormat",
    "NetworkRules",
    "NotFound",
    "OIDCConfig",
    "ProbeError",
    "ProvisioningError",
    "ResolutionError",
    "ResolvedConfig",
    "SourceBundle",
    "SourceInfo",
    "StorageConfig",
    "StorageError",
    "VPNConfig",
    "ValidationError",
    "WireGuardConfig",
    "bind_trace_id",
    "configure_logging",
    "get_logger",
    "load_sources",
    "resolve_config",
]
