"""Domain-level exception hierarchy.

Purpose
-------
Expose the error taxonomy shared by adapters, the assembler, and the CLI. The
hierarchy lives in the domain layer so outer layers may depend on it without
the domain depending on them.

Contents
--------
* :class:`ConfigError` – umbrella base class for all resolution failures.
* :class:`InvalidFormat` – the configuration document cannot be parsed or
  does not match the schema.
* :class:`ValidationError` – a syntactically valid value failed semantic checks
  (log level, private key).
* :class:`NotFound` – an optional resource (the configuration file) is missing
  or unreadable.
* :class:`ProbeError` – the host network stack could not answer a lookup.
* :class:`ProvisioningError` – key generation or password hashing failed.
* :class:`StorageError` – the storage directory could not be resolved or
  created.

System Role
-----------
Adapters raise these exceptions; :mod:`wg_access_config.core` decides which
ones are fatal and wraps those in :class:`wg_access_config.core.ResolutionError`.
Callers catch :class:`ConfigError` to handle every failure uniformly.
"""

from __future__ import annotations


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``wg_access_config``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class InvalidFormat(ConfigError):
    """Raised when the configuration document cannot be bound to the schema.

    Why
    ----
    Distinguish malformed content (fatal) from a missing file (ignored).

    Typical Sources
    ---------------
    Structured file loaders (:mod:`yaml`, :mod:`tomllib`, :mod:`json`) and the
    patch builder in :mod:`wg_access_config.application.patch`.
    """


class ValidationError(ConfigError):
    """Signifies that a well-formed value failed semantic checks.

    Current Usage
    -------------
    Unrecognised log level names and private keys that do not decode to a
    32 byte WireGuard key.
    """


class NotFound(ConfigError):
    """Represents missing-but-optional resources such as the configuration file.

    Why
    ----
    The assembler treats an absent or unreadable file as "no file", so adapters
    need a way to signal absence without aborting resolution.
    """


class ProbeError(ConfigError):
    """Raised when the host's links or routes cannot answer a lookup.

    The assembler logs a warning and leaves the dependent field empty.
    """


class ProvisioningError(ConfigError):
    """Raised when a private key cannot be generated or a password cannot be hashed."""


class StorageError(ConfigError):
    """Raised when the storage directory cannot be made absolute or created."""
