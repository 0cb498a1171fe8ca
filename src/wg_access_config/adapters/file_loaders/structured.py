"""Structured configuration file loaders.

Purpose
-------
Convert the optional configuration file into a Python mapping the patch
builder understands. Loaders are small wrappers around ``yaml.safe_load``,
``tomllib`` and ``json`` so error handling and observability live in one place.

Contents
--------
* :class:`BaseFileLoader` – shared helpers for reading files and validating
  mapping outputs.
* :class:`YAMLFileLoader` – the canonical format.
* :class:`TOMLFileLoader` / :class:`JSONFileLoader` – selected by suffix.
* :func:`loader_for` – picks the loader for a path.

System Role
-----------
Invoked by :func:`wg_access_config.core.resolve_config`. A missing *or*
unreadable file raises :class:`NotFound`, which the assembler treats as "no
file"; malformed content raises :class:`InvalidFormat`, which is fatal.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Mapping

import yaml

from ...application.ports import FileLoader
from ...domain.errors import InvalidFormat, NotFound
from ...observability import log_debug, log_error


class BaseFileLoader:
    """Common utilities shared by the structured file loaders."""

    def _read(self, path: str) -> bytes:
        """Read *path* as bytes, raising :class:`NotFound` when it is missing or unreadable.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile(delete=False)
        >>> _ = tmp.write(b"loglevel: debug")
        >>> tmp.close()
        >>> BaseFileLoader()._read(tmp.name)[:8]
        b'loglevel'
        >>> Path(tmp.name).unlink()
        """

        file_path = Path(path)
        try:
            payload = file_path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFound(f"Configuration file not found: {path}") from exc
        except OSError as exc:
            log_debug("config_file_unreadable", step="file", field=None, path=path, error=str(exc))
            raise NotFound(f"Configuration file not readable: {path}") from exc
        log_debug("config_file_read", step="file", field=None, path=path, size=len(payload))
        return payload

    @staticmethod
    def _ensure_mapping(data: object, *, path: str) -> Mapping[str, object]:
        """Ensure *data* behaves like a mapping, otherwise raise ``InvalidFormat``.

        Examples
        --------
        >>> BaseFileLoader._ensure_mapping({"key": 1}, path="demo")
        {'key': 1}
        >>> BaseFileLoader._ensure_mapping([1, 2], path="demo")
        Traceback (most recent call last):
        ...
        wg_access_config.domain.errors.InvalidFormat: File demo did not produce a mapping
        """

        if not isinstance(data, Mapping):
            raise InvalidFormat(f"File {path} did not produce a mapping")
        return data


class YAMLFileLoader(BaseFileLoader):
    """Load YAML documents; an empty document yields an empty mapping."""

    def load(self, path: str) -> Mapping[str, object]:
        """Return mapping extracted from YAML file at *path*.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile('w', delete=False, suffix='.yaml', encoding='utf-8')
        >>> _ = tmp.write('wireguard:\\n  port: 1234\\n')
        >>> tmp.close()
        >>> YAMLFileLoader().load(tmp.name)["wireguard"]["port"]
        1234
        >>> Path(tmp.name).unlink()
        """

        try:
            data = yaml.safe_load(self._read(path))
        except yaml.YAMLError as exc:
            log_error("config_file_invalid", step="file", field=None, path=path, format="yaml", error=str(exc))
            raise InvalidFormat(f"Invalid YAML in {path}: {exc}") from exc
        if data is None:
            data = {}
        result = self._ensure_mapping(data, path=path)
        log_debug("config_file_loaded", step="file", field=None, path=path, format="yaml")
        return result


class TOMLFileLoader(BaseFileLoader):
    """Load TOML documents using the standard library parser."""

    def load(self, path: str) -> Mapping[str, object]:
        try:
            data = tomllib.loads(self._read(path).decode("utf-8"))
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
            log_error("config_file_invalid", step="file", field=None, path=path, format="toml", error=str(exc))
            raise InvalidFormat(f"Invalid TOML in {path}: {exc}") from exc
        result = self._ensure_mapping(data, path=path)
        log_debug("config_file_loaded", step="file", field=None, path=path, format="toml")
        return result


class JSONFileLoader(BaseFileLoader):
    """Load JSON documents."""

    def load(self, path: str) -> Mapping[str, object]:
        try:
            data = json.loads(self._read(path))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            log_error("config_file_invalid", step="file", field=None, path=path, format="json", error=str(exc))
            raise InvalidFormat(f"Invalid JSON in {path}: {exc}") from exc
        result = self._ensure_mapping(data, path=path)
        log_debug("config_file_loaded", step="file", field=None, path=path, format="json")
        return result


_LOADERS: dict[str, FileLoader] = {
    ".toml": TOMLFileLoader(),
    ".json": JSONFileLoader(),
}
_DEFAULT_LOADER = YAMLFileLoader()


def loader_for(path: str) -> FileLoader:
    """Return the loader matching *path*'s suffix; anything unknown is read as YAML.

    Examples
    --------
    >>> type(loader_for("/etc/wg/config.toml")).__name__
    'TOMLFileLoader'
    >>> type(loader_for("config")).__name__
    'YAMLFileLoader'
    """

    return _LOADERS.get(Path(path).suffix.lower(), _DEFAULT_LOADER)
