"""Environment variable adapter.

Purpose
-------
Read the environment variables that mirror the command-line flags and return
them as a :class:`wg_access_config.domain.sources.SourceBundle`. Flags parsed
by the CLI are overlaid on top, so a flag wins over its variable.

Key behaviours
--------------
* Only the variables listed in :data:`wg_access_config.domain.sources.ENV_VARIABLES`
  are consulted; everything else in the environment is ignored.
* Empty values count as "not supplied".
* ``DISABLE_METADATA`` is coerced to a boolean; unparseable values raise
  :class:`wg_access_config.domain.errors.InvalidFormat`.
"""

from __future__ import annotations

import os
from typing import Mapping

from ...domain.errors import InvalidFormat
from ...domain.sources import ENV_VARIABLES, SourceBundle
from ...observability import log_debug

_TRUE = frozenset({"1", "t", "true", "yes", "on"})
_FALSE = frozenset({"0", "f", "false", "no", "off"})


class DefaultEnvLoader:
    """Load flag-equivalent environment variables into a :class:`SourceBundle`."""

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        """Initialise the loader with a specific ``environ`` mapping for testability.

        Parameters
        ----------
        environ:
            Mapping to read from. Defaults to :data:`os.environ`.
        """

        self._environ = environ if environ is not None else os.environ

    def load(self) -> SourceBundle:
        """Return the bundle of values present in the environment.

        Side Effects
        ------------
        Emits an ``env_variables_loaded`` debug event listing the variable
        names (never their values).

        Examples
        --------
        >>> env = {"LOG_LEVEL": "debug", "DISABLE_METADATA": "true", "STORAGE_DIRECTORY": ""}
        >>> bundle = DefaultEnvLoader(environ=env).load()
        >>> bundle.log_level, bundle.disable_metadata, bundle.storage_directory
        ('debug', True, None)
        """

        values: dict[str, object] = {}
        for slot, variable in ENV_VARIABLES.items():
            raw = self._environ.get(variable)
            if not raw:
                continue
            values[slot] = _coerce_bool(variable, raw) if slot == "disable_metadata" else raw
        log_debug(
            "env_variables_loaded",
            step="sources",
            field=None,
            variables=sorted(ENV_VARIABLES[slot] for slot in values),
        )
        return SourceBundle(**values)  # type: ignore[arg-type]


def _coerce_bool(variable: str, value: str) -> bool:
    """Coerce textual booleans the way the flag parser does.

    Examples
    --------
    >>> _coerce_bool("X", "TRUE"), _coerce_bool("X", "0")
    (True, False)
    """

    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidFormat(f"{variable}: expected a boolean, got {value!r}")
