"""Secret provisioning: WireGuard keys and admin password hashes.

Purpose
-------
Fill the two secrets the assembler may have to produce itself: an ephemeral
WireGuard private key when none was configured, and a bcrypt hash of the
administrator password for the basic-auth backend.

Contents
--------
* :func:`generate_private_key` / :func:`derive_public_key` /
  :func:`validate_private_key` – X25519 keys in WireGuard's base64 encoding.
* :func:`hash_password` – salted bcrypt hash at :data:`DEFAULT_COST`.
* :func:`add_admin_user` – append ``subject:hash`` to the basic-auth users.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import replace
from typing import Final

import bcrypt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from ..domain.config import AuthConfig, BasicAuthConfig
from ..domain.errors import ProvisioningError, ValidationError

KEY_SIZE: Final[int] = 32
DEFAULT_COST: Final[int] = 10


def generate_private_key() -> str:
    """Return a fresh WireGuard private key (base64 of 32 raw bytes).

    Matches ``wg genkey``: an X25519 scalar drawn from the OS CSPRNG.

    Examples
    --------
    >>> key = generate_private_key()
    >>> len(base64.b64decode(key))
    32
    >>> key != generate_private_key()
    True
    """

    try:
        private_key = X25519PrivateKey.generate()
        raw = private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
    except Exception as exc:  # noqa: BLE001 - backend failures surface as provisioning errors
        raise ProvisioningError(f"failed to generate a server private key: {exc}") from exc
    return base64.b64encode(raw).decode("ascii")


def validate_private_key(private_key: str) -> bytes:
    """Decode *private_key* and return its raw bytes or raise :class:`ValidationError`.

    Examples
    --------
    >>> len(validate_private_key(base64.b64encode(bytes(32)).decode()))
    32
    >>> validate_private_key("bm90LWEta2V5")
    Traceback (most recent call last):
    ...
    wg_access_config.domain.errors.ValidationError: wireguard private key must be 32 base64-encoded bytes
    """

    try:
        raw = base64.b64decode(private_key.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("wireguard private key is not valid base64") from exc
    if len(raw) != KEY_SIZE:
        raise ValidationError("wireguard private key must be 32 base64-encoded bytes")
    return raw


def derive_public_key(private_key: str) -> str:
    """Return the base64 public key belonging to *private_key* (``wg pubkey``)."""

    raw = validate_private_key(private_key)
    public = X25519PrivateKey.from_private_bytes(raw).public_key()
    encoded = public.public_bytes(encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw)
    return base64.b64encode(encoded).decode("ascii")


def hash_password(password: str, *, rounds: int = DEFAULT_COST) -> str:
    """Return a bcrypt hash of *password*; the plaintext is not kept anywhere.

    Raises
    ------
    ProvisioningError
        When bcrypt refuses the input (for example passwords over 72 bytes).
    """

    try:
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    except ValueError as exc:
        raise ProvisioningError(f"failed to generate a bcrypt hash for the provided admin password: {exc}") from exc
    return hashed.decode("ascii")


def add_admin_user(auth: AuthConfig, subject: str, password_hash: str) -> AuthConfig:
    """Return *auth* with ``subject:password_hash`` appended to the basic-auth users.

    Examples
    --------
    >>> auth = add_admin_user(AuthConfig(), "admin", "$2b$10$hash")
    >>> auth.basic.users
    ('admin:$2b$10$hash',)
    >>> add_admin_user(auth, "ops", "$2b$10$other").basic.users
    ('admin:$2b$10$hash', 'ops:$2b$10$other')
    """

    basic = auth.basic if auth.basic is not None else BasicAuthConfig()
    entry = f"{subject}:{password_hash}"
    return replace(auth, basic=replace(basic, users=(*basic.users, entry)))
