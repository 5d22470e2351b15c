"""Shared secrets accepted by the auth gate.

Two independent credentials exist:

  bearer_token  sent as "Authorization: Bearer <token>"
  api_key       sent as the api_key query parameter

Both are stored encrypted in the option store and can be regenerated by
an operator.  Deployments that manage secrets outside the application
can instead pin them via the environment:

  PRESSMETRICS_ENCRYPTION_KEY  base64 key material for encryption at rest
  PRESSMETRICS_BEARER_TOKEN    bearer token, honoured ONLY together with
                               PRESSMETRICS_ENCRYPTION_KEY

An environment-sourced value is read-only: regenerate() and rotate_key()
refuse to touch it.  The API key always lives encrypted in the option
store, whether or not the encryption key comes from the environment.
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
from collections.abc import Callable
from typing import Literal

from pressmetrics.core.errors import CredentialError
from pressmetrics.services.crypto import TokenCipher
from pressmetrics.services.option_store import OptionStore

logger = logging.getLogger(__name__)

CredentialName = Literal["bearer_token", "api_key"]

OPTION_NAMES: dict[str, str] = {
    "bearer_token": "pressmetrics_auth_token",
    "api_key": "pressmetrics_api_key",
}
ENCRYPTION_KEY_OPTION = "pressmetrics_encryption_key"


def generate_secure_token() -> str:
    """64 hex characters from 32 random bytes."""
    return secrets.token_hex(32)


def generate_key_material() -> str:
    return base64.b64encode(secrets.token_bytes(32)).decode()


def _decode_key(encoded: str) -> bytes:
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        # Operators sometimes paste a raw passphrase instead of base64
        logger.warning("Encryption key is not valid base64, using it verbatim")
        return encoded.encode()


class CredentialStore:
    def __init__(
        self,
        options: OptionStore,
        *,
        encryption_key_env: str | None = None,
        bearer_token_env: str | None = None,
        token_factory: Callable[[], str] = generate_secure_token,
    ) -> None:
        self._options = options
        self._encryption_key_env = encryption_key_env or None
        self._bearer_token_env = bearer_token_env or None
        self._token_factory = token_factory

    @property
    def key_from_env(self) -> bool:
        return self._encryption_key_env is not None

    @property
    def bearer_from_env(self) -> bool:
        return self.key_from_env and self._bearer_token_env is not None

    # -- key management -----------------------------------------------------

    async def _key_material(self) -> bytes:
        if self._encryption_key_env is not None:
            return _decode_key(self._encryption_key_env)

        stored = await self._options.get(ENCRYPTION_KEY_OPTION)
        if not stored:
            stored = generate_key_material()
            await self._options.set(ENCRYPTION_KEY_OPTION, stored)
            logger.info("Generated encryption key for credential storage")
        return _decode_key(stored)

    async def _cipher(self) -> TokenCipher:
        return TokenCipher(await self._key_material())

    async def _get_decrypted(self, name: CredentialName) -> str | None:
        payload = await self._options.get(OPTION_NAMES[name])
        if not payload:
            return None
        return (await self._cipher()).decrypt(payload) or None

    async def _set_encrypted(self, name: CredentialName, value: str) -> None:
        cipher = await self._cipher()
        await self._options.set(OPTION_NAMES[name], cipher.encrypt(value))

    # -- public API ---------------------------------------------------------

    async def ensure_tokens(self) -> None:
        """Create any missing credential.  Called on startup."""
        for name in ("bearer_token", "api_key"):
            if name == "bearer_token" and self.bearer_from_env:
                continue
            if not await self._get_decrypted(name):  # type: ignore[arg-type]
                await self._set_encrypted(name, self._token_factory())  # type: ignore[arg-type]
                logger.info("Generated missing credential name=%s", name)

    async def bearer_token(self) -> str | None:
        if self.bearer_from_env:
            return self._bearer_token_env
        return await self._get_decrypted("bearer_token")

    async def api_key(self) -> str | None:
        return await self._get_decrypted("api_key")

    async def regenerate(self, name: CredentialName) -> str:
        if name not in OPTION_NAMES:
            raise CredentialError(f"unknown credential {name!r}")
        if name == "bearer_token" and self.bearer_from_env:
            raise CredentialError(
                "bearer token is supplied via environment and cannot be regenerated"
            )
        value = self._token_factory()
        await self._set_encrypted(name, value)
        logger.info("Credential regenerated name=%s", name)
        return value

    async def rotate_key(self) -> None:
        """Re-encrypt stored credentials under freshly generated key material."""
        if self.key_from_env:
            raise CredentialError(
                "encryption key is supplied via environment and cannot be rotated"
            )

        current = {
            name: await self._get_decrypted(name)  # type: ignore[arg-type]
            for name in OPTION_NAMES
        }
        await self._options.set(ENCRYPTION_KEY_OPTION, generate_key_material())
        for name, value in current.items():
            if value:
                await self._set_encrypted(name, value)  # type: ignore[arg-type]
        logger.info("Encryption key rotated")

    def sources(self) -> dict[str, str]:
        return {
            "encryption_key": "environment" if self.key_from_env else "option",
            "bearer_token": "environment" if self.bearer_from_env else "option",
            "api_key": "option",
        }


def mask(secret: str | None) -> str | None:
    if not secret:
        return None
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}{'*' * (len(secret) - 8)}{secret[-4:]}"
