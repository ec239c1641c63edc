"""Adapter from a native passkey plugin to the CredentialProvider interface.

The native plugin returns loosely-typed dictionaries (attachment strings,
"null" user handles, empty transport lists). The adapter normalizes them,
maps plugin rejections to ``PasskeyError`` and bounds every ceremony with
the passkey timeout budget.
"""

import logging
from typing import Any, Optional, Protocol

from passkey_wallet.passkey.base import (
    AuthenticationResponse,
    CredentialProvider,
    RegistrationResponse,
)
from passkey_wallet.passkey.errors import map_plugin_error
from passkey_wallet.utils.timeouts import with_timeout

logger = logging.getLogger(__name__)

ATTACHMENTS = ("platform", "cross-platform")


class PasskeyPlugin(Protocol):
    """Shape of the native passkey plugin."""

    async def create_passkey(self, options: dict) -> dict: ...

    async def authenticate(self, options: dict) -> dict: ...


def normalize_attachment(value: Optional[str]) -> Optional[str]:
    if value in ATTACHMENTS:
        return value
    return None


def normalize_transports(value: Optional[list]) -> Optional[list[str]]:
    if not value:
        return None
    return list(value)


def normalize_user_handle(value: Optional[str]) -> Optional[str]:
    if not value or value in ("null", "undefined"):
        return None
    return value


def normalize_registration(result: dict[str, Any]) -> RegistrationResponse:
    """Convert a raw plugin registration result."""
    response = result["response"]
    return RegistrationResponse(
        id=result["id"],
        raw_id=result["rawId"],
        attestation_object=response["attestationObject"],
        client_data_json=response["clientDataJSON"],
        authenticator_data=response.get("authenticatorData"),
        authenticator_attachment=normalize_attachment(result.get("authenticatorAttachment")),
        transports=normalize_transports(response.get("transports")),
        public_key=response.get("publicKey"),
        public_key_algorithm=response.get("publicKeyAlgorithm"),
        client_extension_results=result.get("clientExtensionResults") or {},
    )


def normalize_authentication(result: dict[str, Any]) -> AuthenticationResponse:
    """Convert a raw plugin authentication result."""
    response = result["response"]
    return AuthenticationResponse(
        id=result["id"],
        raw_id=result["rawId"],
        client_data_json=response["clientDataJSON"],
        authenticator_data=response["authenticatorData"],
        signature=response["signature"],
        user_handle=normalize_user_handle(response.get("userHandle")),
        authenticator_attachment=normalize_attachment(result.get("authenticatorAttachment")),
        client_extension_results=result.get("clientExtensionResults") or {},
    )


class PasskeyAdapter(CredentialProvider):
    """CredentialProvider backed by a native passkey plugin."""

    def __init__(self, plugin: PasskeyPlugin, timeout: float = 60.0):
        """Initialize the adapter.

        Args:
            plugin: Native plugin exposing create_passkey/authenticate
            timeout: Budget for a single ceremony in seconds
        """
        self.plugin = plugin
        self.timeout = timeout

    async def create_credential(self, options: dict) -> RegistrationResponse:
        result = await with_timeout(
            self._call(self.plugin.create_passkey, options),
            "passkey.create_credential",
            self.timeout,
        )
        return normalize_registration(result)

    async def authenticate(self, options: dict) -> AuthenticationResponse:
        result = await with_timeout(
            self._call(self.plugin.authenticate, options),
            "passkey.authenticate",
            self.timeout,
        )
        return normalize_authentication(result)

    @staticmethod
    async def _call(method, options: dict) -> dict:
        try:
            return await method({"publicKey": options})
        except Exception as e:
            error = map_plugin_error(e)
            logger.info("Passkey ceremony rejected: %s (%s)", error.plugin_error_code, error.message)
            raise error from e
