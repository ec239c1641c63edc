"""Dry-run credential provider for testing (no real authenticator)."""

import base64
import json
import secrets
from typing import Optional

from passkey_wallet.passkey.base import (
    AuthenticationResponse,
    CredentialProvider,
    RegistrationResponse,
)
from passkey_wallet.passkey.errors import ERROR_NAME_MAP, PasskeyError, PluginErrorCode


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


class DryRunCredentialProvider(CredentialProvider):
    """Simulated authenticator that remembers the credentials it created.

    Set ``fail_with`` to make every ceremony reject with that plugin code.
    """

    def __init__(self, fail_with: Optional[PluginErrorCode] = None):
        self.fail_with = fail_with
        self.credentials: dict[str, bytes] = {}

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise PasskeyError(
                ERROR_NAME_MAP[self.fail_with],
                f"Simulated passkey failure: {self.fail_with.value}",
                self.fail_with.value,
            )

    async def create_credential(self, options: dict) -> RegistrationResponse:
        self._maybe_fail()

        credential_id = _b64url(secrets.token_bytes(16))
        # Uncompressed P-256 point
        public_key = b"\x04" + secrets.token_bytes(64)
        self.credentials[credential_id] = public_key

        client_data = {
            "type": "webauthn.create",
            "challenge": options.get("challenge", ""),
            "origin": f"https://{options.get('rp', {}).get('id', 'localhost')}",
        }
        return RegistrationResponse(
            id=credential_id,
            raw_id=credential_id,
            attestation_object=_b64url(b"dry-run-attestation"),
            client_data_json=_b64url(json.dumps(client_data).encode()),
            authenticator_attachment="platform",
            transports=["internal"],
            public_key=_b64url(public_key),
            public_key_algorithm=-7,
        )

    async def authenticate(self, options: dict) -> AuthenticationResponse:
        self._maybe_fail()

        allowed = [item["id"] for item in options.get("allowCredentials", [])]
        candidates = [cid for cid in allowed if cid in self.credentials] if allowed else list(
            self.credentials
        )
        if not candidates:
            raise PasskeyError(
                ERROR_NAME_MAP[PluginErrorCode.NO_CREDENTIAL],
                "No matching passkey on this device",
                PluginErrorCode.NO_CREDENTIAL.value,
            )

        credential_id = candidates[-1]
        client_data = {"type": "webauthn.get", "challenge": options.get("challenge", "")}
        return AuthenticationResponse(
            id=credential_id,
            raw_id=credential_id,
            client_data_json=_b64url(json.dumps(client_data).encode()),
            authenticator_data=_b64url(secrets.token_bytes(37)),
            signature=_b64url(secrets.token_bytes(64)),
            authenticator_attachment="platform",
        )


class DryRunPasskeyPlugin:
    """Native-plugin stand-in returning raw results, for use behind PasskeyAdapter."""

    def __init__(self, provider: Optional[DryRunCredentialProvider] = None):
        self.provider = provider or DryRunCredentialProvider()

    async def create_passkey(self, options: dict) -> dict:
        result = await self.provider.create_credential(options.get("publicKey", {}))
        return {
            "id": result.id,
            "rawId": result.raw_id,
            "type": result.type,
            "authenticatorAttachment": result.authenticator_attachment,
            "clientExtensionResults": result.client_extension_results,
            "response": {
                "attestationObject": result.attestation_object,
                "clientDataJSON": result.client_data_json,
                "transports": result.transports or [],
                "publicKey": result.public_key,
                "publicKeyAlgorithm": result.public_key_algorithm,
            },
        }

    async def authenticate(self, options: dict) -> dict:
        result = await self.provider.authenticate(options.get("publicKey", {}))
        return {
            "id": result.id,
            "rawId": result.raw_id,
            "type": result.type,
            "authenticatorAttachment": result.authenticator_attachment,
            "clientExtensionResults": result.client_extension_results,
            "response": {
                "clientDataJSON": result.client_data_json,
                "authenticatorData": result.authenticator_data,
                "signature": result.signature,
                "userHandle": result.user_handle or "null",
            },
        }
