"""Passkey credential ceremonies.

Provides:
- CredentialProvider: ceremony interface consumed by the wallet kit
- PasskeyAdapter: native plugin adapter with error mapping and timeouts
- codec: base64 transport encoding for persisted key material
"""

from passkey_wallet.passkey.adapter import PasskeyAdapter
from passkey_wallet.passkey.base import (
    AuthenticationResponse,
    CredentialProvider,
    RegistrationResponse,
)
from passkey_wallet.passkey.codec import CodecError
from passkey_wallet.passkey.errors import PasskeyError, PluginErrorCode, map_plugin_error

__all__ = [
    "AuthenticationResponse",
    "CodecError",
    "CredentialProvider",
    "PasskeyAdapter",
    "PasskeyError",
    "PluginErrorCode",
    "RegistrationResponse",
    "map_plugin_error",
]
