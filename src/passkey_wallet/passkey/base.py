"""Base interfaces for passkey credential ceremonies.

Ceremony flow:
1. Relying party issues a challenge (creation or request options)
2. Provider runs the user-present ceremony on the device
3. Provider returns a signed assertion (never raw private key material)
4. Wallet kit verifies the assertion on-chain
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class RegistrationResponse:
    """Result of a passkey creation ceremony.

    Attributes:
        id: Credential ID (base64url)
        raw_id: Raw credential ID (base64url)
        attestation_object: Attestation object (base64url)
        client_data_json: Client data JSON (base64url)
        authenticator_attachment: "platform" or "cross-platform", if reported
        transports: Authenticator transports, if reported
        public_key: SPKI public key (base64url), if reported
        public_key_algorithm: COSE algorithm identifier, if reported
    """
    id: str
    raw_id: str
    attestation_object: str
    client_data_json: str
    authenticator_data: Optional[str] = None
    authenticator_attachment: Optional[str] = None
    transports: Optional[list[str]] = None
    public_key: Optional[str] = None
    public_key_algorithm: Optional[int] = None
    client_extension_results: dict[str, Any] = field(default_factory=dict)
    type: str = "public-key"


@dataclass
class AuthenticationResponse:
    """Result of a passkey authentication ceremony."""
    id: str
    raw_id: str
    client_data_json: str
    authenticator_data: str
    signature: str
    user_handle: Optional[str] = None
    authenticator_attachment: Optional[str] = None
    client_extension_results: dict[str, Any] = field(default_factory=dict)
    type: str = "public-key"


class CredentialProvider(ABC):
    """Abstract base class for passkey ceremony providers.

    Implementations raise ``PasskeyError`` with a plugin error code on
    failure.
    """

    @abstractmethod
    async def create_credential(self, options: dict) -> RegistrationResponse:
        """Run a registration ceremony.

        Args:
            options: PublicKeyCredentialCreationOptions (JSON form)

        Returns:
            RegistrationResponse with the attestation
        """
        pass

    @abstractmethod
    async def authenticate(self, options: dict) -> AuthenticationResponse:
        """Run an authentication ceremony.

        Args:
            options: PublicKeyCredentialRequestOptions (JSON form)

        Returns:
            AuthenticationResponse with the signed assertion
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
