"""User-facing messages for failed wallet operations.

Failures reach the controller from several layers (guard timeouts, passkey
plugin rejections, domain validation, RPC errors). ``classify_error`` maps
each to one message, checking in this order:

1. operation timeouts
2. passkey plugin error codes
3. smart-account domain errors
4. undeployed wallet contracts
5. the raw error message
"""

from typing import Any, Optional

from passkey_wallet.passkey.errors import DEFAULT_MESSAGE, PluginErrorCode, to_plugin_error_code
from passkey_wallet.utils.timeouts import OperationTimeoutError
from passkey_wallet.wallet.base import SmartAccountError, SmartAccountErrorCode


UNKNOWN_ERROR_MESSAGE = "Unknown error"
UNDEPLOYED_CONTRACT_MARKER = "contract not found on-chain"

TIMEOUT_MESSAGES = {
    "restore": "Session restore timed out. You can continue manually.",
    "reauth": "Re-authentication timed out. Try Connect Wallet again.",
    "create": (
        "Wallet creation timed out. Check passkey prompt visibility and "
        "network/relayer status, then retry."
    ),
    "connect": "Wallet connection timed out. Try Connect Wallet again.",
    "transfer": "Transfer timed out before confirmation. Check network status and retry.",
    "disconnect": "Disconnect timed out. Try again.",
}

CANCELLED_MESSAGE = "Passkey request was cancelled or no credential was selected."

PLUGIN_MESSAGES = {
    PluginErrorCode.CANCELLED: CANCELLED_MESSAGE,
    PluginErrorCode.DOM_ERROR: CANCELLED_MESSAGE,
    PluginErrorCode.NO_CREDENTIAL: CANCELLED_MESSAGE,
    PluginErrorCode.TIMEOUT: "Passkey request timed out. Try again.",
    PluginErrorCode.RPID_VALIDATION_ERROR: (
        "Passkey rpId validation failed. Check app rpId, associated domains, and asset links."
    ),
    PluginErrorCode.PROVIDER_CONFIG_ERROR: "Passkey provider is not configured on this device.",
    PluginErrorCode.UNSUPPORTED_ERROR: "Passkeys are not supported on this device configuration.",
}

DOMAIN_MESSAGES = {
    SmartAccountErrorCode.INVALID_ADDRESS: (
        "Invalid Stellar address. Use a valid G... or C... address."
    ),
    SmartAccountErrorCode.INVALID_AMOUNT: "Invalid amount. Enter a positive numeric value.",
    SmartAccountErrorCode.WALLET_NOT_CONNECTED: (
        "No wallet connected. Connect a wallet before this action."
    ),
    SmartAccountErrorCode.TRANSACTION_TIMEOUT: "Transaction confirmation timed out.",
}

UNDEPLOYED_MESSAGE = (
    "Wallet contract is not deployed on-chain yet. Create and deploy a wallet first."
)


def _field(error: Any, name: str) -> Any:
    if isinstance(error, dict):
        return error.get(name)
    try:
        return getattr(error, name, None)
    except Exception:
        return None


def extract_message(error: Any) -> Optional[str]:
    """Get a non-empty message from any failure value, or None."""
    message = _field(error, "message")
    if isinstance(message, str) and message:
        return message

    if isinstance(error, BaseException):
        try:
            text = str(error)
        except Exception:
            return None
        return text or None

    if isinstance(error, str) and error:
        return error
    return None


def plugin_error_code(error: Any) -> Optional[PluginErrorCode]:
    """Get a recognized passkey plugin code from a failure value."""
    value = _field(error, "plugin_error_code")
    if value is None:
        value = _field(error, "code")
    return to_plugin_error_code(value)


def classify_error(operation: Any, error: Any) -> str:
    """Turn a failed operation into the message shown to the user.

    Args:
        operation: Operation or label the failure belongs to
        error: Any failure value

    Returns:
        A user-facing message. Never raises.
    """
    label = getattr(operation, "value", operation)

    if isinstance(error, OperationTimeoutError):
        timed_out = getattr(error.label, "value", error.label)
        return TIMEOUT_MESSAGES.get(timed_out, f"{timed_out} timed out. Please retry.")

    code = plugin_error_code(error)
    if code is not None:
        if code in PLUGIN_MESSAGES:
            return PLUGIN_MESSAGES[code]
        message = extract_message(error) or DEFAULT_MESSAGE
        if code == PluginErrorCode.INVALID_INPUT:
            return f"Invalid input for {label}: {message}"
        return message

    if isinstance(error, SmartAccountError):
        try:
            domain_code = SmartAccountErrorCode(error.code)
        except ValueError:
            domain_code = None
        if domain_code in DOMAIN_MESSAGES:
            return DOMAIN_MESSAGES[domain_code]
        return extract_message(error) or UNKNOWN_ERROR_MESSAGE

    message = extract_message(error)
    if message is None:
        return UNKNOWN_ERROR_MESSAGE
    if UNDEPLOYED_CONTRACT_MARKER in message:
        return UNDEPLOYED_MESSAGE
    return message
