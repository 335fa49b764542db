from typing import Any, Dict, List, Optional


class PackBackendError(Exception):
    """Base for every failure surfaced to HTTP callers as a structured payload."""

    status_code = 500
    code = "internal_error"
    default_message = "Unexpected backend failure"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.extra = extra

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "error": self.code, "details": self.message}
        payload.update({k: v for k, v in self.extra.items() if v is not None})
        return payload


class ConfigurationError(PackBackendError):
    code = "configuration_error"
    default_message = "Backend is not configured for this operation"


class RemoteError(PackBackendError):
    code = "remote_error"
    default_message = "Platform request failed"

    def __init__(self, messages: List[str], is_network_error: bool = False):
        self.messages = [str(m) for m in messages if m] or [self.default_message]
        self.is_network_error = is_network_error
        super().__init__("; ".join(self.messages), network=is_network_error)

    def mentions_not_found(self) -> bool:
        return any("not found" in m.lower() for m in self.messages)


class UpstreamProtocolError(PackBackendError):
    code = "upstream_protocol_error"
    default_message = "Platform response is missing required fields"


class SessionNotFoundError(PackBackendError):
    status_code = 404
    code = "session_not_found"
    default_message = "Auth session not found or expired."

    def __init__(self, session_id: str, message: Optional[str] = None):
        self.session_id = session_id
        super().__init__(message, sessionId=session_id)


class WalletNotLinkedError(PackBackendError):
    status_code = 400
    code = "wallet_not_linked"
    default_message = "No wallet is linked to this session yet"

    def __init__(self, session_id: str, message: Optional[str] = None):
        self.session_id = session_id
        super().__init__(message, sessionId=session_id)


class ChargeInitiationError(PackBackendError):
    code = "charge_initiation_failed"
    default_message = "Platform did not return a transaction id for the charge"


class PaymentRejectedError(PackBackendError):
    status_code = 400
    code = "payment_rejected"

    def __init__(self, state: str, transaction_id: Optional[str] = None):
        self.state = state
        self.transaction_id = transaction_id
        super().__init__(f"Payment transaction ended in state {state}", state=state, transactionId=transaction_id)


class PaymentTimeoutError(PackBackendError):
    code = "payment_timeout"

    def __init__(self, transaction_id: str, attempts: int, last_state: Optional[str] = None):
        self.transaction_id = transaction_id
        self.attempts = attempts
        self.last_state = last_state
        super().__init__(
            f"Payment transaction {transaction_id} not confirmed after {attempts} checks",
            transactionId=transaction_id,
            state=last_state,
        )


class MintDispatchError(PackBackendError):
    code = "mint_dispatch_failed"
    default_message = "Batch mint request failed"

    def __init__(self, message: Optional[str] = None, transaction_id: Optional[str] = None):
        self.transaction_id = transaction_id
        super().__init__(message, transactionId=transaction_id)
