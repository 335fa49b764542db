import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from errors import (
    ConfigurationError,
    PackBackendError,
    RemoteError,
    SessionNotFoundError,
    UpstreamProtocolError,
    WalletNotLinkedError,
)
from models import SessionState, VerificationSession, WalletLink
from platform_schema import PlatformSchema
from polling import poll

logger = logging.getLogger("rps.sessions")

# Browser clients poll /check-auth on the same cadence as payment confirmation.
CLIENT_POLL_INTERVAL_SECONDS = 3.0
CLIENT_POLL_TIMEOUT_SECONDS = 120.0


def _parse_timestamp(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        sanitized = str(value).replace("Z", "+00:00")
        parsed = datetime.fromisoformat(sanitized)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp()
    except ValueError:
        return None


class VerificationSessionManager:
    def __init__(self, platform: PlatformSchema):
        self.platform = platform

    def create(self, external_id: Optional[str] = None) -> VerificationSession:
        raw = self.platform.create_verification_session(external_id)
        session_id = raw.get("id")
        qr_payload = raw.get("qr_payload")
        if not session_id or not qr_payload:
            logger.error("auth_session_unexpected_response schema=%s response=%s", self.platform.name, raw)
            raise UpstreamProtocolError("Failed to get required id or QR payload from auth response.")
        session = VerificationSession(
            id=str(session_id),
            qr_payload=str(qr_payload),
            expires_at=_parse_timestamp(raw.get("expires_at")),
        )
        logger.info("auth_session_created id=%s external_id=%s", session.id, external_id)
        return session


class SessionPoller:
    """
    Single-shot lookup of the wallet linked to a verification session.

    `check` never raises for transient trouble so a client polling loop keeps going;
    only an unknown session escalates. `resolve_wallet` is the strict variant used
    before money moves.
    """

    def __init__(
        self,
        platform: PlatformSchema,
        interval: float = CLIENT_POLL_INTERVAL_SECONDS,
        timeout: float = CLIENT_POLL_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.platform = platform
        self.interval = interval
        self.timeout = timeout
        self.sleep = sleep
        self.clock = clock

    def _lookup(self, session_id: str) -> WalletLink:
        try:
            raw = self.platform.get_wallet_for_session(session_id)
        except RemoteError as exc:
            if exc.mentions_not_found():
                raise SessionNotFoundError(session_id) from exc
            raise
        address = raw.get("wallet_address")
        return WalletLink(
            session_id=session_id,
            wallet_address=str(address) if address else None,
            state=SessionState.RESOLVED if address else SessionState.PENDING,
            balance=raw.get("balance"),
        )

    def check(self, session_id: str) -> WalletLink:
        try:
            link = self._lookup(session_id)
        except (SessionNotFoundError, ConfigurationError):
            raise
        except PackBackendError as exc:
            logger.warning("check_auth_failed session=%s error=%s", session_id, exc)
            return WalletLink(session_id=session_id, error=str(exc))
        logger.info("check_auth session=%s state=%s wallet=%s", session_id, link.state.value, link.wallet_address or "N/A")
        return link

    def resolve_wallet(self, session_id: str) -> str:
        link = self._lookup(session_id)
        if not link.resolved:
            raise WalletNotLinkedError(session_id)
        return link.wallet_address

    def wait_for_wallet(self, session_id: str) -> WalletLink:
        result = poll(
            lambda: self.check(session_id),
            is_success=lambda link: link.resolved,
            is_failure=lambda link: link.state == SessionState.NOT_FOUND,
            interval=self.interval,
            timeout=self.timeout,
            sleep=self.sleep,
            clock=self.clock,
            label="session_wait",
        )
        if not result.succeeded:
            raise WalletNotLinkedError(session_id, f"No wallet linked within {self.timeout:.0f}s")
        return result.value
