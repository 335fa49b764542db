import logging
import time
import uuid
from decimal import Decimal, InvalidOperation, localcontext
from typing import Callable, Tuple, Union

from errors import (
    ChargeInitiationError,
    ConfigurationError,
    PaymentRejectedError,
    PaymentTimeoutError,
    RemoteError,
    UpstreamProtocolError,
)
from models import FAILURE_STATES, PENDING_STATE, SUCCESS_STATES, ChargeTransaction
from platform_schema import PlatformSchema
from polling import FAILURE, SUCCESS, poll
from sessions import SessionPoller

logger = logging.getLogger("rps.payments")

PLATFORM_DECIMALS = 18  # witoshi per ENJ = 10**18


def to_minor_units(amount: Union[str, int, Decimal], decimals: int = PLATFORM_DECIMALS) -> int:
    """
    Exact major -> minor unit conversion. "10" -> 10 * 10**18, never via float.
    """
    if isinstance(amount, float):
        raise ConfigurationError("Mint price must be given as a string or integer, not float")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as exc:
        raise ConfigurationError(f"Invalid mint price: {amount!r}") from exc
    if not value.is_finite() or value < 0:
        raise ConfigurationError(f"Invalid mint price: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ConfigurationError(f"Mint price {amount!r} has more than {decimals} decimal places")
        return int(scaled)


class PaymentOrchestrator:
    """
    Charge sub-saga: resolve the session's wallet, ask the platform for a transfer
    to the treasury, then block until the transfer is terminal or the timeout hits.
    """

    def __init__(
        self,
        platform: PlatformSchema,
        poller: SessionPoller,
        treasury: str,
        price_minor_units: int,
        interval: float = 3.0,
        timeout: float = 120.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not treasury:
            raise ConfigurationError("RECEIVER_WALLET not configured")
        self.platform = platform
        self.poller = poller
        self.treasury = treasury
        self.price_minor_units = price_minor_units
        self.interval = interval
        self.timeout = timeout
        self.sleep = sleep
        self.clock = clock

    def initiate(self, session_id: str, wallet: str) -> ChargeTransaction:
        idempotency_key = f"{session_id}:{uuid.uuid4().hex}"
        raw = self.platform.create_charge_transaction(
            self.treasury,
            self.price_minor_units,
            signing_account=wallet,
            idempotency_key=idempotency_key,
        )
        tx_id = raw.get("transaction_id")
        if not tx_id:
            logger.error("charge_initiation_failed session=%s wallet=%s response=%s", session_id, wallet, raw)
            raise ChargeInitiationError()
        tx = ChargeTransaction(
            id=tx_id,
            recipient=self.treasury,
            amount=self.price_minor_units,
            state=raw.get("state") or PENDING_STATE,
        )
        logger.info("charge_created session=%s wallet=%s tx=%s amount=%s", session_id, wallet, tx.id, tx.amount)
        return tx

    def confirm(self, tx: ChargeTransaction) -> ChargeTransaction:
        if tx.failed:
            raise PaymentRejectedError(tx.state, tx.id)
        if tx.succeeded:
            return tx
        result = poll(
            lambda: self.platform.get_transaction_state(tx.id),
            is_success=lambda state: state in SUCCESS_STATES,
            is_failure=lambda state: state in FAILURE_STATES,
            interval=self.interval,
            timeout=self.timeout,
            transient=(RemoteError, UpstreamProtocolError),
            sleep=self.sleep,
            clock=self.clock,
            label="charge_confirm",
        )
        if result.outcome == SUCCESS:
            logger.info("charge_confirmed tx=%s state=%s attempts=%s", tx.id, result.value, result.attempts)
            return tx.model_copy(update={"state": result.value})
        if result.outcome == FAILURE:
            logger.warning("charge_rejected tx=%s state=%s", tx.id, result.value)
            raise PaymentRejectedError(result.value, tx.id)
        raise PaymentTimeoutError(tx.id, result.attempts, result.value)

    def charge(self, session_id: str) -> Tuple[str, ChargeTransaction]:
        wallet = self.poller.resolve_wallet(session_id)
        tx = self.initiate(session_id, wallet)
        return wallet, self.confirm(tx)
