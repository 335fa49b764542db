import logging
import random
import time
from typing import Callable, Optional

from config import Settings
from errors import MintDispatchError
from minting import MintDispatcher
from models import MintResult
from payments import PaymentOrchestrator, to_minor_units
from platform_schema import PlatformSchema
from sessions import SessionPoller

logger = logging.getLogger("rps.workflow")


class MintWorkflow:
    """Payment-gated pack mint: charge must be confirmed before anything is minted."""

    def __init__(self, orchestrator: PaymentOrchestrator, dispatcher: MintDispatcher):
        self.orchestrator = orchestrator
        self.dispatcher = dispatcher

    def run(self, session_id: str) -> MintResult:
        wallet, tx = self.orchestrator.charge(session_id)
        try:
            return self.dispatcher.dispatch(wallet, transaction_id=tx.id)
        except MintDispatchError:
            # Payment already settled; there is no refund path, so leave a trail for manual reconciliation.
            logger.error(
                "mint_failed_after_payment session=%s wallet=%s tx=%s amount=%s",
                session_id,
                wallet,
                tx.id,
                tx.amount,
            )
            raise


def build_mint_workflow(
    platform: PlatformSchema,
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    rng: Optional[random.Random] = None,
) -> MintWorkflow:
    poller = SessionPoller(platform, sleep=sleep, clock=clock)
    orchestrator = PaymentOrchestrator(
        platform,
        poller,
        treasury=settings.treasury_address(),
        price_minor_units=to_minor_units(settings.mint_cost_enj),
        interval=settings.poll_interval_seconds,
        timeout=settings.poll_timeout_seconds,
        sleep=sleep,
        clock=clock,
    )
    dispatcher = MintDispatcher(
        platform,
        collection_id=settings.collection_id,
        catalog=settings.catalog(),
        pack_size=settings.mint_count,
        rng=rng,
    )
    return MintWorkflow(orchestrator, dispatcher)
