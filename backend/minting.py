import logging
import random
from typing import Dict, List, Optional

from errors import ConfigurationError, MintDispatchError, PackBackendError
from models import MintBatch, MintedToken, MintItem, MintResult
from platform_schema import PlatformSchema

logger = logging.getLogger("rps.minting")


class MintDispatcher:
    """
    Draws a loot pack from the catalog and submits it as one batch mint.

    Every slot is an independent uniform draw (duplicates allowed). Settlement of
    the mint is not awaited; the platform's request id/state is passed through.
    """

    def __init__(
        self,
        platform: PlatformSchema,
        collection_id: int,
        catalog: Dict[int, str],
        pack_size: int,
        rng: Optional[random.Random] = None,
    ):
        if not catalog:
            raise ConfigurationError("Token catalog is empty")
        if pack_size <= 0:
            raise ConfigurationError("MINT_COUNT must be positive")
        self.platform = platform
        self.collection_id = collection_id
        self.catalog = dict(catalog)
        self.pack_size = pack_size
        self.rng = rng or random.Random()

    def draw(self) -> List[int]:
        token_ids = sorted(self.catalog)
        return [self.rng.choice(token_ids) for _ in range(self.pack_size)]

    def build_batch(self, recipient: str) -> MintBatch:
        return MintBatch(recipient=recipient, items=[MintItem(token_id=t, amount=1) for t in self.draw()])

    def dispatch(self, recipient: str, transaction_id: Optional[str] = None) -> MintResult:
        batch = self.build_batch(recipient)
        recipients = [{"address": batch.recipient, "token_id": item.token_id, "amount": item.amount} for item in batch.items]
        try:
            raw = self.platform.batch_mint(self.collection_id, recipients)
        except ConfigurationError:
            raise
        except PackBackendError as exc:
            logger.error("batch_mint_failed recipient=%s tx=%s error=%s", recipient, transaction_id, exc, exc_info=True)
            raise MintDispatchError(f"Batch mint failed: {exc}", transaction_id=transaction_id) from exc
        if not raw.get("request_id"):
            logger.error("batch_mint_unexpected_response recipient=%s tx=%s response=%s", recipient, transaction_id, raw)
            raise MintDispatchError("Batch mint returned no request id", transaction_id=transaction_id)
        minted = [MintedToken(id=item.token_id, name=self.catalog[item.token_id]) for item in batch.items]
        logger.info(
            "batch_mint_submitted recipient=%s request=%s state=%s tokens=%s",
            recipient,
            raw.get("request_id"),
            raw.get("state"),
            [t.id for t in minted],
        )
        return MintResult(
            minted_tokens=minted,
            request_id=raw.get("request_id"),
            request_state=raw.get("state"),
            transaction_id=transaction_id,
        )
