import logging
from typing import Dict

from platform_schema import PlatformSchema

logger = logging.getLogger("rps.inventory")


class Inventory:
    def __init__(self, platform: PlatformSchema, collection_id: int, catalog: Dict[int, str], max_supply_per_token: int):
        self.platform = platform
        self.collection_id = collection_id
        self.token_ids = sorted(catalog)
        self.max_supply_per_token = max_supply_per_token

    def balances(self, wallet: str) -> Dict[str, int]:
        """Catalog balances for `wallet`, keyed by token id; other tokens in the collection are ignored."""
        rows = self.platform.get_token_balances(wallet, self.collection_id, self.token_ids)
        if not rows:
            logger.warning("balances_empty wallet=%s collection=%s", wallet, self.collection_id)
        balances: Dict[str, int] = {}
        for row in rows:
            if row.token_id in self.token_ids:
                balances[str(row.token_id)] = row.balance
        return balances

    def remaining_supply(self) -> int:
        rows = {row.token_id: row for row in self.platform.get_collection_supply(self.collection_id, self.token_ids)}
        if not rows:
            logger.warning("supply_unknown collection=%s", self.collection_id)
        remaining = 0
        for token_id in self.token_ids:
            row = rows.get(token_id)
            minted = row.supply if row else 0
            cap = row.cap if row and row.cap is not None else self.max_supply_per_token
            remaining += max(cap - minted, 0)
        return max(remaining, 0)
