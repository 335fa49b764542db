import time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

# Canonical transaction states; schema adapters map their own labels onto these.
PENDING_STATE = "PENDING"
SUCCESS_STATES = frozenset({"EXECUTED", "CONFIRMED", "COMPLETED"})
FAILURE_STATES = frozenset({"FAILED", "CANCELED", "REJECTED", "EXPIRED"})


class SessionState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"


class VerificationSession(BaseModel):
    id: str
    qr_payload: str
    created_at: float = Field(default_factory=lambda: time.time())
    expires_at: Optional[float] = None


class WalletLink(BaseModel):
    session_id: str
    wallet_address: Optional[str] = None
    state: SessionState = SessionState.PENDING
    balance: Optional[int] = None
    error: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.state == SessionState.RESOLVED and bool(self.wallet_address)


class ChargeTransaction(BaseModel):
    id: str
    recipient: str
    amount: int  # minor units
    state: str = PENDING_STATE

    @property
    def succeeded(self) -> bool:
        return self.state in SUCCESS_STATES

    @property
    def failed(self) -> bool:
        return self.state in FAILURE_STATES


class MintItem(BaseModel):
    token_id: int
    amount: int = 1


class MintBatch(BaseModel):
    recipient: str
    items: List[MintItem]


class MintedToken(BaseModel):
    id: int
    name: str


class MintResult(BaseModel):
    minted_tokens: List[MintedToken]
    request_id: Optional[str] = None
    request_state: Optional[str] = None
    transaction_id: Optional[str] = None


class TokenBalance(BaseModel):
    token_id: int
    balance: int


class TokenSupply(BaseModel):
    token_id: int
    supply: int
    cap: Optional[int] = None
