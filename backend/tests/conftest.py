"""Shared fixtures: an in-memory token platform and a clock that advances on sleep."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

BACKEND_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from config import Settings  # noqa: E402
from errors import RemoteError  # noqa: E402
from models import TokenBalance, TokenSupply  # noqa: E402
from platform_schema import PlatformSchema  # noqa: E402


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakePlatform(PlatformSchema):
    """Scripted stand-in for the GraphQL platform, keyed by opaque ids like the real one."""

    name = "fake"

    def __init__(self) -> None:
        super().__init__(client=None)  # type: ignore[arg-type]
        self.sessions: dict[str, str | None] = {}
        self.charges: list[dict[str, Any]] = []
        self.transaction_scripts: dict[str, list[Any]] = {}
        self.next_script: list[Any] = ["EXECUTED"]
        self.state_calls: dict[str, int] = {}
        self.mints: list[dict[str, Any]] = []
        self.mint_error: Exception | None = None
        self.charge_response: dict[str, Any] | None = None
        self.session_response: dict[str, Any] | None = None
        self.balances: list[TokenBalance] = []
        self.supply: list[TokenSupply] = []
        self.wallet_lookups = 0

    # helpers used by tests
    def link_wallet(self, session_id: str, address: str) -> None:
        self.sessions[session_id] = address

    def script_next_transaction(self, *states: Any) -> None:
        self.next_script = list(states)

    # PlatformSchema interface
    def create_verification_session(self, external_id: str | None = None) -> dict[str, Any]:
        if self.session_response is not None:
            return self.session_response
        session_id = f"sess-{len(self.sessions) + 1}"
        self.sessions[session_id] = None
        return {"id": session_id, "qr_payload": f"https://platform.test/auth/{session_id}", "expires_at": None}

    def get_wallet_for_session(self, session_id: str) -> dict[str, Any]:
        self.wallet_lookups += 1
        if session_id not in self.sessions:
            raise RemoteError([f"Auth session {session_id} not found"])
        return {"wallet_address": self.sessions[session_id], "state": None, "balance": None}

    def create_charge_transaction(self, recipient, amount, signing_account=None, idempotency_key=None):
        if self.charge_response is not None:
            return self.charge_response
        tx_id = str(100 + len(self.charges))
        self.charges.append(
            {"id": tx_id, "recipient": recipient, "amount": amount, "signer": signing_account, "key": idempotency_key}
        )
        self.transaction_scripts[tx_id] = list(self.next_script)
        return {"transaction_id": tx_id, "state": "PENDING"}

    def get_transaction_state(self, transaction_id: str) -> str | None:
        self.state_calls[transaction_id] = self.state_calls.get(transaction_id, 0) + 1
        script = self.transaction_scripts[transaction_id]
        step = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(step, Exception):
            raise step
        return step

    def batch_mint(self, collection_id, recipients):
        if self.mint_error is not None:
            raise self.mint_error
        recipients = list(recipients)
        self.mints.append({"collection_id": collection_id, "recipients": recipients})
        return {"request_id": f"mint-{len(self.mints)}", "state": "PENDING"}

    def get_token_balances(self, wallet, collection_id, token_ids):
        return list(self.balances)

    def get_collection_supply(self, collection_id, token_ids):
        return list(self.supply)


@pytest.fixture()
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        platform_url="https://platform.test/graphql",
        enjin_api_token="test-token",
        receiver_wallet="0xtreasury",
        collection_id=7,
    )
