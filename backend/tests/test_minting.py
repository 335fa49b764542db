from __future__ import annotations

import random

import pytest

from errors import ConfigurationError, MintDispatchError, RemoteError, UpstreamProtocolError
from minting import MintDispatcher

CATALOG = {1: "Rock", 2: "Paper", 3: "Scissors"}


def _dispatcher(platform, pack_size: int = 5, seed: int = 7) -> MintDispatcher:
    return MintDispatcher(platform, collection_id=7, catalog=CATALOG, pack_size=pack_size, rng=random.Random(seed))


@pytest.mark.parametrize("seed", range(20))
def test_pack_has_configured_size_and_catalog_ids(platform, seed) -> None:
    result = _dispatcher(platform, seed=seed).dispatch("0xabc", transaction_id="101")
    assert len(result.minted_tokens) == 5
    assert all(token.id in CATALOG for token in result.minted_tokens)
    assert all(token.name == CATALOG[token.id] for token in result.minted_tokens)


def test_draws_allow_repeats(platform) -> None:
    dispatcher = _dispatcher(platform, pack_size=10, seed=1)
    assert any(len(set(dispatcher.draw())) < 10 for _ in range(5))


def test_batch_mint_names_wallet_for_every_item(platform) -> None:
    result = _dispatcher(platform).dispatch("0xabc", transaction_id="101")
    assert len(platform.mints) == 1
    sent = platform.mints[0]
    assert sent["collection_id"] == 7
    assert [r["address"] for r in sent["recipients"]] == ["0xabc"] * 5
    assert [r["token_id"] for r in sent["recipients"]] == [t.id for t in result.minted_tokens]
    assert all(r["amount"] == 1 for r in sent["recipients"])
    assert result.request_id == "mint-1"
    assert result.request_state == "PENDING"
    assert result.transaction_id == "101"


def test_platform_failure_becomes_mint_dispatch_error(platform) -> None:
    platform.mint_error = RemoteError(["BatchMint exploded"])
    with pytest.raises(MintDispatchError) as excinfo:
        _dispatcher(platform).dispatch("0xabc", transaction_id="101")
    assert excinfo.value.transaction_id == "101"
    assert "BatchMint exploded" in excinfo.value.message


def test_missing_request_id_is_dispatch_error(platform, monkeypatch) -> None:
    monkeypatch.setattr(platform, "batch_mint", lambda collection_id, recipients: {"request_id": None, "state": None})
    with pytest.raises(MintDispatchError):
        _dispatcher(platform).dispatch("0xabc")


def test_rejects_empty_pack(platform) -> None:
    with pytest.raises(ConfigurationError):
        MintDispatcher(platform, collection_id=7, catalog=CATALOG, pack_size=0)


def test_drifted_mint_response_becomes_dispatch_error(platform, monkeypatch) -> None:
    def drifted(collection_id, recipients):
        raise UpstreamProtocolError("data.BatchMint returned str, expected an object")

    monkeypatch.setattr(platform, "batch_mint", drifted)
    with pytest.raises(MintDispatchError) as excinfo:
        _dispatcher(platform).dispatch("0xabc", transaction_id="101")
    assert excinfo.value.transaction_id == "101"
