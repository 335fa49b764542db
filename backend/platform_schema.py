"""
Versioned adapters for the token platform's GraphQL schema.

The platform's field names moved around between releases, so each confirmed
schema gets its own adapter and the active one is picked by PLATFORM_SCHEMA.
Adapters only build documents and map response fields; validation of what the
saga needs lives with the callers.
"""

from typing import Any, Dict, Iterable, List, Optional, Type

from errors import ConfigurationError, UpstreamProtocolError
from models import TokenBalance, TokenSupply
from platform_client import PlatformClient

TRANSFER_BALANCE = """
mutation TransferBalance($recipient: TransferRecipient!, $signingAccount: String, $idempotencyKey: String) {
  TransferBalance(recipient: $recipient, signingAccount: $signingAccount, idempotencyKey: $idempotencyKey) {
    id
    transactionId
    state
  }
}
"""

GET_TRANSACTION = """
query GetTransaction($id: BigInt!) {
  GetTransaction(id: $id) {
    id
    transactionId
    state
  }
}
"""

BATCH_MINT = """
mutation BatchMint($collectionId: BigInt!, $recipients: [MintRecipient!]!) {
  BatchMint(collectionId: $collectionId, recipients: $recipients) {
    id
    method
    state
  }
}
"""


def to_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(str(value).split(".")[0])
    except (TypeError, ValueError):
        return default


def _object(container: Dict[str, Any], key: str, context: str) -> Optional[Dict[str, Any]]:
    """`container[key]` when it is an object, None when absent; anything else is schema drift."""
    value = container.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise UpstreamProtocolError(f"{context}.{key} returned {type(value).__name__}, expected an object")
    return value


def _edges(connection: Any) -> List[dict]:
    if not isinstance(connection, dict):
        return []
    nodes = []
    for edge in connection.get("edges") or []:
        node = edge.get("node") if isinstance(edge, dict) else None
        if isinstance(node, dict):
            nodes.append(node)
    return nodes


class PlatformSchema:
    name = "base"
    # Platform-specific transaction labels folded into the canonical state sets.
    state_aliases: Dict[str, str] = {}

    def __init__(self, client: PlatformClient, callback_url: Optional[str] = None):
        self.client = client
        self.callback_url = callback_url

    def normalize_state(self, raw: Any) -> Optional[str]:
        if not raw:
            return None
        state = str(raw).strip().upper()
        return self.state_aliases.get(state, state)

    # Verification
    def create_verification_session(self, external_id: Optional[str] = None) -> Dict[str, Any]:
        raise NotImplementedError

    def get_wallet_for_session(self, session_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    # Payment
    def create_charge_transaction(
        self,
        recipient: str,
        amount: int,
        signing_account: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        variables = {
            "recipient": {"account": recipient, "keepAlive": False, "amount": str(amount)},
            "signingAccount": signing_account,
            "idempotencyKey": idempotency_key,
        }
        data = self.client.execute(TRANSFER_BALANCE, variables, operation="TransferBalance")
        tx = _object(data, "TransferBalance", "data") or {}
        tx_id = tx.get("id")
        return {
            "transaction_id": str(tx_id) if tx_id not in (None, "") else None,
            "state": self.normalize_state(tx.get("state")),
        }

    def get_transaction_state(self, transaction_id: str) -> Optional[str]:
        data = self.client.execute(GET_TRANSACTION, {"id": transaction_id}, operation="GetTransaction")
        tx = data.get("GetTransaction")
        if not isinstance(tx, dict):
            raise UpstreamProtocolError(f"GetTransaction returned nothing for {transaction_id}")
        return self.normalize_state(tx.get("state"))

    # Minting
    def batch_mint(self, collection_id: int, recipients: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        payload = [
            {
                "account": r["address"],
                "mintParams": {"tokenId": {"integer": int(r["token_id"])}, "amount": str(r.get("amount", 1))},
            }
            for r in recipients
        ]
        data = self.client.execute(BATCH_MINT, {"collectionId": str(collection_id), "recipients": payload}, operation="BatchMint")
        req = _object(data, "BatchMint", "data") or {}
        req_id = req.get("id")
        return {
            "request_id": str(req_id) if req_id not in (None, "") else None,
            "state": self.normalize_state(req.get("state")),
        }

    # Inventory
    def get_token_balances(self, wallet: str, collection_id: int, token_ids: List[int]) -> List[TokenBalance]:
        raise NotImplementedError

    def get_collection_supply(self, collection_id: int, token_ids: List[int]) -> List[TokenSupply]:
        raise NotImplementedError


class AuthSessionSchema(PlatformSchema):
    """CreateAuthSession / GetAuthSession generation of the API."""

    name = "auth-session"

    CREATE_AUTH_SESSION = """
    mutation CreateAuthSession($input: CreateAuthSessionInput!) {
      CreateAuthSession(input: $input) {
        id
        state
        authenticationUrl
        expiresAt
      }
    }
    """

    GET_AUTH_SESSION = """
    query GetAuthSession($id: ID!) {
      GetAuthSession(id: $id) {
        id
        state
        wallet {
          id
        }
      }
    }
    """

    TOKENS_BY_OWNER = """
    query GetTokensByOwner($collectionId: BigInt!, $wallet: String!) {
      TokensByOwner(collectionId: $collectionId, address: $wallet) {
        tokenId
        balance
      }
    }
    """

    COLLECTION_TOKENS = """
    query GetCollectionTokens($collectionId: BigInt!, $tokenIds: [String!]) {
      Tokens(collectionId: $collectionId, filter: { tokenId_in: $tokenIds }) {
        tokenId
        totalSupply
      }
    }
    """

    def create_verification_session(self, external_id: Optional[str] = None) -> Dict[str, Any]:
        input_vars: Dict[str, Any] = {}
        if external_id:
            input_vars["externalId"] = external_id
        data = self.client.execute(self.CREATE_AUTH_SESSION, {"input": input_vars}, operation="CreateAuthSession")
        session = _object(data, "CreateAuthSession", "data") or {}
        return {
            "id": session.get("id"),
            "qr_payload": session.get("authenticationUrl"),
            "expires_at": session.get("expiresAt"),
        }

    def get_wallet_for_session(self, session_id: str) -> Dict[str, Any]:
        data = self.client.execute(self.GET_AUTH_SESSION, {"id": session_id}, operation="GetAuthSession")
        # A null session reads as "not linked yet"; unknown ids surface as a "not found" error.
        session = _object(data, "GetAuthSession", "data") or {}
        wallet = _object(session, "wallet", "GetAuthSession") or {}
        return {"wallet_address": wallet.get("id"), "state": session.get("state"), "balance": None}

    def get_token_balances(self, wallet: str, collection_id: int, token_ids: List[int]) -> List[TokenBalance]:
        data = self.client.execute(
            self.TOKENS_BY_OWNER,
            {"collectionId": str(collection_id), "wallet": wallet},
            operation="GetTokensByOwner",
        )
        rows = data.get("TokensByOwner")
        if not isinstance(rows, list):
            return []
        return [
            TokenBalance(token_id=to_int(row.get("tokenId")), balance=to_int(row.get("balance")))
            for row in rows
            if isinstance(row, dict) and row.get("tokenId") is not None
        ]

    def get_collection_supply(self, collection_id: int, token_ids: List[int]) -> List[TokenSupply]:
        data = self.client.execute(
            self.COLLECTION_TOKENS,
            {"collectionId": str(collection_id), "tokenIds": [str(t) for t in token_ids]},
            operation="GetCollectionTokens",
        )
        rows = data.get("Tokens")
        if not isinstance(rows, list):
            return []
        return [
            TokenSupply(token_id=to_int(row.get("tokenId")), supply=to_int(row.get("totalSupply")))
            for row in rows
            if isinstance(row, dict) and row.get("tokenId") is not None
        ]


class WalletVerificationSchema(PlatformSchema):
    """RequestAccount / GetWallet generation of the API."""

    name = "wallet-verification"
    state_aliases = {"FINALIZED": "COMPLETED", "ABANDONED": "CANCELED"}

    REQUEST_ACCOUNT = """
    mutation RequestAccount($callback: String!, $externalId: String) {
      RequestAccount(callback: $callback, externalId: $externalId) {
        qr
        verificationId
      }
    }
    """

    GET_WALLET = """
    query GetWallet($verificationId: String!) {
      GetWallet(verificationId: $verificationId) {
        id
        account {
          address
        }
        balances {
          free
        }
      }
    }
    """

    WALLET_TOKENS = """
    query GetWalletTokens($wallet: String!, $collectionId: BigInt!, $tokenIds: [BigInt!]) {
      GetWallet(account: $wallet) {
        tokenAccounts(collectionIds: [$collectionId], tokenIds: $tokenIds) {
          edges {
            node {
              balance
              token {
                tokenId
              }
            }
          }
        }
      }
    }
    """

    GET_TOKENS = """
    query GetTokens($collectionId: BigInt!, $tokenIds: [BigInt!]) {
      GetTokens(collectionId: $collectionId, tokenIds: $tokenIds) {
        edges {
          node {
            tokenId
            supply
            cap {
              type
              supply
            }
          }
        }
      }
    }
    """

    def create_verification_session(self, external_id: Optional[str] = None) -> Dict[str, Any]:
        if not self.callback_url:
            raise ConfigurationError("AUTH_CALLBACK_URL is required by the wallet-verification schema")
        data = self.client.execute(
            self.REQUEST_ACCOUNT,
            {"callback": self.callback_url, "externalId": external_id},
            operation="RequestAccount",
        )
        account = _object(data, "RequestAccount", "data") or {}
        return {"id": account.get("verificationId"), "qr_payload": account.get("qr"), "expires_at": None}

    def get_wallet_for_session(self, session_id: str) -> Dict[str, Any]:
        data = self.client.execute(self.GET_WALLET, {"verificationId": session_id}, operation="GetWallet")
        wallet = _object(data, "GetWallet", "data") or {}
        account = _object(wallet, "account", "GetWallet") or {}
        balances = _object(wallet, "balances", "GetWallet") or {}
        free = balances.get("free")
        return {
            "wallet_address": account.get("address"),
            "state": None,
            "balance": to_int(free) if free is not None else None,
        }

    def get_token_balances(self, wallet: str, collection_id: int, token_ids: List[int]) -> List[TokenBalance]:
        data = self.client.execute(
            self.WALLET_TOKENS,
            {"wallet": wallet, "collectionId": str(collection_id), "tokenIds": [str(t) for t in token_ids]},
            operation="GetWalletTokens",
        )
        found = _object(data, "GetWallet", "data") or {}
        balances = []
        for node in _edges(found.get("tokenAccounts")):
            token = _object(node, "token", "tokenAccounts") or {}
            if token.get("tokenId") is None:
                continue
            balances.append(TokenBalance(token_id=to_int(token.get("tokenId")), balance=to_int(node.get("balance"))))
        return balances

    def get_collection_supply(self, collection_id: int, token_ids: List[int]) -> List[TokenSupply]:
        data = self.client.execute(
            self.GET_TOKENS,
            {"collectionId": str(collection_id), "tokenIds": [str(t) for t in token_ids]},
            operation="GetTokens",
        )
        supplies = []
        for node in _edges(data.get("GetTokens")):
            if node.get("tokenId") is None:
                continue
            cap = _object(node, "cap", "GetTokens") or {}
            supplies.append(
                TokenSupply(
                    token_id=to_int(node.get("tokenId")),
                    supply=to_int(node.get("supply")),
                    cap=to_int(cap.get("supply")) if cap.get("supply") is not None else None,
                )
            )
        return supplies


SCHEMA_REGISTRY: Dict[str, Type[PlatformSchema]] = {
    AuthSessionSchema.name: AuthSessionSchema,
    WalletVerificationSchema.name: WalletVerificationSchema,
}


def build_schema(name: str, client: PlatformClient, callback_url: Optional[str] = None) -> PlatformSchema:
    schema_cls = SCHEMA_REGISTRY.get((name or "").strip().lower())
    if not schema_cls:
        raise ConfigurationError(f"Unsupported platform schema: {name} (known: {', '.join(sorted(SCHEMA_REGISTRY))})")
    return schema_cls(client, callback_url=callback_url)
