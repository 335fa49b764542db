from typing import Dict, List, Optional

from pydantic_settings import BaseSettings

from errors import ConfigurationError


class Settings(BaseSettings):
    platform_url: Optional[str] = None
    enjin_api_token: Optional[str] = None
    platform_schema: str = "auth-session"
    auth_callback_url: Optional[str] = None  # required by the wallet-verification schema
    collection_id: int = 0
    receiver_wallet: Optional[str] = None  # treasury that receives the pack fee
    mint_cost_enj: str = "10"  # major units; converted exactly to witoshi
    mint_count: int = 5
    token_ids: str = "1,2,3"  # comma-separated
    token_names: str = "Rock,Paper,Scissors"  # comma-separated, same order as token_ids
    max_supply_per_token: int = 50
    tx_poll_interval_ms: int = 3000
    tx_poll_timeout_ms: int = 120000
    request_timeout_seconds: float = 20
    http_pool_size: int = 20
    cors_origins: str = "*"
    log_level: str = "INFO"
    port: int = 5000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def catalog(self) -> Dict[int, str]:
        try:
            ids = [int(part) for part in self.token_ids.split(",") if part.strip()]
        except ValueError as exc:
            raise ConfigurationError(f"TOKEN_IDS must be comma-separated integers, got {self.token_ids!r}") from exc
        if not ids:
            raise ConfigurationError("TOKEN_IDS must list at least one token id")
        names = [part.strip() for part in self.token_names.split(",")]
        return {token_id: (names[idx] if idx < len(names) and names[idx] else f"Token {token_id}") for idx, token_id in enumerate(ids)}

    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()] or ["*"]

    def treasury_address(self) -> str:
        if not self.receiver_wallet:
            raise ConfigurationError("RECEIVER_WALLET not configured")
        return self.receiver_wallet

    @property
    def poll_interval_seconds(self) -> float:
        return self.tx_poll_interval_ms / 1000

    @property
    def poll_timeout_seconds(self) -> float:
        return self.tx_poll_timeout_ms / 1000
