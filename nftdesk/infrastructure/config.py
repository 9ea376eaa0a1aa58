"""
Infrastructure Layer: Configuration Adapter
"""
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application settings loaded from .env file and environment variables.
    Follows 12-factor app methodology.
    """

    # Tezos
    tezos_rpc_url: str = Field("https://mainnet.api.tez.ie", alias="TEZOS_RPC_URL")
    tzkt_api: str = Field("https://api.tzkt.io", alias="TZKT_API")
    tezos_marketplace_contract: Optional[str] = Field(None, alias="TEZOS_MARKETPLACE_CONTRACT")
    tezos_secret_key: Optional[SecretStr] = Field(None, alias="TEZOS_SECRET_KEY")
    tezos_wallet_address: Optional[str] = Field(None, alias="TEZOS_WALLET_ADDRESS")

    # Tezos market data
    objkt_api: str = Field("https://api.objkt.com", alias="OBJKT_API")
    teia_api: str = Field("https://api.teia.art", alias="TEIA_API")

    # Stargaze
    stargaze_graphql_url: str = Field(
        "https://graphql.mainnet.stargaze-apis.com/graphql", alias="STARGAZE_GRAPHQL_URL"
    )
    stargaze_lcd_url: str = Field("https://rest.stargaze-apis.com", alias="STARGAZE_LCD_URL")
    stargaze_marketplace_contract: Optional[str] = Field(None, alias="STARGAZE_MARKETPLACE_CONTRACT")
    stargaze_wallet_address: Optional[str] = Field(None, alias="STARGAZE_WALLET_ADDRESS")

    # Media
    ipfs_gateway: str = Field("https://ipfs.io", alias="IPFS_GATEWAY")

    # Market data
    market_data_cache_ttl: int = Field(300, alias="MARKET_DATA_CACHE_TTL")

    # Transactions
    confirmations: int = Field(1, alias="CONFIRMATIONS")
    confirmation_timeout: Optional[float] = Field(None, alias="CONFIRMATION_TIMEOUT")
    listing_expiry_days: int = Field(30, alias="LISTING_EXPIRY_DAYS")

    # Networking
    indexer_page_size: int = Field(100, alias="INDEXER_PAGE_SIZE")
    http_timeout: float = Field(10.0, alias="HTTP_TIMEOUT")

    # System
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


# Singleton instance
settings = Settings()  # type: ignore
