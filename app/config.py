from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # required config for MVP
    database_url: str = "sqlite:///./pulse_automations.db"
    pulsechain_rpc_url: str = "https://rpc.pulsechain.com"
    rpc_urls: str = ""  # JSON map chain_id -> url, overrides pulsechain_rpc_url
    chain_id: int = 369

    # PulseX v2 router + wrapped PLS on PulseChain mainnet
    pulsex_router: str = "0x165C3410fC91EF562C50559f7d2289fEbed552d9"
    wpls: str = "0xA1077a294dDE1B09bB078844df40758a5D0f9a27"

    executor_private_key: str = ""
    tx_timeout_s: int = 180
    swap_deadline_s: int = 1200

    default_slippage: float = 0.01
    stale_execution_minutes: int = 10
    sse_keepalive_s: float = 15.0

    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout_s: int = 30
    db_pool_recycle_s: int = 1800

    log_level: str = "INFO"
    log_json: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def DATABASE_URL(self) -> str:
        return self.database_url

    @property
    def RPC_URLS(self) -> str:
        return self.rpc_urls

    @property
    def PULSECHAIN_RPC_URL(self) -> str:
        return self.pulsechain_rpc_url


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader (process-level).
    """
    return Settings()
