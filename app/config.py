from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # storage
    database_url: str = "sqlite:///./intentfi.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout_s: int = 30
    db_pool_recycle_s: int = 1800

    # llm tiers
    llm_enabled: bool = True
    llm_temperature: float = 0.0
    llm_timeout_s: int = 30

    primary_llm_provider: str = "anthropic"
    primary_llm_model: str = "claude-3-opus-20240229"
    anthropic_api_key: str | None = None
    anthropic_base_url: str = "https://api.anthropic.com"

    secondary_llm_provider: str = "openai"
    secondary_llm_model: str = "gpt-4"
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"

    # chain access
    rpc_urls: str = ""  # JSON: {"44787": "https://..."}
    private_key: str | None = None
    ens_rpc_url: str = "https://eth.llamarpc.com"

    # swaps
    swap_routers: str = ""  # JSON: {"44787": "0x..."} (Uniswap V2 compatible)
    default_slippage_bps: int = 50
    swap_deadline_seconds: int = 1200

    # runtime
    app_env: str = "production"
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
    def LLM_ENABLED(self) -> bool:
        return self.llm_enabled

    @property
    def IS_DEVELOPMENT(self) -> bool:
        return self.app_env.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader (process-level).
    """
    return Settings()
