from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Solana RPC + WebSocket
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    solana_ws_url: str = ""  # derived from solana_rpc_url when empty
    rpc_timeout_sec: float = 15.0
    rpc_max_rps: float = 10.0

    # Wallet (base58 secret key, NEVER LOG THIS)
    wallet_private_key: str = ""

    # Order sizing
    max_sol_per_tx_lamports: int = 1_000_000_000  # 1 SOL per sub-order

    # Slippage policy (bps)
    slippage_base_bps: int = 300
    slippage_min_bps: int | None = 100
    slippage_max_bps: int | None = 3000
    slippage_impact_factor: float = 1.0

    # Priority fee (micro-lamports per compute unit)
    priority_fee_micro_lamports: int = 100_000
    priority_fee_random: bool = False
    priority_fee_random_range: int = 0

    # Compute budget
    curve_compute_unit_limit: int = 200_000
    amm_compute_unit_limit: int = 300_000

    # Confirmation polling
    confirm_max_attempts: int = 5
    confirm_delay_sec: float = 2.0

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def ws_url(self) -> str:
        if self.solana_ws_url:
            return self.solana_ws_url
        if self.solana_rpc_url.startswith("https://"):
            return "wss://" + self.solana_rpc_url[len("https://"):]
        if self.solana_rpc_url.startswith("http://"):
            return "ws://" + self.solana_rpc_url[len("http://"):]
        return self.solana_rpc_url


settings = Settings()
