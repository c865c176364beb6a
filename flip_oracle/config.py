"""
Configuration management for Flip Oracle.
Supports config.json with environment variable overrides.
All paths are resolved relative to the project root.
"""

import json
import os
from pathlib import Path
from typing import ClassVar, Optional, List, Dict, Tuple, Set
from pydantic import BaseModel, Field

from dotenv import load_dotenv

load_dotenv()

# Project root directory (parent of 'flip_oracle' folder)
PROJECT_ROOT = Path(__file__).parent.parent

# Chain id of the network the ledger contract was first deployed to
DEFAULT_CHAIN_ID = 763373


def get_env(key: str, default: str = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes", "on")


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def get_env_chain_id(key: str) -> Optional[int]:
    """Chain id from the environment; None when it is not a positive integer."""
    try:
        value = int(os.environ.get(key, ""))
    except ValueError:
        return None
    return value if value > 0 else None


def get_env_float(key: str, default: float = 0.0) -> float:
    """Get float environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


# ==================== Configuration Models ====================

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 3001
    debug: bool = False
    name: str = "Flip Oracle"
    cors_origins: List[str] = ["*"]


class OracleConfig(BaseModel):
    """
    Everything the resolver needs to talk to the ledger contract.

    rpc_url, signing_key, contract_address, server_secret and chain_id are
    required; the resolver refuses to start without them.
    """
    rpc_url: Optional[str] = None
    signing_key: Optional[str] = None
    contract_address: Optional[str] = None
    server_secret: Optional[str] = None
    chain_id: Optional[int] = DEFAULT_CHAIN_ID

    contract_version: str = "token"  # "token" = flip(guess, amount, seed), "native" = flip(guess, seed)
    stake_token: Optional[str] = None
    cron_secret: Optional[str] = None
    ledger_backend: str = "onchain"  # "onchain" | "memory"
    poa: bool = False

    REQUIRED: ClassVar[Tuple[str, ...]] = ("rpc_url", "signing_key", "contract_address", "server_secret", "chain_id")
    SECRET_FIELDS: ClassVar[Set[str]] = {"signing_key", "server_secret", "cron_secret"}

    def missing_fields(self) -> List[str]:
        """Names of required settings that are unset, blank or (chain_id) not positive."""
        missing = []
        for name in self.REQUIRED:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
            elif name == "chain_id" and value <= 0:
                missing.append(name)
        return missing

    def require(self) -> "OracleConfig":
        """Raise ConfigurationError if any required setting is missing."""
        from flip_oracle.core.exceptions import ConfigurationError

        missing = self.missing_fields()
        if missing:
            raise ConfigurationError(
                "Missing required environment variables",
                details={"required": missing},
            )
        return self

    def public_view(self) -> Dict:
        """Config without secrets, safe to log or return from admin endpoints."""
        data = self.model_dump(exclude=self.SECRET_FIELDS)
        data["cron_protected"] = bool(self.cron_secret)
        return data

    def __repr_args__(self):
        return [(k, v) for k, v in super().__repr_args__() if k not in self.SECRET_FIELDS]


class SweepConfig(BaseModel):
    """Batch resolution settings."""
    block_window: int = 1000        # how far back a sweep looks for BetPlaced
    batch_size: int = 5             # max bets resolved per sweep
    delay_seconds: float = 1.0      # pause between resolutions
    event_lookback: int = 100       # blocks before placedAtBlock to search for the event
    gas_limit: int = 300_000
    receipt_timeout: int = 120
    schedule_enabled: bool = False  # run sweeps in-process with APScheduler
    interval_seconds: int = 60
    stale_after_blocks: int = 0     # 0 disables stale-bet reporting


class ClientConfig(BaseModel):
    """Settings for the poll/settle client."""
    resolve_url: Optional[str] = None
    timeout_seconds: float = 60.0
    poll_interval: float = 2.0
    fallback_window: int = 10_000


class PointsConfig(BaseModel):
    per_flip: int = 100
    per_twitter_follow: int = 10
    per_referral: int = 5
    leaderboard_limit: int = 10


class RateLimitConfig(BaseModel):
    enabled: bool = True
    resolve_requests: str = "30/minute"  # single-bet resolution
    api_requests: str = "60/minute"      # everything else


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_to_file: bool = False
    formatter: str = "color"


class PathsConfig(BaseModel):
    """All paths are relative to PROJECT_ROOT."""
    config_file: str = "config.json"
    database: str = "data/points.db"
    log_file: str = "data/oracle.log"

    def get_config_path(self) -> Path:
        return PROJECT_ROOT / self.config_file

    def get_db_path(self) -> Path:
        path = Path(self.database)
        return path if path.is_absolute() else PROJECT_ROOT / path

    def get_log_path(self) -> Path:
        path = Path(self.log_file)
        return path if path.is_absolute() else PROJECT_ROOT / path


class AppConfig(BaseModel):
    """Main application configuration."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    sweep: SweepConfig = Field(default_factory=SweepConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    points: PointsConfig = Field(default_factory=PointsConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)


# ==================== Configuration Loading ====================

# env name -> (section, key, parser)
ENV_OVERRIDES = {
    "SERVER_HOST": ("server", "host", get_env),
    "SERVER_PORT": ("server", "port", get_env_int),
    "PORT": ("server", "port", get_env_int),
    "DEBUG": ("server", "debug", get_env_bool),
    "RPC_URL": ("oracle", "rpc_url", get_env),
    "PRIVATE_KEY": ("oracle", "signing_key", get_env),
    "COINFLIP_ADDRESS": ("oracle", "contract_address", get_env),
    "SERVER_SEED": ("oracle", "server_secret", get_env),
    "CHAIN_ID": ("oracle", "chain_id", get_env_chain_id),
    "CONTRACT_VERSION": ("oracle", "contract_version", get_env),
    "STAKE_TOKEN": ("oracle", "stake_token", get_env),
    "CRON_SECRET": ("oracle", "cron_secret", get_env),
    "LEDGER_BACKEND": ("oracle", "ledger_backend", get_env),
    "RPC_POA": ("oracle", "poa", get_env_bool),
    "SWEEP_BLOCK_WINDOW": ("sweep", "block_window", get_env_int),
    "SWEEP_BATCH_SIZE": ("sweep", "batch_size", get_env_int),
    "SWEEP_DELAY_SECONDS": ("sweep", "delay_seconds", get_env_float),
    "SWEEP_SCHEDULE_ENABLED": ("sweep", "schedule_enabled", get_env_bool),
    "SWEEP_INTERVAL_SECONDS": ("sweep", "interval_seconds", get_env_int),
    "SWEEP_STALE_AFTER_BLOCKS": ("sweep", "stale_after_blocks", get_env_int),
    "RESOLVE_URL": ("client", "resolve_url", get_env),
    "DB_PATH": ("paths", "database", get_env),
    "LOG_LEVEL": ("logging", "level", get_env),
    "LOG_TO_FILE": ("logging", "log_to_file", get_env_bool),
    "LOG_FORMATTER": ("logging", "formatter", get_env),
    "RATE_LIMIT_ENABLED": ("rate_limit", "enabled", get_env_bool),
    "RATE_LIMIT_RESOLVE_REQUESTS": ("rate_limit", "resolve_requests", get_env),
    "RATE_LIMIT_API_REQUESTS": ("rate_limit", "api_requests", get_env),
}


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from config.json with environment variable overrides.
    Environment variables take precedence over config.json values.
    """
    config_path = config_path or PROJECT_ROOT / "config.json"

    data = {}
    if config_path.exists():
        with open(config_path, "r") as f:
            data = json.load(f)

    for env_key, (section, key, parser) in ENV_OVERRIDES.items():
        if get_env(env_key):
            data.setdefault(section, {})[key] = parser(env_key)

    # Older deployments only set the frontend's chain id
    if not get_env("CHAIN_ID") and get_env("VITE_CHAIN_ID"):
        data.setdefault("oracle", {})["chain_id"] = get_env_chain_id("VITE_CHAIN_ID")

    return AppConfig(**data)


# Global config instance
settings = load_config()
