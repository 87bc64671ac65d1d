# storefront/config.py
import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    backend_url: str = "http://localhost:1337"
    request_timeout: float = 10.0
    link_transaction_to_order: bool = False
    idempotency_keys: bool = True
    history_path: str = "/transaction"
    session_max_idle: float = 7200.0
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            backend_url=os.environ.get("STOREFRONT_BACKEND_URL", cls.backend_url).rstrip("/"),
            request_timeout=float(os.environ.get("STOREFRONT_REQUEST_TIMEOUT", cls.request_timeout)),
            link_transaction_to_order=_env_bool("STOREFRONT_LINK_TRANSACTION_TO_ORDER", cls.link_transaction_to_order),
            idempotency_keys=_env_bool("STOREFRONT_IDEMPOTENCY_KEYS", cls.idempotency_keys),
            history_path=os.environ.get("STOREFRONT_HISTORY_PATH", cls.history_path),
            session_max_idle=float(os.environ.get("STOREFRONT_SESSION_MAX_IDLE", cls.session_max_idle)),
            log_level=os.environ.get("STOREFRONT_LOG_LEVEL", cls.log_level).upper(),
            host=os.environ.get("STOREFRONT_HOST", cls.host),
            port=int(os.environ.get("STOREFRONT_PORT", cls.port)),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
