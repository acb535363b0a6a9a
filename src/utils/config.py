# runtime settings, read once from the environment (and a .env file if present)
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_DB_PATH = "data/storefront.sqlite"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    db_path: str = DEFAULT_DB_PATH
    request_timeout: float = DEFAULT_TIMEOUT
    log_file: Optional[str] = None
    debug: bool = False


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_settings(dotenv: bool = True) -> Settings:
    """
    Build Settings from STOREFRONT_* environment variables.
    Unset or malformed values fall back to the defaults above.
    """
    if dotenv:
        load_dotenv()

    api_url = (os.getenv("STOREFRONT_API_URL") or "").strip() or DEFAULT_API_URL

    return Settings(
        api_url=api_url.rstrip("/"),
        google_client_id=os.getenv("STOREFRONT_GOOGLE_CLIENT_ID") or None,
        google_client_secret=os.getenv("STOREFRONT_GOOGLE_CLIENT_SECRET") or None,
        db_path=os.getenv("STOREFRONT_DB_PATH") or DEFAULT_DB_PATH,
        request_timeout=_env_float("STOREFRONT_REQUEST_TIMEOUT", DEFAULT_TIMEOUT),
        log_file=os.getenv("STOREFRONT_LOG_FILE") or None,
        debug=bool(os.getenv("DEBUG")),
    )


@dataclass(frozen=True)
class LaunchOptions:
    """Deep-link style options given on the command line."""

    order_id: Optional[str] = None
    tracking_id: Optional[str] = None
    category: Optional[str] = None
    focus_search: bool = False
    login_status: Optional[str] = None
