# tokko_leads/config.py
import os
from dataclasses import dataclass
from dotenv import load_dotenv
from typing import Optional

# Load environment variables from .env file at the project root
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, ""))
    except ValueError:
        return default


@dataclass
class ScraperConfig:
    """Central configuration for the scraper, loaded from environment variables."""
    # Tokko Broker credentials
    tokko_email: str = os.getenv('TOKKO_EMAIL', '')
    tokko_password: str = os.getenv('TOKKO_PASSWORD', '')
    base_url: str = os.getenv('TOKKO_BASE_URL', 'https://www.tokkobroker.com')

    # Derived in __post_init__
    login_url: str = ''
    leads_url: str = ''

    # Selector resolution (OpenAI)
    openai_api_key: str = os.getenv('OPENAI_API_KEY', '')
    openai_model: str = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')

    # Browser settings
    headless: bool = _env_bool('HEADLESS', False)
    slow_mo: int = _env_int('SLOW_MO', 0)
    navigation_timeout_ms: int = 60000
    network_idle_timeout: float = _env_float('NETWORK_IDLE_TIMEOUT', 3.0)

    # Collection limits
    max_scrolls: int = _env_int('MAX_SCROLLS', 200)
    max_leads: int = _env_int('MAX_LEADS', 10000)

    # Server
    port: int = _env_int('PORT', 3000)
    env: str = os.getenv('APP_ENV', 'development')
    log_level: str = os.getenv('LOG_LEVEL', 'INFO')
    log_file: Optional[str] = os.getenv('LOG_FILE', 'tokko_leads.log')

    def __post_init__(self):
        self.base_url = self.base_url.rstrip('/')
        if not self.login_url:
            self.login_url = f"{self.base_url}/go/"
        if not self.leads_url:
            self.leads_url = f"{self.base_url}/leads/"

    @property
    def has_credentials(self) -> bool:
        return bool(self.tokko_email and self.tokko_password)


@dataclass
class CollectionOptions:
    """Per-run knobs for the collection loop."""
    status: str = 'all'
    max_scrolls: int = 200
    max_leads: int = 10000
    stall_limit: int = 5
    extract_details: bool = False
    # Fraction of the max scroll offset treated as "end of content"
    end_threshold: float = 0.99
    # Passes where the structural scrape yields nothing may fall back to the semantic extractor
    semantic_fallback: bool = True

    @classmethod
    def from_config(cls, config: ScraperConfig, **overrides) -> 'CollectionOptions':
        values = {'max_scrolls': config.max_scrolls, 'max_leads': config.max_leads}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
