"""
Configuration module for the corporate intelligence backend.
Reads configuration from environment variables and .env file.
"""
import os
import json
import logging
from typing import Dict, List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Compliance / archiving vendors whose sites are searched for customer mentions.
DEFAULT_COMPETITORS: Dict[str, List[str]] = {
    "Theta Lake": ["thetalake.com"],
    "Smarsh": ["smarsh.com"],
    "Global Relay": ["globalrelay.com"],
    "NICE": ["nice.com", "niceactimize.com"],
    "Verint": ["verint.com"],
    "Arctera": ["arctera.io"],
    "Veritas": ["veritas.com"],
    "Proofpoint": ["proofpoint.com"],
    "Shield": ["shieldfc.com"],
    "Behavox": ["behavox.com"],
    "Digital Reasoning": ["digitalreasoning.com"],
    "Mimecast": ["mimecast.com"],
    "ZL Technologies": ["zlti.com"],
}


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %s", name, raw, default)
        return default


def _load_competitors(raw: Optional[str]) -> Dict[str, List[str]]:
    """Parse COMPETITORS_JSON ({"Name": ["domain.com", ...]}); fall back to defaults."""
    if not raw:
        return {name: list(domains) for name, domains in DEFAULT_COMPETITORS.items()}
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("COMPETITORS_JSON is not valid JSON; using built-in competitor list")
        return {name: list(domains) for name, domains in DEFAULT_COMPETITORS.items()}
    out: Dict[str, List[str]] = {}
    for name, domains in (data.items() if isinstance(data, dict) else []):
        if isinstance(domains, str):
            domains = [domains]
        out[str(name)] = [str(d).lower() for d in domains or []]
    return out


class Config:
    """Configuration class that reads from environment variables."""

    def __init__(self):
        self.OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
        self.GEMINI_API_KEY: Optional[str] = os.getenv("GEMINI_API_KEY")
        self.TAVILY_API_KEY: Optional[str] = os.getenv("TAVILY_API_KEY")
        self.REDIS_URL: Optional[str] = os.getenv("REDIS_URL", "redis://localhost:6379")
        self.DEFAULT_PROVIDER: Optional[str] = os.getenv("DEFAULT_PROVIDER")

        # Credibility filter
        self.MIN_CONFIDENCE: int = _env_int("MIN_CONFIDENCE", 60)
        self.MAX_RESULTS: int = _env_int("MAX_RESULTS", 10)
        self.DEBUG_SCORING: bool = _env_bool("DEBUG_SCORING")

        # Analysis cache / rate limiting
        self.CACHE_FRESH_HOURS: int = _env_int("CACHE_FRESH_HOURS", 24)
        self.ANALYZE_RATE_LIMIT: int = _env_int("ANALYZE_RATE_LIMIT", 10)
        self.ANALYZE_RATE_WINDOW: int = _env_int("ANALYZE_RATE_WINDOW", 60)

        # Competitor mention search
        self.COMPETITORS: Dict[str, List[str]] = _load_competitors(os.getenv("COMPETITORS_JSON"))
        self.COMPETITOR_QUERIES_PER_VENDOR: int = _env_int("COMPETITOR_QUERIES_PER_VENDOR", 2)
        self.COMPETITOR_MENTIONS_ENABLED: bool = _env_bool("COMPETITOR_MENTIONS_ENABLED", True)


# Global config instance
cfg = Config()
