# corpintel/services/analysis_cache.py
"""
Company analysis cache using Redis.

Stores the assembled analysis document per company so repeat searches within
the freshness window are served without calling the LLM or the search API.

Features:
- Keyed by lowercased, trimmed company name
- Freshness window (cfg.CACHE_FRESH_HOURS, default 24h); stale entries are kept
  for CACHE_RETENTION_DAYS so the UI can still show "analysed N hours ago"
- Compression for large documents
- Cache hit/miss statistics
- Graceful fallback when Redis unavailable (behaves as a miss)
"""
from __future__ import annotations
import json
import gzip
import base64
import logging
from typing import Dict, Any, Optional
from datetime import datetime, timedelta, timezone

from redis import Redis, RedisError

from corpintel.config import cfg

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

CACHE_PREFIX = "analysis:"
CACHE_RETENTION_DAYS = 30
COMPRESS_THRESHOLD = 4096

_redis_client: Optional[Redis] = None

_cache_stats = {
    "hits": 0,
    "misses": 0,
    "errors": 0
}


def get_redis() -> Optional[Redis]:
    global _redis_client
    if _redis_client is not None:
        return _redis_client
    try:
        _redis_client = Redis.from_url(cfg.REDIS_URL, decode_responses=True)
        _redis_client.ping()
        logger.debug("Connected to Redis for analysis cache")
        return _redis_client
    except Exception as e:
        logger.warning("Redis not available for analysis cache: %s", e)
        _redis_client = None
        return None


def normalize_company_name(company_name: str) -> str:
    return " ".join((company_name or "").split()).lower()


def _get_cache_key(company_name: str) -> str:
    return f"{CACHE_PREFIX}{normalize_company_name(company_name)}"


def _compress_content(content: str) -> str:
    if len(content) < COMPRESS_THRESHOLD:
        return content
    compressed = gzip.compress(content.encode("utf-8"))
    return "gzip:" + base64.b64encode(compressed).decode("utf-8")


def _decompress_content(content: str) -> str:
    if not content.startswith("gzip:"):
        return content
    return gzip.decompress(base64.b64decode(content[5:])).decode("utf-8")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _age_minutes(analyzed_at: str, now: Optional[datetime] = None) -> Optional[int]:
    try:
        ts = datetime.fromisoformat(analyzed_at)
    except (TypeError, ValueError):
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(((now or _utcnow()) - ts).total_seconds() // 60)


def is_fresh(entry: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> bool:
    if not entry:
        return False
    age = _age_minutes(entry.get("analyzed_at"), now)
    return age is not None and age <= cfg.CACHE_FRESH_HOURS * 60


def get_cached_analysis(company_name: str) -> Optional[Dict[str, Any]]:
    """
    Returns:
        Dict with keys: data, provider, analyzed_at, analyzed_by
        None if not cached or error
    """
    if not normalize_company_name(company_name):
        return None
    redis_client = get_redis()
    if not redis_client:
        _cache_stats["errors"] += 1
        return None

    try:
        raw = redis_client.get(_get_cache_key(company_name))
        if not raw:
            _cache_stats["misses"] += 1
            return None
        entry = json.loads(_decompress_content(raw))
        _cache_stats["hits"] += 1
        logger.debug("Analysis cache hit for %s", company_name)
        return entry
    except (RedisError, ValueError, OSError) as e:
        logger.exception("Error reading cached analysis for %s: %s", company_name, e)
        _cache_stats["errors"] += 1
        return None


def set_cached_analysis(company_name: str,
                        data: Dict[str, Any],
                        provider: Optional[str] = None,
                        analyzed_by: Optional[str] = None) -> bool:
    """Store (or replace) the analysis document for a company."""
    redis_client = get_redis()
    if not redis_client:
        _cache_stats["errors"] += 1
        return False

    entry = {
        "company_name": company_name.strip(),
        "data": data,
        "provider": provider,
        "analyzed_by": analyzed_by,
        "analyzed_at": _utcnow().isoformat(),
    }
    try:
        payload = _compress_content(json.dumps(entry))
        ttl_seconds = int(timedelta(days=CACHE_RETENTION_DAYS).total_seconds())
        redis_client.setex(_get_cache_key(company_name), ttl_seconds, payload)
        logger.debug("Cached analysis for %s (%d bytes)", company_name, len(payload))
        return True
    except (RedisError, TypeError, ValueError) as e:
        logger.exception("Error caching analysis for %s: %s", company_name, e)
        _cache_stats["errors"] += 1
        return False


def cache_info(company_name: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    {"exists": False} or
    {"exists": True, "cache_info": {analyzed_at, analyzed_by, provider, age_minutes, is_stale}}
    """
    entry = get_cached_analysis(company_name)
    if not entry:
        return {"exists": False}
    age = _age_minutes(entry.get("analyzed_at"), now)
    return {
        "exists": True,
        "cache_info": {
            "analyzed_at": entry.get("analyzed_at"),
            "analyzed_by": entry.get("analyzed_by"),
            "provider": entry.get("provider"),
            "age_minutes": age,
            "is_stale": age is None or age > cfg.CACHE_FRESH_HOURS * 60,
        },
    }


def get_cache_stats() -> Dict[str, Any]:
    total_requests = _cache_stats["hits"] + _cache_stats["misses"]
    hit_rate = (_cache_stats["hits"] / total_requests * 100) if total_requests > 0 else 0
    return {
        **_cache_stats,
        "total_requests": total_requests,
        "hit_rate_percent": round(hit_rate, 2),
        "fresh_hours": cfg.CACHE_FRESH_HOURS,
    }


def clear_cached_analysis(company_name: str) -> bool:
    redis_client = get_redis()
    if not redis_client:
        return False
    try:
        return bool(redis_client.delete(_get_cache_key(company_name)))
    except RedisError as e:
        logger.exception("Error clearing cached analysis for %s: %s", company_name, e)
        return False
