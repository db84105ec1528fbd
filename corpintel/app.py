from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional
import logging

from corpintel.config import cfg
from corpintel.pipeline_graph import run_analysis_sync, report_document
from corpintel.services.analysis_cache import cache_info, get_cached_analysis, is_fresh, set_cached_analysis
from corpintel.services.rate_limiter import client_ip, rate_limit
from corpintel.services.stock_client import StockDataError, TickerNotFound, fetch_stock_data

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

api = FastAPI(title="corpintel")


class AnalyzeRequest(BaseModel):
    company_name: str
    competitor_name: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    force_refresh: bool = False
    use_web_search: bool = True
    requested_by: Optional[str] = None


class CheckRequest(BaseModel):
    company_name: str


def _error(status: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message}, headers=headers)


def _provider_error_response(e: Exception) -> JSONResponse:
    msg = str(e)
    if any(m in msg for m in ("401", "Unauthorized", "invalid_api_key")):
        return _error(401, "Invalid API key. Please check your credentials.")
    if "429" in msg or "rate limit" in msg.lower():
        return _error(429, "Rate limit exceeded. Please try again later.")
    return _error(500, f"Analysis failed: {msg[:200]}")


@api.post("/analyze")
def analyze(req: AnalyzeRequest, request: Request):
    """
    Company report. Served from cache when a fresh entry exists (unless
    force_refresh); otherwise the full pipeline runs and the result is cached.
    """
    ip = client_ip(request.headers, request.client.host if request.client else None)
    limit = rate_limit(f"analyze:{ip}", cfg.ANALYZE_RATE_LIMIT, cfg.ANALYZE_RATE_WINDOW)
    if not limit.allowed:
        return _error(429, "Too many requests. Please wait before analyzing another company.",
                      headers={"Retry-After": str(cfg.ANALYZE_RATE_WINDOW), "X-RateLimit-Remaining": "0"})

    company_name = (req.company_name or "").strip()
    if not company_name:
        return _error(400, "Company name is required")

    # competitor-focused reports are never cached; the cache holds the default report
    cacheable = not req.competitor_name
    if cacheable and not req.force_refresh:
        entry = get_cached_analysis(company_name)
        if is_fresh(entry):
            logger.info("Serving cached analysis for %s", company_name)
            return {**entry["data"], "cached": True, "analyzed_at": entry.get("analyzed_at")}

    try:
        state = run_analysis_sync(
            company_name,
            competitor_name=req.competitor_name,
            provider=req.provider,
            model=req.model,
            use_web_search=req.use_web_search,
        )
    except ValueError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.exception("Analysis failed for %s: %s", company_name, e)
        return _provider_error_response(e)

    doc = report_document(state)
    doc["duration"] = state.get("duration", 0)
    if cacheable:
        set_cached_analysis(company_name, doc, provider=doc.get("provider"), analyzed_by=req.requested_by)
    return {**doc, "cached": False}


@api.post("/analyze/check")
def analyze_check(req: CheckRequest):
    """Cache status for a company; any failure reads as "not cached"."""
    if not (req.company_name or "").strip():
        return _error(400, "Company name is required")
    try:
        return cache_info(req.company_name)
    except Exception as e:
        logger.exception("Cache check failed for %s: %s", req.company_name, e)
        return {"exists": False}


@api.get("/stock/{ticker}")
def stock(ticker: str, range: str = "1y"):
    try:
        return fetch_stock_data(ticker, range)
    except ValueError as e:
        return _error(400, str(e))
    except TickerNotFound:
        return _error(404, "Ticker not found")
    except StockDataError:
        return _error(500, "Failed to fetch stock data")
