"""
corpintel/services/llm_client.py

LLM client for the company analysis step (OpenAI or Google Gemini).

Design goals:
- Single call_llm() API used by corpintel.agents.analyze.
- Provider picked explicitly or from configured keys (DEFAULT_PROVIDER, then Gemini, then OpenAI).
- Return consistent structure:
    {
      "text": "<best text output>",
      "raw": <raw provider response object>,
      "structured": <parsed JSON if the text contains a JSON blob, else None>,
      "provider": "openai" | "gemini",
      "model": "<model id>"
    }
"""

from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional

from corpintel.config import cfg

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

SUPPORTED_PROVIDERS = ("openai", "gemini")
DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "gemini": "gemini-2.0-flash",
}

# Lazy imports to avoid hard dependency at module import time.
_openai_client = None
_genai_client = None


def _init_openai():
    global _openai_client
    if _openai_client is not None:
        return _openai_client
    try:
        from openai import OpenAI
        _openai_client = OpenAI(api_key=cfg.OPENAI_API_KEY) if cfg.OPENAI_API_KEY else OpenAI()
        logger.debug("OpenAI client initialized")
        return _openai_client
    except Exception as e:
        logger.debug("OpenAI client not initialized: %s", e)
        _openai_client = None
        return None


def _init_genai():
    global _genai_client
    if _genai_client is not None:
        return _genai_client
    try:
        import google.generativeai as genai
        genai.configure(api_key=cfg.GEMINI_API_KEY)
        _genai_client = genai
        logger.debug("google.generativeai client initialized")
        return _genai_client
    except Exception as e:
        logger.debug("Gemini client not initialized: %s", e)
        _genai_client = None
        return None


def _extract_json_from_text(text: str) -> Optional[Any]:
    """
    Try to extract a JSON object/array from the given text.
    Returns parsed JSON or None.
    """
    if not text or not isinstance(text, str):
        return None
    s = text.strip()
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start = s.find(open_ch)
        end = s.rfind(close_ch)
        if start == -1 or end <= start:
            continue
        fragment = s[start:end + 1]
        try:
            return json.loads(fragment)
        except ValueError:
            try:
                # Remove trailing commas
                return json.loads(fragment.replace(",}", "}").replace(",]", "]"))
            except ValueError:
                continue
    return None


def resolve_provider(provider: Optional[str] = None) -> str:
    """Pick a provider: explicit, then DEFAULT_PROVIDER, then whichever key is configured."""
    chosen = (provider or cfg.DEFAULT_PROVIDER or "").strip().lower()
    if not chosen:
        if cfg.GEMINI_API_KEY:
            chosen = "gemini"
        elif cfg.OPENAI_API_KEY:
            chosen = "openai"
        else:
            raise RuntimeError("No LLM provider configured (set GEMINI_API_KEY or OPENAI_API_KEY in env)")
    if chosen not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unsupported provider: {chosen}")
    return chosen


def call_llm(prompt: str,
             provider: Optional[str] = None,
             model: Optional[str] = None,
             system: Optional[str] = None,
             max_tokens: Optional[int] = 4096,
             temperature: float = 0.2,
             timeout: Optional[int] = 60) -> Dict[str, Any]:
    """
    Unified LLM call.

    Parameters
    ----------
    prompt: str
        User prompt text.
    provider: Optional[str]
        "openai" or "gemini". If None, see resolve_provider().
    model: Optional[str]
        Provider-specific model override. If None, DEFAULT_MODELS[provider].
    system: Optional[str]
        Optional system instruction.
    max_tokens, temperature, timeout:
        Passed through to the SDK.

    Raises RuntimeError if the SDK / key is missing; provider errors propagate.
    """
    chosen_provider = resolve_provider(provider)
    model = model or DEFAULT_MODELS[chosen_provider]
    result = {"text": "", "raw": None, "structured": None, "provider": chosen_provider, "model": model}

    if chosen_provider == "openai":
        client = _init_openai()
        if not client:
            raise RuntimeError("OpenAI SDK not available or OPENAI_API_KEY missing")
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        try:
            resp = client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except Exception as e:
            logger.exception("OpenAI call failed: %s", e)
            raise
        result["raw"] = resp
        content = resp.choices[0].message.content if resp.choices else ""
        result["text"] = content if isinstance(content, str) else str(content or "")
        result["structured"] = _extract_json_from_text(result["text"])
        return result

    genai = _init_genai()
    if not genai:
        raise RuntimeError("Gemini/GenAI SDK not available or GEMINI_API_KEY missing")
    try:
        model_instance = genai.GenerativeModel(model, system_instruction=system) if system else genai.GenerativeModel(model)
        resp = model_instance.generate_content(
            prompt,
            generation_config=genai.GenerationConfig(max_output_tokens=max_tokens, temperature=temperature),
            request_options={"timeout": timeout} if timeout else None,
        )
    except Exception as e:
        logger.exception("Gemini call failed: %s", e)
        raise
    result["raw"] = resp
    text = ""
    try:
        text = resp.text or ""
    except ValueError:
        # blocked / empty candidates: fall back to concatenating parts
        for candidate in getattr(resp, "candidates", None) or []:
            parts = getattr(getattr(candidate, "content", None), "parts", None) or []
            text = "".join(getattr(p, "text", "") for p in parts)
            if text:
                break
    result["text"] = text
    result["structured"] = _extract_json_from_text(text)
    return result
