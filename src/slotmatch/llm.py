"""Ranking client via LiteLLM: prompt in, JSON array out."""

from __future__ import annotations

import json
import logging
from typing import Any

from slotmatch.config import Config
from slotmatch.errors import MalformedModelOutput, NoStructuredOutput, UpstreamUnavailable

log = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 500


def _model_name(cfg: Config) -> str:
    """Build the LiteLLM model string (e.g. 'openai/gpt-4')."""
    model = cfg.llm_model
    # If user already included a provider prefix, use as-is
    if "/" in model:
        return model
    if cfg.llm_provider in ("openai", "anthropic", "gemini"):
        return f"{cfg.llm_provider}/{model}"
    return model


def _api_key(cfg: Config) -> str | None:
    return {
        "openai": cfg.openai_api_key,
        "anthropic": cfg.anthropic_api_key,
        "gemini": cfg.gemini_api_key,
    }.get(cfg.llm_provider) or None


def chat(cfg: Config, prompt: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> str:
    """Send a single user message and return the raw completion text.

    Any failure of the upstream call (timeout, auth, rate limit, network)
    is raised as UpstreamUnavailable.  No retries.
    """
    from litellm import completion

    kwargs: dict[str, Any] = {
        "model": _model_name(cfg),
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": max_tokens,
        "timeout": cfg.llm_timeout,
        "num_retries": 0,
    }
    api_key = _api_key(cfg)
    if api_key:
        kwargs["api_key"] = api_key

    try:
        resp = completion(**kwargs)
    except Exception as e:
        log.error("LLM call to %s failed: %s", kwargs["model"], e)
        raise UpstreamUnavailable(f"LLM call failed: {e}") from e
    return resp.choices[0].message.content or ""


def extract_json_array(text: str) -> list:
    """Recover the JSON array embedded in free-form model output.

    Takes everything from the first ``[`` to the last ``]`` inclusive, so
    prose before and after the array is tolerated.  The decoded value is
    returned as-is, without checking its keys.
    """
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or end < start:
        raise NoStructuredOutput("No JSON array found in model output")

    candidate = text[start:end + 1]
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise MalformedModelOutput(f"Failed to parse JSON: {e}", decode_error=str(e)) from e


def rank(cfg: Config, prompt: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> list:
    """Run a ranking prompt and return the model's ordering."""
    raw = chat(cfg, prompt, max_tokens=max_tokens)
    try:
        return extract_json_array(raw)
    except (NoStructuredOutput, MalformedModelOutput) as e:
        log.warning("Unusable ranking output (%s): %.200r", e.kind, raw)
        raise
