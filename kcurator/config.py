"""Configuration: env vars, thresholds, logging, HTTP client."""

import os
import time
import logging
import requests
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


def env(name: str, default: str = "") -> str:
    v = os.getenv(name, default)
    return v.strip() if isinstance(v, str) else v


# ── Logging ──
log = logging.getLogger("kcurator")
if not log.handlers:
    _h = logging.StreamHandler()
    _h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s", datefmt="%H:%M:%S"))
    log.addHandler(_h)
    log.setLevel(logging.DEBUG if os.getenv("KCURATOR_DEBUG") else logging.INFO)


# ── Paths ──
DB_PATH = env("KCURATOR_DB_PATH", str(Path.cwd() / "data" / "kcurator.db"))
KCURATOR_VERSION = env("KCURATOR_VERSION", "0.3.0")

# ── Analyzer / LLM endpoints ──
ANALYZER = env("KCURATOR_ANALYZER", "keyword")
OAI_BASE = env("KCURATOR_OAI_BASE")
OAI_KEY = env("KCURATOR_OAI_KEY")
ANALYZER_MODELS = [
    m.strip() for m in env(
        "KCURATOR_ANALYZER_MODELS", "gemini-3-flash-preview,gpt-4o-mini",
    ).split(",") if m.strip()
]

# ── Commands ──
COMMAND_PREFIX = env("KCURATOR_COMMAND_PREFIX", "/") or "/"

# ── Search ──
MAX_SEARCH_RESULTS = int(env("KCURATOR_MAX_SEARCH_RESULTS", "20"))
SEMANTIC_SEARCH = env("KCURATOR_SEMANTIC_SEARCH", "1") == "1"
CACHE_SEARCH = env("KCURATOR_CACHE_SEARCH", "1") == "1"
CACHE_TTL_MS = int(env("KCURATOR_CACHE_TTL_MS", "300000"))

# ── Extraction ──
EXTRACTION_THRESHOLD = float(env("KCURATOR_EXTRACTION_THRESHOLD", "6"))
EXTRACTION_DEPTH = int(env("KCURATOR_EXTRACTION_DEPTH", "5"))

# ── Quality scoring (gates irreversible deletes, keep tunable) ──
MIN_CONTENT_LENGTH = int(env("KCURATOR_MIN_CONTENT_LENGTH", "20"))
LOW_RELEVANCE = float(env("KCURATOR_LOW_RELEVANCE", "4"))
SHORT_PENALTY = float(env("KCURATOR_SHORT_PENALTY", "2"))
LOW_RELEVANCE_PENALTY = float(env("KCURATOR_LOW_RELEVANCE_PENALTY", "1"))
DELETE_BELOW = float(env("KCURATOR_DELETE_BELOW", "3"))
REVIEW_BELOW = float(env("KCURATOR_REVIEW_BELOW", "6"))

# ── Review / maintenance ──
REVIEW_BATCH_SIZE = int(env("KCURATOR_REVIEW_BATCH_SIZE", "10"))
STALE_DAYS = int(env("KCURATOR_STALE_DAYS", "90"))
DUPLICATE_THRESHOLD = float(env("KCURATOR_DUPLICATE_THRESHOLD", "0.55"))

# ── LLM analyzer transport ──
CHAT_TIMEOUT_SEC = max(1.0, float(env("KCURATOR_CHAT_TIMEOUT_SEC", "30")))
CHAT_RETRY_MAX = max(1, int(env("KCURATOR_CHAT_RETRY_MAX", "3")))
CHAT_RETRY_BACKOFF_SEC = max(0.0, float(env("KCURATOR_CHAT_RETRY_BACKOFF_SEC", "0.6")))


class ScoringPolicy(BaseModel):
    """Thresholds and penalties used by the quality scorer.

    Attributes:
        min_length: Content shorter than this gets the ``too_short`` penalty.
        low_relevance: Relevance below this gets the ``low_relevance`` penalty.
        short_penalty: Points subtracted for short content.
        low_relevance_penalty: Points subtracted for low relevance.
        delete_below: Quality below this is recommended for deletion.
        review_below: Quality below this (and not deleted) needs review.
        neutral_score: Relevance assumed when an artifact has none.
    """

    min_length: int = Field(default=MIN_CONTENT_LENGTH, ge=0)
    low_relevance: float = Field(default=LOW_RELEVANCE, ge=0)
    short_penalty: float = Field(default=SHORT_PENALTY, ge=0)
    low_relevance_penalty: float = Field(default=LOW_RELEVANCE_PENALTY, ge=0)
    delete_below: float = Field(default=DELETE_BELOW, ge=0)
    review_below: float = Field(default=REVIEW_BELOW, ge=0)
    neutral_score: float = Field(default=5.0, ge=0, le=10)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_bands(self):
        if self.delete_below > self.review_below:
            raise ValueError(
                f"delete_below ({self.delete_below}) must not exceed review_below ({self.review_below})"
            )
        return self


class CuratorSettings(BaseModel):
    """Per-dispatcher settings. Defaults come from the environment."""

    command_prefix: str = Field(default=COMMAND_PREFIX, min_length=1)
    max_search_results: int = Field(default=MAX_SEARCH_RESULTS, ge=1)
    review_batch_size: int = Field(default=REVIEW_BATCH_SIZE, ge=1)
    enable_semantic_search: bool = SEMANTIC_SEARCH
    cache_search_results: bool = CACHE_SEARCH
    cache_ttl_ms: int = Field(default=CACHE_TTL_MS, ge=0)
    extraction_threshold: float = Field(default=EXTRACTION_THRESHOLD, ge=0, le=10)
    extraction_depth: int = Field(default=EXTRACTION_DEPTH, ge=1)
    stale_days: int = Field(default=STALE_DAYS, ge=1)
    duplicate_threshold: float = Field(default=DUPLICATE_THRESHOLD, gt=0, le=1)
    scoring: ScoringPolicy = Field(default_factory=ScoringPolicy)


def validate_config() -> None:
    """Raise if the selected analyzer is missing required settings."""
    missing = []
    if ANALYZER == "llm":
        if not OAI_BASE:
            missing.append("KCURATOR_OAI_BASE")
        if not OAI_KEY:
            missing.append("KCURATOR_OAI_KEY")
    if missing:
        raise RuntimeError(
            f"Missing required env vars: {', '.join(missing)}\n"
            f"Hint: set KCURATOR_ANALYZER=keyword to run without an LLM endpoint."
        )


def _transient(err: Exception) -> bool:
    """True for 429, 5xx or a transport failure."""
    if isinstance(err, requests.HTTPError):
        status = getattr(getattr(err, "response", None), "status_code", None)
        return status is None or status == 429 or status >= 500
    return isinstance(err, requests.RequestException)


def _reply_text(resp) -> str:
    try:
        payload = resp.json()
    except ValueError as e:
        raise RuntimeError(f"analyzer endpoint returned non-JSON ({resp.headers.get('content-type', '?')})") from e
    try:
        return payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        detail = payload.get("error") if isinstance(payload, dict) else payload
        raise RuntimeError(f"analyzer endpoint returned no choices: {detail}") from e


def chat(base, key, model, messages, timeout=None):
    """Send one grading prompt to an OpenAI-compatible endpoint, return the reply text.

    Transient failures are retried up to ``KCURATOR_CHAT_RETRY_MAX`` times with
    linear backoff; anything else raises ``RuntimeError`` at once.
    """
    timeout = timeout or CHAT_TIMEOUT_SEC
    attempts = max(1, CHAT_RETRY_MAX)
    url = f"{base.rstrip('/')}/chat/completions"

    for attempt in range(1, attempts + 1):
        try:
            resp = requests.post(
                url,
                headers={"Authorization": f"Bearer {key}"},
                json={"model": model, "messages": messages, "stream": False, "temperature": 0},
                timeout=timeout,
            )
            resp.raise_for_status()
            return _reply_text(resp)
        except requests.RequestException as e:
            if attempt == attempts or not _transient(e):
                raise RuntimeError(f"analyzer model {model} unavailable after {attempt} attempt(s): {e}") from e
            log.warning("analyzer %s attempt %d/%d failed: %s", model, attempt, attempts, e)
            time.sleep(CHAT_RETRY_BACKOFF_SEC * attempt)
