"""Analyzer: score text for relevance and classify it.

Two implementations:
- KeywordAnalyzer: rule-based, 0 API calls, deterministic
- LLMAnalyzer: OAI-compatible chat endpoint, JSON output validated by pydantic

Both return :class:`Analysis`; failures raise :class:`AnalyzerError`.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .config import log, chat, OAI_BASE, OAI_KEY, ANALYZER_MODELS, CHAT_TIMEOUT_SEC
from .errors import AnalyzerError
from .store import clamp_score


class Analysis(BaseModel):
    """Result of analyzing one piece of text."""

    relevance_score: float = 0.0
    artifact_type: str = "conversation_extract"
    context: dict = Field(default_factory=dict)

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_score(v)

    @field_validator("artifact_type", mode="before")
    @classmethod
    def _type_or_default(cls, v):
        return str(v).strip().lower() if v else "conversation_extract"


class Analyzer(ABC):
    """Interface consumed by extraction and score recalculation."""

    @abstractmethod
    def analyze(self, text: str) -> Analysis:
        """Score and classify ``text``.

        Raises:
            AnalyzerError: if the text could not be analyzed.
        """
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


# ── Rule-based analyzer ──

_FACTORS = {
    "code_blocks": 3,
    "length_bonus": 1,
    "technical_terms": 2,
    "actionable_steps": 2,
    "specific_solution": 3,
    "error_resolution": 2,
    "multiple_options": 1,
    "best_practices": 2,
    "configuration": 2,
}

_TECH_TERMS = [
    "python", "javascript", "api", "function", "class", "method", "async", "await",
    "database", "table", "query", "sql", "index", "schema", "transaction", "migration",
    "git", "docker", "container", "deployment", "server", "terminal", "shell", "bash",
    "http", "rest", "json", "authentication", "token", "session", "request", "response",
    "model", "prompt", "embedding", "inference",
]

_TYPE_SIGNALS = [
    ("code", [r"```", r"\bdef \w+\(", r"\bclass \w+", r"\bfunction\b", r"\bimport \w+"]),
    ("configuration", [r"\bconfigur", r"\bsetup\b", r"\binstall\b", r"\benv(ironment)? var", r"\.ya?ml\b", r"\.toml\b"]),
    ("documentation", [r"\bdocs?\b", r"\breadme\b", r"\bexplain", r"\bin other words\b", r"\bthe reason\b"]),
    ("learning", [r"\blearned\b", r"\bturns out\b", r"\bbest practice", r"\bi recommend\b", r"\blesson\b"]),
]

MIN_ANALYZABLE_LENGTH = 50


class KeywordAnalyzer(Analyzer):
    """Pattern-weighted scorer; 0 API calls, <1ms per message."""

    def __init__(self, min_length: int = MIN_ANALYZABLE_LENGTH):
        self.min_length = min_length

    def analyze(self, text: str) -> Analysis:
        content = text or ""
        if len(content.strip()) < self.min_length:
            return Analysis(relevance_score=0, artifact_type="conversation_extract",
                            context={"reason": "content_too_short"})

        score = 0.0
        signals = []
        if re.search(r"```[\s\S]*?```", content) or re.search(r"`[^`]+`", content):
            score += _FACTORS["code_blocks"]
            signals.append("code_blocks")
        if len(content) > 150:
            score += _FACTORS["length_bonus"]
            signals.append("length")
        lower = content.lower()
        terms = [t for t in _TECH_TERMS if re.search(rf"\b{re.escape(t)}\b", lower)]
        if terms:
            score += min(len(terms), 3) * _FACTORS["technical_terms"]
            signals.append("technical_terms")
        if re.search(r"\d+\.\s", content) or re.search(r"step \d+", content, re.I):
            score += _FACTORS["actionable_steps"]
            signals.append("actionable_steps")
        if re.search(r"solution|fix|resolve|solve", content, re.I):
            score += _FACTORS["specific_solution"]
            signals.append("specific_solution")
        if re.search(r"error.*fix|debug|troubleshoot", content, re.I):
            score += _FACTORS["error_resolution"]
            signals.append("error_resolution")
        if re.search(r"option|alternative|either.*or|choose between", content, re.I):
            score += _FACTORS["multiple_options"]
            signals.append("multiple_options")
        if re.search(r"best practice|recommend|should use", content, re.I):
            score += _FACTORS["best_practices"]
            signals.append("best_practices")
        if re.search(r"configure|setup|install", content, re.I):
            score += _FACTORS["configuration"]
            signals.append("configuration")

        return Analysis(
            relevance_score=round(score, 1),
            artifact_type=self._classify(lower),
            context={"signals": signals, "technical_terms": terms[:8]},
        )

    @staticmethod
    def _classify(lower: str) -> str:
        best, best_hits = "conversation_extract", 0
        for artifact_type, patterns in _TYPE_SIGNALS:
            hits = sum(1 for p in patterns if re.search(p, lower))
            if hits > best_hits:
                best, best_hits = artifact_type, hits
        return best


# ── LLM analyzer ──

def _extract_json(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` object in ``text`` (bracket counting)."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        ch = text[i]

        if escape:
            escape = False
            continue

        if ch == "\\":
            if in_string:
                escape = True
            continue

        if ch == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return None


_ANALYZE_PROMPT = (
    "You grade snippets of developer conversation for a knowledge base.\n"
    "Score how reusable the snippet is as stored knowledge (0-10) and classify it as one of: "
    "code, documentation, configuration, learning, conversation_extract.\n\n"
    "Reply with strict JSON only:\n"
    '{"relevance_score": 0-10, "artifact_type": "...", "context": {"summary": "...", "tags": ["..."]}}'
)


def _parse_analysis(raw_text: Optional[str]) -> Analysis:
    """Parse LLM output into a validated Analysis.

    Raises:
        AnalyzerError: when no usable JSON object is present.
    """
    if raw_text is None:
        raise AnalyzerError("no_response")

    json_str = _extract_json(raw_text)
    if not json_str:
        raise AnalyzerError("bad_json")

    try:
        return Analysis.model_validate_json(json_str)
    except Exception:
        # Fallback: plain json.loads, drop a malformed context
        try:
            data = json.loads(json_str)
            if not isinstance(data.get("context"), dict):
                data["context"] = {}
            return Analysis.model_validate(data)
        except Exception as e:
            raise AnalyzerError(f"json_parse_fail: {e}") from e


class LLMAnalyzer(Analyzer):
    """Asks a chat model to score the text, trying each configured model in turn."""

    def __init__(self, base: str = OAI_BASE, key: str = OAI_KEY,
                 models: Optional[list[str]] = None, timeout: float = CHAT_TIMEOUT_SEC):
        self.base = base
        self.key = key
        self.models = list(models or ANALYZER_MODELS)
        self.timeout = timeout

    def analyze(self, text: str) -> Analysis:
        last_err = None
        out = None
        for model in self.models:
            try:
                out = chat(self.base, self.key, model, [
                    {"role": "system", "content": _ANALYZE_PROMPT},
                    {"role": "user", "content": (text or "")[:4000]},
                ], timeout=self.timeout)
                break
            except Exception as e:
                last_err = e
                log.warning("analyzer model %s failed: %s", model, e)
                continue

        if out is None:
            raise AnalyzerError(f"analyzer_fail: {last_err}") from last_err
        return _parse_analysis(out)


def build_analyzer(kind: str = "keyword") -> Analyzer:
    """Analyzer factory used by the shell (``KCURATOR_ANALYZER``)."""
    if kind == "llm":
        return LLMAnalyzer()
    if kind != "keyword":
        log.warning("unknown analyzer %r, using keyword analyzer", kind)
    return KeywordAnalyzer()
