"""
Command dispatcher: slash-prefixed input → registered handler → outcome + event.

Input that is not a command (no prefix, or an unknown name) is left alone so
the caller can pass it on as ordinary conversation.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .analyzer import Analyzer
from .cache import SearchCache
from .config import log, CuratorSettings
from .errors import ParseError
from .events import EventEmitter
from .extraction import ExtractionCoordinator
from .optimize import Optimizer
from .review import ReviewEngine
from .search import SearchCoordinator, DEFAULT_CHAIN, BASIC
from .stats import SessionStats
from .store import ArtifactStore

COMMAND_EXECUTED = "command:executed"


@dataclass
class CommandArgs:
    raw: list[str] = field(default_factory=list)
    positional: list[str] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=dict)

    def flag(self, name: str) -> bool:
        return self.options.get(name) is True


@dataclass
class ParsedCommand:
    name: str
    args: CommandArgs


@dataclass(frozen=True)
class CommandSpec:
    name: str
    aliases: frozenset
    handler: Callable
    description: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "aliases": sorted(self.aliases), "description": self.description}


@dataclass
class CommandOutcome:
    command: str
    success: bool = True
    data: Any = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        out = {"command": self.command, "success": self.success, "data": self.data}
        if self.error is not None:
            out["error"] = self.error
        return out


def parse_options(tokens: list[str]) -> CommandArgs:
    """Split raw tokens into positionals and ``--key[=value]`` options.

    ``--k=v`` gives ``"v"``; ``--flag`` and ``--k=`` give ``True``.
    """
    args = CommandArgs(raw=list(tokens))
    for tok in tokens:
        if not tok.startswith("--"):
            args.positional.append(tok)
            continue
        key, sep, value = tok[2:].partition("=")
        if not key:
            raise ParseError(f"malformed option: {tok!r}")
        args.options[key] = value if sep and value else True
    return args


def parse_command(text: str, prefix: str = "/") -> ParsedCommand:
    body = text.strip()
    if not body.startswith(prefix):
        raise ParseError("missing command prefix")
    parts = body[len(prefix):].split()
    if not parts:
        raise ParseError("empty command")
    return ParsedCommand(name=parts[0].lower(), args=parse_options(parts[1:]))


class CommandRegistry:
    """Canonical names and aliases → CommandSpec (case-insensitive)."""

    def __init__(self):
        self._specs: list[CommandSpec] = []
        self._index: dict[str, CommandSpec] = {}

    def register(self, name: str, aliases=(), description: str = "") -> Callable:
        """Decorator to register a handler under a name and its aliases."""
        def decorator(func: Callable) -> Callable:
            self.add(CommandSpec(name.lower(), frozenset(a.lower() for a in aliases), func,
                                 description or (func.__doc__ or "").strip()))
            return func
        return decorator

    def add(self, spec: CommandSpec) -> None:
        keys = [spec.name, *sorted(spec.aliases - {spec.name})]
        for key in keys:
            bound = self._index.get(key)
            if bound is not None:
                raise ValueError(f"/{key} is already registered to /{bound.name}")
        for key in keys:
            self._index[key] = spec
        self._specs.append(spec)
        log.debug("registered command /%s (%s)", spec.name, ", ".join(sorted(spec.aliases)))

    def resolve(self, name: str) -> Optional[CommandSpec]:
        return self._index.get((name or "").lower())

    def specs(self) -> list[CommandSpec]:
        return list(self._specs)


class Dispatcher:
    """Parses commands, runs handlers, and reports every invocation as an event.

    All collaborators are injected; nothing here is process-global, so two
    dispatchers never share a cache or session counters.
    """

    def __init__(self, store: ArtifactStore, analyzer: Analyzer,
                 settings: Optional[CuratorSettings] = None,
                 cache: Optional[SearchCache] = None,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.analyzer = analyzer
        self.settings = settings or CuratorSettings()
        self.clock = clock
        s = self.settings

        strategies = DEFAULT_CHAIN if s.enable_semantic_search else (BASIC,)
        self.search = SearchCoordinator(
            store,
            cache=cache if cache is not None else SearchCache(ttl_ms=s.cache_ttl_ms, clock=clock),
            strategies=strategies,
            use_cache=s.cache_search_results,
        )
        self.review = ReviewEngine(store, policy=s.scoring, stale_days=s.stale_days,
                                   duplicate_threshold=s.duplicate_threshold, clock=clock)
        self.optimizer = Optimizer(store, analyzer, self.search, policy=s.scoring,
                                   duplicate_threshold=s.duplicate_threshold, clock=clock)
        self.extraction = ExtractionCoordinator(store, analyzer, threshold=s.extraction_threshold)
        self.session = SessionStats(clock=clock)
        self.events = EventEmitter()
        self.registry = CommandRegistry()

        from .commands import register_builtins
        register_builtins(self)

    # ── Public API ──

    def process(self, text: str, conversation_history: Optional[list] = None,
                project_context: Optional[dict] = None) -> bool:
        """True when ``text`` was a known command (whether or not it succeeded)."""
        return self.dispatch(text, conversation_history, project_context) is not None

    def dispatch(self, text: str, conversation_history: Optional[list] = None,
                 project_context: Optional[dict] = None) -> Optional[CommandOutcome]:
        if not isinstance(text, str) or not text.strip().startswith(self.settings.command_prefix):
            return None
        try:
            parsed = parse_command(text, self.settings.command_prefix)
        except ParseError as e:
            log.debug("not a command: %s", e)
            return None

        spec = self.registry.resolve(parsed.name)
        if spec is None:
            log.debug("unknown command /%s", parsed.name)
            return None

        try:
            data = spec.handler(parsed.args, conversation_history or [], project_context)
            outcome = CommandOutcome(command=spec.name, success=True, data=data)
        except Exception as e:
            log.error("/%s failed: %s", spec.name, e)
            outcome = CommandOutcome(command=spec.name, success=False, error=str(e),
                                     data=_error_data(e))

        payload = {"command": spec.name, "args": list(parsed.args.raw), "success": outcome.success}
        if outcome.error is not None:
            payload["error"] = outcome.error
        self.events.emit(COMMAND_EXECUTED, payload)
        return outcome

    def on(self, event: str, listener: Callable[[dict], None]) -> None:
        self.events.on(event, listener)

    def off(self, event: str, listener: Callable[[dict], None]) -> bool:
        return self.events.off(event, listener)

    def available_commands(self) -> list[dict]:
        return [spec.to_dict() for spec in self.registry.specs()]

    def session_stats(self) -> dict:
        return self.session.snapshot()


def _error_data(err: Exception) -> Optional[dict]:
    report = getattr(err, "report", None)
    if report is not None and hasattr(report, "to_dict"):
        return {"partial_report": report.to_dict()}
    return None
