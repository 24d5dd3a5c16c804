"""kcurator: knowledge curation commands for a conversational dev assistant.

Architecture:
- ArtifactStore: abstract interface for any artifact store
- SQLiteStore: default implementation (single-file database)
- InMemoryStore: pure-Python store for testing (no external deps)
- Analyzer: KeywordAnalyzer (rule-based) or LLMAnalyzer (chat endpoint)
- Dispatcher: "/command args" → handler → CommandOutcome + command:executed event
- Commands: search, stats, review, extract, optimize, graph, cleanup, backup

Boundaries:
- Store handles: persistence, matching, ordering, archiving, indexes
- Curator handles: search fallback + caching, quality scoring, review/cleanup,
                   extraction, the optimization pipeline, stats, graph, backup
"""

# Re-export public API
from .store import Artifact, ArtifactStore, Query, clamp_score
from .store_memory import InMemoryStore
from .store_sqlite import SQLiteStore
from .analyzer import Analysis, Analyzer, KeywordAnalyzer, LLMAnalyzer, build_analyzer
from .config import (
    env, validate_config, chat, log,
    ScoringPolicy, CuratorSettings,
    DB_PATH, ANALYZER, KCURATOR_VERSION,
)
from .errors import (
    CuratorError, ParseError, StoreError, SearchError, AnalyzerError, OptimizationError,
)
from .scoring import Action, Status, QualityReport, score_artifact
from .cache import SearchCache, cache_key
from .search import SearchCoordinator, SearchResult, SearchStrategy, SEMANTIC, BASIC
from .review import ReviewEngine, ReviewReport, CleanupReport
from .optimize import Optimizer, OptimizationReport, STEPS
from .extraction import ExtractionCoordinator, ExtractionReport
from .stats import SessionStats, knowledge_stats
from .graph import build_graph
from .backup import create_snapshot
from .events import EventEmitter
from .dispatcher import (
    Dispatcher, CommandRegistry, CommandSpec, CommandOutcome, parse_options, COMMAND_EXECUTED,
)

__all__ = [
    # Store interface + implementations
    "Artifact", "ArtifactStore", "Query", "clamp_score", "InMemoryStore", "SQLiteStore",
    # Analyzers
    "Analysis", "Analyzer", "KeywordAnalyzer", "LLMAnalyzer", "build_analyzer",
    # Engines
    "score_artifact", "Action", "Status", "QualityReport",
    "SearchCache", "cache_key", "SearchCoordinator", "SearchResult", "SearchStrategy",
    "SEMANTIC", "BASIC",
    "ReviewEngine", "ReviewReport", "CleanupReport",
    "Optimizer", "OptimizationReport", "STEPS",
    "ExtractionCoordinator", "ExtractionReport",
    "SessionStats", "knowledge_stats", "build_graph", "create_snapshot",
    # Dispatch
    "Dispatcher", "CommandRegistry", "CommandSpec", "CommandOutcome", "parse_options",
    "EventEmitter", "COMMAND_EXECUTED",
    # Errors
    "CuratorError", "ParseError", "StoreError", "SearchError", "AnalyzerError", "OptimizationError",
    # config
    "chat", "env", "log", "validate_config", "ScoringPolicy", "CuratorSettings",
    "DB_PATH", "ANALYZER", "KCURATOR_VERSION",
]
