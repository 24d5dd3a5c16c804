"""
Built-in knowledge commands.

Each handler takes ``(args, conversation_history, project_context)`` and
returns a JSON-serializable dict. Raising is fine: the dispatcher turns any
exception into a failed outcome.
"""

from __future__ import annotations

from typing import Optional

from .backup import create_snapshot
from .config import log
from .errors import OptimizationError
from .graph import build_graph, DEFAULT_KIND
from .review import DEFAULT_POLICY
from .search import ALL_TYPES
from .stats import knowledge_stats

SEARCH_USAGE = "/search <term> [--limit=N] [--type=T]"


def _int_arg(value, default: int) -> int:
    """Positive int from a token, else ``default``."""
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


def _text_option(value) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def register_builtins(d) -> None:
    """Register the eight knowledge commands on dispatcher ``d``."""
    registry = d.registry
    settings = d.settings

    @registry.register("search", aliases=("ks", "knowledge-search"))
    def cmd_search(args, history, project):
        """Search the knowledge base."""
        term = " ".join(args.positional).strip()
        if not term:
            return {"usage": SEARCH_USAGE, "executed": False}

        limit = _int_arg(args.options.get("limit"), settings.max_search_results)
        type_filter = _text_option(args.options.get("type")) or ALL_TYPES
        d.session.record_search(term)
        result = d.search.search(term, limit, type_filter)
        log.info("search %r: %d result(s) via %s%s", term, len(result.artifacts),
                 result.strategy, " (cached)" if result.cached else "")
        return result.to_dict()

    @registry.register("stats", aliases=("kstats", "knowledge-stats"))
    def cmd_stats(args, history, project):
        """Knowledge base statistics and recommendations."""
        return knowledge_stats(d.store, d.session, now=d.clock())

    @registry.register("review", aliases=("kr", "knowledge-review"))
    def cmd_review(args, history, project):
        """Review artifacts: recent | low-quality | duplicates | outdated."""
        policy = args.positional[0].lower() if args.positional else DEFAULT_POLICY
        batch = _int_arg(args.positional[1] if len(args.positional) > 1 else None,
                         settings.review_batch_size)
        return d.review.review(policy, batch, auto_clean=args.flag("auto-clean")).to_dict()

    @registry.register("extract", aliases=("kextract", "knowledge-extract"))
    def cmd_extract(args, history, project):
        """Extract knowledge from recent conversation messages."""
        depth = _int_arg(args.positional[0] if args.positional else None, settings.extraction_depth)
        report = d.extraction.extract(history, depth=depth, force=args.flag("force"), project=project)
        d.session.extractions_performed += 1
        return report.to_dict()

    @registry.register("optimize", aliases=("koptimize", "knowledge-optimize"))
    def cmd_optimize(args, history, project):
        """Dedup, archive, rescore, reindex and clear the search cache."""
        d.session.optimizations_run += 1
        try:
            report = d.optimizer.run()
        except OptimizationError:
            log.warning("optimize: last_optimization left at %s", d.session.last_optimization)
            raise
        d.session.last_optimization = report.finished_at
        return report.to_dict()

    @registry.register("graph", aliases=("kgraph", "knowledge-graph"))
    def cmd_graph(args, history, project):
        """Knowledge graph: relationships | categories | timeline | quality."""
        kind = args.positional[0].lower() if args.positional else DEFAULT_KIND
        max_nodes = _int_arg(args.positional[1] if len(args.positional) > 1 else None, 20)
        return build_graph(d.store, kind, max_nodes)

    @registry.register("cleanup", aliases=("kclean", "knowledge-clean"))
    def cmd_cleanup(args, history, project):
        """Find (and with --execute, delete) low-quality artifacts."""
        return d.review.cleanup(aggressive=args.flag("aggressive"), execute=args.flag("execute")).to_dict()

    @registry.register("backup", aliases=("kbackup", "knowledge-backup"))
    def cmd_backup(args, history, project):
        """Snapshot the knowledge base (--no-context drops analyzer context)."""
        name = args.positional[0] if args.positional else None
        return create_snapshot(d.store, name, include_context=not args.flag("no-context"))
