#!/usr/bin/env python3
"""
kcurator_shell.py: knowledge command shell
Usage:
  kcurator "/ks docker compose --limit=5"     one command, then exit
  kcurator                                    read lines from stdin
  kcurator --status                           store / analyzer health

Lines that are not commands are kept as conversation history, so
"/kextract" works on whatever was typed before it.
Every outcome is printed as JSON.
"""
import argparse
import json
import sys
import time

from kcurator import Dispatcher, SQLiteStore, build_analyzer
from kcurator.config import log, validate_config, DB_PATH, ANALYZER, KCURATOR_VERSION

HELP_TEXT = """kcurator commands (aliases in brackets):
  /search <term> [--limit=N] [--type=T]          [ks, knowledge-search]
  /stats                                         [kstats, knowledge-stats]
  /review [recent|low-quality|duplicates|outdated] [N] [--auto-clean]
                                                 [kr, knowledge-review]
  /extract [depth] [--force]                     [kextract, knowledge-extract]
  /optimize                                      [koptimize, knowledge-optimize]
  /graph [relationships|categories|timeline|quality] [N]
                                                 [kgraph, knowledge-graph]
  /cleanup [--execute] [--aggressive]            [kclean, knowledge-clean]
  /backup [name] [--no-context]                  [kbackup, knowledge-backup]
Anything else is recorded as conversation history. Ctrl-D to quit."""


def _print(obj):
    print(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def status(dispatcher: Dispatcher) -> dict:
    store = dispatcher.store
    return {
        "version": KCURATOR_VERSION,
        "store": store.name,
        "store_healthy": store.health(),
        "analyzer": dispatcher.analyzer.name,
        "commands": [c["name"] for c in dispatcher.available_commands()],
    }


def run_line(dispatcher: Dispatcher, line: str, history: list, project: dict) -> None:
    line = line.strip()
    if not line:
        return
    if line in ("/help", "/?"):
        print(HELP_TEXT)
        return
    outcome = dispatcher.dispatch(line, history, project)
    if outcome is None:
        history.append({"role": "user", "content": line, "timestamp": time.time()})
        return
    _print(outcome.to_dict())


def main():
    ap = argparse.ArgumentParser(description="kcurator knowledge command shell")
    ap.add_argument("command", nargs=argparse.REMAINDER, help="one command to run, e.g. /kstats")
    ap.add_argument("--db", default=DB_PATH, help="SQLite database path")
    ap.add_argument("--project", default="", help="project name recorded on extracted artifacts")
    ap.add_argument("--status", action="store_true", help="print store / analyzer status and exit")
    args = ap.parse_args()

    validate_config()
    store = SQLiteStore(args.db)
    dispatcher = Dispatcher(store, build_analyzer(ANALYZER))
    project = {"name": args.project} if args.project else None
    history: list = []

    try:
        if args.status:
            _print(status(dispatcher))
            return
        if args.command:
            run_line(dispatcher, " ".join(args.command), history, project)
            return

        if sys.stdin.isatty():
            print(HELP_TEXT)
        for line in sys.stdin:
            run_line(dispatcher, line, history, project)
        log.info("session: %s", dispatcher.session_stats())
    finally:
        store.close()


if __name__ == "__main__":
    main()
