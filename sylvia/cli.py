#!/usr/bin/env python3
"""
Sylvia Command Line Interface

Main entry point for the `sylvia` command.

Usage:
    sylvia memory add "Client wants Q3 pricing review" --tags pricing,q3 --relevance 6
    sylvia memory list --limit 20
    sylvia memory delete 12
    sylvia tags                      # Tag Score Index, highest first
    sylvia context "what about pricing?"
    sylvia process 12 13             # extract + apply (or --all)
    sylvia log --category client     # intelligence audit log
"""

import argparse
import asyncio
import json
import sys

from sylvia import __version__
from sylvia.config import load_config
from sylvia.errors import SylviaError
from sylvia.logging_config import get_logger, setup_logging
from sylvia.memory.models import Memory

logger = get_logger(__name__)


def _service(args):
    from sylvia.service import SylviaService

    config = load_config(args.config)
    setup_logging(config.logging)
    return SylviaService(config, db_path=args.db)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


# =============================================================================
# Commands
# =============================================================================

def cmd_memory(args):
    """Handle memory subcommand."""
    service = _service(args)

    if args.memory_command == "add":
        tags = [tag for tag in args.tags.split(",") if tag.strip()]
        memory = service.memories.add_memory(
            Memory(
                summary=args.summary,
                tags=tags,
                relevance=args.relevance,
                conversation_snippet=args.snippet or "",
            )
        )
        logger.info("memory_added", memory_id=memory.id, tags=memory.tags)
        if args.json:
            _print_json(memory.to_dict())
        else:
            print(f"Stored memory {memory.id} ({', '.join(memory.tags)})")
        return 0

    elif args.memory_command == "list":
        memories = service.memories.list_memories(limit=args.limit)
        if args.json:
            _print_json([m.to_dict() for m in memories])
            return 0
        if not memories:
            print("No memories stored.")
            return 0
        for m in memories:
            print(f"[{m.id:>4}] {m.timestamp.date().isoformat()}  r={m.relevance:g}  {m.summary}")
            print(f"       #{' #'.join(m.tags)}")
        return 0

    elif args.memory_command == "delete":
        if service.memories.delete_memory(args.memory_id):
            print(f"Deleted memory {args.memory_id}")
            return 0
        print(f"Memory {args.memory_id} not found")
        return 1

    print("Unknown memory command. Use --help for available commands.")
    return 1


def cmd_tags(args):
    """Show the Tag Score Index."""
    service = _service(args)
    scores = service.tag_index.get_tag_scores()[: args.limit]
    if args.json:
        _print_json([s.to_dict() for s in scores])
        return 0
    if not scores:
        print("No tags recorded.")
        return 0
    print(f"{'TAG':<30} {'SCORE':>8} {'MEM':>5} {'KNOW':>5}")
    for s in scores:
        print(f"{s.tag:<30} {s.score:>8.2f} {s.memory_count:>5} {s.knowledge_count:>5}")
    return 0


def cmd_context(args):
    """Preview the memory primer for an utterance."""
    service = _service(args)
    if args.performer:
        selection = service.select_performer_context(args.performer, args.utterance, limit=args.limit)
    else:
        selection = service.select_context(args.utterance, limit=args.limit)

    if args.json:
        _print_json(
            {
                "keywords": selection.keywords,
                "prioritized_tags": selection.prioritized_tags,
                "memories": [
                    {"id": item.memory.id, "score": round(item.score, 2), "prioritized": item.prioritized}
                    for item in selection.scored
                ],
                "primer": selection.primer,
            }
        )
        return 0

    print(f"Keywords: {', '.join(selection.keywords) or '-'}")
    print(f"Prioritized tags: {', '.join(selection.prioritized_tags) or '-'}\n")
    print(selection.primer or "(no memories selected)")
    return 0


def cmd_process(args):
    """Extract intelligence from memories and apply it."""
    service = _service(args)
    memory_ids = args.memory_ids
    if args.all:
        memory_ids = [m.id for m in service.memories.list_memories()]
    if not memory_ids:
        print("No memories to process. Pass ids or --all.")
        return 1

    outcomes = asyncio.run(service.process(memory_ids))

    if args.json:
        _print_json([o.to_dict() for o in outcomes])
    else:
        for outcome in outcomes:
            line = f"[{outcome.memory_id:>4}] {outcome.status} (attempts: {outcome.attempts})"
            if outcome.report:
                line += f" {outcome.report.summary()}"
            if outcome.error:
                line += f"\n       error: {outcome.error}"
            print(line)

    failed = [o for o in outcomes if o.status != "applied"]
    return 1 if failed else 0


def cmd_log(args):
    """Show the intelligence audit log."""
    service = _service(args)
    records = service.audit_log.list_records(limit=args.limit, category=args.category)
    if args.json:
        _print_json([r.to_dict() for r in records])
        return 0
    if not records:
        print("Intelligence log is empty.")
        return 0
    for r in records:
        print(f"{r.timestamp.isoformat(timespec='seconds')}  [{r.category}] {r.summary}")
    return 0


# =============================================================================
# Entry point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sylvia",
        description="Sylvia - memory context and intelligence extraction",
    )
    parser.add_argument(
        "--version", "-V", action="store_true", help="Show version and exit"
    )
    parser.add_argument(
        "--config", default=None, help="Config file (default: args/sylvia.yaml)"
    )
    parser.add_argument(
        "--db", default=None, help="SQLite database path (overrides config)"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print machine-readable JSON"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Memory subcommand
    memory_parser = subparsers.add_parser("memory", help="Add, list or delete memories")
    memory_subparsers = memory_parser.add_subparsers(dest="memory_command", help="Memory commands")

    memory_add = memory_subparsers.add_parser("add", help="Store a new memory")
    memory_add.add_argument("summary", help="Memory summary")
    memory_add.add_argument("--tags", required=True, help="Comma-separated tags (1-6)")
    memory_add.add_argument("--relevance", type=float, default=5.0, help="Relevance 0-10 (default: 5)")
    memory_add.add_argument("--snippet", default=None, help="Conversation snippet")
    memory_add.set_defaults(func=cmd_memory)

    memory_list = memory_subparsers.add_parser("list", help="List memories, most recent first")
    memory_list.add_argument("--limit", type=int, default=None, help="Max memories to show")
    memory_list.set_defaults(func=cmd_memory)

    memory_delete = memory_subparsers.add_parser("delete", help="Delete a memory")
    memory_delete.add_argument("memory_id", type=int, help="Memory id")
    memory_delete.set_defaults(func=cmd_memory)

    # Tags subcommand
    tags_parser = subparsers.add_parser("tags", help="Show tag scores")
    tags_parser.add_argument("--limit", type=int, default=25, help="Max tags to show (default: 25)")
    tags_parser.set_defaults(func=cmd_tags)

    # Context subcommand
    context_parser = subparsers.add_parser("context", help="Preview context selection for an utterance")
    context_parser.add_argument("utterance", help="The user's message")
    context_parser.add_argument("--limit", type=int, default=None, help="Max memories (default: config)")
    context_parser.add_argument("--performer", default=None, help="Use this performer's memories only")
    context_parser.set_defaults(func=cmd_context)

    # Process subcommand
    process_parser = subparsers.add_parser("process", help="Extract and apply intelligence")
    process_parser.add_argument("memory_ids", type=int, nargs="*", help="Memory ids")
    process_parser.add_argument("--all", action="store_true", help="Process every stored memory")
    process_parser.set_defaults(func=cmd_process)

    # Log subcommand
    log_parser = subparsers.add_parser("log", help="Show the intelligence audit log")
    log_parser.add_argument("--limit", type=int, default=20, help="Max records (default: 20)")
    log_parser.add_argument(
        "--category",
        choices=["mission", "social", "brand", "client", "operations"],
        default=None,
        help="Only show one category",
    )
    log_parser.set_defaults(func=cmd_log)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"Sylvia version {__version__}")
        return 0

    if not args.command or not hasattr(args, "func"):
        parser.print_help()
        return 0

    try:
        result = args.func(args)
    except SylviaError as e:
        print(f"Error: {e}", file=sys.stderr)
        result = 1

    if isinstance(result, int) and result != 0:
        sys.exit(result)
    return 0


if __name__ == "__main__":
    main()
