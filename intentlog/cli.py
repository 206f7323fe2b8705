"""Command-line interface for intentlog."""

import argparse
import logging
import sys

from .collect import CollectPipeline, SessionOutcome
from .config import load_config
from .errors import IntentLogError
from .filters import PrivacyFilter
from .parser import ClaudeCodeLogReader
from .renderer import format_step_number, render_step_detail, render_step_line
from .repository import DEFAULT_INTENT_DIR, FileSystemRepository
from .summarizer import build_summarizer


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="intent",
        description="Extract the evolution of intent from Claude Code sessions",
        epilog="""
Examples:
  intent init                    Create .intent/ in the current directory
  intent collect                 Collect steps from every new session
  intent collect --session ID    Collect a single session
  intent list                    Show sessions and whether they are collected
  intent log                     List collected steps
  intent show 3                  Show step 003
  intent rm 3                    Remove step 003
  intent reset --yes             Remove all steps and collected sessions
""",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("init", help="Initialize .intent/")

    collect_parser = subparsers.add_parser(
        "collect",
        help="Collect intent steps from session logs"
    )
    collect_parser.add_argument(
        "-s", "--session",
        metavar="ID",
        help="Collect only this session"
    )
    collect_parser.add_argument(
        "-p", "--project",
        metavar="PATH",
        help="Project path (defaults to current directory)"
    )

    list_parser = subparsers.add_parser(
        "list",
        help="List available sessions"
    )
    list_parser.add_argument(
        "-p", "--project",
        metavar="PATH",
        help="Project path"
    )

    subparsers.add_parser("log", help="List collected steps")

    show_parser = subparsers.add_parser("show", help="Show one step in detail")
    show_parser.add_argument("step", type=int, help="Step number")

    rm_parser = subparsers.add_parser("rm", help="Remove one step")
    rm_parser.add_argument("step", type=int, help="Step number")

    reset_parser = subparsers.add_parser(
        "reset",
        help="Remove all steps and collected-session history"
    )
    reset_parser.add_argument(
        "--yes",
        action="store_true",
        help="Skip the confirmation prompt"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
    )

    commands = {
        "init": cmd_init,
        "collect": cmd_collect,
        "list": cmd_list,
        "log": cmd_log,
        "show": cmd_show,
        "rm": cmd_rm,
        "reset": cmd_reset,
    }
    if args.command not in commands:
        parser.print_help()
        return 0

    try:
        return commands[args.command](args)
    except IntentLogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_init(args) -> int:
    """Create the .intent/ store."""
    FileSystemRepository.init(DEFAULT_INTENT_DIR)
    print(f"Initialized {DEFAULT_INTENT_DIR}/")
    return 0


def cmd_collect(args) -> int:
    """Collect steps from one session or all of them."""
    repository = FileSystemRepository.open(DEFAULT_INTENT_DIR)
    config = load_config(repository.root)
    reader = ClaudeCodeLogReader.for_project(args.project)

    pipeline = CollectPipeline(
        reader=reader,
        summarizer=build_summarizer(config.summarizer),
        privacy_filter=PrivacyFilter.from_config(config.filter),
        repository=repository,
    )

    if args.session:
        if repository.is_session_recorded(args.session):
            print(f"Session '{args.session}' is already collected", file=sys.stderr)
        outcome = pipeline.collect_session(args.session)
        print(f"Session '{args.session}': {outcome.value}", file=sys.stderr)
        return 1 if outcome is SessionOutcome.FAILED else 0

    sessions = reader.list_sessions()
    if not sessions:
        print("No Claude Code sessions found for this project", file=sys.stderr)
        return 0

    report = pipeline.collect_all()
    print(f"\n{report.summary()}", file=sys.stderr)
    return 0


def cmd_list(args) -> int:
    """List available sessions."""
    reader = ClaudeCodeLogReader.for_project(getattr(args, "project", None))
    sessions = reader.list_sessions()

    if not sessions:
        print("No sessions found", file=sys.stderr)
        return 1

    try:
        recorded = set(FileSystemRepository.open(DEFAULT_INTENT_DIR).recorded_sessions())
    except IntentLogError:
        recorded = set()

    print("Sessions:\n")
    for i, session_id in enumerate(sessions, 1):
        created = reader.get_session_timestamp(session_id)
        marker = "*" if session_id in recorded else " "
        print(f" {marker}{i}. {session_id[:8]}  {created.strftime('%Y-%m-%d %H:%M')}")

    if recorded:
        print("\n  * already collected")
    return 0


def cmd_log(args) -> int:
    """List collected steps."""
    steps = FileSystemRepository.open(DEFAULT_INTENT_DIR).list_steps()
    if not steps:
        print("No steps yet. Run `intent collect` first.")
        return 0

    for step in steps:
        print(render_step_line(step))
    return 0


def cmd_show(args) -> int:
    """Show one step."""
    step = FileSystemRepository.open(DEFAULT_INTENT_DIR).get_step(args.step)
    print(render_step_detail(step))
    return 0


def cmd_rm(args) -> int:
    """Remove one step."""
    FileSystemRepository.open(DEFAULT_INTENT_DIR).remove_step(args.step)
    print(f"Removed step {format_step_number(args.step)}")
    return 0


def cmd_reset(args) -> int:
    """Remove all steps and the collected-session history."""
    repository = FileSystemRepository.open(DEFAULT_INTENT_DIR)

    if not args.yes:
        answer = input("Delete all steps and collected-session history? (y/N) ")
        if answer.strip().lower() != "y":
            print("Cancelled")
            return 0

    repository.reset()
    print("Removed all steps and collected-session history")
    return 0


if __name__ == "__main__":
    sys.exit(main())
