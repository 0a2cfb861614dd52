import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path


def _session(root: str):
    from dotenv import load_dotenv

    from .config import get_settings
    from .session import Session

    load_dotenv(Path(root) / ".env")
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    return Session(root, settings=settings)


def _print(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _init(args) -> int:
    """Index the workspace and analyze it"""
    session = _session(args.root)

    async def run():
        try:
            return await session.initialize_codebase()
        finally:
            await session.close()

    try:
        result = asyncio.run(run())
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result is None:
        print("Initialization already in progress", file=sys.stderr)
        return 1
    _print(asdict(result))
    return 0


def _ask(args) -> int:
    """Run one agent turn"""
    from .editor import EditorState

    answers = None
    if args.answers:
        try:
            answers = json.loads(args.answers)
        except json.JSONDecodeError as e:
            print(f"Invalid --answers JSON: {e}", file=sys.stderr)
            return 1
        if not isinstance(answers, dict):
            print("--answers must be a JSON object", file=sys.stderr)
            return 1

    file_text = ""
    if args.file:
        try:
            file_text = Path(args.file).read_text(encoding="utf-8")
        except OSError as e:
            print(f"Cannot read {args.file}: {e}", file=sys.stderr)
            return 1

    session = _session(args.root)
    state = EditorState(
        selection=args.selection or "",
        active_file_text=file_text,
        active_file_path=args.file,
        workspace_root=str(session.workspace_root),
    )

    async def run():
        try:
            if not session.load_index():
                print("Hint: no index found, run: devpilot init", file=sys.stderr)
            return await session.ask(args.prompt, state, answers)
        finally:
            await session.close()

    result = asyncio.run(run())
    _print(result.to_dict())
    return 0


def _search(args) -> int:
    """Show the context bundle for a query"""
    session = _session(args.root)
    if not session.load_index():
        print("No index found. Run: devpilot init", file=sys.stderr)
        return 1

    context = asyncio.run(session.search(args.query, args.k))
    _print(context)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="devpilot", description="DevPilot CLI - codebase-aware coding assistant"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init", help="Index the workspace and build the project summary")
    init.add_argument("root", nargs="?", default=".", help="Workspace root")

    ask = sub.add_parser("ask", help="Ask the agent")
    ask.add_argument("prompt", help="Request in natural language")
    ask.add_argument("-f", "--file", help="Active file")
    ask.add_argument("-s", "--selection", help="Selected text")
    ask.add_argument("-a", "--answers", help="JSON object answering the agent's questions")
    ask.add_argument("-r", "--root", default=".", help="Workspace root")

    search = sub.add_parser("search", help="Retrieve context for a query")
    search.add_argument("query", help="Search query")
    search.add_argument("-k", type=int, default=None, help="Number of results")
    search.add_argument("-r", "--root", default=".", help="Workspace root")

    args = parser.parse_args(argv)

    if args.command == "init":
        return _init(args)
    if args.command == "ask":
        return _ask(args)
    if args.command == "search":
        return _search(args)

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
