"""cuesync command-line interface with subcommands.

Usage:
    cuesync-cli serve [--host HOST] [--port PORT]
    cuesync-cli export <comments.json> [-o comments.csv] [--format csv|text]
"""

import argparse
import json
import sys
from pathlib import Path

import pydantic

from cuesync.config import settings
from cuesync.export.comments import EXPORT_FORMATS, export_csv, export_text, save_export
from cuesync.main import configure_logging
from cuesync.models.comment import Comment

_comment_list = pydantic.TypeAdapter(list[Comment])


# --- serve subcommand ---


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the relay server."""
    import uvicorn

    uvicorn.run(
        "cuesync.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


# --- export subcommand ---


def _load_comments(path: Path) -> list[Comment]:
    """Read a JSON array of comments, or an object with a ``comments`` key."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("comments", [])
    return _comment_list.validate_python(data)


def cmd_export(args: argparse.Namespace) -> None:
    """Export a comment dump as CSV or plain text."""
    input_path = Path(args.input).resolve()
    if not input_path.exists():
        print(f"Error: file not found: {input_path}", file=sys.stderr)
        sys.exit(1)

    try:
        comments = _load_comments(input_path)
    except (json.JSONDecodeError, pydantic.ValidationError) as exc:
        print(f"Error: invalid comment file {input_path}:\n{exc}", file=sys.stderr)
        sys.exit(1)

    if args.output:
        output_path = save_export(comments, args.output, args.format)
        print(f"Exported {len(comments)} comment(s): {output_path}")
    else:
        content = export_csv(comments) if args.format == "csv" else export_text(comments)
        sys.stdout.write(content)


# --- Main CLI ---


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="cuesync-cli",
        description="cuesync - collaborative media review tools",
    )
    parser.add_argument("--log-level", type=str, help="Logging level (default: CUESYNC_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- serve ---
    p_serve = subparsers.add_parser("serve", help="Run the realtime relay server")
    p_serve.add_argument("--host", type=str, help=f"Bind address (default: {settings.host})")
    p_serve.add_argument("--port", type=int, help=f"Port (default: {settings.port})")

    # --- export ---
    p_export = subparsers.add_parser("export", help="Export comments to CSV or text")
    p_export.add_argument("input", type=str, help="JSON file with a list of comments")
    p_export.add_argument("-o", "--output", type=str, help="Output path (default: stdout)")
    p_export.add_argument(
        "--format", choices=EXPORT_FORMATS, default="csv", help="Output format (default: csv)"
    )

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)

    # Dispatch
    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "export":
        cmd_export(args)


if __name__ == "__main__":
    main()
