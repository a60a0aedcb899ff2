"""kb-agent command line entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from typing import TextIO

from kb_agent.application.attachment import Attachment
from kb_agent.config.composition import build_router, build_session
from kb_agent.config.settings import LOG_LEVELS, AppSettings, load_settings
from kb_agent.domain.errors import DomainError
from kb_agent.interface.cli.chat import ChatShell

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _add_common(parser: argparse.ArgumentParser, default: object) -> None:
    parser.add_argument("--config", default=default, help="Path to a YAML config file")
    parser.add_argument(
        "--log-level",
        default=default,
        type=str.upper,
        choices=LOG_LEVELS,
        help="Override the configured log level",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kb-agent",
        description="Chat with a knowledge base backed by Qdrant and an LLM.",
    )
    _add_common(parser, None)
    sub = parser.add_subparsers(dest="command")

    # SUPPRESS keeps subcommand defaults from overwriting top-level flags
    chat = sub.add_parser("chat", help="Interactive session (default)")
    _add_common(chat, argparse.SUPPRESS)

    ingest = sub.add_parser("ingest", help="Add one document to the knowledge base")
    ingest.add_argument("path", help="Document to ingest (.txt, .md, .csv, .pdf)")
    _add_common(ingest, argparse.SUPPRESS)
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, stream=sys.stderr)


def _ingest(settings: AppSettings, path: str, stdout: TextIO) -> int:
    router = build_router(settings)
    router.store.ensure_ready()
    with Attachment.open(path) as attachment:
        stdout.write(router.ingest(attachment) + "\n")
    return 0


def run(
    argv: Sequence[str] | None = None,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """Run the CLI and return the process exit code."""
    args = build_parser().parse_args(argv)
    stdout = stdout or sys.stdout
    try:
        settings = load_settings(args.config)
        configure_logging(args.log_level or settings.log_level)

        if args.command == "ingest":
            return _ingest(settings, args.path, stdout)

        with build_session(settings) as session:
            return ChatShell(session, stdin=stdin, stdout=stdout).run()
    except DomainError as ex:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {ex}", file=sys.stderr)
        return 1


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
