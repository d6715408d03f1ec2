"""Command-line entry point: ``sanctions-rag ingest`` and ``sanctions-rag ask``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from sanctions_rag.config import configure_logging, settings
from sanctions_rag.exceptions import SanctionsRagError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sanctions-rag",
        description="Question answering over the sanctions published by the SIMV",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Ingest new source files into the vector store")
    ingest.add_argument(
        "--pattern",
        default=settings.ingestion_source_pattern,
        help="Glob of resources to ingest (default: %(default)s)",
    )
    ingest.add_argument(
        "--chunker",
        choices=["token", "window"],
        default=None,
        help="Splitter to use (default: INGESTION_CHUNKER)",
    )

    ask = sub.add_parser("ask", help="Ask a question and stream the answer")
    ask.add_argument("prompt", help="The question")
    ask.add_argument("--conversation-id", default="default", help="Memory key")
    ask.add_argument(
        "--no-retrieval",
        dest="use_retrieval",
        action="store_false",
        help="Send the prompt straight to the model",
    )
    return parser


def _ingest(args: argparse.Namespace) -> int:
    from sanctions_rag.ingestion.runner import IngestionOrchestrator

    orchestrator = IngestionOrchestrator.from_settings(chunker_kind=args.chunker)
    report = orchestrator.run(args.pattern)
    print(report.summary())
    for source_id in report.failed:
        print(f"  failed: {source_id}")
    return 0


async def _stream_answer(args: argparse.Namespace) -> None:
    from sanctions_rag.assistant.orchestrator import QueryOrchestrator, QueryRequest

    orchestrator = QueryOrchestrator.from_settings()
    request = QueryRequest(
        prompt=args.prompt,
        conversation_id=args.conversation_id,
        use_retrieval=args.use_retrieval,
    )
    async with orchestrator.stream(request) as stream:
        async for chunk in stream:
            sys.stdout.write(chunk)
            sys.stdout.flush()
    sys.stdout.write("\n")


def _ask(args: argparse.Namespace) -> int:
    asyncio.run(_stream_answer(args))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    handlers = {"ingest": _ingest, "ask": _ask}
    try:
        return handlers[args.command](args)
    except SanctionsRagError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
