"""Command-line interface for Doc Translator."""

from __future__ import annotations

import asyncio
import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Set

from tqdm import tqdm

from .batch import compute_output_path, find_common_base, translate_files
from .config import SUPPORTED_EXTENSIONS, TranslatorConfig
from .engine import ChunkedTranslationEngine
from .exceptions import ConfigurationError
from .glossary import load_glossary
from .models import BatchReport, ProgressEvent, Stage
from .progress import ProgressChannel
from .provider import OpenAIProvider


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    # Language
    parser.add_argument("-t", "--to", dest="target_language", help="Target language (default: Simplified Chinese)")
    parser.add_argument("--from", dest="source_language", help="Source language hint")

    # Glossary
    parser.add_argument("-g", "--glossary", dest="glossary_path", help="Glossary file path (.txt or .json)")

    # Chunking
    parser.add_argument("--max-tokens-per-chunk", dest="max_tokens_per_chunk", type=int)
    parser.add_argument("--overlap", dest="chunk_overlap", type=int, help="Overlap tokens between chunks")
    parser.add_argument("--parallel-chunks", dest="parallel_chunks", type=int, help="Max concurrent chunk requests")

    # API options
    parser.add_argument("--api-key", help="API key (or set DOC_TRANSLATOR_API_KEY)")
    parser.add_argument("--base-url")
    parser.add_argument("--model", dest="model_name")

    # Misc
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="doc-translator",
        description="Chunked LLM document translator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s translate book.md                       # Translate to Simplified Chinese
  %(prog)s translate book.md out.md --to French    # Specify output and language
  %(prog)s batch docs/*.md -o translated/ -g glossary.json
        """
    )
    sub = parser.add_subparsers(dest="command", required=True)

    single = sub.add_parser("translate", help="Translate one file")
    single.add_argument("input_path", help="Input text file")
    single.add_argument("output_path", nargs='?', default=None, help="Output file path")
    _add_common_arguments(single)

    batch = sub.add_parser("batch", help="Translate many files into a directory")
    batch.add_argument("input_paths", nargs="+", help="Input files")
    batch.add_argument("-o", "--output", dest="output_dir", required=True, help="Output directory")
    batch.add_argument("--parallel-files", dest="parallel_files", type=int, help="Max files translated at once")
    _add_common_arguments(batch)

    return parser.parse_args(argv)


class FileProgressBar:
    """Per-file tqdm bar; every file advances it once, failed or not."""

    def __init__(self, bar: tqdm):
        self.bar = bar
        self._finished: Set[str] = set()

    def __call__(self, event: ProgressEvent) -> None:
        if not event.document_id:
            return
        if event.stage is Stage.MERGING:
            self._advance(event.document_id)
        else:
            self.bar.set_postfix_str(
                f"{Path(event.document_id).name}: {event.current_chunk}/{event.total_chunks}"
            )

    def finish(self, report: BatchReport) -> None:
        """Count the items that ended without a final progress event."""
        for outcome in report:
            if outcome.status.is_terminal:
                self._advance(outcome.item_id)

    def _advance(self, item_id: str) -> None:
        if item_id not in self._finished:
            self._finished.add(item_id)
            self.bar.update(1)

    def close(self) -> None:
        self.bar.close()


def build_engine(config: TranslatorConfig) -> ChunkedTranslationEngine:
    """Validate config, load the glossary and create the engine."""
    config.ensure_valid()

    glossary: Dict[str, str] = {}
    if config.glossary_path:
        glossary = load_glossary(config.glossary_path).to_dict()

    provider = OpenAIProvider.from_config(config)
    return ChunkedTranslationEngine(provider, config, glossary=glossary)


async def run_single(args: argparse.Namespace, config: TranslatorConfig) -> int:
    """Translate one file."""
    logger = logging.getLogger(__name__)

    in_path = Path(args.input_path).expanduser().resolve()
    if not in_path.is_file():
        logger.error(f"File not found: {in_path}")
        return 1

    engine = build_engine(config)

    logger.info(f"Reading: {in_path}")
    content = in_path.read_text(encoding="utf-8-sig")

    if args.output_path:
        out_path = Path(args.output_path)
    else:
        out_path = compute_output_path(in_path, in_path.parent, in_path.parent, config.target_language)

    bar = tqdm(total=0, desc="Translating", unit="chunk")

    def on_progress(event: ProgressEvent) -> None:
        if event.total_chunks and bar.total != event.total_chunks:
            bar.total = event.total_chunks
        bar.n = event.current_chunk
        bar.set_postfix_str(event.stage.value)
        bar.refresh()

    try:
        async with ProgressChannel(on_progress) as progress:
            result = await engine.translate_chunked(content, progress=progress)
    finally:
        bar.close()

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(result.text, encoding="utf-8")

    logger.info(f"Done! {result.chunks} chunks translated. Saved to {out_path}")
    if result.usage.calls:
        logger.info(f"Tokens used: {result.usage.total_tokens}")
    return 0


async def run_batch(args: argparse.Namespace, config: TranslatorConfig) -> int:
    """Translate many files, reporting a per-file ledger."""
    logger = logging.getLogger(__name__)

    paths = [Path(p).expanduser() for p in args.input_paths]
    for path in paths:
        if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            logger.warning(f"Unusual file extension: {path}")

    engine = build_engine(config)
    logger.info(f"Found {len(paths)} files, common base {find_common_base(paths)}")

    bar = FileProgressBar(tqdm(total=len(paths), desc="Files", unit="file"))

    try:
        async with ProgressChannel(bar) as progress:
            report = await translate_files(
                engine, paths, Path(args.output_dir), progress=progress,
            )
        bar.finish(report)
    finally:
        bar.close()

    for outcome in report.failed_items():
        logger.error(f"Failed: {outcome.item_id}: {outcome.error}")

    logger.info(
        f"Done! {report.completed}/{report.total} files translated, "
        f"{report.failed} failed. Output: {Path(args.output_dir).resolve()}"
    )
    return 1 if report.failed else 0


async def main_async(args: argparse.Namespace) -> int:
    """Main async workflow."""
    logger = logging.getLogger(__name__)

    try:
        config = TranslatorConfig.from_args(args)
        if args.command == "batch":
            return await run_batch(args, config)
        return await run_single(args, config)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        sys.exit(130)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
