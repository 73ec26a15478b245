from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path

from . import generator
from .config import ConverterConfig, load_config
from .errors import ConfigError, GenerationError
from .utils import STDIN_MARKER, configure_logging, read_markdown, resolve_output_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai2word",
        description="Convert Markdown with Mermaid diagrams and LaTeX math into a Word document.",
    )
    parser.add_argument("input", type=str, help="Path to Markdown file, or - for stdin")
    parser.add_argument("-o", "--output", type=str, help="Output DOCX path")
    parser.add_argument("--config", type=str, help="YAML file with style and layout settings")
    parser.add_argument("--no-diagrams", action="store_true", help="Keep diagram blocks as code")
    parser.add_argument("--no-math", action="store_true", help="Keep formulas as italic text")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)

    if args.input != STDIN_MARKER and not Path(args.input).expanduser().exists():
        raise FileNotFoundError(f"Input file not found: {args.input}")

    try:
        config = load_config(args.config) if args.config else ConverterConfig()
    except ConfigError as exc:
        logging.error("Invalid configuration %s: %s", args.config, exc)
        return 2
    if args.no_diagrams:
        config = replace(config, enable_diagrams=False)
    if args.no_math:
        config = replace(config, enable_math=False)

    input_name = args.input if args.input == STDIN_MARKER else str(Path(args.input).expanduser())
    output_path = resolve_output_path(input_name, args.output)

    logging.info("Reading %s", "stdin" if input_name == STDIN_MARKER else input_name)
    markdown_text = read_markdown(input_name)
    logging.debug("Markdown length: %d chars", len(markdown_text))

    logging.info("Rendering DOCX to %s", output_path)
    try:
        data = generator.generate_docx(markdown_text, config)
    except GenerationError as exc:
        logging.error("Generation failed, please retry: %s", exc)
        return 1

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    logging.info("Done. Saved to %s (%.1f KB)", output_path, len(data) / 1024)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
