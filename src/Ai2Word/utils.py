from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

STDIN_MARKER = "-"


def configure_logging(verbose: bool = False) -> None:
    """Configure a simple console logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(message)s",
    )


def timestamped_name(now: datetime | None = None) -> str:
    """File name like ``ai2word-2026-02-01-143052.docx``."""
    now = now or datetime.now()
    return f"ai2word-{now:%Y-%m-%d}-{now:%H%M%S}.docx"


def resolve_output_path(input_name: str, output: Optional[str], now: datetime | None = None) -> Path:
    from_stdin = input_name == STDIN_MARKER
    default_name = timestamped_name(now) if from_stdin else f"{Path(input_name).stem}.docx"
    if output:
        out_path = Path(output)
        if out_path.is_dir():
            out_path = out_path / default_name
        return out_path
    if from_stdin:
        return Path(default_name)
    return Path(input_name).with_suffix(".docx")


def read_markdown(input_name: str) -> str:
    if input_name == STDIN_MARKER:
        return sys.stdin.read()
    return Path(input_name).read_text(encoding="utf-8")
