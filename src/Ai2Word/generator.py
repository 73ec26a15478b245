from __future__ import annotations

import asyncio
import logging
from typing import List

from . import markdown_parser, renderer_docx
from .assembler import assemble_blocks
from .config import ConverterConfig
from .errors import GenerationError
from .model import DocBlock
from .normalizer import normalize_text, wrap_bare_diagram
from .state import Rasterizers, RenderState

logger = logging.getLogger(__name__)


def new_state(config: ConverterConfig | None = None, rasterizers: Rasterizers | None = None) -> RenderState:
    """State for one run; default rasterizers are built from the config when none are given."""
    config = config or ConverterConfig()
    if rasterizers is None:
        from .rasterize import default_rasterizers

        rasterizers = default_rasterizers(config)
    return RenderState(config=config, rasterizers=rasterizers)


def prepare_text(text: str, config: ConverterConfig) -> str:
    normalized = normalize_text(text)
    if config.auto_fence_diagrams:
        normalized = wrap_bare_diagram(normalized, config.diagram_language)
    return normalized


async def build_document_blocks(text: str, state: RenderState) -> List[DocBlock]:
    """Normalize, tokenize and assemble ``text``; the caches are emptied first."""
    state.reset()
    normalized = prepare_text(text, state.config)
    tokens = markdown_parser.lex(normalized, breaks=True)
    logger.debug("Lexed %d block token(s)", len(tokens))
    return await assemble_blocks(tokens, state)


async def generate_document(
    text: str,
    config: ConverterConfig | None = None,
    rasterizers: Rasterizers | None = None,
) -> bytes:
    """Convert Markdown text into .docx bytes.

    Rendering failures degrade to text; anything else (lexer or packager
    errors) raises GenerationError and no partial output is returned.
    """
    state = new_state(config, rasterizers)
    try:
        blocks = await build_document_blocks(text, state)
        logger.info("Assembled %d document block(s)", len(blocks))
        return renderer_docx.package_document(blocks, state.config)
    except GenerationError:
        raise
    except Exception as exc:
        raise GenerationError(f"Document generation failed: {exc}") from exc
    finally:
        state.reset()


def generate_docx(
    text: str,
    config: ConverterConfig | None = None,
    rasterizers: Rasterizers | None = None,
) -> bytes:
    """Synchronous wrapper around :func:`generate_document`."""
    return asyncio.run(generate_document(text, config, rasterizers))
