from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from .cache import cached_render
from .formulas import escape_placeholders, extract_formulas, has_formula, substitute_raw
from .images import ImageDecodeError, read_image_size
from .inline_runs import build_plain_runs, resolve_runs
from .markdown_parser import parse_inline
from .model import ExtractedFormula, ImageRun, InlineToken, RenderedImage, Run, RunStyle, TextRun
from .state import RenderState

logger = logging.getLogger(__name__)


async def resolve_mixed_content(
    text: str,
    inline: Sequence[InlineToken] | None,
    inherited: RunStyle,
    state: RenderState,
) -> List[Run]:
    """Runs for a text span, with embedded formulas swapped for rendered images."""
    config = state.config
    processed = text
    formulas: List[ExtractedFormula] = []
    if text and has_formula(text):
        processed, formulas = extract_formulas(text, config.math_trigger_threshold, config.math_span_ceiling)
    if not formulas:
        if inline:
            return resolve_runs(inline, inherited, config.emoji_font, config.link_color)
        return build_plain_runs(text, inherited, config.emoji_font)

    logger.debug("Found %d formula(s) in span", len(formulas))
    images = await render_formulas(formulas, state)
    by_placeholder = {formula.placeholder: formula for formula in formulas}

    def substitute(placeholder: str, style: RunStyle) -> Optional[Run]:
        formula = by_placeholder.get(placeholder)
        if formula is None:
            return None
        image = images.get(placeholder)
        if image is not None and _embeddable(image, formula):
            return ImageRun(image=image, display=formula.display, alt_text=formula.raw)
        return TextRun(formula.raw, replace(style, italic=True))

    # Tokenize once so emphasis and links around a formula keep applying to it.
    tokens = parse_inline(escape_placeholders(processed))
    return resolve_runs(tokens, inherited, config.emoji_font, config.link_color, substitute)


async def render_formulas(
    formulas: Sequence[ExtractedFormula], state: RenderState
) -> Dict[str, Optional[RenderedImage]]:
    """Render every distinct formula of one span concurrently; keyed by placeholder."""
    unique: Dict[str, ExtractedFormula] = {}
    for formula in formulas:
        unique.setdefault(formula.source, formula)

    async def render_one(formula: ExtractedFormula) -> Optional[RenderedImage]:
        return await cached_render(
            state.formula_cache,
            formula.source,
            lambda: state.rasterizers.render_formula(formula.source, formula.display),
            state.config.render_timeout,
        )

    results = await asyncio.gather(*(render_one(formula) for formula in unique.values()))
    by_source = dict(zip(unique, results))
    return {formula.placeholder: by_source[formula.source] for formula in formulas}


def substitute_formula_text(text: str, state: RenderState) -> str:
    """Text with each formula replaced by its raw source (used where images are unwanted)."""
    if not text or not has_formula(text):
        return text
    config = state.config
    processed, formulas = extract_formulas(text, config.math_trigger_threshold, config.math_span_ceiling)
    return substitute_raw(processed, formulas)


def _embeddable(image: RenderedImage, formula: ExtractedFormula) -> bool:
    try:
        read_image_size(image.data)
    except ImageDecodeError as exc:
        logger.warning("Rendered formula %r is not a readable image: %s", formula.raw, exc)
        return False
    return True
