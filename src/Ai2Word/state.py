from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from .cache import LRUCache
from .config import ConverterConfig
from .model import RenderedImage

DiagramRenderer = Callable[[str], Awaitable[Optional[RenderedImage]]]
FormulaRenderer = Callable[[str, bool], Awaitable[Optional[RenderedImage]]]


async def no_diagram(source: str) -> Optional[RenderedImage]:
    return None


async def no_formula(source: str, display: bool) -> Optional[RenderedImage]:
    return None


@dataclass
class Rasterizers:
    render_diagram: DiagramRenderer = no_diagram
    render_formula: FormulaRenderer = no_formula


@dataclass
class RenderState:
    """Everything one generation run owns: settings, rasterizers and both caches."""

    config: ConverterConfig = field(default_factory=ConverterConfig)
    rasterizers: Rasterizers = field(default_factory=Rasterizers)
    diagram_cache: LRUCache[Optional[RenderedImage]] = None  # type: ignore[assignment]
    formula_cache: LRUCache[Optional[RenderedImage]] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.diagram_cache is None:
            self.diagram_cache = LRUCache(self.config.diagram_cache_size, name="diagram cache")
        if self.formula_cache is None:
            self.formula_cache = LRUCache(self.config.formula_cache_size, name="formula cache")

    def reset(self) -> None:
        self.diagram_cache.clear()
        self.formula_cache.clear()
