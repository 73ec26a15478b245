"""Default diagram and formula rasterizers.

Formulas go through matplotlib's mathtext engine in a worker thread.
Diagrams use the local Mermaid CLI (``mmdc``) when it is installed and the
mermaid.ink service otherwise. Both return ``None`` on failure; callers fall
back to text.
"""
from __future__ import annotations

import asyncio
import base64
import io
import logging
import re
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Optional

import httpx
import matplotlib

matplotlib.use("Agg")
from matplotlib import mathtext, rcParams  # noqa: E402
from matplotlib.font_manager import FontProperties  # noqa: E402

from .config import ConverterConfig  # noqa: E402
from .images import ImageDecodeError, decode_png  # noqa: E402
from .model import RenderedImage  # noqa: E402
from .state import Rasterizers, no_diagram, no_formula  # noqa: E402

logger = logging.getLogger(__name__)

rcParams["mathtext.fontset"] = "stix"

# matplotlib's mathtext parser is shared module state and not thread-safe.
_MATHTEXT_LOCK = threading.Lock()

SCREEN_DPI = 96
DISPLAY_SCALE = 1.2

_MATHTEXT_REWRITES = (
    (re.compile(r"\\text\s*\{"), r"\\mathrm{"),
    (re.compile(r"\\(?:left|right)(?=[()\[\]|.])"), ""),
    (re.compile(r"\\varkappa"), r"\\kappa"),
    (re.compile(r"\\omicron"), "o"),
)


def to_mathtext(source: str) -> str:
    """Adapt LaTeX source to the subset mathtext understands."""
    expr = " ".join(source.split())
    for pattern, replacement in _MATHTEXT_REWRITES:
        expr = pattern.sub(replacement, expr)
    return expr


class MathTextRenderer:
    def __init__(self, dpi: int = 200, font_size_pt: float = 12) -> None:
        self.dpi = dpi
        self.font_size_pt = font_size_pt

    async def __call__(self, source: str, display: bool = False) -> Optional[RenderedImage]:
        return await asyncio.to_thread(self.render, source, display)

    def render(self, source: str, display: bool = False) -> Optional[RenderedImage]:
        expr = to_mathtext(source)
        if not expr:
            return None
        size = self.font_size_pt * (DISPLAY_SCALE if display else 1.0)
        buffer = io.BytesIO()
        try:
            with _MATHTEXT_LOCK:
                mathtext.math_to_image(f"${expr}$", buffer, prop=FontProperties(size=size), dpi=self.dpi, format="png")
        except (ValueError, RuntimeError) as exc:
            logger.warning("mathtext could not render %r: %s", source, exc)
            return None
        try:
            return decode_png(buffer.getvalue(), scale=SCREEN_DPI / self.dpi)
        except ImageDecodeError as exc:
            logger.warning("mathtext produced an unreadable image for %r: %s", source, exc)
            return None


class MermaidRenderer:
    def __init__(
        self,
        cli: str | None = "mmdc",
        ink_url: str = "https://mermaid.ink/img/",
        timeout: float | None = 30.0,
        scale: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.cli = cli
        self.ink_url = ink_url
        self.timeout = timeout
        self.scale = scale
        self.transport = transport

    async def __call__(self, source: str) -> Optional[RenderedImage]:
        executable = shutil.which(self.cli) if self.cli else None
        if executable:
            image = await self.render_cli(executable, source)
            if image is not None:
                return image
        return await self.render_remote(source)

    async def render_cli(self, executable: str, source: str) -> Optional[RenderedImage]:
        with tempfile.TemporaryDirectory() as tmp:
            src_path = Path(tmp) / "diagram.mmd"
            out_path = Path(tmp) / "diagram.png"
            src_path.write_text(source, encoding="utf-8")
            proc = await asyncio.create_subprocess_exec(
                executable,
                "-i", str(src_path),
                "-o", str(out_path),
                "-s", str(self.scale),
                "-b", "white",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                _, stderr = await proc.communicate()
            finally:
                # a timeout or cancellation must not leave the CLI (and its browser) running
                if proc.returncode is None:
                    proc.kill()
                    await proc.wait()
            if proc.returncode != 0 or not out_path.exists():
                logger.warning("Mermaid CLI failed: %s", stderr.decode("utf-8", errors="replace").strip())
                return None
            data = out_path.read_bytes()
        try:
            return decode_png(data, scale=1 / self.scale)
        except ImageDecodeError as exc:
            logger.warning("Mermaid CLI produced an unreadable image: %s", exc)
            return None

    async def render_remote(self, source: str) -> Optional[RenderedImage]:
        encoded = base64.urlsafe_b64encode(source.encode("utf-8")).decode("ascii").rstrip("=")
        url = f"{self.ink_url}{encoded}?type=png"
        timeout = httpx.Timeout(self.timeout) if self.timeout else httpx.Timeout(None)
        try:
            async with httpx.AsyncClient(follow_redirects=True, timeout=timeout, transport=self.transport) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except (httpx.TimeoutException, httpx.HTTPError) as exc:
            logger.warning("mermaid.ink request failed: %s", exc)
            return None
        try:
            return decode_png(resp.content)
        except ImageDecodeError as exc:
            logger.warning("mermaid.ink returned an unreadable image: %s", exc)
            return None


def default_rasterizers(config: ConverterConfig | None = None) -> Rasterizers:
    config = config or ConverterConfig()
    return Rasterizers(
        render_diagram=(
            MermaidRenderer(cli=config.mermaid_cli or None, ink_url=config.mermaid_ink_url, timeout=config.render_timeout)
            if config.enable_diagrams
            else no_diagram
        ),
        render_formula=(
            MathTextRenderer(dpi=config.formula_dpi, font_size_pt=config.formula_font_size_pt)
            if config.enable_math
            else no_formula
        ),
    )
