from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

A4_WIDTH_TWIPS = 11906
A4_HEIGHT_TWIPS = 16838


@dataclass(frozen=True)
class ConverterConfig:
    # Fonts and text
    latin_font: str = "Calibri"
    east_asian_font: str = "Microsoft YaHei"
    code_font: str = "Courier New"
    emoji_font: str = "Segoe UI Emoji"
    font_size_pt: float = 11.0
    code_font_size_pt: float = 10.0
    table_font_size_pt: float = 9.0
    text_color: str = "374151"
    h1_color: str = "2E74B5"
    h2_color: str = "1F4D78"
    h3_color: str = "428BCA"
    h4_color: str = "374151"
    link_color: str = "2563EB"
    code_background: str = "F5F5F5"
    table_header_background: str = "F3F4F6"
    table_row_odd_background: str = "FFFFFF"
    table_row_even_background: str = "FAFAFA"
    border_color: str = "E5E7EB"

    # Page
    page_margin_twips: int = 720

    # Diagrams
    diagram_language: str = "mermaid"
    diagram_max_width_px: float = 600.0
    diagram_min_width_px: float = 400.0
    auto_fence_diagrams: bool = False

    # Tables
    narrow_column_units: int = 4
    narrow_column_width_twips: int = 1000

    # Math heuristics
    math_trigger_threshold: int = 3
    math_span_ceiling: int = 200

    # Rasterization
    diagram_cache_size: int = 100
    formula_cache_size: int = 200
    render_timeout: float | None = 30.0
    formula_dpi: int = 200
    formula_font_size_pt: float = 12.0
    mermaid_cli: str = "mmdc"
    mermaid_ink_url: str = "https://mermaid.ink/img/"
    enable_diagrams: bool = True
    enable_math: bool = True

    @property
    def printable_width_twips(self) -> int:
        """Usable A4 width between the left and right margins."""
        return A4_WIDTH_TWIPS - 2 * self.page_margin_twips


def parse_config(text: str, base: ConverterConfig | None = None) -> ConverterConfig:
    """Parse YAML settings on top of ``base`` (or the defaults)."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ConfigError("YAML root must be a mapping of setting names to values.")
    return _apply_settings(base or ConverterConfig(), data)


def load_config(path: str | Path) -> ConverterConfig:
    path = Path(path)
    return parse_config(path.read_text(encoding="utf-8"))


def _apply_settings(config: ConverterConfig, data: dict[str, Any]) -> ConverterConfig:
    known = {f.name: f for f in fields(ConverterConfig)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(unknown)}")

    updates: dict[str, Any] = {}
    for key, value in data.items():
        current = getattr(config, key)
        updates[key] = _coerce(key, value, current)
    return replace(config, **updates)


def _coerce(key: str, value: Any, current: Any) -> Any:
    if value is None:
        if key == "render_timeout":
            return None
        raise ConfigError(f"Setting '{key}' cannot be empty.")
    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"Setting '{key}' must be true or false.")
        return value
    if isinstance(current, (int, float)) and not isinstance(current, bool):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"Setting '{key}' must be a number.")
        if isinstance(current, int) and isinstance(value, float) and not value.is_integer():
            raise ConfigError(f"Setting '{key}' must be a whole number.")
        return type(current)(value)
    if key == "render_timeout":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError("Setting 'render_timeout' must be a number of seconds.")
        return float(value)
    return str(value)
