from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

HORIZONTAL_SPACE_RE = re.compile(r"[ \t\u3000\u00a0]+")
FENCE_RE = re.compile(r"^(`{3,}|~{3,})")
BARE_DIAGRAM_RE = re.compile(
    r"^(graph|flowchart|sequenceDiagram|gantt|classDiagram|stateDiagram|pie|gitGraph"
    r"|erDiagram|journey|mindmap|timeline|sankey|block|c4)"
)


def normalize_text(text: str) -> str:
    """Dedent the text and collapse horizontal whitespace outside code fences."""
    lines = _dedent(text.split("\n"))
    result: list[str] = []
    fence: str | None = None
    for line in lines:
        stripped = line.strip()
        marker = FENCE_RE.match(stripped)
        if fence is None:
            if marker:
                fence = marker.group(1)
                result.append(line)
                continue
            result.append(HORIZONTAL_SPACE_RE.sub(" ", line))
        else:
            if marker and marker.group(1)[0] == fence[0] and len(marker.group(1)) >= len(fence):
                fence = None
            result.append(line)
    return "\n".join(result)


def _dedent(lines: list[str]) -> list[str]:
    indents = [len(line) - len(line.lstrip()) for line in lines if line.strip()]
    if not indents:
        return lines
    width = min(indents)
    if width <= 0:
        return lines
    logger.debug("Removing common indentation of %d characters", width)
    return [line[width:] if len(line) >= width else line for line in lines]


def wrap_bare_diagram(text: str, language: str = "mermaid") -> str:
    """Put an unfenced diagram (e.g. a line starting with ``graph TD``) inside a code fence."""
    if f"```{language}" in text:
        return text
    lines = text.split("\n")
    start = next((idx for idx, line in enumerate(lines) if BARE_DIAGRAM_RE.match(line.strip())), None)
    if start is None:
        return text

    remaining = lines[start:]
    end = len(remaining)
    for idx, line in enumerate(remaining):
        stripped = line.strip()
        if idx > 0 and stripped.startswith("```"):
            end = idx
            break
        if idx > 2 and not stripped and not remaining[idx - 1].strip():
            end = idx
            break

    logger.info("Wrapping unfenced %s diagram starting at line %d", language, start + 1)
    wrapped = lines[:start] + [f"```{language}"] + remaining[:end] + ["```"] + remaining[end:]
    return "\n".join(wrapped)
