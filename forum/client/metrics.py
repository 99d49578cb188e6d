from dataclasses import dataclass
from typing import List
from forum.client import constants


@dataclass(frozen=True)
class NodeDimensions:
    width: float
    height: float
    radius: float


def estimate_text_width(text: str, font_size: float = constants.FONT_SIZE) -> float:
    return len(text) * font_size * constants.CHAR_WIDTH_RATIO


def wrap_text(text: str, max_chars: int = constants.MAX_CHARS_PER_LINE, expanded: bool = False) -> List[str]:
    """Greedy word wrap; collapsed nodes keep MAX_LINES lines with an ellipsis."""
    lines: List[str] = []
    current = ""
    for word in text.split(" "):
        if len(current + word) <= max_chars:
            current += (" " if current else "") + word
        else:
            if current:
                lines.append(current)
            current = word
    if current:
        lines.append(current)

    if expanded or len(lines) <= constants.MAX_LINES:
        return lines
    lines = lines[:constants.MAX_LINES]
    lines[-1] = lines[-1][:max_chars - 3] + "..."
    return lines


def calculate_node_dimensions(text: str, expanded: bool = False) -> NodeDimensions:
    lines = wrap_text(text, constants.MAX_CHARS_PER_LINE, expanded)
    longest = max(lines, key=len, default="")
    text_width = estimate_text_width(longest)

    max_width = constants.MAX_NODE_WIDTH * (constants.EXPANDED_WIDTH_FACTOR if expanded else 1)
    min_width = constants.MIN_NODE_WIDTH * (constants.EXPANDED_MIN_WIDTH_FACTOR if expanded else 1)
    width = max(min_width, min(max_width, text_width + constants.NODE_PADDING * 2))
    height = max(constants.NODE_HEIGHT, len(lines) * constants.LINE_HEIGHT + constants.NODE_PADDING * 2)
    padding = constants.EXPANDED_RADIUS_PADDING if expanded else constants.RADIUS_PADDING
    return NodeDimensions(width=width, height=height, radius=max(width, height) / 2 + padding)


def node_color(node) -> str:
    if node.type == "prompt":
        return constants.PROMPT_COLOR
    return constants.PERSONA_COLORS.get(node.persona.value, constants.DEFAULT_COLOR)
