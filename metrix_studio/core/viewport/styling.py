"""Palette and deterministic colour assignment for rendered elements."""

# Matte, desaturated tones that stay distinct against a black canvas.
STRATEGIC_PALETTE = [
    '#6366f1',  # Indigo
    '#38bdf8',  # Sky
    '#2dd4bf',  # Teal
    '#a78bfa',  # Violet
    '#fb923c',  # Orange
    '#f472b6',  # Pink
    '#94a3b8',  # Slate
    '#e879f9',  # Fuchsia
]

BACKGROUND = '#050505'
EDGE_COLOR = '#52525b'
LABEL_COLOR = '#a1a1aa'

SELECTED_CLASS = 'selected'
HIGHLIGHT_CLASS = 'highlighted'
HUB_CLASS = 'cluster-highlight'
DIMMED_CLASS = 'dimmed'

DEFAULT_NODE_SIZE = 18
HUB_SIZE_FACTOR = 1.5
DIMMED_SIZE_FACTOR = 0.6


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def label_hash(label: str) -> int:
    """
    32-bit shift-and-subtract string hash over UTF-16 code units.

    Pure and seed-free, unlike the builtin ``hash`` for str, so the same
    label maps to the same colour in every process.
    """
    h = 0
    data = label.encode('utf-16-le')
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        h = code_unit + (_to_int32(_to_int32(h) << 5) - h)
    return h


def generate_node_color(label: str = "") -> str:
    return STRATEGIC_PALETTE[abs(label_hash(label or "")) % len(STRATEGIC_PALETTE)]