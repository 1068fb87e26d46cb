"""
Screen-name normalization.

Maps route paths (``/product/[id]/``) and recorded screen names onto one
identifier space so both sources can be compared as the same state:

1. leading/trailing slashes are stripped
2. an empty result becomes ``index``
3. remaining slashes become ``_``
4. ``[param]`` dynamic segments become ``:param``

The function is total and idempotent.
"""

import re

SEPARATOR = "_"
INDEX_SCREEN = "index"

_DYNAMIC_SEGMENT = re.compile(r"\[([^\]]+)\]")


def normalize_screen_name(raw: str) -> str:
    """Return the canonical state identifier for a route or screen name."""
    normalized = (raw or "").strip("/")

    if not normalized:
        return INDEX_SCREEN

    normalized = normalized.replace("/", SEPARATOR)

    # Nested brackets ("[[id]]") need more than one pass to reach a fixpoint
    while True:
        rewritten = _DYNAMIC_SEGMENT.sub(r":\1", normalized)
        if rewritten == normalized:
            return rewritten
        normalized = rewritten
