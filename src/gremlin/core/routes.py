"""
Route Model

Statically discovered routes, as produced by the file-system and config
route extractors. The merger seeds one AST-origin state per route.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class RouteSource(Enum):
    """How a route was discovered."""
    FILE_BASED = "file-based"
    CONFIG_BASED = "config-based"
    LINK_DISCOVERED = "link-discovered"


@dataclass
class Route:
    """A route or page in the application (e.g. ``/product/[id]``)."""
    path: str
    params: List[str] = field(default_factory=list)
    file_path: str = ""
    is_layout: bool = False
    is_index: bool = False
    layout_group: Optional[str] = None
    source: RouteSource = RouteSource.FILE_BASED

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Route':
        """
        Build a route from extractor JSON.

        Raises:
            ValueError: if ``path`` is missing or not a string
        """
        path = data.get('path')
        if not isinstance(path, str):
            raise ValueError(f"Route has no usable path: {data!r}")

        return cls(
            path=path,
            params=list(data.get('params') or []),
            file_path=data.get('filePath', ''),
            is_layout=bool(data.get('isLayout', False)),
            is_index=bool(data.get('isIndex', False)),
            layout_group=data.get('layoutGroup'),
            source=RouteSource(data.get('source', RouteSource.FILE_BASED.value)),
        )
