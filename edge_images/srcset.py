"""Build srcset strings of provider-transformed variants."""

import logging
import re
from typing import Any, List, Mapping, Optional, Tuple

from .args import MAX_DIMENSION, TransformArgs, parse_args
from .dimensions import Dimensions
from .providers import Provider
from .widths import WidthPolicy

logger = logging.getLogger(__name__)

VECTOR_RE = re.compile(r"\.svgz?(?:$|[?#])|^data:image/svg\+xml", re.IGNORECASE)


def is_vector(url: str) -> bool:
    """SVGs scale by themselves and are never resized."""
    return bool(url) and bool(VECTOR_RE.search(url.strip()))


class SrcsetTransformer:
    def __init__(self, provider: Provider, policy: Optional[WidthPolicy] = None) -> None:
        self.provider = provider
        self.policy = policy or WidthPolicy()

    def variants(
        self,
        source_url: str,
        dimensions: Dimensions,
        extra_args: Optional[Mapping[str, Any]] = None,
    ) -> List[Tuple[int, str]]:
        """(width, url) pairs, ascending by width."""
        caller = extra_args if isinstance(extra_args, TransformArgs) else parse_args(extra_args)
        widths = self.policy.plan(dimensions.width)
        if len(widths) == 1:
            # one descriptor can only vary by resolution
            caller = caller.merge({"dpr": 2})

        base = self.provider.default_args().merge(caller)
        out: List[Tuple[int, str]] = []
        for width in widths:
            # w/h stay within the range parse_args accepts
            box = Dimensions(width, dimensions.height_for(width)).bounded(MAX_DIMENSION)
            if out and out[-1][0] >= box.width:
                continue
            args = base.merge({"w": box.width, "h": box.height})
            out.append((box.width, self.provider.build_url(source_url, args)))
        return out

    def transform(
        self,
        source_url: str,
        dimensions: Optional[Dimensions],
        sizes: str = "",
        extra_args: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        The srcset for source_url, or "" when the source is a vector, has no
        usable dimensions, or is already a transformed URL.
        `sizes` does not change the widths offered; it is accepted so callers
        can pass the same triple they render.
        """
        if not source_url or is_vector(source_url):
            return ""
        if not dimensions:
            return ""
        if self.provider.is_transformed(source_url):
            logger.debug("not building srcset for transformed url %s", source_url)
            return ""
        return ", ".join(f"{url} {width}w" for width, url in self.variants(source_url, dimensions, extra_args))
