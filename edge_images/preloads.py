"""<link rel="preload"> tags for hero images, built from the same srcset as the <img>."""

import html
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .args import MAX_DIMENSION, TransformArgs, parse_args
from .dimensions import Dimensions
from .srcset import SrcsetTransformer


def preload_link(
    transformer: SrcsetTransformer,
    source_url: str,
    dimensions: Optional[Dimensions],
    sizes: str,
    extra_args: Optional[Mapping[str, Any]] = None,
) -> str:
    """A preload tag for one image, or "" when no srcset can be built for it."""
    args = extra_args if isinstance(extra_args, TransformArgs) else parse_args(extra_args)
    srcset = transformer.transform(source_url, dimensions, sizes, args)
    if not srcset:
        return ""
    provider = transformer.provider
    box = dimensions.bounded(MAX_DIMENSION)
    href = provider.build_url(
        source_url,
        provider.default_args().merge(args, {"w": box.width, "h": box.height}),
    )
    return (
        f'<link rel="preload" as="image" href="{html.escape(href, quote=True)}"'
        f' imagesrcset="{html.escape(srcset, quote=True)}"'
        f' imagesizes="{html.escape(sizes, quote=True)}">'
    )


def preload_links(transformer: SrcsetTransformer,
                  images: Iterable[Tuple[str, Dimensions, str]]) -> str:
    """Newline-joined preload tags for (url, dimensions, sizes) triples, skipping unusable ones."""
    tags: List[str] = []
    for url, dims, sizes in images:
        tag = preload_link(transformer, url, dims, sizes)
        if tag:
            tags.append(tag)
    return "\n".join(tags)
