"""Wire settings to the provider, planner, transformer, resolver and rewriter."""

import logging
from typing import Any, Mapping, Optional, Union

from .args import parse_args
from .config import Settings
from .dimensions import DimensionResolver, Dimensions, SizeRegistry
from .preloads import preload_link
from .providers import Provider, get_provider
from .rewriter import RewriteContext, Rewriter
from .srcset import SrcsetTransformer
from .widths import WidthPolicy

logger = logging.getLogger(__name__)

DimensionsLike = Union[Dimensions, Mapping[str, Any], tuple, None]


def as_dimensions(value: DimensionsLike) -> Optional[Dimensions]:
    """Accept Dimensions, (w, h) or {"width": w, "height": h}; None when unusable."""
    if isinstance(value, Dimensions):
        return value
    if isinstance(value, Mapping):
        return Dimensions.coerce(value.get("width"), value.get("height"))
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return Dimensions.coerce(value[0], value[1])
    return None


class Pipeline:
    """
    One configured instance of the image pipeline.
    Holds no mutable state after construction; safe to share across threads.
    """

    def __init__(self, settings: Optional[Settings] = None, registry: Optional[SizeRegistry] = None,
                 provider: Optional[Provider] = None) -> None:
        self.settings = settings or Settings()
        s = self.settings
        self.provider = provider or get_provider(
            s.provider_kind, domain=s.domain, subdomain=s.subdomain, default_quality=s.default_quality,
        )
        self.policy = WidthPolicy(s.multipliers, s.min_width, s.max_width, s.max_gap)
        self.transformer = SrcsetTransformer(self.provider, self.policy)
        self.resolver = DimensionResolver(
            registry or SizeRegistry(s.image_sizes),
            media_root=s.media_root,
            site_url=s.site_url,
            max_file_bytes=s.max_file_bytes,
            read_timeout=s.file_read_timeout,
        )
        self.rewriter = Rewriter(
            self.provider,
            self.transformer,
            self.resolver,
            wrap_in_picture=s.wrap_in_picture,
            content_width=s.content_width,
            strip_size_suffix=s.strip_size_suffix,
            sizes_map=s.sizes_map,
            default_sizes=s.default_sizes,
        )
        logger.debug("pipeline ready: %r", self.provider)

    def rewrite(self, content: str, context: Union[RewriteContext, str] = RewriteContext.BLOCK_CONTENT) -> str:
        return self.rewriter.rewrite(content, context)

    def build_transformed_url(self, path: str, args: Optional[Mapping[str, Any]] = None) -> str:
        """Provider URL for path with raw args over the provider defaults."""
        if not path or self.provider.is_transformed(path):
            return path
        return self.provider.build_url(path, self.provider.default_args().merge(parse_args(args)))

    def build_srcset(self, source_url: str, dimensions: DimensionsLike, sizes: str = "",
                     extra_args: Optional[Mapping[str, Any]] = None) -> str:
        return self.transformer.transform(source_url, as_dimensions(dimensions), sizes, extra_args)

    def preload_link(self, source_url: str, dimensions: DimensionsLike, sizes: str = "",
                     extra_args: Optional[Mapping[str, Any]] = None) -> str:
        return preload_link(self.transformer, source_url, as_dimensions(dimensions), sizes, extra_args)
