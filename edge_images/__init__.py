"""
Route images through an edge transformation endpoint.

    >>> from edge_images import Pipeline, Settings
    >>> pipeline = Pipeline(Settings(provider="cloudflare"))
    >>> pipeline.build_transformed_url("/uploads/a.jpg", {"width": 300})
    '/cdn-cgi/image/dpr=1,f=auto,fit=cover,g=auto,q=85,w=300/uploads/a.jpg'

The module-level helpers use a pipeline configured from EDGE_IMAGES_*
environment variables.
"""

from functools import lru_cache
from typing import Any, Mapping, Optional, Union

from .args import TransformArgs, parse_args
from .config import Settings, load_sizes_map
from .dimensions import DimensionResolver, Dimensions, SizeRegistry
from .errors import (
    AlreadyTransformed,
    ConfigurationError,
    EdgeImagesError,
    MalformedMarkup,
    RejectedArgument,
    UnresolvedDimensions,
    UnsupportedSource,
)
from .pipeline import DimensionsLike, Pipeline
from .providers import ProviderKind, get_provider
from .rewriter import RewriteContext, Rewriter
from .srcset import SrcsetTransformer, is_vector
from .widths import WidthPolicy, plan_widths

__version__ = "0.1.0"


@lru_cache(maxsize=1)
def default_pipeline() -> Pipeline:
    return Pipeline(Settings.from_env())


def rewrite(content: str, context: Union[RewriteContext, str] = RewriteContext.BLOCK_CONTENT) -> str:
    return default_pipeline().rewrite(content, context)


def build_transformed_url(path: str, args: Optional[Mapping[str, Any]] = None) -> str:
    return default_pipeline().build_transformed_url(path, args)


def build_srcset(source_url: str, dimensions: DimensionsLike, sizes: str = "",
                 extra_args: Optional[Mapping[str, Any]] = None) -> str:
    return default_pipeline().build_srcset(source_url, dimensions, sizes, extra_args)


def preload_link(source_url: str, dimensions: DimensionsLike, sizes: str = "",
                 extra_args: Optional[Mapping[str, Any]] = None) -> str:
    return default_pipeline().preload_link(source_url, dimensions, sizes, extra_args)


__all__ = [
    "AlreadyTransformed",
    "ConfigurationError",
    "DimensionResolver",
    "Dimensions",
    "EdgeImagesError",
    "MalformedMarkup",
    "Pipeline",
    "ProviderKind",
    "RejectedArgument",
    "RewriteContext",
    "Rewriter",
    "Settings",
    "SizeRegistry",
    "SrcsetTransformer",
    "TransformArgs",
    "UnresolvedDimensions",
    "UnsupportedSource",
    "WidthPolicy",
    "build_srcset",
    "build_transformed_url",
    "default_pipeline",
    "get_provider",
    "is_vector",
    "load_sizes_map",
    "parse_args",
    "plan_widths",
    "preload_link",
    "rewrite",
]
