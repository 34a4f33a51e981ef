"""
HTML rewriter: route <img> and <figure><img></figure> markup through the edge provider.

A single forward scan collects (start, end, replacement) spans against the
original string; the string is then rebuilt once. Existing <picture>
elements, including our own sizing containers, are protected: nothing
inside them is touched, which is what makes rewrite() idempotent. Captions
moved out of a figure stay attached to the container before them, and in
standalone context an already processed first image ends the pass.

Per element, failures never escape: an element that cannot be rewritten
(no src, unresolved dimensions, already processed, ...) is left exactly as
it was and the scan moves on.
"""

import html
import logging
import re
from enum import Enum
from fnmatch import fnmatch
from pathlib import PurePosixPath
from typing import List, Optional, Sequence, Tuple, Union
from urllib.parse import urlsplit

from .args import MAX_DIMENSION, TransformArgs, canonicalize, parse_args
from .dimensions import SIZE_SUFFIX_RE, DimensionResolver, Dimensions
from .errors import AlreadyTransformed, MalformedMarkup, UnresolvedDimensions, UnsupportedSource
from .markup import (
    FIGCAPTION_RE,
    FIGURE_RE,
    IMG_TAG_RE,
    PICTURE_RE,
    Attributes,
    ImageElement,
    add_classes,
    class_list,
    find_elements,
    find_spans,
    render_tag,
    splice,
    split_element,
)
from .providers import Provider
from .srcset import SrcsetTransformer, is_vector

logger = logging.getLogger(__name__)

PROCESSED_CLASS = "edge-images-processed"
IMG_CLASS = "edge-images-img"
CONTAINER_CLASS = "edge-images-container"

# attributes that describe the box, not a transformation
DIMENSION_KEYS = {"w", "h"}

# a <figcaption> directly after a container, where rewrite_figure puts it
CAPTION_AFTER_RE = re.compile(r"\s*" + FIGCAPTION_RE.pattern, re.IGNORECASE | re.DOTALL)

Span = Tuple[int, int]
Replacement = Tuple[int, int, str]


class RewriteContext(Enum):
    STANDALONE_IMAGE = "standalone-image"
    BLOCK_CONTENT = "block-content"


class TransformedImage:
    __slots__ = ("tag", "dimensions", "args")

    def __init__(self, tag: str, dimensions: Dimensions, args: TransformArgs) -> None:
        self.tag = tag
        self.dimensions = dimensions
        self.args = args


def _inside(offset: int, spans: Sequence[Span]) -> bool:
    return any(start <= offset < end for start, end in spans)


def _contains_span(outer: Span, spans: Sequence[Span]) -> bool:
    return any(outer[0] <= start and end <= outer[1] for start, end in spans)


def default_sizes(dimensions: Dimensions) -> str:
    return f"(max-width: {dimensions.width}px) 100vw, {dimensions.width}px"


class Rewriter:
    def __init__(
        self,
        provider: Provider,
        transformer: SrcsetTransformer,
        resolver: DimensionResolver,
        *,
        wrap_in_picture: bool = True,
        content_width: Optional[int] = None,
        strip_size_suffix: bool = True,
        sizes_map: Sequence[Tuple[str, str]] = (),
        default_sizes: Optional[str] = None,
    ) -> None:
        self.provider = provider
        self.transformer = transformer
        self.resolver = resolver
        self.wrap_in_picture = wrap_in_picture
        self.content_width = content_width
        self.strip_size_suffix = strip_size_suffix
        self.sizes_map = list(sizes_map)
        self.default_sizes = default_sizes

    # ---------- Scanning ----------

    def rewrite(self, content: str, context: Union[RewriteContext, str] = RewriteContext.BLOCK_CONTENT) -> str:
        """Return content with image markup rewritten; unchanged if there is nothing to do."""
        if not content or "<img" not in content.lower():
            return content
        context = RewriteContext(context)
        return splice(content, self.plan(content, context))

    def candidates(self, content: str) -> List[ImageElement]:
        """Image-bearing elements outside any container, in document order."""
        return self.scan(content)[0]

    def scan(self, content: str) -> Tuple[List[ImageElement], List[Span]]:
        """(candidates, protected spans); protected spans are containers and what they own."""
        protected: List[Span] = []
        for picture in find_elements(PICTURE_RE, content):
            protected.append((picture.offset, picture.end))
            if CONTAINER_CLASS in class_list(picture.attributes.get("class")):
                # captions moved out of a figure belong to the container before them
                pos = picture.end
                m = CAPTION_AFTER_RE.match(content, pos)
                while m:
                    protected.append((m.start(), m.end()))
                    pos = m.end()
                    m = CAPTION_AFTER_RE.match(content, pos)

        figures: List[ImageElement] = []
        for figure in find_elements(FIGURE_RE, content):
            span = (figure.offset, figure.end)
            if _inside(figure.offset, protected):
                continue
            if _contains_span(span, protected) or "<picture" in figure.source.lower():
                protected.append(span)
                continue
            if IMG_TAG_RE.search(figure.source):
                figures.append(figure)

        claimed = protected + [(f.offset, f.end) for f in figures]
        images = [img for img in find_elements(IMG_TAG_RE, content) if not _inside(img.offset, claimed)]
        return sorted(figures + images, key=lambda el: el.offset), sorted(protected)

    def plan(self, content: str, context: RewriteContext) -> List[Replacement]:
        elements, protected = self.scan(content)
        if context is RewriteContext.STANDALONE_IMAGE:
            # only the first image-bearing element counts, even if it is already done
            if not elements or (protected and protected[0][0] < elements[0].offset):
                return []
            elements = elements[:1]

        replacements: List[Replacement] = []
        for element in elements:
            try:
                if element.tag_name == "figure":
                    new = self.rewrite_figure(element)
                else:
                    new = self.rewrite_image(element)
            except (AlreadyTransformed, MalformedMarkup, UnresolvedDimensions, UnsupportedSource) as e:
                logger.debug("left <%s> at %d unchanged: %s", element.tag_name, element.offset, e)
            else:
                if new != element.source:
                    replacements.append((element.offset, element.end, new))
        return replacements

    # ---------- Elements ----------

    def rewrite_image(self, element: ImageElement) -> str:
        image = self.transform_img(element)
        if not self.wrap_in_picture:
            return image.tag
        return self.container(image.tag, image.dimensions, image.args)

    def rewrite_figure(self, figure: ImageElement) -> str:
        opening, inner, closing = split_element(figure.source)
        # caption images are never the figure's image
        caption_spans = find_spans(FIGCAPTION_RE, inner)
        match = next((m for m in IMG_TAG_RE.finditer(inner) if not _inside(m.start(), caption_spans)), None)
        img = next(find_elements(IMG_TAG_RE, match.group(0)), None) if match else None
        if img is None:
            raise MalformedMarkup("figure without a usable <img>")

        image = self.transform_img(img)
        inner = inner[:match.start()] + image.tag + inner[match.end():]
        if not self.wrap_in_picture:
            return opening + inner + closing

        captions = [m.group(0) for m in FIGCAPTION_RE.finditer(inner)]
        inner = FIGCAPTION_RE.sub("", inner).strip()

        extra = class_list(figure.attributes.get("class"))
        align = figure.attributes.get("data-align") or figure.attributes.get("align")
        if align:
            extra.append(f"align{align.strip().lower()}")
        return self.container(inner, image.dimensions, image.args, extra) + "".join(captions)

    def transform_img(self, element: ImageElement) -> TransformedImage:
        """Rewritten <img> tag with provider src, srcset, sizes and dimensions."""
        attrs: Attributes = dict(element.attributes)
        src = (attrs.get("src") or "").strip()
        if not src:
            raise MalformedMarkup("<img> without src")
        if PROCESSED_CLASS in class_list(attrs.get("class")):
            raise AlreadyTransformed("already processed")
        if self.provider.is_transformed(src):
            raise AlreadyTransformed(f"src already transformed: {src}")
        if is_vector(src):
            raise UnsupportedSource(f"vector source: {src}")

        dims = self.resolver.resolve(attrs)
        if dims is None:
            raise UnresolvedDimensions(f"no dimensions for {src}")
        dims = dims.constrain(self.content_width)

        args, consumed = self.extract_transform_args(attrs)
        for name in consumed:
            del attrs[name]

        full_src = self.full_size_url(src)
        box = dims.bounded(MAX_DIMENSION)
        src_args = self.provider.default_args().merge(args, {"w": box.width, "h": box.height, "dpr": 1})
        sizes = attrs.get("sizes") or self.sizes_for(full_src, dims)

        attrs["src"] = self.provider.build_url(full_src, src_args)
        srcset = self.transformer.transform(full_src, dims, sizes, args)
        if srcset:
            attrs["srcset"] = srcset
        else:
            attrs.pop("srcset", None)
        attrs["sizes"] = sizes
        attrs["width"] = str(dims.width)
        attrs["height"] = str(dims.height)
        attrs["class"] = add_classes(attrs.get("class"), IMG_CLASS, PROCESSED_CLASS)

        tag = render_tag("img", attrs, element.self_closing)
        return TransformedImage(tag, dims, src_args)

    # ---------- Helpers ----------

    @staticmethod
    def extract_transform_args(attrs: Attributes) -> Tuple[TransformArgs, List[str]]:
        """Transformation arguments carried as attributes (fit="contain", quality="60", ...)."""
        raw = {}
        consumed: List[str] = []
        for name, value in attrs.items():
            key = canonicalize(name)
            if key is None or key in DIMENSION_KEYS:
                continue
            consumed.append(name)
            raw[name] = value
        return parse_args(raw), consumed

    def full_size_url(self, src: str) -> str:
        """Drop any provider transformation and a -WxH size suffix from the filename."""
        src = self.provider.strip_transformation(src)
        if not self.strip_size_suffix:
            return src
        parts = urlsplit(src)
        m = SIZE_SUFFIX_RE.search(parts.path)
        if not m:
            return src
        path = parts.path[:m.start()] + PurePosixPath(parts.path).suffix
        return parts._replace(path=path).geturl()

    def sizes_for(self, src: str, dimensions: Dimensions) -> str:
        basename = PurePosixPath(urlsplit(src).path).name
        for pattern, sizes in self.sizes_map:
            if fnmatch(basename, pattern):
                return sizes
        return self.default_sizes or default_sizes(dimensions)

    def container(self, inner: str, dimensions: Dimensions, args: TransformArgs,
                  extra_classes: Sequence[str] = ()) -> str:
        """Sizing container fixing the aspect ratio and maximum width."""
        classes = add_classes(CONTAINER_CLASS, *extra_classes)
        fit = args.get("fit")
        if fit == "contain":
            classes = add_classes(classes, "contain")
        elif fit in (None, "cover"):
            classes = add_classes(classes, "cover")
        rw, rh = dimensions.reduced()
        style = f"aspect-ratio: {rw}/{rh}; --max-width: {dimensions.width}px;"
        return f'<picture class="{html.escape(classes, quote=True)}" style="{style}">{inner}</picture>'
