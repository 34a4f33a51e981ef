"""
Image dimensions and where to find them.

Dimensions for an <img> are resolved from, in order:
  1. its width/height attributes
  2. a registered size (size name, size-<name> class, or -WxH filename suffix)
  3. the image file itself, read with Pillow (header only, bounded)
The first source yielding both width and height wins.
"""

import concurrent.futures as cf
import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import unquote, urlsplit

from PIL import Image

from .widths import round_half_up

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_BYTES = 20 * 1024 * 1024
DEFAULT_READ_TIMEOUT = 2.0

DIMENSION_RE = re.compile(r"^\s*(\d+)(?:px)?\s*$", re.IGNORECASE)
SIZE_NAME_RE = re.compile(r"^(\d+)x(\d+)$")
SIZE_CLASS_RE = re.compile(r"(?:^|\s)size-([A-Za-z0-9_-]+)")
SIZE_SUFFIX_RE = re.compile(r"-(\d+)x(\d+)\.[A-Za-z0-9]+$")


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    @classmethod
    def coerce(cls, width, height) -> Optional["Dimensions"]:
        """Build from loosely typed values ("300", "300px", 300); None if unusable."""
        w, h = _to_pixels(width), _to_pixels(height)
        if not w or not h:
            return None
        return cls(w, h)

    @property
    def ratio(self) -> float:
        return self.height / self.width

    def reduced(self) -> Tuple[int, int]:
        return reduce_ratio(self.width, self.height)

    def height_for(self, width: int) -> int:
        """Height keeping this aspect ratio at `width`."""
        return max(1, round_half_up(width * self.height / self.width))

    def constrain(self, max_width: Optional[int]) -> "Dimensions":
        """Scale down to max_width, if wider."""
        if not max_width or self.width <= max_width:
            return self
        return Dimensions(max_width, max(1, math.ceil(self.height * max_width / self.width)))

    def bounded(self, limit: int) -> "Dimensions":
        """Scale down, keeping the ratio, until neither side exceeds limit."""
        scale = min(limit / self.width, limit / self.height)
        if scale >= 1:
            return self
        return Dimensions(
            min(limit, max(1, round_half_up(self.width * scale))),
            min(limit, max(1, round_half_up(self.height * scale))),
        )


def _to_pixels(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value >= 1 else None
    m = DIMENSION_RE.match(str(value))
    if not m:
        return None
    n = int(m.group(1))
    return n if n > 0 else None


def reduce_ratio(width: int, height: int) -> Tuple[int, int]:
    """Aspect ratio in lowest terms, e.g. 1200x800 -> (3, 2)."""
    divisor = math.gcd(width, height) or 1
    return width // divisor, height // divisor


# ---------- Registered sizes ----------

SizeLookup = Callable[[str], Optional[Tuple[int, int]]]


class SizeRegistry:
    """Named sizes (thumbnail, large, ...) plus an optional external lookup."""

    def __init__(self, sizes: Optional[Mapping[str, Tuple[int, int]]] = None,
                 lookup: Optional[SizeLookup] = None) -> None:
        self._sizes: Dict[str, Dimensions] = {}
        self._lookup = lookup
        for name, (w, h) in (sizes or {}).items():
            self.register(name, w, h)

    def register(self, name: str, width: int, height: int) -> None:
        self._sizes[name] = Dimensions(int(width), int(height))

    def get(self, name: str) -> Optional[Dimensions]:
        if not name:
            return None
        if name in self._sizes:
            return self._sizes[name]
        m = SIZE_NAME_RE.match(name)
        if m:
            return Dimensions.coerce(m.group(1), m.group(2))
        if self._lookup is not None:
            found = self._lookup(name)
            if found:
                return Dimensions.coerce(*found)
        return None

    @staticmethod
    def size_names(attributes: Mapping[str, Optional[str]]) -> List[str]:
        names: List[str] = []
        if attributes.get("data-size"):
            names.append(attributes["data-size"].strip())
        names.extend(SIZE_CLASS_RE.findall(attributes.get("class") or ""))
        return names

    def lookup(self, attributes: Mapping[str, Optional[str]]) -> Optional[Dimensions]:
        for name in self.size_names(attributes):
            dims = self.get(name)
            if dims:
                return dims
        src = attributes.get("src") or ""
        m = SIZE_SUFFIX_RE.search(urlsplit(src).path)
        if m:
            return Dimensions.coerce(m.group(1), m.group(2))
        return None


# ---------- File inspection ----------

def _open_size(path: Path) -> Tuple[int, int]:
    with Image.open(path) as im:
        return im.size


def read_image_size(path: Union[str, Path], max_bytes: int = DEFAULT_MAX_FILE_BYTES,
                    timeout: float = DEFAULT_READ_TIMEOUT) -> Optional[Dimensions]:
    """
    Width and height from the image header, or None on any failure.
    Files larger than max_bytes are not opened; reads slower than timeout are abandoned.
    """
    path = Path(path)
    try:
        if not path.is_file() or path.stat().st_size > max_bytes:
            return None
    except OSError:
        return None

    executor = cf.ThreadPoolExecutor(max_workers=1)
    try:
        w, h = executor.submit(_open_size, path).result(timeout=timeout)
    except cf.TimeoutError:
        logger.debug("timed out reading %s", path)
        return None
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.debug("could not read size of %s: %s", path, e)
        return None
    finally:
        executor.shutdown(wait=False)
    return Dimensions.coerce(w, h)


class DimensionResolver:
    """Resolve an <img>'s dimensions from attributes, registered sizes, then the file."""

    def __init__(
        self,
        registry: Optional[SizeRegistry] = None,
        media_root: Optional[Union[str, Path]] = None,
        site_url: str = "",
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self.registry = registry or SizeRegistry()
        self.media_root = Path(media_root).resolve() if media_root else None
        self.site_url = site_url.rstrip("/")
        self.max_file_bytes = max_file_bytes
        self.read_timeout = read_timeout

    def from_attributes(self, attributes: Mapping[str, Optional[str]]) -> Optional[Dimensions]:
        return Dimensions.coerce(attributes.get("width"), attributes.get("height"))

    def from_registry(self, attributes: Mapping[str, Optional[str]]) -> Optional[Dimensions]:
        return self.registry.lookup(attributes)

    def from_file(self, attributes: Mapping[str, Optional[str]]) -> Optional[Dimensions]:
        path = self.local_path(attributes.get("src") or "")
        if path is None:
            return None
        return read_image_size(path, self.max_file_bytes, self.read_timeout)

    def local_path(self, src: str) -> Optional[Path]:
        """Map a site URL onto media_root; None for foreign hosts or paths escaping the root."""
        if not self.media_root or not src or src.startswith("data:"):
            return None
        if self.site_url and src.startswith(self.site_url):
            src = src[len(self.site_url):]
        parts = urlsplit(src)
        if parts.netloc:
            return None
        relative = unquote(parts.path).lstrip("/")
        if not relative:
            return None
        candidate = (self.media_root / relative).resolve()
        if self.media_root != candidate and self.media_root not in candidate.parents:
            return None
        return candidate

    def sources(self) -> Iterable[Callable[[Mapping[str, Optional[str]]], Optional[Dimensions]]]:
        return (self.from_attributes, self.from_registry, self.from_file)

    def resolve(self, attributes: Mapping[str, Optional[str]]) -> Optional[Dimensions]:
        for source in self.sources():
            dims = source(attributes)
            if dims:
                return dims
        return None
