"""
Settings for the image pipeline.

Defaults can be overridden from the environment (EDGE_IMAGES_*) or a JSON
file using the field names below. An optional sizes map (JSON,
glob pattern -> sizes attribute) picks the `sizes` value per image
basename, e.g.:
  {
    "hero_*": "100vw",
    "logo_*": "120px"
  }
"""

import dataclasses
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .dimensions import DEFAULT_MAX_FILE_BYTES, DEFAULT_READ_TIMEOUT
from .errors import ConfigurationError
from .providers import ProviderKind
from .widths import (
    DEFAULT_MAX_GAP,
    DEFAULT_MAX_WIDTH,
    DEFAULT_MIN_WIDTH,
    DEFAULT_MULTIPLIERS,
)

ENV_PREFIX = "EDGE_IMAGES_"


@dataclass
class Settings:
    provider: str = ProviderKind.CLOUDFLARE.value
    domain: str = ""
    subdomain: str = ""
    default_quality: int = 85
    multipliers: Tuple[float, ...] = DEFAULT_MULTIPLIERS
    min_width: int = DEFAULT_MIN_WIDTH
    max_width: int = DEFAULT_MAX_WIDTH
    max_gap: int = DEFAULT_MAX_GAP
    wrap_in_picture: bool = True
    content_width: Optional[int] = None
    strip_size_suffix: bool = True
    media_root: Optional[str] = None
    site_url: str = ""
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    file_read_timeout: float = DEFAULT_READ_TIMEOUT
    image_sizes: Dict[str, Tuple[int, int]] = field(default_factory=dict)
    sizes_map: List[Tuple[str, str]] = field(default_factory=list)
    default_sizes: Optional[str] = None

    def __post_init__(self) -> None:
        self.provider = ProviderKind.from_name(self.provider).value
        self.multipliers = tuple(float(m) for m in self.multipliers)
        if not 1 <= self.default_quality <= 100:
            raise ConfigurationError(f"default_quality must be in [1, 100], got {self.default_quality}")
        if self.min_width < 1 or self.max_width < self.min_width:
            raise ConfigurationError(f"invalid width band [{self.min_width}, {self.max_width}]")
        if self.max_gap < 1:
            raise ConfigurationError(f"max_gap must be positive, got {self.max_gap}")
        if not self.multipliers or any(m <= 0 for m in self.multipliers):
            raise ConfigurationError(f"multipliers must be positive, got {self.multipliers}")
        if self.content_width is not None and self.content_width < 1:
            raise ConfigurationError(f"content_width must be positive, got {self.content_width}")

    @property
    def provider_kind(self) -> ProviderKind:
        return ProviderKind(self.provider)

    def replace(self, **changes: Any) -> "Settings":
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"unknown settings: {', '.join(unknown)}")
        values = dict(data)
        if isinstance(values.get("sizes_map"), Mapping):
            values["sizes_map"] = list(values["sizes_map"].items())
        try:
            if "image_sizes" in values:
                values["image_sizes"] = {k: (int(v[0]), int(v[1])) for k, v in values["image_sizes"].items()}
            return cls(**values)
        except (TypeError, ValueError, IndexError, AttributeError) as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Settings":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"could not read settings from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"settings file {path} must hold a JSON object")
        return cls.from_mapping(data)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value and value.strip() else None

        for name, key in (("PROVIDER", "provider"), ("DOMAIN", "domain"), ("SUBDOMAIN", "subdomain"),
                          ("MEDIA_ROOT", "media_root"), ("SITE_URL", "site_url"),
                          ("DEFAULT_SIZES", "default_sizes")):
            if get(name):
                values[key] = get(name)
        for name, key in (("QUALITY", "default_quality"), ("CONTENT_WIDTH", "content_width"),
                          ("MIN_WIDTH", "min_width"), ("MAX_WIDTH", "max_width"), ("MAX_GAP", "max_gap")):
            if get(name):
                values[key] = _env_int(ENV_PREFIX + name, get(name))
        if get("DISABLE_PICTURE_WRAP"):
            values["wrap_in_picture"] = not _env_bool(get("DISABLE_PICTURE_WRAP"))
        if get("SIZES_MAP"):
            values["sizes_map"] = load_sizes_map(Path(get("SIZES_MAP")))
        return cls(**values)


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _env_bool(value: str) -> bool:
    return value.lower() in {"1", "true", "yes", "on"}


def load_sizes_map(json_path: Path) -> List[Tuple[str, str]]:
    """
    Returns list of (pattern, sizes_value) pairs. Patterns are glob-style and match the basename.
    A missing or unreadable file gives an empty list; non-string entries are ignored.
    """
    if not json_path.exists():
        return []
    try:
        data = json.loads(json_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return []
    if not isinstance(data, dict):
        return []
    items = []
    for pattern, sizes in data.items():
        if isinstance(pattern, str) and isinstance(sizes, str) and pattern and sizes:
            items.append((pattern, sizes))
    return items
