"""
Transformation argument model.

Raw key/value pairs (from callers or from <img> attributes) are mapped to
short canonical keys, validated per key and normalized. Anything unknown
or invalid is dropped and logged; nothing here raises to the caller except
validate(), whose RejectedArgument is caught by parse_args().
"""

import logging
import re
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .errors import RejectedArgument

logger = logging.getLogger(__name__)

# canonical key -> long-form aliases
ALIASES: Dict[str, Tuple[str, ...]] = {
    "w": ("width",),
    "h": ("height",),
    "dpr": ("device-pixel-ratio", "device_pixel_ratio"),
    "fit": ("fit-mode",),
    "g": ("gravity",),
    "q": ("quality",),
    "f": ("format",),
    "blur": (),
    "sharpen": (),
    "brightness": (),
    "contrast": (),
    "gamma": (),
    "trim": (),
    "background": ("bg",),
    "border": (),
    "pad": ("padding",),
    "rotate": ("rotation",),
    "flip": (),
    "metadata": ("metadata-policy",),
    "onerror": ("error-policy",),
    "anim": ("animation",),
}


def _build_name_lookup(aliases: Dict[str, Tuple[str, ...]]) -> Dict[str, str]:
    lookup: Dict[str, str] = {}
    for canonical, names in aliases.items():
        lookup[canonical] = canonical
        for name in names:
            lookup[name] = canonical
    return lookup


# any accepted name -> canonical key; built once
NAME_TO_CANONICAL: Dict[str, str] = _build_name_lookup(ALIASES)
CANONICAL_KEYS = frozenset(ALIASES)

FIT_MODES = ("scale-down", "contain", "cover", "crop", "pad")
GRAVITIES = ("auto", "north", "south", "east", "west", "center", "left", "right")
FORMATS = ("auto", "webp", "json", "jpeg", "png", "gif", "avif")
FLIPS = ("h", "v", "hv")
METADATA_POLICIES = ("keep", "copyright", "none")
ERROR_POLICIES = ("redirect", "404")
NAMED_COLORS = (
    "black", "white", "transparent", "red", "green", "blue",
    "yellow", "orange", "purple", "gray", "grey", "silver",
)

GRAVITY_SYNONYMS = {"top": "north", "bottom": "south", "left": "west", "right": "east"}
FORMAT_SYNONYMS = {"jpg": "jpeg"}
VALUE_SYNONYMS: Dict[str, Dict[str, str]] = {"g": GRAVITY_SYNONYMS, "f": FORMAT_SYNONYMS}

INT_RE = re.compile(r"^[+-]?\d+$")
NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
HEX_COLOR_RE = re.compile(r"^#?[0-9a-f]{3,8}$", re.IGNORECASE)
RGB_COLOR_RE = re.compile(
    r"^rgb\(\s*\d{1,3}\s*,\s*\d{1,3}\s*,\s*\d{1,3}\s*\)$"
    r"|^rgba\(\s*\d{1,3}\s*,\s*\d{1,3}\s*,\s*\d{1,3}\s*,\s*(\d+(\.\d*)?|\.\d+)\s*\)$",
    re.IGNORECASE,
)
# largest w/h a provider accepts
MAX_DIMENSION = 5000

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}

Validator = Callable[[str, Any], Any]

# ---------- Validators ----------


def _to_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise RejectedArgument(key, value, "not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and INT_RE.match(value.strip()):
        return int(value.strip())
    raise RejectedArgument(key, value, "not an integer")


def _int_range(lo: int, hi: int) -> Validator:
    def check(key: str, value: Any) -> int:
        n = _to_int(key, value)
        if not lo <= n <= hi:
            raise RejectedArgument(key, value, f"outside [{lo}, {hi}]")
        return n
    return check


def _number_range(lo: float, hi: float) -> Validator:
    def check(key: str, value: Any) -> float:
        if isinstance(value, bool):
            raise RejectedArgument(key, value, "not a number")
        if isinstance(value, (int, float)):
            n = float(value)
        elif isinstance(value, str) and NUMBER_RE.match(value.strip()):
            n = float(value.strip())
        else:
            raise RejectedArgument(key, value, "not a number")
        if not lo <= n <= hi:
            raise RejectedArgument(key, value, f"outside [{lo}, {hi}]")
        return n
    return check


def _enum(choices: Tuple[str, ...], synonyms: Optional[Dict[str, str]] = None) -> Validator:
    allowed = set(choices) | set(synonyms or ())

    def check(key: str, value: Any) -> str:
        if isinstance(value, bool):
            raise RejectedArgument(key, value, "not a string")
        if isinstance(value, int):
            value = str(value)
        if not isinstance(value, str) or value.strip().lower() not in allowed:
            raise RejectedArgument(key, value, f"expected one of {sorted(allowed)}")
        return value.strip().lower()
    return check


def _rotation(key: str, value: Any) -> int:
    n = _to_int(key, value)
    if n % 90 != 0 or abs(n) > 360:
        raise RejectedArgument(key, value, "must be a multiple of 90 within +/-360")
    return n


def _color(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise RejectedArgument(key, value, "not a color")
    s = value.strip()
    if HEX_COLOR_RE.match(s) or RGB_COLOR_RE.match(s) or s.lower() in NAMED_COLORS:
        return s
    raise RejectedArgument(key, value, "not a color")


def _flag(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUTHY:
        return True
    if text in FALSY:
        return False
    raise RejectedArgument(key, value, "not a boolean")


VALIDATORS: Dict[str, Validator] = {
    "w": _int_range(1, MAX_DIMENSION),
    "h": _int_range(1, MAX_DIMENSION),
    "dpr": _int_range(1, 3),
    "fit": _enum(FIT_MODES),
    "g": _enum(GRAVITIES, GRAVITY_SYNONYMS),
    "q": _int_range(1, 100),
    "f": _enum(FORMATS, FORMAT_SYNONYMS),
    "blur": _int_range(1, 10),
    "sharpen": _int_range(1, 10),
    "brightness": _int_range(-100, 100),
    "contrast": _int_range(-100, 100),
    "gamma": _int_range(1, 100),
    "trim": _int_range(1, 100),
    "background": _color,
    "border": _int_range(1, 100),
    "pad": _number_range(0.0, 1.0),
    "rotate": _rotation,
    "flip": _enum(FLIPS),
    "metadata": _enum(METADATA_POLICIES),
    "onerror": _enum(ERROR_POLICIES),
    "anim": _flag,
}

# ---------- Public operations ----------


def canonicalize(name: Any) -> Optional[str]:
    """Return the canonical key for a raw name or alias, None if unknown."""
    if not isinstance(name, str):
        return None
    name = name.strip().lower()
    if name.startswith("data-"):
        name = name[len("data-"):]
    return NAME_TO_CANONICAL.get(name)


def validate(key: str, raw_value: Any) -> Any:
    """Check raw_value against the rule for canonical key; raise RejectedArgument."""
    validator = VALIDATORS.get(key)
    if validator is None:
        raise RejectedArgument(key, raw_value, "unknown key")
    if raw_value is None:
        raise RejectedArgument(key, raw_value, "empty")
    return validator(key, raw_value)


def normalize(key: str, value: Any) -> Any:
    """Apply value-level remapping; return None for empty results."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        synonyms = VALUE_SYNONYMS.get(key)
        if synonyms:
            value = synonyms.get(value, value)
        if key == "background" and HEX_COLOR_RE.match(value):
            value = "#" + value.lstrip("#").lower()
    return value


class TransformArgs(Mapping):
    """Immutable mapping of canonical key -> validated value."""

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(values or {})

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self.items_sorted())
        return f"TransformArgs({inner})"

    def merge(self, *others: Mapping) -> "TransformArgs":
        """
        Return a new instance with `others` layered on top, later ones winning.
        Values in `others` are trusted to be canonical and validated.
        """
        values = dict(self._values)
        for other in others:
            if other:
                values.update(other)
        return TransformArgs(values)

    def without(self, *keys: str) -> "TransformArgs":
        return TransformArgs({k: v for k, v in self._values.items() if k not in keys})

    def items_sorted(self) -> List[Tuple[str, Any]]:
        return sorted(self._values.items())


def parse_args(raw: Optional[Mapping[str, Any]] = None, **extra: Any) -> TransformArgs:
    """
    Build TransformArgs from raw caller pairs.
    Unknown keys and rejected values are dropped. A canonical spelling
    beats an alias for the same key regardless of order.
    """
    values: Dict[str, Any] = {}
    exact = set()
    pairs = list((raw or {}).items()) + list(extra.items())

    for name, raw_value in pairs:
        key = canonicalize(name)
        if key is None:
            logger.debug("dropping unknown transform argument %r", name)
            continue
        is_canonical = name.strip().lower() == key
        if key in exact and not is_canonical:
            continue
        try:
            value = normalize(key, validate(key, raw_value))
        except RejectedArgument as e:
            logger.debug("%s", e)
            continue
        if value is None:
            continue
        values[key] = value
        if is_canonical:
            exact.add(key)

    return TransformArgs(values)
