"""
Edge providers: the remote endpoints that resize images by URL convention.

The set of providers is closed (ProviderKind) and chosen once, at
configuration time, through get_provider(). Every provider can build a
transformed URL, recognise one, strip one, and supply default arguments.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, Union
from urllib.parse import quote, urlencode, urlsplit

from .args import TransformArgs, parse_args
from .errors import ConfigurationError

DEFAULT_QUALITY = 85

Params = List[Tuple[str, str]]


class ProviderKind(Enum):
    CLOUDFLARE = "cloudflare"
    ACCELERATED_DOMAINS = "accelerated_domains"
    BUNNY = "bunny"
    IMGIX = "imgix"

    @classmethod
    def from_name(cls, name: Union[str, "ProviderKind"]) -> "ProviderKind":
        if isinstance(name, cls):
            return name
        key = str(name or "").strip().lower().replace("-", "_").replace(" ", "_")
        for kind in cls:
            if kind.value == key:
                return kind
        raise ConfigurationError(
            f"unknown provider {name!r}; expected one of {[k.value for k in cls]}"
        )


def _split(url: str) -> Tuple[str, str, str]:
    """Split a URL into (origin, path, query); origin is '' for relative URLs."""
    parts = urlsplit(url)
    origin = f"{parts.scheme}://{parts.netloc}" if parts.netloc else ""
    if parts.netloc and not parts.scheme:
        origin = f"//{parts.netloc}"
    path = parts.path or "/"
    if not path.startswith("/"):
        path = "/" + path
    return origin, path, parts.query


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


class Provider:
    """Common behaviour; subclasses define the URL grammar."""

    kind: ProviderKind
    # provider parameter name per canonical key; keys absent here are not emitted
    param_names: Dict[str, str] = {}

    def __init__(self, domain: str = "", subdomain: str = "", default_quality: int = DEFAULT_QUALITY) -> None:
        self.domain = domain.rstrip("/")
        self.subdomain = subdomain.strip()
        self.default_quality = default_quality

    def __repr__(self) -> str:
        return f"{type(self).__name__}(domain={self.domain!r}, subdomain={self.subdomain!r})"

    def default_args(self) -> TransformArgs:
        return TransformArgs({
            "fit": "cover",
            "dpr": 1,
            "f": "auto",
            "g": "auto",
            "q": self.default_quality,
        })

    def build_url(self, original_path: str, args: Optional[Mapping[str, Any]] = None) -> str:
        """Return the provider URL for original_path; already transformed input is returned as is."""
        if self.is_transformed(original_path):
            return original_path
        if not isinstance(args, TransformArgs):
            args = parse_args(args)
        return self.assemble(original_path, self.serialize(args))

    def serialize(self, args: TransformArgs) -> Params:
        params: Params = []
        for key, value in self.prepare(args).items_sorted():
            params.extend(self.translate(key, value))
        return params

    def prepare(self, args: TransformArgs) -> TransformArgs:
        """Hook for providers that need to rewrite the whole argument set."""
        return args

    def translate(self, key: str, value: Any) -> Params:
        name = self.param_names.get(key)
        if name is None:
            return []
        return [(name, _format_value(value))]

    def assemble(self, original_path: str, params: Params) -> str:
        raise NotImplementedError

    def is_transformed(self, url: str) -> bool:
        raise NotImplementedError

    def strip_transformation(self, url: str) -> str:
        raise NotImplementedError


class PathSegmentProvider(Provider):
    """Providers that mark transformed URLs with a fixed path segment on the site's own host."""

    segment = ""
    keeps_query = True

    def _origin(self, origin: str) -> str:
        return origin or self.domain

    def is_transformed(self, url: str) -> bool:
        if not url:
            return False
        return self.segment in urlsplit(url).path

    def strip_transformation(self, url: str) -> str:
        if not self.is_transformed(url):
            return url
        origin, path, query = _split(url)
        path = self.strip_segment(path)
        # a segment may carry an absolute source URL
        nested = re.match(r"^/(https?:/+.*)$", path)
        if nested:
            return re.sub(r"^(https?):/+", r"\1://", nested.group(1))
        return origin + path + (f"?{query}" if query and self.keeps_query else "")

    def strip_segment(self, path: str) -> str:
        return path.replace(self.segment.rstrip("/"), "", 1)


class CloudflareProvider(PathSegmentProvider):
    """https://example.com/cdn-cgi/image/f=auto,w=300/uploads/a.jpg"""

    kind = ProviderKind.CLOUDFLARE
    segment = "/cdn-cgi/image/"
    param_names = {key: key for key in (
        "anim", "background", "blur", "border", "brightness", "contrast", "dpr",
        "f", "fit", "g", "gamma", "h", "metadata", "onerror", "pad", "q",
        "rotate", "sharpen", "trim", "w", "flip",
    )}
    OPTIONS_RE = re.compile(r"/cdn-cgi/image/[^/]*")

    def assemble(self, original_path: str, params: Params) -> str:
        if not params:
            return original_path
        origin, path, query = _split(original_path)
        options = ",".join(f"{name}={quote(value, safe='')}" for name, value in params)
        url = f"{self._origin(origin)}/cdn-cgi/image/{options}{path}"
        return f"{url}?{query}" if query else url

    def strip_segment(self, path: str) -> str:
        return self.OPTIONS_RE.sub("", path, count=1) or "/"


class AcceleratedDomainsProvider(PathSegmentProvider):
    """https://example.com/acd-cgi/img/v1/uploads/a.jpg?format=auto&width=300"""

    kind = ProviderKind.ACCELERATED_DOMAINS
    segment = "/acd-cgi/img/v1/"
    keeps_query = False
    param_names = {
        "w": "width",
        "h": "height",
        "q": "quality",
        "f": "format",
        "g": "gravity",
        "fit": "fit",
        "dpr": "dpr",
        "blur": "blur",
        "sharpen": "sharpen",
        "brightness": "brightness",
        "contrast": "contrast",
        "gamma": "gamma",
        "trim": "trim",
        "background": "background",
        "rotate": "rotate",
        "flip": "flip",
        "metadata": "metadata",
        "onerror": "onerror",
        "anim": "anim",
    }

    def assemble(self, original_path: str, params: Params) -> str:
        origin, path, _ = _split(original_path)
        url = f"{self._origin(origin)}/acd-cgi/img/v1{path}"
        return f"{url}?{urlencode(params)}" if params else url


class SubdomainProvider(Provider):
    """Providers that serve transformed images from their own host."""

    host_suffix = ""

    def __init__(self, domain: str = "", subdomain: str = "", default_quality: int = DEFAULT_QUALITY) -> None:
        super().__init__(domain, subdomain, default_quality)
        if not self.subdomain:
            raise ConfigurationError(f"{self.kind.value} requires a subdomain")

    @property
    def host(self) -> str:
        return f"{self.subdomain}{self.host_suffix}"

    def assemble(self, original_path: str, params: Params) -> str:
        _, path, _ = _split(original_path)
        url = f"https://{self.host}{path}"
        return f"{url}?{urlencode(params)}" if params else url

    def is_transformed(self, url: str) -> bool:
        if not url:
            return False
        return (urlsplit(url).hostname or "").endswith(self.host_suffix)

    def strip_transformation(self, url: str) -> str:
        if not self.is_transformed(url):
            return url
        _, path, _ = _split(url)
        return self.domain + path


class BunnyProvider(SubdomainProvider):
    """https://<subdomain>.b-cdn.net/uploads/a.jpg?height=200&quality=85&width=300"""

    kind = ProviderKind.BUNNY
    host_suffix = ".b-cdn.net"
    param_names = {
        "w": "width",
        "h": "height",
        "q": "quality",
        "blur": "blur",
        "brightness": "brightness",
        "contrast": "contrast",
        "gamma": "gamma",
    }
    GRAVITY = {"north": "north", "south": "south", "east": "east", "west": "west", "center": "center"}

    def prepare(self, args: TransformArgs) -> TransformArgs:
        # no dpr parameter: scale the box instead
        dpr = args.get("dpr", 1)
        if dpr > 1 and "w" in args:
            scaled = {"w": args["w"] * dpr}
            if "h" in args:
                scaled["h"] = args["h"] * dpr
            return args.without("dpr").merge(scaled)
        return args.without("dpr")

    def translate(self, key: str, value: Any) -> Params:
        if key == "sharpen":
            return [("sharpen", "true")]
        if key == "g":
            gravity = self.GRAVITY.get(value)
            return [("crop_gravity", gravity)] if gravity else []
        if key == "flip":
            out: Params = []
            if "v" in value:
                out.append(("flip", "true"))
            if "h" in value:
                out.append(("flop", "true"))
            return out
        return super().translate(key, value)


class ImgixProvider(SubdomainProvider):
    """https://<subdomain>.imgix.net/uploads/a.jpg?auto=format&fit=crop&w=300"""

    kind = ProviderKind.IMGIX
    host_suffix = ".imgix.net"
    param_names = {
        "w": "w",
        "h": "h",
        "q": "q",
        "dpr": "dpr",
        "blur": "blur",
        "brightness": "bri",
        "contrast": "con",
        "gamma": "gam",
        "rotate": "rot",
        "flip": "flip",
    }
    FIT = {"scale-down": "max", "contain": "clip", "cover": "crop", "crop": "crop", "pad": "fill"}
    CROP = {"north": "top", "south": "bottom", "east": "right", "west": "left", "auto": "entropy"}

    def translate(self, key: str, value: Any) -> Params:
        if key == "fit":
            return [("fit", self.FIT[value])]
        if key == "f":
            return [("auto", "format")] if value == "auto" else [("fm", value)]
        if key == "g":
            crop = self.CROP.get(value)
            return [("crop", crop)] if crop else []
        if key == "sharpen":
            return [("sharp", str(value * 10))]
        if key == "background":
            return [("bg", value.lstrip("#"))] if value.startswith("#") else []
        return super().translate(key, value)


PROVIDERS: Dict[ProviderKind, Type[Provider]] = {
    ProviderKind.CLOUDFLARE: CloudflareProvider,
    ProviderKind.ACCELERATED_DOMAINS: AcceleratedDomainsProvider,
    ProviderKind.BUNNY: BunnyProvider,
    ProviderKind.IMGIX: ImgixProvider,
}


def get_provider(
    kind: Union[str, ProviderKind],
    *,
    domain: str = "",
    subdomain: str = "",
    default_quality: int = DEFAULT_QUALITY,
) -> Provider:
    """Instantiate the configured provider."""
    cls = PROVIDERS[ProviderKind.from_name(kind)]
    return cls(domain=domain, subdomain=subdomain, default_quality=default_quality)
