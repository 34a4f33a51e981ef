"""Error types raised inside the image pipeline.

Only ConfigurationError reaches callers. The others are raised and caught
within a single argument or element so a rewrite pass never aborts.
"""


class EdgeImagesError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(EdgeImagesError):
    """Settings or provider selection are invalid."""


class RejectedArgument(EdgeImagesError):
    """A transformation argument failed its validator."""

    def __init__(self, key: str, value, reason: str = "") -> None:
        self.key = key
        self.value = value
        self.reason = reason
        msg = f"rejected {key}={value!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class UnresolvedDimensions(EdgeImagesError):
    """No dimension source yielded both width and height."""


class AlreadyTransformed(EdgeImagesError):
    """The URL or element has already been through the pipeline."""


class MalformedMarkup(EdgeImagesError):
    """No usable tag was found in a matched span."""


class UnsupportedSource(EdgeImagesError):
    """The source is a vector or other format that is never resized."""
