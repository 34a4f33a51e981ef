"""
Tag and attribute handling on raw HTML strings.

No DOM is built: tags are located with regular expressions that respect
quoted attribute values, and only tags we rewrite are re-rendered.
"""

import html
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

# An opening tag whose quoted attribute values may contain '>'
_TAG_BODY = r"""(?:[^>"']|"[^"]*"|'[^']*')*"""

IMG_TAG_RE = re.compile(rf"<img\b{_TAG_BODY}>", re.IGNORECASE)
FIGURE_RE = re.compile(rf"<figure\b{_TAG_BODY}>.*?</figure\s*>", re.IGNORECASE | re.DOTALL)
PICTURE_RE = re.compile(rf"<picture\b{_TAG_BODY}>.*?</picture\s*>", re.IGNORECASE | re.DOTALL)
FIGCAPTION_RE = re.compile(rf"<figcaption\b{_TAG_BODY}>.*?</figcaption\s*>", re.IGNORECASE | re.DOTALL)
OPEN_TAG_RE = re.compile(rf"^<([A-Za-z][A-Za-z0-9-]*)({_TAG_BODY})>")
CLOSE_TAG_RE = re.compile(r"</[A-Za-z][A-Za-z0-9-]*\s*>\s*$")

ATTR_RE = re.compile(
    r"""([^\s"'<>/=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?""",
)

Attributes = Dict[str, Optional[str]]


@dataclass
class ImageElement:
    """One matched element inside a content string."""

    tag_name: str
    attributes: Attributes
    offset: int
    length: int
    self_closing: bool = False
    source: str = field(default="", repr=False)

    @property
    def end(self) -> int:
        return self.offset + self.length


def parse_attributes(body: str) -> Attributes:
    """Attributes of a tag body (the text between the tag name and '>'), names lowercased."""
    attrs: Attributes = {}
    for m in ATTR_RE.finditer(body):
        name = m.group(1).lower()
        if name in attrs:
            continue
        if m.group(2) is not None:
            value: Optional[str] = m.group(2)
        elif m.group(3) is not None:
            value = m.group(3)
        else:
            value = m.group(4)
        attrs[name] = html.unescape(value) if value is not None else None
    return attrs


def parse_tag(tag: str) -> Optional[Tuple[str, Attributes, bool]]:
    """(name, attributes, self_closing) for an opening tag, or None if malformed."""
    m = OPEN_TAG_RE.match(tag.strip())
    if not m:
        return None
    body = m.group(2)
    self_closing = body.rstrip().endswith("/")
    if self_closing:
        body = body.rstrip()[:-1]
    return m.group(1).lower(), parse_attributes(body), self_closing


def render_tag(name: str, attributes: Attributes, self_closing: bool = False) -> str:
    parts = [name]
    for key, value in attributes.items():
        if value is None:
            parts.append(key)
        else:
            parts.append(f'{key}="{html.escape(str(value), quote=True)}"')
    return "<" + " ".join(parts) + (" />" if self_closing else ">")


def find_elements(pattern: re.Pattern, content: str) -> Iterator[ImageElement]:
    """Non-overlapping matches of pattern as ImageElements (attributes from the opening tag)."""
    for m in pattern.finditer(content):
        parsed = parse_tag(m.group(0))
        if parsed is None:
            continue
        name, attrs, self_closing = parsed
        yield ImageElement(
            tag_name=name,
            attributes=attrs,
            offset=m.start(),
            length=m.end() - m.start(),
            self_closing=self_closing,
            source=m.group(0),
        )


def find_spans(pattern: re.Pattern, content: str) -> List[Tuple[int, int]]:
    return [(m.start(), m.end()) for m in pattern.finditer(content)]


def split_element(source: str) -> Tuple[str, str, str]:
    """(opening tag, inner markup, closing tag) of a whole element."""
    m = OPEN_TAG_RE.match(source)
    if not m:
        return "", source, ""
    close = CLOSE_TAG_RE.search(source)
    end = close.start() if close else len(source)
    return m.group(0), source[m.end():end], source[end:]


def class_list(value: Optional[str]) -> List[str]:
    seen: List[str] = []
    for cls in (value or "").split():
        if cls not in seen:
            seen.append(cls)
    return seen


def add_classes(value: Optional[str], *classes: str) -> str:
    current = class_list(value)
    for cls in classes:
        for c in cls.split():
            if c not in current:
                current.append(c)
    return " ".join(current)


def splice(content: str, replacements: List[Tuple[int, int, str]]) -> str:
    """
    Rebuild content with each (start, end, text) span replaced.
    Spans refer to offsets in the original content and must not overlap.
    """
    if not replacements:
        return content
    out: List[str] = []
    cursor = 0
    for start, end, text in sorted(replacements):
        if start < cursor:
            raise ValueError(f"overlapping replacement at {start}")
        out.append(content[cursor:start])
        out.append(text)
        cursor = end
    out.append(content[cursor:])
    return "".join(out)
