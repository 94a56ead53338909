"""A flat stream of Markdown events with source offsets."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Iterable, Iterator, Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token

_NEWLINE = re.compile(r"\r\n|\r|\n")

_TAG_NAMES = {
    "bullet_list": "list",
    "ordered_list": "list",
    "list_item": "item",
    "blockquote": "block_quote",
    "em": "emphasis",
    "s": "strikethrough",
}


class EventKind(Enum):
    """The kinds of event the stream can hold."""

    START = "start"
    END = "end"
    TEXT = "text"
    CODE = "code"
    HTML = "html"
    INLINE_HTML = "inline_html"
    SOFT_BREAK = "soft_break"
    HARD_BREAK = "hard_break"
    RULE = "rule"


@dataclass(frozen=True)
class Event:
    """One event of the stream.

    ``tag`` names the element for START and END events (``"paragraph"``,
    ``"heading"``, ``"list"``, ``"item"``, ``"link"``, ...). ``level`` is the
    heading level, ``dest_url`` the target of a link or image start. ``offset``
    is the position in the source where the event's line begins and takes no
    part in comparisons.
    """

    kind: EventKind
    tag: str | None = None
    text: str = ""
    level: int | None = None
    dest_url: str | None = None
    offset: int = field(default=0, compare=False)


@lru_cache(maxsize=1)
def _parser() -> MarkdownIt:
    md = MarkdownIt("commonmark")
    # Keep link destinations exactly as written.
    md.normalizeLink = lambda url: url  # type: ignore[method-assign]
    md.validateLink = lambda url: True  # type: ignore[method-assign]
    return md


def _line_starts(text: str) -> list[int]:
    return [0, *(match.end() for match in _NEWLINE.finditer(text))]


def _tag_name(token_type: str) -> str:
    base = token_type.rsplit("_", 1)[0]
    return _TAG_NAMES.get(base, base)


def _heading_level(token: Token) -> int | None:
    if token.type.startswith("heading"):
        return int(token.tag[1:])
    return None


class _Converter:
    """Turns markdown-it tokens into events, tracking source offsets."""

    def __init__(self, text: str) -> None:
        self._line_starts = _line_starts(text)
        self._open_offsets: list[int] = []

    def _offset(self, line: int) -> int:
        return self._line_starts[min(line, len(self._line_starts) - 1)]

    def block_events(self, tokens: Sequence[Token]) -> Iterator[Event]:
        current = 0
        for token in tokens:
            if token.map:
                current = token.map[0]
            offset = self._offset(current)

            if token.type in ("paragraph_open", "paragraph_close") and token.hidden:
                continue
            if token.nesting == 1:
                self._open_offsets.append(offset)
                yield Event(
                    EventKind.START,
                    tag=_tag_name(token.type),
                    level=_heading_level(token),
                    offset=offset,
                )
            elif token.nesting == -1:
                start = self._open_offsets.pop() if self._open_offsets else offset
                yield Event(
                    EventKind.END,
                    tag=_tag_name(token.type),
                    level=_heading_level(token),
                    offset=start,
                )
            elif token.type == "inline":
                yield from self.inline_events(token.children or [], current)
            elif token.type == "hr":
                yield Event(EventKind.RULE, offset=offset)
            elif token.type == "html_block":
                yield Event(EventKind.START, tag="html_block", offset=offset)
                yield Event(EventKind.HTML, text=token.content, offset=offset)
                yield Event(EventKind.END, tag="html_block", offset=offset)
            elif token.type in ("code_block", "fence"):
                yield Event(EventKind.START, tag="code_block", offset=offset)
                yield Event(EventKind.TEXT, text=token.content, offset=offset)
                yield Event(EventKind.END, tag="code_block", offset=offset)

    def inline_events(self, children: Sequence[Token], line: int) -> Iterator[Event]:
        link_offsets: list[int] = []
        for child in children:
            offset = self._offset(line)
            kind = child.type
            if kind in ("text", "text_special"):
                yield Event(EventKind.TEXT, text=child.content, offset=offset)
            elif kind == "code_inline":
                yield Event(EventKind.CODE, text=child.content, offset=offset)
            elif kind == "softbreak":
                yield Event(EventKind.SOFT_BREAK, offset=offset)
                line += 1
            elif kind == "hardbreak":
                yield Event(EventKind.HARD_BREAK, offset=offset)
                line += 1
            elif kind == "html_inline":
                yield Event(EventKind.INLINE_HTML, text=child.content, offset=offset)
                line += child.content.count("\n")
            elif kind == "image":
                src = child.attrGet("src")
                yield Event(
                    EventKind.START,
                    tag="image",
                    dest_url="" if src is None else str(src),
                    offset=offset,
                )
                yield from self.inline_events(child.children or [], line)
                yield Event(EventKind.END, tag="image", offset=offset)
            elif child.nesting == 1:
                link_offsets.append(offset)
                dest = None
                if kind == "link_open":
                    href = child.attrGet("href")
                    dest = "" if href is None else str(href)
                yield Event(
                    EventKind.START, tag=_tag_name(kind), dest_url=dest, offset=offset
                )
            elif child.nesting == -1:
                start = link_offsets.pop() if link_offsets else offset
                yield Event(EventKind.END, tag=_tag_name(kind), offset=start)


def parse_events(text: str) -> Iterator[Event]:
    """Parse CommonMark text into a depth-first stream of events.

    Paragraphs inside tight lists produce no events of their own.
    """
    converter = _Converter(text)
    yield from converter.block_events(_parser().parse(text))


def stringify_events(events: Iterable[Event]) -> str:
    """Remove the styling from events and return just the plain text."""
    parts: list[str] = []
    for event in events:
        if event.kind in (EventKind.TEXT, EventKind.CODE):
            parts.append(event.text)
        elif event.kind is EventKind.SOFT_BREAK:
            parts.append(" ")
    return "".join(parts)