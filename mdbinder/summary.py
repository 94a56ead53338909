"""Parsing of ``SUMMARY.md`` into a recipe for loading a book."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator, TypeVar, Union

from mdbinder.markdown_events import Event, EventKind, parse_events, stringify_events

log = logging.getLogger(__name__)

_T = TypeVar("_T")


class SectionNumber(tuple):
    """A section number such as ``1.2.3``."""

    def __new__(cls, numbers: Iterable[int] = ()) -> SectionNumber:
        return super().__new__(cls, (int(n) for n in numbers))

    def __str__(self) -> str:
        if not self:
            return "0"
        return "".join(f"{n}." for n in self)

    def __repr__(self) -> str:
        return f"SectionNumber({list(self)!r})"

    def child(self, index: int) -> SectionNumber:
        """Return the number of this section's child at *index*."""
        return SectionNumber((*self, index))

    def _bumped(self, level: int, by: int) -> SectionNumber:
        numbers = list(self)
        numbers[level] += by
        return SectionNumber(numbers)


@dataclass
class Link:
    """An entry of the summary pointing at a chapter, possibly with nested entries.

    A ``location`` of ``None`` marks a draft chapter.
    """

    name: str
    location: Path | None = None
    number: SectionNumber | None = None
    nested_items: list[SummaryItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.location is not None and not isinstance(self.location, Path):
            self.location = Path(os.fspath(self.location))
        if self.number is not None and not isinstance(self.number, SectionNumber):
            self.number = SectionNumber(self.number)


@dataclass(frozen=True)
class Separator:
    """A separator (``---``) between entries."""


@dataclass(frozen=True)
class PartTitle:
    """The title of a part of the numbered chapters."""

    title: str


SummaryItem = Union[Link, Separator, PartTitle]


@dataclass
class Summary:
    """The parsed ``SUMMARY.md``."""

    title: str | None = None
    prefix_chapters: list[SummaryItem] = field(default_factory=list)
    numbered_chapters: list[SummaryItem] = field(default_factory=list)
    suffix_chapters: list[SummaryItem] = field(default_factory=list)

    def all_items(self) -> Iterator[SummaryItem]:
        """Iterate over prefix, numbered and suffix items in order."""
        yield from self.prefix_chapters
        yield from self.numbered_chapters
        yield from self.suffix_chapters


class SummaryParseError(ValueError):
    """Raised when ``SUMMARY.md`` cannot be parsed."""


def parse_summary(text: str) -> Summary:
    """Parse the text of a ``SUMMARY.md`` file."""
    return SummaryParser(text).parse()


def _with_context(context: str, action: Callable[[], _T]) -> _T:
    try:
        return action()
    except SummaryParseError as err:
        raise SummaryParseError(f"{context}: {err}") from err


def _is_start(event: Event | None, tag: str, level: int | None = None) -> bool:
    return (
        event is not None
        and event.kind is EventKind.START
        and event.tag == tag
        and (level is None or event.level == level)
    )


def _update_section_numbers(sections: list[SummaryItem], level: int, by: int) -> None:
    for section in sections:
        if isinstance(section, Link):
            if section.number is not None:
                section.number = section.number._bumped(level, by)
            _update_section_numbers(section.nested_items, level, by)


def _last_link(items: list[SummaryItem]) -> Link:
    for item in reversed(items):
        if isinstance(item, Link):
            return item
    raise SummaryParseError(
        "Unable to get last link because the list of summary items doesn't "
        "contain any links"
    )


class SummaryParser:
    """A recursive-descent parser over the Markdown events of a summary."""

    def __init__(self, text: str) -> None:
        self._src = text
        self._stream = parse_events(text)
        self._offset = 0
        self._back: Event | None = None

    def parse(self) -> Summary:
        """Parse the whole summary."""
        title = self.parse_title()
        prefix = _with_context(
            "There was an error parsing the prefix chapters",
            lambda: self.parse_affix(True),
        )
        numbered = _with_context(
            "There was an error parsing the numbered chapters", self.parse_parts
        )
        suffix = _with_context(
            "There was an error parsing the suffix chapters",
            lambda: self.parse_affix(False),
        )
        return Summary(title, prefix, numbered, suffix)

    def next_event(self) -> Event | None:
        """Return the next event, or None at the end of the text."""
        if self._back is not None:
            event, self._back = self._back, None
            return event
        event = next(self._stream, None)
        if event is not None:
            self._offset = event.offset
        return event

    def _push_back(self, event: Event) -> None:
        if self._back is not None:
            raise RuntimeError("only one event can be pushed back")
        self._back = event

    def _collect_until_end(self, tag: str, level: int | None = None) -> list[Event]:
        events: list[Event] = []
        for event in self._stream:
            if event.kind is EventKind.END and event.tag == tag and (
                level is None or event.level == level
            ):
                return events
            events.append(event)
        log.debug("Reached end of stream without finding the end of %s", tag)
        return events

    def _current_location(self) -> tuple[int, int]:
        previous = self._src[: self._offset]
        line = previous.count("\n") + 1
        start_of_line = max(previous.rfind("\n"), 0)
        return line, self._offset - start_of_line

    def _parse_error(self, message: str) -> SummaryParseError:
        line, col = self._current_location()
        return SummaryParseError(
            f"failed to parse SUMMARY.md line {line}, column {col}: {message}"
        )

    def parse_title(self) -> str | None:
        """Parse an optional level-1 title, skipping HTML such as comments."""
        while True:
            event = self.next_event()
            if event is None:
                return None
            if _is_start(event, "heading", 1):
                return stringify_events(self._collect_until_end("heading", 1))
            if event.kind in (EventKind.HTML, EventKind.INLINE_HTML):
                continue
            if event.kind in (EventKind.START, EventKind.END) and event.tag == "html_block":
                continue
            self._push_back(event)
            return None

    def parse_affix(self, is_prefix: bool) -> list[SummaryItem]:
        """Parse the unnumbered chapters before or after the numbered ones."""
        log.debug("Parsing %s items", "prefix" if is_prefix else "suffix")
        items: list[SummaryItem] = []
        while (event := self.next_event()) is not None:
            if _is_start(event, "list") or _is_start(event, "heading", 1):
                if not is_prefix:
                    raise self._parse_error("Suffix chapters cannot be followed by a list")
                self._push_back(event)
                break
            if _is_start(event, "link"):
                items.append(self.parse_link(event.dest_url or ""))
            elif event.kind is EventKind.RULE:
                items.append(Separator())
        return items

    def parse_parts(self) -> list[SummaryItem]:
        """Parse the numbered chapters, split into optionally titled parts."""
        parts: list[SummaryItem] = []
        root_items = 0
        while True:
            event = self.next_event()
            if event is None:
                break
            if _is_start(event, "paragraph"):
                self._push_back(event)
                break
            if _is_start(event, "heading", 1):
                log.debug("Found a h1 in the SUMMARY")
                title: str | None = stringify_events(self._collect_until_end("heading", 1))
            else:
                self._push_back(event)
                title = None

            offset = root_items
            numbered = _with_context(
                "There was an error parsing the numbered chapters",
                lambda: self.parse_numbered(offset),
            )
            root_items += sum(isinstance(item, Link) for item in numbered)

            if title is not None:
                parts.append(PartTitle(title))
            parts.extend(numbered)
        return parts

    def parse_link(self, href: str) -> Link:
        """Finish parsing a link whose start event has been read."""
        href = href.replace("%20", " ")
        name = stringify_events(self._collect_until_end("link"))
        return Link(name, Path(href) if href else None)

    def parse_numbered(self, offset: int) -> list[SummaryItem]:
        """Parse one part of numbered chapters, numbering from ``offset + 1``."""
        items: list[SummaryItem] = []
        first = True
        while (event := self.next_event()) is not None:
            if _is_start(event, "paragraph"):
                if not first:
                    self._push_back(event)
                    break
            elif _is_start(event, "heading", 1):
                self._push_back(event)
                break
            elif _is_start(event, "list"):
                self._push_back(event)
                bunch = self._parse_nested_numbered(SectionNumber())
                _update_section_numbers(bunch, 0, offset)
                offset += len(bunch)
                items.extend(bunch)
            elif event.kind is EventKind.START:
                log.debug("Skipping contents of %s", event.tag)
                while (inner := self.next_event()) is not None:
                    if (
                        inner.kind is EventKind.END
                        and inner.tag == event.tag
                        and inner.level == event.level
                    ):
                        break
            elif event.kind is EventKind.RULE:
                items.append(Separator())
            first = False
        return items

    def _parse_nested_numbered(self, parent: SectionNumber) -> list[SummaryItem]:
        log.debug("Parsing numbered chapters at level %s", parent)
        items: list[SummaryItem] = []
        while (event := self.next_event()) is not None:
            if _is_start(event, "item"):
                items.append(self._parse_nested_item(parent, len(items)))
            elif _is_start(event, "list"):
                if not items:
                    continue
                last = _last_link(items)
                if last.number is None:
                    raise self._parse_error("numbered chapter without a number")
                last.nested_items = self._parse_nested_numbered(last.number)
            elif event.kind is EventKind.END and event.tag == "list":
                break
        return items

    def _parse_nested_item(self, parent: SectionNumber, existing: int) -> Link:
        while True:
            event = self.next_event()
            if _is_start(event, "paragraph"):
                continue
            if event is not None and _is_start(event, "link"):
                link = self.parse_link(event.dest_url or "")
                link.number = parent.child(existing + 1)
                log.debug("Found chapter: %s %s (%s)", link.number, link.name,
                          link.location if link.location is not None else "[draft]")
                return link
            log.warning("Expected a start of a link, actually got %r", event)
            raise self._parse_error(
                "The link items for nested chapters must only contain a hyperlink"
            )