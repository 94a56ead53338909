"""The in-memory representation of a book and loading it from disk."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Union

from mdbinder.summary import (
    Link,
    PartTitle,
    SectionNumber,
    Separator,
    Summary,
    SummaryItem,
    SummaryParseError,
    parse_summary,
)

log = logging.getLogger(__name__)

_BOM = "\ufeff"


class BookError(Exception):
    """Raised when a book cannot be loaded."""


def _to_path(value: str | os.PathLike[str] | None) -> Path | None:
    if value is None or isinstance(value, Path):
        return value
    return Path(os.fspath(value))


@dataclass
class Chapter:
    """A chapter, usually one file on disk, possibly with nested items.

    ``path`` and ``source_path`` are relative to the ``SUMMARY.md`` file and
    are ``None`` for a draft chapter.
    """

    name: str
    content: str = ""
    number: SectionNumber | None = None
    sub_items: list[BookItem] = field(default_factory=list)
    path: Path | None = None
    source_path: Path | None = None
    parent_names: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.path = _to_path(self.path)
        self.source_path = _to_path(self.source_path)
        if self.number is not None and not isinstance(self.number, SectionNumber):
            self.number = SectionNumber(self.number)
        self.parent_names = list(self.parent_names)

    @classmethod
    def draft(cls, name: str, parent_names: Iterable[str] = ()) -> Chapter:
        """Create a chapter with no source file and no content."""
        return cls(name=name, parent_names=list(parent_names))

    def is_draft(self) -> bool:
        """Whether the chapter has no source file."""
        return self.path is None

    def __str__(self) -> str:
        if self.number is not None:
            return f"{self.number} {self.name}"
        return self.name

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible representation."""
        return {
            "name": self.name,
            "content": self.content,
            "number": None if self.number is None else list(self.number),
            "sub_items": [_item_to_json(item) for item in self.sub_items],
            "path": None if self.path is None else str(self.path),
            "source_path": None if self.source_path is None else str(self.source_path),
            "parent_names": list(self.parent_names),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chapter:
        """Build a chapter from its JSON-compatible representation."""
        try:
            number = data.get("number")
            return cls(
                name=data["name"],
                content=data.get("content", ""),
                number=None if number is None else SectionNumber(number),
                sub_items=[_item_from_json(item) for item in data.get("sub_items", [])],
                path=data.get("path"),
                source_path=data.get("source_path"),
                parent_names=data.get("parent_names", []),
            )
        except (KeyError, TypeError, ValueError) as err:
            raise BookError(f"invalid chapter data: {err}") from err


BookItem = Union[Chapter, Separator, PartTitle]


def _item_to_json(item: BookItem) -> Any:
    if isinstance(item, Chapter):
        return {"Chapter": item.to_dict()}
    if isinstance(item, Separator):
        return "Separator"
    if isinstance(item, PartTitle):
        return {"PartTitle": item.title}
    raise BookError(f"not a book item: {item!r}")


def _item_from_json(data: Any) -> BookItem:
    if data == "Separator":
        return Separator()
    if isinstance(data, dict) and len(data) == 1:
        ((kind, value),) = data.items()
        if kind == "Chapter":
            return Chapter.from_dict(value)
        if kind == "PartTitle" and isinstance(value, str):
            return PartTitle(value)
    raise BookError(f"invalid book item: {data!r}")


def _walk(items: list[BookItem]) -> Iterator[BookItem]:
    for item in items:
        yield item
        if isinstance(item, Chapter):
            yield from _walk(item.sub_items)


def _for_each(func: Callable[[BookItem], Any], items: list[BookItem]) -> None:
    for item in items:
        if isinstance(item, Chapter):
            _for_each(func, item.sub_items)
        func(item)


@dataclass
class Book:
    """A tree of book items."""

    sections: list[BookItem] = field(default_factory=list)

    def __iter__(self) -> Iterator[BookItem]:
        """Iterate depth-first over every item in the book."""
        return _walk(self.sections)

    def for_each(self, func: Callable[[BookItem], Any]) -> None:
        """Apply *func* to every item, nested items before their chapter."""
        _for_each(func, self.sections)

    def push_item(self, item: BookItem) -> Book:
        """Append an item to the top level of the book."""
        self.sections.append(item)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible representation."""
        return {
            "sections": [_item_to_json(item) for item in self.sections],
            "__non_exhaustive": None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Book:
        """Build a book from its JSON-compatible representation."""
        if not isinstance(data, dict):
            raise BookError(f"invalid book data: {data!r}")
        return cls([_item_from_json(item) for item in data.get("sections", [])])


def _escape_angle_brackets(text: str) -> str:
    return text.replace("<", "&lt;").replace(">", "&gt;")


def load_book(src_dir: str | os.PathLike[str], create_missing: bool = False) -> Book:
    """Load a book from its source directory, guided by its ``SUMMARY.md``."""
    src_dir = Path(src_dir)
    summary_md = src_dir / "SUMMARY.md"
    try:
        text = summary_md.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise BookError(
            f"Couldn't open SUMMARY.md in {str(src_dir)!r} directory: {err}"
        ) from err

    try:
        summary = parse_summary(text)
    except SummaryParseError as err:
        raise BookError(f"Summary parsing failed for file={str(summary_md)!r}: {err}") from err

    if create_missing:
        try:
            create_missing_chapters(src_dir, summary)
        except OSError as err:
            raise BookError(f"Unable to create missing chapters: {err}") from err

    return load_book_from_disk(summary, src_dir)


def create_missing_chapters(src_dir: str | os.PathLike[str], summary: Summary) -> None:
    """Create a stub file for every linked chapter that does not exist yet."""
    src_dir = Path(src_dir)
    pending: list[SummaryItem] = list(summary.all_items())
    while pending:
        item = pending.pop()
        if not isinstance(item, Link):
            continue
        if item.location is not None:
            filename = src_dir / item.location
            if not filename.exists():
                filename.parent.mkdir(parents=True, exist_ok=True)
                log.debug("Creating missing file %s", filename)
                with open(filename, "w", encoding="utf-8", newline="") as handle:
                    handle.write(f"# {_escape_angle_brackets(item.name)}\n")
        pending.extend(item.nested_items)


def load_book_from_disk(summary: Summary, src_dir: str | os.PathLike[str]) -> Book:
    """Load every item named by *summary* from *src_dir*."""
    log.debug("Loading the book from disk")
    return Book([load_summary_item(item, src_dir, []) for item in summary.all_items()])


def load_summary_item(
    item: SummaryItem, src_dir: str | os.PathLike[str], parent_names: Iterable[str]
) -> BookItem:
    """Turn one summary item into a book item."""
    if isinstance(item, Separator):
        return Separator()
    if isinstance(item, PartTitle):
        return PartTitle(item.title)
    if isinstance(item, Link):
        return load_chapter(item, src_dir, parent_names)
    raise BookError(f"not a summary item: {item!r}")


def load_chapter(
    link: Link, src_dir: str | os.PathLike[str], parent_names: Iterable[str]
) -> Chapter:
    """Load the chapter a link points at, with its nested items."""
    src_dir = Path(src_dir)
    parent_names = list(parent_names)

    if link.location is not None:
        log.debug("Loading %s (%s)", link.name, link.location)
        location = link.location if link.location.is_absolute() else src_dir / link.location
        try:
            raw = location.read_bytes()
        except FileNotFoundError as err:
            raise BookError(f"Chapter file not found, {link.location}") from err
        except OSError as err:
            raise BookError(f'Unable to read "{link.name}" ({location}): {err}') from err
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as err:
            raise BookError(f'Unable to read "{link.name}" ({location}): {err}') from err
        if content.startswith(_BOM):
            content = content[len(_BOM):]
        try:
            stripped = location.relative_to(src_dir)
        except ValueError as err:
            raise BookError(f"Chapter {location} is not inside the book") from err
        chapter = Chapter(
            name=link.name,
            content=content,
            path=stripped,
            source_path=stripped,
            parent_names=parent_names,
        )
    else:
        chapter = Chapter.draft(link.name, parent_names)

    chapter.number = link.number
    sub_parents = [*parent_names, link.name]
    chapter.sub_items = [
        load_summary_item(item, src_dir, sub_parents) for item in link.nested_items
    ]
    return chapter