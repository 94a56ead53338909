"""A preprocessor which does precisely nothing."""

from __future__ import annotations

import argparse
import json
import re
import sys
from typing import IO, Any, Mapping, Sequence

from mdbinder.book import Book, BookError

BUILT_AGAINST_VERSION = "0.4.40"

_VERSION = re.compile(
    r"^(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)


class PreprocessorError(Exception):
    """Raised when a preprocessor cannot do its work."""


def _parse_version(text: str) -> tuple[tuple[int, int, int], str | None]:
    match = _VERSION.match(text.strip())
    if match is None:
        raise PreprocessorError(f"invalid version: {text!r}")
    major, minor, patch, pre = match.groups()
    return (int(major), int(minor), int(patch)), pre


def version_matches(required: str, actual: str) -> bool:
    """Whether *actual* satisfies the caret requirement *required*."""
    (req, req_pre) = _parse_version(required)
    (act, act_pre) = _parse_version(actual)

    if act_pre is not None and (req_pre is None or act != req):
        return False
    if act < req:
        return False
    if act == req and req_pre is not None:
        if act_pre is None:
            pass
        elif act_pre < req_pre:
            return False

    major, minor, _ = req
    if major > 0:
        return act[0] == major
    if minor > 0:
        return act[0] == 0 and act[1] == minor
    return act == req


class NopPreprocessor:
    """A preprocessor that hands the book back unchanged."""

    name = "nop-preprocessor"

    def run(self, ctx: Mapping[str, Any], book: Book) -> Book:
        """Return the book as it is, unless configured to fail."""
        config = ctx.get("config") if isinstance(ctx, Mapping) else None
        table = config.get("preprocessor") if isinstance(config, Mapping) else None
        own = table.get(self.name) if isinstance(table, Mapping) else None
        if isinstance(own, Mapping) and "blow-up" in own:
            raise PreprocessorError("Boom!!1!")
        return book

    def supports_renderer(self, renderer: str) -> bool:
        """Every renderer but ``not-supported`` is supported."""
        return renderer != "not-supported"


def parse_input(stream: IO[str] | IO[bytes]) -> tuple[dict[str, Any], Book]:
    """Read the ``[context, book]`` JSON pair a preprocessor is given."""
    try:
        data = json.load(stream)
    except ValueError as err:
        raise PreprocessorError(f"Unable to parse the input: {err}") from err
    if not isinstance(data, list) or len(data) != 2 or not isinstance(data[0], dict):
        raise PreprocessorError("Unable to parse the input: expected [context, book]")
    ctx, book_data = data
    try:
        book = Book.from_dict(book_data)
    except BookError as err:
        raise PreprocessorError(f"Unable to parse the input: {err}") from err
    return ctx, book


def _handle_preprocessing(pre: NopPreprocessor) -> None:
    ctx, book = parse_input(sys.stdin)
    book_version = ctx.get("mdbook_version")
    if not isinstance(book_version, str):
        raise PreprocessorError("the context holds no version")
    if not version_matches(BUILT_AGAINST_VERSION, book_version):
        print(
            f"Warning: The {pre.name} plugin was built against version "
            f"{BUILT_AGAINST_VERSION}, but we're being called from version "
            f"{book_version}",
            file=sys.stderr,
        )
    processed = pre.run(ctx, book)
    json.dump(processed.to_dict(), sys.stdout)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the preprocessor, or answer whether a renderer is supported."""
    parser = argparse.ArgumentParser(
        prog="nop-preprocessor",
        description="A preprocessor which does precisely nothing",
    )
    commands = parser.add_subparsers(dest="command")
    supports = commands.add_parser(
        "supports", help="Check whether a renderer is supported by this preprocessor"
    )
    supports.add_argument("renderer")
    args = parser.parse_args(argv)

    pre = NopPreprocessor()
    if args.command == "supports":
        return 0 if pre.supports_renderer(args.renderer) else 1
    try:
        _handle_preprocessing(pre)
    except PreprocessorError as err:
        print(err, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())