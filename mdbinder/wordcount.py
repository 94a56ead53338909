"""A renderer that counts the words of each chapter."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from mdbinder.book import Book, BookError, Chapter


@dataclass
class WordcountConfig:
    """Settings read from the ``output.wordcount`` table."""

    ignores: list[str] = field(default_factory=list)
    deny_odds: bool = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> WordcountConfig:
        """Read the settings from a book config, using defaults if invalid."""
        output = config.get("output") if isinstance(config, Mapping) else None
        table = output.get("wordcount") if isinstance(output, Mapping) else None
        if not isinstance(table, Mapping):
            return cls()
        ignores = table.get("ignores", [])
        deny_odds = table.get("deny-odds", False)
        if not isinstance(ignores, list) or not all(isinstance(i, str) for i in ignores):
            return cls()
        if not isinstance(deny_odds, bool):
            return cls()
        return cls(ignores=list(ignores), deny_odds=deny_odds)


def count_words(chapter: Chapter) -> int:
    """The number of whitespace-separated words in a chapter."""
    return len(chapter.content.split())


def main(argv: Sequence[str] | None = None) -> int:
    """Read a render context from stdin and write ``wordcounts.txt``."""
    parser = argparse.ArgumentParser(
        prog="wordcount", description="Count the words in each chapter of a book."
    )
    parser.parse_args(argv)

    try:
        ctx = json.load(sys.stdin)
        if not isinstance(ctx, dict):
            raise BookError("render context must be a JSON object")
        book = Book.from_dict(ctx["book"])
        destination = Path(ctx["destination"])
        config = ctx.get("config") or {}
    except (ValueError, KeyError, TypeError) as err:
        print(f"invalid render context: {err}", file=sys.stderr)
        return 1

    cfg = WordcountConfig.from_config(config)

    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass

    with open(destination / "wordcounts.txt", "w", encoding="utf-8") as out:
        for item in book:
            if not isinstance(item, Chapter) or item.name in cfg.ignores:
                continue
            num_words = count_words(item)
            print(f"{item.name}: {num_words}")
            out.write(f"{item.name}: {num_words}\n")
            if cfg.deny_odds and num_words % 2 == 1:
                print(f"{item.name} has an odd number of words!", file=sys.stderr)
                return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())