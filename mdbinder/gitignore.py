"""Matching of paths against ``.gitignore`` rules."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable


@dataclass(frozen=True)
class _Rule:
    """One compiled line of a ``.gitignore`` file."""

    pattern: str
    regex: re.Pattern[str]
    negated: bool
    dir_only: bool

    def matches(self, path: str, is_dir: bool) -> bool:
        if self.dir_only and not is_dir:
            return False
        return self.regex.match(path) is not None


def _translate_class(pattern: str, start: int) -> tuple[str, int] | None:
    """Translate a ``[...]`` character class beginning at *start*."""
    end = start + 1
    if end < len(pattern) and pattern[end] in "!^":
        end += 1
    if end < len(pattern) and pattern[end] == "]":
        end += 1
    while end < len(pattern) and pattern[end] != "]":
        end += 1
    if end >= len(pattern):
        return None
    inner = pattern[start + 1 : end]
    negate = inner[:1] in ("!", "^")
    if negate:
        inner = inner[1:]
    escaped = "".join("\\" + ch if ch in "\\^[]" else ch for ch in inner)
    regex = f"[^/{escaped}]" if negate else f"[{escaped}]"
    return regex, end + 1


def _translate(pattern: str) -> str:
    """Translate a gitignore glob into a regular expression body."""
    out: list[str] = []
    i = 0
    length = len(pattern)
    while i < length:
        at_segment_start = i == 0 or pattern[i - 1] == "/"
        if at_segment_start and pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
            continue
        if at_segment_start and pattern.startswith("**", i) and i + 2 == length:
            out.append(".*")
            i += 2
            continue
        char = pattern[i]
        if char == "*":
            out.append("[^/]*")
            i += 1
        elif char == "?":
            out.append("[^/]")
            i += 1
        elif char == "[":
            translated = _translate_class(pattern, i)
            if translated is None:
                out.append(re.escape(char))
                i += 1
            else:
                regex, i = translated
                out.append(regex)
        elif char == "\\" and i + 1 < length:
            out.append(re.escape(pattern[i + 1]))
            i += 2
        else:
            out.append(re.escape(char))
            i += 1
    return "".join(out)


def _strip_trailing_space(line: str) -> str:
    end = len(line)
    while end > 0 and line[end - 1] in " \t":
        if end >= 2 and line[end - 2] == "\\":
            break
        end -= 1
    return line[:end]


def _parse_line(line: str) -> _Rule | None:
    line = line.rstrip("\r\n")
    if not line or line.startswith("#"):
        return None
    original = line
    line = _strip_trailing_space(line)

    negated = False
    if line.startswith("!"):
        negated = True
        line = line[1:]
    elif line.startswith(("\\!", "\\#")):
        line = line[1:]

    dir_only = False
    if line.endswith("/"):
        dir_only = True
        line = line[:-1]

    if line.startswith("/"):
        anchored = True
        line = line[1:]
    else:
        anchored = "/" in line

    if not line:
        return None

    prefix = "" if anchored else "(?:.*/)?"
    regex = re.compile("^" + prefix + _translate(line) + "$", re.DOTALL)
    return _Rule(original, regex, negated, dir_only)


class Gitignore:
    """A set of ignore rules rooted at a directory."""

    def __init__(self, root: str | os.PathLike[str], lines: Iterable[str]) -> None:
        self.root = Path(root)
        self._rules = [rule for rule in map(_parse_line, lines) if rule is not None]

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> Gitignore:
        """Read the rules of a ``.gitignore`` file, rooted at its directory."""
        path = Path(path)
        text = path.read_text(encoding="utf-8", errors="replace")
        return cls(path.parent, text.splitlines())

    def _normalise(self, relative_path: str | os.PathLike[str]) -> PurePosixPath:
        path = Path(os.fspath(relative_path))
        if path.is_absolute():
            try:
                path = path.relative_to(self.root)
            except ValueError:
                pass
        return PurePosixPath(path.as_posix())

    def _match(self, path: PurePosixPath, is_dir: bool) -> bool | None:
        """Return True/False for the last matching rule, or None."""
        text = str(path)
        for rule in reversed(self._rules):
            if rule.matches(text, is_dir):
                return not rule.negated
        return None

    def is_ignored(self, relative_path: str | os.PathLike[str], is_dir: bool) -> bool:
        """Whether the path, or any directory above it, is ignored."""
        path = self._normalise(relative_path)
        result = self._match(path, is_dir)
        if result is not None:
            return result
        for parent in path.parents:
            if str(parent) in (".", "", "/"):
                continue
            result = self._match(parent, True)
            if result is not None:
                return result
        return False


def find_gitignore(book_root: str | os.PathLike[str]) -> Path | None:
    """Find the nearest ``.gitignore`` in the book root or its ancestors."""
    root = Path(book_root)
    for directory in (root, *root.parents):
        candidate = directory / ".gitignore"
        if candidate.exists():
            return candidate
    return None


def filter_ignored_files(
    ignore: Gitignore, paths: Iterable[str | os.PathLike[str]]
) -> list[Path]:
    """Drop the paths that the ignore rules exclude."""
    paths = [Path(p) for p in paths]
    if not paths:
        return []
    ignore_root = ignore.root.resolve()
    return [
        path
        for path in paths
        if not ignore.is_ignored(os.path.relpath(path, ignore_root), path.is_dir())
    ]