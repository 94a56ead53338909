"""Choosing which preprocessors run on a book, and in what order."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

log = logging.getLogger(__name__)

LINKS = "links"
INDEX = "index"
DEFAULT_PREPROCESSORS = (LINKS, INDEX)
COMMAND_PREFIX = "mdbinder-"


class PipelineError(ValueError):
    """Raised when the preprocessor configuration is invalid."""


@dataclass(frozen=True)
class PreprocessorSpec:
    """A preprocessor to run: a built-in one, or an external command."""

    name: str
    command: str | None = None

    @property
    def is_builtin(self) -> bool:
        """Whether this is one of the preprocessors that ship with the package."""
        return self.command is None and self.name in DEFAULT_PREPROCESSORS


class _DependencyGraph:
    """Items with "must come before" edges, popped in layers."""

    def __init__(self) -> None:
        self._predecessors: dict[str, set[str]] = {}
        self._successors: dict[str, set[str]] = {}

    def insert(self, name: str) -> None:
        self._predecessors.setdefault(name, set())
        self._successors.setdefault(name, set())

    def add_dependency(self, before: str, after: str) -> None:
        self.insert(before)
        self.insert(after)
        self._predecessors[after].add(before)
        self._successors[before].add(after)

    def pop_all(self) -> list[str]:
        """Remove and return every item that nothing still precedes."""
        ready = [name for name, preds in self._predecessors.items() if not preds]
        for name in ready:
            del self._predecessors[name]
            for successor in self._successors.pop(name, set()):
                if successor in self._predecessors:
                    self._predecessors[successor].discard(name)
        return ready

    def __len__(self) -> int:
        return len(self._predecessors)


def _use_default_preprocessors(config: Mapping[str, Any]) -> bool:
    build = config.get("build")
    if isinstance(build, Mapping):
        return bool(build.get("use-default-preprocessors", True))
    return True


def _preprocessor_table(config: Mapping[str, Any]) -> Mapping[str, Any]:
    table = config.get("preprocessor")
    return table if isinstance(table, Mapping) else {}


def _string_list(value: Any, name: str, key: str) -> list[str]:
    if not isinstance(value, list):
        raise PipelineError(f"Expected preprocessor.{name}.{key} to be an array")
    for item in value:
        if not isinstance(item, str):
            raise PipelineError(f"Expected preprocessor.{name}.{key} to contain strings")
    return value


def custom_preprocessor_command(name: str, table: Any) -> str:
    """The command of a custom preprocessor, defaulting to a prefixed name."""
    if isinstance(table, Mapping):
        command = table.get("command")
        if isinstance(command, str):
            return command
    return f"{COMMAND_PREFIX}{name}"


def determine_preprocessors(config: Mapping[str, Any]) -> list[PreprocessorSpec]:
    """Work out the preprocessors to run, ordered by their dependencies.

    Ties are broken by sorting names by code point.
    """
    use_defaults = _use_default_preprocessors(config)
    table = _preprocessor_table(config)
    graph = _DependencyGraph()

    if use_defaults:
        for name in DEFAULT_PREPROCESSORS:
            graph.insert(name)

    def exists(other: str) -> bool:
        return (use_defaults and other in DEFAULT_PREPROCESSORS) or other in table

    for name, entry in table.items():
        graph.insert(name)
        entry = entry if isinstance(entry, Mapping) else {}

        if "before" in entry:
            for after in _string_list(entry["before"], name, "before"):
                if exists(after):
                    graph.add_dependency(name, after)
                else:
                    log.warning(
                        'preprocessor.%s.after contains "%s", which was not found',
                        name,
                        after,
                    )

        if "after" in entry:
            for before in _string_list(entry["after"], name, "after"):
                if exists(before):
                    graph.add_dependency(before, name)
                else:
                    log.warning(
                        'preprocessor.%s.before contains "%s", which was not found',
                        name,
                        before,
                    )

    specs: list[PreprocessorSpec] = []
    while names := graph.pop_all():
        for name in sorted(names):
            if name in DEFAULT_PREPROCESSORS:
                specs.append(PreprocessorSpec(name))
            else:
                specs.append(
                    PreprocessorSpec(name, custom_preprocessor_command(name, table[name]))
                )

    if len(graph):
        raise PipelineError("Cyclic dependency detected in preprocessors")
    return specs


def preprocessor_should_run(
    preprocessor_name: str,
    supports_renderer: Callable[[str], bool] | bool,
    renderer_name: str,
    config: Mapping[str, Any],
) -> bool:
    """Whether a preprocessor should run before the named renderer.

    Default preprocessors run whenever they support the renderer. Otherwise an
    explicit ``preprocessor.<name>.renderers`` list decides, falling back to
    what the preprocessor says it supports.
    """

    def supported() -> bool:
        if callable(supports_renderer):
            return bool(supports_renderer(renderer_name))
        return bool(supports_renderer)

    if _use_default_preprocessors(config) and preprocessor_name in DEFAULT_PREPROCESSORS:
        return supported()

    entry = _preprocessor_table(config).get(preprocessor_name)
    if isinstance(entry, Mapping):
        renderers = entry.get("renderers")
        if isinstance(renderers, list):
            return any(
                isinstance(renderer, str) and renderer == renderer_name
                for renderer in renderers
            )

    return supported()