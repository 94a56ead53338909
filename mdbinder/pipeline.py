"""Choosing the renderers of a book and where they write their output."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from mdbinder.preprocessors import COMMAND_PREFIX

HTML = "html"
MARKDOWN = "markdown"
BUILTIN_RENDERERS = (HTML, MARKDOWN)


@dataclass(frozen=True)
class RendererSpec:
    """A renderer to run: a built-in one, or an external command."""

    name: str
    command: str | None = None

    @property
    def is_builtin(self) -> bool:
        """Whether this is one of the renderers that ship with the package."""
        return self.command is None and self.name in BUILTIN_RENDERERS


def custom_renderer_command(name: str, table: Any) -> str:
    """The command of a custom renderer, defaulting to a prefixed name."""
    if isinstance(table, Mapping):
        command = table.get("command")
        if isinstance(command, str):
            return command
    return f"{COMMAND_PREFIX}{name}"


def determine_renderers(config: Mapping[str, Any]) -> list[RendererSpec]:
    """Work out the renderers from the ``output`` table, in name order.

    The HTML renderer is used when no renderer is configured.
    """
    output = config.get("output") if isinstance(config, Mapping) else None
    renderers: list[RendererSpec] = []
    if isinstance(output, Mapping):
        for name in sorted(output):
            if name in BUILTIN_RENDERERS:
                renderers.append(RendererSpec(name))
            else:
                renderers.append(
                    RendererSpec(name, custom_renderer_command(name, output[name]))
                )
    if not renderers:
        renderers.append(RendererSpec(HTML))
    return renderers


def build_dir_for(
    root: str | os.PathLike[str],
    build_dir: str | os.PathLike[str],
    renderer_count: int,
    backend_name: str,
) -> Path:
    """Where a backend puts its output.

    With a single renderer that is the build directory itself; with several,
    each renderer gets its own directory inside it.
    """
    directory = Path(root) / build_dir
    if renderer_count <= 1:
        return directory
    return directory / backend_name