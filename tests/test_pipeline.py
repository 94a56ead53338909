from pathlib import Path

from mdbinder.pipeline import (
    RendererSpec,
    build_dir_for,
    custom_renderer_command,
    determine_renderers,
)


def test_config_defaults_to_html_renderer_if_empty():
    cfg = {}
    assert cfg.get("output") is None
    got = determine_renderers(cfg)
    assert len(got) == 1
    assert got[0].name == "html"
    assert got[0].is_builtin


def test_add_a_random_renderer_to_the_config():
    cfg = {"output": {"random": {}}}
    got = determine_renderers(cfg)
    assert len(got) == 1
    assert got[0].name == "random"
    assert got[0].command == "mdbinder-random"


def test_add_a_random_renderer_with_custom_command_to_the_config():
    cfg = {"output": {"random": {"command": "false"}}}
    got = determine_renderers(cfg)
    assert len(got) == 1
    assert got[0].name == "random"
    assert got[0].command == "false"


def test_builtin_renderers_are_recognised():
    cfg = {"output": {"markdown": {}, "html": {}}}
    got = determine_renderers(cfg)
    assert got == [RendererSpec("html"), RendererSpec("markdown")]
    assert all(spec.is_builtin for spec in got)


def test_non_table_output_falls_back_to_html():
    assert determine_renderers({"output": 3}) == [RendererSpec("html")]


def test_custom_renderer_command_ignores_non_string_command():
    assert custom_renderer_command("pdf", {"command": 1}) == "mdbinder-pdf"
    assert custom_renderer_command("pdf", "not a table") == "mdbinder-pdf"
    assert custom_renderer_command("pdf", {"command": "make pdf"}) == "make pdf"


def test_build_dir_with_single_renderer():
    assert build_dir_for("/root", "book", 1, "html") == Path("/root/book")


def test_build_dir_with_several_renderers():
    assert build_dir_for("/root", "book", 2, "html") == Path("/root/book/html")