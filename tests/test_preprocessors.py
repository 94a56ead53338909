import tomllib

import pytest

from mdbinder.preprocessors import (
    PipelineError,
    PreprocessorSpec,
    custom_preprocessor_command,
    determine_preprocessors,
    preprocessor_should_run,
)


def names(specs):
    return [spec.name for spec in specs]


def test_defaults_to_link_and_index_preprocessor_if_not_set():
    got = determine_preprocessors({})
    assert names(got) == ["index", "links"]
    assert all(spec.is_builtin for spec in got)


def test_use_default_preprocessors_works():
    cfg = {"build": {"use-default-preprocessors": False}}
    assert determine_preprocessors(cfg) == []


def test_can_determine_third_party_preprocessors():
    cfg = tomllib.loads(
        """
        [book]
        title = "Some Book"

        [preprocessor.random]

        [build]
        build-dir = "outputs"
        create-missing = false
        """
    )
    got = determine_preprocessors(cfg)
    assert "random" in names(got)
    random = next(spec for spec in got if spec.name == "random")
    assert random.command == custom_preprocessor_command("random", {})
    assert not random.is_builtin


def test_preprocessors_can_provide_their_own_commands():
    cfg = tomllib.loads(
        """
        [preprocessor.random]
        command = "python random.py"
        """
    )
    table = cfg["preprocessor"]["random"]
    assert custom_preprocessor_command("random", table) == "python random.py"
    got = determine_preprocessors(cfg)
    assert PreprocessorSpec("random", "python random.py") in got


def test_custom_command_defaults_to_prefixed_name():
    command = custom_preprocessor_command("random", {})
    assert command.endswith("random")
    assert command != "random"
    assert custom_preprocessor_command("random", {"command": 5}) == command


def test_preprocessor_before_must_be_array():
    cfg = tomllib.loads(
        """
        [preprocessor.random]
        before = 0
        """
    )
    with pytest.raises(PipelineError):
        determine_preprocessors(cfg)


def test_preprocessor_after_must_be_array():
    cfg = tomllib.loads(
        """
        [preprocessor.random]
        after = 0
        """
    )
    with pytest.raises(PipelineError):
        determine_preprocessors(cfg)


def test_preprocessor_before_must_contain_strings():
    cfg = {"preprocessor": {"random": {"before": [1]}}}
    with pytest.raises(PipelineError, match="contain strings"):
        determine_preprocessors(cfg)


def test_preprocessor_order_is_honored():
    cfg = tomllib.loads(
        """
        [preprocessor.random]
        before = [ "last" ]
        after = [ "index" ]

        [preprocessor.last]
        after = [ "links", "index" ]
        """
    )
    order = names(determine_preprocessors(cfg))

    def assert_before(before, after):
        assert order.index(before) < order.index(after), order

    assert_before("index", "random")
    assert_before("index", "last")
    assert_before("random", "last")
    assert_before("links", "last")


def test_cyclic_dependencies_are_detected():
    cfg = tomllib.loads(
        """
        [preprocessor.links]
        before = [ "index" ]

        [preprocessor.index]
        before = [ "links" ]
        """
    )
    with pytest.raises(PipelineError, match="Cyclic"):
        determine_preprocessors(cfg)


def test_dependencies_dont_register_undefined_preprocessors():
    cfg = tomllib.loads(
        """
        [preprocessor.links]
        before = [ "random" ]
        """
    )
    assert "random" not in names(determine_preprocessors(cfg))


def test_dependencies_dont_register_builtin_preprocessors_if_disabled():
    cfg = tomllib.loads(
        """
        [preprocessor.random]
        before = [ "links" ]

        [build]
        use-default-preprocessors = false
        """
    )
    assert names(determine_preprocessors(cfg)) == ["random"]


def test_config_respects_preprocessor_selection():
    cfg = tomllib.loads(
        """
        [preprocessor.links]
        renderers = ["html"]
        """
    )
    assert cfg["preprocessor"]["links"]["renderers"][0] == "html"
    assert preprocessor_should_run("links", lambda renderer: True, "html", cfg)


@pytest.mark.parametrize("should_be", [True, False])
def test_should_run_falls_back_to_supports_renderer(should_be):
    got = preprocessor_should_run(
        "bool-preprocessor", lambda renderer: should_be, "html", {}
    )
    assert got is should_be


def test_explicit_renderers_override_supports_renderer():
    cfg = {"preprocessor": {"random": {"renderers": ["html"]}}}
    assert preprocessor_should_run("random", lambda r: True, "html", cfg)
    assert not preprocessor_should_run("random", lambda r: True, "markdown", cfg)


def test_default_preprocessor_uses_renderers_list_when_defaults_disabled():
    cfg = {
        "build": {"use-default-preprocessors": False},
        "preprocessor": {"links": {"renderers": ["markdown"]}},
    }
    assert not preprocessor_should_run("links", lambda r: True, "html", cfg)
    assert preprocessor_should_run("links", lambda r: False, "markdown", cfg)