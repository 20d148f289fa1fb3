"""Unit tests for compile profile loading."""

import pytest

from texstage.contexts.compilation.profile import CompileProfile, load_compile_profile


@pytest.mark.unit
def test_defaults():
    profile = load_compile_profile()
    assert isinstance(profile, CompileProfile)
    assert profile.passes == 1
    assert profile.extra_args == ["-interaction=nonstopmode"]
    assert profile.optimize_channel is None
    assert profile.keep_compile_dir is False


@pytest.mark.unit
def test_load_from_yaml(tmp_path):
    path = tmp_path / "print.yaml"
    path.write_text(
        "engine: xelatex\n"
        "passes: 2\n"
        "extra_args: [-halt-on-error]\n"
        "optimize_channel: printer\n"
        "resolve_symlinks: true\n"
    )

    profile = load_compile_profile(path)

    assert profile.engine == "xelatex"
    assert profile.passes == 2
    assert profile.extra_args == ["-halt-on-error"]
    assert profile.optimize_channel == "printer"
    assert profile.resolve_symlinks is True
    assert profile.clear_auxiliary is False


@pytest.mark.unit
def test_overrides_take_precedence(tmp_path):
    path = tmp_path / "p.yaml"
    path.write_text("engine: xelatex\npasses: 2\n")

    profile = load_compile_profile(path, overrides={"engine": "lualatex", "passes": None})

    assert profile.engine == "lualatex"
    assert profile.passes == 2


@pytest.mark.unit
def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "p.yaml"
    path.write_text("engines: xelatex\n")

    with pytest.raises(ValueError):
        load_compile_profile(path)


@pytest.mark.unit
def test_wrong_type_rejected(tmp_path):
    path = tmp_path / "p.yaml"
    path.write_text("passes: many\n")

    with pytest.raises(ValueError):
        load_compile_profile(path)


@pytest.mark.unit
def test_passes_must_be_positive():
    with pytest.raises(ValueError):
        load_compile_profile(overrides={"passes": 0})
