"""Unit tests for TemplateRegistry class."""

import io

import pytest
from omegaconf import OmegaConf

from texstage.contexts.templating.exceptions import (
    TemplateNotRegisteredError,
    TemplateRenderError,
)
from texstage.contexts.templating.registries import TemplateRegistry, load_template_data


@pytest.fixture
def template_file(tmp_path):
    path = tmp_path / "letter.tex"
    path.write_text(
        "\\begin{letter}{<<< recipient >>>}\n"
        "<# greeting is optional #>"
        "<%% if greeting %%>\\opening{<<< greeting >>>}\n<%% endif %%>"
        "\\end{letter}\n"
    )
    return path


@pytest.mark.unit
def test_template_registry_init():
    registry = TemplateRegistry()
    assert registry._cache == {}
    assert not registry.is_registered("letter.tex")


@pytest.mark.unit
def test_register_and_render(template_file):
    registry = TemplateRegistry()
    registry.register_template("letter.tex", template_file)

    out = io.StringIO()
    registry.render("letter.tex", {"recipient": "Dr. Who", "greeting": "Dear Doctor,"}, out)

    assert out.getvalue() == (
        "\\begin{letter}{Dr. Who}\n\\opening{Dear Doctor,}\n\\end{letter}\n"
    )
    assert registry.get_template_path("letter.tex") == template_file


@pytest.mark.unit
def test_latex_braces_are_not_delimiters(tmp_path):
    path = tmp_path / "braces.tex"
    path.write_text("\\textbf{{<<< value >>>}} {% raw %} {{ not jinja }}\n")
    registry = TemplateRegistry()
    registry.register_template("braces", path)

    out = io.StringIO()
    registry.render("braces", {"value": "\\emph{x}"}, out)

    assert out.getvalue() == "\\textbf{{\\emph{x}}} {% raw %} {{ not jinja }}\n"


@pytest.mark.unit
def test_cache_and_reregister(template_file):
    registry = TemplateRegistry()
    registry.register_template("letter.tex", template_file)

    first = registry.get_template("letter.tex")
    assert registry.is_cached("letter.tex")
    assert registry.get_template("letter.tex") is first

    template_file.write_text("Plain <<< recipient >>>\n")
    registry.register_template("letter.tex", template_file)
    assert not registry.is_cached("letter.tex")

    out = io.StringIO()
    registry.render("letter.tex", {"recipient": "Bob"}, out)
    assert out.getvalue() == "Plain Bob\n"

    registry.clear_cache()
    assert not registry.is_cached("letter.tex")


@pytest.mark.unit
def test_undefined_variable_raises(template_file):
    registry = TemplateRegistry()
    registry.register_template("letter.tex", template_file)

    with pytest.raises(TemplateRenderError) as excinfo:
        registry.render("letter.tex", {"greeting": None}, io.StringIO())

    assert excinfo.value.template_name == "letter.tex"
    assert excinfo.value.original_error is not None


@pytest.mark.unit
def test_syntax_error_raises(tmp_path):
    path = tmp_path / "broken.tex"
    path.write_text("<%% if x %%> never closed\n")
    registry = TemplateRegistry()
    registry.register_template("broken", path)

    with pytest.raises(TemplateRenderError):
        registry.get_template("broken")


@pytest.mark.unit
def test_unregistered_template():
    with pytest.raises(TemplateNotRegisteredError):
        TemplateRegistry().render("missing", {}, io.StringIO())


@pytest.mark.unit
def test_non_mapping_data_is_exposed_as_data(tmp_path):
    path = tmp_path / "list.tex"
    path.write_text("<%% for item in data %%><<< item >>>;<%% endfor %%>")
    registry = TemplateRegistry()
    registry.register_template("list", path)

    out = io.StringIO()
    registry.render("list", ["a", "b"], out)
    assert out.getvalue() == "a;b;"


@pytest.mark.unit
def test_omegaconf_data_is_accepted(template_file):
    registry = TemplateRegistry()
    registry.register_template("letter.tex", template_file)
    data = OmegaConf.create({"name": "Ada", "recipient": "${name}", "greeting": ""})

    out = io.StringIO()
    registry.render("letter.tex", data, out)
    assert out.getvalue() == "\\begin{letter}{Ada}\n\\end{letter}\n"


@pytest.mark.unit
def test_load_template_data(tmp_path):
    data_file = tmp_path / "data.yaml"
    data_file.write_text("author:\n  name: Ada\ntitle: Notes by ${author.name}\n")

    data = load_template_data(data_file)

    assert data == {"author": {"name": "Ada"}, "title": "Notes by Ada"}


@pytest.mark.unit
def test_load_template_data_requires_mapping(tmp_path):
    data_file = tmp_path / "data.yaml"
    data_file.write_text("- a\n- b\n")

    with pytest.raises(ValueError):
        load_template_data(data_file)
