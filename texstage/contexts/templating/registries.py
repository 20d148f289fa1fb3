"""
Templating Registries

Registry for loading, caching, and rendering Jinja2 templates over LaTeX sources.
"""

from pathlib import Path
from typing import Any, Dict, TextIO, Union

from jinja2 import (
    DictLoader,
    Environment,
    StrictUndefined,
    Template,
    TemplateError,
)
from omegaconf import OmegaConf

from texstage.contexts.templating.exceptions import (
    TemplateNotRegisteredError,
    TemplateRenderError,
)


class TemplateRegistry:
    """
    Registry of named Jinja2 templates for LaTeX sources.

    Templates are registered from files under a name (usually the file's base
    name) and use custom delimiters to avoid conflicts with LaTeX syntax:
    - Variable: <<< var >>>
    - Block: <%% block %%>
    - Comment: <# comment #>
    """

    def __init__(self):
        self._sources: Dict[str, str] = {}
        self._paths: Dict[str, Path] = {}
        self._cache: Dict[str, Template] = {}

        # Create Jinja2 environment with custom delimiters to avoid LaTeX conflicts
        self.env = Environment(
            loader=DictLoader(self._sources),
            # Catches silent failures
            undefined=StrictUndefined,
            variable_start_string="<<<",
            variable_end_string=">>>",
            block_start_string="<%%",
            block_end_string="%%>",
            comment_start_string="<#",
            comment_end_string="#>",
            # Preserve whitespace (important for LaTeX)
            trim_blocks=False,
            lstrip_blocks=False,
            keep_trailing_newline=True,
        )

    def register_template(self, name: str, path: Union[str, Path]) -> None:
        """
        Register a template from a file, replacing any template of the same name.

        Args:
            name: Name used to look the template up
            path: File holding the template source

        Raises:
            OSError: If the file cannot be read
        """
        path = Path(path)
        self._sources[name] = path.read_text(encoding="utf-8")
        self._paths[name] = path
        self._cache.pop(name, None)

    def is_registered(self, name: str) -> bool:
        return name in self._sources

    def get_template_path(self, name: str) -> Path:
        """Get the file a template was registered from."""
        if name not in self._paths:
            raise TemplateNotRegisteredError(name)
        return self._paths[name]

    def get_template(self, name: str) -> Template:
        """
        Get a template by name, compiling and caching it if necessary.

        Raises:
            TemplateNotRegisteredError: If no template is registered under `name`
            TemplateRenderError: If the template has Jinja2 syntax errors
        """
        if name in self._cache:
            return self._cache[name]

        if name not in self._sources:
            raise TemplateNotRegisteredError(name)

        try:
            template = self.env.get_template(name)
        except TemplateError as e:
            raise TemplateRenderError(
                "Template failed to compile",
                template_name=name,
                template_path=self._paths.get(name),
                original_error=e,
            ) from e

        self._cache[name] = template
        return template

    def render(self, name: str, data: Any, stream: TextIO) -> None:
        """
        Render a named template against `data` into a text stream.

        Mappings are passed as template variables; any other value is exposed
        to the template as `data`.

        Raises:
            TemplateNotRegisteredError: If no template is registered under `name`
            TemplateRenderError: If compiling or rendering the template fails
        """
        template = self.get_template(name)
        context = _as_context(data)

        try:
            for chunk in template.generate(**context):
                stream.write(chunk)
        except TemplateError as e:
            raise TemplateRenderError(
                "Template rendering failed",
                template_name=name,
                template_path=self._paths.get(name),
                original_error=e,
            ) from e

    def clear_cache(self):
        """Clear the compiled template cache."""
        self._cache.clear()

    def is_cached(self, name: str) -> bool:
        return name in self._cache


def _as_context(data: Any) -> Dict[str, Any]:
    if data is None:
        return {}
    if OmegaConf.is_config(data):
        data = OmegaConf.to_container(data, resolve=True)
    if isinstance(data, dict):
        return {str(key): value for key, value in data.items()}
    return {"data": data}


def load_template_data(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load template data from a YAML file.

    Interpolations (e.g. ${author.name}) are resolved.

    Returns:
        Plain dict suitable for TemplateRegistry.render()
    """
    data = OmegaConf.to_container(OmegaConf.load(Path(path)), resolve=True)
    if not isinstance(data, dict):
        raise ValueError(f"Template data must be a mapping at the top level: {path}")
    return data
