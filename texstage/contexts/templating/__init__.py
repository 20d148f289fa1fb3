"""
Templating Context

Responsibilities:
- Registers LaTeX source files as Jinja2 templates
- Renders registered templates against structured data

Owns: Template registration, caching, and rendering
Never: Decides where rendered output lives (the compile session does)
"""

from texstage.contexts.templating.exceptions import (
    TemplateNotRegisteredError,
    TemplateRenderError,
)
from texstage.contexts.templating.registries import TemplateRegistry, load_template_data

__all__ = [
    "TemplateRegistry",
    "load_template_data",
    "TemplateRenderError",
    "TemplateNotRegisteredError",
]
