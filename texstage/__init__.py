"""
texstage - staged LaTeX document compilation

Stages a source tree into an isolated compile directory, runs a LaTeX engine
against an entry file, post-processes the produced PDF, and moves it to its
destination.

Architecture:
- Compilation Context: Compile session lifecycle and the compile pipeline
- Templating Context: Jinja2 templates applied to staged sources
- Utils: Process runner, filesystem helpers, logging
"""

__version__ = "0.1.0"
