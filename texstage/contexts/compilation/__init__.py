"""
Compilation Context

Responsibilities:
- Stages source trees into isolated compile directories
- Runs LaTeX engines, lilypond-book, and ghostscript
- Moves the produced PDF to its destination and cleans up

Owns: Compile session lifecycle, compile directory layout, output filenames
Never: Parses or edits document content (templating does that)
"""

from texstage.contexts.compilation.exceptions import (
    CompilationFatalError,
    CompilerError,
    PreprocessorError,
    StagingError,
    TemplateApplicationError,
    ToolNotFoundError,
    WorkingDirectoryError,
)
from texstage.contexts.compilation.pipeline import CompilationResult, compile_document
from texstage.contexts.compilation.profile import CompileProfile, load_compile_profile
from texstage.contexts.compilation.session import (
    AuxiliaryCleanup,
    CompileSession,
    Engine,
    OptimizationResult,
    OptimizationStatus,
    VerbosityLevel,
)

__all__ = [
    # Session and its value types
    "CompileSession",
    "Engine",
    "VerbosityLevel",
    "OptimizationResult",
    "OptimizationStatus",
    "AuxiliaryCleanup",
    # Orchestration
    "compile_document",
    "CompilationResult",
    "CompileProfile",
    "load_compile_profile",
    # Errors
    "CompilationFatalError",
    "StagingError",
    "ToolNotFoundError",
    "CompilerError",
    "WorkingDirectoryError",
    "TemplateApplicationError",
    "PreprocessorError",
]
