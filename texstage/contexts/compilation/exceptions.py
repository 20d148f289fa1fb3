"""
Exceptions raised by the compile session.

Two severities are represented as exception families:
- CompilationFatalError: the build cannot continue (staging, missing engine,
  engine failure, undeletable compile directory, template application).
  Callers normally abort the whole run on these.
- PreprocessorError: a pipeline stage failed and reports back to its caller,
  which may try something else.

Best-effort operations (optimize, auxiliary cleanup) never raise for
environment problems; they return explicit results instead.
"""

from pathlib import Path
from typing import Optional


class CompilationFatalError(Exception):
    """Base class for unrecoverable compile session failures."""

    pass


class StagingError(CompilationFatalError):
    """
    Raised when the source tree cannot be staged into the compile directory.

    Attributes:
        source_dir: Directory being staged
        compile_dir: Directory being staged into
        original_error: Underlying filesystem error
    """

    def __init__(
        self,
        message: str,
        source_dir: Optional[Path] = None,
        compile_dir: Optional[Path] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.source_dir = source_dir
        self.compile_dir = compile_dir
        self.original_error = original_error

        parts = [message]
        if source_dir:
            parts.append(f"Source: {source_dir}")
        if compile_dir:
            parts.append(f"Compile directory: {compile_dir}")
        if original_error:
            parts.append(f"Original error: {original_error}")

        super().__init__("\n".join(parts))


class ToolNotFoundError(CompilationFatalError):
    """Raised when a required binary is not on PATH."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Required tool not found on PATH: {tool_name}")


class CompilerError(CompilationFatalError):
    """
    Raised when a LaTeX engine exits with a non-zero status.

    Attributes:
        tool_name: Engine binary that failed
        filename: File the engine was run on
        returncode: Exit status
        stdout: Captured standard output
        stderr: Captured standard error
    """

    def __init__(
        self,
        tool_name: str,
        filename: str,
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ):
        self.tool_name = tool_name
        self.filename = filename
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"{tool_name} failed on {filename} with exit status {returncode}")


class WorkingDirectoryError(CompilationFatalError):
    """Raised when the compile directory cannot be removed."""

    def __init__(
        self, path: Path, original_error: Optional[Exception] = None, reason: Optional[str] = None
    ):
        self.path = path
        self.original_error = original_error
        self.reason = reason
        message = f"Could not remove compile directory: {path}"
        if reason:
            message += f" ({reason})"
        if original_error:
            message += f"\nOriginal error: {original_error}"
        super().__init__(message)


class TemplateApplicationError(CompilationFatalError):
    """Raised when rendering a template over a staged file fails."""

    def __init__(self, input_file: Path, original_error: Optional[Exception] = None):
        self.input_file = input_file
        self.original_error = original_error
        message = f"Could not apply template to {input_file}"
        if original_error:
            message += f"\nOriginal error: {original_error}"
        super().__init__(message)


class PreprocessorError(Exception):
    """
    Raised when the music notation preprocessor fails. Reported to the caller,
    not fatal to the session.

    Attributes:
        tool_name: Preprocessor binary
        returncode: Exit status (None if the tool never ran)
        stdout: Captured standard output
        stderr: Captured standard error
        original_error: Underlying error for copy failures
    """

    def __init__(
        self,
        message: str,
        tool_name: str,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.tool_name = tool_name
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.original_error = original_error

        parts = [message]
        if original_error:
            parts.append(f"Original error: {original_error}")
        super().__init__("\n".join(parts))
