"""
Compilation context logger.

Provides logging interface for compilation context with automatic [compile] prefix.
All compilation modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from texstage.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[compile]"


def setup_compilation_logger(log_dir: Path, engine: str, console_level: str = "INFO") -> Path:
    """
    Setup logger for compilation context.

    Args:
        log_dir: Directory for this compilation run
        engine: LaTeX engine recorded in the provenance header
        console_level: Minimum level shown on the console

    Returns:
        Path to log file
    """
    return _setup_logger(
        context_name="compile",
        log_dir=log_dir,
        extra_provenance={"LaTeX engine": engine},
        console_level=console_level,
    )


# Wrapper functions with automatic [compile] prefix


def _log_info(message: str) -> None:
    """Log info message with [compile] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [compile] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [compile] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [compile] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [compile] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level compilation-specific logging helpers


def log_compilation_start(entry_file: str, source_dir: Path, engine: str, passes: int) -> None:
    """Log start of compilation with context."""
    _log_info(f"Starting compilation: {entry_file}")
    _log_debug(f"  Source: {source_dir}")
    _log_debug(f"  Engine: {engine}")
    _log_debug(f"  Passes: {passes}")


def log_tool_output(tool_name: str, stdout: str, stderr: str) -> None:
    """
    Log captured tool output at error level.

    Uses opt(raw=True) so multi-line output keeps its original formatting.
    """
    if stdout:
        logger.opt(raw=True).error(
            f"\n{'=' * 80}\n{tool_name.upper()} STDOUT:\n{'=' * 80}\n{stdout}\n"
        )
    if stderr:
        logger.opt(raw=True).error(
            f"\n{'=' * 80}\n{tool_name.upper()} STDERR:\n{'=' * 80}\n{stderr}\n"
        )


def log_compilation_result(entry_file: str, result) -> None:
    """
    Log compilation result with diagnostics.

    Args:
        entry_file: Entry file that was compiled
        result: CompilationResult from compile_document()
    """
    if result.success:
        _log_success(f"{entry_file}: compiled in {result.elapsed_s:.2f}s")
        if result.pdf_path:
            _log_info(f"PDF saved to: {result.pdf_path}")
        if result.optimization is not None:
            _log_debug(f"  Optimization: {result.optimization.status.value}")
    else:
        _log_error(f"{entry_file}: compilation failed ({result.elapsed_s:.2f}s)")
        for i, err in enumerate(result.errors, 1):
            _log_error(f"  Error {i}: {err}")
