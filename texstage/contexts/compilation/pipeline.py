"""
Document compilation pipeline.

Runs a full build through a CompileSession: stage, template, preprocess,
compile, optimize, clean, move, and clear the compile directory.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from texstage.contexts.compilation.exceptions import CompilationFatalError, PreprocessorError
from texstage.contexts.compilation.logger import (
    _log_debug,
    _log_error,
    _log_info,
    log_compilation_result,
    log_compilation_start,
    setup_compilation_logger,
)
from texstage.contexts.compilation.profile import CompileProfile
from texstage.contexts.compilation.session import (
    CompileSession,
    Engine,
    OptimizationResult,
    VerbosityLevel,
)
from texstage.contexts.templating.registries import load_template_data
from texstage.utils.filesystem import abs_path
from texstage.utils.process import ProcessRunner

PathLike = Union[str, Path]


@dataclass
class CompilationResult:
    """
    Result of a document build.

    Attributes:
        success: Whether the PDF reached its destination
        pdf_path: Final PDF location (None if failed)
        compile_dir: Compile directory used (removed unless kept)
        optimization: Outcome of the optimization step (None if not requested)
        errors: Error messages collected during the build
        elapsed_s: Wall-clock duration of the build
    """

    success: bool
    pdf_path: Optional[Path] = None
    compile_dir: Optional[Path] = None
    optimization: Optional[OptimizationResult] = None
    errors: List[str] = field(default_factory=list)
    elapsed_s: float = 0.0


def compile_document(
    source_dir: PathLike,
    entry_file: str,
    destination: PathLike,
    profile: Optional[CompileProfile] = None,
    compile_dir: Optional[PathLike] = None,
    runner: Optional[ProcessRunner] = None,
    log_dir: Optional[PathLike] = None,
) -> CompilationResult:
    """
    Compile a LaTeX document from a source tree into a PDF at `destination`.

    The source tree is staged into `compile_dir` (a fresh temp directory if
    omitted) and never modified. If `destination` is an existing directory the
    PDF keeps its derived name inside it; missing parent directories are created.

    Args:
        source_dir: Directory holding the document sources
        entry_file: Top-level .tex file, relative to source_dir
        destination: Final PDF path or directory
        profile: Build settings (defaults to CompileProfile())
        compile_dir: Directory to build in
        runner: Process runner (injected in tests)
        log_dir: When given, loguru is configured to log into this directory

    Returns:
        CompilationResult with success status and diagnostic information

    Raises:
        ValueError: If the profile names an unknown engine or verbosity
        WorkingDirectoryError: If the compile directory cannot be cleared
    """
    profile = profile or CompileProfile()
    engine = Engine(profile.engine)
    try:
        verbosity = VerbosityLevel[profile.verbosity.upper()]
    except KeyError:
        raise ValueError(f"Unknown verbosity: {profile.verbosity!r}") from None

    if log_dir is not None:
        console_level = "DEBUG" if verbosity is VerbosityLevel.DEBUG else "INFO"
        setup_compilation_logger(Path(log_dir), engine.value, console_level=console_level)

    session = CompileSession(
        runner=runner,
        source_dir=source_dir,
        compile_filename=entry_file,
        resolve_symlinks=profile.resolve_symlinks,
        verbosity=verbosity,
    )
    log_compilation_start(session.compile_filename, session.source_dir, engine.value, profile.passes)

    start_time = time.time()
    result = CompilationResult(success=False)

    try:
        session.stage(compile_dir)
        result.compile_dir = session.effective_compile_dir

        if profile.template_data:
            data = load_template_data(profile.template_data)
            session.render_template(None, data)
            _log_debug(f"Applied template data from {profile.template_data}")

        if profile.music_preprocess:
            session.run_music_preprocessor()

        for i in range(profile.passes):
            _log_debug(f"Pass {i + 1}/{profile.passes}")
            session.run_compiler(engine, extra_args=profile.extra_args)

        if profile.optimize_channel:
            result.optimization = session.optimize(channel=profile.optimize_channel)

        if profile.clear_auxiliary:
            session.clear_auxiliary_files()

        target = abs_path(destination)
        if target.is_dir():
            target = target / Path(session.output_filename).name
        target.parent.mkdir(parents=True, exist_ok=True)

        result.pdf_path = session.move_to_destination(target)
        result.success = True
    except (CompilationFatalError, PreprocessorError, OSError, ValueError) as e:
        _log_error(f"{type(e).__name__}: {e}")
        result.errors.append(str(e))
    finally:
        result.elapsed_s = time.time() - start_time
        if profile.keep_compile_dir:
            _log_info(f"Keeping compile directory: {session.effective_compile_dir}")
        elif session.is_in_place:
            # Also reached when staging was rejected before a compile directory was set
            _log_debug(f"Compiled in place at {session.source_dir}, nothing to clear")
        else:
            session.clear_compile_dir()

    log_compilation_result(session.compile_filename, result)
    return result
