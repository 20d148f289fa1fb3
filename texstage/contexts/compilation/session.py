"""
Compile Session

Holds the directory and filename state of one compilation run and exposes its
lifecycle: stage sources, render templates, run a LaTeX engine, optimize the
PDF, move it to its destination, and clear the compile directory.

Directory layout:
- In-place mode (compile_dir unset or equal to source_dir): everything happens
  in the source directory.
- Isolated mode: sources are staged into compile_dir/input/, and the engine
  runs there.
"""

import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from dotenv import load_dotenv

from texstage.contexts.compilation.exceptions import (
    CompilerError,
    PreprocessorError,
    StagingError,
    TemplateApplicationError,
    ToolNotFoundError,
    WorkingDirectoryError,
)
from texstage.contexts.compilation.logger import (
    _log_debug,
    _log_info,
    _log_warning,
    log_tool_output,
)
from texstage.contexts.templating.exceptions import (
    TemplateNotRegisteredError,
    TemplateRenderError,
)
from texstage.contexts.templating.registries import TemplateRegistry
from texstage.utils.filesystem import (
    TEMP_PREFIX,
    abs_path,
    copy_dir,
    copy_file,
    make_temp_dir,
    make_temp_file,
    move_file,
    remove_tree,
    resolve_symlinks,
    walk_files,
)
from texstage.utils.process import ExecutionMode, ProcessResult, ProcessRunner

load_dotenv()

OPTIMIZER_BINARY = os.getenv("TEXSTAGE_OPTIMIZER", "gs")
MUSIC_PREPROCESSOR_BINARY = os.getenv("TEXSTAGE_MUSIC_PREPROCESSOR", "lilypond-book")

SOURCE_EXTENSION = ".tex"
OUTPUT_EXTENSION = ".pdf"

# Staged sources live here inside an isolated compile directory
INPUT_SUBDIR = "input"

# Transient files LaTeX and makeindex leave behind
AUXILIARY_EXTENSIONS = ["aux", "log", "toc", "nav", "ind", "ilg", "idx"]

# Ghostscript -dPDFSETTINGS presets
OPTIMIZATION_CHANNELS = ("screen", "printer", "prepress", "ebook", "default")

PathLike = Union[str, Path]


class Engine(str, Enum):
    """LaTeX engines the session can run. They differ only in the binary name."""

    PDFLATEX = "pdflatex"
    XELATEX = "xelatex"
    LUALATEX = "lualatex"


class VerbosityLevel(IntEnum):
    """How much engine output is surfaced."""

    SILENT = 0
    DEFAULT = 1
    VERBOSE = 2
    DEBUG = 3

    @property
    def execution_mode(self) -> ExecutionMode:
        if self is VerbosityLevel.SILENT:
            return ExecutionMode.FULLY_SILENT
        if self >= VerbosityLevel.VERBOSE:
            return ExecutionMode.STREAM
        return ExecutionMode.SILENT


class OptimizationStatus(Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class OptimizationResult:
    """
    Outcome of a PDF optimization attempt.

    Attributes:
        status: SKIPPED (not applicable), SUCCEEDED, or FAILED (optimizer ran and failed)
        reason: Why the optimization was skipped or failed
        pdf_path: Artifact the optimization targeted (None when skipped before resolving it)
        stdout: Optimizer standard output
        stderr: Optimizer standard error
    """

    status: OptimizationStatus
    reason: str = ""
    pdf_path: Optional[Path] = None
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status is OptimizationStatus.SUCCEEDED


@dataclass
class AuxiliaryCleanup:
    """Files removed by an auxiliary cleanup pass, and how many entries could not be handled."""

    removed: List[Path] = field(default_factory=list)
    failed: int = 0


def normalize_compile_filename(filename: str) -> str:
    """Append the .tex extension unless the name already carries it."""
    if not filename.endswith(SOURCE_EXTENSION):
        return filename + SOURCE_EXTENSION
    return filename


def output_filename_for(filename: str) -> str:
    """
    Derive the PDF name the engine produces for a source file.

    Replaces the file's real extension (or appends one if it has none):
    "report.tex" -> "report.pdf", "dir/notes.latex" -> "dir/notes.pdf".

    Raises:
        ValueError: If the name has no stem (e.g. "" or ".tex")
    """
    path = Path(filename)
    if not path.stem or (path.name.startswith(".") and not path.suffix):
        raise ValueError(f"Cannot derive an output filename from {filename!r}: no filename stem")
    return str(path.with_suffix(OUTPUT_EXTENSION))


class CompileSession:
    """
    State and lifecycle of a single compilation run.

    Not thread-safe; one session owns its compile directory exclusively.
    """

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        template_registry: Optional[TemplateRegistry] = None,
        source_dir: Optional[PathLike] = None,
        compile_filename: str = "",
        resolve_symlinks: bool = False,
        verbosity: VerbosityLevel = VerbosityLevel.DEFAULT,
    ):
        """
        Args:
            runner: Execution context used for every external tool
            template_registry: Registry used by template()/render_template()
            source_dir: Read-only input tree
            compile_filename: Entry file, with or without .tex
            resolve_symlinks: Replace symlinks in staged sources with real copies
            verbosity: How much engine output is surfaced
        """
        self.runner = runner or ProcessRunner()
        self.template_registry = template_registry or TemplateRegistry()
        self._source_dir: Optional[Path] = None
        self._compile_dir: Optional[Path] = None
        self._compile_filename = compile_filename
        self._resolve_symlinks = resolve_symlinks
        self._verbosity = VerbosityLevel(verbosity)
        self._staged = False

        if source_dir is not None:
            self.source_dir = source_dir

    # Configuration

    @property
    def source_dir(self) -> Optional[Path]:
        """Source directory for compilation."""
        return self._source_dir

    @source_dir.setter
    def source_dir(self, source_dir: Optional[PathLike]) -> None:
        self._source_dir = abs_path(source_dir) if source_dir else None

    @property
    def resolve_symlinks(self) -> bool:
        """Whether symlinks in staged sources are replaced by real copies."""
        return self._resolve_symlinks

    @resolve_symlinks.setter
    def resolve_symlinks(self, resolve: bool) -> None:
        self._resolve_symlinks = bool(resolve)

    @property
    def verbosity(self) -> VerbosityLevel:
        return self._verbosity

    @verbosity.setter
    def verbosity(self, verbosity: VerbosityLevel) -> None:
        self._verbosity = VerbosityLevel(verbosity)

    @property
    def compile_filename(self) -> str:
        """Entry file to compile, always ending in .tex."""
        return normalize_compile_filename(self._compile_filename)

    @compile_filename.setter
    def compile_filename(self, filename: str) -> None:
        self._compile_filename = filename or ""

    @property
    def output_filename(self) -> str:
        """PDF name expected after compiling the entry file."""
        return output_filename_for(self.compile_filename)

    # Directories

    @property
    def compile_dir(self) -> Optional[Path]:
        """Compile directory exactly as configured (None if unset)."""
        return self._compile_dir

    def set_compile_dir(self, compile_dir: Optional[PathLike] = None) -> Path:
        """
        Set the directory used for compilation.

        If no directory is given a fresh unique temporary directory is used,
        which is usually preferable because it guarantees a clean build state.
        Switching directories invalidates previously staged files.

        Returns:
            The compile directory now in effect
        """
        if not compile_dir:
            compile_dir = make_temp_dir()
        self._compile_dir = abs_path(compile_dir)
        self._staged = False
        return self._compile_dir

    @property
    def effective_compile_dir(self) -> Optional[Path]:
        """The compile directory, falling back to the source directory when unset."""
        if self._compile_dir is None:
            return self._source_dir
        return self._compile_dir

    @property
    def is_in_place(self) -> bool:
        """True when compilation happens directly in the source directory."""
        effective = self.effective_compile_dir
        return effective is not None and effective == self._source_dir

    @property
    def internal_compile_dir(self) -> Optional[Path]:
        """Directory holding the sources the engine runs on."""
        effective = self.effective_compile_dir
        if effective is None or self.is_in_place:
            return effective
        return effective / INPUT_SUBDIR

    @property
    def is_staged(self) -> bool:
        """Whether sources were staged into the current compile directory."""
        return self._staged

    def _require_internal_dir(self) -> Path:
        internal = self.internal_compile_dir
        if internal is None:
            raise StagingError("No compile directory: set a source directory or stage first")
        return internal

    def _resolve_filename(self, filename: Optional[str]) -> str:
        return filename if filename else self.compile_filename

    def _in_compile_dir(self, filename: PathLike) -> Path:
        return abs_path(filename, base=self._require_internal_dir())

    def _check_disjoint_from_source(self, compile_dir: Path) -> None:
        """
        Reject a compile directory that overlaps the source tree.

        The compile directory is wiped on staging and on clearing, so it must
        neither lie inside the source tree nor contain it. Equal directories
        mean in-place mode and are allowed.

        Raises:
            StagingError: If the directories are nested either way
        """
        source = self._source_dir
        if compile_dir == source:
            return
        if source in compile_dir.parents:
            reason = "Compile directory must not lie inside the source directory"
        elif compile_dir in source.parents:
            reason = "Compile directory must not contain the source directory"
        else:
            return
        raise StagingError(reason, source_dir=source, compile_dir=compile_dir)

    # Lifecycle

    def stage(self, compile_dir: Optional[PathLike] = None) -> Path:
        """
        Copy the source tree into a fresh compile directory.

        Removes whatever exists at the internal compile directory, recreates it,
        copies the source tree into it, and resolves symlinks if configured.
        In in-place mode nothing is removed or copied.

        Args:
            compile_dir: Directory to compile in (a temp directory if omitted)

        Returns:
            The internal compile directory

        Raises:
            StagingError: If the compile directory overlaps the source tree, or any
                step fails; the session must not be used further
        """
        if self._source_dir is None:
            raise StagingError("Cannot stage without a source directory")

        # A rejected directory must never become the session's compile directory
        if compile_dir:
            self._check_disjoint_from_source(abs_path(compile_dir))

        try:
            self.set_compile_dir(compile_dir)
        except OSError as e:
            raise StagingError(
                "Could not allocate compile directory", source_dir=self._source_dir, original_error=e
            ) from e

        internal = self.internal_compile_dir

        if self.is_in_place:
            _log_debug(f"Compiling in place at {internal}, nothing to stage")
            self._staged = True
            return internal

        _log_info(f"Staging {self._source_dir} into {internal}")
        try:
            remove_tree(internal)
            internal.mkdir(parents=True, mode=0o700)
            copy_dir(self._source_dir, internal)

            if self._resolve_symlinks:
                converted = resolve_symlinks(internal, origin=self._source_dir)
                _log_debug(f"Resolved {len(converted)} symlinks")
        except OSError as e:
            raise StagingError(
                "Staging failed",
                source_dir=self._source_dir,
                compile_dir=internal,
                original_error=e,
            ) from e

        self._staged = True
        return internal

    def run_compiler(
        self,
        engine: Union[Engine, str],
        filename: Optional[str] = None,
        extra_args: Sequence[str] = (),
    ) -> ProcessResult:
        """
        Run a LaTeX engine on a file in the internal compile directory.

        For standard invocation no extra arguments are needed.

        Args:
            engine: Engine to run
            filename: File to compile (defaults to the entry file)
            extra_args: Arguments placed before the filename

        Returns:
            ProcessResult of the successful run

        Raises:
            ToolNotFoundError: If the engine is not on PATH
            CompilerError: If the engine exits with a non-zero status
        """
        tool = Engine(engine).value
        filename = self._resolve_filename(filename)
        cwd = self._require_internal_dir()

        if not self.runner.command_exists(tool):
            raise ToolNotFoundError(tool)

        args = [*extra_args, filename]
        result = self.runner.run(tool, args, cwd=cwd, mode=self._verbosity.execution_mode)

        if not result.success:
            log_tool_output(tool, result.stdout, result.stderr)
            raise CompilerError(
                tool_name=tool,
                filename=filename,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        _log_debug(f"{tool} finished on {filename}")
        return result

    def run_music_preprocessor(
        self,
        filename: Optional[str] = None,
        extra_args: Sequence[str] = (),
        tool_name: str = MUSIC_PREPROCESSOR_BINARY,
    ) -> List[Path]:
        """
        Run lilypond-book on a file and copy its output into the compile directory.

        The tool writes into a private temporary directory, which is removed on
        every exit path. Each produced entry is copied into the internal compile
        directory under its base name.

        Returns:
            Paths created in the internal compile directory

        Raises:
            PreprocessorError: If the tool is missing, fails, or its output cannot be copied
        """
        cwd = self._require_internal_dir()
        input_file = self._in_compile_dir(self._resolve_filename(filename))

        if not self.runner.command_exists(tool_name):
            raise PreprocessorError(f"Required tool not found on PATH: {tool_name}", tool_name)

        copied = []
        with tempfile.TemporaryDirectory(prefix=TEMP_PREFIX) as output_dir:
            args = [*extra_args, "--pdf", f"--output={output_dir}", str(input_file)]
            result = self.runner.run(tool_name, args, cwd=cwd, mode=ExecutionMode.FULLY_SILENT)

            if not result.success:
                raise PreprocessorError(
                    f"{tool_name} failed on {input_file.name} with exit status {result.returncode}",
                    tool_name,
                    returncode=result.returncode,
                    stdout=result.stdout,
                    stderr=result.stderr,
                )

            try:
                for entry in sorted(Path(output_dir).iterdir()):
                    target = cwd / entry.name
                    if entry.is_dir():
                        copy_dir(entry, target)
                    else:
                        copy_file(entry, target)
                    copied.append(target)
            except OSError as e:
                raise PreprocessorError(
                    f"Could not copy {tool_name} output into {cwd}", tool_name, original_error=e
                ) from e

        _log_debug(f"{tool_name} produced {len(copied)} entries")
        return copied

    def optimize(self, filename: Optional[str] = None, channel: str = "default") -> OptimizationResult:
        """
        Shrink a produced PDF with ghostscript for a given output channel.

        Valid channels are "screen", "printer", "prepress", "ebook", "default".
        An unknown channel or a missing ghostscript binary skips optimization.

        Args:
            filename: Source or PDF name (defaults to the entry file's PDF)
            channel: Ghostscript PDFSETTINGS preset

        Returns:
            OptimizationResult; on FAILED the original PDF is left untouched
        """
        if channel not in OPTIMIZATION_CHANNELS:
            _log_debug(f"Skipping optimization: unknown channel {channel!r}")
            return OptimizationResult(OptimizationStatus.SKIPPED, reason=f"unknown channel {channel!r}")

        if not self.runner.command_exists(OPTIMIZER_BINARY):
            _log_debug(f"Skipping optimization: {OPTIMIZER_BINARY} not found")
            return OptimizationResult(
                OptimizationStatus.SKIPPED, reason=f"{OPTIMIZER_BINARY} not found"
            )

        cwd = self._require_internal_dir()
        pdf_path = self._in_compile_dir(output_filename_for(self._resolve_filename(filename)))

        temp_file = make_temp_file(suffix=OUTPUT_EXTENSION)
        params = [
            "-sDEVICE=pdfwrite",
            "-dCompatibilityLevel=1.4",
            f"-dPDFSETTINGS=/{channel}",
            "-o",
            str(temp_file),
            str(pdf_path),
        ]
        try:
            result = self.runner.run(OPTIMIZER_BINARY, params, cwd=cwd, mode=ExecutionMode.SILENT)
            if not result.success:
                _log_warning(f"Optimization of {pdf_path.name} failed (status {result.returncode})")
                return OptimizationResult(
                    OptimizationStatus.FAILED,
                    reason=f"{OPTIMIZER_BINARY} exited with status {result.returncode}",
                    pdf_path=pdf_path,
                    stdout=result.stdout,
                    stderr=result.stderr,
                )
            move_file(temp_file, pdf_path)
        finally:
            if temp_file.exists():
                temp_file.unlink()

        _log_debug(f"Optimized {pdf_path.name} for {channel}")
        return OptimizationResult(OptimizationStatus.SUCCEEDED, pdf_path=pdf_path)

    def move_to_destination(self, to_path: PathLike, from_name: Optional[str] = None) -> Path:
        """
        Move a file out of the internal compile directory.

        Args:
            to_path: Destination path (relative paths resolve against the process cwd)
            from_name: File inside the compile directory (defaults to the entry file's PDF)

        Returns:
            Absolute destination path

        Raises:
            FileNotFoundError: If the file or the destination directory does not exist
            OSError: For any other move failure
        """
        if not from_name:
            from_name = self.output_filename
        source = self._in_compile_dir(from_name)
        destination = abs_path(to_path)

        moved = move_file(source, destination)
        _log_info(f"Moved {source.name} to {moved}")
        return moved

    def clear_compile_dir(self) -> bool:
        """
        Remove the compile directory.

        Suitable for a finally block after stage(). In in-place mode the
        compile directory is the source directory, which is never removed.

        Returns:
            True if a directory was removed

        Raises:
            WorkingDirectoryError: If the session compiles in place, or the
                directory exists but cannot be removed
        """
        target = self.effective_compile_dir
        if target is None:
            return False
        if self.is_in_place:
            raise WorkingDirectoryError(target, reason="it is the source directory")
        if not target.exists():
            return False

        try:
            remove_tree(target)
        except OSError as e:
            raise WorkingDirectoryError(target, original_error=e) from e

        self._staged = False
        _log_debug(f"Cleared compile directory {target}")
        return True

    def clear_auxiliary_files(self, directory: Optional[PathLike] = None) -> AuxiliaryCleanup:
        """
        Remove common temporary LaTeX files below a directory.

        Errors on individual entries are skipped and counted.

        Args:
            directory: Directory to clean (defaults to the internal compile directory)
        """
        directory = Path(directory) if directory else self._require_internal_dir()
        cleanup = AuxiliaryCleanup()

        def _count_error(_error: OSError) -> None:
            cleanup.failed += 1

        for path in walk_files(directory, onerror=_count_error):
            if path.suffix[1:] not in AUXILIARY_EXTENSIONS:
                continue
            try:
                path.unlink()
            except OSError:
                cleanup.failed += 1
                continue
            cleanup.removed.append(path)

        _log_debug(
            f"Removed {len(cleanup.removed)} auxiliary files from {directory} "
            f"({cleanup.failed} entries skipped)"
        )
        return cleanup

    # Templating

    def template(self, base_filename: Optional[str] = None) -> Tuple[TemplateRegistry, Path]:
        """
        Register a staged source file as a template.

        Args:
            base_filename: File in the compile directory (defaults to the entry file)

        Returns:
            (registry, absolute path of the file); the template is registered
            under the file's base name

        Raises:
            TemplateApplicationError: If the file cannot be read
        """
        path = self._in_compile_dir(self._resolve_filename(base_filename))
        try:
            self.template_registry.register_template(path.name, path)
        except OSError as e:
            raise TemplateApplicationError(path, original_error=e) from e
        return self.template_registry, path

    def render_template(
        self,
        registry: Optional[TemplateRegistry],
        data,
        input_filename: Optional[str] = None,
        output_filename: Optional[str] = None,
    ) -> Path:
        """
        Render the template registered for a staged file.

        Without an output filename the input file is replaced: the result is
        rendered into a temp file, the original is deleted, and the temp file
        is copied over it.

        Args:
            registry: Registry holding the template (defaults to the session's)
            data: Mapping (or any value, exposed as `data`) passed to the template
            input_filename: Staged file whose base name names the template
            output_filename: Where to write the result (relative to the compile directory)

        Returns:
            Path of the written file

        Raises:
            TemplateApplicationError: If rendering or any file operation fails
        """
        registry = registry or self.template_registry
        input_file = self._in_compile_dir(self._resolve_filename(input_filename))
        in_place = not output_filename
        output_file = None

        try:
            if in_place:
                output_file = make_temp_file(suffix=SOURCE_EXTENSION)
            else:
                output_file = self._in_compile_dir(output_filename)

            name = input_file.name
            if not registry.is_registered(name):
                registry.register_template(name, input_file)

            with open(output_file, "w", encoding="utf-8") as f:
                registry.render(name, data, f)

            if in_place:
                input_file.unlink()
                copy_file(output_file, input_file)
        except (OSError, TemplateRenderError, TemplateNotRegisteredError) as e:
            raise TemplateApplicationError(input_file, original_error=e) from e
        finally:
            if in_place and output_file is not None and output_file.exists():
                output_file.unlink()

        result = input_file if in_place else output_file
        _log_debug(f"Rendered template {input_file.name} into {result}")
        return result
