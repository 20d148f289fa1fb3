"""
External process execution.

ProcessRunner is the execution context shared by a compile session: it checks
whether binaries exist on PATH and runs them synchronously from a given
directory, capturing output in one of three modes.
"""

import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, TextIO, Union

from loguru import logger


class ExecutionMode(Enum):
    """How a process's output is surfaced while it runs."""

    FULLY_SILENT = "fully_silent"  # capture only
    SILENT = "silent"  # capture, log captured output at DEBUG if the run failed
    STREAM = "stream"  # echo each line live while capturing


@dataclass
class ProcessResult:
    """
    Result of one external process run.

    Attributes:
        args: Full command line (binary first)
        returncode: Exit status of the process
        stdout: Captured standard output
        stderr: Captured standard error (empty in STREAM mode, where it is merged into stdout)
    """

    args: List[str] = field(default_factory=list)
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ProcessRunner:
    """Runs external binaries synchronously. There is no timeout."""

    def __init__(self, stream: Optional[TextIO] = None):
        """
        Args:
            stream: Where STREAM mode echoes output (defaults to sys.stdout at run time)
        """
        self._stream = stream

    def command_exists(self, name: str) -> bool:
        """Check whether a binary is available on PATH."""
        return shutil.which(name) is not None

    def run(
        self,
        binary: str,
        args: Sequence[str] = (),
        cwd: Optional[Union[str, Path]] = None,
        mode: ExecutionMode = ExecutionMode.SILENT,
    ) -> ProcessResult:
        """
        Run a binary and wait for it to exit.

        Args:
            binary: Name or path of the executable
            args: Arguments passed after the binary
            cwd: Directory the process runs in
            mode: Output handling mode

        Returns:
            ProcessResult with exit status and captured output

        Raises:
            FileNotFoundError: If the binary cannot be executed
        """
        cmd = [str(binary), *[str(a) for a in args]]
        logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd}, mode={mode.value})")

        if mode is ExecutionMode.STREAM:
            return self._run_streaming(cmd, cwd)

        completed = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",  # TeX output is not always valid UTF-8
        )
        result = ProcessResult(
            args=cmd,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

        if mode is ExecutionMode.SILENT and not result.success:
            logger.debug(f"{binary} exited with status {result.returncode}")
            if result.stdout:
                logger.opt(raw=True).debug(f"{result.stdout}\n")
            if result.stderr:
                logger.opt(raw=True).debug(f"{result.stderr}\n")

        return result

    def _run_streaming(self, cmd: List[str], cwd: Optional[Union[str, Path]]) -> ProcessResult:
        stream = self._stream or sys.stdout
        lines = []

        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
        with proc.stdout:
            for line in proc.stdout:
                lines.append(line)
                stream.write(line)
                stream.flush()
        returncode = proc.wait()

        return ProcessResult(args=cmd, returncode=returncode, stdout="".join(lines), stderr="")
