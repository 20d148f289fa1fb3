"""Shared fixtures: a scripted process runner and a small LaTeX source tree."""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from texstage.utils.process import ExecutionMode, ProcessResult, ProcessRunner

ALL_TOOLS = ("pdflatex", "xelatex", "lualatex", "gs", "lilypond-book")


@dataclass
class RecordedCall:
    binary: str
    args: List[str]
    cwd: Optional[Path]
    mode: ExecutionMode


def fake_engine(args: List[str], cwd: Path):
    """Behave like a LaTeX engine: write <stem>.pdf, .aux and .log next to the input."""
    source = cwd / args[-1]
    if not source.exists():
        return 1, f"! I can't find file `{args[-1]}'.", ""
    stem = source.with_suffix("")
    stem.with_suffix(".pdf").write_bytes(b"%PDF-1.5 " + source.read_bytes())
    stem.with_suffix(".aux").write_text("\\relax\n")
    stem.with_suffix(".log").write_text("This is a fake TeX log\n")
    return 0, "Output written", ""


def fake_ghostscript(args: List[str], cwd: Path):
    """Behave like gs -o <out> <in>: write a smaller PDF to the -o target."""
    out = Path(args[args.index("-o") + 1])
    source = cwd / args[-1]
    if not source.exists():
        return 1, "", f"Error: /undefinedfilename in ({args[-1]})"
    out.write_bytes(b"%PDF-optimized")
    return 0, "", ""


def fake_lilypond_book(args: List[str], cwd: Path):
    """Behave like lilypond-book --output=<dir>: write a .tex file and a snippet directory."""
    output = next(Path(a.split("=", 1)[1]) for a in args if a.startswith("--output="))
    source = Path(args[-1])
    (output / source.name).write_text("% processed by lilypond-book\n" + source.read_text())
    snippets = output / "ab"
    snippets.mkdir()
    (snippets / "lily-1234.pdf").write_bytes(b"%PDF-snippet")
    return 0, "", ""


class FakeRunner(ProcessRunner):
    """
    ProcessRunner that records calls and dispatches them to scripted behaviors.

    A behavior takes (args, cwd) and returns (returncode, stdout, stderr) or None for success.
    """

    def __init__(self, available=ALL_TOOLS):
        super().__init__()
        self.available = set(available)
        self.calls: List[RecordedCall] = []
        self.behaviors: Dict[str, Callable] = {
            "pdflatex": fake_engine,
            "xelatex": fake_engine,
            "lualatex": fake_engine,
            "gs": fake_ghostscript,
            "lilypond-book": fake_lilypond_book,
        }

    def command_exists(self, name: str) -> bool:
        return name in self.available

    def on(self, binary: str, behavior: Callable) -> None:
        self.behaviors[binary] = behavior

    def run(self, binary, args=(), cwd=None, mode=ExecutionMode.SILENT) -> ProcessResult:
        args = [str(a) for a in args]
        cwd = Path(cwd) if cwd is not None else None
        self.calls.append(RecordedCall(binary, args, cwd, mode))

        returncode, stdout, stderr = 0, "", ""
        behavior = self.behaviors.get(binary)
        if behavior is not None:
            outcome = behavior(args, cwd)
            if outcome is not None:
                returncode, stdout, stderr = outcome

        return ProcessResult(
            args=[binary, *args], returncode=returncode, stdout=stdout, stderr=stderr
        )


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def source_tree(tmp_path):
    """
    A document source tree:

        doc-src/
            main.tex
            chapters/intro.tex
            figures/plot.txt
    """
    src = tmp_path / "doc-src"
    (src / "chapters").mkdir(parents=True)
    (src / "figures").mkdir()
    (src / "main.tex").write_text(
        "\\documentclass{article}\n\\begin{document}\n\\input{chapters/intro}\n\\end{document}\n"
    )
    (src / "chapters" / "intro.tex").write_text("Hello from the introduction.\n")
    (src / "figures" / "plot.txt").write_text("1 2 3\n")
    return src
