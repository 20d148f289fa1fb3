"""
Compile profiles

A compile profile is a YAML file describing how a document is built:

    engine: xelatex
    passes: 2
    extra_args: ["-interaction=nonstopmode", "-halt-on-error"]
    verbosity: default
    resolve_symlinks: true
    optimize_channel: ebook
    clear_auxiliary: true
    music_preprocess: false
    template_data: data/letter.yaml

Profiles are merged onto the CompileProfile defaults with OmegaConf, so unknown
keys and wrongly typed values are rejected at load time.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

load_dotenv()
DEFAULT_ENGINE = os.getenv("TEXSTAGE_DEFAULT_ENGINE", "pdflatex")


@dataclass
class CompileProfile:
    """
    Settings for one document build.

    Attributes:
        engine: LaTeX engine name (pdflatex, xelatex, lualatex)
        passes: Number of engine runs (2+ resolves cross-references)
        extra_args: Arguments passed to the engine before the filename
        verbosity: silent, default, verbose, or debug
        resolve_symlinks: Replace symlinks in staged sources with real copies
        optimize_channel: Ghostscript preset, or None to skip optimization
        clear_auxiliary: Remove .aux/.log/... from the compile directory after the build
        keep_compile_dir: Leave the compile directory in place for inspection
        music_preprocess: Run lilypond-book before the engine
        template_data: YAML file rendered into the entry file before compiling
    """

    engine: str = DEFAULT_ENGINE
    passes: int = 1
    extra_args: List[str] = field(default_factory=lambda: ["-interaction=nonstopmode"])
    verbosity: str = "default"
    resolve_symlinks: bool = False
    optimize_channel: Optional[str] = None
    clear_auxiliary: bool = False
    keep_compile_dir: bool = False
    music_preprocess: bool = False
    template_data: Optional[str] = None


def load_compile_profile(
    path: Optional[Union[str, Path]] = None, overrides: Optional[Dict[str, Any]] = None
) -> CompileProfile:
    """
    Load a compile profile, applying optional overrides on top.

    Args:
        path: Profile YAML (defaults only if None)
        overrides: Values that take precedence over the file (None values are ignored)

    Returns:
        CompileProfile instance
    """
    config = OmegaConf.structured(CompileProfile)

    try:
        if path is not None:
            config = OmegaConf.merge(config, OmegaConf.load(Path(path)))

        if overrides:
            config = OmegaConf.merge(
                config, {key: value for key, value in overrides.items() if value is not None}
            )

        profile = OmegaConf.to_object(config)
    except OmegaConfBaseException as e:
        raise ValueError(f"Invalid compile profile {path or ''}: {e}") from e

    if profile.passes < 1:
        raise ValueError(f"passes must be at least 1, got {profile.passes}")
    return profile
