"""
Filesystem helpers for staging and relocating compile inputs and outputs.

Thin wrappers over shutil/tempfile with the semantics the compile session
relies on: recursive copies that keep symlinks as links, symlink resolution
into real copies, unique temp allocation, and moves across filesystems.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union

PathLike = Union[str, Path]

TEMP_PREFIX = "texstage-"


def make_temp_dir(prefix: str = TEMP_PREFIX) -> Path:
    """Create a fresh, unique temporary directory and return its path."""
    return Path(tempfile.mkdtemp(prefix=prefix))


def make_temp_file(suffix: str = "", prefix: str = TEMP_PREFIX) -> Path:
    """Create a fresh, empty temporary file and return its path (caller owns removal)."""
    fd, name = tempfile.mkstemp(suffix=suffix, prefix=prefix)
    os.close(fd)
    return Path(name)


def abs_path(path: PathLike, base: Optional[PathLike] = None) -> Path:
    """
    Resolve a path to absolute form.

    Relative paths are interpreted against `base` when given, else against the
    process working directory. Symlinks are not resolved.
    """
    path = Path(path).expanduser()
    if not path.is_absolute():
        path = Path(base) / path if base is not None else Path.cwd() / path
    return Path(os.path.normpath(path))


def copy_dir(src: PathLike, dst: PathLike) -> Path:
    """
    Recursively copy a directory tree, merging into `dst` if it exists.

    Symlinks are copied as symlinks; use resolve_symlinks() afterwards to
    turn them into real files.
    """
    return Path(shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True))


def copy_file(src: PathLike, dst: PathLike) -> Path:
    """Copy a single file with metadata, overwriting `dst`."""
    return Path(shutil.copy2(src, dst))


def move_file(src: PathLike, dst: PathLike) -> Path:
    """
    Move a file, replacing `dst` if it exists.

    A rename on the same filesystem, copy + delete otherwise. The parent of
    `dst` must already exist.

    Raises:
        FileNotFoundError: If `src` or the parent directory of `dst` does not exist
    """
    src, dst = Path(src), Path(dst)
    if not src.exists():
        raise FileNotFoundError(f"Cannot move missing file: {src}")
    if not dst.parent.is_dir():
        raise FileNotFoundError(f"Destination directory does not exist: {dst.parent}")
    return Path(shutil.move(str(src), str(dst)))


def remove_tree(path: PathLike) -> None:
    """Remove a directory tree (or a single file/link). Missing paths are ignored."""
    path = Path(path)
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


def find_symlinks(root: PathLike) -> List[Path]:
    """List every symlink under `root` without descending into symlinked directories."""
    links = []
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        for name in dirnames + filenames:
            candidate = Path(dirpath) / name
            if candidate.is_symlink():
                links.append(candidate)
    return links


def resolve_symlinks(root: PathLike, origin: Optional[PathLike] = None) -> List[Path]:
    """
    Replace every symlink under `root` with a real copy of its target.

    When `root` is a copy of `origin`, relative links are resolved from the
    matching location inside `origin`, so links that point outside the copied
    tree still find their targets.

    Args:
        root: Directory whose symlinks are replaced
        origin: Directory `root` was copied from (optional)

    Returns:
        List of paths that were converted

    Raises:
        FileNotFoundError: If a link target does not exist
    """
    root = Path(root)
    converted = []

    for link in find_symlinks(root):
        target = _link_target(link, root, origin)
        link.unlink()
        if target.is_dir():
            shutil.copytree(target, link, symlinks=False)
        else:
            shutil.copy2(target, link)
        converted.append(link)

    return converted


def _link_target(link: Path, root: Path, origin: Optional[PathLike]) -> Path:
    if origin is not None:
        counterpart = Path(origin) / link.relative_to(root)
        if counterpart.is_symlink():
            return counterpart.resolve(strict=True)
    return link.resolve(strict=True)


def walk_files(
    directory: PathLike, onerror: Optional[Callable[[OSError], None]] = None
) -> Iterator[Path]:
    """Yield every file below `directory`; directory listing errors go to `onerror`."""
    for dirpath, _dirnames, filenames in os.walk(directory, onerror=onerror):
        for name in filenames:
            yield Path(dirpath) / name
