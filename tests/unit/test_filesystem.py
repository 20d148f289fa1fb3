"""Unit tests for filesystem helpers in texstage.utils.filesystem."""

import os
from pathlib import Path

import pytest

from texstage.utils.filesystem import (
    abs_path,
    copy_dir,
    find_symlinks,
    make_temp_dir,
    make_temp_file,
    move_file,
    remove_tree,
    resolve_symlinks,
    walk_files,
)


@pytest.mark.unit
def test_make_temp_dir_is_unique():
    first, second = make_temp_dir(), make_temp_dir()
    try:
        assert first.is_dir() and second.is_dir()
        assert first != second
    finally:
        remove_tree(first)
        remove_tree(second)


@pytest.mark.unit
def test_make_temp_file_suffix():
    path = make_temp_file(suffix=".pdf")
    try:
        assert path.exists()
        assert path.suffix == ".pdf"
        assert path.stat().st_size == 0
    finally:
        path.unlink()


@pytest.mark.unit
def test_abs_path_with_base(tmp_path):
    assert abs_path("a/../b.tex", base=tmp_path) == tmp_path / "b.tex"
    assert abs_path(tmp_path / "x") == tmp_path / "x"


@pytest.mark.unit
def test_abs_path_uses_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert abs_path("out.pdf") == Path.cwd() / "out.pdf"


@pytest.mark.unit
def test_copy_dir_merges_and_keeps_links(tmp_path):
    src = tmp_path / "src"
    (src / "sub").mkdir(parents=True)
    (src / "sub" / "a.tex").write_text("a")
    os.symlink("sub/a.tex", src / "link.tex")
    dst = tmp_path / "dst"
    dst.mkdir()
    (dst / "existing.txt").write_text("kept")

    copy_dir(src, dst)

    assert (dst / "sub" / "a.tex").read_text() == "a"
    assert (dst / "link.tex").is_symlink()
    assert (dst / "existing.txt").read_text() == "kept"


@pytest.mark.unit
def test_move_file_requires_destination_dir(tmp_path):
    src = tmp_path / "a.pdf"
    src.write_bytes(b"%PDF")

    with pytest.raises(FileNotFoundError):
        move_file(src, tmp_path / "missing" / "a.pdf")
    assert src.exists()

    moved = move_file(src, tmp_path / "b.pdf")
    assert moved.read_bytes() == b"%PDF"
    assert not src.exists()


@pytest.mark.unit
def test_move_file_replaces_existing(tmp_path):
    src = tmp_path / "new.pdf"
    src.write_bytes(b"new")
    dst = tmp_path / "old.pdf"
    dst.write_bytes(b"old")

    move_file(src, dst)

    assert dst.read_bytes() == b"new"


@pytest.mark.unit
def test_move_file_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        move_file(tmp_path / "nope.pdf", tmp_path / "out.pdf")


@pytest.mark.unit
def test_remove_tree_handles_files_links_and_missing(tmp_path):
    directory = tmp_path / "d"
    (directory / "x").mkdir(parents=True)
    single = tmp_path / "f.txt"
    single.write_text("")
    link = tmp_path / "l"
    os.symlink(directory, link)

    remove_tree(link)
    assert directory.exists()
    remove_tree(directory)
    remove_tree(single)
    remove_tree(tmp_path / "never")

    assert not directory.exists() and not single.exists() and not link.exists()


@pytest.mark.unit
def test_resolve_symlinks_without_origin(tmp_path):
    target = tmp_path / "target.tex"
    target.write_text("content")
    root = tmp_path / "root"
    root.mkdir()
    os.symlink(target, root / "copy.tex")

    converted = resolve_symlinks(root)

    assert converted == [root / "copy.tex"]
    assert not (root / "copy.tex").is_symlink()
    assert (root / "copy.tex").read_text() == "content"
    assert find_symlinks(root) == []


@pytest.mark.unit
def test_resolve_symlinks_broken_link_raises(tmp_path):
    root = tmp_path / "root"
    root.mkdir()
    os.symlink(tmp_path / "gone.tex", root / "broken.tex")

    with pytest.raises(FileNotFoundError):
        resolve_symlinks(root)


@pytest.mark.unit
def test_walk_files_reports_errors(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "x.tex").write_text("")
    (tmp_path / "y.tex").write_text("")

    assert sorted(p.name for p in walk_files(tmp_path)) == ["x.tex", "y.tex"]

    errors = []
    assert list(walk_files(tmp_path / "missing", onerror=errors.append)) == []
    assert len(errors) == 1
