"""Path sandbox tests: traversal, symlink escape, sibling prefixes."""

import os
from pathlib import Path

import pytest

from rg_mcp.errors import ConfigError, InvalidPathError, PathTraversalError
from rg_mcp.sandbox import PathSandbox, is_within_root


def test_empty_path_returns_root_unmodified(tmp_path):
    # Root is returned as given, no canonicalization
    root = tmp_path / "a" / ".." / "a"
    sandbox = PathSandbox(root)
    assert sandbox.resolve("") == root


def test_relative_path_inside_root(sample_tree):
    sandbox = PathSandbox(sample_tree)
    resolved = sandbox.resolve("src/deep")
    assert resolved == (sample_tree / "src" / "deep").resolve()
    assert resolved.is_absolute()


def test_dot_segments_that_stay_inside_are_accepted(sample_tree):
    sandbox = PathSandbox(sample_tree)
    assert sandbox.resolve("src/../test_file.rs") == (sample_tree / "test_file.rs").resolve()
    assert sandbox.resolve(".") == sample_tree.resolve()


@pytest.fixture
def deep_root(tmp_path):
    """Root three levels below a directory holding etc/passwd."""
    (tmp_path / "etc").mkdir()
    (tmp_path / "etc" / "passwd").write_text("root:x:0:0\n")
    root = tmp_path / "a" / "b" / "c"
    (root / "src" / "deep").mkdir(parents=True)
    return root


@pytest.mark.parametrize(
    "path",
    ["../../../etc/passwd", "..", "src/../../", "src/deep/../../../..", "../../../etc"],
)
def test_traversal_is_rejected(deep_root, path):
    sandbox = PathSandbox(deep_root)
    with pytest.raises(PathTraversalError):
        sandbox.resolve(path)


def test_absolute_path_outside_root_is_traversal(sample_tree, tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    sandbox = PathSandbox(sample_tree)
    with pytest.raises(PathTraversalError):
        sandbox.resolve(str(outside))


def test_sibling_with_common_prefix_is_rejected(tmp_path):
    root = tmp_path / "data"
    root.mkdir()
    sibling = tmp_path / "data-old"
    sibling.mkdir()
    sandbox = PathSandbox(root)
    with pytest.raises(PathTraversalError):
        sandbox.resolve("../data-old")


def test_symlink_escape_is_rejected(sample_tree, tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("secret")
    link = sample_tree / "link_out"
    try:
        os.symlink(outside, link)
    except OSError:
        pytest.skip("Symlinks not supported")

    sandbox = PathSandbox(sample_tree)
    with pytest.raises(PathTraversalError):
        sandbox.resolve("link_out")


def test_symlink_inside_root_is_accepted(sample_tree):
    link = sample_tree / "link_in"
    try:
        os.symlink(sample_tree / "src", link)
    except OSError:
        pytest.skip("Symlinks not supported")

    assert PathSandbox(sample_tree).resolve("link_in") == (sample_tree / "src").resolve()


def test_missing_path_is_invalid(sample_tree):
    with pytest.raises(InvalidPathError) as exc:
        PathSandbox(sample_tree).resolve("does/not/exist")
    assert "does/not/exist" in str(exc.value)


def test_missing_path_outside_root_is_invalid_not_traversal(sample_tree):
    # Nonexistent candidates fail resolution before the containment check
    with pytest.raises(InvalidPathError):
        PathSandbox(sample_tree).resolve("../nope-not-here")


def test_null_byte_is_invalid(sample_tree):
    with pytest.raises(InvalidPathError) as exc:
        PathSandbox(sample_tree).resolve("src\x00/etc")
    assert "null" in str(exc.value)


def test_canonical_root_missing(tmp_path):
    with pytest.raises(ConfigError) as exc:
        PathSandbox(tmp_path / "missing").canonical_root()
    assert "Configuration error" in str(exc.value)


def test_is_within_root_is_component_wise():
    assert is_within_root(Path("/srv/data"), Path("/srv/data"))
    assert is_within_root(Path("/srv/data/x/y"), Path("/srv/data"))
    assert not is_within_root(Path("/srv/data-old"), Path("/srv/data"))
    assert not is_within_root(Path("/srv"), Path("/srv/data"))
