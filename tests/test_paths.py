"""Tests for path resolution."""

import os
import random
from pathlib import PurePosixPath

import pytest
from pydantic import ValidationError

from folio import PathInvalidError, PathResolver, RelativePath

# Components used to fuzz the resolver
FUZZ_COMPONENTS = ["..", ".", "", "a", "b", "etc", "passwd", "..a", "...", "~", "\\", " ", "x.txt"]


def assert_strictly_under(resolver: PathResolver, relative: RelativePath) -> None:
    full = os.path.normpath(resolver.full_path(relative))
    root = str(resolver.root)
    assert full.startswith(root + os.sep)
    assert full != root


class TestResolve:
    """Test PathResolver.resolve normalization."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("a/b/c.txt", ("a", "b", "c.txt")),
            ("./x", ("x",)),
            ("/etc/passwd", ("etc", "passwd")),
            ("a/../../etc/passwd", ("a", "etc", "passwd")),
            ("a/b/../c/test.txt", ("a", "b", "c", "test.txt")),
            ("//double//slash", ("double", "slash")),
            ("a/./b/.", ("a", "b")),
            ("...", ("...",)),
            ("dir/", ("dir",)),
        ],
    )
    def test_normalizes(self, resolver, raw, expected):
        relative = resolver.resolve(raw)

        assert relative.parts == expected
        assert_strictly_under(resolver, relative)

    def test_accepts_bytes(self, resolver):
        assert resolver.resolve(b"a/b.txt").parts == ("a", "b.txt")

    def test_accepts_pure_path(self, resolver):
        assert resolver.resolve(PurePosixPath("/x/../y")).parts == ("x", "y")

    @pytest.mark.parametrize("raw", ["", "/", "..", "./..", "../..", "/./../"])
    def test_rejects_empty_result(self, resolver, raw):
        with pytest.raises(PathInvalidError, match="path is empty"):
            resolver.resolve(raw)

    def test_rejects_nul_byte(self, resolver):
        with pytest.raises(PathInvalidError, match="NUL"):
            resolver.resolve("a\x00b")

    def test_rejects_undecodable_bytes(self, resolver):
        with pytest.raises(PathInvalidError, match="UTF-8"):
            resolver.resolve(b"\xff\xfe/file")

    def test_rejects_lone_surrogates(self, resolver):
        with pytest.raises(PathInvalidError, match="UTF-8"):
            resolver.resolve("a/\udcff")

    def test_root_is_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        resolver = PathResolver("uploads")

        assert resolver.root.is_absolute()
        assert resolver.root == tmp_path / "uploads"


class TestRejectTraversal:
    """Test strict mode used by HTTP routes."""

    @pytest.mark.parametrize("raw", ["a/../b", "../x", "a/b/..", "a..b/c"])
    def test_rejects_dot_dot(self, resolver, raw):
        with pytest.raises(PathInvalidError, match="'..'"):
            resolver.resolve(raw, reject_traversal=True)

    def test_allows_current_dir_markers(self, resolver):
        relative = resolver.resolve("./a/./b", reject_traversal=True)
        assert relative.parts == ("a", "b")


class TestFuzzedContainment:
    """Every resolved path stays strictly below the root."""

    @pytest.mark.parametrize("seed", range(200))
    def test_random_component_sequences(self, resolver, seed):
        rng = random.Random(seed)
        components = [rng.choice(FUZZ_COMPONENTS) for _ in range(rng.randint(1, 10))]
        raw = "/".join(components)
        if rng.random() < 0.3:
            raw = "/" + raw

        try:
            relative = resolver.resolve(raw)
        except PathInvalidError:
            return

        assert ".." not in relative.parts
        assert "." not in relative.parts
        assert "" not in relative.parts
        assert_strictly_under(resolver, relative)


class TestRelativePath:
    """Test RelativePath invariants."""

    def test_str_and_name(self):
        relative = RelativePath(parts=("a", "b", "c.txt"))

        assert str(relative) == "a/b/c.txt"
        assert relative.name == "c.txt"

    @pytest.mark.parametrize("parts", [(), ("..",), (".",), ("",), ("a/b",), ("a\x00",)])
    def test_rejects_abnormal_parts(self, parts):
        with pytest.raises(ValidationError):
            RelativePath(parts=parts)

    def test_join(self, tmp_path):
        relative = RelativePath(parts=("a", "b.txt"))
        assert relative.join(tmp_path) == tmp_path / "a" / "b.txt"

    def test_is_hashable(self):
        assert len({RelativePath(parts=("a",)), RelativePath(parts=("a",))}) == 1
