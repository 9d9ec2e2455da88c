"""Tests for extension selection."""

import pytest

from folio.media import (
    extension_for_content_type,
    extension_for_filename,
    extension_for_upload,
)


class TestContentType:
    """Test extension_for_content_type."""

    @pytest.mark.parametrize(
        ("content_type", "expected"),
        [
            ("text/plain", "txt"),
            ("text/plain; charset=utf-8", "txt"),
            ("IMAGE/JPEG", "jpg"),
            ("application/gzip", "gz"),
            ("application/json", "json"),
        ],
    )
    def test_known(self, content_type, expected):
        assert extension_for_content_type(content_type) == expected

    @pytest.mark.parametrize(
        "content_type",
        [None, "", "application/octet-stream", "multipart/form-data; boundary=x", "x-unknown/none"],
    )
    def test_no_extension(self, content_type):
        assert extension_for_content_type(content_type) is None


class TestFilename:
    """Test extension_for_filename."""

    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("report.pdf", "pdf"),
            ("archive.tar.gz", "tar.gz"),
            ("C:\\Users\\me\\photo.png", "png"),
            ("dir/notes.md", "md"),
        ],
    )
    def test_suffixes(self, filename, expected):
        assert extension_for_filename(filename) == expected

    @pytest.mark.parametrize("filename", [None, "", "README", ".bashrc"])
    def test_no_suffix(self, filename):
        assert extension_for_filename(filename) is None


class TestUpload:
    """Test extension_for_upload precedence."""

    def test_content_type_wins(self):
        assert extension_for_upload("text/plain", "data.csv") == "txt"

    def test_filename_fallback(self):
        assert extension_for_upload("application/octet-stream", "backup.tar.gz") == "tar.gz"

    def test_neither(self):
        assert extension_for_upload(None, None) is None
