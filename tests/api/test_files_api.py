"""Tests for the /files routes."""

import pytest


def upload(content=b"hello", name="hello.txt", content_type="text/plain"):
    return {"file": (name, content, content_type)}


@pytest.fixture
def uploads_dir(app_config):
    return app_config.uploads_path


class TestCreate:
    """Test POST /files/<path>."""

    def test_creates_file(self, client, uploads_dir):
        response = client.post("/files/a/b/c.txt", files=upload())

        assert response.status_code == 201
        assert response.json() == {"message": "file created successfully"}
        assert (uploads_dir / "a" / "b" / "c.txt").read_bytes() == b"hello"

    def test_conflict(self, client, uploads_dir):
        client.post("/files/x.txt", files=upload(b"first"))

        response = client.post("/files/x.txt", files=upload(b"second"))

        assert response.status_code == 409
        assert response.json() == {"message": "file already exists: x.txt"}
        assert (uploads_dir / "x.txt").read_bytes() == b"first"

    def test_served_after_create(self, client):
        client.post("/files/docs/readme.md", files=upload(b"# title"))

        response = client.get("/files/docs/readme.md")

        assert response.status_code == 200
        assert response.content == b"# title"

    def test_missing_file_not_served(self, client):
        assert client.get("/files/nothing-here.txt").status_code == 404

    def test_too_large(self, client_factory):
        client = client_factory(max_upload_size=4)

        response = client.post("/files/big.bin", files=upload(b"0123456789"))

        assert response.status_code == 413
        assert "file too large" in response.json()["message"]


class TestTraversal:
    """Test rejection of traversal attempts."""

    @pytest.mark.parametrize(
        "url",
        [
            "/files/%2E%2E/secret.txt",
            "/files/a/%2e%2e/%2e%2e/secret.txt",
            "/files/a..b/c.txt",
            "/files/..%2Fsecret.txt",
        ],
    )
    def test_rejected(self, client, tmp_path, url):
        response = client.post(url, files=upload())

        assert response.status_code == 400
        assert "'..'" in response.json()["message"]
        assert not (tmp_path / "secret.txt").exists()

    def test_dot_segments_never_escape(self, client, tmp_path, uploads_dir):
        response = client.post("/files/a/b/../c/test.txt", files=upload())

        assert response.status_code in (201, 400)
        if response.status_code == 201:
            assert (uploads_dir / "a" / "c" / "test.txt").exists()
        assert not (tmp_path / "c").exists()

    def test_delete_rejects_traversal(self, client, tmp_path):
        (tmp_path / "victim.txt").write_bytes(b"keep")

        response = client.delete("/files/%2E%2E/victim.txt")

        assert response.status_code == 400
        assert (tmp_path / "victim.txt").exists()


class TestUpsert:
    """Test PUT /files/<path>."""

    def test_created_then_updated(self, client, uploads_dir):
        first = client.put("/files/notes/todo.txt", files=upload(b"v1"))
        second = client.put("/files/notes/todo.txt", files=upload(b"v2"))

        assert first.status_code == 201
        assert first.json() == {"message": "file created successfully"}
        assert second.status_code == 200
        assert second.json() == {"message": "file updated successfully"}
        assert (uploads_dir / "notes" / "todo.txt").read_bytes() == b"v2"

    def test_onto_directory(self, client, uploads_dir):
        (uploads_dir / "folder").mkdir()

        response = client.put("/files/folder", files=upload())

        assert response.status_code == 500
        assert response.json()["message"].startswith("failed to save file")
        assert (uploads_dir / "folder").is_dir()


class TestDelete:
    """Test DELETE /files/<path>."""

    def test_deletes(self, client, uploads_dir):
        client.post("/files/old.txt", files=upload())

        response = client.delete("/files/old.txt")

        assert response.status_code == 200
        assert response.json() == {"message": "file deleted successfully"}
        assert not (uploads_dir / "old.txt").exists()

    def test_missing(self, client):
        response = client.delete("/files/missing.txt")

        assert response.status_code == 404
        assert response.json() == {"message": "file not found: missing.txt"}

    def test_directory(self, client, uploads_dir):
        (uploads_dir / "folder").mkdir()

        response = client.delete("/files/folder")

        assert response.status_code == 400
        assert response.json() == {"message": "path is not a file: folder"}
        assert (uploads_dir / "folder").is_dir()
