"""Shared test fixtures and utilities."""

import pytest

from blobtrack.context import RepositoryContext


@pytest.fixture
def repo(tmp_path, monkeypatch):
    """Create an initialized repository and chdir into it."""
    monkeypatch.chdir(tmp_path)
    return RepositoryContext.init(tmp_path)


@pytest.fixture
def write_file(tmp_path):
    """Factory fixture to write files relative to tmp_path."""
    def _write(path: str, content="test content"):
        file_path = tmp_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            file_path.write_bytes(content)
        else:
            file_path.write_text(content)
        return file_path
    return _write


@pytest.fixture
def test_files(write_file):
    """Create common test files in tmp_path."""
    def make_files():
        return {
            "file1.txt": write_file("file1.txt", "content1"),
            "file2.txt": write_file("file2.txt", "content2"),
            "src/main.py": write_file("src/main.py", "print('hello')"),
            "data/data.csv": write_file("data/data.csv", "a,b,c\n1,2,3"),
        }
    return make_files

