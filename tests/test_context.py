"""Tests for repository layout and discovery."""

import pytest

from blobtrack.config import load_repo_config
from blobtrack.context import RepositoryContext
from blobtrack.errors import (
    AlreadyInitializedError,
    InvalidMetadataError,
    NotARepositoryError,
    PathOutsideRepositoryError,
    StorageError,
)
from blobtrack.ops import init_repository


class TestInit:
    """Test repository initialization."""

    def test_creates_layout(self, tmp_path):
        ctx = RepositoryContext.init(tmp_path)

        storage = tmp_path / ".blobtrack"
        assert ctx.root == tmp_path.resolve()
        assert (storage / "objects").is_dir()
        assert (storage / "HEAD").read_text() == "ref: refs/heads/main\n"
        assert (storage / "description").is_file()
        assert (storage / "index").read_text() == ""
        assert (storage / "config").is_file()

    def test_config_written(self, tmp_path):
        RepositoryContext.init(tmp_path)
        config = load_repo_config(tmp_path / ".blobtrack" / "config")
        assert config.default_branch == "main"
        assert config.add.fail_fast is True

    def test_custom_branch(self, tmp_path):
        ctx = RepositoryContext.init(tmp_path, branch="trunk")
        assert (tmp_path / ".blobtrack" / "HEAD").read_text() == "ref: refs/heads/trunk\n"
        assert ctx.current_branch() == "trunk"
        assert ctx.config.default_branch == "trunk"

    def test_already_initialized(self, tmp_path):
        RepositoryContext.init(tmp_path)
        head_before = (tmp_path / ".blobtrack" / "HEAD").read_text()

        with pytest.raises(AlreadyInitializedError):
            RepositoryContext.init(tmp_path)

        assert (tmp_path / ".blobtrack" / "HEAD").read_text() == head_before

    def test_init_repository_creates_directory(self, tmp_path):
        target = tmp_path / "new" / "project"
        ctx = init_repository(target)
        assert ctx.root == target.resolve()
        assert (target / ".blobtrack").is_dir()

    def test_init_repository_on_existing_file(self, tmp_path):
        target = tmp_path / "occupied"
        target.write_text("not a directory")

        with pytest.raises(StorageError, match="Failed to create"):
            init_repository(target)

        assert target.read_text() == "not a directory"


class TestDiscovery:
    """Test finding the repository root."""

    def test_found_from_subdirectory(self, repo, tmp_path):
        sub = tmp_path / "a" / "b"
        sub.mkdir(parents=True)
        ctx = RepositoryContext(sub)
        assert ctx.root == tmp_path.resolve()

    def test_uses_cwd_by_default(self, repo, tmp_path):
        assert RepositoryContext().root == tmp_path.resolve()

    def test_not_a_repository(self, tmp_path):
        with pytest.raises(NotARepositoryError):
            RepositoryContext(tmp_path)


class TestPaths:
    """Test path conversion."""

    def test_relative_to_cwd(self, repo, tmp_path, monkeypatch):
        (tmp_path / "src").mkdir()
        monkeypatch.chdir(tmp_path / "src")
        assert repo.to_repo_relative("main.py") == "src/main.py"
        assert repo.to_repo_relative("../README.md") == "README.md"

    def test_absolute(self, repo, tmp_path):
        assert repo.to_repo_relative(tmp_path / "data" / "x.csv") == "data/x.csv"

    def test_root_is_dot(self, repo, tmp_path):
        assert repo.to_repo_relative(".") == "."
        assert repo.to_repo_relative(tmp_path) == "."

    def test_outside_repository(self, repo, tmp_path):
        with pytest.raises(PathOutsideRepositoryError):
            repo.to_repo_relative(tmp_path.parent / "elsewhere.txt")

    def test_absolute_from_relpath(self, repo):
        assert repo.absolute("a/b.txt") == repo.root / "a" / "b.txt"

    def test_metadata_paths(self, repo):
        assert repo.storage_dir == repo.root / ".blobtrack"
        assert repo.index_path == repo.root / ".blobtrack" / "index"
        assert repo.objects_dir == repo.root / ".blobtrack" / "objects"


class TestCurrentBranch:
    """Test reading HEAD."""

    def test_default_branch(self, repo):
        assert repo.current_branch() == "main"

    def test_non_heads_ref(self, repo):
        repo.head_path.write_text("ref: refs/remotes/origin/dev\n")
        assert repo.current_branch() == "refs/remotes/origin/dev"

    def test_detached_head_rejected(self, repo):
        repo.head_path.write_text("a" * 64 + "\n")
        with pytest.raises(InvalidMetadataError, match="symbolic reference"):
            repo.current_branch()

    def test_shared_index_instance(self, repo):
        """The index is memoized so nested locks are re-entrant."""
        assert repo.index is repo.index
