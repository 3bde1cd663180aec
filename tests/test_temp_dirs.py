"""
test_temp_dirs.py — Unit Tests for Temporary Storage Allocation
=================================================================
"""

import pytest
from embedded_node.config import settings
from embedded_node.services import temp_dirs


@pytest.fixture(autouse=True)
def isolated_registry(monkeypatch):
    """Keep cleanup from touching paths allocated by other tests."""
    monkeypatch.setattr(temp_dirs, "_allocated", [])
    yield
    temp_dirs.cleanup()


class TestTempDirs:
    """Tests for temp directory and file allocation."""

    def test_dirs_are_unique(self):
        dirs = {temp_dirs.new_temp_dir() for _ in range(10)}
        assert len(dirs) == 10

    def test_dir_is_absolute_and_exists(self):
        path = temp_dirs.new_temp_dir()
        assert path.is_absolute()
        assert path.is_dir()
        assert path.name.startswith(settings.TEMP_DIR_PREFIX)

    def test_file_suffix(self):
        path = temp_dirs.new_temp_file(suffix=".pem")
        assert path.is_file()
        assert path.name.endswith(".pem")

    def test_cleanup_removes_paths(self):
        """Cleanup removes directories with content and files."""
        directory = temp_dirs.new_temp_dir()
        (directory / "segment.log").write_bytes(b"data")
        file_path = temp_dirs.new_temp_file()
        temp_dirs.cleanup()
        assert not directory.exists()
        assert not file_path.exists()

    def test_cleanup_tolerates_removed_paths(self):
        """Paths deleted by their owner are skipped."""
        directory = temp_dirs.new_temp_dir()
        directory.rmdir()
        temp_dirs.cleanup()
        assert not directory.exists()
