"""Tests for WorkspaceFileWriter path and size checks."""

import asyncio
import os

import pytest

from tdd_assist.errors import ErrorCategory, FileWriteError
from tdd_assist.file_writer import WorkspaceFileWriter


@pytest.fixture
def writer(tmp_path):
    return WorkspaceFileWriter(allowed_dirs=[str(tmp_path)])


def test_write_creates_parent_directories(writer, tmp_path):
    target = tmp_path / ".tdd_assist" / "tests" / "add.test.js"

    location = writer.write_file(str(target), "test('x', () => {});")

    assert location == os.path.realpath(str(target))
    assert target.read_text(encoding="utf-8") == "test('x', () => {});"


def test_async_write(writer, tmp_path):
    target = tmp_path / "src" / "add.py"

    location = asyncio.run(writer.write(str(target), "def add(a, b):\n    return a + b\n"))

    assert os.path.exists(location)


def test_rejects_path_outside_allowed_dirs(writer, tmp_path):
    outside = tmp_path.parent / "outside.txt"

    with pytest.raises(FileWriteError) as excinfo:
        writer.write_file(str(outside), "nope")

    assert excinfo.value.category is ErrorCategory.FILE_WRITE
    assert not outside.exists()


def test_rejects_traversal(writer, tmp_path):
    with pytest.raises(FileWriteError):
        writer.write_file(str(tmp_path / ".." / "escape.txt"), "nope")


def test_rejects_symlink_escape(writer, tmp_path):
    outside_dir = tmp_path.parent / "outside_dir"
    outside_dir.mkdir(exist_ok=True)
    link = tmp_path / "link"
    link.symlink_to(outside_dir, target_is_directory=True)

    with pytest.raises(FileWriteError):
        writer.write_file(str(link / "file.txt"), "nope")


def test_rejects_oversized_content(tmp_path):
    writer = WorkspaceFileWriter(allowed_dirs=[str(tmp_path)], max_file_size=10)

    with pytest.raises(FileWriteError, match="exceeds maximum allowed size"):
        writer.write_file(str(tmp_path / "big.txt"), "x" * 11)
