"""Tests for filesystem helpers."""

import pytest

from kerninst.system import files
from kerninst.system.exceptions import FilesystemError


class TestRemovePath:
    def test_removes_file(self, tmp_path):
        target = tmp_path / "vmlinuz-6.1.0-gentoo"
        target.write_text("kernel")

        assert files.remove_path(target) is True
        assert not target.exists()

    def test_removes_directory_tree(self, tmp_path):
        tree = tmp_path / "6.1.0-gentoo"
        (tree / "kernel" / "drivers").mkdir(parents=True)
        (tree / "kernel" / "drivers" / "e1000.ko").write_text("module")

        assert files.remove_path(tree) is True
        assert not tree.exists()

    def test_removes_symlink_not_target(self, tmp_path):
        target = tmp_path / "linux-6.1.0-gentoo"
        target.mkdir()
        link = tmp_path / "linux"
        link.symlink_to(target)

        assert files.remove_path(link) is True
        assert not link.is_symlink()
        assert target.is_dir()

    def test_missing_path(self, tmp_path):
        assert files.remove_path(tmp_path / "missing") is False

    def test_failure_raises_filesystem_error(self, tmp_path, mocker):
        tree = tmp_path / "tree"
        tree.mkdir()
        mocker.patch(
            "kerninst.system.files.shutil.rmtree",
            side_effect=PermissionError(13, "Permission denied"),
        )

        with pytest.raises(FilesystemError, match="Failed to remove .*tree: Permission denied"):
            files.remove_path(tree)


class TestCopyAndWrite:
    def test_copy_file_creates_parent(self, tmp_path):
        source = tmp_path / ".config"
        source.write_text("CONFIG_64BIT=y\n")
        destination = tmp_path / "etc" / "kernels" / "kernel-config"

        files.copy_file(source, destination)

        assert destination.read_text() == "CONFIG_64BIT=y\n"

    def test_copy_missing_source_raises(self, tmp_path):
        with pytest.raises(FilesystemError, match="Failed to copy"):
            files.copy_file(tmp_path / "missing", tmp_path / "out")

    def test_write_text_atomic_leaves_no_temp_file(self, tmp_path):
        target = tmp_path / "loader" / "entries" / "abcd1234-6.1.0-gentoo.conf"

        files.write_text_atomic(target, "title Gentoo\n")
        files.write_text_atomic(target, "title Gentoo Linux\n")

        assert target.read_text() == "title Gentoo Linux\n"
        assert sorted(p.name for p in target.parent.iterdir()) == [target.name]

    def test_replace_file(self, tmp_path):
        source = tmp_path / ".image.tmp"
        source.write_text("new")
        destination = tmp_path / "image"
        destination.write_text("old")

        files.replace_file(source, destination)

        assert destination.read_text() == "new"
        assert not source.exists()
