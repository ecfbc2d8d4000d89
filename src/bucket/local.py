"""Local file system bucket"""
import os
import pathlib
import shutil
import typing as t

from .base import BaseBucket, local_file_error_wrap
from .config import LocalValidator
from .exc import StorageError
from .info import FileInfo, FileType
from . import paths


class LocalBucket(BaseBucket):
    """Bucket whose files live on a local disk or an accessible network drive.

        Symbolic links are treated as files, so deleting a directory never
        follows a link out of the bucket.
    """

    validator_class = LocalValidator
    driver_name = "local"

    def _path_exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def _is_dir(self, path: str) -> bool:
        p = pathlib.Path(path)
        return p.is_dir() and not p.is_symlink()

    def _is_file(self, path: str) -> bool:
        p = pathlib.Path(path)
        return p.is_symlink() or p.is_file()

    @local_file_error_wrap
    def _list_names(self, path: str) -> list[str]:
        return [x.name for x in pathlib.Path(path).iterdir()]

    def _list_detailed(self, path: str) -> dict[str, FileInfo]:
        return {
            name: self._file_info(paths.join(path, name))
            for name in self._list_names(path)
        }

    @local_file_error_wrap
    def _file_info(self, path: str) -> t.Optional[FileInfo]:
        is_dir = self._is_dir(path)
        return FileInfo(
            name=paths.get_file_name(path),
            size=0 if is_dir else self._file_size(path),
            file_type=FileType.DIRECTORY if is_dir else FileType.FILE,
            extension="" if is_dir else paths.get_file_extension(path),
        )

    @staticmethod
    def _file_size(path: str) -> int:
        try:
            return os.stat(path).st_size
        except OSError:
            return 0

    def _make_directory(self, path: str):
        try:
            pathlib.Path(path).mkdir(exist_ok=True)
        except OSError as ex:
            self._log.warning(f"Could not create directory {path}: {ex.__class__.__name__}: {str(ex)}")

    def _remove_directory(self, path: str):
        try:
            pathlib.Path(path).rmdir()
        except OSError as ex:
            self._log.warning(f"Could not remove directory {path}: {ex.__class__.__name__}: {str(ex)}")

    def _remove_file(self, path: str):
        try:
            pathlib.Path(path).unlink()
        except OSError as ex:
            self._log.warning(f"Could not remove file {path}: {ex.__class__.__name__}: {str(ex)}")

    def _send_file(self, local_file: pathlib.Path, remote_file: str):
        try:
            shutil.copyfile(local_file, remote_file)
        except PermissionError as ex:
            raise StorageError(f"Remote file {remote_file} is not writable", 1101, True) from ex
        except OSError as ex:
            if not os.access(paths.get_directory(remote_file) or ".", os.W_OK):
                raise StorageError(f"Remote file {remote_file} is not writable", 1101, True) from ex
            raise StorageError(f"Unknown error writing {remote_file}: {ex.__class__.__name__}: {str(ex)}", 1102) from ex

    @local_file_error_wrap
    def _pull_file(self, remote_file: str, local_file: pathlib.Path):
        shutil.copyfile(remote_file, local_file)

    @local_file_error_wrap
    def _read_head(self, remote_file: str, size: int) -> bytes:
        with open(remote_file, "rb") as h:
            return h.read(size)
