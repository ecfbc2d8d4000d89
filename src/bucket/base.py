from __future__ import annotations
import functools
import mimetypes
import os
import pathlib
import tempfile
import time
import typing as t
import uuid

import magic
from werkzeug.exceptions import abort
from werkzeug.wrappers import Response
import zrlog

from .config import BucketConfig, BucketValidator
from .download import build_download_response
from .exc import FileHandlingError, DownloadError, StorageError, ConfigurationError, BucketError
from .info import FileInfo
from . import paths

MIME_SAMPLE_SIZE = 2048


def local_file_error_wrap(cb):
    """Converts typical local file-system errors into StorageErrors with recoverable set properly."""

    @functools.wraps(cb)
    def _inner(*args, **kwargs):
        try:
            return cb(*args, **kwargs)
        except FileNotFoundError as ex:
            raise StorageError(f"Local file not found", 1002) from ex
        except PermissionError as ex:
            raise StorageError(f"Access to local file denied", 1003, True) from ex
        except IsADirectoryError as ex:
            raise StorageError(f"Local file is a directory", 1004) from ex
        except NotADirectoryError as ex:
            raise StorageError(f"Local directory is not a directory", 1005) from ex
        except OSError as ex:
            raise StorageError(f"Exception processing local file: {ex.__class__.__name__}: {str(ex)}", 1006) from ex

    return _inner


class BaseBucket:
    """Backend-independent part of a bucket.

        Every public method accepts a path relative to the base directory of
        the bucket (or one that already starts with it) and normalizes it
        before handing it to the driver primitives, which always receive
        normalized paths.

        Driver classes implement the underscored primitives below.
    """

    validator_class: type[BucketValidator] = BucketValidator
    driver_name: str = "bucket"

    def __init__(self, data: t.Union[dict, BucketConfig]):
        self._config = data if isinstance(data, BucketConfig) else BucketConfig(data)
        self._log = zrlog.get_logger(f"bucket.{self.driver_name}")
        errors = self.validator_class().validate(self._config)
        if errors:
            for error in errors:
                self._log.error(f"Invalid bucket configuration: {error}")
            raise ConfigurationError("Invalid bucket configuration", errors, 1000)
        self._base_dir = paths.clean_base_dir(self._config.as_str("basedir"))
        self._public = self._config.as_bool("public")
        self._base_url = self._config.as_str("baseurl", "") if self._public else ""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Release any resources held by the bucket."""
        pass

    @property
    def base_dir(self) -> str:
        return self._base_dir

    @property
    def config(self) -> BucketConfig:
        return self._config

    def normalize_path(self, path: str) -> str:
        return paths.normalize_path(path, self._base_dir)

    def is_public(self) -> bool:
        return self._public

    def path_exists(self, remote_path: str) -> bool:
        """Check if anything exists at the given path."""
        return self._path_exists(self.normalize_path(remote_path))

    def file_available(self, remote_file: str) -> bool:
        remote_file = self.normalize_path(remote_file)
        self._log.debug(f"Searching file {remote_file}")
        return self.path_exists(remote_file)

    def dir_available(self, remote_dir: str) -> bool:
        """Check that the path exists and is a directory."""
        if not self.file_available(remote_dir):
            return False
        return self.is_dir(remote_dir)

    def is_dir(self, remote_dir: str) -> bool:
        return self._is_dir(self.normalize_path(remote_dir))

    def is_file(self, remote_file: str) -> bool:
        return self._is_file(self.normalize_path(remote_file))

    def file_push(self, local_file: t.Union[str, pathlib.Path], remote_file: str) -> bool:
        """Upload a local file to the bucket.

            Returns False without touching the remote side if the remote file
            already exists or the local file does not. Otherwise the result
            tells whether the remote file exists after the upload.
        """
        remote_file = self.normalize_path(remote_file)
        if self.file_available(remote_file):
            self._log.warning(f"Remote file {remote_file} already exists, not pushing")
            return False
        local_file = pathlib.Path(local_file)
        if not local_file.is_file():
            self._log.warning(f"Local file {local_file} does not exist, not pushing")
            return False
        remote_dir = paths.get_directory(remote_file)
        if remote_dir and not self.dir_available(remote_dir):
            self.dir_create(remote_dir)
        self._send_file(local_file, remote_file)
        return self.file_available(remote_file)

    def file_pull(self, remote_file: str, local_file: t.Union[str, pathlib.Path]) -> bool:
        """Download a file from the bucket to a local path that does not exist yet."""
        remote_file = self.normalize_path(remote_file)
        if not self.file_available(remote_file):
            raise FileHandlingError(f"{remote_file} is not available.", 1000)
        if not self.is_file(remote_file):
            raise FileHandlingError(f"{remote_file} is not a file.", 1001)
        local_file = pathlib.Path(local_file)
        if local_file.exists():
            raise FileHandlingError(f"{local_file} already exists.", 1002)
        if not local_file.parent.is_dir():
            local_file.parent.mkdir(parents=True, exist_ok=True)
        self._pull_file(remote_file, local_file)
        return local_file.exists()

    def file_delete(self, remote_file: str) -> bool:
        """Delete a file, returning True if it is gone afterwards."""
        remote_file = self.normalize_path(remote_file)
        if not self.path_exists(remote_file):
            raise FileHandlingError(f"Path {remote_file} does not exist.", 1003)
        if not self.is_file(remote_file):
            raise FileHandlingError(f"Path {remote_file} is not a file.", 1004)
        self._remove_file(remote_file)
        return not self.file_available(remote_file)

    def file_get_url(self, remote_file: str) -> str:
        """Build the public URL of a file."""
        if not self._public:
            raise FileHandlingError(f"{remote_file} cannot be downloaded, bucket is private.", 1005)
        if not self.file_available(self.normalize_path(remote_file)):
            raise FileHandlingError(f"{remote_file} is not available.", 1000)
        return self._base_url + remote_file

    def file_get_info(self, remote_file: str) -> t.Optional[FileInfo]:
        """Describe a single entry, or None if the backend cannot stat single entries."""
        remote_file = self.normalize_path(remote_file)
        if not self.path_exists(remote_file):
            raise FileHandlingError(f"Path {remote_file} does not exist.", 1003)
        return self._file_info(remote_file)

    def dir_list(self, remote_dir: str) -> list[str]:
        """List the names of the entries directly inside a directory."""
        remote_dir = self.normalize_path(remote_dir)
        if not self.dir_available(remote_dir):
            self._log.warning(f"Remote directory {remote_dir} not found")
            return []
        return sorted(set(self._list_names(remote_dir)))

    def dir_list_detailed(self, remote_dir: str) -> dict[str, FileInfo]:
        """Describe the entries of a directory, keyed and sorted by name."""
        remote_dir = self.normalize_path(remote_dir)
        if not self.dir_available(remote_dir):
            self._log.warning(f"Remote directory {remote_dir} not found")
            return {}
        items = self._list_detailed(remote_dir)
        return {name: items[name] for name in sorted(items)}

    def dir_create(self, remote_dir: str) -> bool:
        """Create a directory and any missing parents below the base directory."""
        remote_dir = self.normalize_path(remote_dir)
        if self.dir_available(remote_dir):
            return True
        missing = []
        current = remote_dir.rstrip("/")
        while current and current + "/" != self._base_dir and not self.dir_available(current):
            missing.append(current)
            current = paths.get_directory(current).rstrip("/")
        for directory in reversed(missing):
            self._make_directory(directory)
        return self.dir_available(remote_dir)

    def dir_delete(self, remote_dir: str) -> bool:
        """Delete a directory and everything in it, depth first.

            Stops and returns False at the first file that cannot be deleted.
        """
        remote_dir = self.normalize_path(remote_dir)
        if not self.path_exists(remote_dir):
            raise FileHandlingError(f"Path {remote_dir} does not exist.", 1003)
        if not self.is_dir(remote_dir):
            raise FileHandlingError(f"Path {remote_dir} is no directory.", 1006)
        visited = []
        work = [remote_dir.rstrip("/")]
        while work:
            directory = work.pop()
            visited.append(directory)
            for name in self._list_names(directory):
                element = paths.join(directory, name)
                if self._is_dir(element):
                    work.append(element)
                elif not self.file_delete(element):
                    self._log.warning(f"Could not delete {element}, aborting delete of {remote_dir}")
                    return False
        # children were discovered after their parents
        for directory in reversed(visited):
            self._remove_directory(directory)
        return not self.dir_available(remote_dir)

    def detect_mime_type(self, remote_file: str) -> t.Optional[str]:
        """Identify the MIME type of a remote file from its first bytes.

            The file name is only consulted when libmagic cannot classify the
            content.
        """
        remote_file = self.normalize_path(remote_file)
        mime_type = magic.from_buffer(self._read_head(remote_file, MIME_SAMPLE_SIZE), mime=True)
        if not mime_type:
            mime_type, _ = mimetypes.guess_type(remote_file)
        return mime_type

    def prepare_download(self, remote_file: str, file_name: t.Optional[str] = None) -> Response:
        """Validate and stage a remote file, then build the attachment response for it."""
        file_name = file_name or paths.get_file_name(remote_file)
        if not self.is_file(remote_file):
            raise DownloadError(f"Original file {remote_file} was not found.", 1001)
        forbidden = self._config.as_list(("download", "forbidden_mime_types"))
        if forbidden:
            mime_type = self.detect_mime_type(remote_file)
            if mime_type in forbidden:
                raise DownloadError(f"Downloading {mime_type} files is forbidden for security reasons.", 1000)
        temp_file = self._temp_directory() / f"{int(time.time())}{uuid.uuid4().hex}"
        try:
            self.file_pull(remote_file, temp_file)
            if not temp_file.exists():
                raise DownloadError(f"Tempfile {temp_file} was not found.", 1002)
            if not os.access(temp_file, os.R_OK):
                raise DownloadError(f"Tempfile {temp_file} is not readable.", 1003)
            if not os.access(temp_file, os.W_OK):
                raise DownloadError(f"Tempfile {temp_file} is not writeable.", 1004)
        except DownloadError:
            temp_file.unlink(True)
            raise
        except BucketError as ex:
            temp_file.unlink(True)
            raise DownloadError(f"Could not stage {remote_file}: {str(ex)}", 1005) from ex
        self._log.info(f"Streaming {remote_file} as {file_name}")
        return build_download_response(temp_file, file_name, self._config.as_int(("download", "buffer_size")))

    def download(self, remote_file: str, file_name: t.Optional[str] = None) -> t.NoReturn:
        """Send a file to the client and end the current request.

            The response is raised as an HTTPException, so nothing after this
            call runs in the request handler.
        """
        abort(self.prepare_download(remote_file, file_name))

    def _temp_directory(self) -> pathlib.Path:
        temp_dir = self._config.as_str(("download", "temp_dir"))
        if temp_dir:
            temp_dir = pathlib.Path(temp_dir)
            temp_dir.mkdir(parents=True, exist_ok=True)
            return temp_dir
        return pathlib.Path(tempfile.gettempdir())

    def _path_exists(self, path: str) -> bool:
        raise NotImplementedError

    def _is_dir(self, path: str) -> bool:
        raise NotImplementedError

    def _is_file(self, path: str) -> bool:
        raise NotImplementedError

    def _list_names(self, path: str) -> list[str]:
        """Names of the direct children of an existing directory."""
        raise NotImplementedError

    def _list_detailed(self, path: str) -> dict[str, FileInfo]:
        raise NotImplementedError

    def _file_info(self, path: str) -> t.Optional[FileInfo]:
        return None

    def _make_directory(self, path: str):
        raise NotImplementedError

    def _remove_directory(self, path: str):
        """Remove an empty directory."""
        raise NotImplementedError

    def _remove_file(self, path: str):
        raise NotImplementedError

    def _send_file(self, local_file: pathlib.Path, remote_file: str):
        raise NotImplementedError

    def _pull_file(self, remote_file: str, local_file: pathlib.Path):
        raise NotImplementedError

    def _read_head(self, remote_file: str, size: int) -> bytes:
        """Up to size bytes from the start of an existing file."""
        raise NotImplementedError
