"""FTP and FTPS bucket.

The bucket holds one control connection for its whole lifetime. The
connection is opened and authenticated when the bucket is built and is not
reopened if it drops; build a new bucket instead.

FTP has no portable way to stat a single entry, so entry types are read from
the detailed (LIST) listing of the parent directory. The first character of a
Unix-style listing line gives the type: 'd' is a directory, anything else is
treated as a file. Servers that answer LIST in another format will see every
entry as missing.

Every primitive holds the bucket lock for its whole command and reply
exchange, so threads sharing a bucket never interleave on the control
connection. Operations built from several primitives are not atomic.
"""
import ftplib
import functools
import pathlib
import posixpath
import threading
import typing as t

from .base import BaseBucket
from .config import FtpValidator
from .exc import StorageError, BucketConnectionError, AuthenticationError, MissingCapabilityError
from .info import FileInfo, FileType
from . import paths


def wrap_ftp_errors(cb):
    """Converts ftplib errors raised during transfers into StorageErrors."""

    @functools.wraps(cb)
    def _inner(*args, **kwargs):
        try:
            return cb(*args, **kwargs)
        except ftplib.error_temp as ex:
            raise StorageError(f"FTP: Temporary error: {str(ex)}", 3001, True) from ex
        except ftplib.error_perm as ex:
            raise StorageError(f"FTP: Permanent error: {str(ex)}", 3002) from ex
        except (ftplib.Error, EOFError) as ex:
            raise StorageError(f"FTP: {ex.__class__.__name__}: {str(ex)}", 3000) from ex
        except OSError as ex:
            raise StorageError(f"FTP: Connection error: {ex.__class__.__name__}: {str(ex)}", 3003, True) from ex

    return _inner


def _serialized(cb):
    """Holds the bucket lock for one command and reply exchange on the control connection."""

    @functools.wraps(cb)
    def _inner(self, *args, **kwargs):
        with self._lock:
            return cb(self, *args, **kwargs)

    return _inner


def parse_list_line(line: str) -> t.Optional[FileInfo]:
    """Parse one line of a Unix-style LIST response.

        -rw-r--r-- 1 user group 533 Jan 5 10:00 doggo.jpg

        The eight leading fields are permissions, link count, owner, group,
        size, month, day and time-or-year; the rest of the line is the name.
        Returns None for lines that are not entries (e.g. "total 12").
    """
    chunks = line.strip("\r\n").split(None, 8)
    if len(chunks) < 9:
        return None
    permissions, _, user, group, size, month, day, time_or_year, name = chunks
    try:
        size = int(size)
    except ValueError:
        return None
    file_type = FileType.DIRECTORY if permissions.startswith("d") else FileType.FILE
    if permissions.startswith("l") and " -> " in name:
        name = name[:name.find(" -> ")]
    return FileInfo(
        name=name,
        size=size,
        file_type=file_type,
        extension=paths.get_file_extension(name) if file_type == FileType.FILE else "",
        user=user,
        group=group,
        permissions=permissions,
        modified=f"{day}.{month} {time_or_year}"
    )


class FtpBucket(BaseBucket):
    """FTP support, including explicit FTPS when ftpserver.secure is set."""

    validator_class = FtpValidator
    driver_name = "ftp"

    def __init__(self, data):
        self._connection = None
        self._lock = threading.RLock()
        super().__init__(data)
        self._secure = self._config.as_bool(("ftpserver", "secure"))
        if self._secure and not hasattr(ftplib, "FTP_TLS"):
            raise MissingCapabilityError("ftplib.FTP_TLS", 3100)
        self._connection = self._connect()

    def _connect(self) -> ftplib.FTP:
        host = self._config.as_str(("ftpserver", "host"))
        port = self._config.as_int(("ftpserver", "port"))
        timeout = self._config.get(("ftpserver", "timeout"))
        connection = ftplib.FTP_TLS() if self._secure else ftplib.FTP()
        try:
            if timeout is None:
                connection.connect(host, port)
            else:
                connection.connect(host, port, timeout=timeout)
        except (OSError, EOFError, ftplib.Error) as ex:
            self._log.error(f"Could not connect to {host}:{port}: {ex.__class__.__name__}: {str(ex)}")
            raise BucketConnectionError(f"Could not connect to FTP server {host}:{port}", 3101) from ex
        try:
            connection.login(self._config.as_str(("ftpserver", "user")), self._config.as_str(("ftpserver", "pass")))
        except ftplib.error_perm as ex:
            connection.close()
            raise AuthenticationError(f"Login to FTP server {host}:{port} failed", 3102) from ex
        except (OSError, EOFError, ftplib.Error) as ex:
            connection.close()
            raise BucketConnectionError(f"Connection to FTP server {host}:{port} failed during login", 3103) from ex
        if self._secure:
            connection.prot_p()
        connection.set_pasv(True)
        self._log.debug(f"Connected to {host}:{port}")
        return connection

    @_serialized
    def close(self):
        if self._connection is None:
            return
        try:
            self._connection.quit()
        except (OSError, EOFError, ftplib.Error):
            self._connection.close()
        self._connection = None

    @_serialized
    @wrap_ftp_errors
    def _name_list(self, path: str) -> list[str]:
        try:
            return self._connection.nlst(path)
        except (ftplib.error_perm, ftplib.error_temp):
            # 550/450 are also how many servers answer NLST on an empty directory
            return []

    @_serialized
    @wrap_ftp_errors
    def _raw_list(self, path: str) -> list[str]:
        lines = []
        try:
            self._connection.dir(path, lines.append)
        except (ftplib.error_perm, ftplib.error_temp):
            return []
        return lines

    def _list_names(self, path: str) -> list[str]:
        names = []
        for entry in self._name_list(path):
            name = posixpath.basename(entry.rstrip("/"))
            if name in ("", ".", "..") or name in names:
                continue
            names.append(name)
        return names

    def _list_detailed(self, path: str) -> dict[str, FileInfo]:
        items = {}
        for line in self._raw_list(path):
            info = parse_list_line(line)
            if info is None or info.name in (".", ".."):
                continue
            items[info.name] = info
        return items

    def _entry_type(self, path: str) -> t.Optional[FileType]:
        parent, leaf = paths.split(path)
        if leaf == "":
            return None
        for line in self._raw_list(parent):
            info = parse_list_line(line)
            if info is not None and info.name == leaf:
                return info.type
        return None

    def _path_exists(self, path: str) -> bool:
        if path.rstrip("/") == "":
            return True
        parent, leaf = paths.split(path)
        return leaf in self._list_names(parent)

    def _is_dir(self, path: str) -> bool:
        if path == "/":
            return True
        if not self._path_exists(path):
            return False
        return self._entry_type(path) == FileType.DIRECTORY

    def _is_file(self, path: str) -> bool:
        if path.rstrip("/") == "" or not self._path_exists(path):
            return False
        return self._entry_type(path) == FileType.FILE

    @_serialized
    @wrap_ftp_errors
    def _make_directory(self, path: str):
        try:
            self._connection.mkd(path)
        except ftplib.error_perm as ex:
            self._log.warning(f"Could not create directory {path}: {str(ex)}")

    @_serialized
    @wrap_ftp_errors
    def _remove_directory(self, path: str):
        try:
            self._connection.rmd(path)
        except ftplib.error_perm as ex:
            self._log.warning(f"Could not remove directory {path}: {str(ex)}")

    @_serialized
    @wrap_ftp_errors
    def _remove_file(self, path: str):
        try:
            self._connection.delete(path)
        except ftplib.error_perm as ex:
            self._log.warning(f"Could not remove file {path}: {str(ex)}")

    @_serialized
    @wrap_ftp_errors
    def _send_file(self, local_file: pathlib.Path, remote_file: str):
        with open(local_file, "rb") as src:
            self._connection.storbinary(f"STOR {remote_file}", src)

    @_serialized
    @wrap_ftp_errors
    def _pull_file(self, remote_file: str, local_file: pathlib.Path):
        try:
            with open(local_file, "wb") as dest:
                self._connection.retrbinary(f"RETR {remote_file}", dest.write)
        except Exception as ex:
            local_file.unlink(True)
            raise ex

    @_serialized
    @wrap_ftp_errors
    def _read_head(self, remote_file: str, size: int) -> bytes:
        data = b""
        self._connection.voidcmd("TYPE I")
        with self._connection.transfercmd(f"RETR {remote_file}") as conn:
            while len(data) < size:
                chunk = conn.recv(size - len(data))
                if not chunk:
                    break
                data += chunk
        try:
            self._connection.voidresp()
        except ftplib.error_temp:
            # 426 or 451 once the data channel is closed before the end of the file
            pass
        return data
