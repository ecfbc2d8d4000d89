"""
    Provides backend-agnostic file storage.

    A bucket is one configured storage endpoint: a base directory plus a
    driver that knows how to move bytes in and out of it. Callers push, pull,
    list and delete files through the same methods whether the files live on
    a local disk (LocalBucket) or on an FTP server (FtpBucket).

    In general, one should use the BucketController to get a bucket by the
    name it has in the application configuration.

    Every remote path is interpreted relative to the base directory of the
    bucket. Paths are normalized before use: traversal sequences such as
    "../" are removed, the base directory is prepended when missing and
    doubled slashes are collapsed, so a bucket never reaches outside its base
    directory.

    Operations that can fail in an expected way (pushing onto an existing
    file, deleting a directory with a locked child) return False. Violated
    preconditions (pulling a missing file, deleting something that is not
    there) raise a BucketError subclass.

    Not every operation is equally supported: FTP servers offer no way to
    describe a single entry, so FtpBucket.file_get_info() returns None.
"""
from .core import BucketController
from .base import BaseBucket
from .local import LocalBucket
from .ftp import FtpBucket, parse_list_line
from .info import FileInfo, FileType
from .paths import normalize_path
from .exc import (
    BucketError, FileHandlingError, DownloadError, StorageError, ConfigurationError,
    BucketConnectionError, AuthenticationError, MissingCapabilityError
)
