import typing as t


class BucketError(Exception):
    """Super-type of all errors raised by bucket code"""

    def __init__(self, msg: str, code_space: str = "GEN", code_number: int = None, is_recoverable: bool = False):
        self.internal_code = "" if code_number is None else f"{code_space}-{code_number}"
        super().__init__(f"{msg} [{self.internal_code}]")
        self.is_recoverable = is_recoverable


class FileHandlingError(BucketError):
    """A path was missing, of the wrong type, or already present."""

    def __init__(self, msg: str, code_number: int = None):
        super().__init__(msg, "FILE", code_number)


class DownloadError(BucketError):
    """The download flow could not produce a response."""

    def __init__(self, msg: str, code_number: int = None):
        super().__init__(msg, "DOWNLOAD", code_number)


class StorageError(BucketError):
    """Error class specifically for backend I/O errors."""

    def __init__(self, msg, code, is_recoverable: bool = False):
        super().__init__(msg, "STORAGE", code, is_recoverable=is_recoverable)


class ConfigurationError(BucketError):

    def __init__(self, msg: str, errors: t.Optional[list[str]] = None, code_number: int = None):
        self.errors = errors or []
        if self.errors:
            msg = f"{msg}: {'; '.join(self.errors)}"
        super().__init__(msg, "CONFIG", code_number)


class BucketConnectionError(BucketError):

    def __init__(self, msg: str, code_number: int = None):
        super().__init__(msg, "CONNECT", code_number, is_recoverable=True)


class AuthenticationError(BucketError):

    def __init__(self, msg: str, code_number: int = None):
        super().__init__(msg, "AUTH", code_number)


class MissingCapabilityError(BucketError):

    def __init__(self, component: str, code_number: int = None):
        super().__init__(f"Required component [{component}] is not available", "SYSTEM", code_number)
