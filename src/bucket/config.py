"""Bucket configuration and its validation rules.

A bucket is configured by a plain mapping, usually one `[bucket.NAME]` table
of the application's TOML configuration:

    [bucket.reports]
    driver = "ftp"
    basedir = "/data/"
    public = true
    baseurl = "https://files.example.com/"

    [bucket.reports.download]
    forbidden_mime_types = ["application/x-msdownload"]

    [bucket.reports.ftpserver]
    host = "ftp.example.com"
    port = 21
    secure = true
    user = "reports"
    pass = "secret"
"""
import typing as t

_MISSING = object()


def to_plain(obj):
    """Convert nested mapping-like config objects into plain dicts and lists."""
    if hasattr(obj, "items"):
        return {k: to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_plain(x) for x in obj]
    return obj


class BucketConfig:
    """Read access to the configuration of one bucket."""

    def __init__(self, data: t.Optional[dict] = None):
        self._data = to_plain(data or {})

    @staticmethod
    def _key_parts(key: t.Union[str, tuple]) -> tuple:
        if isinstance(key, str):
            return tuple(key.split("."))
        return tuple(key)

    def get(self, key: t.Union[str, tuple], default=None):
        """Look up a value by a dotted key ('ftpserver.host') or a tuple of keys."""
        value = self._lookup(key)
        return default if value is _MISSING else value

    def _lookup(self, key):
        current = self._data
        for part in self._key_parts(key):
            if not isinstance(current, dict) or part not in current:
                return _MISSING
            current = current[part]
        return current

    def __contains__(self, key):
        return self._lookup(key) is not _MISSING

    def as_str(self, key, default: str = None) -> t.Optional[str]:
        value = self.get(key, default)
        return None if value is None else str(value)

    def as_bool(self, key, default: bool = False) -> bool:
        value = self.get(key, default)
        if isinstance(value, str):
            return value.lower() in ("1", "true", "yes", "on")
        return bool(value)

    def as_int(self, key, default: int = None) -> t.Optional[int]:
        value = self.get(key, default)
        return None if value is None else int(value)

    def as_list(self, key, default: list = None) -> list:
        value = self.get(key, None)
        if value is None:
            return list(default or [])
        if isinstance(value, str):
            return [value]
        return list(value)

    def data(self) -> dict:
        return self._data


class BucketValidator:
    """Validates the keys every bucket needs."""

    def validate(self, data: dict) -> list[str]:
        config = data if isinstance(data, BucketConfig) else BucketConfig(data)
        errors = []
        self._validate(config, errors)
        return errors

    def _validate(self, config: BucketConfig, errors: list[str]):
        base_dir = config.get("basedir")
        if base_dir is None:
            errors.append("basedir is required")
        elif not isinstance(base_dir, str):
            errors.append("basedir must be a string")
        public = config.get("public")
        if public is None:
            errors.append("public is required")
        elif not isinstance(public, bool):
            errors.append("public must be true or false")
        elif public:
            base_url = config.get("baseurl")
            if not base_url or not isinstance(base_url, str):
                errors.append("baseurl is required for a public bucket")
        forbidden = config.get(("download", "forbidden_mime_types"))
        if forbidden is not None:
            if not isinstance(forbidden, list) or not all(isinstance(x, str) for x in forbidden):
                errors.append("download.forbidden_mime_types must be a list of strings")
        temp_dir = config.get(("download", "temp_dir"))
        if temp_dir is not None and not isinstance(temp_dir, str):
            errors.append("download.temp_dir must be a string")
        buffer_size = config.get(("download", "buffer_size"))
        if buffer_size is not None and (not isinstance(buffer_size, int) or isinstance(buffer_size, bool) or buffer_size <= 0):
            errors.append("download.buffer_size must be a positive integer")


class LocalValidator(BucketValidator):
    pass


class FtpValidator(BucketValidator):

    def _validate(self, config: BucketConfig, errors: list[str]):
        super()._validate(config, errors)
        if not isinstance(config.get("ftpserver"), dict):
            errors.append("ftpserver section is required")
            return
        host = config.get(("ftpserver", "host"))
        if not host or not isinstance(host, str):
            errors.append("ftpserver.host is required")
        port = config.get(("ftpserver", "port"))
        if port is None:
            errors.append("ftpserver.port is required")
        elif not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
            errors.append("ftpserver.port must be an integer between 1 and 65535")
        secure = config.get(("ftpserver", "secure"))
        if secure is None:
            errors.append("ftpserver.secure is required")
        elif not isinstance(secure, bool):
            errors.append("ftpserver.secure must be true or false")
        for key in ("user", "pass"):
            value = config.get(("ftpserver", key))
            if value is None:
                errors.append(f"ftpserver.{key} is required")
            elif not isinstance(value, str):
                errors.append(f"ftpserver.{key} must be a string")
        timeout = config.get(("ftpserver", "timeout"))
        if timeout is not None and (not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0):
            errors.append("ftpserver.timeout must be a positive number")
