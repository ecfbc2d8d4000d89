"""Helpers for working with remote path strings.

Remote paths always use forward slashes, regardless of the platform the
bucket runs on. Local paths are handled with pathlib elsewhere.
"""
import re

_TRAVERSAL = re.compile(r"\.+[/\\]+")
_DOUBLE_SEPARATOR = re.compile(r"/{2,}")


def strip_traversal(path: str) -> str:
    """Remove every dot-slash sequence ("../", "./", "...\\") from the path.

        Segments made only of dots are dropped too, so a trailing ".." is
        removed as well.
    """
    stripped = _TRAVERSAL.sub("", path)
    while stripped != path:
        path = stripped
        stripped = _TRAVERSAL.sub("", path)
    return "/".join(x for x in stripped.split("/") if x == "" or x.strip(".") != "")


def collapse_separators(path: str) -> str:
    return _DOUBLE_SEPARATOR.sub("/", path)


def clean_base_dir(base_dir: str) -> str:
    """Bring a base directory into the same form normalize_path() produces."""
    base_dir = collapse_separators(strip_traversal(base_dir or ""))
    if base_dir and not base_dir.endswith("/"):
        base_dir += "/"
    return base_dir


def normalize_path(path: str, base_dir: str) -> str:
    """Resolve a caller-supplied path against the base directory of a bucket.

        Traversal sequences are removed first, then the base directory is
        prepended unless the path already starts with it. Doubled separators
        are collapsed last. The result always starts with the base directory
        and normalizing it again returns the same string. The base directory
        itself, with or without its trailing slash, normalizes to base_dir.
    """
    base_dir = clean_base_dir(base_dir)
    path = strip_traversal(path or "")
    if len(base_dir) > 1 and path == base_dir[:-1]:
        return base_dir
    if path.startswith(base_dir):
        return collapse_separators(path)
    return collapse_separators(base_dir + path)


def join(directory: str, name: str) -> str:
    return f"{directory.rstrip('/')}/{name}"


def get_directory(path: str) -> str:
    """Get the parent directory of a remote path, with a trailing slash.

        get_directory('/path/to/file.mp3') == '/path/to/'
    """
    trimmed = path.rstrip("/")
    if "/" not in trimmed:
        return ""
    return trimmed[:trimmed.rfind("/") + 1]


def get_file_name(path: str) -> str:
    trimmed = path.rstrip("/")
    return trimmed[trimmed.rfind("/") + 1:]


def get_file_extension(path: str) -> str:
    name = get_file_name(path)
    if "." not in name.lstrip("."):
        return ""
    return name[name.rfind(".") + 1:]


def split(path: str) -> tuple[str, str]:
    """Split a path into its parent directory and leaf name."""
    trimmed = path.rstrip("/")
    if trimmed == "":
        return "/", ""
    parent = get_directory(trimmed).rstrip("/")
    if parent == "" and trimmed.startswith("/"):
        parent = "/"
    return parent, get_file_name(trimmed)
