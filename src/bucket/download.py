"""Builds the transport response for a staged download."""
import pathlib
import typing as t

from werkzeug.datastructures import Headers
from werkzeug.http import http_date
from werkzeug.wrappers import Response
import zrlog

DEFAULT_BUFFER_SIZE = 2621440


def stream_and_remove(staged_file: pathlib.Path, buffer_size: int = DEFAULT_BUFFER_SIZE) -> t.Iterable[bytes]:
    """Yield the staged file in chunks and remove it once the stream ends."""
    try:
        with open(staged_file, "rb") as src:
            chunk = src.read(buffer_size)
            while chunk != b'':
                yield chunk
                chunk = src.read(buffer_size)
    finally:
        staged_file.unlink(True)


def download_headers(staged_file: pathlib.Path, file_name: str) -> Headers:
    stat = staged_file.stat()
    headers = Headers()
    headers.add("Expires", http_date(stat.st_mtime))
    headers.add("Last-Modified", http_date(stat.st_mtime))
    headers.add("Cache-Control", "no-cache, no-store, must-revalidate, max-age=0")
    headers.add("Pragma", "no-cache")
    headers.add("Content-Description", "File Transfer")
    headers.add("Content-Type", "application/octet-stream")
    headers.add("Content-Transfer-Encoding", "binary")
    headers.add("Content-Length", str(stat.st_size))
    headers.add("Content-Disposition", f'attachment; filename="{_quote(file_name)}"')
    return headers


def _quote(file_name: str) -> str:
    return file_name.replace("\\", "\\\\").replace('"', '\\"').replace("\r", "").replace("\n", "")


def build_download_response(staged_file: pathlib.Path, file_name: str, buffer_size: int = None) -> Response:
    """Wrap a staged temp file in a streaming attachment response.

        The staged file is removed once the body has been streamed, or when the
        response is closed without being read.
    """
    headers = download_headers(staged_file, file_name)
    response = Response(
        stream_and_remove(staged_file, buffer_size or DEFAULT_BUFFER_SIZE),
        status=200,
        headers=headers,
        direct_passthrough=True
    )
    response.call_on_close(lambda: _cleanup(staged_file))
    return response


def _cleanup(staged_file: pathlib.Path):
    if staged_file.exists():
        zrlog.get_logger("bucket.download").debug(f"Removing unread staged file [{staged_file}]")
        staged_file.unlink(True)
