import flask
import zrlog

from .core import BucketController
from .exc import BucketError, ConfigurationError, DownloadError, FileHandlingError

buckets = flask.Blueprint("buckets", __name__)


def _controller() -> BucketController:
    extension = flask.current_app.extensions.setdefault("bucket", {})
    if extension.get("controller") is None:
        extension["controller"] = BucketController()
    return extension["controller"]


def _status_for(ex: BucketError) -> int:
    if isinstance(ex, ConfigurationError):
        return 500
    if isinstance(ex, DownloadError):
        return 403 if ex.internal_code == "DOWNLOAD-1000" else 404
    if isinstance(ex, FileHandlingError):
        return 403 if ex.internal_code == "FILE-1005" else 404
    return 502


@buckets.errorhandler(BucketError)
def handle_bucket_error(ex: BucketError):
    zrlog.get_logger("bucket.web").warning(f"Bucket request failed: {str(ex)}")
    return {
        "error": str(ex),
        "code": ex.internal_code,
    }, _status_for(ex)


@buckets.route("/buckets", methods=["GET"])
def list_buckets():
    return {"buckets": _controller().bucket_names()}


@buckets.route("/buckets/<bucket_name>/list/", methods=["GET"], defaults={"remote_dir": ""})
@buckets.route("/buckets/<bucket_name>/list/<path:remote_dir>", methods=["GET"])
def list_directory(bucket_name: str, remote_dir: str):
    bucket = _controller().get_bucket(bucket_name)
    return {
        name: info.to_dict()
        for name, info in bucket.dir_list_detailed(remote_dir).items()
    }


@buckets.route("/buckets/<bucket_name>/url/<path:remote_file>", methods=["GET"])
def file_url(bucket_name: str, remote_file: str):
    bucket = _controller().get_bucket(bucket_name)
    return {"url": bucket.file_get_url(remote_file)}


@buckets.route("/buckets/<bucket_name>/download/<path:remote_file>", methods=["GET"])
def download_file(bucket_name: str, remote_file: str):
    bucket = _controller().get_bucket(bucket_name)
    bucket.download(remote_file, flask.request.args.get("filename") or None)
