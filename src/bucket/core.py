import typing as t

from autoinject import injector
import zirconium as zr
import zrlog

from .base import BaseBucket
from .config import to_plain
from .exc import ConfigurationError
from .ftp import FtpBucket
from .local import LocalBucket


@injector.injectable_global
class BucketController:
    """Builds buckets from the [bucket.NAME] tables of the application config.

        [bucket.uploads]
        driver = "local"           -> LocalBucket
        [bucket.archive]
        driver = "ftp"             -> FtpBucket

        Each bucket is built once, on first use, and kept for the lifetime of
        the controller. Pass bucket_configs to bypass the application config.
    """

    config: zr.ApplicationConfig = None

    @injector.construct
    def __init__(self, bucket_configs: t.Optional[dict] = None):
        self.driver_classes: dict[str, type[BaseBucket]] = {
            "local": LocalBucket,
            "ftp": FtpBucket,
        }
        self._bucket_configs = to_plain(bucket_configs) if bucket_configs is not None else None
        self._buckets: dict[str, BaseBucket] = {}
        self._log = zrlog.get_logger("bucket.controller")

    def _configs(self) -> dict:
        if self._bucket_configs is None:
            if "bucket" in self.config:
                self._bucket_configs = to_plain(self.config["bucket"] or {})
            else:
                self._bucket_configs = {}
        return self._bucket_configs

    def register_driver(self, driver_name: str, cls: type[BaseBucket]):
        self.driver_classes[driver_name] = cls

    def bucket_names(self) -> list[str]:
        """List the names of all configured buckets."""
        return list(self._configs().keys())

    def get_bucket(self, name: str) -> BaseBucket:
        if name not in self._buckets:
            self._buckets[name] = self._build_bucket(name)
        return self._buckets[name]

    def _build_bucket(self, name: str) -> BaseBucket:
        configs = self._configs()
        if name not in configs:
            raise ConfigurationError(f"No bucket named [{name}] is configured", code_number=1001)
        data = configs[name] or {}
        driver_name = data.get("driver", "local")
        if driver_name not in self.driver_classes:
            raise ConfigurationError(f"Unknown driver [{driver_name}] for bucket [{name}]", code_number=1002)
        self._log.info(f"Building bucket [{name}] with driver [{driver_name}]")
        return self.driver_classes[driver_name](data)

    def close(self):
        for bucket in self._buckets.values():
            bucket.close()
        self._buckets = {}
