import flask
import zirconium as zr
import pathlib
import os
import logging
import zrlog
from autoinject import injector

__VERSION__ = "1.0.0"


def _config_paths():
    yield pathlib.Path(".").absolute()
    yield pathlib.Path("~").expanduser().absolute()
    custom_config_path = os.environ.get("BUCKET_CONFIG_SEARCH_PATHS", "./config")
    if custom_config_path:
        paths = custom_config_path.split(";")
        for path in paths:
            if path:
                p = pathlib.Path(path).absolute()
                if p.exists():
                    yield p


def init_bucket(app_type: str):

    @zr.configure
    def set_config(app_config: zr.ApplicationConfig):
        config_paths = [x for x in _config_paths()]
        logging.getLogger("bucket.boot").info(f"Config Search Paths: {';'.join(str(x) for x in config_paths)}")
        for path in config_paths:
            app_config.register_default_file(path / ".bucket.defaults.toml")
            app_config.register_default_file(path / f".bucket.{app_type}.defaults.toml")
            app_config.register_file(path / ".bucket.toml")
            app_config.register_file(path / f".bucket.{app_type}.toml")
    zrlog.set_default_extra("app_type", app_type)
    zrlog.set_default_extra("remote_ip", "")
    zrlog.set_default_extra("request_url", "")
    zrlog.set_default_extra("request_method", "")
    zrlog.set_default_extra("version", __VERSION__)
    zrlog.init_logging()


@injector.inject
def init_flask(app: flask.Flask, config: zr.ApplicationConfig):
    log = zrlog.get_logger("bucket.boot")

    # Load config
    if "flask" in config:
        app.config.update(config["flask"] or {})

    # Manage autoinject settings
    import flask_autoinject
    flask_autoinject.init_app(app)

    # Add logging output variables at start of the request
    @app.before_request
    def add_logging_extras():
        zrlog.set_extras({
            "remote_ip": flask.request.remote_addr or "untrackable",
            "request_url": flask.request.url,
            "request_method": flask.request.method,
        })

    # Load routes
    app.extensions["bucket"] = {"controller": None}
    from bucket.web import buckets
    app.register_blueprint(buckets)
    log.info("Bucket routes registered")

