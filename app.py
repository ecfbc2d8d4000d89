import pathlib
import sys
import flask
sys.path.append(str(pathlib.Path(__file__).parent / "src"))

from bucket.boot import init_bucket, init_flask

init_bucket("web")

app = flask.Flask(__name__)

init_flask(app)
