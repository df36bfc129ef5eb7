"""
Image Filter – htmx front end over a Flask backend using Pillow for codecs.

Endpoints:
  GET  /        – Upload page.
  POST /upload  – Accept a multipart image, return it red-boosted as an HTML fragment.
  POST /filter  – Accept {"filter", "imageData"} JSON, return the filtered image fragment.

Usage:
  python app.py [PORT]   (default port 5001)
"""

import logging
import sys
from typing import Optional, Sequence

from flask import Flask, render_template, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.serving import make_server

import pipeline
from pipeline import ErrorKind, Outcome

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5001

HTML = "text/html; charset=utf-8"
TEXT = "text/plain; charset=utf-8"


def _respond(outcome: Outcome):
    if outcome.ok:
        return outcome.body, outcome.status, {"Content-Type": HTML}
    logger.warning("%s %s -> %d %s", request.method, request.path, outcome.status, outcome.body)
    return outcome.body, outcome.status, {"Content-Type": TEXT}


def _uploaded_file() -> Optional[bytes]:
    """Return the bytes of the ``file`` part, or None when there is none."""
    if request.mimetype != "multipart/form-data":
        return None
    upload = request.files.get("file")
    if upload is None:
        return None
    return upload.read()


def create_app(test_config=None) -> Flask:
    app = Flask(__name__)
    CORS(app)

    # Maximum allowed upload size (16 MB)
    app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024
    # Larger images are rejected before their pixels are decoded. Every
    # pixel passes through Python once per stage, so this bounds the work
    # a single request can cost (a few seconds at the limit).
    app.config["MAX_IMAGE_PIXELS"] = 1_000_000
    if test_config:
        app.config.update(test_config)

    @app.before_request
    def screen_request():
        logger.info("%s %s", request.method, request.path)
        # Flask answers HEAD and OPTIONS on every route by itself
        if request.method in ("HEAD", "OPTIONS"):
            return _respond(Outcome.failure(ErrorKind.ROUTE_NOT_FOUND, "Not Found"))
        return None

    @app.route("/", methods=["GET"])
    def index():
        return render_template("index.html"), 200, {"Content-Type": HTML}

    @app.route("/upload", methods=["POST"])
    def upload():
        logger.info("Processing image upload request...")
        outcome = pipeline.run_upload(
            _uploaded_file(),
            render_template,
            max_pixels=app.config["MAX_IMAGE_PIXELS"],
        )
        return _respond(outcome)

    @app.route("/filter", methods=["POST"])
    def filter_image():
        logger.info("Processing image filter request...")
        outcome = pipeline.run_filter(
            request.get_data(),
            render_template,
            max_pixels=app.config["MAX_IMAGE_PIXELS"],
        )
        return _respond(outcome)

    # --- Error handling -------------------------------------------------------

    @app.errorhandler(404)
    @app.errorhandler(405)
    def not_found(exc):
        return _respond(Outcome.failure(ErrorKind.ROUTE_NOT_FOUND, "Not Found"))

    @app.errorhandler(Exception)
    def internal_failure(exc):
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Unhandled error while serving %s %s", request.method, request.path)
        return _respond(Outcome.failure(ErrorKind.INTERNAL_FAILURE, "Internal Server Error"))

    return app


class FilterServer:
    """Owns the listening socket for one app: bind, serve, shutdown."""

    def __init__(self, flask_app: Flask, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        self.app = flask_app
        self.host = host
        self.port = port
        self._server = None
        self._serving = False

    def bind(self) -> "FilterServer":
        self._server = make_server(self.host, self.port, self.app, threaded=True)
        # port 0 asks the OS for a free port
        self.port = self._server.server_port
        return self

    def serve(self):
        if self._server is None:
            self.bind()
        logger.info("Listening on http://%s:%d/", self.host, self.port)
        self._serving = True
        self._server.serve_forever()

    def shutdown(self):
        if self._server is None:
            return
        # shutdown() waits for serve_forever() and would block if it never ran
        if self._serving:
            self._server.shutdown()
            self._serving = False
        self._server.server_close()
        self._server = None


def parse_port(argv: Sequence[str]) -> int:
    """A single positional integer port; anything else means the default."""
    if len(argv) != 1:
        return DEFAULT_PORT
    try:
        return int(argv[0])
    except ValueError:
        return DEFAULT_PORT


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)-10s - %(levelname)-8s - %(message)s",
        datefmt="%H:%M:%S",
    )
    argv = sys.argv[1:] if argv is None else argv
    server = FilterServer(create_app(), port=parse_port(argv))
    try:
        server.bind().serve()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.shutdown()
    return 0


app = create_app()


if __name__ == "__main__":
    sys.exit(main())
