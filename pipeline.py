"""
Request pipelines: locate the image in a request body, decode, filter,
re-encode and render an HTML fragment around the result.

Every anticipated failure comes back as an ``Outcome`` rather than an
exception, so the router only has to translate outcomes into responses.
"""

import base64
import binascii
import enum
import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

import codec
import filters

logger = logging.getLogger(__name__)

Render = Callable[..., str]

_DATA_URL_PREFIX = re.compile(r"^data:[\w.+/-]*;base64,", re.IGNORECASE)


class ErrorKind(enum.Enum):
    MALFORMED_INPUT = ("malformed input", 400)
    NO_FILE_PROVIDED = ("no file provided", 400)
    ROUTE_NOT_FOUND = ("route not found", 404)
    DECODE_ERROR = ("decode error", 500)
    INTERNAL_FAILURE = ("internal failure", 500)

    def __init__(self, label, status):
        self.label = label
        self.status = status


@dataclass(frozen=True)
class Outcome:
    status: int
    body: str
    error: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, body: str) -> "Outcome":
        return cls(200, body)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "Outcome":
        return cls(error.status, message, error)


@dataclass(frozen=True)
class FilterRequest:
    filter: str
    image_data: str

    @classmethod
    def parse(cls, body: bytes) -> "FilterRequest":
        """Parse a JSON body of the form ``{"filter": ..., "imageData": ...}``.

        Raises:
            ValueError: if the body is not JSON or does not have that shape.
        """
        try:
            payload = json.loads(body)
        except (ValueError, RecursionError) as exc:
            raise ValueError(f"Request body is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object")

        filter_name = payload.get("filter")
        image_data = payload.get("imageData")
        if not isinstance(filter_name, str):
            raise ValueError("'filter' must be a string")
        if not isinstance(image_data, str):
            raise ValueError("'imageData' must be a base64 string")
        return cls(filter=filter_name, image_data=image_data)

    def image_bytes(self) -> bytes:
        """Decode ``image_data``, accepting an optional data-URL prefix.

        Raises:
            ValueError: if the payload is not valid base64.
        """
        data = _DATA_URL_PREFIX.sub("", self.image_data.strip())
        try:
            return base64.b64decode(data, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"'imageData' is not valid base64: {exc}") from exc


def _to_base64_png(buffer) -> str:
    return base64.b64encode(codec.encode(buffer)).decode("ascii")


def run_filter(body: Optional[bytes], render: Render, max_pixels: Optional[int] = None) -> Outcome:
    """Filter flow: JSON body -> decode -> named filter -> PNG fragment."""
    if not body:
        return Outcome.failure(ErrorKind.MALFORMED_INPUT, "No image to process.")

    try:
        request = FilterRequest.parse(body)
        image_bytes = request.image_bytes()
    except ValueError as exc:
        return Outcome.failure(ErrorKind.MALFORMED_INPUT, str(exc))

    try:
        image = codec.decode(image_bytes, max_pixels=max_pixels)
    except codec.DecodeError as exc:
        return Outcome.failure(ErrorKind.DECODE_ERROR, str(exc))

    filter_fn = filters.select_filter(request.filter)
    logger.info("Applying %s to %dx%d image", filter_fn.__name__, image.width, image.height)
    filtered = filters.apply(filter_fn, image)
    return Outcome.success(render("filter_result.html", image=_to_base64_png(filtered)))


def run_upload(file_data: Optional[bytes], render: Render, max_pixels: Optional[int] = None) -> Outcome:
    """Upload flow: file part -> decode -> red boost -> PNG fragment with a filter control."""
    if not file_data:
        return Outcome.failure(ErrorKind.NO_FILE_PROVIDED, "No file uploaded.")

    try:
        image = codec.decode(file_data, max_pixels=max_pixels)
    except codec.DecodeError as exc:
        return Outcome.failure(ErrorKind.DECODE_ERROR, str(exc))

    logger.info("Uploaded %dx%d image", image.width, image.height)
    filtered = filters.apply(filters.red_boost, image)
    return Outcome.success(
        render(
            "upload_result.html",
            image=_to_base64_png(filtered),
            filter_names=sorted(filters.FILTERS),
        )
    )
