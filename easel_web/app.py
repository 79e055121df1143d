"""Flask HTTP surface for the canvas scene.

Every mutating endpoint, and ``GET /api/canvas/state``, answers with the full
scene so a remote preview can repaint without tracking deltas.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import io
import logging
from pathlib import Path
from typing import Any

from flask import Blueprint, Flask, Response, abort, current_app, jsonify, request, send_file
from flask_cors import CORS
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from easel_core.core.elements import Element, image_from_fields
from easel_core.core.errors import ExportError, InvalidValueError, SceneError
from easel_core.core.scene_store import Scene, SceneStore
from easel_core.export.document import ExportedDocument, export_pdf, export_png
from easel_core.render.image_source import ImageLoader, normalize_upload
from easel_core.render.scene_renderer import SceneRenderer

from .config import ServerConfig


LOGGER = logging.getLogger(__name__)
EXTENSION_KEY = "easel"

api = Blueprint("canvas_api", __name__, url_prefix="/api/canvas")


@dataclass(frozen=True)
class CanvasService:
    config: ServerConfig
    store: SceneStore
    renderer: SceneRenderer


def create_app(
    config: ServerConfig | None = None,
    *,
    store: SceneStore | None = None,
    renderer: SceneRenderer | None = None,
) -> Flask:
    config = config or ServerConfig.from_env()
    static_dir = Path(config.static_dir).resolve()
    has_static = static_dir.is_dir()
    app = Flask(
        __name__,
        static_folder=str(static_dir) if has_static else None,
        static_url_path="",
    )
    app.config["MAX_CONTENT_LENGTH"] = config.max_request_bytes
    CORS(app, resources={r"/api/*": {"origins": config.cors_origins}})

    if renderer is None:
        renderer = SceneRenderer(
            ImageLoader(
                timeout_s=config.image_fetch_timeout_s,
                max_workers=config.image_fetch_workers,
                max_bytes=config.max_remote_image_bytes,
            )
        )
    app.extensions[EXTENSION_KEY] = CanvasService(
        config=config,
        store=store or SceneStore(config.initial_width, config.initial_height),
        renderer=renderer,
    )
    app.register_blueprint(api)
    app.register_error_handler(SceneError, _scene_error)
    app.register_error_handler(RequestEntityTooLarge, _too_large)
    app.register_error_handler(ExportError, _export_error)
    app.register_error_handler(Exception, _unexpected_error)

    if has_static and (static_dir / "index.html").is_file():
        app.add_url_rule("/", "index", lambda: app.send_static_file("index.html"))
    return app


def _service() -> CanvasService:
    return current_app.extensions[EXTENSION_KEY]


@api.post("/init")
def init_canvas() -> Response:
    body = _json_body()
    scene = _service().store.init(body.get("width"), body.get("height"))
    return _scene_response(scene, message="Canvas initialized")


@api.post("/add-rectangle")
def add_rectangle() -> Response:
    element, scene = _service().store.add_rectangle(_json_body())
    return _scene_response(scene, element=element)


@api.post("/add-circle")
def add_circle() -> Response:
    element, scene = _service().store.add_circle(_json_body())
    return _scene_response(scene, element=element)


@api.post("/add-text")
def add_text() -> Response:
    element, scene = _service().store.add_text(_json_body())
    return _scene_response(scene, element=element)


@api.post("/add-image")
def add_image() -> Response:
    service = _service()
    fields: dict[str, Any] = request.form.to_dict() if request.form else _json_body()
    upload = request.files.get("image")
    if upload is not None and upload.filename:
        # An uploaded file wins over a URL sent alongside it.
        data = _read_upload(upload, service.config.max_upload_bytes)
        fields.pop("imageUrl", None)
        element = image_from_fields({**fields, "imageData": data})
        element = replace(element, image_data=normalize_upload(data, element.width, element.height))
    else:
        element = image_from_fields(fields)
    stored, scene = service.store.append(element)
    return _scene_response(scene, element=stored)


@api.get("/state")
def canvas_state() -> Response:
    return _scene_response(_service().store.snapshot())


@api.post("/clear")
def clear_canvas() -> Response:
    return _scene_response(_service().store.clear())


@api.post("/export-pdf")
def export_canvas_pdf() -> Response:
    service = _service()
    document = export_pdf(service.store.snapshot(), service.renderer, quality=service.config.export_quality)
    return _document_response(document, as_attachment=True)


@api.get("/preview.png")
def preview_png() -> Response:
    service = _service()
    return _document_response(export_png(service.store.snapshot(), service.renderer), as_attachment=False)


def _json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise InvalidValueError("request body must be a JSON object")
    return body


def _read_upload(upload: FileStorage, max_bytes: int) -> bytes:
    data = upload.stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        abort(413, description=f"image upload exceeds {max_bytes} bytes")
    return data


def _scene_response(scene: Scene, *, element: Element | None = None, message: str | None = None) -> Response:
    payload: dict[str, Any] = {"success": True}
    if message is not None:
        payload["message"] = message
    if element is not None:
        payload["element"] = element.to_dict()
    payload["canvas"] = scene.to_dict()
    return jsonify(payload)


def _document_response(document: ExportedDocument, *, as_attachment: bool) -> Response:
    response = send_file(
        io.BytesIO(document.content),
        mimetype=document.content_type,
        as_attachment=as_attachment,
        download_name=document.filename,
    )
    response.headers["Cache-Control"] = "no-store"
    return response


def _error_response(message: str, status: int, field: str | None = None) -> tuple[Response, int]:
    return jsonify({"success": False, "error": message, "field": field}), status


def _scene_error(exc: SceneError) -> tuple[Response, int]:
    return _error_response(str(exc), 400, exc.field)


def _too_large(exc: RequestEntityTooLarge) -> tuple[Response, int]:
    return _error_response(exc.description or "request too large", 413)


def _export_error(exc: ExportError) -> tuple[Response, int]:
    LOGGER.error("canvas export failed: %s", exc, exc_info=exc)
    return _error_response(str(exc), 500)


def _unexpected_error(exc: Exception) -> Response | tuple[Response, int]:
    if isinstance(exc, HTTPException):
        return exc
    LOGGER.error("unhandled error on %s %s", request.method, request.path, exc_info=exc)
    return _error_response("internal server error", 500)
