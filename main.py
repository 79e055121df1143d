from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from easel_core.core.scene_store import Scene
from easel_core.export.document import export_pdf, export_png
from easel_core.render.image_source import ImageLoader
from easel_core.render.scene_renderer import SceneRenderer
from easel_web.app import create_app
from easel_web.config import ServerConfig


def main() -> None:
    parser = argparse.ArgumentParser(prog="easel")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the canvas HTTP server.")
    serve.add_argument("--host", default=None, help="Bind address. Default: EASEL_HOST or 127.0.0.1.")
    serve.add_argument("--port", type=int, default=None, help="Listen port. Default: PORT or 3000.")
    serve.add_argument("--static-dir", default=None, help="Directory served at /. Default: ./public.")
    serve.add_argument("--image-timeout", type=float, default=None, help="Remote image fetch deadline in seconds.")
    serve.add_argument("--export-quality", type=int, default=None, help="JPEG quality of the exported PDF raster.")

    render = sub.add_parser("render", help="Render a scene JSON file to PDF or PNG without a server.")
    render.add_argument("scene", type=Path, help="Scene JSON: {width, height, elements} or a /state response.")
    render.add_argument("--out", type=Path, required=True)
    render.add_argument("--format", choices=["pdf", "png"], default=None, help="Default: from --out suffix.")
    render.add_argument("--image-timeout", type=float, default=None)
    render.add_argument("--export-quality", type=int, default=None)
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = ServerConfig.from_env().with_overrides(
        image_fetch_timeout_s=args.image_timeout,
        export_quality=args.export_quality,
    )

    if args.command == "serve":
        config = config.with_overrides(host=args.host, port=args.port, static_dir=args.static_dir)
        app = create_app(config)
        app.run(host=config.host, port=config.port, threaded=True)
        return

    if args.command == "render":
        scene = Scene.from_dict(_scene_payload(json.loads(args.scene.read_text(encoding="utf-8"))))
        fmt = args.format or args.out.suffix.lstrip(".").lower()
        if fmt not in {"pdf", "png"}:
            raise RuntimeError(f"cannot infer output format from {args.out}; pass --format")
        loader = ImageLoader(
            timeout_s=config.image_fetch_timeout_s,
            max_workers=config.image_fetch_workers,
            max_bytes=config.max_remote_image_bytes,
        )
        try:
            renderer = SceneRenderer(loader)
            if fmt == "pdf":
                document = export_pdf(scene, renderer, quality=config.export_quality)
            else:
                document = export_png(scene, renderer)
        finally:
            loader.close()
        args.out.write_bytes(document.content)
        print(f"render complete: {args.out} {document.width}x{document.height} bytes={len(document.content)}")
        return

    raise RuntimeError(f"unsupported command: {args.command}")


def _scene_payload(payload: Any) -> dict[str, Any]:
    if isinstance(payload, dict) and isinstance(payload.get("canvas"), dict):
        return payload["canvas"]
    if not isinstance(payload, dict):
        raise RuntimeError("scene file must contain a JSON object")
    return payload


if __name__ == "__main__":
    main()
