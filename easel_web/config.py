from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from typing import Any, Mapping


ENV_FIELDS: dict[str, str] = {
    "host": "EASEL_HOST",
    "port": "PORT",
    "static_dir": "EASEL_STATIC_DIR",
    "initial_width": "EASEL_INITIAL_WIDTH",
    "initial_height": "EASEL_INITIAL_HEIGHT",
    "image_fetch_timeout_s": "EASEL_IMAGE_TIMEOUT_S",
    "image_fetch_workers": "EASEL_IMAGE_WORKERS",
    "max_remote_image_bytes": "EASEL_MAX_REMOTE_IMAGE_BYTES",
    "max_upload_bytes": "EASEL_MAX_UPLOAD_BYTES",
    "max_request_bytes": "EASEL_MAX_REQUEST_BYTES",
    "export_quality": "EASEL_EXPORT_QUALITY",
    "cors_origins": "EASEL_CORS_ORIGINS",
}


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 3000
    static_dir: str = "public"
    initial_width: int = 800
    initial_height: int = 600
    image_fetch_timeout_s: float = 5.0
    image_fetch_workers: int = 4
    max_remote_image_bytes: int = 10 * 1024 * 1024
    max_upload_bytes: int = 5 * 1024 * 1024
    max_request_bytes: int = 10 * 1024 * 1024
    export_quality: int = 85
    cors_origins: str = "*"

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
        if self.initial_width <= 0 or self.initial_height <= 0:
            raise ValueError("initial_width and initial_height must be > 0")
        if self.image_fetch_timeout_s <= 0:
            raise ValueError("image_fetch_timeout_s must be > 0")
        if self.image_fetch_workers <= 0:
            raise ValueError("image_fetch_workers must be > 0")
        if self.max_remote_image_bytes <= 0 or self.max_upload_bytes <= 0:
            raise ValueError("byte limits must be > 0")
        if self.max_request_bytes < self.max_upload_bytes:
            raise ValueError("max_request_bytes must be >= max_upload_bytes")
        if not 1 <= self.export_quality <= 100:
            raise ValueError("export_quality must be within 1..100")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServerConfig":
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        types = {f.name: f.type for f in fields(cls)}
        for name, key in ENV_FIELDS.items():
            raw = env.get(key)
            if raw is None or not raw.strip():
                continue
            values[name] = _parse_env_value(key, raw.strip(), types[name])
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "ServerConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _parse_env_value(key: str, raw: str, type_name: Any) -> Any:
    # Annotations are strings under postponed evaluation.
    type_name = str(type_name)
    try:
        if type_name == "int":
            return int(raw)
        if type_name == "float":
            return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a {type_name}, got {raw!r}") from exc
    return raw
