from __future__ import annotations


class SceneError(ValueError):
    """Validation failure raised before any scene mutation is applied."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class InvalidDimensionError(SceneError):
    pass


class MissingFieldError(SceneError):
    pass


class InvalidValueError(SceneError):
    pass


class ImageLoadError(RuntimeError):
    pass


class ExportError(RuntimeError):
    pass
