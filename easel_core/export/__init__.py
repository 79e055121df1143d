from .document import (
    DEFAULT_JPEG_QUALITY,
    PDF_CONTENT_TYPE,
    PNG_CONTENT_TYPE,
    ExportedDocument,
    export_pdf,
    export_png,
)

__all__ = [
    "DEFAULT_JPEG_QUALITY",
    "ExportedDocument",
    "PDF_CONTENT_TYPE",
    "PNG_CONTENT_TYPE",
    "export_pdf",
    "export_png",
]
