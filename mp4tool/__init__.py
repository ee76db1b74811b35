"""Model, query and validate MP4 (ISO base media) box trees."""

__version__ = "0.1.0"

__all__ = [
    "box_types",
    "boxes",
    "codec_conf",
    "io_file",
    "validate",
]