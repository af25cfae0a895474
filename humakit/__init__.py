"""HTTP API building blocks: problem-details errors, JSON and CBOR formats, multipart file forms, and a scripted asciinema recorder."""

__version__ = "0.1.0"

__all__ = ["asciinema", "errors", "formats", "formdata"]