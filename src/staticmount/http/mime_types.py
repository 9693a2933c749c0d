"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to Content-Type header values.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     LOOKUP ORDER                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   "app.JS"                                                          │
    │      │                                                               │
    │      ▼  lowercase suffix ".js"                                      │
    │   1. MIME_TYPES table (web types we care about)  ──► text/javascript│
    │      │  miss                                                         │
    │      ▼                                                               │
    │   2. mimetypes.guess_type (platform database)                       │
    │      │  miss                                                         │
    │      ▼                                                               │
    │   3. None  (caller decides the fallback)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Text types get a charset parameter: "text/css; charset=utf-8".

=============================================================================
"""

import mimetypes
from pathlib import PurePosixPath
from typing import Optional


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Extensions are lowercase and include the dot. Anything not listed here
# falls through to the stdlib mimetypes database.
#
# =============================================================================

MIME_TYPES = {
    # Documents and scripts
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",       # Source maps
    ".webmanifest": "application/manifest+json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".wasm": "application/wasm",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Media
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".wav": "audio/wav",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Archives and binaries
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
}

# "I don't know what this is, treat it as bytes"
DEFAULT_MIME_TYPE = "application/octet-stream"

_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/manifest+json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


def guess_mime_type(path: str) -> Optional[str]:
    """
    Guess the bare MIME type for a filename or URL path.

    Returns None when the extension is unknown (or there is none).

    Examples:
        >>> guess_mime_type("/assets/logo.PNG")
        'image/png'
        >>> guess_mime_type("README") is None
        True
    """
    extension = PurePosixPath(path).suffix.lower()
    if not extension:
        return None

    if extension in MIME_TYPES:
        return MIME_TYPES[extension]

    guessed, _ = mimetypes.guess_type("file" + extension, strict=False)
    return guessed


def is_text_type(mime_type: str) -> bool:
    """Check if a MIME type is text and should carry a charset."""
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


def content_type_for(path: str, charset: str = "utf-8") -> Optional[str]:
    """
    Full Content-Type header value for a path, or None if unknown.

    Examples:
        >>> content_type_for("index.html")
        'text/html; charset=utf-8'
        >>> content_type_for("logo.png")
        'image/png'
    """
    mime_type = guess_mime_type(path)
    if mime_type is None:
        return None

    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type


def get_content_type(path: str, charset: str = "utf-8") -> str:
    """Like content_type_for(), but never returns None."""
    return content_type_for(path, charset) or DEFAULT_MIME_TYPE
