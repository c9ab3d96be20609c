from __future__ import annotations

import re
import secrets

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")
MAX_NAME_CHARS = 100


def sanitize_filename(name: str | None) -> str:
    """Reduce a client-supplied filename to a safe single path segment.

    Directory parts are dropped, anything outside ``[A-Za-z0-9._-]`` becomes
    ``_``, leading dots are stripped and the result is capped in length while
    keeping the extension.
    """
    base = (name or "").replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _UNSAFE.sub("_", base).lstrip(".")
    if not cleaned:
        return "file"
    if len(cleaned) > MAX_NAME_CHARS:
        stem, dot, ext = cleaned.rpartition(".")
        if dot and 0 < len(ext) <= 10:
            cleaned = stem[: MAX_NAME_CHARS - len(ext) - 1] + "." + ext
        else:
            cleaned = cleaned[:MAX_NAME_CHARS]
    return cleaned


def generate_stored_name(original_name: str | None) -> str:
    """128 random bits (hex) joined to the sanitized original name."""
    return f"{secrets.token_hex(16)}-{sanitize_filename(original_name)}"
