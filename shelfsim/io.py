"""
File handling for shelfsim.

- **Uploads** - product images posted by users or downloaded from the image
  model, stored under the upload directory and served at ``/uploads/<name>``.
- **Exports** - run analyses written to ``<output_dir>/<run>_<ts>.<fmt>``
  with the fallback pattern (target dir, then the temp dir, then stdout).
"""

from __future__ import annotations

import random
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import httpx

from shelfsim.errors import UploadError
from shelfsim.logging_config import get_logger

logger = get_logger(__name__)

UPLOAD_URL_PREFIX = "/uploads/"
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
}


def _safe_write(path: Path, content: str, *, console: Any = None) -> Path | None:
    """
    Write *content* to *path*, falling back to the temp dir then stdout.

    Returns the path that was actually written, or ``None`` if we had to
    print to the console instead.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path
    except OSError as exc:
        logger.warning("Could not write %s: %s", path, exc)

    import tempfile

    fallback = Path(tempfile.gettempdir()) / path.name
    try:
        fallback.write_text(content)
        return fallback
    except OSError:
        if console is not None:
            console.print("[yellow]Could not write file. Printing content:[/yellow]")
            console.print(content)
        return None


# ------------------------------------------------------------------
# Timestamp helper
# ------------------------------------------------------------------

def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _unique_suffix() -> str:
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"


# ------------------------------------------------------------------
# Uploads
# ------------------------------------------------------------------

def save_upload(
    data: bytes,
    filename: Optional[str],
    content_type: Optional[str],
    upload_dir: Path,
    *,
    max_bytes: int,
) -> str:
    """
    Store an uploaded image and return its public URL.

    Only JPEG, PNG and GIF are accepted, up to *max_bytes*.  The stored
    extension follows *content_type*; the client filename is ignored.
    """
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise UploadError("Invalid file type. Only JPEG, PNG and GIF are allowed.")
    if len(data) > max_bytes:
        raise UploadError(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")

    name = f"{_unique_suffix()}{ALLOWED_IMAGE_TYPES[content_type]}"
    upload_dir.mkdir(parents=True, exist_ok=True)
    (upload_dir / name).write_bytes(data)
    logger.info("Stored upload %s as %s (%d bytes)", filename, name, len(data))
    return UPLOAD_URL_PREFIX + name


def upload_path(url: str, upload_dir: Path) -> Optional[Path]:
    """Local file behind an ``/uploads/...`` URL, or None for foreign URLs."""
    if not url.startswith(UPLOAD_URL_PREFIX):
        return None
    name = Path(url[len(UPLOAD_URL_PREFIX):]).name
    return upload_dir / name


def delete_upload(url: str, upload_dir: Path) -> bool:
    """Remove the file behind *url*.  Returns False if there was nothing to remove."""
    path = upload_path(url, upload_dir)
    if path is None or not path.exists():
        return False
    path.unlink()
    logger.info("Deleted upload %s", path.name)
    return True


def download_image(
    url: str,
    upload_dir: Path,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = 30.0,
) -> str:
    """Fetch a remote image into the upload dir and return its local URL."""
    try:
        if client is not None:
            response = client.get(url, timeout=timeout)
        else:
            response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise UploadError(f"Failed to download image: {exc}") from exc

    name = f"generated-{_unique_suffix()}.png"
    upload_dir.mkdir(parents=True, exist_ok=True)
    (upload_dir / name).write_bytes(response.content)
    logger.info("Downloaded image %s -> %s", url, name)
    return UPLOAD_URL_PREFIX + name


# ------------------------------------------------------------------
# Analysis exports
# ------------------------------------------------------------------

def render_export(analysis: Any, fmt: str) -> str:
    if fmt == "csv":
        return analysis.to_csv()
    if fmt == "json":
        return analysis.to_json()
    raise ValueError(f"Unknown export format: {fmt}")


def save_run_export(
    analysis: Any,
    output_dir: Path,
    *,
    fmt: str = "json",
    console: Any = None,
) -> Path | None:
    """
    Save a ``RunAnalysis`` to ``<output_dir>/run<id>_<ts>.<fmt>``.
    """
    content = render_export(analysis, fmt)
    path = output_dir / f"run{analysis.run_id}_{_timestamp()}.{fmt}"
    return _safe_write(path, content, console=console)
