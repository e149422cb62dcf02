"""Object key handling: resolution, naming, public URLs and content types."""

import mimetypes
import re
import time
from pathlib import PurePosixPath
from urllib.parse import quote, unquote, urlsplit
from uuid import uuid4

from asset_gateway.core.errors import InvalidKey, MissingParameter

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Types the platform serves that mimetypes does not know on every system.
_EXTRA_CONTENT_TYPES = {
    ".vcf": "text/vcard",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".avif": "image/avif",
}

_S3_HOST = re.compile(r"^[\w.-]+\.s3\.[\w-]+\.amazonaws\.com$", re.IGNORECASE)


def validate_key(key: str) -> str:
    if not key or not key.strip():
        raise MissingParameter("Missing key parameter")
    if ".." in key.split("/"):
        raise InvalidKey(f"Invalid object key: {key}")
    return key


def join_key(folder: str | None, filename: str) -> str:
    prefix = (folder or "").strip("/")
    return f"{prefix}/{filename}" if prefix else filename


def extract_key_from_s3_url(url: str | None) -> str | None:
    """Return the object key of a virtual-hosted S3 URL, or None if it is not one."""
    if not url:
        return None
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if parts.scheme != "https" or not parts.hostname or not _S3_HOST.match(parts.hostname):
        return None
    key = unquote(parts.path.lstrip("/"))
    return key or None


def build_object_url(bucket: str, region: str, key: str) -> str:
    return f"https://{bucket}.s3.{region}.amazonaws.com/{quote(key, safe='/')}"


def resolve_key(
    *,
    key: str | None = None,
    url: str | None = None,
    folder: str | None = None,
    filename: str | None = None,
) -> str:
    """Pick the object key from the first request input that yields one.

    An explicit ``key`` wins and is used as given. A ``url`` that is not an
    S3 object URL resolves to nothing rather than to some other key. A route
    ``folder``/``filename`` pair is joined last.
    """
    if key:
        return validate_key(key)
    extracted = extract_key_from_s3_url(url)
    if extracted:
        return validate_key(extracted)
    if filename:
        return validate_key(join_key(folder, filename))
    if url:
        raise MissingParameter("Missing key: url is not an S3 object URL")
    raise MissingParameter("Missing key parameter")


def file_extension(filename: str) -> str:
    name = PurePosixPath(filename.replace("\\", "/")).name
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1]


def generate_filename(original_name: str) -> str:
    """Build ``<unixMillis>-<8 hex>.<ext>``, keeping the original extension."""
    timestamp = int(time.time() * 1000)
    suffix = uuid4().hex[:8]
    extension = file_extension(original_name)
    if not extension:
        return f"{timestamp}-{suffix}"
    return f"{timestamp}-{suffix}.{extension}"


def resolve_content_type(name: str, declared: str | None = None) -> str:
    if declared and declared.strip() and declared.strip().lower() != DEFAULT_CONTENT_TYPE:
        return declared.strip()
    extension = file_extension(name).lower()
    if not extension:
        return DEFAULT_CONTENT_TYPE
    suffix = f".{extension}"
    if suffix in _EXTRA_CONTENT_TYPES:
        return _EXTRA_CONTENT_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(f"file{suffix}")
    return guessed or DEFAULT_CONTENT_TYPE
