"""
Storage key derivation.

Pattern: {classification}/{token}{ext}

- classification groups objects by orientation (landscape/portrait/other)
  or purpose (thumbnails)
- token is base64url (unpadded) of cryptographically random bytes, so no
  existence check against the bucket is needed
- ext is derived from the declared content type
"""
import base64
import secrets
from typing import Optional

# Minimum entropy for the random component (128 bits)
MIN_RANDOM_BYTES = 16
DEFAULT_RANDOM_BYTES = 32

# Mapping of content types to file extensions
CONTENT_TYPE_EXTENSIONS = {
    "video/mp4": ".mp4",
    "image/png": ".png",
    "image/jpeg": ".jpg",
}


def get_extension(content_type: str) -> str:
    """
    Get file extension (with dot) for a content type.

    Unknown types fall back to their MIME subtype, e.g. ``video/webm`` -> ``.webm``.
    """
    content_type = content_type.lower()
    if content_type in CONTENT_TYPE_EXTENSIONS:
        return CONTENT_TYPE_EXTENSIONS[content_type]
    _, _, subtype = content_type.partition("/")
    return f".{subtype}" if subtype else ".bin"


def random_token(num_bytes: int = DEFAULT_RANDOM_BYTES) -> str:
    """URL-safe text token from ``num_bytes`` random bytes."""
    if num_bytes < MIN_RANDOM_BYTES:
        raise ValueError(f"num_bytes must be at least {MIN_RANDOM_BYTES}")
    raw = secrets.token_bytes(num_bytes)
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def derive_key(
    classification: Optional[str],
    content_type: str,
    num_bytes: int = DEFAULT_RANDOM_BYTES,
) -> str:
    """
    Generate a unique object key for an upload.

    Args:
        classification: Key prefix (e.g. "landscape"), or None for no prefix
        content_type: MIME type, used for the extension
        num_bytes: Random bytes in the token (>= 16)

    Returns:
        Object key string
    """
    name = random_token(num_bytes) + get_extension(content_type)
    if not classification:
        return name
    return f"{classification}/{name}"
