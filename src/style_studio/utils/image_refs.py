"""
Display references for uploaded images.

The result screen and the history thumbnails need something a browser can
render directly, so uploads are turned into data URIs.
"""
import asyncio
import base64
from pathlib import Path
from typing import Any, Union

from ..exceptions import InvalidUploadError
from ..security.file_validator import FileValidator


_PASSTHROUGH_PREFIXES = ("data:image/", "http://", "https://")


def to_data_uri(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def _is_passthrough(source_ref: Any) -> bool:
    return isinstance(source_ref, str) and source_ref.startswith(_PASSTHROUGH_PREFIXES)


def read_upload_file(path: Union[str, Path]) -> bytes:
    """
    Validate an image file on disk and return its content.

    :raises InvalidUploadError: If the file is missing or not an acceptable image
    """
    is_valid, error = FileValidator.validate_image_file(str(path))
    if not is_valid:
        raise InvalidUploadError(error)
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise InvalidUploadError(f"Cannot read file: {e}") from e


async def load_upload(source_ref: Any) -> Any:
    """
    Resolve a file path upload to its bytes without blocking the event loop.

    Bytes and existing URIs are returned unchanged.
    """
    if isinstance(source_ref, (str, Path)) and not _is_passthrough(source_ref):
        return await asyncio.to_thread(read_upload_file, source_ref)
    return source_ref


def upload_display_image(source_ref: Any) -> str:
    """
    Derive a display-ready image reference for an upload.

    File paths are read synchronously; use load_upload first when running on
    a UI event loop.

    :param source_ref: Raw bytes, a path to an image file, or an existing data URI / URL
    :return: Data URI (or the given URI unchanged)
    :raises InvalidUploadError: If the upload is not an acceptable image
    """
    if _is_passthrough(source_ref):
        return source_ref

    if isinstance(source_ref, (bytes, bytearray)):
        data = bytes(source_ref)
    elif isinstance(source_ref, (str, Path)):
        data = read_upload_file(source_ref)
    else:
        raise InvalidUploadError(
            f"Unsupported upload type: {type(source_ref).__name__}"
        )

    mime_type = FileValidator.detect_mime_type(data)
    return to_data_uri(data, mime_type)
