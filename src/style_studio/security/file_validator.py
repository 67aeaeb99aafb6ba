"""
Upload validation for image analysis.

OOP: Single Responsibility - Only handles file validation.
"""

import io
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..exceptions import InvalidUploadError


class FileValidator:
    """
    Validates uploaded images before they are sent for analysis.

    Rejects anything that is not a reasonably sized JPEG or PNG.
    """

    MAX_FILE_SIZE = 10 * 1024 * 1024
    MAX_DIMENSION = 10000
    ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png"}
    MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png"}

    @staticmethod
    def validate_image_file(file_path: str) -> Tuple[bool, Optional[str]]:
        """
        Validate an image file on disk.

        :param file_path: Path to the file to validate
        :return: Tuple of (is_valid, error_message)
        """
        path = Path(file_path)

        if not path.exists() or not path.is_file():
            return False, "File does not exist"

        if path.suffix.lower() not in FileValidator.ALLOWED_EXTENSIONS:
            return False, (
                f"File extension '{path.suffix}' not allowed. "
                f"Allowed: {', '.join(sorted(FileValidator.ALLOWED_EXTENSIONS))}"
            )

        try:
            data = path.read_bytes()
        except OSError as e:
            return False, f"Cannot read file: {str(e)}"

        return FileValidator.validate_image_bytes(data)

    @staticmethod
    def validate_image_bytes(data: bytes) -> Tuple[bool, Optional[str]]:
        """
        Validate raw image bytes.

        :param data: Uploaded image content
        :return: Tuple of (is_valid, error_message)
        """
        if not data:
            return False, "File is empty"

        if len(data) > FileValidator.MAX_FILE_SIZE:
            return False, (
                f"File size {len(data)} bytes exceeds maximum "
                f"{FileValidator.MAX_FILE_SIZE} bytes"
            )

        try:
            with Image.open(io.BytesIO(data)) as img:
                image_format = img.format
                img.verify()

            if image_format not in FileValidator.MIME_TYPES:
                return False, f"Image type '{image_format}' not allowed. Allowed: jpeg, png"

            # verify() leaves the image unusable, reopen for dimensions
            with Image.open(io.BytesIO(data)) as img:
                width, height = img.size
        except UnidentifiedImageError:
            return False, "File is not a valid image"
        except Exception as e:
            return False, f"Image validation failed: {str(e)}"

        if width == 0 or height == 0:
            return False, "Image has invalid dimensions"

        if width > FileValidator.MAX_DIMENSION or height > FileValidator.MAX_DIMENSION:
            return False, (
                f"Image dimensions too large "
                f"(max {FileValidator.MAX_DIMENSION}x{FileValidator.MAX_DIMENSION})"
            )

        return True, None

    @staticmethod
    def detect_mime_type(data: bytes) -> str:
        """
        Validate image bytes and return their MIME type.

        :param data: Image content
        :return: "image/jpeg" or "image/png"
        :raises InvalidUploadError: If the image is not acceptable
        """
        is_valid, error = FileValidator.validate_image_bytes(data)
        if not is_valid:
            raise InvalidUploadError(error)

        with Image.open(io.BytesIO(data)) as img:
            return FileValidator.MIME_TYPES[img.format]
