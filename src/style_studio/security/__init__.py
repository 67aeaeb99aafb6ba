"""
Security module for input validation and upload validation.

Everything a user types or uploads passes through here before it reaches a
backend call.
"""

from ..exceptions import InputRejectedError, InvalidInputError, InvalidUploadError
from .input_validator import InputValidator
from .file_validator import FileValidator

__all__ = [
    "InputRejectedError",
    "InvalidInputError",
    "InvalidUploadError",
    "InputValidator",
    "FileValidator",
]
