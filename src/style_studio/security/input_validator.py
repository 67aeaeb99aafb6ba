"""
Input validation and sanitization.

OOP: Single Responsibility - Only handles input validation and sanitization.
"""

import html
import re
from typing import Iterable, List, Optional

from ..exceptions import InvalidInputError


class InputValidator:
    """
    Validates and sanitizes user input.

    Labels end up in the history cache and on the result screen, product ids
    end up in bookmark calls.
    """

    MAX_LABEL_LENGTH = 200
    MAX_PRODUCT_ID_LENGTH = 128
    DEFAULT_LABEL = "Untitled"

    _CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

    @staticmethod
    def sanitize_label(label: Optional[str], default: Optional[str] = None) -> str:
        """
        Sanitize a human-readable label (product name, file name).

        Labels are display-only, so overlong labels are truncated instead of rejected.

        :param label: Raw label, may be None
        :param default: Label used when nothing usable remains
        :return: Escaped, trimmed label
        """
        fallback = default if default is not None else InputValidator.DEFAULT_LABEL

        if label is None:
            return fallback
        if not isinstance(label, str):
            raise InvalidInputError(f"Label must be a string, got {type(label).__name__}")

        cleaned = InputValidator._CONTROL_CHARS.sub("", label).strip()
        if len(cleaned) > InputValidator.MAX_LABEL_LENGTH:
            cleaned = cleaned[:InputValidator.MAX_LABEL_LENGTH].rstrip()

        if not cleaned:
            return fallback

        return html.escape(cleaned, quote=False)

    @staticmethod
    def validate_product_id(product_id: object) -> str:
        """
        Validate a catalog product identifier.

        :param product_id: Identifier as received from the UI
        :return: Identifier as a stripped string
        :raises InvalidInputError: If the identifier is empty, too long or malformed
        """
        if isinstance(product_id, bool) or not isinstance(product_id, (str, int)):
            raise InvalidInputError("Product id must be a string")

        value = str(product_id).strip()
        if not value:
            raise InvalidInputError("Product id cannot be empty")

        if len(value) > InputValidator.MAX_PRODUCT_ID_LENGTH:
            raise InvalidInputError(
                f"Product id exceeds maximum length of "
                f"{InputValidator.MAX_PRODUCT_ID_LENGTH} characters"
            )

        if InputValidator._CONTROL_CHARS.search(value):
            raise InvalidInputError("Product id contains control characters")

        return value

    @staticmethod
    def validate_product_ids(product_ids: Iterable[object]) -> List[str]:
        """
        Validate a batch of product identifiers.

        Duplicates are dropped, first occurrence wins.

        :param product_ids: Identifiers to validate
        :return: Ordered list of unique identifiers
        :raises InvalidInputError: If any identifier is invalid
        """
        if isinstance(product_ids, (str, bytes)):
            raise InvalidInputError("Product ids must be a collection, not a single string")

        seen = set()
        validated = []
        for raw in product_ids:
            value = InputValidator.validate_product_id(raw)
            if value not in seen:
                seen.add(value)
                validated.append(value)
        return validated
