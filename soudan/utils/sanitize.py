"""
Input Sanitization Utilities

Strips unsafe markup from comment text and author names before they are
stored and served back to the embedding widget.
"""

import logging
import re
from typing import Optional

import bleach

from soudan.exceptions import SanitizeError

logger = logging.getLogger(__name__)

# Allowed tags for user comments
COMMENT_TAGS = [
    'p', 'br', 'strong', 'b', 'em', 'i', 'u', 's', 'a', 'code', 'pre',
    'blockquote', 'ul', 'ol', 'li',
]
COMMENT_ATTRS = {
    'a': ['href', 'title'],
}

# Allowed protocols for URLs
ALLOWED_PROTOCOLS = ['http', 'https', 'mailto']

# Elements whose content is removed along with the tags
_DANGEROUS_ELEMENTS = re.compile(
    r'<(script|style|iframe|object)\b[^>]*>.*?</\1\s*>',
    re.IGNORECASE | re.DOTALL,
)


def sanitize_html(
    text: Optional[str],
    tags: Optional[list[str]] = None,
    attributes: Optional[dict] = None,
) -> str:
    """
    Sanitize HTML to prevent XSS attacks.

    Disallowed tags are stripped rather than escaped, and script-like
    elements lose their content as well.

    Args:
        text: The HTML text to sanitize
        tags: List of allowed HTML tags (default: COMMENT_TAGS)
        attributes: Dict of allowed attributes per tag (default: COMMENT_ATTRS)

    Returns:
        Sanitized HTML string

    Raises:
        SanitizeError: if the cleaner fails on the input
    """
    if text is None:
        return ""

    allowed_tags = tags if tags is not None else COMMENT_TAGS
    allowed_attrs = attributes if attributes is not None else COMMENT_ATTRS

    try:
        return bleach.clean(
            _DANGEROUS_ELEMENTS.sub('', text),
            tags=allowed_tags,
            attributes=allowed_attrs,
            protocols=ALLOWED_PROTOCOLS,
            strip=True,
        )
    except (TypeError, ValueError) as e:
        logger.error(f"Sanitizer failed: {e}")
        raise SanitizeError() from e

