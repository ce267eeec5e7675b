"""Text sanitization for provider-supplied strings."""

import re

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_WHITESPACE = re.compile(r"\s{2,}")


def sanitize_text(text: str | None, max_length: int = 500) -> str | None:
    """
    Sanitize untrusted text fields.

    Removes control characters, collapses runs of whitespace and truncates
    to max_length. Apply to company names, headlines, summaries and any
    other free-text field coming from the provider.

    Args:
        text: Text to sanitize (may be None)
        max_length: Maximum length before truncation

    Returns:
        Sanitized text, or None if input was None or blank
    """
    if text is None:
        return None

    text = _CONTROL_CHARS.sub(" ", str(text))
    text = _WHITESPACE.sub(" ", text).strip()

    if len(text) > max_length:
        text = text[:max_length].rstrip() + "..."

    return text or None
