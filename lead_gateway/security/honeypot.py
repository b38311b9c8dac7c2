"""Honeypot bot detection.

The landing-site forms render hidden ``website`` and ``honeypot`` inputs.
Humans never see them, so any value there marks an automated submission.
"""

HONEYPOT_FIELDS = ("website", "honeypot")


def is_bot_submission(payload: dict) -> bool:
    """Return True if any honeypot field carries a value."""
    return any(payload.get(field) for field in HONEYPOT_FIELDS)
