from __future__ import annotations


def normalize_email(email: str) -> str:
    return email.strip().lower()


def prefer_display_name(current: str, candidate: str) -> str:
    """
    Longest display name wins. On equal length the current (earlier) name is
    kept, so the result depends on observation order only among equal-length names.
    """
    if len(current) < len(candidate):
        return candidate
    return current
