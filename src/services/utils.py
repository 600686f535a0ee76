"""Shared utility functions for service layer."""


def escape_ilike(value: str) -> str:
    r"""
    Escape special LIKE characters for safe use in LIKE/ILIKE patterns.

    LIKE/ILIKE treats these characters specially:
    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character

    This function escapes them so they match literally. Pair the pattern with
    ``escape="\\"`` so SQLite honours the escapes as PostgreSQL does.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
