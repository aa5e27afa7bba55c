from __future__ import annotations

import unicodedata


def normalize_workspace(value: str) -> str:
    return unicodedata.normalize("NFKC", value).strip().lower()


def normalize_status(value: str | None) -> str | None:
    """Map free-form status input onto the stored labels."""

    if value is None:
        return None
    compact = "".join(str(value).split()).lower()
    return {"nodoc": "No Doc", "pending": "Pending", "done": "Done"}.get(compact, str(value).strip())
