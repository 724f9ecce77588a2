from datetime import datetime, timezone


def append_note(existing: str | None, note: str | None, author: str | None = None) -> str | None:
    """Append a timestamped line to free-text notes.

    Examples:
        >>> append_note(None, "issued")  # doctest: +SKIP
        '[2024-05-01 10:00 UTC] issued'
    """
    if not note or not note.strip():
        return existing
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    prefix = f"[{stamp}] {author}: " if author else f"[{stamp}] "
    line = prefix + note.strip()
    return f"{existing}\n{line}" if existing else line
