"""Turn raw change notifications into short, human-readable reasons."""

import os
from pathlib import Path

from extwatch_core.models import ChangeEvent, ChangeKind

MAX_REASON_LENGTH = 140
ELLIPSIS = "..."


def shorten_reason(reason: str) -> str:
    """Truncate overlong reasons to ``MAX_REASON_LENGTH`` characters.

    Args:
        reason: Reason label

    Returns:
        The label itself, or its first 137 characters followed by "..."
    """
    if len(reason) > MAX_REASON_LENGTH:
        return reason[: MAX_REASON_LENGTH - len(ELLIPSIS)] + ELLIPSIS
    return reason


def normalize_reason(root: Path, kind: ChangeKind | str, relative_path: str, base: Path) -> str:
    """Format a change as ``"<kind>:<path relative to base>"``.

    Args:
        root: Watched root the change came from
        kind: Change kind
        relative_path: Changed path relative to ``root`` (may be empty)
        base: Directory reasons are expressed relative to (the project root)

    Returns:
        Shortened reason label
    """
    kind_text = kind.value if isinstance(kind, ChangeKind) else str(kind)
    full_path = Path(root) / (relative_path or "(unknown)")
    try:
        shown = os.path.relpath(full_path, base)
    except ValueError:
        # Different drives on Windows
        shown = str(full_path)
    return shorten_reason(f"{kind_text}:{Path(shown).as_posix()}")


def reason_for(event: ChangeEvent, base: Path) -> str:
    """Shortcut for ``normalize_reason`` on a ``ChangeEvent``."""
    return normalize_reason(event.root, event.kind, event.relative_path, base)


def describe_reasons(reasons) -> str:
    """Join a reason snapshot for console output ("manual trigger" if empty)."""
    return ", ".join(sorted(reasons)) or "manual trigger"
