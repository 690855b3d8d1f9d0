"""Truncation markers shared by compaction and pruning.

Both passes check for these markers before rewriting a value, so each pass
is idempotent and neither re-truncates what the other produced.  Markers
only count at the end of a value; a file that merely mentions one is still
truncated.
"""

import re

COMPACTED_TAG = "[... compacted"
COMPACTED_ARG_MARKER = "\n\n[... compacted]"
PRUNED_TAG = "[... compressed from previous iteration"
PROMPT_TRUNCATED_MARKER = "\n\n[... prompt truncated from previous iteration]"
CLEARED_PLACEHOLDER = "[Previous iteration tool result cleared]"

# Suffixes appended by truncate_with_length.
_LENGTH_MARKER_RE = re.compile(
    r"\n\n(?:" + "|".join(re.escape(t) for t in (COMPACTED_TAG, PRUNED_TAG)) + r")"
    r" - original was \d+ chars\]$"
)


def is_truncated(text: str) -> bool:
    """Check whether text ends in a truncation marker or is the cleared placeholder."""
    return (
        text == CLEARED_PLACEHOLDER
        or text.endswith((COMPACTED_ARG_MARKER, PROMPT_TRUNCATED_MARKER))
        or _LENGTH_MARKER_RE.search(text) is not None
    )


def truncate_with_length(text: str, max_len: int, keep: int, tag: str = COMPACTED_TAG) -> str:
    """Cut text longer than max_len to its first keep chars plus a length marker.

    Text that is short enough or already truncated is returned unchanged.
    """
    if len(text) <= max_len or is_truncated(text):
        return text
    return text[:keep] + f"\n\n{tag} - original was {len(text)} chars]"
