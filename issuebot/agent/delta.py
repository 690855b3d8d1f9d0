"""Reduce a re-fetched PR diff to the files that changed since the last fetch."""

import re

NO_CHANGES = "No changes since last review."

FILE_MARKER = "diff --git "
_HEADER_RE = re.compile(r"^diff --git a/(?P<a>.+?) b/(?P<b>.+)$")


def _filename(header: str) -> str:
    header = header.rstrip("\r\n")
    match = _HEADER_RE.match(header)
    if match:
        return match.group("b")
    return header[len(FILE_MARKER):].strip()


def parse_into_files(diff_text: str) -> dict[str, str]:
    """Split a unified multi-file diff into per-file sections.

    Each section runs from its ``diff --git`` header up to the next one and
    is keyed by the post-image path.  Text before the first header is
    ignored.  Dict order follows the diff.
    """
    files: dict[str, str] = {}
    name: str | None = None
    lines: list[str] = []

    for line in diff_text.splitlines(keepends=True):
        if line.startswith(FILE_MARKER):
            if name is not None:
                files[name] = "".join(lines).rstrip("\n")
            name = _filename(line)
            lines = [line]
        elif name is not None:
            lines.append(line)

    if name is not None:
        files[name] = "".join(lines).rstrip("\n")
    return files


def compute_delta(previous: str, current: str) -> str:
    """Describe ``current`` relative to ``previous``, file by file.

    New and changed files are included in full, in ``current``'s order.
    Unchanged files are only listed by name.  Files that disappeared since
    ``previous`` are not reported, so a diff that is now empty gives
    ``NO_CHANGES``.
    """
    if previous == current:
        return NO_CHANGES

    prev_files = parse_into_files(previous)
    curr_files = parse_into_files(current)
    if not prev_files and not curr_files:
        # Neither side is a diff we can split; hand the new text back whole
        return current

    sections: list[str] = []
    unchanged: list[str] = []
    new_count = changed_count = 0

    for name, section in curr_files.items():
        old = prev_files.get(name)
        if old is None:
            sections.append(f"=== NEW FILE: {name} ===\n{section}")
            new_count += 1
        elif old != section:
            sections.append(f"=== CHANGED: {name} ===\n{section}")
            changed_count += 1
        else:
            unchanged.append(name)

    if not sections:
        return NO_CHANGES

    header = [
        f"[Diff delta since last review: {new_count} new, "
        f"{changed_count} changed, {len(unchanged)} unchanged file(s)]"
    ]
    if unchanged:
        header.append(f"Unchanged (omitted): {', '.join(unchanged)}")

    return "\n".join(header) + "\n\n" + "\n\n".join(sections)
