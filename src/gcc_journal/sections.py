"""Section-aware text splicing for the journal's markdown documents.

Every document the journal writes is plain markdown made of headings,
bullet lists and free text. Instead of parsing a full document model, edits
locate a literal anchor or heading, slice the text around it and splice new
content in. Unrelated bytes are never touched, which keeps the files
diff-friendly and human-editable.
"""

from __future__ import annotations

import re

SECTION_BOUNDARY_PATTERN = re.compile(r"^#{1,2} ", re.MULTILINE)


def find_section(content: str, heading: str) -> tuple[int, int] | None:
    """Return the ``(start, end)`` span of a section, or ``None``.

    ``start`` is the offset of the heading line. ``end`` is the offset of the
    newline that precedes the next top-level or second-level heading, or the
    end of the document when the section is last.
    """
    match = re.search(rf"^{re.escape(heading)}[ \t]*$", content, re.MULTILINE)
    if match is None:
        return None

    boundary = SECTION_BOUNDARY_PATTERN.search(content, match.end())
    if boundary is None:
        return match.start(), len(content)

    end = boundary.start()
    if end > 0 and content[end - 1] == "\n":
        end -= 1
    return match.start(), end


def section_bullets(content: str, heading: str) -> list[str]:
    """Return the ``- `` bullet lines of a section in document order."""
    span = find_section(content, heading)
    if span is None:
        return []
    start, end = span
    return [line for line in content[start:end].splitlines() if line.startswith("- ")]


def replace_section_lines(content: str, heading: str, lines: list[str]) -> str:
    """Rewrite the body of ``heading`` with ``lines``.

    A missing heading is appended as a new section at the end of the document
    so callers never lose the entry they meant to record.
    """
    body = "".join(f"{line}\n" for line in lines)
    new_section = f"{heading}\n{body}"

    span = find_section(content, heading)
    if span is None:
        prefix = content
        if prefix and not prefix.endswith("\n"):
            prefix += "\n"
        if prefix and not prefix.endswith("\n\n"):
            prefix += "\n"
        return prefix + new_section

    start, end = span
    return content[:start] + new_section + content[end:]


def insert_after_anchor(content: str, anchor: str, text: str) -> str:
    """Insert ``text`` right after the first occurrence of ``anchor``.

    Without the anchor, ``text`` goes after the first blank-line boundary so
    that a leading title block stays on top. A document with neither is
    extended at the end.
    """
    anchor_index = content.find(anchor)
    if anchor_index != -1:
        insert_at = anchor_index + len(anchor)
        return content[:insert_at] + text + content[insert_at:]

    header_end = content.find("\n\n")
    if header_end != -1:
        insert_at = header_end + 2
        return content[:insert_at] + text + content[insert_at:]

    return content + "\n" + text
