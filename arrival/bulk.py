"""
Bulk student ingestion from pasted text.

One student per line: ``Name, email, target_university``.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

BULK_FIELDS = ("full_name", "personal_email", "target_university")


def parse_bulk_line(line: str) -> dict[str, str] | None:
    """Parse one line into a student record, or None if a field is missing."""
    # maxsplit keeps commas inside the university name
    parts = [part.strip() for part in line.strip().split(",", len(BULK_FIELDS) - 1)]
    if len(parts) < len(BULK_FIELDS) or not all(parts):
        return None
    return dict(zip(BULK_FIELDS, parts))


def parse_bulk_students(text: str) -> list[dict[str, str]]:
    """
    Parse pasted text into student records.

    Blank lines are skipped; lines missing any of the three fields are dropped.
    The caller decides what an empty result means.
    """
    students: list[dict[str, str]] = []
    skipped = 0
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        record = parse_bulk_line(line)
        if record is None:
            skipped += 1
            continue
        students.append(record)

    if skipped:
        logger.info("Skipped %d malformed bulk line(s)", skipped, extra={"accepted": len(students)})
    return students
