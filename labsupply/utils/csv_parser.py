# labsupply/utils/csv_parser.py
"""Minimal line-oriented CSV reader used by the catalog bulk import.

Each physical line is one record: quoted fields may contain commas and
doubled quotes, but not line breaks. Malformed quoting never raises; an
unterminated quote simply swallows the rest of the line.
"""
import re
from typing import Dict, List, Tuple

_LINE_SPLIT = re.compile(r"\r?\n")
_WHITESPACE = re.compile(r"\s+")


def parse_csv_line(line: str) -> List[str]:
    """Split one line into trimmed fields."""
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current).strip())
    return fields


def normalize_header(name: str) -> str:
    return _WHITESPACE.sub("_", name.lower())


def parse_csv(text: str) -> Tuple[List[str], List[Dict[str, str]]]:
    """Parse a whole document into normalized headers and one dict per data line.

    Blank lines are dropped. Documents without a header plus at least one
    data line come back as ``([], [])``; rejecting them is up to the caller.
    """
    lines = [line for line in _LINE_SPLIT.split(text) if line.strip() != ""]
    if len(lines) < 2:
        return [], []

    headers = [normalize_header(h) for h in parse_csv_line(lines[0])]
    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        values = parse_csv_line(line)
        # Missing trailing fields read as empty, extra fields are ignored
        rows.append({h: (values[j] if j < len(values) else "") for j, h in enumerate(headers)})

    return headers, rows
