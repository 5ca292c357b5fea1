"""Structural parsers that turn response text into artifact payloads.

Each parser is a pure function scoped to the subset of markdown/diff syntax
handlers actually emit. None of them aims at full CommonMark, GFM or unified
diff compliance; text they do not recognise simply yields no payload.
"""

from __future__ import annotations

import re

from ideflow_core.artifacts import (
    ADDED,
    CONTEXT,
    INFO,
    REMOVED,
    CodeData,
    DiffData,
    DiffLine,
    DiffStats,
    Section,
    TableData,
)

# ```lang\n ... ``` with an optional language tag (python, c++, objective-c, c#).
_FENCE_RE = re.compile(r"```([\w+#.-]+)?[ \t]*\n(.*?)```", re.DOTALL)

# First line that looks like the start of real code when no fences are present.
_CODE_START_RE = re.compile(r"^(?:def |class |function |const |let |var |import |#include |package )", re.MULTILINE)

_FILENAME_PATTERNS = [
    re.compile(r"\b(?:file|filename|path):\s*['\"]?([^\s'\"]+)", re.IGNORECASE),
    re.compile(r"^#\s*([\w./-]+\.\w+)\s*$", re.MULTILINE),
    re.compile(r"^//\s*([\w./-]+\.\w+)\s*$", re.MULTILINE),
]

# Ordered: the first matching language wins.
_LANGUAGE_PATTERNS = [
    ("python", re.compile(r"^def |^class .+:|^import |^from \S+ import ", re.MULTILINE)),
    ("typescript", re.compile(r"^interface |^type \w+ =|^export interface |: \w+[\[\]<>]* =", re.MULTILINE)),
    ("javascript", re.compile(r"^function |^const |^let |^var |=>", re.MULTILINE)),
    ("java", re.compile(r"^public class |^private |^void ", re.MULTILINE)),
    ("cpp", re.compile(r"^#include |^int main\(", re.MULTILINE)),
    ("go", re.compile(r"^package |^func ", re.MULTILINE)),
    ("rust", re.compile(r"^fn |^impl |^struct |^enum |^use \w+::", re.MULTILINE)),
]

_HEADING_RE = re.compile(r"^##[ \t]+", re.MULTILINE)

_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,\d+)? \+(\d+)(?:,\d+)? @@")

# |---|:---:|--| with optional outer pipes; at least one dash per cell.
_SEPARATOR_RE = re.compile(r"^\s*\|?\s*:?-+:?\s*(?:\|\s*:?-+:?\s*)*\|?\s*$")


# ---------------------------------------------------------------------------
# Code
# ---------------------------------------------------------------------------


def detect_filename(code: str) -> str | None:
    """Guess a filename from a `file:` marker or a first-line comment."""
    for pattern in _FILENAME_PATTERNS:
        match = pattern.search(code)
        if match:
            return match.group(1)
    return None


def detect_language(code: str) -> str:
    for language, pattern in _LANGUAGE_PATTERNS:
        if pattern.search(code):
            return language
    return "plaintext"


def parse_code_blocks(text: str) -> list[CodeData]:
    """Return one CodeData per fenced block, in source order."""
    blocks = []
    for match in _FENCE_RE.finditer(text):
        code = match.group(2).strip()
        blocks.append(CodeData(code=code, language=match.group(1) or "plaintext", filename=detect_filename(code)))
    return blocks


def strip_leading_prose(text: str) -> str:
    """Drop everything before the first line that starts like code.

    Heuristic: a prose line that happens to begin with "import " or
    "class " is taken for code, and prose after the code is kept.
    """
    match = _CODE_START_RE.search(text)
    if match:
        text = text[match.start() :]
    return text.strip()


def parse_unfenced_code(text: str) -> CodeData | None:
    code = strip_leading_prose(text)
    if not code:
        return None
    return CodeData(code=code, language=detect_language(code))


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def parse_document_sections(text: str) -> list[Section]:
    """Split on `## ` headings. Text without headings becomes one Overview section."""
    parts = _HEADING_RE.split(text)
    sections: list[Section] = []

    preamble = parts[0].strip()
    if preamble and len(parts) > 1:
        sections.append(Section(title="Overview", content=preamble))

    for part in parts[1:]:
        title, _, body = part.partition("\n")
        title = title.strip()
        body = body.strip()
        if title and body:
            sections.append(Section(title=title, content=body))

    if not sections:
        sections.append(Section(title="Overview", content=text.strip()))
    return sections


# ---------------------------------------------------------------------------
# Diffs
# ---------------------------------------------------------------------------


def parse_diff(text: str) -> DiffData | None:
    """Classify every line of a unified-diff-like text.

    `+`/`-` lines (but not the `+++`/`---` file headers) are additions and
    removals, `@@` lines are hunk markers, everything else is context.
    Line numbers are tracked from hunk headers when present: new-file
    numbers for added and context lines, old-file numbers for removed ones.
    """
    lines = text.splitlines()
    if not lines:
        return None

    diff_lines: list[DiffLine] = []
    additions = deletions = 0
    old_line: int | None = None
    new_line: int | None = None

    for line in lines:
        if line.startswith("+") and not line.startswith("+++"):
            diff_lines.append(DiffLine(kind=ADDED, content=line[1:], line_number=new_line))
            additions += 1
            if new_line is not None:
                new_line += 1
        elif line.startswith("-") and not line.startswith("---"):
            diff_lines.append(DiffLine(kind=REMOVED, content=line[1:], line_number=old_line))
            deletions += 1
            if old_line is not None:
                old_line += 1
        elif line.startswith("@@"):
            diff_lines.append(DiffLine(kind=INFO, content=line))
            hunk = _HUNK_RE.match(line)
            if hunk:
                old_line, new_line = int(hunk.group(1)), int(hunk.group(2))
            else:
                old_line = new_line = None
        else:
            diff_lines.append(DiffLine(kind=CONTEXT, content=line, line_number=new_line))
            if new_line is not None:
                new_line += 1
            if old_line is not None:
                old_line += 1

    return DiffData(
        title="Code Review",
        filename="review.diff",
        lines=diff_lines,
        stats=DiffStats(
            additions=additions,
            deletions=deletions,
            logic_changes=(additions + deletions) // 2,
            security_issues=0,
        ),
    )


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def split_cells(line: str) -> list[str]:
    row = line.strip()
    if row.startswith("|"):
        row = row[1:]
    if row.endswith("|"):
        row = row[:-1]
    return [cell.strip() for cell in row.split("|")]


def parse_table(text: str) -> TableData | None:
    """Parse the first GFM pipe table: header row, `|---|---|` separator, body rows.

    Body rows run until the first line without a pipe. Cells are matched to
    columns by position; missing cells become empty strings. A blank header
    cell is named `Column N` after its 1-based position.
    """
    lines = text.splitlines()
    for i in range(len(lines) - 1):
        header, separator = lines[i], lines[i + 1]
        if "|" not in header or not _SEPARATOR_RE.match(separator) or "|" not in separator:
            continue
        names = split_cells(header)
        if not any(names):
            continue
        columns = [name or f"Column {j}" for j, name in enumerate(names, start=1)]

        rows: list[dict[str, str]] = []
        for line in lines[i + 2 :]:
            if "|" not in line or not line.strip():
                break
            cells = split_cells(line)
            rows.append({col: cells[j] if j < len(cells) else "" for j, col in enumerate(columns)})

        if not rows:
            return None
        return TableData(title="Generated Data", columns=columns, rows=rows)
    return None
