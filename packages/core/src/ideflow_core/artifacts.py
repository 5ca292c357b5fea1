"""Typed artifacts produced from a handler response."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Union

CODE = "code"
DOCUMENT = "document"
TABLE = "table"
DIFF = "diff"

ARTIFACT_TYPES = (CODE, DOCUMENT, TABLE, DIFF)

# Diff line kinds.
ADDED = "added"
REMOVED = "removed"
INFO = "info"
CONTEXT = "context"


@dataclass(frozen=True)
class CodeData:
    code: str
    language: str = "plaintext"
    filename: str | None = None


@dataclass(frozen=True)
class Section:
    title: str
    content: str


@dataclass(frozen=True)
class DocumentData:
    title: str
    sections: list[Section] = field(default_factory=list)


@dataclass(frozen=True)
class TableData:
    title: str
    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)


@dataclass(frozen=True)
class DiffLine:
    kind: str  # "added" | "removed" | "info" | "context"
    content: str
    line_number: int | None = None


@dataclass(frozen=True)
class DiffStats:
    additions: int = 0
    deletions: int = 0
    logic_changes: int = 0
    security_issues: int = 0


@dataclass(frozen=True)
class DiffData:
    title: str
    filename: str
    lines: list[DiffLine] = field(default_factory=list)
    stats: DiffStats = field(default_factory=DiffStats)


ArtifactData = Union[CodeData, DocumentData, TableData, DiffData]

_TYPE_FOR_DATA: dict[type, str] = {
    CodeData: CODE,
    DocumentData: DOCUMENT,
    TableData: TABLE,
    DiffData: DIFF,
}


@dataclass(frozen=True)
class Artifact:
    """One typed unit of output. Immutable once created."""

    type: str
    data: ArtifactData
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @classmethod
    def of(cls, data: ArtifactData) -> Artifact:
        return cls(type=_TYPE_FOR_DATA[type(data)], data=data)

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type, "data": asdict(self.data), "created_at": self.created_at}

    @property
    def text(self) -> str:
        """Plain-text body of the artifact, as copied or downloaded by a user."""
        data = self.data
        if isinstance(data, CodeData):
            return data.code
        if isinstance(data, DocumentData):
            return "\n\n".join(f"## {s.title}\n\n{s.content}" for s in data.sections)
        if isinstance(data, TableData):
            header = "| " + " | ".join(data.columns) + " |"
            separator = "|" + "|".join("---" for _ in data.columns) + "|"
            body = ["| " + " | ".join(row.get(c, "") for c in data.columns) + " |" for row in data.rows]
            return "\n".join([header, separator, *body])
        prefix = {ADDED: "+", REMOVED: "-"}
        return "\n".join(prefix.get(line.kind, "") + line.content for line in data.lines)
