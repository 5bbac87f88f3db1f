from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Literal

SpanRole = Literal["opening", "closing"]
Status = Literal["success", "error"]


@dataclass(frozen=True)
class Document:
    front_matter: Dict[str, str]   # field -> raw value, file order
    raw_front_matter: str          # text between the delimiters, untouched
    opening_delimiter: str         # e.g. "---\n"
    closing_delimiter: str         # e.g. "\n---\n"
    body: str

    @property
    def title(self) -> str:
        return unquote(self.front_matter.get("title", ""))

    @property
    def platform(self) -> str:
        return unquote(self.front_matter.get("platformkey", ""))


@dataclass(frozen=True)
class Span:
    start: int   # offset into body, inclusive
    end: int     # offset into body, exclusive
    text: str
    role: SpanRole


@dataclass
class RewriteRequest:
    span: Span
    title: str
    platform: str

    @property
    def role(self) -> SpanRole:
        return self.span.role


@dataclass
class RewriteResult:
    request: RewriteRequest
    rewritten: str


@dataclass
class ValidationReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


@dataclass
class ProcessingResult:
    file_path: str
    file_name: str
    status: Status
    changes: List[str] = field(default_factory=list)
    title: Optional[str] = None
    platform: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        # keys are read by downstream tooling (PR description generation)
        d: Dict[str, Any] = {
            "filePath": self.file_path,
            "fileName": self.file_name,
            "status": self.status,
        }
        if self.status == "success":
            d["title"] = self.title
            d["platform"] = self.platform
            d["changes"] = list(self.changes)
            d["warnings"] = list(self.warnings)
        else:
            if self.title is not None:
                d["title"] = self.title
            if self.platform is not None:
                d["platform"] = self.platform
            d["error"] = self.error
        return d


@dataclass
class RunReport:
    timestamp: str
    files: List[ProcessingResult] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return sum(1 for f in self.files if f.status == "success")

    @property
    def failed(self) -> int:
        return sum(1 for f in self.files if f.status == "error")

    def by_platform(self) -> Dict[str, Dict[str, int]]:
        counts: Dict[str, Dict[str, int]] = {}
        for f in self.files:
            key = f.platform or "unknown"
            bucket = counts.setdefault(key, {"success": 0, "error": 0})
            bucket[f.status] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "summary": {
                "total": len(self.files),
                "successful": self.successful,
                "failed": self.failed,
                "byPlatform": self.by_platform(),
            },
            "files": [f.to_dict() for f in self.files],
        }


def unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value
