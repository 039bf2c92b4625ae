from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

KIND_PARSE = "parse"
KIND_VALIDATION = "validation"
KIND_LAYOUT = "layout"


@dataclass(frozen=True)
class ErrorReport:
    kind: str
    message: str
    suggestion: Optional[str] = None

    def to_dict(self) -> dict:
        payload = {"kind": self.kind, "message": self.message}
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        return payload


class FlowDiagramError(Exception):
    kind = "unknown"

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def to_report(self) -> ErrorReport:
        return ErrorReport(kind=self.kind, message=self.message, suggestion=self.suggestion)


class ParseError(FlowDiagramError):
    """Input text is malformed or incomplete."""

    kind = KIND_PARSE


class ValidationError(FlowDiagramError):
    """Input parsed but does not describe a valid flow graph."""

    kind = KIND_VALIDATION


class LayoutError(FlowDiagramError):
    """Computed geometry broke an internal invariant; the request is aborted."""

    kind = KIND_LAYOUT
