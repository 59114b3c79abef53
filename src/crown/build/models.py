"""Result objects produced by one build attempt."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable


@dataclass(frozen=True, slots=True)
class BuildAttempt:
    """Immutable outcome of one pipeline execution, successful or not."""

    started_at: datetime
    succeeded: bool
    duration_ms: float
    document_count: int
    html_path: Path
    pdf_path: Path
    warnings: tuple[str, ...] = field(default_factory=tuple)
    errors: tuple[str, ...] = field(default_factory=tuple)
    failure_kind: str | None = None

    @classmethod
    def failed(
        cls,
        *,
        started_at: datetime,
        duration_ms: float,
        html_path: Path,
        pdf_path: Path,
        errors: Iterable[str],
        failure_kind: str,
        warnings: Iterable[str] = (),
        document_count: int = 0,
    ) -> "BuildAttempt":
        return cls(
            started_at=started_at,
            succeeded=False,
            duration_ms=duration_ms,
            document_count=document_count,
            html_path=html_path,
            pdf_path=pdf_path,
            warnings=tuple(warnings),
            errors=tuple(errors),
            failure_kind=failure_kind,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "succeeded": self.succeeded,
            "duration_ms": self.duration_ms,
            "document_count": self.document_count,
            "html_path": str(self.html_path),
            "pdf_path": str(self.pdf_path),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "failure_kind": self.failure_kind,
        }
