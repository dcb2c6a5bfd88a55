"""Outcome of one feed run."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Literal


@dataclass
class SourceOutcome:
    source_id: str
    bucket: str
    status: Literal["ok", "failed"] = "ok"
    extracted: int = 0
    dropped_extraction: int = 0
    dropped_normalization: int = 0
    error_kind: str | None = None  # fetch, structure, extraction, timeout, unexpected
    error: str | None = None
    dropped_reasons: list[str] = field(default_factory=list)  # One line per dropped screening


@dataclass
class RunReport:
    started_at: datetime
    sources: list[SourceOutcome] = field(default_factory=list)
    buckets_written: list[str] = field(default_factory=list)

    @property
    def failed_sources(self) -> list[str]:
        return [s.source_id for s in self.sources if s.status == "failed"]

    @property
    def ok(self) -> bool:
        return not self.failed_sources

    def outcome(self, source_id: str) -> SourceOutcome | None:
        for source in self.sources:
            if source.source_id == source_id:
                return source
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "ok": self.ok,
            "failed_sources": self.failed_sources,
            "buckets_written": list(self.buckets_written),
            "sources": [asdict(s) for s in self.sources],
        }
