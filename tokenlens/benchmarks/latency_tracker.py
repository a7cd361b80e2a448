"""Latency tracker — wall-clock time per reconciliation phase."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generator

PHASES: tuple[str, ...] = ("decode", "parse", "index", "pairing", "diff", "format", "total")


@dataclass(frozen=True)
class LatencyRecord:
    run: int
    phase: str  # one of PHASES
    ms: float


@dataclass
class LatencyTracker:
    """Collects per-phase timings across reconciliation runs.

    Only the newest *max_records* timings are kept; older ones are dropped
    as new ones arrive. Pass None to keep everything.
    """

    records: list[LatencyRecord] = field(default_factory=list)
    max_records: int | None = 10_000

    @contextmanager
    def measure(self, run: int, phase: str) -> Generator[None, None, None]:
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.record(run, phase, (time.perf_counter() - t0) * 1000)

    def record(self, run: int, phase: str, ms: float) -> None:
        self.records.append(LatencyRecord(run=run, phase=phase, ms=ms))
        if self.max_records is not None and len(self.records) > self.max_records:
            del self.records[:len(self.records) - self.max_records]

    def run_ms(self, run: int, phase: str = "total") -> float:
        return sum(r.ms for r in self.records if r.run == run and r.phase == phase)

    def phase_ms(self, phase: str) -> list[float]:
        return [r.ms for r in self.records if r.phase == phase]

    def summary(self) -> dict[str, dict[str, float]]:
        result: dict[str, dict[str, float]] = {}
        for phase in sorted({r.phase for r in self.records}):
            values = sorted(self.phase_ms(phase))
            p95 = values[min(len(values) - 1, int(round(0.95 * (len(values) - 1))))]
            result[phase] = {
                "avg_ms": round(sum(values) / len(values), 3),
                "p95_ms": round(p95, 3),
                "max_ms": round(values[-1], 3),
                "count": len(values),
            }
        return result

    def reset(self) -> None:
        self.records.clear()
