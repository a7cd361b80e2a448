"""Payload size comparison: JSON vs. binary transport of rendered trees."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from tokenlens.core.types import RenderedNode
from tokenlens.protocol.codec import serialize


@dataclass(frozen=True)
class PayloadSample:
    label: str
    node_count: int
    json_bytes: int
    binary_bytes: int

    @property
    def ratio(self) -> float:
        """Binary size as a fraction of JSON size (lower is better)."""
        return self.binary_bytes / self.json_bytes if self.json_bytes else 0.0

    @property
    def reduction_pct(self) -> float:
        return round((1 - self.ratio) * 100, 1)


@dataclass
class PayloadComparison:
    """
    Records the encoded size of trees in both transports.

    Usage:
        comparison = PayloadComparison()
        comparison.measure("landing page", tree)
        print(comparison.report())
    """

    samples: list[PayloadSample] = field(default_factory=list)

    def measure(self, label: str, root: RenderedNode) -> PayloadSample:
        json_size = len(json.dumps(root.to_dict(), separators=(",", ":")).encode("utf-8"))
        sample = PayloadSample(
            label=label,
            node_count=len(root.walk()),
            json_bytes=json_size,
            binary_bytes=len(serialize(root)),
        )
        self.samples.append(sample)
        return sample

    def report(self) -> dict:
        if not self.samples:
            return {}
        total_json = sum(s.json_bytes for s in self.samples)
        total_binary = sum(s.binary_bytes for s in self.samples)
        return {
            "samples": [
                {
                    "label": s.label,
                    "nodes": s.node_count,
                    "json_bytes": s.json_bytes,
                    "binary_bytes": s.binary_bytes,
                    "reduction_pct": s.reduction_pct,
                }
                for s in self.samples
            ],
            "total_json_bytes": total_json,
            "total_binary_bytes": total_binary,
            "overall_reduction_pct": round((1 - total_binary / total_json) * 100, 1) if total_json else 0.0,
        }
