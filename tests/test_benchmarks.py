"""Tests for the latency tracker and the payload size comparison."""

import pytest

from tokenlens.benchmarks import LatencyTracker, PayloadComparison
from tokenlens.core.types import ComputedStyles, Rect, RenderedNode


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_list(items: int) -> RenderedNode:
    return RenderedNode(
        agent_id="list",
        tag="ul",
        selector="ul.menu",
        classes=["menu"],
        rect=Rect(width=320, height=40 * items),
        children=[
            RenderedNode(
                agent_id=f"item-{i}",
                tag="li",
                selector=f"ul.menu > li:nth-child({i + 1})",
                classes=["menu-item"],
                text_content=f"Item {i}",
                depth=1,
                rect=Rect(top=40 * i, width=320, height=40),
                styles=ComputedStyles(font_size=14.0, color="rgb(17, 24, 39)"),
            )
            for i in range(items)
        ],
    )


# ---------------------------------------------------------------------------
# LatencyTracker
# ---------------------------------------------------------------------------

class TestLatencyTracker:
    def test_measure_records_phase(self):
        tracker = LatencyTracker()
        with tracker.measure(1, "parse"):
            pass
        assert len(tracker.records) == 1
        assert tracker.records[0].phase == "parse"
        assert tracker.records[0].ms >= 0

    def test_measure_records_on_error(self):
        tracker = LatencyTracker()
        with pytest.raises(RuntimeError):
            with tracker.measure(1, "diff"):
                raise RuntimeError("boom")
        assert tracker.phase_ms("diff")

    def test_run_ms_sums_matching_records(self):
        tracker = LatencyTracker()
        tracker.record(1, "diff", 2.0)
        tracker.record(1, "diff", 3.0)
        tracker.record(2, "diff", 10.0)
        assert tracker.run_ms(1, "diff") == 5.0
        assert tracker.run_ms(3) == 0

    def test_summary(self):
        tracker = LatencyTracker()
        for run, ms in enumerate([1.0, 2.0, 3.0, 10.0], start=1):
            tracker.record(run, "total", ms)
        stats = tracker.summary()["total"]
        assert stats["count"] == 4
        assert stats["avg_ms"] == 4.0
        assert stats["max_ms"] == 10.0
        assert stats["p95_ms"] == 10.0

    def test_reset(self):
        tracker = LatencyTracker()
        tracker.record(1, "total", 1.0)
        tracker.reset()
        assert tracker.summary() == {}

    def test_oldest_records_dropped_past_cap(self):
        tracker = LatencyTracker(max_records=3)
        for run in range(1, 6):
            tracker.record(run, "total", float(run))
        assert [r.run for r in tracker.records] == [3, 4, 5]
        assert tracker.summary()["total"]["count"] == 3

    def test_default_cap_bounds_long_sessions(self):
        tracker = LatencyTracker()
        for run in range(tracker.max_records + 50):
            tracker.record(run, "total", 1.0)
        assert len(tracker.records) == tracker.max_records
        assert tracker.records[0].run == 50

    def test_uncapped(self):
        tracker = LatencyTracker(max_records=None)
        for run in range(20):
            tracker.record(run, "total", 1.0)
        assert len(tracker.records) == 20


# ---------------------------------------------------------------------------
# PayloadComparison
# ---------------------------------------------------------------------------

class TestPayloadComparison:
    def test_binary_is_smaller_than_json(self):
        comparison = PayloadComparison()
        sample = comparison.measure("menu", make_list(30))
        assert sample.node_count == 31
        assert sample.binary_bytes < sample.json_bytes
        assert 0 < sample.ratio < 1
        assert sample.reduction_pct > 0

    def test_report_totals(self):
        comparison = PayloadComparison()
        small = comparison.measure("small", make_list(2))
        large = comparison.measure("large", make_list(20))
        report = comparison.report()
        assert [s["label"] for s in report["samples"]] == ["small", "large"]
        assert report["total_json_bytes"] == small.json_bytes + large.json_bytes
        assert report["total_binary_bytes"] == small.binary_bytes + large.binary_bytes
        assert report["overall_reduction_pct"] > 0

    def test_empty_report(self):
        assert PayloadComparison().report() == {}
