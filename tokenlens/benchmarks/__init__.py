from tokenlens.benchmarks.latency_tracker import LatencyRecord, LatencyTracker
from tokenlens.benchmarks.payload_size import PayloadComparison, PayloadSample

__all__ = ["LatencyRecord", "LatencyTracker", "PayloadComparison", "PayloadSample"]
