"""
TokenLens benchmark — reconciliation latency and wire size on synthetic pages.

Run:
    python benchmarks/run_benchmark.py

For each synthetic page the script builds a rendered tree and matching design
markup (with a known fraction of drifted properties), then records:
  • Latency      — per-phase wall-clock ms for Reconciler.reconcile()
  • Deltas       — number of property mismatches found
  • Payload size — JSON vs. binary protocol bytes for the rendered tree

Results are printed as a formatted table and saved to benchmarks/results.json.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from tokenlens import (
    ComputedStyles,
    DesignTokenDictionary,
    FontDefinition,
    Framework,
    Rect,
    ReconciliationInput,
    Reconciler,
    RenderedNode,
)
from tokenlens.benchmarks.payload_size import PayloadComparison
from tokenlens.core.types import BoxEdges

_RESULTS_PATH = Path(__file__).parent / "results.json"
_RUNS_PER_PAGE = 5

_TOKENS = DesignTokenDictionary(
    colors={"brand": "#2563eb", "ink": "#111827", "surface": "#ffffff"},
    spacing={"sm": "8px", "md": "16px", "lg": "24px"},
    typography={"body": FontDefinition(font_size=16), "heading": FontDefinition(font_size=24, font_weight=700)},
    border_radius={"card": "8px"},
)


# ─────────────────────────────────────────────────────────────────────────────
# Data model
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class PageResult:
    name: str
    nodes: int
    pairs: int
    deltas: int
    avg_ms: float
    p95_ms: float
    json_bytes: int
    binary_bytes: int
    phases: dict[str, float] = field(default_factory=dict)

    @property
    def reduction_pct(self) -> float:
        if self.json_bytes == 0:
            return 0.0
        return (1 - self.binary_bytes / self.json_bytes) * 100


# ─────────────────────────────────────────────────────────────────────────────
# Synthetic pages
# ─────────────────────────────────────────────────────────────────────────────


def _card(index: int, drift: bool) -> tuple[RenderedNode, str]:
    """One card: a heading and a paragraph inside a padded container."""
    padding = 20.0 if drift else 16.0
    heading = RenderedNode(
        agent_id=f"c{index}-h",
        tag="h2",
        selector=f"#card-{index} > h2",
        text_content=f"Card {index}",
        rect=Rect(width=300, height=32),
        styles=ComputedStyles(font_size=24.0, font_weight="700", color="rgb(17, 24, 39)"),
    )
    body = RenderedNode(
        agent_id=f"c{index}-p",
        tag="p",
        selector=f"#card-{index} > p",
        text_content="Lorem ipsum dolor sit amet",
        rect=Rect(width=300, height=48),
        styles=ComputedStyles(color="rgb(17, 24, 39)"),
    )
    card = RenderedNode(
        agent_id=f"c{index}",
        tag="div",
        selector=f"#card-{index}",
        html_id=f"card-{index}",
        classes=["card"],
        rect=Rect(width=332, height=112),
        children=[heading, body],
        styles=ComputedStyles(
            padding=BoxEdges(padding, padding, padding, padding),
            background_color="rgb(255, 255, 255)",
            border_radius="8px",
        ),
    )
    markup = (
        f'<div id="card-{index}" class="card" '
        f'style="padding: var(--md); background-color: var(--surface); border-radius: var(--card)">'
        f'<h2 style="font-size: 24px; font-weight: 700; color: #111827">Card {index}</h2>'
        f'<p style="color: #111827">Lorem ipsum dolor sit amet</p>'
        f"</div>"
    )
    return card, markup


def build_page(cards: int, drift_every: int) -> tuple[RenderedNode, str]:
    rendered_cards: list[RenderedNode] = []
    markup_cards: list[str] = []
    for i in range(cards):
        card, markup = _card(i, drift=drift_every > 0 and i % drift_every == 0)
        rendered_cards.append(card)
        markup_cards.append(markup)
    root = RenderedNode(
        agent_id="root",
        tag="main",
        selector="main",
        rect=Rect(width=1280, height=112 * cards),
        children=rendered_cards,
        styles=ComputedStyles(display="flex", flex_direction="column"),
    )
    return root, f'<main style="display: flex; flex-direction: column">{"".join(markup_cards)}</main>'


_PAGES: list[tuple[str, int, int]] = [
    ("Small — 5 cards", 5, 2),
    ("Medium — 50 cards", 50, 5),
    ("Large — 250 cards", 250, 10),
]


# ─────────────────────────────────────────────────────────────────────────────
# Runner
# ─────────────────────────────────────────────────────────────────────────────


def run_page(name: str, cards: int, drift_every: int, payloads: PayloadComparison) -> PageResult:
    root, markup = build_page(cards, drift_every)
    reconciler = Reconciler()
    request = ReconciliationInput(
        rendered=root,
        expected_markup=markup,
        tokens=_TOKENS,
        framework=Framework.HTML_CSS,
    )
    report = None
    for _ in range(_RUNS_PER_PAGE):
        report = reconciler.reconcile(request)

    summary = reconciler.latency.summary()
    sample = payloads.measure(name, root)
    return PageResult(
        name=name,
        nodes=sample.node_count,
        pairs=report.summary.total_pairs,
        deltas=report.summary.total_deltas,
        avg_ms=summary["total"]["avg_ms"],
        p95_ms=summary["total"]["p95_ms"],
        json_bytes=sample.json_bytes,
        binary_bytes=sample.binary_bytes,
        phases={phase: stats["avg_ms"] for phase, stats in summary.items() if phase != "total"},
    )


def print_report(results: list[PageResult], ran_at: str) -> None:
    bar = "═" * 96
    print(f"\n{bar}")
    print("  TOKENLENS BENCHMARK REPORT")
    print(f"  {ran_at}")
    print(f"{bar}\n")
    print(f"  {'Page':<22} {'Nodes':>6} {'Pairs':>6} {'Deltas':>7} {'Avg ms':>9} {'p95 ms':>9} "
          f"{'JSON B':>9} {'Binary B':>9} {'Saved':>7}")
    print(f"  {'─' * 92}")
    for r in results:
        print(f"  {r.name:<22} {r.nodes:>6} {r.pairs:>6} {r.deltas:>7} {r.avg_ms:>9.2f} {r.p95_ms:>9.2f} "
              f"{r.json_bytes:>9} {r.binary_bytes:>9} {r.reduction_pct:>6.1f}%")
    print(f"\n{bar}\n")


def _to_json(results: list[PageResult], ran_at: str, payloads: PayloadComparison) -> dict:
    return {
        "ran_at": ran_at,
        "runs_per_page": _RUNS_PER_PAGE,
        "pages": [
            {
                "name": r.name,
                "nodes": r.nodes,
                "pairs": r.pairs,
                "deltas": r.deltas,
                "avg_ms": round(r.avg_ms, 3),
                "p95_ms": round(r.p95_ms, 3),
                "phases_avg_ms": r.phases,
            }
            for r in results
        ],
        "payload": payloads.report(),
    }


def main() -> None:
    logging.basicConfig(level=logging.WARNING)
    ran_at = time.strftime("%Y-%m-%d %H:%M:%S")
    payloads = PayloadComparison()
    results = []
    for name, cards, drift_every in _PAGES:
        print(f"\n  Running: {name} …")
        t0 = time.perf_counter()
        results.append(run_page(name, cards, drift_every, payloads))
        print(f"  Done    ({(time.perf_counter() - t0) * 1000:.0f} ms total)")

    print_report(results, ran_at)
    _RESULTS_PATH.write_text(json.dumps(_to_json(results, ran_at, payloads), indent=2))
    print(f"  Results saved → {_RESULTS_PATH}\n")


if __name__ == "__main__":
    main()
