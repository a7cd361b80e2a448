from tokenlens.core.config import ConfigError, ReconcilerConfig, load_config
from tokenlens.core.reconciler import ReconciliationInput, Reconciler, reconcile
from tokenlens.core.types import (
    BoxEdges,
    ComputedStyles,
    ContextMetrics,
    DesignTokenDictionary,
    ExpectedNode,
    FontDefinition,
    Framework,
    MatchSignal,
    MissedToken,
    NodePair,
    PropertyDelta,
    ReconciliationReport,
    ReconciliationSummary,
    Rect,
    RenderedNode,
    Severity,
    TokenCategory,
)

__all__ = [
    "Reconciler",
    "ReconciliationInput",
    "reconcile",
    # Configuration
    "ConfigError",
    "ReconcilerConfig",
    "load_config",
    # Data model
    "BoxEdges",
    "ComputedStyles",
    "ContextMetrics",
    "DesignTokenDictionary",
    "ExpectedNode",
    "FontDefinition",
    "Framework",
    "MatchSignal",
    "MissedToken",
    "NodePair",
    "PropertyDelta",
    "ReconciliationReport",
    "ReconciliationSummary",
    "Rect",
    "RenderedNode",
    "Severity",
    "TokenCategory",
]
