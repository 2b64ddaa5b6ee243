"""
Forecasting & Insight Data Models

Typed records returned by the forecasting and insight engines. Every record is
computed fresh per call and owned by the caller; `to_dict()` gives a plain
dictionary for JSON serialization or DataFrame construction.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import List, Dict, Optional, Any, Sequence

from insight_rules import IMPACT_ORDER


class InsufficientDataError(ValueError):
    """Raised when a series is shorter than the hard minimum for an operation."""

    def __init__(self, operation: str, required: int, actual: int):
        self.operation = operation
        self.required = required
        self.actual = actual
        super().__init__(
            f"At least {required} data points required for {operation} (got {actual})"
        )


class TrendDirection(Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class BreakpointType(Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class Severity(Enum):
    """Anomaly severity tiers."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InsightType(Enum):
    WARNING = "WARNING"
    OPPORTUNITY = "OPPORTUNITY"
    RECOMMENDATION = "RECOMMENDATION"
    INSIGHT = "INSIGHT"


class ImpactLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Sort rank: high sorts first."""
        return IMPACT_ORDER[self.value]


def _plain(value):
    """Convert enums, timestamps and nested records into plain values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


class _Record:
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON/display."""
        return {f.name: _plain(getattr(self, f.name)) for f in fields(self)}


# ===== FORECAST RECORDS =====

@dataclass
class ForecastPrediction(_Record):
    period: int  # Index continuing the history (n, n+1, ...)
    value: float
    lower_bound: float
    upper_bound: float
    label: Optional[Any] = None  # Calendar date or caller label for display


@dataclass
class ForecastAccuracy(_Record):
    """Backtest error metrics. All zeros means 'not enough data'."""
    mape: float = 0.0  # Mean Absolute Percentage Error, capped at 100
    rmse: float = 0.0  # Root Mean Square Error
    mae: float = 0.0   # Mean Absolute Error

    @property
    def is_empty(self) -> bool:
        return self.mape == 0 and self.rmse == 0 and self.mae == 0


@dataclass
class Seasonality(_Record):
    detected: bool = False
    period: Optional[int] = None
    amplitude: Optional[float] = None  # Autocorrelation at the detected lag


@dataclass
class Breakpoint(_Record):
    period: int  # First index of the shifted segment
    type: BreakpointType
    magnitude: float
    label: Optional[Any] = None


@dataclass
class TrendAnalysis(_Record):
    direction: TrendDirection = TrendDirection.STABLE
    strength: float = 0.0  # |correlation| between actuals and fitted line, 0-1
    change_rate: float = 0.0  # Percent per period
    seasonality: Seasonality = field(default_factory=Seasonality)
    breakpoints: List[Breakpoint] = field(default_factory=list)


@dataclass
class AnomalyRecord(_Record):
    period: int
    actual_value: float
    expected_value: float
    deviation: float
    z_score: float
    severity: Severity
    explanation: str
    label: Optional[Any] = None

    @property
    def is_spike(self) -> bool:
        return self.deviation > 0


@dataclass
class ForecastFactor(_Record):
    name: str
    impact: float  # 0-1
    description: str


@dataclass
class ForecastResult(_Record):
    """Full ensemble forecast bundle."""
    predictions: List[ForecastPrediction]
    accuracy: ForecastAccuracy
    trend: TrendAnalysis
    anomalies: List[AnomalyRecord]
    factors: List[ForecastFactor]
    method: str
    generated_at: datetime
    confidence: float = 0.95


# ===== INSIGHT RECORDS =====

@dataclass
class DataPoint(_Record):
    label: str
    value: float
    format: str  # 'number', 'currency', 'percent'


@dataclass
class InsightRecommendation(_Record):
    action: str
    priority: str  # 'high', 'medium', 'low'


@dataclass
class AffectedEntity(_Record):
    type: str  # 'inventory', 'brand', 'category', 'location', 'sku'
    id: str
    name: str


@dataclass
class Insight(_Record):
    id: str
    type: InsightType
    category: str
    title: str
    summary: str
    description: str
    impact: ImpactLevel
    confidence: float
    data_points: List[DataPoint] = field(default_factory=list)
    recommendations: List[InsightRecommendation] = field(default_factory=list)
    affected_entities: List[AffectedEntity] = field(default_factory=list)
    created_at: Optional[datetime] = None
    rule_id: Optional[str] = None


@dataclass
class RiskIndicator(_Record):
    category: str
    risk_level: str
    factors: List[Dict[str, Any]]  # name, severity, trend
    mitigation_actions: List[str]


@dataclass
class OpportunityIndicator(_Record):
    category: str
    opportunity_level: str
    estimated_value: float
    confidence: float
    factors: List[Dict[str, Any]]  # name, contribution
    suggested_actions: List[str]


@dataclass
class InsightContext:
    """
    Business metrics supplied by the caller for insight generation.

    Ratios (weeks_of_supply, stock_out_rate, budget_utilization) may be passed
    directly or derived from the raw counts. Fields left as None are treated as
    unavailable and the rules depending on them are skipped.
    """
    # Inventory
    current_inventory: Optional[float] = None
    average_weekly_sales: Optional[float] = None
    weeks_of_supply: Optional[float] = None
    stock_out_count: Optional[float] = None
    total_skus: Optional[float] = None
    stock_out_rate: Optional[float] = None
    slow_moving_percentage: Optional[float] = None

    # Performance
    revenue: Optional[float] = None
    previous_revenue: Optional[float] = None
    gross_margin: Optional[float] = None
    target_margin: float = 50.0
    sell_through: Optional[float] = None
    target_sell_through: float = 70.0

    # Weeks-of-supply band
    min_weeks_of_supply: float = 4.0
    max_weeks_of_supply: float = 12.0

    # Budget
    budget_total: Optional[float] = None
    budget_spent: Optional[float] = None
    budget_utilization: Optional[float] = None

    # History for trend / anomaly insights
    historical_data: Sequence[float] = field(default_factory=list)
    period_labels: Optional[Sequence[Any]] = None
    reference_date: Optional[Any] = None
    freq: Optional[Any] = None
    anomaly_threshold: Optional[float] = None

    affected_entities: List[AffectedEntity] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InsightContext":
        """Build a context from a dictionary, ignoring keys that are not context fields."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        entities = kwargs.get("affected_entities")
        if entities:
            kwargs["affected_entities"] = [
                e if isinstance(e, AffectedEntity) else AffectedEntity(**e) for e in entities
            ]
        return cls(**kwargs)
