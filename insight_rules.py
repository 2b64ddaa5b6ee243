"""
Forecasting & Insight Rules Configuration
Centralized definitions for forecasting constants, statistical thresholds and the
insight rule table. Rules can be tuned in one place without modifying engine code.
"""

import copy


# ===== FORECASTING RULES =====

FORECAST_RULES = {
    "minimum_points": 3,  # Ensemble forecast needs at least 3 observations
    "default_periods": 12,
    "default_confidence": 0.95,

    "ensemble_weights": {
        "linear": 0.3,
        "moving_average": 0.3,
        "exponential_smoothing": 0.4
    },

    "moving_average": {
        "window": 3,
        "decay_per_step": 0.02  # 2% regression toward the mean per forecast step
    },

    "exponential_smoothing": {
        "alpha": 0.3
    },

    "holt": {
        "alpha": 0.3,  # Level smoothing
        "beta": 0.1    # Trend smoothing
    },

    "seasonal": {
        "period": 12
    },

    # Interval half-width = std * z * (1 + horizon_growth * step)
    "interval_horizon_growth": 0.1,

    # Confidence level -> two-sided z-score
    "confidence_z_scores": {
        0.90: 1.645,
        0.95: 1.96,
        0.99: 2.576
    },
    "fallback_z_score": 1.645
}


# ===== ACCURACY (BACKTESTING) RULES =====

ACCURACY_RULES = {
    "minimum_points": 6,
    "train_fraction": 0.8,
    "mape_cap": 100.0
}


# ===== TREND RULES =====

TREND_RULES = {
    "direction_threshold": 0.01,  # |slope / mean| above this is a trend

    "seasonality": {
        "minimum_points": 12,
        "candidate_periods": [4, 6, 12],
        "min_autocorrelation": 0.5
    },

    "change_point": {
        "minimum_points": 6,
        "edge_margin": 3,  # Splits closer than 3 points to either end are not scanned
        "flat_tolerance": 1e-9  # Series with a std at or below this have no level shift
    }
}


# ===== ANOMALY RULES =====

ANOMALY_RULES = {
    "z_score_threshold": 2.5,
    "severity_cutoffs": {
        # |z| strictly above the cutoff
        "high": 4.0,
        "medium": 3.0
    }
}


# ===== FORECAST FACTOR RULES =====

FACTOR_RULES = {
    "volatility_cv_threshold": 0.2,
    "seasonality_impact": 0.7,
    "momentum_window": 3,
    "momentum_threshold": 0.1
}


# ===== INSIGHT RULE TABLE =====
# Each row is evaluated against a metric namespace built from the caller's context.
# - when: (metric, operator, threshold); threshold may be a literal or a metric name
# - impact: fixed level, or {"metric", "operator", "threshold", "then", "else"}
# - confidence: constant, or a metric name
# - data_points: (label, metric name or literal, display format)
# - templates are str.format() strings over the same namespace

INSIGHT_DOMAINS = ["inventory", "performance", "trend", "anomaly"]

# Trend and anomaly rules need this much history
MIN_HISTORY_FOR_PATTERN_INSIGHTS = 6

IMPACT_ORDER = {"high": 0, "medium": 1, "low": 2}

INSIGHT_RULES = [
    # ----- Inventory -----
    {
        "rule_id": "inv-wos-high",
        "domain": "inventory",
        "type": "WARNING",
        "category": "inventory",
        "when": ("weeks_of_supply", ">", "max_weeks_of_supply"),
        "title": "Excess Inventory Alert",
        "summary": "Current weeks of supply ({weeks_of_supply:.1f}) exceeds optimal range",
        "description": (
            "Your inventory levels indicate {weeks_of_supply:.1f} weeks of supply, significantly above "
            "the target range of 6-8 weeks. This may lead to increased carrying costs, potential "
            "obsolescence, and markdown pressure."
        ),
        "impact": "high",
        "confidence": 0.92,
        "data_points": [
            ("Current WOS", "weeks_of_supply", "number"),
            ("Target WOS", 7, "number"),
            ("Excess Value", "excess_inventory_value", "currency"),
        ],
        "recommendations": [
            ("Reduce upcoming purchase orders by 15-20%", "high"),
            ("Accelerate markdown cadence on slow-moving items", "medium"),
            ("Review and cancel pending orders where possible", "medium"),
        ],
        "affected_entities": [
            {"type": "inventory", "id": "all", "name": "All Inventory"},
        ],
    },
    {
        "rule_id": "inv-wos-low",
        "domain": "inventory",
        "type": "WARNING",
        "category": "inventory",
        "when": ("weeks_of_supply", "<", "min_weeks_of_supply"),
        "title": "Low Inventory Warning",
        "summary": "Weeks of supply ({weeks_of_supply:.1f}) below optimal range",
        "description": (
            "Your current inventory levels may not support projected demand. With only "
            "{weeks_of_supply:.1f} weeks of supply, you risk stock-outs on popular items."
        ),
        "impact": "high",
        "confidence": 0.88,
        "data_points": [
            ("Current WOS", "weeks_of_supply", "number"),
            ("Target WOS", 6, "number"),
            ("Gap", "weeks_of_supply_gap", "number"),
        ],
        "recommendations": [
            ("Expedite incoming orders where possible", "high"),
            ("Review demand forecast for accuracy", "medium"),
            ("Consider re-allocating inventory from lower-velocity locations", "medium"),
        ],
        "affected_entities": [],
    },
    {
        "rule_id": "inv-sor",
        "domain": "inventory",
        "type": "WARNING",
        "category": "inventory",
        "when": ("stock_out_rate", ">", 5),
        "title": "Stock-Out Rate Elevated",
        "summary": "{stock_out_rate:.1f}% of SKUs currently out of stock",
        "description": (
            "Your stock-out rate is above the target threshold of 5%. This represents potential "
            "lost sales and customer dissatisfaction."
        ),
        "impact": {"metric": "stock_out_rate", "operator": ">", "threshold": 10,
                   "then": "high", "else": "medium"},
        "confidence": 0.95,
        "data_points": [
            ("Stock-Out Rate", "stock_out_rate", "percent"),
            ("SKUs Affected", "stock_out_count", "number"),
            ("Est. Lost Revenue", "estimated_lost_revenue", "currency"),
        ],
        "recommendations": [
            ("Review stock-out items and prioritize replenishment", "high"),
            ("Analyze root cause (forecast accuracy, lead times, etc.)", "medium"),
        ],
        "affected_entities": [],
    },
    {
        "rule_id": "inv-slow",
        "domain": "inventory",
        "type": "RECOMMENDATION",
        "category": "inventory",
        "when": ("slow_moving_percentage", ">", 20),
        "title": "Slow-Moving Inventory Opportunity",
        "summary": "{slow_moving_percentage:.0f}% of inventory is slow-moving",
        "description": (
            "A significant portion of your inventory hasn't sold in the expected timeframe. "
            "Consider markdown strategies or promotional activities to accelerate sell-through."
        ),
        "impact": "medium",
        "confidence": 0.85,
        "data_points": [
            ("Slow-Moving %", "slow_moving_percentage", "percent"),
            ("Estimated Value", "slow_moving_value", "currency"),
        ],
        "recommendations": [
            ("Implement targeted markdowns on slowest SKUs", "high"),
            ("Bundle slow-movers with popular items", "medium"),
            ("Consider channel expansion or liquidation", "low"),
        ],
        "affected_entities": [],
    },

    # ----- Performance -----
    {
        "rule_id": "perf-rev-growth",
        "domain": "performance",
        "type": "OPPORTUNITY",
        "category": "performance",
        "when": ("revenue_growth", ">=", 15),
        "title": "Strong Revenue Growth",
        "summary": "Revenue up {revenue_growth:.1f}% vs previous period",
        "description": (
            "Your revenue performance is exceeding expectations. Consider capitalizing on this "
            "momentum with strategic investments or expanded inventory in top-performing categories."
        ),
        "impact": "medium",
        "confidence": 0.9,
        "data_points": [
            ("Revenue Growth", "revenue_growth", "percent"),
            ("Current Revenue", "revenue", "currency"),
            ("Previous Revenue", "previous_revenue", "currency"),
        ],
        "recommendations": [
            ("Analyze top-performing SKUs for reorder opportunities", "high"),
            ("Review marketing spend allocation to winning categories", "medium"),
        ],
        "affected_entities": [],
    },
    {
        "rule_id": "perf-rev-decline",
        "domain": "performance",
        "type": "WARNING",
        "category": "performance",
        "when": ("revenue_growth", "<", -10),
        "title": "Revenue Decline Alert",
        "summary": "Revenue down {revenue_decline:.1f}% vs previous period",
        "description": (
            "Revenue is trending below previous period. Investigate potential causes including "
            "competitive pressure, inventory gaps, or market shifts."
        ),
        "impact": "high",
        "confidence": 0.9,
        "data_points": [
            ("Revenue Change", "revenue_growth", "percent"),
            ("Revenue Gap", "revenue_gap", "currency"),
        ],
        "recommendations": [
            ("Review competitive pricing and positioning", "high"),
            ("Analyze traffic and conversion trends", "high"),
            ("Assess inventory availability in key categories", "medium"),
        ],
        "affected_entities": [],
    },
    {
        "rule_id": "perf-margin",
        "domain": "performance",
        "type": "WARNING",
        "category": "performance",
        "when": ("margin_gap", ">", 3),
        "title": "Margin Below Target",
        "summary": "Gross margin {gross_margin:.1f}% is {margin_gap:.1f}pp below target",
        "description": (
            "Your gross margin is under-performing relative to targets. Review pricing strategy, "
            "promotional mix, and markdown cadence."
        ),
        "impact": {"metric": "margin_gap", "operator": ">", "threshold": 5,
                   "then": "high", "else": "medium"},
        "confidence": 0.92,
        "data_points": [
            ("Current Margin", "gross_margin", "percent"),
            ("Target Margin", "target_margin", "percent"),
            ("Gap", "margin_gap", "percent"),
        ],
        "recommendations": [
            ("Review promotional calendar and reduce off-price activities", "high"),
            ("Analyze category mix shift impact on margin", "medium"),
            ("Optimize markdown timing strategy", "medium"),
        ],
        "affected_entities": [],
    },
    {
        "rule_id": "perf-margin-high",
        "domain": "performance",
        "type": "OPPORTUNITY",
        "category": "performance",
        "when": ("margin_excess", ">", 3),
        "title": "Strong Margin Performance",
        "summary": "Gross margin {gross_margin:.1f}% exceeds target by {margin_excess:.1f}pp",
        "description": (
            "Your margin performance is exceeding targets. Consider whether there's room to invest "
            "in growth while maintaining healthy profitability."
        ),
        "impact": "low",
        "confidence": 0.9,
        "data_points": [
            ("Current Margin", "gross_margin", "percent"),
            ("Target Margin", "target_margin", "percent"),
        ],
        "recommendations": [
            ("Evaluate opportunities to invest in traffic-driving activities", "medium"),
            ("Consider selective price optimization for competitive categories", "low"),
        ],
        "affected_entities": [],
    },
    {
        "rule_id": "perf-st",
        "domain": "performance",
        "type": "WARNING",
        "category": "performance",
        "when": ("sell_through_gap", ">", 5),
        "title": "Sell-Through Below Target",
        "summary": "Sell-through {sell_through:.1f}% is {sell_through_gap:.1f}pp below target",
        "description": (
            "Your sell-through rate indicates inventory is moving slower than planned. This may "
            "lead to increased markdown requirements later in the season."
        ),
        "impact": "medium",
        "confidence": 0.88,
        "data_points": [
            ("Current ST", "sell_through", "percent"),
            ("Target ST", "target_sell_through", "percent"),
        ],
        "recommendations": [
            ("Identify and address slow-moving categories", "high"),
            ("Consider early markdown on underperforming styles", "medium"),
            ("Review demand forecast assumptions", "medium"),
        ],
        "affected_entities": [],
    },

    # ----- Trend -----
    {
        "rule_id": "trend-change",
        "domain": "trend",
        "type": "INSIGHT",
        "category": "trend",
        "when": ("breakpoint_count", ">", 0),
        "title": "Trend Change Detected",
        "summary": "Significant {breakpoint_type} identified at {breakpoint_label}",
        "description": (
            "Our analysis detected a significant change in your data pattern. This may indicate a "
            "market shift, operational change, or external factor impact."
        ),
        "impact": "medium",
        "confidence": 0.82,
        "data_points": [
            ("Change Period", "breakpoint_period", "number"),
            ("Magnitude", "breakpoint_magnitude", "number"),
        ],
        "recommendations": [
            ("Investigate potential causes of the trend change", "high"),
            ("Adjust forecasts to reflect the new trend direction", "medium"),
        ],
        "affected_entities": [],
    },
    {
        "rule_id": "trend-seasonality",
        "domain": "trend",
        "type": "INSIGHT",
        "category": "trend",
        "when": ("seasonality_detected", "==", True),
        "title": "Seasonal Pattern Identified",
        "summary": "{seasonality_period}-period seasonal cycle detected",
        "description": (
            "A repeating seasonal pattern has been identified in your data with a cycle of "
            "{seasonality_period} periods."
        ),
        "impact": "low",
        "confidence": "seasonality_amplitude",
        "data_points": [
            ("Cycle Period", "seasonality_period", "number"),
            ("Pattern Strength", "seasonality_strength_pct", "percent"),
        ],
        "recommendations": [
            ("Incorporate seasonality into demand planning", "medium"),
            ("Align inventory builds with seasonal peaks", "medium"),
        ],
        "affected_entities": [],
    },

    # ----- Anomaly (fires once per qualifying anomaly) -----
    {
        "rule_id": "anomaly",
        "domain": "anomaly",
        "type": "INSIGHT",
        "category": "anomaly",
        "when": ("severity", "!=", "low"),
        "title": "Data Anomaly: {anomaly_title}",
        "summary": "{severity} anomaly detected on {anomaly_label}",
        "description": "{explanation}",
        "impact": {"metric": "severity", "operator": "==", "threshold": "high",
                   "then": "high", "else": "medium"},
        "confidence": 0.85,
        "data_points": [
            ("Actual Value", "actual_value", "number"),
            ("Expected Value", "expected_value", "number"),
            ("Deviation", "deviation", "number"),
        ],
        "recommendations": [
            ("Investigate the cause of this anomaly", "high"),
            ("Determine if this is a one-time event or new pattern", "medium"),
        ],
        "affected_entities": [],
    },
]


# ===== ACCESSORS =====

def get_forecast_config():
    """
    Get a private copy of the forecasting configuration.

    Returns:
        dict: Deep copy of FORECAST_RULES, safe to modify and pass back to the engine
    """
    return copy.deepcopy(FORECAST_RULES)


def get_confidence_z_score(confidence, config=None):
    """
    Map a confidence level to its two-sided z-score.

    Args:
        confidence: Confidence level (0.90, 0.95 or 0.99)
        config: Optional forecasting config (defaults to FORECAST_RULES)

    Returns:
        tuple: (z_score, supported) - unsupported levels get the fallback z-score
    """
    config = config or FORECAST_RULES
    for level, z_score in config["confidence_z_scores"].items():
        if abs(level - confidence) < 1e-9:
            return z_score, True
    return config["fallback_z_score"], False


def get_severity_for_z(abs_z_score):
    """
    Classify an absolute z-score into an anomaly severity tier.

    Args:
        abs_z_score: |z| of an observation already flagged as anomalous

    Returns:
        str: 'high', 'medium' or 'low'
    """
    cutoffs = ANOMALY_RULES["severity_cutoffs"]
    if abs_z_score > cutoffs["high"]:
        return "high"
    if abs_z_score > cutoffs["medium"]:
        return "medium"
    return "low"


def get_insight_rules(domain=None):
    """
    Get a private copy of the insight rule table.

    Args:
        domain: Optional domain filter ('inventory', 'performance', 'trend', 'anomaly')

    Returns:
        list: Rule rows (deep copies)
    """
    rules = INSIGHT_RULES if domain is None else [r for r in INSIGHT_RULES if r["domain"] == domain]
    return copy.deepcopy(rules)


def get_insight_rule(rule_id):
    """Look up a single rule row by id; raises KeyError for unknown ids."""
    for rule in INSIGHT_RULES:
        if rule["rule_id"] == rule_id:
            return copy.deepcopy(rule)
    raise KeyError(f"Unknown insight rule: {rule_id}")
