"""
Insight Generation Module

Rule engine that turns business metrics and historical series into a prioritized
list of typed insights (warnings, opportunities, recommendations, observations).

The rules themselves live in insight_rules.INSIGHT_RULES as data. This module:
1. Builds a metric namespace from the caller's InsightContext (deriving weeks of
   supply, stock-out rate, revenue growth, margin gaps, budget utilization)
2. Runs trend analysis and anomaly detection on the history (6+ points)
3. Evaluates every rule row against the matching namespace(s)
4. Sorts the emitted insights high -> medium -> low impact

Risk and opportunity indicators are derived views over the insight list.
"""

import operator
from datetime import datetime

import pandas as pd
from joblib import Parallel, delayed

from anomaly_detection import detect_anomalies
from forecast_types import (
    AffectedEntity,
    DataPoint,
    ImpactLevel,
    Insight,
    InsightContext,
    InsightRecommendation,
    InsightType,
    OpportunityIndicator,
    RiskIndicator,
)
from insight_rules import (
    ANOMALY_RULES,
    INSIGHT_RULES,
    MIN_HISTORY_FOR_PATTERN_INSIGHTS,
)
from retail_metrics import (
    calculate_otb_utilization,
    calculate_stock_out_rate,
    calculate_weeks_of_supply,
)
from series_statistics import calculate_percentage_change, to_array, build_history_labels
from trend_analysis import analyze_trend

_OPERATORS = {
    '>': operator.gt,
    '<': operator.lt,
    '>=': operator.ge,
    '<=': operator.le,
    '==': operator.eq,
    '!=': operator.ne,
}

PATTERN_DOMAINS = ('trend', 'anomaly')

# Batches larger than this are fanned out across worker threads
PARALLEL_BATCH_THRESHOLD = 50
MAX_PARALLEL_JOBS = 4


# ===== METRIC NAMESPACES =====

def build_context_metrics(context):
    """
    Build the metric namespace for inventory, performance and custom rules

    Ratios the caller did not supply are derived from raw counts when possible;
    anything that cannot be derived stays None and rules on it are skipped.

    Args:
        context: InsightContext

    Returns:
        dict: metric name -> value (or None)
    """
    inventory = context.current_inventory
    weekly_sales = context.average_weekly_sales

    weeks_of_supply = context.weeks_of_supply
    if weeks_of_supply is None and weekly_sales and weekly_sales > 0 and inventory is not None:
        weeks_of_supply = calculate_weeks_of_supply(inventory, weekly_sales)

    stock_out_rate = context.stock_out_rate
    if stock_out_rate is None and context.total_skus and context.total_skus > 0:
        stock_out_rate = calculate_stock_out_rate(context.stock_out_count or 0, context.total_skus)

    revenue_growth = None
    if context.previous_revenue and context.previous_revenue > 0 and context.revenue is not None:
        revenue_growth = calculate_percentage_change(context.revenue, context.previous_revenue)

    budget_utilization = context.budget_utilization
    if budget_utilization is None and context.budget_total and context.budget_spent is not None:
        budget_utilization = calculate_otb_utilization(context.budget_spent, context.budget_total)

    margin = context.gross_margin
    sell_through = context.sell_through

    return {
        # Inventory
        'current_inventory': inventory,
        'average_weekly_sales': weekly_sales,
        'weeks_of_supply': weeks_of_supply,
        'min_weeks_of_supply': context.min_weeks_of_supply,
        'max_weeks_of_supply': context.max_weeks_of_supply,
        'weeks_of_supply_gap': 6 - weeks_of_supply if weeks_of_supply is not None else None,
        'excess_inventory_value': (
            inventory * ((weeks_of_supply - 7) / weeks_of_supply)
            if inventory is not None and weeks_of_supply else 0.0
        ),
        'stock_out_count': context.stock_out_count or 0,
        'total_skus': context.total_skus,
        'stock_out_rate': stock_out_rate,
        'estimated_lost_revenue': (context.stock_out_count or 0) * (weekly_sales or 0) * 0.1,
        'slow_moving_percentage': context.slow_moving_percentage,
        'slow_moving_value': (
            (inventory or 0) * (context.slow_moving_percentage / 100)
            if context.slow_moving_percentage is not None else 0.0
        ),

        # Performance
        'revenue': context.revenue,
        'previous_revenue': context.previous_revenue,
        'revenue_growth': revenue_growth,
        'revenue_decline': abs(revenue_growth) if revenue_growth is not None else None,
        'revenue_gap': (
            context.revenue - context.previous_revenue if revenue_growth is not None else None
        ),
        'gross_margin': margin,
        'target_margin': context.target_margin,
        'margin_gap': context.target_margin - margin if margin is not None else None,
        'margin_excess': margin - context.target_margin if margin is not None else None,
        'sell_through': sell_through,
        'target_sell_through': context.target_sell_through,
        'sell_through_gap': context.target_sell_through - sell_through if sell_through is not None else None,

        # Budget
        'budget_total': context.budget_total,
        'budget_spent': context.budget_spent,
        'budget_utilization': budget_utilization,
    }


def _trend_metrics(trend):
    seasonality = trend.seasonality
    metrics = {
        'trend_direction': trend.direction.value,
        'trend_strength': trend.strength,
        'change_rate': trend.change_rate,
        'breakpoint_count': len(trend.breakpoints),
        'breakpoint_type': None,
        'breakpoint_period': None,
        'breakpoint_magnitude': None,
        'breakpoint_label': None,
        'seasonality_detected': seasonality.detected,
        'seasonality_period': seasonality.period,
        'seasonality_amplitude': seasonality.amplitude or 0.0,
        'seasonality_strength_pct': (seasonality.amplitude or 0.0) * 100,
    }
    if trend.breakpoints:
        breakpoint = trend.breakpoints[0]
        metrics.update({
            'breakpoint_type': breakpoint.type.value,
            'breakpoint_period': breakpoint.period,
            'breakpoint_magnitude': breakpoint.magnitude,
            'breakpoint_label': _format_label(breakpoint.label, breakpoint.period),
        })
    return metrics


def _anomaly_metrics(anomaly):
    return {
        'fact_key': str(anomaly.period),
        'severity': anomaly.severity.value,
        'anomaly_title': 'Unexpected Spike' if anomaly.is_spike else 'Unusual Dip',
        'anomaly_label': _format_label(anomaly.label, anomaly.period),
        'anomaly_period': anomaly.period,
        'explanation': anomaly.explanation,
        'actual_value': anomaly.actual_value,
        'expected_value': anomaly.expected_value,
        'deviation': anomaly.deviation,
        'z_score': anomaly.z_score,
    }


def _format_label(label, period):
    if label is None:
        return f"period {period}"
    if isinstance(label, (datetime, pd.Timestamp)):
        return label.strftime('%Y-%m-%d')
    return str(label)


# ===== RULE EVALUATION =====

def _resolve(value, metrics):
    """Literal values pass through; strings naming a metric are looked up."""
    if isinstance(value, str) and value in metrics:
        return metrics[value]
    return value


def _compare(left, op, right):
    if op not in _OPERATORS:
        raise ValueError(f"Unknown rule operator '{op}'")
    if left is None or right is None:
        return False
    return _OPERATORS[op](left, right)


def evaluate_rule(rule, metrics):
    """
    Check a rule's condition against a metric namespace

    Args:
        rule: Rule row with a 'when' (metric, operator, threshold) condition
        metrics: Metric namespace

    Returns:
        bool: True when the condition holds; False when the metric is unavailable
    """
    metric, op, threshold = rule['when']
    return _compare(metrics.get(metric), op, _resolve(threshold, metrics))


def _resolve_impact(impact_rule, metrics):
    if isinstance(impact_rule, str):
        return ImpactLevel(impact_rule)
    holds = _compare(metrics.get(impact_rule['metric']), impact_rule['operator'],
                     _resolve(impact_rule['threshold'], metrics))
    return ImpactLevel(impact_rule['then'] if holds else impact_rule['else'])


def _build_insight(rule, metrics, created_at, context_entities):
    stamp = created_at.strftime('%Y%m%d%H%M%S') if created_at is not None else 'na'
    id_parts = [rule['rule_id']]
    if 'fact_key' in metrics:
        id_parts.append(metrics['fact_key'])
    id_parts.append(stamp)

    data_points = []
    for label, source, fmt in rule.get('data_points', []):
        value = _resolve(source, metrics)
        data_points.append(DataPoint(label=label, value=float(value) if value is not None else 0.0, format=fmt))

    entities = [
        e if isinstance(e, AffectedEntity) else AffectedEntity(**e)
        for e in rule.get('affected_entities', [])
    ]

    return Insight(
        id='-'.join(id_parts),
        type=InsightType(rule['type']),
        category=rule['category'],
        title=rule['title'].format(**metrics),
        summary=rule['summary'].format(**metrics),
        description=rule['description'].format(**metrics),
        impact=_resolve_impact(rule['impact'], metrics),
        confidence=float(_resolve(rule['confidence'], metrics) or 0.0),
        data_points=data_points,
        recommendations=[
            InsightRecommendation(action=action, priority=priority)
            for action, priority in rule.get('recommendations', [])
        ],
        affected_entities=entities + list(context_entities),
        created_at=created_at,
        rule_id=rule['rule_id'],
    )


def generate_insights(context, rules=None, as_of=None, logs=None):
    """
    Generate insights based on the current data context

    Args:
        context: InsightContext (or a dict of its fields)
        rules: Optional rule table (default insight_rules.INSIGHT_RULES)
        as_of: Timestamp recorded as created_at and used in insight ids (default: now)
        logs: Optional list to append processing messages

    Returns:
        list: Insight records sorted by impact (high, medium, low)
    """
    if logs is None:
        logs = []
    if isinstance(context, dict):
        context = InsightContext.from_dict(context)
    rules = INSIGHT_RULES if rules is None else rules
    created_at = as_of if as_of is not None else datetime.now()
    start_time = datetime.now()
    logs.append("--- Insight Generation Engine ---")
    logs.append(f"INFO: Evaluating {len(rules)} rules...")

    context_metrics = build_context_metrics(context)

    # ===== Pattern analysis of the history =====
    history = to_array(context.historical_data) if context.historical_data is not None else to_array([])
    has_pattern_history = len(history) >= MIN_HISTORY_FOR_PATTERN_INSIGHTS
    trend_facts = []
    anomaly_facts = []
    if has_pattern_history:
        labels = build_history_labels(len(history), context.period_labels, context.reference_date, context.freq)
        trend = analyze_trend(history, labels)
        trend_facts = [{**context_metrics, **_trend_metrics(trend)}]

        threshold = context.anomaly_threshold
        if threshold is None:
            threshold = ANOMALY_RULES['z_score_threshold']
        anomalies = detect_anomalies(history, threshold, labels)
        anomaly_facts = [{**context_metrics, **_anomaly_metrics(a)} for a in anomalies]
        logs.append(f"INFO: Analyzed {len(history)} historical points: trend {trend.direction.value}, "
                    f"{len(trend.breakpoints)} breakpoints, {len(anomalies)} anomalies")
    elif any(rule['domain'] in PATTERN_DOMAINS for rule in rules):
        logs.append(f"WARNING: {len(history)} historical points. Minimum "
                    f"{MIN_HISTORY_FOR_PATTERN_INSIGHTS} required for trend and anomaly insights.")

    # ===== Rule evaluation =====
    insights = []
    for rule in rules:
        if rule['domain'] == 'trend':
            facts = trend_facts
        elif rule['domain'] == 'anomaly':
            facts = anomaly_facts
        else:
            facts = [context_metrics]

        for metrics in facts:
            if evaluate_rule(rule, metrics):
                insights.append(_build_insight(rule, metrics, created_at, context.affected_entities))

    # Stable sort keeps rule-table order within an impact level
    insights.sort(key=lambda i: i.impact.rank)

    counts = pd.Series([i.impact.value for i in insights], dtype=object).value_counts()
    elapsed = (datetime.now() - start_time).total_seconds()
    logs.append(f"INFO: Generated {len(insights)} insights ({int(counts.get('high', 0))} high, "
                f"{int(counts.get('medium', 0))} medium, {int(counts.get('low', 0))} low) "
                f"in {elapsed:.2f} seconds")

    return insights


# ===== DERIVED VIEWS =====

def extract_risk_indicators(insights):
    """
    Get risk indicators from WARNING insights

    Returns:
        list: RiskIndicator per warning, in insight order
    """
    return [
        RiskIndicator(
            category=i.category,
            risk_level=i.impact.value,
            factors=[{'name': i.title, 'severity': i.confidence, 'trend': 'stable'}],
            mitigation_actions=[r.action for r in i.recommendations],
        )
        for i in insights if i.type == InsightType.WARNING
    ]


def extract_opportunity_indicators(insights):
    """
    Get opportunity indicators from OPPORTUNITY insights

    The estimated value is the insight's first data point (0 when it has none).

    Returns:
        list: OpportunityIndicator per opportunity, in insight order
    """
    return [
        OpportunityIndicator(
            category=i.category,
            opportunity_level=i.impact.value,
            estimated_value=i.data_points[0].value if i.data_points else 0.0,
            confidence=i.confidence,
            factors=[{'name': i.title, 'contribution': i.confidence}],
            suggested_actions=[r.action for r in i.recommendations],
        )
        for i in insights if i.type == InsightType.OPPORTUNITY
    ]


INSIGHT_COLUMNS = [
    'entity', 'id', 'rule_id', 'type', 'category', 'title', 'summary', 'impact',
    'confidence', 'top_recommendation', 'recommendation_count', 'created_at'
]


def insights_to_dataframe(insights, entity=None):
    """
    Flatten insights into a table, one row per insight

    Args:
        insights: List of Insight
        entity: Optional entity name stamped on every row

    Returns:
        pd.DataFrame: INSIGHT_COLUMNS
    """
    rows = [{
        'entity': entity,
        'id': i.id,
        'rule_id': i.rule_id,
        'type': i.type.value,
        'category': i.category,
        'title': i.title,
        'summary': i.summary,
        'impact': i.impact.value,
        'confidence': i.confidence,
        'top_recommendation': i.recommendations[0].action if i.recommendations else None,
        'recommendation_count': len(i.recommendations),
        'created_at': i.created_at,
    } for i in insights]
    return pd.DataFrame(rows, columns=INSIGHT_COLUMNS)


def _insights_single_entity(entity, context, rules, as_of):
    return insights_to_dataframe(generate_insights(context, rules=rules, as_of=as_of), entity=entity)


def generate_insights_batch(contexts_by_entity, rules=None, as_of=None, use_parallel=True):
    """
    Generate insights for many entities (SKUs, categories, locations)

    Args:
        contexts_by_entity: Dict of {entity: InsightContext or dict}
        rules: Optional rule table shared by all entities
        as_of: Timestamp recorded as created_at
        use_parallel: Whether to use joblib parallel processing

    Returns:
        tuple: (logs, insights_df) - one row per insight with an 'entity' column,
               sorted by impact then entity
    """
    logs = []
    start_time = datetime.now()
    logs.append("--- Batch Insight Engine ---")

    entities = list(contexts_by_entity.keys())
    if not entities:
        logs.append("WARNING: No contexts provided")
        return logs, pd.DataFrame(columns=INSIGHT_COLUMNS)

    as_of = as_of if as_of is not None else datetime.now()

    if use_parallel and len(entities) > PARALLEL_BATCH_THRESHOLD:
        n_jobs = min(MAX_PARALLEL_JOBS, len(entities) // PARALLEL_BATCH_THRESHOLD)
        logs.append(f"INFO: Generating insights for {len(entities)} entities on {n_jobs} workers...")
        frames = Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(_insights_single_entity)(entity, contexts_by_entity[entity], rules, as_of)
            for entity in entities
        )
    else:
        logs.append(f"INFO: Generating insights for {len(entities)} entities sequentially...")
        frames = [
            _insights_single_entity(entity, contexts_by_entity[entity], rules, as_of)
            for entity in entities
        ]

    frames = [f for f in frames if not f.empty]
    if not frames:
        insights_df = pd.DataFrame(columns=INSIGHT_COLUMNS)
    else:
        insights_df = pd.concat(frames, ignore_index=True)
        insights_df['_rank'] = insights_df['impact'].map(lambda impact: ImpactLevel(impact).rank)
        insights_df = insights_df.sort_values(['_rank', 'entity'], kind='stable').drop(columns='_rank')
        insights_df = insights_df.reset_index(drop=True)

    elapsed = (datetime.now() - start_time).total_seconds()
    logs.append(f"INFO: Generated {len(insights_df)} insights for {len(entities)} entities "
                f"in {elapsed:.2f} seconds")

    return logs, insights_df
