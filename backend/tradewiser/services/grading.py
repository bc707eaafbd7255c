"""
Quality grading and market pricing for deposited commodities

Lab integration is not available yet, so assessments return fixed results per
commodity type.
"""

from typing import Any, Dict

QUALITY_RESULTS: Dict[str, Dict[str, Any]] = {
    "cereals": {
        "moisture": 12.5,
        "foreignMatter": 1.2,
        "brokenGrains": 2.8,
        "weeviled": 0.5,
        "grade": "A",
        "score": 87,
    },
    "pulses": {
        "moisture": 10.2,
        "foreignMatter": 0.8,
        "damaged": 1.5,
        "weeviled": 0.3,
        "grade": "A",
        "score": 89,
    },
    "oilseeds": {
        "moisture": 8.5,
        "foreignMatter": 1.1,
        "oilContent": 42.3,
        "freefattyAcid": 1.2,
        "grade": "A",
        "score": 85,
    },
    "vegetables": {
        "moisture": 85.2,
        "freshness": 92,
        "damage": 3.5,
        "pesticide": 0.1,
        "grade": "A",
        "score": 88,
    },
}

# Rs per MT
BASE_RATES: Dict[str, int] = {
    "cereals": 2500,
    "pulses": 4500,
    "oilseeds": 3200,
    "vegetables": 1800,
    "spices": 8500,
}
DEFAULT_BASE_RATE = 2000


def assess_quality(commodity_type: str) -> Dict[str, Any]:
    """Quality parameters for a commodity type, vegetables for anything unknown"""
    key = (commodity_type or "").lower()
    return dict(QUALITY_RESULTS.get(key, QUALITY_RESULTS["vegetables"]))


def calculate_pricing(commodity_type: str, quantity: float, quality_score: float) -> Dict[str, Any]:
    """
    Market rate and total value from the type's base rate and the quality score

    Args:
        commodity_type: cereals / pulses / oilseeds / vegetables / spices / other
        quantity: quantity in MT
        quality_score: 0-100

    Returns:
        dict with base_rate, quality_multiplier, market_rate, total_value, currency, unit
    """
    base_rate = BASE_RATES.get((commodity_type or "").lower(), DEFAULT_BASE_RATE)
    multiplier = quality_score / 100
    market_rate = round(base_rate * multiplier)
    total_value = round(market_rate * float(quantity))
    return {
        "base_rate": base_rate,
        "quality_multiplier": multiplier,
        "market_rate": market_rate,
        "total_value": total_value,
        "currency": "INR",
        "unit": "per MT",
    }
