"""Priority-driven allocation of the 100-point match budget.

Each specified criterion gets a rank-based share from a fixed table; the
remaining points go to unspecified attributes as a small residual so an
incidental match still counts without deciding the ranking.
"""

import logging

from trial_scout.core.schemas import ATTRIBUTES, Criteria, WeightSet

logger = logging.getLogger(__name__)

FALLBACK_ORDER: tuple[str, ...] = ("conditions", "gender", "age", "location")

DEFAULT_WEIGHTS: dict[str, int] = {"age": 25, "gender": 20, "conditions": 40, "location": 15}

# specified count -> (shares for ranks 1..n, residual for each unspecified attribute)
ALLOCATION_TABLE: dict[int, tuple[tuple[int, ...], int]] = {
    1: ((100,), 0),
    2: ((60, 30), 5),
    3: ((50, 30, 15), 5),
    4: ((40, 30, 20, 10), 0),
}


def specified_attributes(criteria: Criteria) -> set[str]:
    """Return the attributes the criteria actually constrain."""
    specified: set[str] = set()
    if criteria.age.is_set:
        specified.add("age")
    if criteria.gender:
        specified.add("gender")
    if criteria.conditions:
        specified.add("conditions")
    if criteria.location:
        specified.add("location")
    return specified


def rank_attributes(criteria: Criteria) -> list[str]:
    """Order the specified attributes by priority.

    Uses the criteria's priority order when given, dropping unspecified
    entries and appending specified attributes it omits in fallback order.
    """
    specified = specified_attributes(criteria)
    ranked: list[str] = []
    if criteria.priority_order:
        ranked = [a for a in dict.fromkeys(criteria.priority_order) if a in specified]
    ranked += [a for a in FALLBACK_ORDER if a in specified and a not in ranked]
    return ranked


def allocate_weights(criteria: Criteria) -> WeightSet:
    """Derive the WeightSet for a run from its criteria. Always sums to 100."""
    ranked = rank_attributes(criteria)
    if not ranked:
        return WeightSet(**DEFAULT_WEIGHTS)

    shares, residual = ALLOCATION_TABLE[len(ranked)]
    weights = {attr: residual for attr in ATTRIBUTES}
    for attr, share in zip(ranked, shares):
        weights[attr] = share

    logger.debug("Weights for priority %s: %s", ranked, weights)
    return WeightSet(**weights)
