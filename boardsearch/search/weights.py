"""
Relevance weight profile.

Each factor is an SQL expression valued in [0, 1] with an integer
weight. A row's relevance is

    1000 * sum(weight_i * factor_i) / total_weight

stored as an integer and shown divided by 10.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ..core import WeightsConfig


@dataclass(frozen=True)
class WeightFactor:
    """
    SQL for one relevance factor.

    Attributes:
        name: Factor name, also its weight key.
        search: Expression over grouped topics "t" and messages "m".
        results: Expression over a single topic "t" for subject-only rows,
            None when the factor does not apply there.
    """
    name: str
    search: str
    results: Optional[str] = None


DEFAULT_WEIGHTS: Dict[str, int] = {
    "frequency": 30,
    "age": 25,
    "length": 20,
    "subject": 15,
    "first_message": 10,
    "sticky": 0,
    "likes": 0,
}

LIKES_CAP = 20

FACTORS: Dict[str, WeightFactor] = {
    "frequency": WeightFactor(
        "frequency",
        search="COUNT(*) * 1.0 / (MAX(t.num_replies) + 1)",
        results="1.0 / (t.num_replies + 1)",
    ),
    "age": WeightFactor(
        "age",
        search="CASE WHEN MAX(m.id_msg) < :min_msg THEN 0 ELSE (MAX(m.id_msg) - :min_msg) * 1.0 / :recent_msg END",
        results="CASE WHEN t.id_first_msg < :min_msg THEN 0 ELSE (t.id_first_msg - :min_msg) * 1.0 / :recent_msg END",
    ),
    "length": WeightFactor(
        "length",
        search="CASE WHEN MAX(t.num_replies) < :huge_topic_posts THEN MAX(t.num_replies) * 1.0 / :huge_topic_posts ELSE 1 END",
        results="CASE WHEN t.num_replies < :huge_topic_posts THEN t.num_replies * 1.0 / :huge_topic_posts ELSE 1 END",
    ),
    "subject": WeightFactor(
        "subject",
        search="0",
        results="1",
    ),
    "first_message": WeightFactor(
        "first_message",
        search="CASE WHEN MIN(m.id_msg) = MAX(t.id_first_msg) THEN 1 ELSE 0 END",
    ),
    "sticky": WeightFactor(
        "sticky",
        search="MAX(t.is_sticky)",
        results="t.is_sticky",
    ),
    "likes": WeightFactor(
        "likes",
        search=f"CASE WHEN MAX(t.num_likes) > {LIKES_CAP} THEN 1 ELSE MAX(t.num_likes) * 1.0 / {LIKES_CAP} END",
        results=f"CASE WHEN t.num_likes > {LIKES_CAP} THEN 1 ELSE t.num_likes * 1.0 / {LIKES_CAP} END",
    ),
}

# Subject staging found the topic
SUBJECT_MATCH_FACTOR = "CASE WHEN MAX(lst.id_topic) IS NULL THEN 0 ELSE 1 END"

# One row per message: position in the topic and first-message bonus
VERBATIM_FACTORS: Dict[str, str] = {
    "age": (
        "(m.id_msg - t.id_first_msg) * 1.0 / "
        "CASE WHEN t.id_last_msg = t.id_first_msg THEN 1 ELSE t.id_last_msg - t.id_first_msg END"
    ),
    "first_message": "CASE WHEN m.id_msg = t.id_first_msg THEN 1 ELSE 0 END",
}


def clamp(expression: str) -> str:
    return f"MIN(MAX(({expression}), 0.0), 1.0)"


class WeightProfile:
    """
    Named factors with their integer weights.

    When every configured weight is zero the defaults apply. Negative
    weights count as zero so the relevance stays within [0, 1000].
    """

    def __init__(self, weights: Dict[str, int] = None):
        weights = {name: max(int(value), 0) for name, value in (weights or {}).items() if name in FACTORS}
        if not any(weights.values()):
            weights = dict(DEFAULT_WEIGHTS)

        self.weights: Dict[str, int] = {name: weights.get(name, 0) for name in FACTORS}

    @classmethod
    def from_config(cls, config: WeightsConfig) -> "WeightProfile":
        return cls(config.as_dict())

    @property
    def total(self) -> int:
        return sum(self.weights.values())

    def search_factors(self) -> Dict[str, str]:
        """Factor expressions for grouped topic scoring."""
        return {name: factor.search for name, factor in FACTORS.items()}

    def results_factors(self) -> Dict[str, str]:
        """Factor expressions for rows scored from a topic alone."""
        return {name: factor.results for name, factor in FACTORS.items() if factor.results is not None}

    def verbatim_factors(self) -> Dict[str, str]:
        return dict(VERBATIM_FACTORS)

    def build_relevance(self, factors: Dict[str, str], total: int = None) -> str:
        """
        SQL for the integer relevance of a row.

        Args:
            factors: Factor name -> expression to include.
            total: Divisor, defaults to the weights of the given factors.

        Returns:
            SQL expression, "0" when nothing carries weight.
        """
        if total is None:
            total = sum(self.weights.get(name, 0) for name in factors)

        terms = [
            f"{self.weights[name]} * {clamp(expression)}"
            for name, expression in factors.items()
            if self.weights.get(name, 0) > 0
        ]

        if not terms or total <= 0:
            return "0"

        return f"CAST(1000.0 * ({' + '.join(terms)}) / {int(total)} AS INTEGER)"

    def relevance_params(self, query, huge_topic_posts: int) -> Dict[str, int]:
        """Named parameters used by the factor expressions."""
        return {
            "min_msg": int(query.min_msg),
            "recent_msg": max(int(query.recent_msg), 1),
            "huge_topic_posts": max(int(huge_topic_posts), 1),
        }
