"""
Composable SELECT statements for the staging and scoring queries.

Joins and conditions are collected as lists and rendered once; repeated
entries collapse so several filters can ask for the same join.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


def _unique(items: List[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


@dataclass
class QueryParts:
    """
    Pieces of one SELECT.

    Attributes:
        from_: Table of the FROM clause with its alias.
        select: Output column name -> SQL expression, in order.
        inner_join: INNER JOIN targets with their ON clause.
        left_join: LEFT JOIN targets with their ON clause.
        where: Conditions joined with AND.
        group_by: GROUP BY expressions.
        params: Named parameters for the statement.
        limit: Row limit, 0 for none.
    """
    from_: str
    select: Dict[str, str] = field(default_factory=dict)
    inner_join: List[str] = field(default_factory=list)
    left_join: List[str] = field(default_factory=list)
    where: List[str] = field(default_factory=list)
    group_by: List[str] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)
    limit: int = 0

    @property
    def columns(self) -> List[str]:
        return list(self.select)

    def to_sql(self) -> str:
        sql = "SELECT " + ", ".join(f"{expr} AS {name}" for name, expr in self.select.items())
        sql += f"\nFROM {self.from_}"

        for join in _unique(self.inner_join):
            sql += f"\n    INNER JOIN {join}"
        for join in _unique(self.left_join):
            sql += f"\n    LEFT JOIN {join}"

        where = _unique(self.where)
        if where:
            sql += "\nWHERE " + "\n    AND ".join(where)

        group_by = _unique(self.group_by)
        if group_by:
            sql += "\nGROUP BY " + ", ".join(group_by)

        if self.limit > 0:
            sql += f"\nLIMIT {int(self.limit)}"

        return sql
