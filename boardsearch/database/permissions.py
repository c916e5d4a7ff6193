"""
Board visibility for the member running a search.

The search core never decides permissions itself; it only injects the
viewer's board predicate into the queries it builds.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class Viewer:
    """
    The member on whose behalf a search runs.

    Attributes:
        id_member: Member id, 0 for guests.
        is_admin: Administrators see every board.
        visible_boards: Board ids the member may see, None for all boards.
    """
    id_member: int = 0
    is_admin: bool = False
    visible_boards: Optional[FrozenSet[int]] = field(default=None)

    @classmethod
    def guest(cls, visible_boards=None) -> "Viewer":
        boards = None if visible_boards is None else frozenset(int(b) for b in visible_boards)
        return cls(id_member=0, is_admin=False, visible_boards=boards)

    @classmethod
    def admin(cls, id_member: int = 1) -> "Viewer":
        return cls(id_member=id_member, is_admin=True, visible_boards=None)

    def can_see(self, id_board: int) -> bool:
        if self.is_admin or self.visible_boards is None:
            return True
        return int(id_board) in self.visible_boards

    def see_board_clause(self, alias: str = "b") -> str:
        """
        SQL predicate limiting rows to the boards this viewer may see.

        Board ids are integers coming from our own tables, so they are
        inlined rather than bound.
        """
        if self.is_admin or self.visible_boards is None:
            return "1=1"
        if not self.visible_boards:
            return "1=0"
        ids = ", ".join(str(int(b)) for b in sorted(self.visible_boards))
        return f"{alias}.id_board IN ({ids})"
