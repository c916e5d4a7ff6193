"""
Query builder: validates request parameters into a SearchQuery.

Parameters come from the search form and, when paginating or following a
shared link, from an encoded token. Values stored in the token win over
form values. Every problem the user can fix is collected in SearchErrors.
"""

import re
import time
from typing import Any, Dict, List, Optional, Tuple

from ..core import get_logger, SearchConfig
from .codec import decode_params
from .models import SORT_COLUMNS, SearchErrors, SearchQuery, SearchType

logger = get_logger(__name__)


MAX_AGE_DAYS = 9999
SECONDS_PER_DAY = 86400

QUOTED_NAME_RE = re.compile(r'"([^"]+)"')


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _int_list(values) -> List[int]:
    return [number for number in (_int(v, None) for v in values) if number is not None]


class QueryBuilder:
    """
    Builds SearchQuery objects for one database session.

    Args:
        db: Database session; its viewer limits the boards searched.
        config: Search configuration.
        postmod_active: Unapproved messages and topics are hidden.
        now: Clock used for age bounds, defaults to time.time.
    """

    def __init__(self, db, config: SearchConfig, postmod_active: bool = False, now=None):
        self.db = db
        self.config = config
        self.postmod_active = postmod_active
        self.now = now or time.time

    def build(self, raw_params: Dict[str, Any], encoded: str = None) -> Tuple[SearchQuery, SearchErrors]:
        """
        Merge and validate search parameters.

        Args:
            raw_params: Form values (search, searchtype, brd, topic, userspec,
                minage, maxage, sort, show_complete, subject_only, advanced,
                search_selection, sd_brd, sd_topic).
            encoded: Token of a previous search, see codec.encode_params.

        Returns:
            Tuple of (SearchQuery, SearchErrors).
        """
        stored = decode_params(encoded) if encoded else {}
        params = raw_params or {}
        errors = SearchErrors()

        if "advanced" in stored:
            advanced = bool(stored["advanced"])
        else:
            advanced = bool(_int(params.get("advanced")))

        if _int(stored.get("searchtype")) == SearchType.ANY or _int(params.get("searchtype")) == SearchType.ANY:
            searchtype = SearchType.ANY
        else:
            searchtype = SearchType.ALL

        minage = _int(stored.get("minage")) or max(_int(params.get("minage")), 0)
        maxage = _int(stored.get("maxage"))
        if not maxage and 0 < _int(params.get("maxage")) < MAX_AGE_DAYS:
            maxage = _int(params.get("maxage"))

        show_complete = bool(stored.get("show_complete")) or bool(params.get("show_complete"))

        if params.get("topic") or params.get("search_selection") == "topic":
            if params.get("search_selection"):
                topic = _int(params.get("sd_topic"))
            else:
                topic = _int(params.get("topic"))
            show_complete = True
        else:
            topic = _int(stored.get("topic"))

        min_msg_id, max_msg_id = 0, 0
        if minage or maxage:
            min_msg_id, max_msg_id = self.resolve_age(minage, maxage)
            if min_msg_id < 0 or max_msg_id < 0:
                errors.add("no_messages_in_time_frame")
                min_msg_id, max_msg_id = max(min_msg_id, 0), max(max_msg_id, 0)

        userspec = stored.get("userspec") or ""
        if not userspec and params.get("userspec") and params.get("userspec") != "*":
            userspec = str(params["userspec"])
        user_query, user_params = self.build_user_query(userspec)

        brd = self.resolve_boards(stored, params, topic, advanced, errors)
        board_query = self.board_query(brd)

        subject_only = bool(stored.get("subject_only")) or bool(params.get("subject_only"))

        sort = stored.get("sort") or ""
        sort_dir = stored.get("sort_dir") or ""
        if not sort and params.get("sort"):
            sort, _, sort_dir = str(params["sort"]).partition("|")
        if sort not in SORT_COLUMNS:
            sort = "relevance"
        if topic and sort == "num_replies":
            sort = "id_msg"
        sort_dir = "asc" if sort_dir == "asc" else "desc"

        max_msg = self.db.max_msg_id()
        min_msg = int((1 - self.config.recent_percentage) * max_msg)
        recent_msg = max_msg - min_msg

        search = stored.get("search") or params.get("search") or ""

        query = SearchQuery(
            search=str(search),
            searchtype=searchtype,
            brd=tuple(brd),
            board_query=board_query,
            topic=topic,
            userspec=userspec,
            user_query=user_query,
            user_params=tuple(user_params.items()),
            min_msg_id=int(min_msg_id or 0),
            max_msg_id=int(max_msg_id or 0),
            minage=minage,
            maxage=maxage,
            sort=sort,
            sort_dir=sort_dir,
            subject_only=subject_only,
            show_complete=show_complete,
            advanced=advanced,
            min_msg=min_msg,
            recent_msg=recent_msg
        )

        if errors:
            logger.info(f"Search parameters rejected: {errors.codes}")

        return query, errors

    def resolve_age(self, minage: int, maxage: int) -> Tuple[int, int]:
        """
        Translate age bounds in days into message-id bounds.

        Returns:
            (min_msg_id, max_msg_id); 0 means unbounded, -1 means no
            message lies in the time frame.
        """
        min_select = "COALESCE(MIN(id_msg), -1)" if maxage else "0"
        max_select = "COALESCE(MAX(id_msg), -1)" if minage else "0"

        where = ["1=1"]
        params = []
        if self.postmod_active:
            where.append("approved = 1")
        if minage:
            where.append("poster_time <= ?")
            params.append(int(self.now() - SECONDS_PER_DAY * minage))
        if maxage:
            where.append("poster_time >= ?")
            params.append(int(self.now() - SECONDS_PER_DAY * maxage))

        row = self.db.query_one(
            f"SELECT {min_select} AS min_msg_id, {max_select} AS max_msg_id FROM messages WHERE {' AND '.join(where)}",
            tuple(params)
        )
        return int(row["min_msg_id"]), int(row["max_msg_id"])

    def build_user_query(self, userspec: str) -> Tuple[str, Dict[str, str]]:
        """
        Member filter for a name pattern.

        "*" and "?" are wildcards, names are comma-separated and may be
        quoted. Too many matching members drops the filter; no match
        filters guest posts by poster name.

        Returns:
            (SQL predicate on messages "m", named parameters).
        """
        if not userspec:
            return "", {}

        user_string = userspec.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        user_string = user_string.replace("*", "%").replace("?", "_")

        possible_users = QUOTED_NAME_RE.findall(user_string)
        possible_users += QUOTED_NAME_RE.sub("", user_string).split(",")
        possible_users = [name.strip() for name in possible_users if name.strip()]

        if not possible_users:
            return "", {}

        params = {f"possible_user_{i}": name for i, name in enumerate(possible_users)}
        real_names = " OR ".join(f"real_name LIKE :{key} ESCAPE '\\'" for key in params)
        guest_names = " OR ".join(f"m.poster_name LIKE :{key} ESCAPE '\\'" for key in params)

        members = [row["id_member"] for row in self.db.query(
            f"SELECT id_member FROM members WHERE {real_names}", params
        )]

        if len(members) > self.config.max_members_to_search:
            logger.debug(f"Userspec '{userspec}' matches {len(members)} members, filter dropped")
            return "", {}

        if not members:
            return f"m.id_member = 0 AND ({guest_names})", params

        member_list = ", ".join(str(int(id_member)) for id_member in members)
        return f"(m.id_member IN ({member_list}) OR (m.id_member = 0 AND ({guest_names})))", params

    def _query_boards(self, stored: Dict[str, Any], params: Dict[str, Any]) -> List[int]:
        if stored.get("brd") and isinstance(stored["brd"], list):
            return _int_list(stored["brd"])

        brd = params.get("brd")
        if brd and isinstance(brd, (list, tuple)):
            return _int_list(brd)
        if brd:
            return _int_list(str(brd).split(","))

        if params.get("search_selection") == "board":
            sd_brd = params.get("sd_brd")
            if sd_brd and isinstance(sd_brd, (list, tuple)):
                return _int_list(sd_brd)
            if _int(sd_brd):
                return [_int(sd_brd)]

        return []

    def resolve_boards(
        self,
        stored: Dict[str, Any],
        params: Dict[str, Any],
        topic: int,
        advanced: bool,
        errors: SearchErrors
    ) -> List[int]:
        """Boards to search, limited to what the viewer may see."""
        query_boards = self._query_boards(stored, params)

        if topic:
            approved = " AND t.approved = 1" if self.postmod_active else ""
            row = self.db.query_one(
                f"""
                SELECT b.id_board
                FROM topics AS t
                    INNER JOIN boards AS b ON (b.id_board = t.id_board)
                WHERE t.id_topic = ?
                    AND {self.db.query_see_board('b')}{approved}
                LIMIT 1
                """,
                (topic,)
            )
            if row is None:
                errors.add("topic_gone")
                return []
            return [row["id_board"]]

        if self.db.viewer.is_admin and (advanced or query_boards):
            return query_boards

        where = [self.db.query_see_board("b"), "b.redirect = ''"]
        if self.config.recycle_board:
            where.append(f"b.id_board != {int(self.config.recycle_board)}")
        if query_boards:
            where.append(f"b.id_board IN ({', '.join(str(b) for b in query_boards)})")

        rows = self.db.query(
            f"SELECT b.id_board FROM boards AS b WHERE {' AND '.join(where)} ORDER BY b.id_board"
        )
        boards = [row["id_board"] for row in rows]

        if not boards:
            errors.add("no_boards_selected")

        return boards

    def board_query(self, brd: List[int]) -> str:
        """
        SQL tail filtering on board ids.

        Empty when every board is searched; "!= recycle" when all but the
        recycle board are.
        """
        if not brd:
            return ""

        num_boards = self.db.count_boards()
        recycle = self.config.recycle_board

        if len(brd) == num_boards:
            return ""
        if len(brd) == num_boards - 1 and recycle and recycle not in brd:
            return f"!= {int(recycle)}"
        return "IN (" + ", ".join(str(int(b)) for b in brd) + ")"


def build_query(db, config: SearchConfig, raw_params: Dict[str, Any], encoded: Optional[str] = None,
                postmod_active: bool = False) -> Tuple[SearchQuery, SearchErrors]:
    """Convenience wrapper around QueryBuilder.build."""
    return QueryBuilder(db, config, postmod_active).build(raw_params, encoded)
