"""
Result assembler: reads one page of scored rows and loads what the page
shows about each message, its topic, board, category and posters.
"""

from typing import Dict, List

from ..core import get_logger
from .models import MessageResult, ResultPage, ResultRow, SearchQuery

logger = get_logger(__name__)


SORT_EXPRESSIONS = {
    "relevance": "lsr.relevance",
    "num_replies": "t.num_replies",
    "id_msg": "lsr.id_msg",
}


class ResultAssembler:
    """
    Builds ResultPage objects from the results log.

    Args:
        db: Database session, its viewer decides participation flags.
        postmod_active: Unapproved messages are left out.
    """

    def __init__(self, db, postmod_active: bool = False):
        self.db = db
        self.postmod_active = postmod_active

    def page_rows(self, search_id: int, query: SearchQuery, start: int, limit: int) -> List[ResultRow]:
        """The scored rows of the page window, in display order."""
        sort = query.sort if query.sort in SORT_EXPRESSIONS else "relevance"
        if sort == "num_replies" and query.topic:
            sort = "id_msg"
        sort_dir = "ASC" if query.sort_dir == "asc" else "DESC"

        order_by = f"{SORT_EXPRESSIONS[sort]} {sort_dir}"
        if sort != "id_msg":
            order_by += f", lsr.id_msg {sort_dir}"

        join = "\n    INNER JOIN topics AS t ON (t.id_topic = lsr.id_topic)" if sort == "num_replies" else ""

        rows = self.db.query(
            f"""
            SELECT lsr.id_topic, lsr.id_msg, lsr.relevance, lsr.num_matches
            FROM log_search_results AS lsr{join}
            WHERE lsr.id_search = ?
            ORDER BY {order_by}
            LIMIT ? OFFSET ?
            """,
            (search_id, limit, start)
        )

        return [
            ResultRow(
                id_topic=row["id_topic"],
                id_msg=row["id_msg"],
                relevance=row["relevance"],
                num_matches=row["num_matches"]
            )
            for row in rows
        ]

    def count_results(self, search_id: int) -> int:
        row = self.db.query_one(
            "SELECT COUNT(*) AS count FROM log_search_results WHERE id_search = ?",
            (search_id,)
        )
        return int(row["count"])

    def load_messages(self, msg_list: List[int], limit: int) -> List[MessageResult]:
        """
        Full data for the listed messages, in the order of msg_list.

        Args:
            msg_list: Message ids in page order.
            limit: Maximum number of messages.
        """
        if not msg_list:
            return []

        placeholders = ", ".join("?" for _ in msg_list)
        approved = "\n                AND m.approved = 1" if self.postmod_active else ""

        rows = self.db.query(
            f"""
            SELECT
                m.id_msg, m.subject, m.poster_name, m.poster_email, m.poster_time, m.id_member,
                m.icon, m.body,
                first_m.id_msg AS first_msg, first_m.subject AS first_subject,
                COALESCE(first_mem.real_name, first_m.poster_name) AS first_member_name,
                last_m.id_msg AS last_msg, last_m.poster_time AS last_poster_time,
                COALESCE(last_mem.real_name, last_m.poster_name) AS last_member_name,
                t.id_topic, t.is_sticky, t.locked, t.num_replies, t.num_views, t.num_likes,
                b.id_board, b.name AS board_name, c.id_cat, c.name AS cat_name
            FROM messages AS m
                INNER JOIN topics AS t ON (t.id_topic = m.id_topic)
                INNER JOIN boards AS b ON (b.id_board = t.id_board)
                INNER JOIN categories AS c ON (c.id_cat = b.id_cat)
                INNER JOIN messages AS first_m ON (first_m.id_msg = t.id_first_msg)
                INNER JOIN messages AS last_m ON (last_m.id_msg = t.id_last_msg)
                LEFT JOIN members AS first_mem ON (first_mem.id_member = first_m.id_member)
                LEFT JOIN members AS last_mem ON (last_mem.id_member = last_m.id_member)
            WHERE m.id_msg IN ({placeholders}){approved}
            """,
            tuple(msg_list)
        )

        position = {id_msg: index for index, id_msg in enumerate(msg_list)}
        rows = sorted(rows, key=lambda row: position[row["id_msg"]])[:limit]

        return [
            MessageResult(
                id_msg=row["id_msg"],
                id_topic=row["id_topic"],
                id_board=row["id_board"],
                board_name=row["board_name"],
                id_cat=row["id_cat"],
                cat_name=row["cat_name"],
                subject=row["subject"],
                body=row["body"],
                id_member=row["id_member"],
                poster_name=row["poster_name"],
                poster_time=row["poster_time"],
                icon=row["icon"],
                first_msg=row["first_msg"],
                first_subject=row["first_subject"],
                first_member_name=row["first_member_name"],
                last_msg=row["last_msg"],
                last_member_name=row["last_member_name"],
                last_poster_time=row["last_poster_time"],
                is_sticky=bool(row["is_sticky"]),
                locked=bool(row["locked"]),
                num_replies=row["num_replies"],
                num_views=row["num_views"],
                num_likes=row["num_likes"]
            )
            for row in rows
        ]

    def load_posters(self, msg_list: List[int], limit: int) -> List[int]:
        """Distinct member ids who posted the listed messages, guests excluded."""
        if not msg_list:
            return []

        placeholders = ", ".join("?" for _ in msg_list)
        rows = self.db.query(
            f"""
            SELECT DISTINCT id_member
            FROM messages
            WHERE id_member != 0
                AND id_msg IN ({placeholders})
            LIMIT ?
            """,
            (*msg_list, limit)
        )
        return [row["id_member"] for row in rows]

    def load_participation(self, topic_list: List[int]) -> Dict[int, bool]:
        """Whether the viewer posted in each listed topic."""
        participants = {id_topic: False for id_topic in topic_list}
        id_member = self.db.viewer.id_member

        if not topic_list or not id_member:
            return participants

        placeholders = ", ".join("?" for _ in topic_list)
        rows = self.db.query(
            f"""
            SELECT DISTINCT id_topic
            FROM messages
            WHERE id_member = ?
                AND id_topic IN ({placeholders})
            """,
            (id_member, *topic_list)
        )
        for row in rows:
            participants[row["id_topic"]] = True

        return participants

    def assemble_page(self, search_id: int, query: SearchQuery, start: int, limit: int) -> ResultPage:
        """
        Build one page of results.

        Args:
            search_id: Search whose results are read.
            query: The parsed request, for its sort.
            start: Offset of the first row.
            limit: Rows per page.

        Returns:
            ResultPage; is_empty() is True when no message could be loaded.
        """
        rows = self.page_rows(search_id, query, start, limit)
        msg_list = [row.id_msg for row in rows]

        messages = self.load_messages(msg_list, limit)
        participants = self.load_participation(list(dict.fromkeys(row.id_topic for row in rows)))

        by_msg = {row.id_msg: row for row in rows}
        for message in messages:
            row = by_msg[message.id_msg]
            message.relevance = row.display_relevance
            message.num_matches = row.num_matches
            message.participated = participants.get(message.id_topic, False)

        page = ResultPage(
            rows=rows,
            messages=messages,
            posters=self.load_posters(msg_list, limit),
            participants=participants,
            total_results=self.count_results(search_id),
            start=start,
            limit=limit
        )

        logger.debug(f"Search {search_id}: page at {start} has {len(messages)} message(s)")
        return page
