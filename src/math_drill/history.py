"""Finished-session history and aggregate progress."""
from datetime import datetime

from loguru import logger

from math_drill.db import get_connection
from math_drill.models import DrillSettings, Family, SessionRecord, SessionStats


def record_session(db_path: str, stats: SessionStats, settings: DrillSettings) -> int:
    """Store a finished session and its answers. Returns the session id."""
    conn = get_connection(db_path)
    cur = conn.execute(
        """INSERT INTO drill_sessions (played_at, family, score, total, correct, is_simplified)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (
            stats.ended_at or datetime.now().isoformat(),
            Family(settings.family).value,
            stats.score,
            stats.total_questions,
            stats.correct,
            int(settings.profile_is_simplified),
        ),
    )
    session_id = cur.lastrowid
    conn.executemany(
        """INSERT INTO drill_answers (session_id, family, operand1, operand2, correct_answer,
            submitted_answer, is_correct, is_retry, elapsed_ms)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        [
            (
                session_id,
                r.question.family.value,
                r.question.operand1,
                r.question.operand2,
                r.question.correct_answer,
                r.submitted_answer,
                int(r.correct),
                int(r.question.is_retry),
                r.elapsed_ms,
            )
            for r in stats.history
        ],
    )
    conn.commit()
    conn.close()
    logger.info(f"Recorded session {session_id} ({stats.correct}/{stats.total_questions})")
    return session_id


def get_total_sessions_played(db_path: str) -> int:
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM drill_sessions").fetchone()[0]
    conn.close()
    return count


def get_recent_sessions(db_path: str, limit: int = 10) -> list[SessionRecord]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM drill_sessions ORDER BY id DESC LIMIT ?", (limit,)
    ).fetchall()
    conn.close()
    return [
        SessionRecord(
            id=r["id"],
            played_at=r["played_at"],
            family=Family(r["family"]),
            score=r["score"],
            total=r["total"],
            correct=r["correct"],
            is_simplified=bool(r["is_simplified"]),
        )
        for r in rows
    ]


def get_session_answers(db_path: str, session_id: int) -> list:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM drill_answers WHERE session_id = ? ORDER BY id", (session_id,)
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_mistakes(stats: SessionStats) -> list:
    """Answer records the learner got wrong, in the order they were asked."""
    return stats.mistakes


def calc_accuracy(correct: int, total: int) -> int:
    if total == 0:
        return 0
    return round(correct / total * 100)


def get_overall_accuracy(db_path: str, family: Family = None) -> int:
    """Accuracy across all recorded sessions, optionally for one family."""
    conn = get_connection(db_path)
    if family is None:
        row = conn.execute(
            "SELECT SUM(total) as t, SUM(correct) as c FROM drill_sessions"
        ).fetchone()
    else:
        row = conn.execute(
            "SELECT SUM(total) as t, SUM(correct) as c FROM drill_sessions WHERE family = ?",
            (Family(family).value,),
        ).fetchone()
    conn.close()
    return calc_accuracy(row["c"] or 0, row["t"] or 0)
