"""Per-operand mastery view and weak-spot identification."""
from math_drill.db import get_connection
from math_drill.models import Family
from math_drill.weights import load_weights

UNKNOWN = "unknown"
MASTERED = "mastered"
IN_PROGRESS = "in progress"
SHAKY = "shaky"
NEEDS_WORK = "needs work"


def classify_weight(weight: float | None) -> str:
    if weight is None:
        return UNKNOWN
    if weight <= 0.8:
        return MASTERED
    if weight >= 1.5:
        return NEEDS_WORK
    if weight > 1.0:
        return SHAKY
    return IN_PROGRESS


def mastery_color(label: str) -> str:
    return {
        MASTERED: "green",
        IN_PROGRESS: "blue",
        SHAKY: "dark_orange",
        NEEDS_WORK: "red",
    }.get(label, "dim")


def grid_range(family: Family) -> range:
    if Family(family) is Family.SQUARES:
        return range(1, 31)
    return range(1, 21)


def get_mastery_grid(db_path: str, family: Family, profile: str) -> list[dict]:
    """One entry per operand in the family's grid with its stored weight."""
    weights = load_weights(db_path, family, profile)
    return [
        {
            "operand": value,
            "weight": weights.get(value),
            "label": classify_weight(weights.get(value)),
        }
        for value in grid_range(family)
    ]


def get_weakest_operands(weights: dict, limit: int = 5) -> list[tuple[int, float]]:
    """Heaviest operands first; ties go to the smaller operand."""
    ranked = sorted(weights.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]


def get_error_prone_operands(db_path: str, family: Family, threshold: float = 70.0) -> list[dict]:
    """Operands with accuracy below threshold, worst first.

    A miss counts against every operand the weight model blames: both
    operands, or the divisor and the quotient for division.
    """
    family = Family(family).value
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT operand, COUNT(*) as total,
            SUM(CASE WHEN is_correct = 0 THEN 1 ELSE 0 END) as errors
        FROM (
            SELECT CASE WHEN family = 'DIVISION' THEN correct_answer ELSE operand1 END as operand,
                is_correct
            FROM drill_answers WHERE family = ?
            UNION ALL
            SELECT operand2 as operand, is_correct
            FROM drill_answers WHERE family = ? AND operand2 IS NOT NULL
        )
        GROUP BY operand
        HAVING (CAST(total - errors AS REAL) / total) * 100 < ?
        ORDER BY (CAST(errors AS REAL) / total) DESC, operand ASC""",
        (family, family, threshold),
    ).fetchall()
    conn.close()
    return [
        {
            "operand": r["operand"],
            "total": r["total"],
            "errors": r["errors"],
            "error_rate": round((r["errors"] / r["total"]) * 100, 1),
        }
        for r in rows
    ]
