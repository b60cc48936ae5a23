"""SQLite run history: finished searches and their ranked matches."""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from trial_scout.core.schemas import RunSummary

_SESSIONS_TABLE = """
CREATE TABLE IF NOT EXISTS search_sessions (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    search_query    TEXT    NOT NULL,
    parsed_criteria TEXT    NOT NULL,
    search_queries  TEXT    NOT NULL,
    weights         TEXT    NOT NULL,
    total_results   INTEGER NOT NULL DEFAULT 0,
    match_count     INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT    NOT NULL
);
"""

_RESULTS_TABLE = """
CREATE TABLE IF NOT EXISTS search_results (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id          INTEGER NOT NULL REFERENCES search_sessions(id),
    rank                INTEGER NOT NULL,
    patient_name        TEXT,
    organizer_name      TEXT,
    patient_age         INTEGER,
    patient_gender      TEXT,
    patient_conditions  TEXT    NOT NULL,
    patient_location    TEXT,
    campaign_url        TEXT    NOT NULL,
    match_score         INTEGER NOT NULL,
    criteria_breakdown  TEXT    NOT NULL
);
"""


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute(_SESSIONS_TABLE)
    conn.execute(_RESULTS_TABLE)
    conn.commit()
    return conn


def save_run(
    conn: sqlite3.Connection,
    search_query: str,
    summary: RunSummary,
    created_at: datetime | None = None,
) -> int:
    """Persist a finished run and its ranked matches. Returns the session ID."""
    created = (created_at or datetime.now()).isoformat()
    with conn:
        cursor = conn.execute(
            """
            INSERT INTO search_sessions
                (search_query, parsed_criteria, search_queries, weights,
                 total_results, match_count, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                search_query,
                json.dumps(summary.criteria.to_wire()),
                json.dumps(summary.queries),
                json.dumps(summary.weights.to_wire()),
                summary.total_results,
                len(summary.matches),
                created,
            ),
        )
        session_id = cursor.lastrowid or 0
        conn.executemany(
            """
            INSERT INTO search_results
                (session_id, rank, patient_name, organizer_name, patient_age,
                 patient_gender, patient_conditions, patient_location,
                 campaign_url, match_score, criteria_breakdown)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    session_id,
                    rank,
                    m.profile.name,
                    m.profile.organizer_name,
                    m.profile.age,
                    m.profile.gender,
                    json.dumps(m.profile.conditions),
                    m.profile.location,
                    m.profile.campaign_url,
                    m.match_score,
                    json.dumps(m.breakdown),
                )
                for rank, m in enumerate(summary.matches, start=1)
            ],
        )
    return session_id


def list_runs(conn: sqlite3.Connection, limit: int = 50) -> list[dict[str, Any]]:
    """Return saved sessions, most recent first."""
    rows = conn.execute(
        """
        SELECT * FROM search_sessions
        ORDER BY created_at DESC, id DESC
        LIMIT ?
        """,
        (limit,),
    ).fetchall()
    return [
        {
            "id": row["id"],
            "search_query": row["search_query"],
            "parsed_criteria": json.loads(row["parsed_criteria"]),
            "search_queries": json.loads(row["search_queries"]),
            "weights": json.loads(row["weights"]),
            "total_results": row["total_results"],
            "match_count": row["match_count"],
            "created_at": row["created_at"],
        }
        for row in rows
    ]


def get_run_results(conn: sqlite3.Connection, session_id: int) -> list[dict[str, Any]]:
    """Return the ranked matches stored for one session."""
    rows = conn.execute(
        "SELECT * FROM search_results WHERE session_id = ? ORDER BY rank",
        (session_id,),
    ).fetchall()
    return [
        {
            "rank": row["rank"],
            "name": row["patient_name"],
            "organizer_name": row["organizer_name"],
            "age": row["patient_age"],
            "gender": row["patient_gender"],
            "conditions": json.loads(row["patient_conditions"]),
            "location": row["patient_location"],
            "campaign_url": row["campaign_url"],
            "match_score": row["match_score"],
            "breakdown": json.loads(row["criteria_breakdown"]),
        }
        for row in rows
    ]
