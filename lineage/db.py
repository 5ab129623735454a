"""KuzuDB embedded record store connection."""
import os
import logging
import kuzu
from pathlib import Path

logger = logging.getLogger(__name__)

DB_PATH = Path(os.environ.get("DB_PATH", Path(__file__).resolve().parent.parent / "graph_data"))
_database = None


def get_database():
    global _database
    if _database is None:
        DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        _database = kuzu.Database(str(DB_PATH))
        _init_schema(_database)
        _migrate(_database)
        logger.info("Record store opened at %s", DB_PATH)
    return _database


def _init_schema(db):
    conn = kuzu.Connection(db)

    # ── Person records ──
    # father_id / mother_id are plain references; the lineage graph is derived from them.
    conn.execute(
        "CREATE NODE TABLE IF NOT EXISTS Person("
        "id STRING, slug STRING, name STRING, person_type STRING, gender STRING, "
        "kunya STRING, laqab STRING, birth_year INT64, death_year INT64, "
        "father_id STRING, mother_id STRING, is_canonical BOOL, "
        "biography_md STRING, status STRING, created_at STRING, "
        "narration STRING, variant_group STRING, updated_at STRING, "
        "PRIMARY KEY(id))"
    )

    # ── Provenance ──
    conn.execute(
        "CREATE NODE TABLE IF NOT EXISTS Source("
        "id STRING, title STRING, author STRING, url STRING, "
        "citation STRING, notes STRING, updated_at STRING, "
        "PRIMARY KEY(id))"
    )
    conn.execute(
        "CREATE REL TABLE IF NOT EXISTS CITES("
        "FROM Person TO Source, note STRING, page_ref STRING)"
    )


def _migrate(db):
    """Add columns introduced after the first Person schema to existing databases."""
    conn = kuzu.Connection(db)

    for col in ("narration", "variant_group", "updated_at"):
        try:
            conn.execute(f"ALTER TABLE Person ADD {col} STRING")
        except RuntimeError as e:
            logger.debug("Skipping Person.%s migration: %s", col, e)


def get_conn():
    db = get_database()
    conn = kuzu.Connection(db)
    try:
        yield conn
    finally:
        conn.close()
