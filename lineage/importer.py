"""Person record importer (JSON / CSV) with slug-based parent resolution — KuzuDB version."""

import csv
import io
import json
import logging
from pathlib import Path
import kuzu
from . import records

logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "slug", "name", "type", "gender", "kunya", "laqab", "father_slug", "mother_slug",
    "variant_group", "narration", "biography_md", "status",
)
YEAR_FIELDS = ("birth_year", "death_year")
TRUE_VALUES = ("true", "1", "yes", "y")
FALSE_VALUES = ("false", "0", "no", "n")


def _text(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    if not value or value.lower() in ("nan", "none", "null"):
        return None
    return value


def _year(value, line: int, field: str) -> int | None:
    if value is None or isinstance(value, int):
        return value
    text = _text(value)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        logger.warning("Line %d: ignoring non-numeric %s %r", line, field, text)
        return None


def _flag(value, default: bool = True) -> bool:
    if isinstance(value, bool):
        return value
    text = _text(value)
    if text is None:
        return default
    if text.lower() in TRUE_VALUES:
        return True
    if text.lower() in FALSE_VALUES:
        return False
    return default


def normalize_row(raw: dict, line: int) -> dict | None:
    """Clean one raw record. Returns None when slug or name is missing."""
    row = {field: _text(raw.get(field)) for field in TEXT_FIELDS}
    if not row["slug"] or not row["name"]:
        logger.warning("Line %d: skipping record without slug/name", line)
        return None
    for field in YEAR_FIELDS:
        row[field] = _year(raw.get(field), line, field)
    row["is_canonical"] = _flag(raw.get("is_canonical"), default=True)
    row["sources"] = [s for s in (raw.get("sources") or []) if isinstance(s, dict)]
    row["line"] = line
    return row


def parse_people_json(text: str) -> list[dict]:
    """Parse a JSON array of people, or an object holding a ``people`` array."""
    data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("people")
    if not isinstance(data, list):
        raise ValueError("JSON must be an array of people or contain a 'people' array")
    rows = []
    for i, raw in enumerate(data, start=1):
        if not isinstance(raw, dict):
            logger.warning("Entry %d: skipping non-object entry", i)
            continue
        row = normalize_row(raw, i)
        if row:
            rows.append(row)
    return rows


def parse_people_csv(text: str) -> list[dict]:
    """Parse CSV text with a header row of person field names."""
    reader = csv.reader(io.StringIO(text))
    header = None
    rows = []
    for cells in reader:
        if not cells or not any(c.strip() for c in cells) or cells[0].strip().startswith("#"):
            continue
        if header is None:
            header = [c.strip() for c in cells]
            continue
        raw = dict(zip(header, cells))
        row = normalize_row(raw, reader.line_num)
        if row:
            rows.append(row)
    return rows


def load_people_file(path: str | Path) -> list[dict]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(p))
    text = p.read_text(encoding="utf-8")
    suffix = p.suffix.lower()
    if suffix == ".json":
        return parse_people_json(text)
    if suffix in (".csv", ".txt"):
        return parse_people_csv(text)
    raise ValueError(f"Unsupported file format: {p.suffix}. Use .json, .csv or .txt")


def find_unresolved_parents(rows: list[dict]) -> list[str]:
    """Parent slugs that name no record in the same file."""
    slugs = {row["slug"] for row in rows}
    problems = []
    for row in rows:
        for role in ("father", "mother"):
            parent_slug = row.get(f"{role}_slug")
            if parent_slug and parent_slug not in slugs:
                problems.append(
                    f'Line {row["line"]}: {role} "{parent_slug}" of "{row["slug"]}" not found in file'
                )
    return problems


def _resolve_parent(conn: kuzu.Connection, row: dict, role: str, warnings: list) -> str | None:
    parent_slug = row.get(f"{role}_slug")
    if not parent_slug:
        return None
    parent = records.get_person_by_slug(conn, parent_slug)
    if parent is None:
        warnings.append({
            "line": row["line"], "type": f"unresolved_{role}",
            "message": f'{role.capitalize()} "{parent_slug}" of "{row["slug"]}" not found; left empty',
        })
        return None
    return parent["id"]


def _link_sources(conn: kuzu.Connection, person: dict, sources: list[dict], warnings: list, line: int) -> int:
    linked = 0
    for src in sources:
        title = _text(src.get("title"))
        if not title:
            warnings.append({"line": line, "type": "source_without_title",
                             "message": f'Source without title on "{person["slug"]}" skipped'})
            continue
        source = records.find_source_by_title(conn, title) or records.create_source(
            conn, title, author=src.get("author"), url=src.get("url"),
            citation=src.get("citation"), notes=src.get("notes"),
        )
        if records.link_source(conn, person["id"], source["id"],
                               note=src.get("note"), page_ref=src.get("page_ref")):
            linked += 1
    return linked


def import_people(conn: kuzu.Connection, rows: list[dict]) -> dict:
    """
    Upsert rows in order, keyed by slug. Parents are looked up by slug among
    stored records, so a parent must come earlier in the batch or already exist.
    """
    summary = {"people": 0, "created": 0, "updated": 0, "sources": 0,
               "warnings": [], "errors": []}
    for row in rows:
        father_id = _resolve_parent(conn, row, "father", summary["warnings"])
        mother_id = _resolve_parent(conn, row, "mother", summary["warnings"])
        try:
            person, created = records.upsert_person(
                conn, row["slug"], row["name"],
                person_type=row.get("type") or "PERSON",
                gender=row.get("gender"), kunya=row.get("kunya"), laqab=row.get("laqab"),
                birth_year=row.get("birth_year"), death_year=row.get("death_year"),
                father_id=father_id, mother_id=mother_id,
                variant_group=row.get("variant_group"), narration=row.get("narration"),
                is_canonical=row.get("is_canonical", True),
                biography_md=row.get("biography_md"),
                status=row.get("status") or "APPROVED",
            )
        except ValueError as e:
            summary["errors"].append({"line": row["line"], "type": "invalid", "message": str(e)})
            continue

        summary["people"] += 1
        summary["created" if created else "updated"] += 1
        summary["sources"] += _link_sources(conn, person, row.get("sources") or [],
                                            summary["warnings"], row["line"])

    logger.info("Imported %d people (%d created, %d updated), %d warnings",
                summary["people"], summary["created"], summary["updated"], len(summary["warnings"]))
    return summary
