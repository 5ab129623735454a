"""Person and Source records — KuzuDB version.

Every function takes a kuzu connection first and returns plain dicts.
Optional attributes that are None are left off the node, so they read
back as NULL/None.
"""
import logging
import uuid
from datetime import datetime, timezone
import kuzu

logger = logging.getLogger(__name__)

PERSON_TYPES = ("PERSON", "PROPHET", "MESSENGER", "MESSENGER_PROPHET")
STATUSES = ("PENDING_REVIEW", "APPROVED", "REJECTED")
ELIGIBLE_STATUS = "APPROVED"

# (dict key, Person column)
_PERSON_FIELDS = (
    ("id", "id"),
    ("slug", "slug"),
    ("name", "name"),
    ("type", "person_type"),
    ("gender", "gender"),
    ("kunya", "kunya"),
    ("laqab", "laqab"),
    ("birth_year", "birth_year"),
    ("death_year", "death_year"),
    ("father_id", "father_id"),
    ("mother_id", "mother_id"),
    ("variant_group", "variant_group"),
    ("narration", "narration"),
    ("is_canonical", "is_canonical"),
    ("biography_md", "biography_md"),
    ("status", "status"),
    ("created_at", "created_at"),
    ("updated_at", "updated_at"),
)
_PERSON_RETURN = ", ".join(f"p.{col}" for _key, col in _PERSON_FIELDS)

_SOURCE_FIELDS = ("id", "title", "author", "url", "citation", "notes", "updated_at")
_SOURCE_RETURN = ", ".join(f"s.{col}" for col in _SOURCE_FIELDS)


class RecordStoreError(Exception):
    """The record store failed to answer a query."""


def _execute(conn: kuzu.Connection, query: str, params: dict | None = None):
    try:
        if params:
            return conn.execute(query, params)
        return conn.execute(query)
    except RuntimeError as e:
        logger.error("Record store query failed: %s", e)
        raise RecordStoreError(str(e)) from e


def _rows(result) -> list[list]:
    rows = []
    while result.has_next():
        rows.append(result.get_next())
    return rows


def _row_to_person(row) -> dict:
    person = {key: value for (key, _col), value in zip(_PERSON_FIELDS, row)}
    person["type"] = person["type"] or "PERSON"
    person["is_canonical"] = bool(person["is_canonical"])
    return person


def _row_to_source(row) -> dict:
    return dict(zip(_SOURCE_FIELDS, row))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _create_clause(alias: str, label: str, values: dict) -> tuple[str, dict]:
    """CREATE pattern holding only the non-null values."""
    props = {k: v for k, v in values.items() if v is not None}
    body = ", ".join(f"{k}: ${k}" for k in props)
    return f"CREATE ({alias}:{label} {{{body}}})", props


def _set_clause(alias: str, values: dict) -> tuple[str, dict]:
    parts, params = [], {}
    for key, value in values.items():
        if value is None:
            parts.append(f"{alias}.{key} = NULL")
        else:
            parts.append(f"{alias}.{key} = ${key}")
            params[key] = value
    return "SET " + ", ".join(parts), params


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _person_columns(slug, name, person_type, gender, kunya, laqab, birth_year, death_year,
                    father_id, mother_id, variant_group, narration, is_canonical,
                    biography_md, status) -> dict:
    """Validate person attributes and map them to Person columns."""
    slug = _clean(slug)
    name = _clean(name)
    if not slug:
        raise ValueError("slug is required")
    if not name:
        raise ValueError("name is required")
    person_type = person_type or "PERSON"
    if person_type not in PERSON_TYPES:
        raise ValueError(f"Unknown person type: {person_type}")
    if status not in STATUSES:
        raise ValueError(f"Unknown moderation status: {status}")
    if birth_year is not None and death_year is not None and death_year < birth_year:
        raise ValueError("death_year cannot precede birth_year")
    return {
        "slug": slug,
        "name": name,
        "person_type": person_type,
        "gender": _clean(gender),
        "kunya": _clean(kunya),
        "laqab": _clean(laqab),
        "birth_year": birth_year,
        "death_year": death_year,
        "father_id": _clean(father_id),
        "mother_id": _clean(mother_id),
        "variant_group": _clean(variant_group),
        "narration": _clean(narration),
        "is_canonical": bool(is_canonical),
        "biography_md": biography_md or None,
        "status": status,
    }


# ── Person ──

def create_person(conn: kuzu.Connection, slug: str, name: str, person_type: str = "PERSON",
                  gender: str | None = None, kunya: str | None = None, laqab: str | None = None,
                  birth_year: int | None = None, death_year: int | None = None,
                  father_id: str | None = None, mother_id: str | None = None,
                  variant_group: str | None = None, narration: str | None = None,
                  is_canonical: bool = True, biography_md: str | None = None,
                  status: str = "PENDING_REVIEW", person_id: str | None = None) -> dict:
    """Create a person record. Raises ValueError on invalid or duplicate slug."""
    values = _person_columns(slug, name, person_type, gender, kunya, laqab, birth_year,
                             death_year, father_id, mother_id, variant_group, narration,
                             is_canonical, biography_md, status)
    if get_person_by_slug(conn, values["slug"]):
        raise ValueError(f"A person with slug '{values['slug']}' already exists")
    pid = _clean(person_id) or str(uuid.uuid4())
    if get_person(conn, pid):
        raise ValueError(f"A person with id '{pid}' already exists")
    now = _now()
    query, params = _create_clause("p", "Person", {"id": pid, **values,
                                                   "created_at": now, "updated_at": now})
    _execute(conn, query, params)
    return get_person(conn, pid)


def _create_kwargs(row: dict) -> dict:
    """Map an API-shaped person dict (``type``, ``id``) onto create_person keywords."""
    kwargs = {k: v for k, v in row.items() if k not in ("id", "type")}
    kwargs["person_type"] = row.get("type") or "PERSON"
    kwargs["person_id"] = row.get("id")
    return kwargs


def bulk_create_people(conn: kuzu.Connection, people: list[dict]) -> list[dict]:
    """Create many people at once. Every row is validated before anything is written."""
    batch = [_create_kwargs(row) for row in people]
    seen_slugs, seen_ids = set(), set()
    for kwargs in batch:
        values = _person_columns(
            kwargs.get("slug"), kwargs.get("name"), kwargs["person_type"],
            kwargs.get("gender"), kwargs.get("kunya"), kwargs.get("laqab"),
            kwargs.get("birth_year"), kwargs.get("death_year"),
            kwargs.get("father_id"), kwargs.get("mother_id"),
            kwargs.get("variant_group"), kwargs.get("narration"),
            kwargs.get("is_canonical", True), kwargs.get("biography_md"),
            kwargs.get("status", "PENDING_REVIEW"),
        )
        slug = values["slug"]
        if slug in seen_slugs:
            raise ValueError(f"Duplicate slug in batch: '{slug}'")
        seen_slugs.add(slug)
        if get_person_by_slug(conn, slug):
            raise ValueError(f"A person with slug '{slug}' already exists")
        pid = _clean(kwargs["person_id"])
        if pid:
            if pid in seen_ids or get_person(conn, pid):
                raise ValueError(f"A person with id '{pid}' already exists")
            seen_ids.add(pid)
    return [create_person(conn, **kwargs) for kwargs in batch]


def upsert_person(conn: kuzu.Connection, slug: str, name: str, person_type: str = "PERSON",
                  gender: str | None = None, kunya: str | None = None, laqab: str | None = None,
                  birth_year: int | None = None, death_year: int | None = None,
                  father_id: str | None = None, mother_id: str | None = None,
                  variant_group: str | None = None, narration: str | None = None,
                  is_canonical: bool = True, biography_md: str | None = None,
                  status: str = "APPROVED") -> tuple[dict, bool]:
    """Create the person, or overwrite every attribute of the record holding this slug.
    Returns (person, created)."""
    values = _person_columns(slug, name, person_type, gender, kunya, laqab, birth_year,
                             death_year, father_id, mother_id, variant_group, narration,
                             is_canonical, biography_md, status)
    existing = get_person_by_slug(conn, values["slug"])
    if existing is None:
        person = create_person(conn, person_type=values.pop("person_type"), **values)
        return person, True

    values["updated_at"] = _now()
    set_clause, params = _set_clause("p", values)
    params["pid"] = existing["id"]
    _execute(conn, f"MATCH (p:Person) WHERE p.id = $pid {set_clause}", params)
    return get_person(conn, existing["id"]), False


def get_person(conn: kuzu.Connection, person_id: str) -> dict | None:
    result = _execute(
        conn,
        f"MATCH (p:Person) WHERE p.id = $id RETURN {_PERSON_RETURN}",
        {"id": person_id},
    )
    if result.has_next():
        return _row_to_person(result.get_next())
    return None


def get_person_by_slug(conn: kuzu.Connection, slug: str) -> dict | None:
    result = _execute(
        conn,
        f"MATCH (p:Person) WHERE p.slug = $slug RETURN {_PERSON_RETURN}",
        {"slug": slug},
    )
    if result.has_next():
        return _row_to_person(result.get_next())
    return None


def list_people(conn: kuzu.Connection) -> list[dict]:
    result = _execute(conn, f"MATCH (p:Person) RETURN {_PERSON_RETURN} ORDER BY p.name, p.id")
    return [_row_to_person(row) for row in _rows(result)]


def list_eligible_people(conn: kuzu.Connection) -> list[dict]:
    """Approved canonical people, the only records allowed in the public lineage graph."""
    result = _execute(
        conn,
        f"MATCH (p:Person) WHERE p.status = $status AND p.is_canonical = true "
        f"RETURN {_PERSON_RETURN} ORDER BY p.name, p.id",
        {"status": ELIGIBLE_STATUS},
    )
    return [_row_to_person(row) for row in _rows(result)]


def list_variants(conn: kuzu.Connection, variant_group: str) -> list[dict]:
    """All narrations of a variant group, canonical record first."""
    result = _execute(
        conn,
        f"MATCH (p:Person) WHERE p.variant_group = $vgroup "
        f"RETURN {_PERSON_RETURN} ORDER BY p.is_canonical DESC, p.name, p.id",
        {"vgroup": variant_group},
    )
    return [_row_to_person(row) for row in _rows(result)]


def count_people(conn: kuzu.Connection) -> int:
    result = _execute(conn, "MATCH (p:Person) RETURN count(*)")
    if result.has_next():
        return result.get_next()[0]
    return 0


def _person_ref(conn: kuzu.Connection, person_id: str | None) -> dict | None:
    if not person_id:
        return None
    parent = get_person(conn, person_id)
    if parent is None:
        return None
    return {"id": parent["id"], "name": parent["name"], "slug": parent["slug"]}


def get_person_detail(conn: kuzu.Connection, slug: str) -> dict | None:
    """Person sheet payload: the record, its resolved parents, sibling narrations and sources."""
    person = get_person_by_slug(conn, slug)
    if person is None:
        return None
    variants = []
    if person["variant_group"]:
        variants = [
            {"slug": v["slug"], "name": v["name"], "narration": v["narration"],
             "is_canonical": v["is_canonical"]}
            for v in list_variants(conn, person["variant_group"])
            if v["id"] != person["id"]
        ]
    return {
        "id": person["id"],
        "slug": person["slug"],
        "name": person["name"],
        "type": person["type"],
        "gender": person["gender"],
        "kunya": person["kunya"],
        "laqab": person["laqab"],
        "birth_year": person["birth_year"],
        "death_year": person["death_year"],
        "narration": person["narration"],
        "biography_md": person["biography_md"],
        "father": _person_ref(conn, person["father_id"]),
        "mother": _person_ref(conn, person["mother_id"]),
        "variants": variants,
        "sources": list_person_sources(conn, person["id"]),
    }


# ── Source ──

def create_source(conn: kuzu.Connection, title: str, author: str | None = None,
                  url: str | None = None, citation: str | None = None,
                  notes: str | None = None) -> dict:
    title = _clean(title)
    if not title:
        raise ValueError("title is required")
    sid = str(uuid.uuid4())
    query, params = _create_clause("s", "Source", {
        "id": sid, "title": title, "author": _clean(author), "url": _clean(url),
        "citation": _clean(citation), "notes": notes or None, "updated_at": _now(),
    })
    _execute(conn, query, params)
    return get_source(conn, sid)


def get_source(conn: kuzu.Connection, source_id: str) -> dict | None:
    result = _execute(
        conn,
        f"MATCH (s:Source) WHERE s.id = $id RETURN {_SOURCE_RETURN}",
        {"id": source_id},
    )
    if result.has_next():
        return _row_to_source(result.get_next())
    return None


def find_source_by_title(conn: kuzu.Connection, title: str) -> dict | None:
    result = _execute(
        conn,
        f"MATCH (s:Source) WHERE s.title = $title RETURN {_SOURCE_RETURN} ORDER BY s.id LIMIT 1",
        {"title": title.strip()},
    )
    if result.has_next():
        return _row_to_source(result.get_next())
    return None


def link_source(conn: kuzu.Connection, person_id: str, source_id: str,
                note: str | None = None, page_ref: str | None = None) -> bool:
    """Link a person to a source once. Returns False if the pair was already linked."""
    result = _execute(
        conn,
        "MATCH (p:Person)-[:CITES]->(s:Source) WHERE p.id = $pid AND s.id = $sid "
        "RETURN count(*)",
        {"pid": person_id, "sid": source_id},
    )
    if result.has_next() and result.get_next()[0] > 0:
        return False
    props = {k: v for k, v in (("note", _clean(note)), ("page_ref", _clean(page_ref)))
             if v is not None}
    body = " {" + ", ".join(f"{k}: ${k}" for k in props) + "}" if props else ""
    _execute(
        conn,
        "MATCH (p:Person), (s:Source) WHERE p.id = $pid AND s.id = $sid "
        f"CREATE (p)-[:CITES{body}]->(s)",
        {"pid": person_id, "sid": source_id, **props},
    )
    return True


def list_person_sources(conn: kuzu.Connection, person_id: str) -> list[dict]:
    result = _execute(
        conn,
        "MATCH (p:Person)-[c:CITES]->(s:Source) WHERE p.id = $pid "
        "RETURN s.id, s.title, s.author, s.url, s.citation, c.note, c.page_ref "
        "ORDER BY s.title",
        {"pid": person_id},
    )
    return [
        {"id": row[0], "title": row[1], "author": row[2], "url": row[3],
         "citation": row[4], "note": row[5], "page_ref": row[6]}
        for row in _rows(result)
    ]
