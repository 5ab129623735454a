from __future__ import annotations

import argparse
import logging
from pathlib import Path

import kuzu

from lineage.db import _init_schema, _migrate, get_database
from lineage.importer import import_people, load_people_file, normalize_row

IBN_HISHAM = {
    "title": "Sirat Ibn Hisham",
    "author": "Ibn Hisham",
    "citation": "Vol. 1, p. 1-20",
    "notes": "Classical biography of Prophet Muhammad.",
}
IBN_KATHIR = {
    "title": "Al-Bidaya wa'l-Nihaya",
    "author": "Ibn Kathir",
    "citation": "Vol. 2",
    "notes": "Historical account including prophetic lineage.",
}
TABARI = {"title": "Tarikh al-Tabari", "author": "Al-Tabari", "citation": "Vol. 1"}

# Ancestors first so every father/mother slug resolves on a single pass.
SAMPLE_PEOPLE = [
    {"slug": "qusayy", "name": "Quṣayy ibn Kilāb", "gender": "male"},
    {"slug": "abd-manaf", "name": "ʿAbd Manāf ibn Quṣayy", "gender": "male",
     "father_slug": "qusayy"},
    {"slug": "hashim", "name": "Hāshim ibn ʿAbd Manāf", "gender": "male",
     "father_slug": "abd-manaf"},
    {"slug": "abdul-muttalib", "name": "ʿAbd al-Muṭṭalib ibn Hāshim", "gender": "male",
     "father_slug": "hashim"},
    {"slug": "abdullah-bin-abdul-muttalib", "name": "ʿAbdullāh ibn ʿAbd al-Muṭṭalib",
     "gender": "male", "father_slug": "abdul-muttalib",
     "sources": [dict(TABARI, note="Lineage details", page_ref="p. 55")]},
    {"slug": "amina-bint-wahb", "name": "Āminah bint Wahb", "gender": "female"},
    {"slug": "prophet-muhammad", "name": "Prophet Muhammad ﷺ", "type": "MESSENGER_PROPHET",
     "gender": "male", "kunya": "Abu al-Qasim", "birth_year": 570,
     "father_slug": "abdullah-bin-abdul-muttalib", "mother_slug": "amina-bint-wahb",
     "variant_group": "prophet-muhammad", "is_canonical": True,
     "biography_md": "The final Prophet of Islam, born in Mecca in 570 CE.",
     "sources": [dict(IBN_HISHAM, note="Biography", page_ref="1-20"),
                 dict(IBN_KATHIR, note="Historical reference", page_ref="Vol. 2")]},
    {"slug": "prophet-muhammad-ibn-ishaq-version",
     "name": "Prophet Muhammad ﷺ (Ibn Ishaq narration)", "type": "MESSENGER_PROPHET",
     "gender": "male",
     "father_slug": "abdullah-bin-abdul-muttalib", "mother_slug": "amina-bint-wahb",
     "variant_group": "prophet-muhammad", "narration": "Ibn Ishaq", "is_canonical": False,
     "status": "PENDING_REVIEW",
     "biography_md": "Variant lineage details per Ibn Ishaq."},
]


def sample_rows() -> list[dict]:
    return [normalize_row(raw, i) for i, raw in enumerate(SAMPLE_PEOPLE, start=1)]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Load person records into the lineage record store")
    parser.add_argument("file_path", nargs="?", default=None,
                        help="People file (.json or .csv); the built-in sample lineage when omitted")
    parser.add_argument("--db-path", default=None, help="KuzuDB path (defaults to DB_PATH)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if args.file_path:
        file_path = Path(args.file_path)
        if not file_path.exists():
            raise SystemExit(f"File not found: {file_path}")
        try:
            rows = load_people_file(file_path)
        except ValueError as e:
            raise SystemExit(str(e))
    else:
        rows = sample_rows()

    if args.db_path:
        database = kuzu.Database(args.db_path)
        _init_schema(database)
        _migrate(database)
    else:
        database = get_database()

    summary = import_people(kuzu.Connection(database), rows)

    for problem in summary["warnings"] + summary["errors"]:
        print(f"  - line {problem['line']}: {problem['message']}")
    print(f"Import complete: {summary['people']} people "
          f"({summary['created']} created, {summary['updated']} updated), "
          f"{summary['sources']} source links")


if __name__ == "__main__":
    main()
