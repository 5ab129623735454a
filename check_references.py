#!/usr/bin/env python3
"""Check all people files in data/ for parent slugs that resolve to nobody."""

from pathlib import Path

from lineage.importer import load_people_file, find_unresolved_parents


def main():
    data_dir = Path(__file__).parent / "data"
    files = sorted(p for p in data_dir.glob("*") if p.suffix.lower() in (".json", ".csv"))

    if not files:
        print("No .json or .csv files found in data/")
        return

    print(f"Checking {len(files)} files for unresolved parents...\n")
    print("=" * 80)

    for path in files:
        print(f"\nFile: {path.name}")
        print("-" * 80)

        try:
            rows = load_people_file(path)
            problems = find_unresolved_parents(rows)

            if problems:
                print(f"Found {len(problems)} unresolved parent reference(s):\n")
                for problem in problems:
                    print(f"  - {problem}")
            else:
                print(f"OK: all parents resolve ({len(rows)} people)")

        except (OSError, ValueError) as e:
            print(f"Error processing file: {e}")

    print("\n" + "=" * 80)
    print("Reference check complete.")


if __name__ == "__main__":
    main()
