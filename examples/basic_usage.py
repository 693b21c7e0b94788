"""
tagvault: Basic Usage Example

Saves a few tagged notes and searches them by tag. Runs against an
in-memory store; pass a URL to use a real one:

    python examples/basic_usage.py http://localhost:7777
"""

import logging
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tagvault import Backend, Row, generate_key
from tagvault.connectors import MemoryConnector


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # The only secret. Lose it and the store is noise.
    key = generate_key()

    if len(sys.argv) > 1:
        backend = Backend(key, sys.argv[1])
    else:
        backend = Backend(key, connector=MemoryConnector())

    print("=" * 50)
    print("  tagvault: Searchable Encrypted Storage")
    print("=" * 50)

    notes = [
        ({"text": "Had a breakthrough idea today."}, ["journal", "ideas"]),
        ({"text": "Built the prototype. It works."}, ["journal", "work"]),
        ({"url": "https://docs.python.org"}, ["bookmark", "work"]),
    ]
    for data, tags in notes:
        saved = backend.save_row(Row.from_json(data, tags))
        print(f"Saved {saved.extra.get('id', '?')}  tags={sorted(saved.plain_tags)}")

    print(f"\nTagPairs at the store: {len(backend.all_tag_pairs())}")

    if isinstance(backend.connector, MemoryConnector):
        print("\nWhat the store sees (first row):")
        row = backend.connector.rows[0]
        print(f"  data: {row['data'][:40]}...")
        print(f"  tags: {row['tags']}")

    for tag in ["work", "journal", "nothing-here"]:
        rows = backend.rows_from_plain_tags([tag])
        print(f"\nrows tagged {tag!r}: {len(rows)}")
        for row in rows:
            print(f"  {row.json()}  {sorted(row.plain_tags)}")


if __name__ == "__main__":
    main()
