#!/usr/bin/env python3
"""
Rewrite legacy feature strings on projects and leads into JSON lists
"""

import argparse
import logging

from crm.database import engine
from crm.services.feature_migration import migrate_features


def main(argv=None):
    parser = argparse.ArgumentParser(description="Normalize stored project and lead features")
    parser.add_argument("--dry-run", action="store_true", help="Report the rows that would change without writing")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every rewritten row")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s %(message)s")

    with engine.begin() as connection:
        changed = migrate_features(connection, dry_run=args.dry_run)

    verb = "would change" if args.dry_run else "changed"
    for table, count in changed.items():
        print(f"{table}: {count} row(s) {verb}")
    print(f"Total: {sum(changed.values())} row(s) {verb}")
    return changed

if __name__ == "__main__":
    main()
