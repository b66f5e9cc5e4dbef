#!/usr/bin/env python3
"""
Print what an existing Library Records store file contains.

The script never writes to the store: it refuses a missing or empty
file (opening one would format a new store), opens the file read only
and only reads the region table, the id counter and the rows.

Usage:
    python inspect_store.py --path ./library_records.mem
    python inspect_store.py --path ./library_records.mem --dump books
"""

import argparse
import json
import os
import sys

from library_records_api.app.core.config import Settings
from library_records_api.app.core.storage import (
    BOOK_MEMORY_ID,
    ID_COUNTER_MEMORY_ID,
    LOAN_MEMORY_ID,
    MEMBER_MEMORY_ID,
    RESERVATION_MEMORY_ID,
    open_storage,
)
from library_records_api.app.stable import StorageError


REGION_NAMES = {
    ID_COUNTER_MEMORY_ID: "id counter",
    BOOK_MEMORY_ID: "books",
    MEMBER_MEMORY_ID: "members",
    LOAN_MEMORY_ID: "loans",
    RESERVATION_MEMORY_ID: "reservations",
}

KINDS = ("books", "members", "loans", "reservations")


def describe(storage) -> dict:
    """Return a JSON-friendly summary of ``storage``."""
    manager = storage.memory_manager
    return {
        "path": storage.path,
        "memory_pages": storage.memory.size(),
        "bucket_size_in_pages": manager.bucket_size_in_pages,
        "allocated_buckets": manager.num_allocated_buckets,
        "regions": {
            REGION_NAMES.get(memory_id, str(memory_id)): pages
            for memory_id, pages in manager.regions().items()
        },
        "id_counter": storage.id_counter.get(),
        "rows": {kind: len(getattr(storage, kind)) for kind in KINDS},
    }


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Inspect a Library Records store file (read only).")
    ap.add_argument("--path", required=True, help="Path to the store file (e.g., ./library_records.mem)")
    ap.add_argument("--dump", choices=KINDS, help="Also print every row of one entity kind")
    args = ap.parse_args(argv)

    if not os.path.exists(args.path):
        print(f"[!] Store not found: {args.path}", file=sys.stderr)
        return 1
    if os.path.getsize(args.path) == 0:
        # Opening an empty file would format a new store in it.
        print(f"[!] Store is empty: {args.path}", file=sys.stderr)
        return 1

    cfg = Settings(storage_path=args.path, storage_fsync=False)
    try:
        storage = open_storage(cfg, read_only=True)
    except StorageError as exc:
        print(f"[!] Cannot read store {args.path}: {exc}", file=sys.stderr)
        return 2

    with storage:
        print(json.dumps(describe(storage), indent=2))
        if args.dump:
            for _, record in getattr(storage, args.dump).iter():
                print(record.model_dump_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())
