from __future__ import annotations

import glob
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .base import canonical_json


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _export_path(out_dir: str, filename_prefix: str, ext: str) -> str:
    ensure_dir(out_dir)
    dt = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return os.path.join(out_dir, f"{filename_prefix}-{dt}.{ext}")


def write_json(records: Iterable[Dict], out_dir: str, filename_prefix: str) -> str:
    """Write records as one JSON array, in the given order. Returns the path."""
    path = _export_path(out_dir, filename_prefix, "json")
    with open(path, "w", encoding="utf-8") as f:
        f.write(canonical_json(list(records)))
    return path


def write_jsonl(records: Iterable[Dict], out_dir: str, filename_prefix: str) -> str:
    """Write records to a JSONL file, skipping repeated airport codes.

    Returns the path to the written file. Repeats are only skipped within one
    call; a second call in the same second reuses the timestamped path and
    appends to it.
    """
    path = _export_path(out_dir, filename_prefix, "jsonl")
    seen: set = set()
    with open(path, "a", encoding="utf-8") as f:
        for rec in records:
            key = rec.get("airportCode")
            if key in seen:
                continue
            seen.add(key)
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")
    return path


def latest_export(out_dir: str, filename_prefix: str = "airports") -> Optional[str]:
    """Newest .json/.jsonl export in out_dir (timestamps sort lexically)."""
    paths = glob.glob(os.path.join(out_dir, f"{filename_prefix}-*.json"))
    paths += glob.glob(os.path.join(out_dir, f"{filename_prefix}-*.jsonl"))
    if not paths:
        return None
    return max(paths, key=os.path.basename)


def load_records(path: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        if path.endswith(".jsonl"):
            return [json.loads(line) for line in f if line.strip()]
        return json.load(f)
