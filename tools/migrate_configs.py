"""Resolve stored quiz config JSON files to the canonical schema.

    python -m tools.migrate_configs configs/ --out migrated/
    python -m tools.migrate_configs quiz.json --check

Exit code 0 when every file resolved, 2 when any file was rejected.
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from quiz_core import config as qc_config
from quiz_core.codec import config_to_dict
from quiz_core.errors import InvalidConfig
from quiz_core.resolver import resolve_to_latest
from quiz_core.types import calculate_total_points

log = logging.getLogger(__name__)


def collect_paths(targets: list[str]) -> list[Path]:
    paths: list[Path] = []
    for target in targets:
        p = Path(target)
        if p.is_dir():
            paths.extend(sorted(p.glob("*.json")))
        else:
            paths.append(p)
    return paths


def migrate_file(path: Path) -> dict[str, object]:
    """Resolve one file; raises InvalidConfig for unusable content."""

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidConfig(f"{path.name}: not valid JSON ({exc.msg})") from exc
    quiz = resolve_to_latest(raw)
    was_legacy = not (isinstance(raw, dict) and raw.get("version") == qc_config.CANONICAL_VERSION)
    log.info("%s: %s %s quiz, %s points", path.name, "migrated" if was_legacy else "canonical", quiz.type,
             calculate_total_points(quiz))
    return config_to_dict(quiz)


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Resolve quiz config JSON files to the canonical schema.")
    ap.add_argument("paths", nargs="+", help="JSON files or directories of JSON files")
    ap.add_argument("--out", help="directory for resolved files (default: print to stdout)")
    ap.add_argument("--check", action="store_true", help="only report, write nothing")
    ap.add_argument("--strict-blanks", action="store_true",
                    help="reject fill-in-the-blank questions with missing legacy answers")
    a = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    if a.strict_blanks:
        qc_config.STRICT_BLANKS = True

    out_dir = Path(a.out) if a.out else None
    if out_dir and not a.check:
        out_dir.mkdir(parents=True, exist_ok=True)

    failed = 0
    paths = collect_paths(a.paths)
    for path in paths:
        try:
            resolved = migrate_file(path)
        except (InvalidConfig, OSError) as exc:
            failed += 1
            log.error("%s: %s", path, exc)
            continue
        if a.check:
            continue
        text = json.dumps(resolved, indent=2, ensure_ascii=False)
        if out_dir:
            (out_dir / path.name).write_text(text + "\n", encoding="utf-8")
        else:
            print(text)

    print(f"{len(paths) - failed}/{len(paths)} config(s) resolved")
    return 2 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
