"""Fail when code under recordbook/ reads the clock without going through TimeProvider."""
from __future__ import annotations

import re
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
PACKAGE_DIR = ROOT / "recordbook"
ALLOWED = ("recordbook/core/time_provider.py",)

CLOCK_CALLS = re.compile(r"\b(?:datetime\.(?:now|utcnow|today)|date\.today)\(")


def find_violations(package_dir: Path = PACKAGE_DIR) -> list[tuple[str, int, str]]:
    violations: list[tuple[str, int, str]] = []
    for file_path in sorted(package_dir.rglob("*.py")):
        if file_path.as_posix().endswith(ALLOWED):
            continue
        for idx, line in enumerate(file_path.read_text(encoding="utf-8").splitlines(), start=1):
            if CLOCK_CALLS.search(line):
                violations.append((str(file_path.relative_to(package_dir.parent)), idx, line.strip()))
    return violations


def main() -> int:
    violations = find_violations()
    if violations:
        print("Clock reads outside TimeProvider in recordbook/:")
        for path, line_no, line in violations:
            print(f" - {path}:{line_no}: {line}")
        return 1
    print("recordbook/ reads the clock only through TimeProvider.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
