from __future__ import annotations

import re
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
APP_DIR = ROOT / "app"
ALLOWED = {"app/core/time_provider.py"}

PATTERNS = (
    r"\bdatetime\.now\(",
    r"\bdatetime\.utcnow\(",
    r"\bdate\.today\(",
    r"\bdatetime\.today\(",
)
COMPILED = [re.compile(pattern) for pattern in PATTERNS]


def test_clock_reads_go_through_time_provider() -> None:
    violations: list[tuple[str, int, str]] = []
    for file_path in APP_DIR.rglob("*.py"):
        relative = file_path.relative_to(ROOT).as_posix()
        if relative in ALLOWED:
            continue
        text = file_path.read_text(encoding="utf-8")
        for idx, line in enumerate(text.splitlines(), start=1):
            if any(regex.search(line) for regex in COMPILED):
                violations.append((relative, idx, line.strip()))

    assert not violations, "Direct datetime usage found:\n" + "\n".join(
        f"{path}:{line_no}: {line}" for path, line_no, line in violations
    )
