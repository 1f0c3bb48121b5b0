# Copyright (c) Syntropy Systems
"""Test doubles shared by the simfork tests."""
from __future__ import annotations

import json
import stat
import sys
from pathlib import Path

FAKE_JAVA = """\
#!{python}
import json
import sys
import time
from pathlib import Path

argv = sys.argv[1:]
with open({calls!r}, "a") as f:
    f.write(json.dumps(argv) + "\\n")

behaviors_path = Path({behaviors!r})
behaviors = json.loads(behaviors_path.read_text()) if behaviors_path.exists() else {{}}

rest = list(argv)
if "-cp" in rest:
    rest = rest[rest.index("-cp") + 2:]
else:
    while rest and rest[0].startswith("-"):
        rest.pop(0)
main = rest[0] if rest else ""
key = argv[argv.index("-s") + 1] if "-s" in argv else main

action = behaviors.get(key, behaviors.get(main, 0))
print("running " + key, flush=True)
print("stderr line", file=sys.stderr, flush=True)
if isinstance(action, str) and action.startswith("sleep:"):
    time.sleep(float(action[len("sleep:"):]))
    action = 0
sys.exit(int(action))
"""


class FakeJava:
    """An executable standing in for ``java`` that records its argv.

    Exit codes are chosen per simulation (the ``-s`` argument) or per main
    class; ``"sleep:N"`` sleeps N seconds and then succeeds.
    """

    def __init__(self, directory: Path) -> None:
        self.path = directory / "java"
        self.calls_path = directory / "calls.jsonl"
        self.behaviors_path = directory / "behaviors.json"
        self.behaviors: dict[str, int | str] = {}
        _ = self.path.write_text(
            FAKE_JAVA.format(
                python=sys.executable,
                calls=str(self.calls_path),
                behaviors=str(self.behaviors_path),
            )
        )
        self.path.chmod(self.path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    def set(self, key: str, action: int | str) -> None:
        self.behaviors[key] = action
        _ = self.behaviors_path.write_text(json.dumps(self.behaviors))

    def calls(self) -> list[list[str]]:
        if not self.calls_path.exists():
            return []
        return [json.loads(line) for line in self.calls_path.read_text().splitlines()]

    def targets(self) -> list[str | None]:
        """Simulation names passed with -s, in call order (compiler calls excluded)."""
        result: list[str | None] = []
        for argv in self.calls():
            if "io.gatling.app.Gatling" not in argv:
                continue
            result.append(argv[argv.index("-s") + 1] if "-s" in argv else None)
        return result


class RecordingLog:
    """Logger double collecting formatted messages per level."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def _record(self, level: str, msg: str, *args: object) -> None:
        self.records.append((level, msg % args if args else msg))

    def debug(self, msg: str, *args: object) -> None:
        self._record("debug", msg, *args)

    def info(self, msg: str, *args: object) -> None:
        self._record("info", msg, *args)

    def warning(self, msg: str, *args: object) -> None:
        self._record("warning", msg, *args)

    def error(self, msg: str, *args: object) -> None:
        self._record("error", msg, *args)

    def messages(self, level: str | None = None) -> list[str]:
        return [m for lvl, m in self.records if level is None or lvl == level]


