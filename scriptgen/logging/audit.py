from __future__ import annotations

import json
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path

from scriptgen.core.metadata import GenerationAttempt


class GenerationAuditLogger:
    """Persists one JSON line per AI generation attempt."""

    def __init__(self, root: str | Path = "artifacts") -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.attempts_path = self.root / "generation_attempts.jsonl"

    def write(self, attempt: GenerationAttempt) -> None:
        payload = asdict(attempt)
        payload["recorded_at"] = datetime.now(UTC).isoformat()
        with self.attempts_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload) + "\n")

    def read_attempts(self) -> list[dict]:
        if not self.attempts_path.exists():
            return []
        with self.attempts_path.open("r", encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]
