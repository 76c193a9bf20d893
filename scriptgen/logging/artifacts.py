from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from scriptgen.core.metadata import GenerationOutcome
from scriptgen.core.scenario import GenerationContext

FILE_EXTENSIONS = {
    "Selenium Java": "java",
    "Selenium C#": "cs",
}


class ArtifactManager:
    """Writes generated code and run logs to disk."""

    def __init__(self, root: str | Path = "artifacts") -> None:
        self.root = Path(root)
        self.generated_root = self.root / "generated"
        self.run_log_root = self.root / "run_logs"
        self._ensure_structure()

    def _ensure_structure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.generated_root.mkdir(parents=True, exist_ok=True)
        self.run_log_root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def timestamp() -> str:
        return datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")

    def write_outcome(
        self,
        outcome: GenerationOutcome,
        context: GenerationContext,
        timestamp: str | None = None,
    ) -> dict[str, Path]:
        stamp = timestamp or self.timestamp()
        extension = FILE_EXTENSIONS.get(context.framework, "java")
        run_dir = self.generated_root / stamp
        run_dir.mkdir(parents=True, exist_ok=True)
        paths: dict[str, Path] = {}
        if outcome.page_object_code:
            page_path = run_dir / f"{context.page_object_class_name}.{extension}"
            page_path.write_text(outcome.page_object_code, encoding="utf-8")
            paths["page_object"] = page_path
        if outcome.test_code:
            test_path = run_dir / f"{context.test_class_name}.{extension}"
            test_path.write_text(outcome.test_code, encoding="utf-8")
            paths["test"] = test_path
        return paths

    def write_run_log(self, message: str, timestamp: str | None = None) -> Path:
        stamp = timestamp or self.timestamp()
        path = self.run_log_root / f"{stamp}.log"
        path.write_text(message, encoding="utf-8")
        return path
