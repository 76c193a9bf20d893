from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

OutcomeSource = Literal["ai", "deterministic", "none"]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class Completion:
    content: str
    total_tokens_used: int = 0
    finish_reason: str = "stop"


@dataclass(slots=True)
class ValidationResult:
    failures: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.failures

    def __str__(self) -> str:
        return "Valid" if self.is_valid else f"Invalid ({len(self.failures)} failures)"


@dataclass(slots=True)
class GenerationOutcome:
    framework: str = ""
    page_object_code: str = ""
    test_code: str = ""
    success: bool = False
    error_message: str | None = None
    cancelled: bool = False
    source: OutcomeSource = "none"
    completed_at: datetime = field(default_factory=_utc_now)

    @classmethod
    def failure(cls, message: str, framework: str = "", cancelled: bool = False) -> "GenerationOutcome":
        return cls(framework=framework, success=False, error_message=message, cancelled=cancelled)

    def combined_code(self) -> str:
        if not self.page_object_code:
            return self.test_code
        return f"{self.page_object_code}\n\n{self.test_code}"


@dataclass(slots=True)
class UniquenessReport:
    locator: str
    match_count: int
    error: str | None = None

    @property
    def is_unique(self) -> bool:
        return self.error is None and self.match_count == 1


@dataclass(slots=True)
class GenerationAttempt:
    attempt: int
    prompt_kind: str
    provider: str
    framework: str
    failures: list[str]
    success: bool
    finish_reason: str = ""
    tokens_used: int = 0
