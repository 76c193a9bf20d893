from __future__ import annotations

import logging
import threading

from scriptgen.config.schema import AISettings
from scriptgen.core.exceptions import ConfigurationError, GenerationCancelled, ProviderError
from scriptgen.core.metadata import GenerationAttempt, GenerationOutcome
from scriptgen.core.scenario import GenerationContext
from scriptgen.core.validator import CodeValidator
from scriptgen.llm.parser import ResponseParser
from scriptgen.llm.prompts import PromptBuilder
from scriptgen.logging.audit import GenerationAuditLogger

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Generation cancelled by user"


class GenerationCoordinator:
    """Runs the bounded AI generation loop with a deterministic fallback.

    Attempts are strictly sequential. Each repair prompt is built from the
    failures of the most recent attempt only.
    """

    def __init__(
        self,
        settings: AISettings,
        llm_client,
        prompt_builder: PromptBuilder,
        response_parser: ResponseParser,
        code_validator: CodeValidator,
        deterministic,
        audit_logger: GenerationAuditLogger | None = None,
    ) -> None:
        self.settings = settings
        self.llm_client = llm_client
        self.prompt_builder = prompt_builder
        self.response_parser = response_parser
        self.code_validator = code_validator
        self.deterministic = deterministic
        self.audit_logger = audit_logger

    def generate(
        self,
        context: GenerationContext,
        cancel_event: threading.Event | None = None,
    ) -> GenerationOutcome:
        if not self.settings.enabled:
            logger.info("AI generation disabled, using deterministic generator")
            return self.deterministic.generate(context)

        try:
            return self._run(context, cancel_event)
        except GenerationCancelled:
            logger.info("Generation cancelled")
            return GenerationOutcome.failure(CANCELLED_MESSAGE, framework=context.framework, cancelled=True)
        except ConfigurationError as exc:
            logger.error("Configuration error: %s", exc)
            return GenerationOutcome.failure(f"Configuration error: {exc}", framework=context.framework)
        except Exception as exc:  # noqa: BLE001 - unexpected failures become an explicit outcome.
            logger.exception("Generation failed unexpectedly")
            return GenerationOutcome.failure(f"Generation error: {exc}", framework=context.framework)

    def _run(self, context: GenerationContext, cancel_event: threading.Event | None) -> GenerationOutcome:
        self._check_cancelled(cancel_event)
        if not self._is_healthy():
            logger.warning("Provider %s failed health check, using deterministic generator", self.settings.provider)
            return self._fallback(context)

        failures: list[str] = []
        for attempt in range(1, self.settings.max_retries + 1):
            self._check_cancelled(cancel_event)
            if attempt == 1:
                prompt_kind = "generation"
                prompt = self.prompt_builder.build_generation_prompt(context)
            else:
                prompt_kind = "repair"
                prompt = self.prompt_builder.build_repair_prompt(context, failures)
            logger.info("Generation attempt %d/%d (%s prompt)", attempt, self.settings.max_retries, prompt_kind)

            try:
                completion = self.llm_client.generate(prompt, cancel_event)
            except ProviderError as exc:
                failures = [f"Attempt {attempt} failed: {exc}"]
                self._record(attempt, prompt_kind, context, failures, success=False)
                logger.warning("Attempt %d provider error: %s", attempt, exc)
                continue

            outcome = self.response_parser.parse(
                completion.content,
                context.page_object_class_name,
                context.test_class_name,
                framework=context.framework,
                package_name=context.package_name,
            )
            if not outcome.success:
                failures = [outcome.error_message or "Response could not be parsed"]
                self._record(attempt, prompt_kind, context, failures, False, completion)
                logger.warning("Attempt %d parse failure: %s", attempt, failures[0])
                continue

            validation = self.code_validator.validate(
                outcome.page_object_code,
                outcome.test_code,
                context.page_object_class_name,
                context.test_class_name,
            )
            if validation.is_valid:
                self._record(attempt, prompt_kind, context, [], True, completion)
                logger.info("Attempt %d produced valid code", attempt)
                outcome.framework = context.framework
                return outcome

            failures = list(validation.failures)
            self._record(attempt, prompt_kind, context, failures, False, completion)
            logger.warning("Attempt %d validation failures: %s", attempt, "; ".join(failures))

        logger.warning("Retries exhausted after %d attempts, using deterministic generator", self.settings.max_retries)
        return self._fallback(context)

    def _is_healthy(self) -> bool:
        try:
            return bool(self.llm_client.health_check())
        except ProviderError as exc:
            logger.warning("Health check raised: %s", exc)
            return False

    def _fallback(self, context: GenerationContext) -> GenerationOutcome:
        return self.deterministic.generate(context)

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelled(CANCELLED_MESSAGE)

    def _record(
        self,
        attempt: int,
        prompt_kind: str,
        context: GenerationContext,
        failures: list[str],
        success: bool,
        completion=None,
    ) -> None:
        if self.audit_logger is None:
            return
        self.audit_logger.write(
            GenerationAttempt(
                attempt=attempt,
                prompt_kind=prompt_kind,
                provider=self.settings.provider,
                framework=context.framework,
                failures=failures,
                success=success,
                finish_reason=completion.finish_reason if completion is not None else "",
                tokens_used=completion.total_tokens_used if completion is not None else 0,
            )
        )
