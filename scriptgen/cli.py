"""Typer CLI interface for the test script generator."""

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel

from scriptgen.config.credentials import FileCredentialStore
from scriptgen.config.loader import ConfigLoader, credential_key
from scriptgen.config.schema import SUPPORTED_PROVIDERS, GeneratorConfig
from scriptgen.core.browser import BrowserSession
from scriptgen.core.coordinator import GenerationCoordinator
from scriptgen.core.dom_query import SeleniumDomQuery
from scriptgen.core.exceptions import ConfigurationError, DomQueryError
from scriptgen.core.locator import LocatorResolver
from scriptgen.core.scenario import TestScenario, build_generation_context
from scriptgen.core.validator import CodeValidator
from scriptgen.generators.deterministic import TemplateScriptGenerator
from scriptgen.llm.client import create_text_generation_client
from scriptgen.llm.parser import ResponseParser
from scriptgen.llm.prompts import PromptBuilder
from scriptgen.logging.artifacts import ArtifactManager
from scriptgen.logging.audit import GenerationAuditLogger
from scriptgen.logging.config import setup_logging
from scriptgen.utils.dom_extract import describe_element

app = typer.Typer(
    name="scriptgen",
    help="Generate Selenium page objects and tests from recorded scenarios",
    add_completion=False,
)
console = Console()


def _load_config(config: Optional[Path]) -> GeneratorConfig:
    if config is None:
        return GeneratorConfig()
    try:
        return ConfigLoader.load(config)
    except ConfigurationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)


def _load_scenario(path: Path) -> TestScenario:
    try:
        return TestScenario.model_validate_json(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        console.print(f"[red]Error:[/red] Scenario file not found: {path}")
        raise typer.Exit(1)
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] Invalid scenario in {path}: {exc}")
        raise typer.Exit(1)


@app.command()
def generate(
    scenario_path: Path = typer.Argument(..., help="Scenario JSON file"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Generator configuration JSON"),
    framework: Optional[str] = typer.Option(None, "--framework", "-f", help="Target framework"),
    no_ai: bool = typer.Option(False, "--no-ai", help="Use templates only"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Artifacts directory"),
    show: bool = typer.Option(False, "--show", help="Print the generated code"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Generate a page object and test class for a scenario."""
    generator_config = _load_config(config)
    setup_logging(generator_config.log_level, debug)
    scenario = _load_scenario(scenario_path)

    output = generator_config.output
    context = build_generation_context(
        scenario,
        framework=framework or output.framework,
        page_object_class_name=output.page_object_class_name,
        test_class_name=output.test_class_name,
        package_name=output.package_name,
    )

    try:
        settings = ConfigLoader.resolve_api_key(generator_config.ai, FileCredentialStore())
    except ConfigurationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    if no_ai:
        settings = settings.model_copy(update={"enabled": False})
    llm_client = None
    if settings.enabled:
        try:
            llm_client = create_text_generation_client(settings)
        except ConfigurationError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise typer.Exit(1)

    artifacts_root = output_dir or Path(output.artifacts_root)
    artifact_manager = ArtifactManager(artifacts_root)
    coordinator = GenerationCoordinator(
        settings=settings,
        llm_client=llm_client,
        prompt_builder=PromptBuilder(),
        response_parser=ResponseParser(),
        code_validator=CodeValidator(),
        deterministic=TemplateScriptGenerator(),
        audit_logger=GenerationAuditLogger(artifacts_root),
    )

    console.print(
        Panel.fit(
            f"[bold]Script generation[/bold]\n\n"
            f"Scenario: {scenario.name or scenario_path.name} ({len(scenario.steps)} steps)\n"
            f"Framework: {context.framework}\n"
            f"Provider: {settings.provider if settings.enabled else 'templates only'}",
            border_style="green",
        )
    )

    cancel_event = threading.Event()
    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(coordinator.generate, context, cancel_event)
        while True:
            try:
                outcome = future.result()
                break
            except KeyboardInterrupt:
                console.print("\n[yellow]Cancelling generation...[/yellow]")
                cancel_event.set()

    timestamp = artifact_manager.timestamp()
    if not outcome.success:
        artifact_manager.write_run_log(outcome.error_message or "Generation failed", timestamp)
        status = "cancelled" if outcome.cancelled else "failed"
        console.print(f"[red]Generation {status}:[/red] {outcome.error_message}")
        raise typer.Exit(1)

    paths = artifact_manager.write_outcome(outcome, context, timestamp)
    artifact_manager.write_run_log(f"Generated via {outcome.source} for {outcome.framework}", timestamp)
    console.print(f"[green]✓[/green] Generated via {outcome.source}")
    for label, path in paths.items():
        console.print(f"  {label}: {path}")
    if show:
        console.print(outcome.combined_code(), markup=False, highlight=False)


@app.command()
def locate(
    url: str = typer.Argument(..., help="Page to open"),
    selector: str = typer.Argument(..., help="CSS selector of the element to describe"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Generator configuration JSON"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Resolve a locator definition for a live element."""
    generator_config = _load_config(config)
    setup_logging(generator_config.log_level, debug)
    browser = generator_config.browser
    try:
        with BrowserSession(browser) as driver:
            driver.get(url)
            descriptor = describe_element(driver, selector)
            resolver = LocatorResolver(SeleniumDomQuery(driver, browser.script_timeout_seconds))
            definition = resolver.resolve(descriptor)
    except (ConfigurationError, DomQueryError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    if not definition.is_resolved:
        console.print(f"[yellow]No identifying attributes found for[/yellow] {selector}")
        raise typer.Exit(1)
    console.print_json(definition.model_dump_json())


@app.command()
def frameworks():
    """List frameworks with template support."""
    for name in TemplateScriptGenerator().available_frameworks():
        console.print(name)


@app.command("store-key")
def store_key(
    provider: str = typer.Argument(..., help="Provider name"),
):
    """Save a provider API key in the local credential store."""
    normalized = provider.strip().lower()
    if normalized not in SUPPORTED_PROVIDERS:
        console.print(
            f"[red]Error:[/red] Unsupported provider: {provider}. Use one of: {', '.join(SUPPORTED_PROVIDERS)}"
        )
        raise typer.Exit(1)
    api_key = typer.prompt(f"{normalized} API key", hide_input=True)
    try:
        FileCredentialStore().set(credential_key(normalized), api_key.strip())
    except ConfigurationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Stored API key for {normalized}")


if __name__ == "__main__":
    app()
