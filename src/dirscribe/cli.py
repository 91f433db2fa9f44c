"""Command-line interface for dirscribe."""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, Prompt
from rich.table import Table

from dirscribe.ai.orchestrator import apply_summaries, summarize
from dirscribe.ai.prompts import load_prompt_templates, select_template_name
from dirscribe.config import KEYED_PROVIDERS, Config, DirscribeError, ProviderName, Settings
from dirscribe.files import WILDCARD, FileFilters, collect_files
from dirscribe.gitdiff import GitDiffError, GitDiffSource
from dirscribe.models import FileEntry
from dirscribe.output import apply_outer_template, render_output, write_output
from dirscribe.progress import ProgressEvent, ProgressEventType

app = typer.Typer(
    name="dirscribe",
    help="Combine the contents of files in a directory, optionally replacing them with LLM summaries",
    no_args_is_help=True,
)

console = Console()

MAX_SUFFIX_LENGTH = 10
MAX_KEYWORD_LENGTH = 100


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return value.split(",")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


def _validate_path_filters(
    directory: Path,
    exclude_paths: list[str],
    include_paths: list[str],
) -> list[str]:
    """Check include and exclude paths against the scanned directory."""
    errors = []
    root = directory.resolve()
    resolved: dict[str, list[Path]] = {"Exclude": [], "Include": []}

    for kind, paths in (("Exclude", exclude_paths), ("Include", include_paths)):
        for path in filter(None, paths):
            full = (directory / path).resolve()
            if not full.exists():
                errors.append(f"{kind} path does not exist: {path}")
            elif not full.is_relative_to(root):
                errors.append(f"Path is outside project directory: {path}")
            else:
                resolved[kind].append(full)

    for include in resolved["Include"]:
        if any(include.is_relative_to(exclude) for exclude in resolved["Exclude"]):
            errors.append(f"Include path conflicts with exclude path: {include}")

    return errors


def _validate_commits(
    directory: Path,
    start_commit_id: str,
    end_commit_id: str | None,
) -> str | None:
    try:
        GitDiffSource(directory, start_commit_id, end_commit_id).validate()
    except GitDiffError as e:
        return str(e)
    return None


def _validate_cli_params(
    directory: Path,
    suffixes: str,
    keywords: dict[str, str | None],
    summarize_files: bool,
    apply: bool,
    diff_only: bool,
    start_commit_id: str | None,
    end_commit_id: str | None,
    output_path: Path | None,
    prompt_template_path: Path | None,
    exclude_paths: list[str],
    include_paths: list[str],
) -> None:
    """Validate CLI parameters before doing any work.

    Path filters must exist inside ``directory``. In diff mode the commits
    must resolve in the repository, with the start commit an ancestor of the
    end commit.

    Raises:
        typer.BadParameter: If any parameter is invalid
    """
    errors = []

    if not suffixes:
        errors.append("Suffixes cannot be empty")
    elif suffixes != WILDCARD:
        for suffix in suffixes.split(","):
            if not suffix:
                errors.append("Empty suffix found after splitting")
            elif not suffix.isalnum():
                errors.append(f"Invalid suffix '{suffix}': must be alphanumeric")
            elif len(suffix) > MAX_SUFFIX_LENGTH:
                errors.append(
                    f"Suffix '{suffix}' exceeds maximum length of {MAX_SUFFIX_LENGTH}"
                )

    for option, value in keywords.items():
        for keyword in _split_csv(value):
            if not keyword:
                errors.append(f"Empty keyword found in {option}")
            elif len(keyword) > MAX_KEYWORD_LENGTH:
                errors.append(
                    f"Keyword in {option} exceeds maximum length of {MAX_KEYWORD_LENGTH}"
                )
            elif not keyword.isascii():
                errors.append(f"Non-ASCII characters found in {option} keyword: {keyword}")

    if apply and not summarize_files:
        errors.append("--apply requires --summarize")
    if diff_only and not start_commit_id:
        errors.append("--start-commit-id must be provided when using --diff-only")
    if start_commit_id and not diff_only:
        errors.append("--diff-only must be set when using --start-commit-id")
    if end_commit_id and not diff_only:
        errors.append("--diff-only must be set when using --end-commit-id")
    if end_commit_id and not start_commit_id:
        errors.append("--start-commit-id must be set when using --end-commit-id")

    if output_path is not None and output_path.is_dir():
        errors.append(f"Output path is a directory: {output_path}")
    if prompt_template_path is not None and not prompt_template_path.is_file():
        errors.append(f"Template file does not exist: {prompt_template_path}")

    errors.extend(_validate_path_filters(directory, exclude_paths, include_paths))

    # Repository checks need consistent flags
    if diff_only and start_commit_id and not errors:
        error = _validate_commits(directory, start_commit_id, end_commit_id)
        if error:
            errors.append(error)

    if errors:
        raise typer.BadParameter("\n".join(errors))


@app.command()
def version() -> None:
    """Show the version and exit."""
    from dirscribe import __version__

    print(f"dirscribe {__version__}")


@app.command()
def scan(
    directory: Path = typer.Argument(..., help="Directory to process"),
    suffixes: str = typer.Argument(
        ..., help='Comma-separated list of file extensions to process (e.g. "txt,md,rs"), or "*"'
    ),
    prompt_template_path: Path | None = typer.Option(
        None, "--prompt-template-path", help="Template file to wrap the output in"
    ),
    prompt_dir: Path | None = typer.Option(
        None, "--prompt-dir", help="Directory with *.txt files overriding the summary prompts"
    ),
    output_path: Path | None = typer.Option(
        None, "--output-path", "-o", help="Write output to this file instead of the clipboard"
    ),
    dont_use_gitignore: bool = typer.Option(
        False, "--dont-use-gitignore", help="Include files ignored by .gitignore"
    ),
    summarize_files: bool = typer.Option(
        False, "--summarize", help="Replace file contents with LLM summaries"
    ),
    apply: bool = typer.Option(
        False, "--apply", help="Write summaries to the top of the summarized files"
    ),
    exclude_paths: str | None = typer.Option(
        None, "--exclude-paths", help="Comma-separated list of path prefixes to exclude"
    ),
    include_paths: str | None = typer.Option(
        None, "--include-paths", help="Comma-separated list of path prefixes to include"
    ),
    or_keywords: str | None = typer.Option(
        None, "--or-keywords", help="Only include files containing at least one keyword"
    ),
    and_keywords: str | None = typer.Option(
        None, "--and-keywords", help="Only include files containing all keywords"
    ),
    exclude_keywords: str | None = typer.Option(
        None, "--exclude-keywords", help="Exclude files containing any of these keywords"
    ),
    diff_only: bool = typer.Option(
        False, "--diff-only", help="Only show files that have differences"
    ),
    start_commit_id: str | None = typer.Option(
        None, "--start-commit-id", help="Starting commit for diff comparison"
    ),
    end_commit_id: str | None = typer.Option(
        None, "--end-commit-id", help="Ending commit for diff comparison"
    ),
    provider: str | None = typer.Option(
        None,
        "--provider",
        "-p",
        help="LLM provider (deepseek, anthropic, ollama)",
        envvar="DIRSCRIBE_PROVIDER",
    ),
    model: str | None = typer.Option(
        None, "--model", "-m", help="Model override", envvar="DIRSCRIBE_MODEL"
    ),
    max_concurrent_requests: int | None = typer.Option(
        None,
        "--max-concurrent-requests",
        min=1,
        help="Maximum number of requests in flight",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Combine file contents (or git diffs) into one blob, optionally summarized.

    Examples:
        dirscribe scan . py,md -o context.txt
        dirscribe scan src rs --summarize --apply
        dirscribe scan . py --diff-only --start-commit-id HEAD~3 --summarize
    """
    _configure_logging(verbose)
    _validate_cli_params(
        directory,
        suffixes,
        {
            "or_keywords": or_keywords,
            "and_keywords": and_keywords,
            "exclude_keywords": exclude_keywords,
        },
        summarize_files,
        apply,
        diff_only,
        start_commit_id,
        end_commit_id,
        output_path,
        prompt_template_path,
        _split_csv(exclude_paths),
        _split_csv(include_paths),
    )

    filters = FileFilters(
        suffixes=_split_csv(suffixes),
        use_gitignore=not dont_use_gitignore,
        exclude_paths=_split_csv(exclude_paths),
        include_paths=_split_csv(include_paths),
        or_keywords=_split_csv(or_keywords),
        and_keywords=_split_csv(and_keywords),
        exclude_keywords=_split_csv(exclude_keywords),
    )

    try:
        settings = None
        if summarize_files:
            settings = _build_settings(provider, model, max_concurrent_requests)

        content = asyncio.run(
            _run_scan(
                directory,
                filters,
                settings,
                prompt_dir,
                apply,
                diff_only,
                start_commit_id,
                end_commit_id,
            )
        )

        if prompt_template_path is not None:
            content = apply_outer_template(content, prompt_template_path)

        message = write_output(content, output_path)
    except KeyboardInterrupt:
        print("\n[red]Operation cancelled by user[/red]")
        raise typer.Exit(1)
    except (DirscribeError, OSError) as e:
        print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    print(f"[green]{message}[/green]")


def _build_settings(
    provider: str | None,
    model: str | None,
    max_concurrent_requests: int | None,
) -> Settings:
    environ = dict(os.environ)
    if provider:
        environ["DIRSCRIBE_PROVIDER"] = provider
    if model:
        environ["DIRSCRIBE_MODEL"] = model
    if max_concurrent_requests:
        environ["DIRSCRIBE_MAX_CONCURRENT_REQUESTS"] = str(max_concurrent_requests)
    return Settings.from_env(environ, config=Config())


async def _run_scan(
    directory: Path,
    filters: FileFilters,
    settings: Settings | None,
    prompt_dir: Path | None,
    apply: bool,
    diff_only: bool,
    start_commit_id: str | None,
    end_commit_id: str | None,
) -> str:
    """Collect files, optionally summarize them, and render the output."""
    diff_source = None
    if diff_only:
        diff_source = GitDiffSource(directory, start_commit_id, end_commit_id)
        filters.only_paths = diff_source.changed_files()

    entries = collect_files(directory, filters)
    if diff_source is not None:
        entries = [
            FileEntry(path=entry.path, content=diff_source.diff_for_file(entry.path))
            for entry in entries
        ]

    if settings is None:
        return render_output(entries, is_diff_mode=diff_only)

    templates = load_prompt_templates(prompt_dir)
    template = templates[select_template_name(diff_only, filters.uses_keywords)]

    console.print(
        f"[magenta]Summarizing {len(entries)} files with {settings.provider.value} "
        f"({settings.model})[/magenta]"
    )
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("Summarizing...", total=len(entries))

        def on_progress(event: ProgressEvent) -> None:
            if event.event_type in (ProgressEventType.FILE_DONE, ProgressEventType.FILE_FAILED):
                progress.update(
                    task_id, completed=event.current, description=escape(event.message)
                )

        results = await summarize(
            entries,
            template,
            is_diff_mode=diff_only,
            settings=settings,
            progress_callback=on_progress,
        )

    failed = [result for result in results if not result.ok]
    if failed:
        console.print(
            f"[yellow]{len(failed)} of {len(results)} files could not be summarized[/yellow]"
        )

    applied_count = None
    if apply and not diff_only:
        applied_count = len(apply_summaries(entries, results))

    return render_output(entries, results, diff_only, applied_count)


@app.command("ai-auth")
def ai_auth(
    provider: str = typer.Argument(..., help="AI provider (deepseek, anthropic)"),
) -> None:
    """Store an API key for a provider."""
    provider = provider.lower()
    if provider not in KEYED_PROVIDERS:
        print(
            f"[red]Error: Unknown provider '{provider}'. Use: {', '.join(KEYED_PROVIDERS)}[/red]"
        )
        raise typer.Exit(1)

    config = Config()

    print(f"[bold cyan]AI API Key Setup - {provider.title()}[/bold cyan]")
    print()

    if config.get_ai_api_key(provider):
        print(f"[green]✓[/green] You already have a {provider} API key stored")
        if not Confirm.ask("Would you like to replace it with a new key?"):
            return

    key_pages = {
        ProviderName.DEEPSEEK.value: "https://platform.deepseek.com/api_keys",
        ProviderName.ANTHROPIC.value: "https://console.anthropic.com/",
    }
    url = key_pages[provider]
    print(f"You can get an API key from: [link={url}]{url}[/link]")
    print()

    api_key = Prompt.ask(f"[cyan]Enter your {provider.title()} API key", password=True)
    if not api_key:
        print("[red]No API key provided[/red]")
        return

    config.set_ai_api_key(provider, api_key)


@app.command("ai-auth-status")
def ai_auth_status() -> None:
    """Show which providers have a stored API key."""
    config = Config()
    ai_keys = config.list_ai_api_keys()

    table = Table(title="AI API Key Status")
    table.add_column("Provider", style="cyan")
    table.add_column("Status", style="green")

    for provider, has_key in ai_keys.items():
        status = "✓ Configured" if has_key else "✗ Not configured"
        table.add_row(provider.title(), status)
    table.add_row("Ollama", "No key needed")

    print(table)

    if not any(ai_keys.values()):
        print()
        print(
            "[yellow]No AI API keys stored. Run [bold]dirscribe ai-auth <provider>[/bold] "
            "or export the provider's API key variable.[/yellow]"
        )


@app.command("ai-auth-remove")
def ai_auth_remove(
    provider: str = typer.Argument(..., help="AI provider (deepseek, anthropic)"),
) -> None:
    """Remove a stored API key."""
    provider = provider.lower()
    if provider not in KEYED_PROVIDERS:
        print(
            f"[red]Error: Unknown provider '{provider}'. Use: {', '.join(KEYED_PROVIDERS)}[/red]"
        )
        raise typer.Exit(1)

    config = Config()
    if not config.get_ai_api_key(provider):
        print(f"[yellow]No {provider} API key is currently stored[/yellow]")
        return

    if Confirm.ask(f"[red]Are you sure you want to remove the {provider} API key?[/red]"):
        config.remove_ai_api_key(provider)
    else:
        print("API key removal cancelled")


if __name__ == "__main__":
    app()
