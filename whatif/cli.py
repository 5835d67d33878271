"""whatif CLI -- moderate text, stories and prompts, and manage filters from the shell."""

from __future__ import annotations

import json
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from whatif import __version__
from whatif.config import load_settings
from whatif.errors import FilterValidationError, RuleLoadError
from whatif.moderation.filters import AgeRestriction, FilterStore
from whatif.moderation.models import ModerationResult
from whatif.moderation.moderator import ContentModerator
from whatif.moderation.rules import default_rules, load_rules, rules_to_dict
from whatif.utils.logging_config import configure_logging

console = Console()

_CATEGORY_SWITCHES = {
    "violence": "enable_violence_filter",
    "adult_content": "enable_adult_content_filter",
    "hate_speech": "enable_hate_speech_filter",
    "spam": "enable_spam_filter",
    "copyright": "enable_copyright_filter",
}


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Logging level (default: $WHATIF_LOG_LEVEL or INFO)")
@click.option(
    "--rules",
    "rules_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML rule tables to use instead of the built-in ones",
)
@click.option(
    "--filters-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON file holding the filter configuration",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None, rules_path: str | None, filters_file: str | None):
    """whatif -- content moderation for What-If interactive stories.

    Screens story text, whole stories and AI "what if" prompts against
    keyword tables and the administrator's filter settings.
    """
    settings = load_settings()
    configure_logging(log_level or settings.log_level)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["rules_path"] = Path(rules_path) if rules_path else settings.rules_path
    ctx.obj["filters_path"] = (
        Path(filters_file) if filters_file else settings.filters_path or settings.default_filters_path
    )


def _moderator(ctx: click.Context) -> ContentModerator:
    rules_path = ctx.obj["rules_path"]
    try:
        rules = load_rules(rules_path) if rules_path else default_rules()
    except RuleLoadError as e:
        raise click.ClickException(str(e)) from e
    return ContentModerator(store=FilterStore(path=ctx.obj["filters_path"]), rules=rules)


def _print_result(result: ModerationResult, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    verdict = "[green]APPROVED[/]" if result.is_approved else "[red]BLOCKED[/]"
    lines = [f"{verdict}  confidence {result.confidence:.2f}"]
    if result.requires_review:
        lines.append("[yellow]Requires manual review[/]")
    if result.degraded:
        lines.append(f"[red]Moderation degraded:[/] {result.error}")
    console.print(Panel("\n".join(lines), title="Moderation Result"))

    if result.categories:
        table = Table(title="Categories")
        table.add_column("Category", style="cyan")
        table.add_column("Confidence", justify="right")
        table.add_column("Severity")
        for c in result.categories:
            table.add_row(c.name, f"{c.confidence:.2f}", c.severity.value)
        console.print(table)

    if result.flags:
        table = Table(title="Flags")
        table.add_column("Type", style="red")
        table.add_column("Confidence", justify="right")
        table.add_column("Description")
        table.add_column("Suggestion", style="dim")
        for f in result.flags:
            table.add_row(f.type.value, f"{f.confidence:.2f}", f.description, f.suggestion or "")
        console.print(table)

    for s in result.suggestions:
        console.print(f"  [yellow]![/] {s}")


def _finish(ctx: click.Context, result: ModerationResult, as_json: bool) -> None:
    _print_result(result, as_json)
    if not result.is_approved:
        ctx.exit(1)


# ── Moderation ───────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.option("--type", "-t", "content_type", default="story", help="Content type label")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_context
def moderate(ctx: click.Context, text: str, content_type: str, as_json: bool):
    """Moderate TEXT. Exits with status 1 when the text is blocked."""
    _finish(ctx, _moderator(ctx).moderate_text(text, content_type), as_json)


@main.command()
@click.argument("story_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_context
def story(ctx: click.Context, story_file: str, as_json: bool):
    """Moderate a whole story read from a YAML or JSON file.

    The file holds ``title``, ``description``, ``nodes`` (each with
    ``content``) and ``branches`` (each with ``label``).
    """
    try:
        with open(story_file) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Failed to parse {story_file}: {e}") from e
    if not isinstance(data, dict) or not data.get("title"):
        raise click.ClickException("Story file must be a mapping with a 'title'")

    _finish(ctx, _moderator(ctx).moderate_story(data), as_json)


@main.command()
@click.argument("prompt_text")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_context
def prompt(ctx: click.Context, prompt_text: str, as_json: bool):
    """Moderate an AI "what if" prompt, including format suggestions."""
    _finish(ctx, _moderator(ctx).moderate_prompt(prompt_text), as_json)


# ── Filters ──────────────────────────────────────────────────────────


@main.group()
def filters():
    """Show or change the moderation filter configuration."""


def _print_filters(config) -> None:
    table = Table(title="Moderation Filters")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in config.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value) or "-"
        table.add_row(key, str(value))
    console.print(table)


@filters.command(name="show")
@click.pass_context
def filters_show(ctx: click.Context):
    """Print the current filter configuration."""
    _print_filters(FilterStore(path=ctx.obj["filters_path"]).get())


@filters.command(name="set")
@click.option("--strict/--no-strict", default=None, help="Turn strict mode on or off")
@click.option("--enable", multiple=True, type=click.Choice(sorted(_CATEGORY_SWITCHES)), help="Enable a category filter")
@click.option("--disable", multiple=True, type=click.Choice(sorted(_CATEGORY_SWITCHES)), help="Disable a category filter")
@click.option("--block-word", multiple=True, help="Add a custom blocked word")
@click.option("--block-phrase", multiple=True, help="Add a custom blocked phrase")
@click.option("--allow-type", multiple=True, help="Replace the allowed content types")
@click.option("--age", type=click.Choice([a.value for a in AgeRestriction]), default=None, help="Age restriction")
@click.pass_context
def filters_set(
    ctx: click.Context,
    strict: bool | None,
    enable: tuple,
    disable: tuple,
    block_word: tuple,
    block_phrase: tuple,
    allow_type: tuple,
    age: str | None,
):
    """Change filter settings; unspecified settings keep their value."""
    store = FilterStore(path=ctx.obj["filters_path"])
    current = store.get()

    partial: dict = {}
    if strict is not None:
        partial["strict_mode"] = strict
    for name in enable:
        partial[_CATEGORY_SWITCHES[name]] = True
    for name in disable:
        partial[_CATEGORY_SWITCHES[name]] = False
    if block_word:
        partial["custom_blocked_words"] = current.custom_blocked_words + [
            w for w in block_word if w not in current.custom_blocked_words
        ]
    if block_phrase:
        partial["custom_blocked_phrases"] = current.custom_blocked_phrases + [
            p for p in block_phrase if p not in current.custom_blocked_phrases
        ]
    if allow_type:
        partial["allowed_content_types"] = list(allow_type)
    if age:
        partial["age_restriction"] = age

    if not partial:
        console.print("[yellow]Nothing to change.[/]")
        return

    try:
        updated = store.update(partial)
    except FilterValidationError as e:
        raise click.ClickException(str(e)) from e
    console.print(f"[green]Filters updated[/] ({store.path})")
    _print_filters(updated)


@filters.command(name="reset")
@click.confirmation_option(prompt="Restore the default filter configuration?")
@click.pass_context
def filters_reset(ctx: click.Context):
    """Restore the default filter configuration."""
    store = FilterStore(path=ctx.obj["filters_path"])
    _print_filters(store.reset())


# ── Rules ────────────────────────────────────────────────────────────


@main.group()
def rules():
    """Inspect the keyword/phrase rule tables."""


@rules.command(name="show")
@click.pass_context
def rules_show(ctx: click.Context):
    """Summarise the active rule tables."""
    ruleset = _moderator(ctx).rules

    table = Table(title=f"Rule Tables ({len(ruleset.categories)} categories)")
    table.add_column("Category", style="cyan")
    table.add_column("Keywords", justify="right")
    table.add_column("Phrases", justify="right")
    table.add_column("Cap", justify="right")
    table.add_column("Reported when")
    for r in ruleset.categories:
        if r.always_report:
            when = "always"
        elif r.report_threshold is not None:
            when = f"> {r.report_threshold:.2f} or strict"
        else:
            when = "strict mode"
        if r.age_restrictions:
            when += f" (age: {', '.join(a.value for a in r.age_restrictions)})"
        cap = f"{r.fixed_confidence:.2f} fixed" if r.fixed_confidence is not None else f"{r.cap:.2f}"
        table.add_row(r.name, str(len(r.keywords)), str(len(r.phrases)), cap, when)
    console.print(table)


@rules.command(name="export")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write to a file instead of stdout")
@click.pass_context
def rules_export(ctx: click.Context, output: str | None):
    """Dump the active rule tables as YAML (a starting point for --rules)."""
    text = yaml.safe_dump(rules_to_dict(_moderator(ctx).rules), sort_keys=False, allow_unicode=True)
    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]Rules written to:[/] {output}")
    else:
        click.echo(text)


# ── Users ────────────────────────────────────────────────────────────


@main.group()
def users():
    """Manage accounts that may call the admin API."""


@users.command(name="create")
@click.argument("username")
@click.argument("email")
@click.option("--role", type=click.Choice(["admin", "moderator", "author", "reader"]), default="reader")
@click.option("--key-name", default="cli", help="Name of the API key issued for the user")
@click.pass_context
def users_create(ctx: click.Context, username: str, email: str, role: str, key_name: str):
    """Create a user and print a new API key for it (shown only once)."""
    from whatif.auth.models import Role
    from whatif.auth.store import UserStore

    store = UserStore(ctx.obj["settings"].auth_dir)
    try:
        user = store.create_user(username, email, role=Role(role))
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    _, raw_key = store.create_api_key(user.id, key_name)

    console.print(f"  Created [cyan]{user.username}[/] ({user.role.value})")
    console.print(f"  API key: [bold]{raw_key}[/]")


# ── Server ───────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, type=int, help="Port")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: str, port: int, reload: bool):
    """Run the moderation REST API."""
    import uvicorn

    console.print(f"\n[bold blue]whatif[/] -- serving on http://{host}:{port}\n")
    uvicorn.run("web.backend.app.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
