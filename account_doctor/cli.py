import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown

from account_doctor.analyzers.instant import build_instant_data
from account_doctor.models import ProfileSnapshot
from account_doctor.scoring import InvalidInput, evaluate
from account_doctor.utils.patterns import parse_timestamp

load_dotenv()
app = typer.Typer()
console = Console()


def _parse_now(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = parse_timestamp(value)
    if parsed is None:
        console.print(f"[bold red]Error:[/] --now must be an ISO-8601 timestamp, got '{value}'")
        raise typer.Exit(1)
    return parsed


def _report(
    snapshot: ProfileSnapshot,
    now: datetime,
    run_diagnosis: bool,
    as_json: bool,
    output: Optional[Path],
) -> None:
    try:
        audit = evaluate(snapshot, now)
    except InvalidInput as exc:
        console.print(f"[bold red]Error:[/] profile data is unusable: {exc}")
        raise typer.Exit(1)

    instant = build_instant_data(snapshot, now)
    diagnosis = None
    if run_diagnosis:
        from openai import OpenAIError
        from account_doctor.analyzers.diagnosis import DiagnosisError, diagnose
        with console.status("[bold green]Writing diagnosis with OpenAI..."):
            try:
                diagnosis = diagnose(snapshot, audit).model_dump()
            except (OpenAIError, DiagnosisError) as exc:
                console.print(f"[bold red]Error:[/] diagnosis failed: {exc}")
                raise typer.Exit(1)

    if as_json:
        text = json.dumps(
            {"instant_data": instant, "audit": audit.model_dump(mode="json"), "diagnosis": diagnosis},
            ensure_ascii=False,
            indent=2,
        )
    else:
        from account_doctor.formatter import format_audit_report
        text = format_audit_report(audit, instant, diagnosis)

    if output:
        output.write_text(text)
        console.print(f"[bold green]✓[/] Report saved to [cyan]{output}[/]")
    elif as_json:
        console.print_json(text)
    else:
        console.print(Markdown(text))


@app.command()
def audit(
    username: str = typer.Argument(help="Instagram username, @handle or profile URL"),
    posts: int = typer.Option(12, "--posts", "-p", help="Number of recent posts to fetch"),
    now: Optional[str] = typer.Option(None, "--now", help="Score as of this ISO-8601 time (default: current time)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save report to file instead of printing"),
    diagnose: bool = typer.Option(False, "--diagnose/--no-diagnose", help="Add an OpenAI narrative diagnosis"),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of Markdown"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log scraper and scoring details"),
):
    """Scrape a public Instagram profile through Apify and audit it."""
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING)
    moment = _parse_now(now)

    from account_doctor.platforms.instagram import ApifyInstagramProvider, ProfileNotFound, ScraperError
    with console.status("[bold green]Fetching profile from Apify..."):
        try:
            snapshot = ApifyInstagramProvider(results_limit=posts).fetch_snapshot(username)
        except ProfileNotFound:
            console.print(f"[bold red]Error:[/] @{username.lstrip('@')} doesn't exist or is private")
            raise typer.Exit(1)
        except ScraperError as exc:
            console.print(f"[bold red]Error:[/] {exc}")
            raise typer.Exit(1)

    console.print(f"[dim]Fetched @{snapshot.username} · {len(snapshot.recent_posts)} recent posts[/]")
    _report(snapshot, moment, diagnose, as_json, output)


@app.command()
def score(
    snapshot_file: Path = typer.Argument(help="JSON file holding a profile snapshot or a raw Apify item"),
    raw: bool = typer.Option(False, "--raw", help="Treat the file as a raw Apify profile-scraper item"),
    now: Optional[str] = typer.Option(None, "--now", help="Score as of this ISO-8601 time (default: current time)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save report to file instead of printing"),
    diagnose: bool = typer.Option(False, "--diagnose/--no-diagnose", help="Add an OpenAI narrative diagnosis"),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of Markdown"),
):
    """Audit a snapshot saved on disk, without scraping."""
    moment = _parse_now(now)
    try:
        data = json.loads(snapshot_file.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        console.print(f"[bold red]Error:[/] could not read {snapshot_file}: {exc}")
        raise typer.Exit(1)
    if isinstance(data, list):
        data = data[0] if data else {}
    if not isinstance(data, dict):
        console.print(f"[bold red]Error:[/] expected a JSON object or a list of objects in {snapshot_file}")
        raise typer.Exit(1)

    if raw:
        from account_doctor.platforms.instagram import parse_profile
        snapshot = parse_profile(data)
    else:
        from pydantic import ValidationError
        try:
            snapshot = ProfileSnapshot.model_validate(data)
        except ValidationError as exc:
            console.print(f"[bold red]Error:[/] invalid snapshot file: {exc.error_count()} problem(s)\n{exc}")
            raise typer.Exit(1)

    _report(snapshot, moment, diagnose, as_json, output)
