"""CLI entry point: score a saved questionnaire, or verify a result token."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.status import Status
from rich.table import Table

from .config import ConfigurationError, Settings, resolve_signing_secret
from .main import check_seo, new_quiz_id, run_quiz
from .models import QuestionnaireAnswers, Submission
from .result_token import verify

BAND_STYLES = {"green": "bold green", "yellow": "bold yellow", "orange": "bold dark_orange", "red": "bold red"}


def _score(args, settings: Settings, console: Console) -> int:
    data = json.loads(Path(args.answers).read_text())
    answers = QuestionnaireAnswers.from_dict(data.get("answers", data))
    submission = Submission(
        quiz_id=data.get("quizId") or new_quiz_id(),
        email=data.get("email", ""),
        answers=answers,
    )

    if args.seo:
        status = Status("[bold cyan]Checking SEO rankings...[/]", console=console)
        status.start()
        try:
            seo = asyncio.run(check_seo(answers, settings))
        finally:
            status.stop()
        if seo is None:
            console.print("[yellow]SEO check skipped (no DataForSEO credentials or no listing).[/]")
        else:
            submission = replace(submission, answers=answers.with_seo(seo))
            _print_rankings(console, seo)

    outcome = asyncio.run(run_quiz(submission, settings, deliver=args.deliver))
    result = outcome.result

    console.print(
        f"\n[bold]Score:[/] [{BAND_STYLES.get(result.band, 'bold')}]{result.score} ({result.band})[/]"
    )
    console.print(f"[bold]Forecast:[/] {result.forecast}")
    console.print(f"[bold]Guarantee:[/] {result.guarantee_status}")
    for i, move in enumerate(result.top_moves, 1):
        console.print(f"  {i}. {move}")
    console.print(f"\n[bold]Token:[/] {outcome.token}")
    if outcome.delivery is not None:
        d = outcome.delivery
        console.print(f"[dim]Delivered to {d.succeeded}/{d.attempted} sinks[/]")
    return 0


def _print_rankings(console: Console, seo) -> None:
    table = Table(title="SEO rankings")
    table.add_column("Keyword")
    table.add_column("Volume", justify="right")
    table.add_column("Organic", justify="right")
    table.add_column("Map pack", justify="right")
    table.add_column("Missed/mo", justify="right")
    for r in seo.rankings:
        table.add_row(
            r.keyword,
            f"{r.search_volume:,}",
            str(r.current_rank or "-"),
            str(r.map_pack_position or "-"),
            f"{r.missed_leads_per_month:,}",
        )
    console.print(table)
    console.print(
        f"[bold]Missed leads/month:[/] {seo.total_missed_leads:,}  "
        f"[bold]Top opportunity:[/] {seo.top_opportunity or '-'}"
    )


def _verify(args, settings: Settings, console: Console) -> int:
    summary = verify(args.token, resolve_signing_secret(settings))
    if summary is None:
        console.print("[bold red]Invalid token[/]")
        return 1
    console.print_json(json.dumps(summary.to_dict()))
    return 0


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="pipeline-score",
        description="Score a contractor questionnaire and issue a signed result token.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show log output")
    sub = parser.add_subparsers(dest="command", required=True)

    score_parser = sub.add_parser("score", help="Score a questionnaire JSON file")
    score_parser.add_argument("--answers", required=True, type=Path, help="Answers JSON (camelCase)")
    score_parser.add_argument("--seo", action="store_true", help="Run the DataForSEO ranking check first")
    score_parser.add_argument("--deliver", action="store_true", help="Send the lead to Close/Kit")

    verify_parser = sub.add_parser("verify", help="Verify a result token and print its summary")
    verify_parser.add_argument("token")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )

    console = Console()
    try:
        settings = Settings.from_env()
        handler = _score if args.command == "score" else _verify
        sys.exit(handler(args, settings, console))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/]")
        sys.exit(1)
    except (ConfigurationError, OSError, ValueError) as e:
        console.print(f"\n[bold red]Error:[/] {e}\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
