"""Command-line tools for administering plagiarism review data."""
from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich import print
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .anonymize import anonymize_all, parse_anonymized_filename
from .config import AppConfig
from .drafts import AnnotationDraft
from .errors import PlagAnnotateError
from .export import case_summary, export_judgments
from .metrics import decision_agreement
from .review_queue import build_review_queue, load_review_queue, restrict_to_queue, write_review_queue
from .shared.database import Database
from .shared.highlights import color_for, group_matches
from .store import AssessmentStore
from .users import IdentityProvider

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Plagiarism review admin CLI")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj


def _open_db(config: AppConfig) -> Database:
    return config.database()


def _store(config: AppConfig) -> AssessmentStore:
    return AssessmentStore(_open_db(config), config.repository())


@contextlib.contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except (PlagAnnotateError, ValueError) as exc:
        print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)


def _version(value: bool) -> None:
    if value:
        print(f"plagannotate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    data_root: Optional[Path] = typer.Option(None, help="Directory holding the *-jplag datasets"),
    db: Optional[Path] = typer.Option(None, help="SQLite file storing users and judgments"),
    log_level: Optional[str] = typer.Option(None, help="Logging level"),
    version: bool = typer.Option(False, "--version", callback=_version, is_eager=True),
) -> None:
    config = AppConfig.from_env(data_root=data_root, database_path=db, log_level=log_level)
    _configure_logging(config.log_level)
    ctx.obj = config


@app.command("init-db")
def init_db(ctx: typer.Context) -> None:
    """Create the annotation database, migrating legacy tables if present."""
    config = _config(ctx)
    with _reported_errors():
        _open_db(config)
    print(f"Annotation database ready at {config.database_path}")


@app.command("add-user")
def add_user(ctx: typer.Context, username: str = typer.Argument(...)) -> None:
    with _reported_errors():
        user = IdentityProvider(_open_db(_config(ctx))).register(username)
    print(f"Registered user {user.username} (id {user.user_id})")


@app.command()
def datasets(ctx: typer.Context) -> None:
    names = _config(ctx).repository().list_datasets()
    if not names:
        print("No datasets found")
        return
    for name in names:
        print(name)


@app.command()
def cases(
    ctx: typer.Context,
    dataset: str = typer.Argument(...),
    user: Optional[str] = typer.Option(None, help="Show this reviewer's decisions"),
    queue: Optional[Path] = typer.Option(None, help="Restrict to a review queue JSON file"),
) -> None:
    """List a dataset's cases with anonymized names and MAX similarity."""
    config = _config(ctx)
    repository = config.repository()
    with _reported_errors():
        resolved = repository.resolve_dataset(dataset)
        listed = repository.list_cases(resolved)
        # anonymize before narrowing so IDs match ``show-case``
        names, _table = anonymize_all(case.filename for case in listed)
        if queue is not None:
            entries = load_review_queue(queue)
            listed = restrict_to_queue(listed, entries, resolved)
            names.update(
                (entry.original_filename, entry.anonymized_filename)
                for entry in entries
                if entry.dataset == resolved
            )
        decisions = _store(config).get_decisions(user, resolved) if user else {}
    table = Table(title=f"Cases in {resolved}")
    table.add_column("Case")
    table.add_column("Similarity", justify="right")
    if user:
        table.add_column("Decision")
    for case in listed:
        similarity = case.similarity
        row = [names[case.filename], f"{similarity:.4f}" if similarity is not None else "-"]
        if user:
            decision = decisions.get(case.filename)
            row.append(str(decision["level"]) if decision else "pending")
        table.add_row(*row)
    print(table)


@app.command("build-queue")
def build_queue(
    ctx: typer.Context,
    output: Path = typer.Option(Path("selected_cases.json"), help="Where to write the queue"),
    k: Optional[int] = typer.Option(None, help="Cases per dataset"),
) -> None:
    """Select a similarity-stratified review queue per dataset."""
    config = _config(ctx)
    with _reported_errors():
        entries, table = build_review_queue(config.repository(), k or config.sample_size)
        write_review_queue(output, entries)
    print(f"Selected {len(entries)} cases ({len(table)} users) and saved to {output}")


@app.command("show-case")
def show_case(
    ctx: typer.Context,
    dataset: str = typer.Argument(...),
    filename: str = typer.Argument(...),
    user: Optional[str] = typer.Option(None, help="Include this reviewer's assessments"),
) -> None:
    """Summarize a case's file pairs and matches."""
    config = _config(ctx)
    repository = config.repository()
    with _reported_errors():
        report = repository.load_case(dataset, filename)
        assessed = _store(config).assessments_by_index(user, report.dataset, filename) if user else {}
        # IDs must agree with the ``cases`` listing, so anonymize the whole dataset.
        listed = [case.filename for case in repository.list_cases(report.dataset)]
        names, _table = anonymize_all(listed if filename in listed else listed + [filename])
    user_a, user_b = parse_anonymized_filename(names[filename])
    print(f"[bold]Case {names[filename]}[/bold] ({report.dataset})")
    for key, value in sorted(report.similarities.items()):
        if isinstance(value, (int, float)):
            print(f"  {key}: {value:.4f}")
    for number, group in enumerate(group_matches(report.matches), start=1):
        table = Table(title=f"Pair {number}: {group.file_a} ({user_a}) vs {group.file_b} ({user_b})")
        table.add_column("Match", justify="right")
        table.add_column("First lines")
        table.add_column("Second lines")
        table.add_column("Color")
        table.add_column("Level", justify="right")
        for match in group.matches:
            stored = assessed.get(match.index)
            table.add_row(
                str(match.index),
                f"{match.start_in_first.line}-{match.end_in_first.line}",
                f"{match.start_in_second.line}-{match.end_in_second.line}",
                color_for(match.index),
                str(stored["level"]) if stored else "-",
            )
        print(table)


@app.command()
def assess(
    ctx: typer.Context,
    dataset: str = typer.Argument(...),
    filename: str = typer.Argument(...),
    user: str = typer.Option(...),
    match_index: List[int] = typer.Option(..., "--match", help="Match index to judge"),
    level: int = typer.Option(...),
    comment: Optional[str] = typer.Option(None),
) -> None:
    """Record a level for one or more matches, keeping the other stored judgments."""
    config = _config(ctx)
    with _reported_errors():
        store = _store(config)
        report = config.repository().load_case(dataset, filename)
        known = {match.index for match in report.matches}
        draft = AnnotationDraft.from_assessments(store.get_assessments(user, report.dataset, filename))
        for index in match_index:
            if index not in known:
                raise ValueError(f"Case has no match {index}")
            draft = draft.update(index, level=level)
            if comment is not None:
                draft = draft.update(index, comment=comment)
        items = draft.to_items(report.matches, include_untouched=False)
        count = store.save_assessments(user, report.dataset, filename, items)
    print(f"Saved {count} assessment(s)")


@app.command()
def assessments(
    ctx: typer.Context,
    dataset: str = typer.Argument(...),
    filename: str = typer.Argument(...),
    user: str = typer.Option(...),
) -> None:
    with _reported_errors():
        rows = _store(_config(ctx)).get_assessments(user, dataset, filename)
    if not rows:
        print("No assessments stored")
        return
    table = Table(title=f"Assessments by {user}")
    table.add_column("Match", justify="right")
    table.add_column("Level", justify="right")
    table.add_column("Comment")
    table.add_column("Updated")
    for row in rows:
        table.add_row(str(row.match_index), str(row.level), row.comment or "", row.timestamp)
    print(table)


@app.command()
def decide(
    ctx: typer.Context,
    dataset: str = typer.Argument(...),
    filename: str = typer.Argument(...),
    user: str = typer.Option(...),
    level: int = typer.Option(...),
    comment: Optional[str] = typer.Option(None),
) -> None:
    """Record the overall decision for a case."""
    with _reported_errors():
        decision = _store(_config(ctx)).save_decision(user, dataset, filename, level, comment)
    print(f"Decision {decision.level} saved for {filename}")


@app.command()
def export(
    ctx: typer.Context,
    output_dir: Path = typer.Option(Path("exports"), help="Directory for CSV and JSONL files"),
    dataset: Optional[str] = typer.Option(None),
) -> None:
    config = _config(ctx)
    with _reported_errors():
        resolved = config.repository().resolve_dataset(dataset) if dataset else None
        db = _open_db(config)
        paths = export_judgments(db, output_dir, resolved)
        summary = case_summary(db, resolved)
    print(f"Exports written to {output_dir}")
    if not summary.empty:
        table = Table(title="Decision summary")
        for column in summary.columns:
            table.add_column(str(column))
        for record in summary.itertuples(index=False):
            table.add_row(*[f"{value:.2f}" if isinstance(value, float) else str(value) for value in record])
        print(table)
    LOGGER.debug("Export paths: %s", paths)


@app.command()
def agreement(
    ctx: typer.Context,
    dataset: str = typer.Argument(...),
    user: Optional[List[str]] = typer.Option(None, help="Reviewers to compare (default: all)"),
) -> None:
    """Inter-reviewer agreement on case decisions."""
    with _reported_errors():
        levels = _store(_config(ctx)).decision_levels(dataset, user or None)
    report = decision_agreement(levels)
    if len(report.reviewers) < 2:
        print("Need decisions from at least two reviewers")
        return
    print(f"Shared cases: {len(report.shared_cases)}")
    for (a, b), kappa in report.pairwise_kappa.items():
        print(f"Cohen's kappa {a} vs {b}: {kappa:.3f}")
    if report.fleiss is not None:
        print(f"Fleiss kappa: {report.fleiss:.3f}")
    print(f"Percent agreement: {report.percent:.3f}")


if __name__ == "__main__":
    app()
