"""
Mail Search CLI Entry Point.

Search, count and export archived email from the Solr core, index emails
from JSON files, and inspect the effective configuration.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mailsearch.common.exceptions import MailSearchError, ValidationError
from mailsearch.config.loader import get_config
from mailsearch.domain.models import EmailDocument, FacetQueryDefinition
from mailsearch.indexing import EmailIndexer
from mailsearch.observability import configure_logging, get_logger
from mailsearch.retrieval.criteria import SearchCriteria
from mailsearch.retrieval.engine import SearchEngineAdapter, SolrEngineAdapter
from mailsearch.retrieval.orchestrator import EmailSearchService

app = typer.Typer(help="Archived email search")
logger = get_logger(__name__)
console = Console()
err_console = Console(stderr=True)

TIME_FORMATS = ["%Y-%m-%dT%H:%M:%SZ", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d"]


def _build_engine() -> SolrEngineAdapter:
    return SolrEngineAdapter(get_config().solr)


def _build_service(engine: SearchEngineAdapter) -> EmailSearchService:
    return EmailSearchService(engine, settings=get_config().search)


def _parse_facet_queries(raw: Optional[List[str]]) -> list[FacetQueryDefinition]:
    definitions = []
    for item in raw or []:
        label, sep, query = item.partition("=")
        if not sep:
            raise ValidationError(
                f"facet query must be LABEL=QUERY, got {item!r}",
                field="facet_queries",
                rule="format",
            )
        definitions.append(FacetQueryDefinition(label=label.strip(), query=query.strip()))
    return definitions


def _criteria(
    start: datetime,
    end: datetime,
    admin_domain: str,
    query: Optional[str],
    participants: Optional[List[str]],
    page: int = 0,
    size: Optional[int] = None,
    facet_fields: Optional[List[str]] = None,
    facet_queries: Optional[List[str]] = None,
    sort: Optional[str] = None,
) -> SearchCriteria:
    return SearchCriteria(
        start=start,
        end=end,
        query=query,
        participant_emails=participants or [],
        admin_firm_domain=admin_domain,
        page=page,
        size=size if size is not None else get_config().search.default_page_size,
        facet_fields=facet_fields or [],
        facet_queries=_parse_facet_queries(facet_queries),
        sort=sort,
    )


def _fail(e: MailSearchError) -> NoReturn:
    logger.error("command_failed", error_type=type(e).__name__, error_code=e.error_code)
    err_console.print(f"[red]Error: {escape(e.message)}[/red]")
    raise typer.Exit(code=1)


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    configure_logging(get_config().system)


@app.command()
def search(
    start: datetime = typer.Option(..., formats=TIME_FORMATS, help="Start of time range (UTC, inclusive)"),
    end: datetime = typer.Option(..., formats=TIME_FORMATS, help="End of time range (UTC, inclusive)"),
    admin_domain: str = typer.Option(..., "--admin-domain", help="Admin's firm domain"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Solr query text"),
    participant: Optional[List[str]] = typer.Option(None, "--participant", "-p", help="Participant address (repeatable)"),
    page: int = typer.Option(0, help="Page number (0-based)"),
    size: Optional[int] = typer.Option(None, help="Results per page"),
    facet_field: Optional[List[str]] = typer.Option(None, "--facet-field", help="Field to facet on (repeatable)"),
    facet_query: Optional[List[str]] = typer.Option(None, "--facet-query", help="LABEL=QUERY facet (repeatable)"),
    sort: Optional[str] = typer.Option(None, help="Sort, e.g. 'timestamp desc'"),
):
    """
    Search one page of archived email.
    """
    try:
        criteria = _criteria(
            start, end, admin_domain, query, participant, page, size,
            facet_field, facet_query, sort,
        )
        with _build_engine() as engine:
            outcome = _build_service(engine).search(criteria)
    except MailSearchError as e:
        _fail(e)

    table = Table("ID", "Sent", "From", "To", "Subject")
    for doc in outcome.documents:
        table.add_row(
            doc.id,
            doc.sent_at.isoformat() if doc.sent_at else "",
            doc.from_ or "",
            ", ".join(doc.to),
            doc.subject or "",
        )
    console.print(table)
    console.print(
        f"Page {outcome.page + 1} of {outcome.total_pages} "
        f"({outcome.total_count} total)"
    )
    for label, facet in outcome.facets.items():
        console.print(f"[bold]{label}[/bold]")
        for value in facet.values:
            console.print(f"  {value.value}: {value.count}")


@app.command()
def count(
    start: datetime = typer.Option(..., formats=TIME_FORMATS),
    end: datetime = typer.Option(..., formats=TIME_FORMATS),
    admin_domain: str = typer.Option(..., "--admin-domain"),
    query: Optional[str] = typer.Option(None, "--query", "-q"),
    participant: Optional[List[str]] = typer.Option(None, "--participant", "-p"),
):
    """
    Print the number of matching emails.
    """
    try:
        criteria = _criteria(start, end, admin_domain, query, participant)
        with _build_engine() as engine:
            total = _build_service(engine).hit_count(criteria)
    except MailSearchError as e:
        _fail(e)
    typer.echo(str(total))


@app.command()
def export(
    start: datetime = typer.Option(..., formats=TIME_FORMATS),
    end: datetime = typer.Option(..., formats=TIME_FORMATS),
    admin_domain: str = typer.Option(..., "--admin-domain"),
    query: Optional[str] = typer.Option(None, "--query", "-q"),
    participant: Optional[List[str]] = typer.Option(None, "--participant", "-p"),
    sort: Optional[str] = typer.Option(None),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", help="Rows per batch"),
):
    """
    Stream every matching email to stdout as JSON lines.
    """
    exported = 0
    try:
        criteria = _criteria(start, end, admin_domain, query, participant, sort=sort)
        with _build_engine() as engine:
            for doc in _build_service(engine).stream(criteria, batch_size=batch_size):
                typer.echo(doc.model_dump_json(by_alias=True))
                exported += 1
    except MailSearchError as e:
        logger.error("export_interrupted", exported=exported)
        _fail(e)
    logger.info("export_complete", exported=exported)


@app.command()
def index(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON array of emails"),
):
    """
    Index emails from a JSON file.
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            records = json.load(f)
    except json.JSONDecodeError as e:
        err_console.print(f"[red]Error: {escape(str(path))} is not valid JSON: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if not isinstance(records, list):
        err_console.print(f"[red]Error: {escape(str(path))} must hold a JSON array of emails[/red]")
        raise typer.Exit(code=1)

    emails = []
    for position, record in enumerate(records):
        try:
            emails.append(EmailDocument.model_validate(record))
        except PydanticValidationError as e:
            first = e.errors()[0]
            where = ".".join(str(part) for part in first["loc"]) or "record"
            logger.error("invalid_email_record", position=position, error_count=e.error_count())
            err_console.print(
                f"[red]Error: email #{position} is invalid ({escape(where)}: {escape(first['msg'])})[/red]"
            )
            raise typer.Exit(code=1)

    try:
        with _build_engine() as engine:
            written = EmailIndexer(engine, get_config().solr).index_all(emails)
    except MailSearchError as e:
        _fail(e)
    typer.echo(f"Indexed {written} email(s)")


@app.command("config")
def show_config(
    output: Optional[Path] = typer.Option(None, "--output", "-o", dir_okay=False, help="Write the configuration to this JSON file"),
):
    """
    Show the effective configuration, or save it to a file.
    """
    config = get_config()
    if output is None:
        typer.echo(json.dumps(config.to_dict(), indent=2))
        return
    config.save(output)
    logger.info("config_saved", path=str(output))
    typer.echo(f"Configuration written to {output}")


if __name__ == "__main__":
    app()
