"""Typer application for browsing and installing skills."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import typer
from rich.console import Console
from rich.table import Table

from skill_catalog.catalog.cache import CacheStore
from skill_catalog.catalog.clawdhub.scan import HubScanOptions
from skill_catalog.catalog.curated_sources import get_curated_skills_sources
from skill_catalog.catalog.models import HubSource
from skill_catalog.catalog.scan import RepositoryScanOptions
from skill_catalog.catalog.service import SkillsCatalog
from skill_catalog.catalog.source import normalize_source
from skill_catalog.config import get_settings
from skill_catalog.core.exceptions import SkillCatalogError
from skill_catalog.core.logging.logger import configure_logging

if TYPE_CHECKING:
    from skill_catalog.catalog.models import InstallOutcome, ScanResult, SourceDescriptor
    from skill_catalog.catalog.service import ScanOptions

app = typer.Typer(
    help="Discover and install agent skills from GitHub repositories and ClawdHub.",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log catalog activity to stderr."),
) -> None:
    configure_logging("INFO" if verbose else get_settings().log_level)


@app.command("sources")
def sources_command() -> None:
    """List curated skill sources."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Label")
    table.add_column("Source")
    for source in get_curated_skills_sources():
        table.add_row(source.id, source.label, source.source)
    console.print(table)


@app.command("scan")
def scan_command(
    source: str = typer.Argument(..., help="owner/repo, GitHub URL or clawdhub[:catalog]"),
    include: list[str] = typer.Option([], "--include", "-i", help="Glob of skill ids to keep."),
    exclude: list[str] = typer.Option([], "--exclude", "-x", help="Glob of skill ids to drop."),
    full_info: bool = typer.Option(False, "--full-info", help="Fetch extended hub descriptions."),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", min=1, help="Hub page limit."),
) -> None:
    """Scan a source and list the skills it offers."""
    descriptor = _normalize_or_exit(source)
    options = _build_options(descriptor, include, exclude, full_info, max_pages)
    result = _run(_scan(descriptor, options))
    _print_scan(result)


@app.command("install")
def install_command(
    source: str = typer.Argument(..., help="Source the skills come from."),
    skill_ids: list[str] = typer.Argument(..., help="Skill ids as shown by `scan`."),
    target: Path = typer.Option(..., "--target", "-t", help="Directory to install skills into."),
    skip_installed: bool = typer.Option(
        True, "--skip-installed/--reinstall", help="Skip skills already installed at the same revision."
    ),
) -> None:
    """Install selected skills from a source."""
    descriptor = _normalize_or_exit(source)
    outcomes = _run(_install(descriptor, skill_ids, target, skip_installed))
    failed = False
    for outcome in outcomes:
        if outcome.status == "succeeded":
            console.print(f"[green]installed[/green] {outcome.skill_id} -> {outcome.installed_path}")
        elif outcome.status == "skipped":
            console.print(f"[yellow]skipped[/yellow] {outcome.skill_id}")
        else:
            failed = True
            console.print(f"[red]failed[/red] {outcome.skill_id}: {outcome.error}")
    if failed:
        raise typer.Exit(code=1)


def _normalize_or_exit(source: str) -> SourceDescriptor:
    try:
        return normalize_source(source)
    except SkillCatalogError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc


def _build_options(
    descriptor: SourceDescriptor,
    include: list[str],
    exclude: list[str],
    full_info: bool,
    max_pages: int | None,
) -> ScanOptions:
    if isinstance(descriptor, HubSource):
        return HubScanOptions(resolve_full_info=full_info, max_pages=max_pages)
    return RepositoryScanOptions(include=tuple(include), exclude=tuple(exclude))


def _run(coro):
    try:
        return asyncio.run(coro)
    except SkillCatalogError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc


async def _scan(descriptor: SourceDescriptor, options: ScanOptions) -> ScanResult:
    async with SkillsCatalog(CacheStore()) as catalog:
        return await catalog.scan(descriptor, options)


async def _install(
    descriptor: SourceDescriptor,
    skill_ids: list[str],
    target: Path,
    skip_installed: bool,
) -> list[InstallOutcome]:
    async with SkillsCatalog(CacheStore()) as catalog:
        result = await catalog.scan(descriptor)
        selected = []
        missing = []
        for skill_id in skill_ids:
            skill = result.find(skill_id)
            if skill is None:
                missing.append(skill_id)
            else:
                selected.append(skill)
        for skill_id in missing:
            err_console.print(f"[yellow]not found in source:[/yellow] {skill_id}")
        return await catalog.install(selected, target, skip_installed=skip_installed)


def _print_scan(result: ScanResult) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Description", overflow="fold")
    for index, skill in enumerate(result.skills, 1):
        table.add_row(str(index), skill.id, skill.name, skill.version or "-", skill.description)
    console.print(table)
    for warning in result.warnings:
        label = f"{warning.path}: " if warning.path else ""
        err_console.print(f"[yellow]warning[/yellow] {label}{warning.message}")
