"""
Terminal report for a survey run.

Loads the run analysis from the database and renders it with rich:
response counts by respondent type, a share bar chart, and a per-product
pricing table with the written conclusions.  ``--format json|csv`` writes
the same analysis to a file instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlmodel import Session

from shelfsim import services
from shelfsim.analysis import RunAnalysis, format_dollars
from shelfsim.config import get_settings
from shelfsim.db import create_db_engine, init_db
from shelfsim.io import save_run_export

console = Console()


def _display_summary(analysis: RunAnalysis) -> None:
    by_type = ", ".join(
        f"{kind}: {n}" for kind, n in sorted(analysis.by_respondent_type.items())
    ) or "none"
    console.print()
    console.print(
        Panel(
            f"[bold]Survey Run {analysis.run_id}[/bold] - Shelf {analysis.shelf_id}\n"
            f"N = {analysis.total_responses} responses ({by_type})",
            border_style="bright_blue",
        )
    )


def _display_shares(analysis: RunAnalysis) -> None:
    """Preference share per product as an ASCII bar chart."""
    console.print()
    console.print("[bold underline]Preference Share[/bold underline]")
    console.print()

    names = {p.product_id: f"{p.brand_name} {p.product_name}" for p in analysis.by_product}
    max_bar = 40
    max_share = max((p.share for p in analysis.by_product), default=0.0)
    max_name = max((len(n) for n in names.values()), default=10)

    for p in sorted(analysis.by_product, key=lambda x: -x.share):
        bar_len = int((p.share / max_share) * max_bar) if max_share > 0 else 0
        bar = "█" * bar_len
        console.print(
            f"  {names[p.product_id].ljust(max_name)}  [cyan]{bar}[/cyan] {p.share * 100:5.1f}%"
        )


def _display_pricing(analysis: RunAnalysis) -> None:
    console.print()
    table = Table(
        title="Pricing",
        box=box.SIMPLE,
        show_header=True,
        header_style="bold",
        padding=(0, 1),
    )
    table.add_column("Product", min_width=20)
    table.add_column("Responses", justify="right")
    table.add_column("List", justify="right")
    table.add_column("Optimal", justify="right")
    table.add_column("Elasticity", justify="right")
    table.add_column("Demand slope", justify="right")
    table.add_column("Revenue / month", justify="right")

    for p in analysis.by_product:
        style = "green" if p.optimal_price > p.list_price else (
            "red" if p.optimal_price < p.list_price else ""
        )
        table.add_row(
            f"{p.brand_name} {p.product_name}",
            str(p.total_responses),
            format_dollars(p.list_price),
            format_dollars(p.optimal_price),
            f"{p.elasticity:.2f}",
            "-" if p.demand_elasticity is None else f"{p.demand_elasticity:+.2f}",
            format_dollars(p.revenue_forecast),
            style=style,
        )
    console.print(table)


def _display_conclusions(analysis: RunAnalysis) -> None:
    console.print("[bold underline]Conclusions[/bold underline]")
    console.print()
    for p in analysis.by_product:
        console.print(f"  [bold]{p.brand_name} {p.product_name}[/bold]: {p.conclusion}")


def display_analysis(analysis: RunAnalysis) -> None:
    """Render a run analysis to the terminal."""
    _display_summary(analysis)
    if not analysis.by_product:
        console.print("[yellow]This run has no products.[/yellow]")
        return
    _display_shares(analysis)
    _display_pricing(analysis)
    _display_conclusions(analysis)


def run_report(
    run_id: int,
    *,
    fmt: str = "table",
    output_dir: Optional[Path] = None,
    database_url: Optional[str] = None,
) -> Optional[Path]:
    """
    Show or export the analysis of survey run *run_id*.

    ``fmt`` is ``table`` (terminal), ``json`` or ``csv``.  Exports go to
    *output_dir* (default ``./data/exports``) and the written path is
    returned.
    """
    engine = create_db_engine(database_url or get_settings().database_url)
    init_db(engine)

    with Session(engine) as session:
        analysis = services.compute_run_analysis(session, run_id)

    if fmt == "table":
        display_analysis(analysis)
        return None

    path = save_run_export(
        analysis,
        output_dir or Path("data") / "exports",
        fmt=fmt,
        console=console,
    )
    if path:
        console.print(f"[green]Analysis saved → {path}[/green]")
    return path
