"""
CLI frontend for the shelf survey engine.

Uses questionary for keyboard-driven prompts and rich for formatted
output (tables, panels).  A terminal panelist takes the same survey a
browser panelist would for a given shelf variant, and the completed
answers are stored as a HUMAN respondent.
"""

# Import modules
from __future__ import annotations

import sys
from typing import Any, Optional

import questionary
from questionary import Style
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlmodel import Session

from shelfsim import services
from shelfsim.config import get_settings
from shelfsim.db import create_db_engine, init_db
from shelfsim.engine import SurveyEngine
from shelfsim.errors import InvalidAnswerError
from shelfsim.logging_config import get_logger
from shelfsim.models import AnswerType
from shelfsim.schemas import ChoiceQuestion, DemographicQuestion, ProductCard

logger = get_logger(__name__)

# Rich console for pretty output
console = Console()

# Questionary style
SURVEY_STYLE = Style(
    [
        ("qmark", "fg:cyan bold"),
        ("question", "bold"),
        ("answer", "fg:green bold"),
        ("pointer", "fg:cyan bold"),
        ("highlighted", "fg:cyan bold"),
        ("selected", "fg:green"),
    ]
)


def _cancelled() -> None:
    console.print("[red]Survey cancelled.[/red]")
    sys.exit(0)


# =====================================================================
# Card rendering
# =====================================================================

def _render_card_table(card: ProductCard, *, title: str = "") -> Table:
    """Build a Rich Table showing the card's products side-by-side."""
    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )

    table.add_column("", style="bold", min_width=12)
    for i, _option in enumerate(card.options):
        table.add_column(f"Option {i + 1}", min_width=16, justify="center")

    table.add_row("Brand", *[o.brand_name for o in card.options])
    table.add_row("Product", *[o.product_name for o in card.options])
    table.add_row("Price", *[f"[green]{o.formatted_price}[/green]" for o in card.options])
    if any(o.benefits for o in card.options):
        table.add_row("Benefits", *[", ".join(o.benefits) or "-" for o in card.options])
    return table


# =====================================================================
# Question handlers
# =====================================================================

def _ask_demographic(step: DemographicQuestion) -> Any:
    """Ask one screening question with the prompt that fits its answer type."""
    q = step.question
    console.print()
    console.print(
        Panel(
            f"[bold]About You[/bold] - Question {step.number}/{step.total}",
            border_style="cyan",
        )
    )

    if q.type == AnswerType.SINGLE and q.options:
        answer = questionary.select(q.question, choices=q.options, style=SURVEY_STYLE).ask()
    elif q.type == AnswerType.MULTIPLE and q.options:
        answer = questionary.checkbox(
            q.question,
            choices=q.options,
            style=SURVEY_STYLE,
            validate=lambda picked: bool(picked) or "Pick at least one option",
        ).ask()
    else:
        answer = questionary.text(
            q.question,
            style=SURVEY_STYLE,
            validate=lambda text: bool(text.strip()) or "Please answer the question",
        ).ask()

    if answer is None:
        _cancelled()
    return answer


def _ask_choice(step: ChoiceQuestion) -> int:
    """Show a card and return the chosen product id."""
    console.print()
    console.print(
        Panel(
            f"[bold]Shopping Task[/bold] - Card {step.number}/{step.total}\n\n"
            f"{step.prompt}",
            border_style="magenta",
        )
    )
    console.print(_render_card_table(step.card, title=f"Card {step.number}"))
    console.print()

    choices = [
        questionary.Choice(
            f"Option {i + 1}: {o.brand_name} {o.product_name} ({o.formatted_price})",
            value=o.product_id,
        )
        for i, o in enumerate(step.card.options)
    ]
    answer = questionary.select("Your choice:", choices=choices, style=SURVEY_STYLE).ask()

    if answer is None:
        _cancelled()
    return answer


# =====================================================================
# Results display
# =====================================================================

def _display_selections(results: dict[str, Any], definition: Any) -> None:
    """Show what the respondent picked on each card."""
    names = {
        o.product_id: f"{o.brand_name} {o.product_name}"
        for card in definition.product_combinations
        for o in card.options
    }
    table = Table(
        title="Your Picks",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold green",
    )
    table.add_column("Card", justify="right")
    table.add_column("Product", min_width=20)
    table.add_column("Price", justify="right")
    for i, selection in enumerate(results["selections"]):
        price = "-" if selection.price is None else f"${selection.price / 100:.2f}"
        table.add_row(str(i + 1), names.get(selection.product_id, str(selection.product_id)), price)
    console.print()
    console.print(table)


# =====================================================================
# Main survey runner
# =====================================================================

def run_survey(
    variant_id: int,
    *,
    seed: Optional[int] = None,
    database_url: Optional[str] = None,
) -> Optional[int]:
    """
    Run the survey of one shelf variant in the terminal.

    Parameters
    ----------
    variant_id : id of the shelf variant (the survey link id)
    seed : random seed for the choice cards
    database_url : database to read from and record into (default: settings)

    Returns the id of the stored respondent, or None when the survey has
    nothing to ask.
    """
    engine = create_db_engine(database_url or get_settings().database_url)
    init_db(engine)

    with Session(engine) as session:
        definition = services.load_survey_definition(session, variant_id, seed=seed)
        survey = SurveyEngine(definition)

        console.print()
        console.print(
            Panel(
                f"[bold]Welcome to the Shelf Survey[/bold]\n\n"
                f"[cyan]{definition.project_name}[/cyan]\n\n"
                f"{len(definition.questions)} questions about you, then "
                f"{len(definition.product_combinations)} shopping tasks.\n\n"
                f"Use [bold]arrow keys[/bold] to navigate and [bold]Enter[/bold] to select.",
                border_style="bright_blue",
                padding=(1, 2),
            )
        )

        if survey.total_steps == 0:
            console.print("[yellow]This survey has no questions or products yet.[/yellow]")
            return None

        # Main loop
        while not survey.is_complete:
            step = survey.get_current_question()
            if isinstance(step, DemographicQuestion):
                answer = _ask_demographic(step)
            else:
                answer = _ask_choice(step)

            try:
                survey.submit_answer(answer)
            except InvalidAnswerError as exc:
                console.print(f"[red]{exc.message}[/red]")

        results = survey.get_results()
        respondent = services.record_human_response(
            session, variant_id, results["raw_answers"], results["selections"]
        )
        logger.info("CLI respondent %s completed variant %s", respondent.id, variant_id)

        _display_selections(results, definition)
        console.print(
            f"\n[bold green]Thank you for completing the survey![/bold green] "
            f"(respondent {respondent.id})\n"
        )
        return respondent.id
