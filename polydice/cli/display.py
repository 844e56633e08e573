"""Rich display helpers for CLI output."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from polydice.analysis import DistributionReport, ModifiedDistributionReport
from polydice.roller import PoolTestRoll
from polydice.types import (
    OUTCOME_RANKS,
    DicePool,
    ModifiedDicePool,
    ModifiedRoll,
    ModifiedTestRoll,
    Outcome,
    RollType,
    TestRoll,
)


# Shared console instance
console = Console()

# Outcome -> (label, style)
OUTCOME_DISPLAY = {
    Outcome.CRITICAL_SUCCESS: ("CRITICAL SUCCESS!", "bold yellow"),
    Outcome.SUCCESS: ("SUCCESS", "green"),
    Outcome.FAILURE: ("FAILURE", "red"),
    Outcome.CRITICAL_FAILURE: ("CRITICAL FAILURE!", "bold red"),
}


def display_error(message: str) -> None:
    """Display error message.

    Args:
        message: Error message.
    """
    console.print(f"[bold red]Error:[/bold red] {message}")


def display_success(message: str) -> None:
    """Display success message.

    Args:
        message: Success message.
    """
    console.print(f"[bold green]{message}[/bold green]")


def display_info(message: str) -> None:
    """Display info message.

    Args:
        message: Info message.
    """
    console.print(f"[dim]{message}[/dim]")


def format_outcome(outcome: Outcome) -> str:
    """Render an outcome as styled markup."""
    label, style = OUTCOME_DISPLAY[outcome]
    return f"[{style}]{label}[/{style}]"


def format_faces(faces: tuple[int, ...]) -> str:
    """Collapse sorted faces into runs, e.g. (1, 2, 3, 6) -> "1-3, 6".

    Examples:
        >>> format_faces((15, 16, 17, 18, 19, 20))
        '15-20'
    """
    runs: list[list[int]] = []
    for face in faces:
        if runs and face == runs[-1][-1] + 1:
            runs[-1].append(face)
        else:
            runs.append([face])
    return ", ".join(
        f"{run[0]}-{run[-1]}" if len(run) > 1 else str(run[0]) for run in runs
    )


def display_pool(die: str, pool: DicePool | ModifiedDicePool) -> None:
    """Display a pool of raw or modified dice.

    Args:
        die: Die label, e.g. "d6".
        pool: Result from roll_dice or roll_dice_mod.
    """
    if isinstance(pool, ModifiedDicePool):
        faces = ", ".join(str(v) for v in pool.base.values)
        console.print(
            f"  {len(pool.base.values)}{die}: [{faces}] = {pool.base.total} "
            f"→ [bold cyan]{pool.net}[/bold cyan]"
        )
        return

    faces = ", ".join(str(v) for v in pool.values)
    console.print(
        f"  {len(pool.values)}{die}: [{faces}] → [bold cyan]{pool.total}[/bold cyan]"
    )


def display_single_roll(die: str, result: ModifiedRoll, mode: RollType | None) -> None:
    """Display one kept die, with its roll mode and modified value.

    Args:
        die: Die label.
        result: Result from roll_mod.
        mode: Roll mode used, if any.
    """
    label = f"{die} ({mode.value})" if mode is not None else die
    console.print(
        f"  {label}: {result.base} → [bold cyan]{result.modified}[/bold cyan]"
    )


def display_test_roll(
    die: str,
    result: TestRoll | ModifiedTestRoll,
    description: str,
) -> None:
    """Display a single test roll in a result panel.

    Args:
        die: Die label.
        result: Result from roll_test or roll_mod_test.
        description: Human-readable test, e.g. "at_least 15".
    """
    if isinstance(result, ModifiedTestRoll):
        roll_line = f"Roll: {die} ({result.base}) → [bold]{result.modified}[/bold]"
    else:
        roll_line = f"Roll: {die} → [bold]{result.base}[/bold]"

    _, style = OUTCOME_DISPLAY[result.outcome]
    border_style = style.replace("bold ", "")
    lines = [roll_line, f"vs {description}", "", format_outcome(result.outcome)]

    panel = Panel(
        "\n".join(lines),
        title="[bold]Result[/bold]",
        border_style=border_style,
        padding=(0, 2),
    )
    console.print(panel)


def display_distribution(
    report: DistributionReport,
    title: str,
    show_modified_range: bool = True,
) -> None:
    """Display an outcome distribution table.

    Args:
        report: Report from analyze_test or analyze_mod_test.
        title: Table title.
        show_modified_range: Print the modified range under the table.
    """
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Outcome", style="white")
    table.add_column("Faces", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Chance", justify="right", style="yellow")

    for outcome in sorted(report.outcome_counts, key=OUTCOME_RANKS.get, reverse=True):
        table.add_row(
            format_outcome(outcome),
            format_faces(report.rolls_by_outcome[outcome]),
            str(report.outcome_counts[outcome]),
            f"{report.outcome_probabilities[outcome]:.1%}",
        )

    console.print(table)

    if show_modified_range and isinstance(report, ModifiedDistributionReport):
        display_info(f"Modified range: {report.modified_range}")


def display_pool_result(die: str, pool_roll: PoolTestRoll) -> None:
    """Display a pool roll, per-condition successes and rule results.

    Args:
        die: Die label.
        pool_roll: Result from roll_dice_test or roll_dice_mod_test.
    """
    display_pool(die, pool_roll.modified or pool_roll.base)
    result = pool_roll.result

    if result.condition_success_count:
        table = Table(title="Conditions", box=box.ROUNDED)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Passed", justify="right", style="cyan")
        for idx, count in result.condition_success_count.items():
            table.add_row(str(idx), f"{count}/{len(pool_roll.base.values)}")
        console.print(table)

    if result.rule_results:
        table = Table(title="Rules", box=box.ROUNDED)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Kind", style="white")
        table.add_column("Count", justify="right")
        table.add_column("Result")
        for rule_result in result.rule_results:
            status = "[green]pass[/green]" if rule_result.passed else "[red]fail[/red]"
            table.add_row(
                str(rule_result.index),
                rule_result.rule.kind,
                str(rule_result.count),
                status,
            )
        console.print(table)

    if result.passed:
        display_success("Pool passed")
    else:
        console.print("[bold red]Pool failed[/bold red]")
