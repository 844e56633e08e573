"""Main CLI application for the dice engine."""

import json
import random
from typing import Optional

import typer

from polydice.analysis import analyze_mod_test, analyze_test
from polydice.cli.display import (
    display_distribution,
    display_error,
    display_pool,
    display_pool_result,
    display_single_roll,
    display_test_roll,
)
from polydice.config import get_settings
from polydice.exceptions import PolydiceError
from polydice.logging_config import configure_logging
from polydice.roller import (
    roll_dice,
    roll_dice_mod,
    roll_dice_mod_test,
    roll_dice_test,
    roll_mod,
    roll_mod_test,
    roll_test,
)
from polydice.types import RollType, coerce_die_type

# Create main app
app = typer.Typer(
    name="polydice",
    help="Polyhedral dice rolls, tests and outcome distributions",
    add_completion=False,
)


def _bonus_modifier(bonus: int):
    """Flat bonus as a roll modifier."""
    return lambda n: n + bonus


def _roll_type(advantage: bool, disadvantage: bool) -> RollType | None:
    if advantage and disadvantage:
        display_error("Choose either --advantage or --disadvantage, not both")
        raise typer.Exit(1)
    if advantage:
        return RollType.ADVANTAGE
    if disadvantage:
        return RollType.DISADVANTAGE
    return None


def _parse_values(values: str) -> list[int]:
    try:
        return [int(v) for v in values.split(",") if v.strip()]
    except ValueError:
        display_error(f"--values must be comma-separated integers, got {values!r}")
        raise typer.Exit(1)


def _build_conditions(
    test_type: str,
    target: Optional[int],
    min_value: Optional[int],
    max_value: Optional[int],
    values: Optional[str],
    critical_success: Optional[int],
    critical_failure: Optional[int],
) -> dict:
    """Collect the condition options that were given into a mapping."""
    conditions: dict = {"test_type": test_type}
    for key, value in (
        ("target", target),
        ("min", min_value),
        ("max", max_value),
        ("critical_success", critical_success),
        ("critical_failure", critical_failure),
    ):
        if value is not None:
            conditions[key] = value
    if values is not None:
        conditions["values"] = _parse_values(values)
    return conditions


def _describe(conditions: dict, bonus: int) -> str:
    """Short text for a test, e.g. "at_least (target=15) with +2"."""
    params = ", ".join(
        f"{key}={value}" for key, value in conditions.items() if key != "test_type"
    )
    text = f"{conditions['test_type']} ({params})" if params else conditions["test_type"]
    if bonus:
        text += f" with {bonus:+d}"
    return text


def _load_json(option: str, raw: str):
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        display_error(f"{option} is not valid JSON: {e}")
        raise typer.Exit(1)


@app.command("roll")
def roll_command(
    die: Optional[str] = typer.Argument(None, help="Die to roll (d4..d20)"),
    count: int = typer.Option(1, "--count", "-n", help="Number of dice"),
    bonus: int = typer.Option(0, "--bonus", "-b", help="Flat bonus added to the total"),
    advantage: bool = typer.Option(False, "--advantage", "-a", help="Roll twice, keep higher"),
    disadvantage: bool = typer.Option(False, "--disadvantage", "-d", help="Roll twice, keep lower"),
) -> None:
    """Roll one or more dice."""
    mode = _roll_type(advantage, disadvantage)
    if mode is not None and count != 1:
        display_error("Advantage and disadvantage apply to a single die")
        raise typer.Exit(1)

    try:
        die_type = coerce_die_type(die or get_settings().default_die)
        if mode is not None:
            result = roll_mod(die_type, _bonus_modifier(bonus), mode)
            display_single_roll(die_type.value, result, mode)
            return
        if bonus:
            pool = roll_dice_mod(die_type, _bonus_modifier(bonus), count)
        else:
            pool = roll_dice(die_type, count)
    except PolydiceError as e:
        display_error(str(e))
        raise typer.Exit(1)

    display_pool(die_type.value, pool)


@app.command()
def check(
    test_type: str = typer.Argument(..., help="exact, at_least, at_most, within, in_list or skill"),
    die: Optional[str] = typer.Option(None, "--die", help="Die to roll"),
    target: Optional[int] = typer.Option(None, "--target", "-t", help="Target value"),
    min_value: Optional[int] = typer.Option(None, "--min", help="Lower bound (within)"),
    max_value: Optional[int] = typer.Option(None, "--max", help="Upper bound (within)"),
    values: Optional[str] = typer.Option(None, "--values", help="Comma-separated values (in_list)"),
    critical_success: Optional[int] = typer.Option(None, "--crit-success", help="Critical success threshold (skill)"),
    critical_failure: Optional[int] = typer.Option(None, "--crit-failure", help="Critical failure threshold (skill)"),
    bonus: int = typer.Option(0, "--bonus", "-b", help="Flat bonus applied before evaluation"),
    advantage: bool = typer.Option(False, "--advantage", "-a", help="Roll twice, keep better outcome"),
    disadvantage: bool = typer.Option(False, "--disadvantage", "-d", help="Roll twice, keep worse outcome"),
    natural_crits: Optional[bool] = typer.Option(
        None, "--natural-crits/--no-natural-crits", help="Force natural crits on or off"
    ),
) -> None:
    """Roll a single die against a test."""
    mode = _roll_type(advantage, disadvantage)
    conditions = _build_conditions(
        test_type, target, min_value, max_value, values, critical_success, critical_failure
    )

    try:
        die_type = coerce_die_type(die or get_settings().default_die)
        if bonus:
            result = roll_mod_test(
                die_type, _bonus_modifier(bonus), conditions, mode, natural_crits
            )
        else:
            result = roll_test(die_type, conditions, mode, natural_crits)
    except PolydiceError as e:
        display_error(str(e))
        raise typer.Exit(1)

    display_test_roll(die_type.value, result, _describe(conditions, bonus))


@app.command()
def analyze(
    test_type: str = typer.Argument(..., help="exact, at_least, at_most, within, in_list or skill"),
    die: Optional[str] = typer.Option(None, "--die", help="Die to analyse"),
    target: Optional[int] = typer.Option(None, "--target", "-t", help="Target value"),
    min_value: Optional[int] = typer.Option(None, "--min", help="Lower bound (within)"),
    max_value: Optional[int] = typer.Option(None, "--max", help="Upper bound (within)"),
    values: Optional[str] = typer.Option(None, "--values", help="Comma-separated values (in_list)"),
    critical_success: Optional[int] = typer.Option(None, "--crit-success", help="Critical success threshold (skill)"),
    critical_failure: Optional[int] = typer.Option(None, "--crit-failure", help="Critical failure threshold (skill)"),
    bonus: int = typer.Option(0, "--bonus", "-b", help="Flat bonus applied before evaluation"),
    natural_crits: Optional[bool] = typer.Option(
        None, "--natural-crits/--no-natural-crits", help="Force natural crits on or off"
    ),
) -> None:
    """Show the exact outcome distribution of a test."""
    conditions = _build_conditions(
        test_type, target, min_value, max_value, values, critical_success, critical_failure
    )

    try:
        die_type = coerce_die_type(die or get_settings().default_die)
        if bonus:
            report = analyze_mod_test(
                die_type, _bonus_modifier(bonus), conditions, natural_crits
            )
        else:
            report = analyze_test(die_type, conditions, natural_crits)
    except PolydiceError as e:
        display_error(str(e))
        raise typer.Exit(1)

    display_distribution(
        report,
        f"{die_type.value} {_describe(conditions, bonus)}",
        show_modified_range=get_settings().show_modified_range,
    )


@app.command()
def pool(
    die: str = typer.Argument(..., help="Die kind for every die in the pool"),
    count: int = typer.Option(1, "--count", "-n", help="Number of dice"),
    conditions: str = typer.Option(
        ..., "--conditions", "-c", help='JSON list, e.g. \'[{"test_type": "at_least", "target": 5}]\''
    ),
    rules: str = typer.Option("[]", "--rules", "-r", help="JSON list of aggregate rules"),
    bonus: int = typer.Option(0, "--bonus", "-b", help="Per-die bonus applied before each condition"),
    natural_crits: Optional[bool] = typer.Option(
        None, "--natural-crits/--no-natural-crits", help="Force natural crits on or off"
    ),
) -> None:
    """Roll a pool of dice against per-die conditions and aggregate rules."""
    parsed_conditions = _load_json("--conditions", conditions)
    parsed_rules = _load_json("--rules", rules)

    try:
        die_type = coerce_die_type(die)
        if bonus:
            result = roll_dice_mod_test(
                die_type,
                {"each": _bonus_modifier(bonus)},
                parsed_conditions,
                count,
                parsed_rules,
                natural_crits,
            )
        else:
            result = roll_dice_test(
                die_type, parsed_conditions, count, parsed_rules, natural_crits
            )
    except PolydiceError as e:
        display_error(str(e))
        raise typer.Exit(1)

    display_pool_result(die_type.value, result)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Polydice - validated dice tests and outcome distributions.

    Use 'polydice analyze at_least --target 15' to see exact odds, or
    'polydice check skill --target 12' to roll one.
    """
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)
    if settings.rng_seed is not None:
        random.seed(settings.rng_seed)


if __name__ == "__main__":
    app()
