"""
Nutso Agents — Campaign Evaluation Script

Plays a campaign headlessly with the preview-based aim solver (or a random
baseline), prints per-level results and optionally records the final score
in the high score table.

Usage:
    python agents/evaluate.py --levels 12
    python agents/evaluate.py --random --levels 5 --seed 3
    python agents/evaluate.py --start-level 9 --levels 3 --difficulty easy
    python agents/evaluate.py --levels 10 --initials ACE --store ~/.nutso/store.json
    python agents/evaluate.py --show-scores
"""

import argparse
import logging
import os
import sys
from pathlib import Path

import numpy as np
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from agents.aim_solver import AimSolver, play_shot, random_plan
from nutso_engine.campaign import Campaign
from nutso_engine.config import DIFFICULTIES, load_config
from nutso_engine.highscores import NOT_RANKED, HighScoreLedger, validate_initials
from nutso_engine.scoring import Classification, ScoreRecord
from nutso_engine.session import RoundOutcome, star_rating
from nutso_engine.storage import JsonFileStore

console = Console()
logger = logging.getLogger("nutso.evaluate")


def open_store(store_path: str = None) -> JsonFileStore:
    """The high score store shared by a campaign run and --show-scores."""
    return JsonFileStore(Path(store_path).expanduser()) if store_path else JsonFileStore()


def play_level(campaign: Campaign, solver: AimSolver = None, rng: np.random.Generator = None) -> dict:
    """Play one attempt at the campaign's current level. Returns a result row."""
    session = campaign.new_session()
    while not session.is_over:
        plan = solver.solve(session) if solver is not None else random_plan(session, rng)
        if not play_shot(session, plan):
            logger.warning("Shot rejected at level %d; ending attempt", session.level)
            break

    state = session.state
    records = [e for e in session.history if isinstance(e, ScoreRecord)]
    swooshes = sum(1 for r in records if r.classification is Classification.SWOOSH)
    row = {
        "level": state.level,
        "mode": state.mode,
        "hits": state.hits_scored,
        "required": state.hits_required,
        "shots": state.shots_fired,
        "swooshes": swooshes,
        "points": sum(r.points for r in records),
        "won": state.outcome is RoundOutcome.WIN,
        "stars": star_rating(state.hits_scored, state.hits_required),
    }
    if session.is_over:
        campaign.complete_level()
    return row


def evaluate(
    n_levels: int = 10,
    start_level: int = 1,
    difficulty: str = None,
    use_random: bool = False,
    seed: int = 0,
    config_path: str = None,
    store_path: str = None,
    initials: str = None,
):
    """Main evaluation loop."""
    console.print("\n[bold cyan]═══ Nutso Campaign Evaluation ═══[/bold cyan]")

    config = load_config(config_path)
    ledger = HighScoreLedger(open_store(store_path))
    campaign = Campaign(config=config, ledger=ledger, start_level=start_level, difficulty=difficulty)

    solver = None if use_random else AimSolver()
    rng = np.random.default_rng(seed)
    console.print(f"  Policy: {'random baseline' if use_random else 'aim solver'}")
    console.print(f"  Difficulty: {difficulty or config.session.difficulty}")
    console.print(f"  Level attempts: {n_levels} (starting at {campaign.level})\n")

    table = Table(title="Campaign Results")
    table.add_column("Level", style="cyan")
    table.add_column("Mode")
    table.add_column("Hits", justify="right")
    table.add_column("Swoosh", justify="right", style="green")
    table.add_column("Shots", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Result", justify="center")
    table.add_column("Stars", justify="center", style="yellow")

    rows = []
    for _ in range(n_levels):
        row = play_level(campaign, solver, rng)
        rows.append(row)
        table.add_row(
            str(row["level"]),
            row["mode"],
            f"{row['hits']}/{row['required']}",
            str(row["swooshes"]),
            str(row["shots"]),
            str(row["points"]),
            "[green]WIN[/green]" if row["won"] else "[red]LOSE[/red]",
            "★" * row["stars"] or "-",
        )
        if campaign.completed:
            console.print("  [bold green]Campaign complete![/bold green]")
            break

    console.print(table)
    console.print()

    wins = sum(1 for r in rows if r["won"])
    console.print(f"  Levels won: {wins}/{len(rows)} ({wins / max(len(rows), 1):.1%})")
    console.print(f"  Final score: {campaign.cumulative_points} (reached level {campaign.highest_level})")

    if initials:
        rank = campaign.finish(initials)
        if rank == NOT_RANKED:
            console.print("  Score did not make the high score table")
        else:
            console.print(f"  [bold]High score rank #{rank}[/bold]")
    return rows


def show_scores(store_path: str = None) -> None:
    ledger = HighScoreLedger(open_store(store_path))

    table = Table(title="High Scores")
    table.add_column("Rank", style="cyan", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Level", justify="right")
    table.add_column("Date")
    for i, entry in enumerate(ledger.ranked(), start=1):
        table.add_row(str(i), entry.initials, str(entry.score), str(entry.level), entry.date)
    console.print()
    console.print(table)
    console.print()


# ---------- CLI ----------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Nutso campaign evaluation")
    parser.add_argument("--levels", type=int, default=10,
                        help="Number of level attempts to play")
    parser.add_argument("--start-level", type=int, default=1,
                        help="Level to start from (clamped to the level range)")
    parser.add_argument("--difficulty", choices=DIFFICULTIES, default=None,
                        help="Basket size setting")
    parser.add_argument("--random", action="store_true",
                        help="Use a random policy (baseline)")
    parser.add_argument("--seed", type=int, default=0,
                        help="Seed for the random policy")
    parser.add_argument("--config", type=str, default=None,
                        help="YAML file overriding the default tuning")
    parser.add_argument("--store", type=str, default=None,
                        help="JSON store for high scores (~/.nutso/store.json if omitted)")
    parser.add_argument("--initials", type=validate_initials, default=None,
                        help="Record the final score under these 3-letter initials")
    parser.add_argument("--show-scores", action="store_true",
                        help="Print the high score table and exit")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")
    return parser


def main():
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    if args.show_scores:
        show_scores(args.store)
        return

    evaluate(
        n_levels=args.levels,
        start_level=args.start_level,
        difficulty=args.difficulty,
        use_random=args.random,
        seed=args.seed,
        config_path=args.config,
        store_path=args.store,
        initials=args.initials,
    )


if __name__ == "__main__":
    main()
