"""CLI entrypoint: level lookup, threat ranking and text-mode play of the three games."""

from __future__ import annotations

import argparse
import json
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar, cast

from . import __version__, cloze, scrambler, sniper
from .codec import from_dict
from .economy import level_for_xp, next_level, progress_to_next_level, xp_to_next_level
from .models import ClozeDrill, L1Trap, ScramblerExercise
from .service import (
    GameSession,
    cloze_session,
    scrambler_session,
    settle_rewards,
    sniper_session,
    submit_placement,
)
from .threat import PatternStats, build_batch, prioritize_patterns, stats_threat_score

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]
ClockFn = Callable[[], float]
FLOW_EXIT_COMMANDS = {":quit", ":exit", ":q"}
HINT_COMMANDS = {":hint", ":h"}
SKIP_COMMANDS = {":skip", ":s"}

T = TypeVar("T")

logger = logging.getLogger(__name__)


def run(
    argv: list[str] | None = None,
    input_fn: InputFn = input,
    print_fn: PrintFn = print,
    clock: ClockFn = time.monotonic,
) -> int:
    """Run the CLI application."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "level":
            return _level_flow(args.xp, print_fn)
        if args.command == "threat":
            now_ms = args.now_ms if args.now_ms is not None else _now_ms()
            return _threat_flow(_load_list(PatternStats, args.stats), now_ms, args.limit, print_fn)
        if args.command == "scramble":
            exercises = _load_list(ScramblerExercise, args.exercises)
            return _scramble_flow(exercises, args.xp, input_fn, print_fn)
        if args.command == "cloze":
            drill = from_dict(ClozeDrill, _read_json(args.drill))
            return _cloze_flow(drill, args.time_limit, args.xp, input_fn, print_fn, clock)
        if args.command == "sniper":
            traps = _load_list(L1Trap, args.traps)
            stats = _load_list(PatternStats, args.stats) if args.stats else []
            config = sniper.SniperConfig(mission_time_seconds=args.time_limit, batch_size=args.batch_size)
            return _sniper_flow(traps, stats, config, args.xp, input_fn, print_fn, clock)
    except (OSError, ValueError) as exc:
        logger.debug(f"Command {args.command} failed", exc_info=True)
        print_fn(f"Error: {exc}")
        return 2
    parser.print_help()
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lingocore", description="Language drill rules engine")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    commands = parser.add_subparsers(dest="command")

    level = commands.add_parser("level", help="Show level and progress for an XP total")
    level.add_argument("xp", type=int)

    threat = commands.add_parser("threat", help="Rank error patterns by threat score")
    threat.add_argument("stats", help="JSON array of pattern statistics")
    threat.add_argument("--now-ms", type=int, default=None, help="Reference time in epoch milliseconds")
    threat.add_argument("--limit", type=int, default=20)

    scramble = commands.add_parser("scramble", help="Play a sentence-building session")
    scramble.add_argument("exercises", help="JSON array of exercises")
    scramble.add_argument("--xp", type=int, default=0, help="XP total before this session")

    drill = commands.add_parser("cloze", help="Play a fill-in-the-blank drill")
    drill.add_argument("drill", help="JSON drill object")
    drill.add_argument("--time-limit", type=int, default=cloze.DEFAULT_TIME_LIMIT_SECONDS)
    drill.add_argument("--xp", type=int, default=0, help="XP total before this session")

    snipe = commands.add_parser("sniper", help="Play a timed grammar-correction batch")
    snipe.add_argument("traps", help="JSON array of interference traps")
    snipe.add_argument("--stats", default=None, help="JSON array of pattern statistics")
    snipe.add_argument("--time-limit", type=int, default=sniper.DEFAULT_CONFIG.mission_time_seconds)
    snipe.add_argument("--batch-size", type=int, default=sniper.DEFAULT_CONFIG.batch_size)
    snipe.add_argument("--xp", type=int, default=0, help="XP total before this session")
    return parser


def _now_ms() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)


def _read_json(path: str) -> object:
    """Read one JSON document from disk."""
    return json.loads(Path(path).read_text(encoding="utf-8-sig"))


def _load_list(cls: type[T], path: str) -> list[T]:
    """Read a JSON array of records of one type."""
    raw = _read_json(path)
    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a JSON array.")
    return [from_dict(cls, item) for item in cast(list[Any], raw)]


class _Ticker:
    """Convert wall-clock time into a count of timer ticks not yet delivered."""

    def __init__(self, clock: ClockFn, tick_seconds: float) -> None:
        self._clock = clock
        self._tick_seconds = tick_seconds
        self._started = clock()
        self._delivered = 0

    def due(self) -> int:
        elapsed = self._clock() - self._started
        total = int(elapsed / self._tick_seconds)
        pending = max(0, total - self._delivered)
        self._delivered = max(self._delivered, total)
        return pending


def _level_flow(xp: int, print_fn: PrintFn) -> int:
    level = level_for_xp(xp)
    progress = progress_to_next_level(xp)
    print_fn(f"Level: {level.display_name}")
    print_fn(f"XP: {xp}")
    if progress.is_max_level:
        print_fn("Top level reached.")
        return 0
    upcoming = next_level(xp)
    print_fn(f"Progress: {progress.current}/{progress.required} ({progress.percentage:.0%})")
    if upcoming is not None:
        print_fn(f"Next: {upcoming.display_name} in {xp_to_next_level(xp)} XP")
    return 0


def _threat_flow(stats: list[PatternStats], now_ms: int, limit: int, print_fn: PrintFn) -> int:
    if not stats:
        print_fn("No pattern statistics.")
        return 0
    by_id = {item.pattern_id: item for item in stats}
    scores = {item.pattern_id: stats_threat_score(item, now_ms) for item in stats}
    ranked = prioritize_patterns((item.pattern_id, scores[item.pattern_id]) for item in stats)

    print_fn("\n=== Threat Ranking ===")
    for idx, pattern_id in enumerate(ranked[:limit], start=1):
        item = by_id[pattern_id]
        status = "mastered" if item.is_mastered else ("new" if item.total_attempts == 0 else "active")
        print_fn(
            f"{idx}) {pattern_id}  threat={scores[pattern_id]:.1f}  "
            f"accuracy={item.accuracy:.0%}  attempts={item.total_attempts}  [{status}]"
        )
    return 0


def _scramble_flow(exercises: list[ScramblerExercise], previous_xp: int, input_fn: InputFn, print_fn: PrintFn) -> int:
    """Run one sentence-building session over all exercises."""
    if not exercises:
        print_fn("No exercises available.")
        return 0

    session = scrambler_session()
    session.dispatch(
        scrambler.StartSession(level=exercises[0].level, tense="Any", session_length=len(exercises))
    )
    print_fn("\n=== Sentence Builder ===")
    print_fn("Type word numbers in order, :hint to give up, :q to exit.")
    for exercise in exercises:
        session.dispatch(scrambler.LoadExercise(exercise))
        if not _run_scramble_question(session, input_fn, print_fn):
            print_fn(f"\nSession ended early: {session.state.session_score} clean wins")
            return 0
        session.dispatch(scrambler.NextQuestion())

    state = session.state
    print_fn(f"\nSession complete: {state.session_score}/{state.session_length} clean wins")
    print_fn(f"Rank: {state.rank.display_name}")
    _print_rewards(previous_xp, state.xp_awarded, print_fn)
    return 0


def _run_scramble_question(
    session: GameSession[scrambler.ScramblerState, scrambler.ScramblerEvent],
    input_fn: InputFn,
    print_fn: PrintFn,
) -> bool:
    """Run one exercise until it is solved; return False when the learner quits."""
    exercise = session.state.current_exercise
    if exercise is None:
        return False
    print_fn("")
    for idx, word in enumerate(exercise.scrambled_words, start=1):
        print_fn(f"{idx}) {word}")
    if exercise.translation:
        print_fn(f"Translation: {exercise.translation}")

    while True:
        user_input = input_fn("Order: ").strip()
        lowered = user_input.lower()
        if lowered in FLOW_EXIT_COMMANDS:
            return False
        if lowered in HINT_COMMANDS:
            session.dispatch(scrambler.UseHint())
            submit_placement(session)
            print_fn(f"Answer: {exercise.original_sentence}")
            return True

        order = _parse_order(user_input, len(exercise.scrambled_words))
        if order is None:
            print_fn("Invalid order. Use word numbers separated by spaces.")
            continue
        _replace_placement(session, order)
        result = submit_placement(session)
        if result is None:
            return False
        if result.is_correct:
            print_fn(f"Correct. {result.message}")
            return True
        placed = [exercise.scrambled_words[index] for index in order]
        marks = " ".join(
            word if result.token_results.get(index, False) else f"[{word}]" for index, word in enumerate(placed)
        )
        print_fn(f"{result.message} ({result.score_percent}%)")
        print_fn(f"Your sentence: {marks}")


def _parse_order(user_input: str, word_count: int) -> list[int] | None:
    parts = user_input.replace(",", " ").split()
    if not parts or not all(part.isdigit() for part in parts):
        return None
    order = [int(part) - 1 for part in parts]
    if any(index < 0 or index >= word_count for index in order) or len(set(order)) != len(order):
        return None
    return order


def _replace_placement(
    session: GameSession[scrambler.ScramblerState, scrambler.ScramblerEvent], order: list[int]
) -> None:
    for placement_index in reversed(range(len(session.state.user_placement))):
        session.dispatch(scrambler.RemoveWord(placement_index))
    for word_index in order:
        session.dispatch(scrambler.PlaceWord(word_index))


def _cloze_flow(
    drill: ClozeDrill,
    time_limit: int,
    previous_xp: int,
    input_fn: InputFn,
    print_fn: PrintFn,
    clock: ClockFn,
) -> int:
    """Run one fill-in-the-blank drill; the timer only marks overtime."""
    if not drill.questions:
        print_fn("Drill has no questions.")
        return 0

    session = cloze_session()
    session.dispatch(cloze.StartDrill(drill, time_limit_seconds=time_limit))
    ticker = _Ticker(clock, 1.0)
    print_fn(f"\n=== {drill.library_emoji} {drill.library_name} ({drill.cefr_level}) ===")
    print_fn(f"Questions: {drill.total_questions}, time limit: {time_limit}s")
    print_fn("Type :skip to skip, :q to exit.")

    while not session.state.is_game_finished:
        question = session.state.current_question
        if question is None:
            session.dispatch(cloze.FinishGame())
            break
        print_fn(f"\n{question.masked_sentence}")
        if question.options:
            print_fn(f"Options: {', '.join(question.options)}")
        user_input = input_fn("Answer: ").strip()
        for _ in range(ticker.due()):
            session.dispatch(cloze.TimerTick())

        lowered = user_input.lower()
        if lowered in FLOW_EXIT_COMMANDS:
            state = session.state
            print_fn(f"\nDrill ended early: {state.total_correct}/{state.total_answered} correct")
            return 0
        if lowered in SKIP_COMMANDS:
            session.dispatch(cloze.Skip())
            print_fn(f"Skipped. Answer: {question.correct_answer}")
        elif cloze.is_correct(user_input, question.correct_answer):
            session.dispatch(cloze.SubmitAnswer(user_input))
            print_fn(f"Correct. Streak: {session.state.streak}")
        else:
            session.dispatch(cloze.SubmitAnswer(user_input))
            if cloze.is_almost_correct(user_input, question.correct_answer):
                print_fn(f"Almost! Expected: {question.correct_answer}")
            else:
                print_fn(f"Incorrect. Expected: {question.correct_answer}")
        session.dispatch(cloze.NextQuestion())

    state = session.state
    print_fn(f"\nDrill complete: {state.total_correct}/{state.total_answered} correct")
    print_fn(f"Best streak: {state.best_streak}")
    if state.is_overtime:
        print_fn("Finished after the time limit.")
    print_fn(f"Rank: {state.rank.display_name}")
    _print_rewards(previous_xp, state.xp_awarded, print_fn)
    return 0


def _sniper_flow(
    traps: list[L1Trap],
    stats: list[PatternStats],
    config: sniper.SniperConfig,
    previous_xp: int,
    input_fn: InputFn,
    print_fn: PrintFn,
    clock: ClockFn,
) -> int:
    """Run one sniper batch planned from the highest-threat traps."""
    rounds = build_batch(traps, {item.pattern_id: item for item in stats}, _now_ms(), config.batch_size)
    if not rounds:
        print_fn("No traps available.")
        return 0

    session = sniper_session(config)
    session.dispatch(sniper.StartBatch(rounds))
    ticker = _Ticker(clock, config.timer_tick_ms / 1000.0)
    print_fn("\n=== Sniper ===")
    print_fn(f"Targets: {len(rounds)}, time limit: {config.mission_time_seconds}s")
    print_fn("Type the corrected phrase, :q to exit.")

    while not session.state.is_game_finished:
        current = session.state.current_round
        if current is None:
            session.dispatch(sniper.FinishGame())
            break
        trap = current.trap
        label = "new" if current.is_novelty else f"threat {current.threat_score:.0f}"
        print_fn(f"\nTarget ({trap.category.value.lower()}, {label}): {trap.error_pattern}")
        if trap.context:
            print_fn(f"Context: {trap.context}")
        user_input = input_fn("Fix: ").strip()
        for _ in range(ticker.due()):
            session.dispatch(sniper.TimerTick())

        if user_input.lower() in FLOW_EXIT_COMMANDS:
            print_fn(f"\nMission aborted: {session.state.total_correct} hits")
            return 0
        hit = cloze.is_correct(user_input, trap.correct_pattern)
        session.dispatch(sniper.SubmitAnswer(hit))
        if hit:
            print_fn("Hit.")
        else:
            print_fn(f"Miss. Correct: {trap.correct_pattern}")
            print_fn(f"Cover: {session.state.cover_integrity}%")
        print_fn(f"Why: {trap.get_explanation('en')}")
        session.dispatch(sniper.NextQuestion())

    state = session.state
    print_fn(f"\nMission complete: {state.total_correct}/{len(state.batch)} hits")
    if state.is_overtime:
        print_fn("Overtime.")
    print_fn(f"Rank: {state.rank.display_name}")
    _print_rewards(previous_xp, state.xp_awarded, print_fn)
    return 0


def _print_rewards(previous_xp: int, earned: int, print_fn: PrintFn) -> None:
    summary = settle_rewards(previous_xp, earned)
    print_fn(f"XP earned: {summary.earned} (total {summary.total_xp})")
    if summary.level_up is not None:
        print_fn(f"Level up! Now {summary.level_up.display_name}")


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
