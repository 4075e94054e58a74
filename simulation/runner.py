"""Musical chairs game runner and batch harness with CLI support."""
from __future__ import annotations

import argparse
import json
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from eventlog import GameEventLogger, create_logger
from game import GameConfig, GameEventPublisher, MusicalChairsGame
from metrics.survival import SurvivalMetricsAccumulator

DIVIDER = "-----------------------------------------------"


# ---------------------------------------------------------------------------
# Configuration structures
# ---------------------------------------------------------------------------


@dataclass
class SimulationConfig:
    num_games: int = 1
    concurrency: int = 1
    game: GameConfig = field(default_factory=GameConfig)
    checkpoint_interval: Optional[int] = None
    checkpoint_path: Optional[Path] = None
    event_log_mode: Optional[str] = None
    event_log_path: Optional[Path] = None
    echo: bool = True


@dataclass
class GameTask:
    game_index: int
    game_config: GameConfig
    event_log_mode: Optional[str]
    event_log_path: Optional[Path]
    echo: bool


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------


def format_event(payload: Dict) -> Optional[str]:
    """Render a game event as a console line, or None for silent events."""

    kind = payload["event"]
    if kind == "round_started":
        return (
            f"\n{DIVIDER}\nRound {payload['round']} | players remaining: {payload['active']}"
            f" | chairs available: {payload['chairs']}"
        )
    if kind == "music_stopped":
        return "🎵 The music stopped! Everybody grab a chair..."
    if kind == "seat_claimed":
        return f"[Chair {payload['seat']}]: taken by P{payload['participant']}"
    if kind == "eliminated":
        return f"P{payload['participant']} could not find a chair and is eliminated!"
    if kind == "attempt_window_missed":
        return (
            f"Warning: {payload['pending']} participant(s) did not reach a chair"
            f" before round {payload['round']} closed"
        )
    if kind == "late_attempt_discarded":
        return f"P{payload['participant']} reached for a chair after round {payload['round']} was over"
    if kind == "winner":
        return f"\n🏆 Winner: P{payload['participant']}! Congratulations! 🏆"
    if kind == "game_over":
        return "Musical chairs finished."
    return None


def _print_event(payload: Dict) -> None:
    line = format_event(payload)
    if line is not None:
        print(line, flush=True)


# ---------------------------------------------------------------------------
# Stats & hooks
# ---------------------------------------------------------------------------


class GameSummaryPublisher:
    def __init__(self) -> None:
        self._subscribers: List[Callable[[Dict], None]] = []

    def subscribe(self, callback: Callable[[Dict], None]) -> None:
        self._subscribers.append(callback)

    def publish(self, payload: Dict) -> None:
        for callback in list(self._subscribers):
            callback(payload)


@dataclass
class SimulationStats:
    games_played: int = 0
    total_rounds: int = 0
    missed_windows: int = 0
    win_counts: Dict[int, int] = field(default_factory=dict)

    def update_from_summary(self, summary: Dict) -> None:
        result = summary.get("result") or {}
        self.games_played += 1
        self.total_rounds += result.get("rounds", 0)
        self.missed_windows += result.get("missed_windows", 0)
        winner = result.get("winner")
        if winner is not None:
            self.win_counts[winner] = self.win_counts.get(winner, 0) + 1

    def as_dict(self) -> Dict:
        return {
            "games_played": self.games_played,
            "total_rounds": self.total_rounds,
            "missed_windows": self.missed_windows,
            "win_counts": self.win_counts,
        }


# ---------------------------------------------------------------------------
# Core simulation logic
# ---------------------------------------------------------------------------


def _run_single_game(task: GameTask) -> Dict:
    publisher = GameEventPublisher()
    if task.echo:
        publisher.subscribe(_print_event)

    logger: Optional[GameEventLogger] = None
    if task.event_log_mode:
        destination = task.event_log_path
        if destination:
            destination = destination.expanduser()
        logger = create_logger(
            task.event_log_mode,
            destination=destination,
            game_id=str(task.game_index),
        )
        publisher.subscribe(logger.log_event)

    try:
        game = MusicalChairsGame(task.game_config, publisher=publisher)
        result = game.play()
    finally:
        if logger is not None:
            logger.close()

    return {
        "game_index": task.game_index,
        "num_participants": task.game_config.num_participants,
        "result": result.as_dict(),
    }


class SimulationRunner:
    def __init__(self, config: SimulationConfig):
        config.game.validate()
        if config.num_games < 1:
            raise ValueError("At least one game must be played")
        self.config = config
        self.publisher = GameSummaryPublisher()
        self.stats = SimulationStats()
        self.metrics = SurvivalMetricsAccumulator()

    def subscribe(self, callback: Callable[[Dict], None]) -> None:
        self.publisher.subscribe(callback)

    def _tasks(self) -> List[GameTask]:
        return [
            GameTask(
                game_index=game_index,
                game_config=self.config.game,
                event_log_mode=self.config.event_log_mode,
                event_log_path=self.config.event_log_path,
                echo=self.config.echo,
            )
            for game_index in range(self.config.num_games)
        ]

    def _handle_summary(self, summary: Dict) -> None:
        self.stats.update_from_summary(summary)
        self.metrics.record_game(summary)
        self.publisher.publish(summary)
        self._maybe_checkpoint()

    def _maybe_checkpoint(self) -> None:
        if not self.config.checkpoint_interval:
            return
        if self.stats.games_played % self.config.checkpoint_interval != 0:
            return

        checkpoint_path = self.config.checkpoint_path or Path("simulation_checkpoint.json")
        data = {"stats": self.stats.as_dict(), "metrics": self.metrics.as_dict()}
        checkpoint_path = Path(checkpoint_path)
        checkpoint_path.parent.mkdir(parents=True, exist_ok=True)
        checkpoint_path.write_text(json.dumps(data, indent=2))

    def run(self) -> SimulationStats:
        tasks = self._tasks()
        if self.config.concurrency > 1:
            with ProcessPoolExecutor(max_workers=self.config.concurrency) as pool:
                for summary in pool.map(_run_single_game, tasks):
                    self._handle_summary(summary)
        else:
            for task in tasks:
                self._handle_summary(_run_single_game(task))

        return self.stats


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Musical chairs simulation")
    parser.add_argument("--config", type=Path, help="Optional JSON config file", default=None)
    parser.add_argument("--players", type=int, help="Number of participants (>= 2)", default=None)
    parser.add_argument("--games", type=int, help="Number of games to run", default=None)
    parser.add_argument("--concurrency", type=int, help="Process pool size for batches", default=None)
    parser.add_argument(
        "--settle",
        choices=["grace", "barrier"],
        help="Close each round after a grace sleep or once every player resolved",
        default=None,
    )
    parser.add_argument("--music-min", type=float, help="Shortest music phase in seconds", default=None)
    parser.add_argument("--music-max", type=float, help="Longest music phase in seconds", default=None)
    parser.add_argument("--grace", type=float, help="Seconds the scramble lasts in grace mode", default=None)
    parser.add_argument("--reflex", help="Dotted path of the reflex class", default=None)
    parser.add_argument("--checkpoint-interval", type=int, help="Games between checkpoints", default=None)
    parser.add_argument("--checkpoint-path", type=Path, help="Where to write checkpoint stats", default=None)
    parser.add_argument("--quiet", action="store_true", help="Do not print the play-by-play")
    parser.add_argument(
        "--event-log-mode",
        choices=["stdout", "jsonl", "parquet"],
        help="Where to stream structured game events",
        default=None,
    )
    parser.add_argument(
        "--event-log-path",
        type=Path,
        help="Destination file for JSONL or Parquet logs",
        default=None,
    )
    return parser.parse_args(argv)


def _load_config_from_file(config_path: Optional[Path]) -> Dict:
    if not config_path:
        return {}
    return json.loads(config_path.read_text())


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _build_simulation_config(args: argparse.Namespace) -> SimulationConfig:
    config_data = _load_config_from_file(args.config)

    game = GameConfig.from_dict(config_data.get("game", {}))
    game.num_participants = _first_set(args.players, game.num_participants)
    game.music_min = _first_set(args.music_min, game.music_min)
    game.music_max = _first_set(args.music_max, game.music_max)
    game.grace_period = _first_set(args.grace, game.grace_period)
    game.settle = _first_set(args.settle, game.settle)
    game.reflex = _first_set(args.reflex, game.reflex)

    num_games = args.games or config_data.get("num_games", 1)
    concurrency = args.concurrency or config_data.get("concurrency", 1)
    checkpoint_interval = args.checkpoint_interval or config_data.get("checkpoint_interval")
    checkpoint_path = args.checkpoint_path or config_data.get("checkpoint_path")
    event_log_config = config_data.get("event_log", {})
    event_log_mode = args.event_log_mode or event_log_config.get("mode")
    event_log_path_value = args.event_log_path or event_log_config.get("path")

    return SimulationConfig(
        num_games=num_games,
        concurrency=max(1, concurrency),
        game=game,
        checkpoint_interval=checkpoint_interval,
        checkpoint_path=Path(checkpoint_path) if checkpoint_path else None,
        event_log_mode=event_log_mode,
        event_log_path=Path(event_log_path_value) if event_log_path_value else None,
        echo=not args.quiet,
    )


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    config = _build_simulation_config(args)
    runner = SimulationRunner(config)

    stats = runner.run()
    if config.num_games > 1 or not config.echo:
        print(json.dumps({"stats": stats.as_dict(), "metrics": runner.metrics.as_dict()}, indent=2))


if __name__ == "__main__":
    main()
