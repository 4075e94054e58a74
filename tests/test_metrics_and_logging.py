from pathlib import Path
import json

import pytest

from eventlog import create_logger
from metrics.survival import SurvivalMetricsAccumulator


def _summary(winner, elimination_order, rounds, duration):
    return {
        "num_participants": len(elimination_order) + 1,
        "result": {
            "winner": winner,
            "elimination_order": elimination_order,
            "rounds": rounds,
            "duration": duration,
            "missed_windows": 0,
        },
    }


def test_survival_metrics_track_placements_and_win_rates():
    metrics = SurvivalMetricsAccumulator()

    metrics.record_game(_summary(1, [3, 2], 2, 1.0))
    metrics.record_game(_summary(2, [3, 1], 2, 3.0))

    report = metrics.as_dict()
    by_id = {entry["participant"]: entry for entry in report["participants"]}
    assert report["games_observed"] == 2
    assert report["mean_rounds"] == pytest.approx(2.0)
    assert by_id[1]["wins"] == 1
    assert by_id[1]["mean_placement"] == pytest.approx(1.5)
    assert by_id[3]["win_rate"] == pytest.approx(0.0)
    assert by_id[3]["mean_placement"] == pytest.approx(3.0)
    assert report["durations"]["mean"] == pytest.approx(2.0)
    assert report["durations"]["max"] == pytest.approx(3.0)


def test_survival_metrics_ignore_summaries_without_a_winner():
    metrics = SurvivalMetricsAccumulator()
    metrics.record_game({"result": {}})
    assert metrics.as_dict()["games_observed"] == 0


def test_jsonl_logger_appends_one_line_per_event(tmp_path: Path):
    destination = tmp_path / "logs" / "events.jsonl"
    logger = create_logger("jsonl", destination=destination, game_id="7")

    logger.log_event({"event": "round_started", "round": 1, "active": 4, "chairs": 3})
    logger.log_event({"event": "seat_claimed", "round": 1, "participant": 2, "seat": 1})
    logger.close()

    lines = [json.loads(line) for line in destination.read_text().splitlines()]
    assert [line["event"] for line in lines] == ["round_started", "seat_claimed"]
    assert lines[0]["chairs"] == 3
    assert lines[1]["participant"] == 2
    assert all(line["game_id"] == "7" for line in lines)


def test_create_logger_validates_mode_and_destination():
    with pytest.raises(ValueError):
        create_logger("jsonl", destination=None, game_id="0")
    with pytest.raises(ValueError):
        create_logger("carrier-pigeon", destination=None, game_id="0")
