"""Structured event logging utilities for musical chairs games."""
from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

try:  # Optional dependency for Parquet output
    import pyarrow as pa  # type: ignore
    import pyarrow.parquet as pq  # type: ignore
except Exception:  # pragma: no cover - pyarrow is optional
    pa = None  # type: ignore
    pq = None  # type: ignore


@dataclass
class GameEvent:
    """Single protocol event emitted by the arbiter or a participant."""

    timestamp: str
    game_id: str
    event: str
    round: Optional[int] = None
    participant: Optional[int] = None
    seat: Optional[int] = None
    chairs: Optional[int] = None
    active: Optional[int] = None
    eliminated: Optional[int] = None
    pending: Optional[int] = None
    rounds: Optional[int] = None

    @classmethod
    def from_payload(cls, game_id: str, payload: Dict[str, Any]) -> "GameEvent":
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            game_id=game_id,
            event=payload["event"],
            round=payload.get("round"),
            participant=payload.get("participant"),
            seat=payload.get("seat"),
            chairs=payload.get("chairs"),
            active=payload.get("active"),
            eliminated=payload.get("eliminated"),
            pending=payload.get("pending"),
            rounds=payload.get("rounds"),
        )

    def as_dict(self) -> Dict:
        return {
            "timestamp": self.timestamp,
            "game_id": self.game_id,
            "event": self.event,
            "round": self.round,
            "participant": self.participant,
            "seat": self.seat,
            "chairs": self.chairs,
            "active": self.active,
            "eliminated": self.eliminated,
            "pending": self.pending,
            "rounds": self.rounds,
        }


class _BaseWriter:
    def append(self, event: Dict[str, Any]) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def close(self) -> None:  # pragma: no cover - interface
        return None


class StdoutWriter(_BaseWriter):
    def append(self, event: Dict[str, Any]) -> None:
        print(json.dumps(event, separators=(",", ":")))


class JSONLWriter(_BaseWriter):
    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("a", encoding="utf-8")

    def append(self, event: Dict[str, Any]) -> None:
        self._handle.write(json.dumps(event) + "\n")
        self._handle.flush()

    def close(self) -> None:
        self._handle.close()


class ParquetWriter(_BaseWriter):
    def __init__(self, path: Path) -> None:
        if pq is None or pa is None:  # pragma: no cover - import-time guard
            raise RuntimeError("pyarrow is required for Parquet logging but is not installed")
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._writer: Optional["pq.ParquetWriter"] = None
        self._schema = pa.schema(
            [
                ("timestamp", pa.string()),
                ("game_id", pa.string()),
                ("event", pa.string()),
                ("round", pa.int64()),
                ("participant", pa.int64()),
                ("seat", pa.int64()),
                ("chairs", pa.int64()),
                ("active", pa.int64()),
                ("eliminated", pa.int64()),
                ("pending", pa.int64()),
                ("rounds", pa.int64()),
            ]
        )

    def append(self, event: Dict[str, Any]) -> None:
        if pa is None or pq is None:  # pragma: no cover
            return
        table = pa.Table.from_pylist([event], schema=self._schema)
        if self._writer is None:
            self._writer = pq.ParquetWriter(self.path, self._schema)
        self._writer.write_table(table)

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None


class GameEventLogger:
    """Facade that serializes events from every game thread into one writer."""

    def __init__(self, writer: _BaseWriter, game_id: str) -> None:
        self._writer = writer
        self._lock = threading.Lock()
        self.game_id = game_id

    def log_event(self, payload: Dict[str, Any]) -> None:
        event = GameEvent.from_payload(self.game_id, payload)
        with self._lock:
            self._writer.append(event.as_dict())

    def close(self) -> None:
        with self._lock:
            self._writer.close()


def create_logger(mode: str, *, destination: Optional[Path], game_id: str) -> GameEventLogger:
    """Factory that builds a logger for the requested mode."""

    normalized = mode.lower()
    if normalized == "stdout":
        writer = StdoutWriter()
    elif normalized == "jsonl":
        if not destination:
            raise ValueError("JSONL logging requires a destination path")
        writer = JSONLWriter(destination)
    elif normalized == "parquet":
        if not destination:
            raise ValueError("Parquet logging requires a destination path")
        writer = ParquetWriter(destination)
    else:
        raise ValueError(f"Unknown event log mode: {mode}")

    return GameEventLogger(writer, game_id=game_id)
