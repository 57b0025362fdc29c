from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from decido.schemas.workflow import DecisionEvent, DecisionEventType


class DecisionLog:
    """Append-only JSONL history of decision events.

    Meant to be registered as a listener on a DecisionEventEmitter so that
    every closure, final decision, and stage change leaves a trace.
    """

    def __init__(self, log_dir: Path) -> None:
        self.log_dir = log_dir
        self.events_file = log_dir / "decision_events.jsonl"

    def __call__(self, event: DecisionEvent) -> None:
        self.record(event)

    def record(self, event: DecisionEvent) -> None:
        """Append an event to the log."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        with open(self.events_file, "a", encoding="utf-8") as f:
            f.write(event.model_dump_json() + "\n")

    def query(
        self,
        decision_id: str | None = None,
        event_type: DecisionEventType | str | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[DecisionEvent]:
        """Filter and return logged events, oldest first."""
        results: list[DecisionEvent] = []
        if not self.events_file.exists():
            return results

        with open(self.events_file, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                event = DecisionEvent.model_validate(json.loads(line))
                if decision_id and event.decision_id != decision_id:
                    continue
                if event_type and event.type != event_type:
                    continue
                if since and event.timestamp < since:
                    continue
                results.append(event)

        if limit:
            results = results[-limit:]
        return results
