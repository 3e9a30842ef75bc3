"""Replay a recorded pointer trace through velocity tracker strategies."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import List, Optional

import typer

from velocity_tracker.calibration import TrackerSettings
from velocity_tracker.tracker import VelocityTracker
from velocity_tracker.tracking.bitset import PointerIdBits
from velocity_tracker.tracking.estimator import Position
from velocity_tracker.tracking.strategy import Strategy

app = typer.Typer(help="Replay a CSV pointer trace and print per-pointer velocities")

Sample = tuple[int, PointerIdBits, list[Position]]


def load_trace(path: Path) -> list[Sample]:
    """Read ``event_time_ns,pointer_id,x,y`` rows, grouping equal times into one movement.

    A header row is allowed. Rows of one movement must be consecutive.
    """
    samples: list[Sample] = []
    current_time: int | None = None
    current: dict[int, Position] = {}

    def flush() -> None:
        if current_time is not None and current:
            ids = sorted(current)
            samples.append((current_time, PointerIdBits.of(ids), [current[i] for i in ids]))

    with open(path, encoding="utf-8", newline="") as f:
        for lineno, row in enumerate(csv.reader(f), start=1):
            if not row or row[0].startswith("#"):
                continue
            if lineno == 1 and not row[0].strip().lstrip("-").isdigit():
                continue
            try:
                event_time, pointer_id = int(row[0]), int(row[1])
                position = Position(float(row[2]), float(row[3]))
                PointerIdBits.of([pointer_id])
            except (IndexError, ValueError) as e:
                raise typer.BadParameter(f"{path}:{lineno}: {e}") from e
            if event_time != current_time:
                flush()
                current_time = event_time
                current = {}
            current[pointer_id] = position
    flush()
    return samples


def replay(samples: list[Sample], strategy: Strategy, settings: TrackerSettings | None = None) -> VelocityTracker:
    """Feed every sample to a fresh tracker."""
    tracker = VelocityTracker(strategy, settings)
    for event_time, id_bits, positions in samples:
        tracker.add_movement(event_time, id_bits, positions)
    return tracker


@app.command()
def main(
    trace: Path = typer.Argument(
        ..., exists=True, dir_okay=False, resolve_path=True, help="CSV trace: event_time_ns,pointer_id,x,y"
    ),
    strategy: Optional[List[str]] = typer.Option(  # noqa: UP006, UP007
        None,
        "--strategy",
        "-s",
        help="Strategy name (repeatable), e.g. lsq2, impulse. Defaults to the configured default.",
    ),
    settings_file: Optional[Path] = typer.Option(  # noqa: UP007
        None, "--settings", exists=True, dir_okay=False, help="Tracker settings JSON"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),  # noqa: FBT001
) -> None:
    """Replay the trace and print the final estimate for every pointer."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    settings = TrackerSettings.load(settings_file)
    names = strategy or ["default"]
    try:
        strategies = [Strategy.from_name(name) for name in names]
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    samples = load_trace(trace)
    if not samples:
        typer.echo("Trace contains no samples.")
        return

    pointer_ids = PointerIdBits()
    for _, id_bits, _ in samples:
        pointer_ids = pointer_ids.union(id_bits)

    for s in strategies:
        tracker = replay(samples, s, settings)
        for pointer_id in pointer_ids:
            ok, estimator = tracker.get_estimator(pointer_id)
            _, vx, vy = tracker.get_velocity(pointer_id)
            typer.echo(
                f"{tracker.strategy_id.name.lower()}\t{pointer_id}\t{'ok' if ok else 'none'}\t"
                f"vx={vx:.3f}\tvy={vy:.3f}\tdegree={estimator.degree}\tconfidence={estimator.confidence:.3f}"
            )


if __name__ == "__main__":
    app()
