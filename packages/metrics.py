"""In-process counters and duration sums, exposed as plain text on /metrics."""
import threading
from collections import defaultdict


_lock = threading.Lock()
_counters: dict[str, int] = defaultdict(int)
_durations: dict[str, float] = defaultdict(float)


def series(name: str, **labels) -> str:
    """`name{k="v",...}` key for a labelled series, bare name without labels."""
    if not labels:
        return name
    body = ",".join(f'{key}="{value}"' for key, value in labels.items())
    return f"{name}{{{body}}}"


def inc(name: str, value: int = 1, **labels) -> None:
    key = series(name, **labels)
    with _lock:
        _counters[key] += value


def observe(name: str, seconds: float, **labels) -> None:
    key = series(name, **labels)
    with _lock:
        _durations[key] += seconds


def snapshot() -> tuple[dict, dict]:
    with _lock:
        return dict(_counters), dict(_durations)


def reset() -> None:
    with _lock:
        _counters.clear()
        _durations.clear()


def render_text() -> str:
    counters, durations = snapshot()
    lines = [f"{key} {value}" for key, value in sorted(counters.items())]
    for key, total in sorted(durations.items()):
        name, brace, rest = key.partition("{")
        lines.append(f"{name}_sum{brace}{rest} {total}")
    return "\n".join(lines) + "\n"
