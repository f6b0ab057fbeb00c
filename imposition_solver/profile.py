# imposition_solver/profile.py
# Phase timing for calculate(): Validating / Enumerating / Ranking.
# Enough to see where a slow catalog spends its time.

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Dict, Iterator, List


class Profiler:
    """Records wall time per engine phase, in the order the phases ran."""

    def __init__(self) -> None:
        self.elapsed: Dict[str, float] = {}
        self.order: List[str] = []

    @contextmanager
    def phase(self, name: str) -> Iterator[None]:
        t0 = time.perf_counter()
        try:
            yield
        finally:
            if name not in self.elapsed:
                self.order.append(name)
            self.elapsed[name] = self.elapsed.get(name, 0.0) + time.perf_counter() - t0

    @property
    def total(self) -> float:
        return sum(self.elapsed.values())

    def report(self) -> str:
        lines = ["--- Engine phases ---"]
        for name in self.order:
            lines.append(f"{name:12s}: {self.elapsed[name] * 1000:8.2f} ms")
        lines.append(f"{'total':12s}: {self.total * 1000:8.2f} ms")
        return "\n".join(lines)
