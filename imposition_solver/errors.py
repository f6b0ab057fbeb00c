# imposition_solver/errors.py
# Engine error kinds. All derive from ValueError so callers that already
# catch ValueError around input parsing keep working.

from __future__ import annotations

from typing import Optional, Sequence, Tuple


class EngineError(ValueError):
    """Base class for every error raised by calculate()."""


class InvalidInput(EngineError):
    """Bad dimensions/quantity, unknown catalog id, or no sheet can hold the tile."""


class NoFeasibleLayout(EngineError):
    """No sheet size x method combination fits, even after shrink."""

    def __init__(self, message: str, attempted_sheet_sizes: Sequence[str] = ()):
        super().__init__(message)
        self.attempted_sheet_sizes: Tuple[str, ...] = tuple(attempted_sheet_sizes)


class AmbiguousPaperPrice(EngineError):
    """A paper type has neither a per-sheet nor a derivable per-kg price."""

    def __init__(self, message: str, paper_type_id: Optional[int] = None):
        super().__init__(message)
        self.paper_type_id = paper_type_id
