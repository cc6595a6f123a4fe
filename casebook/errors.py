"""
Exception taxonomy for the engine.

Refusals (insufficient points, wrong phase, unknown ids) are never raised;
they come back as ActionResult objects. Exceptions here are reserved for
misuse and corrupt input.
"""


class EngineError(Exception):
    """Base class for engine errors."""
    pass


class InvariantViolation(EngineError):
    """An operation would break a state invariant. Nothing was mutated."""
    pass


class ContentError(EngineError):
    """Scenario content could not be loaded or validated."""
    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"Invalid scenario content in {source}: {detail}")
