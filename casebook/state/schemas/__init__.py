"""Typed request/result artifacts for the flow orchestrator."""

from .action import ActionKind, ActionResult, RefusalCode, Restriction

__all__ = ["ActionKind", "ActionResult", "RefusalCode", "Restriction"]
