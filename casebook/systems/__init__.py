"""
Game systems for casebook.

Each system owns one slice of state. FlowOrchestrator is the only one
that touches several of them within a single action.
"""

from .economy import ActionEconomy
from .affinity import AffinityTracker
from .ledger import ClueLedger, relation_key
from .dialogue import DialogueEngine, DialogueState, DialogueSession
from .locations import LocationCatalog
from .endings import determine_ending
from .freeform import FreeformBridge
from .flow import FlowOrchestrator, FlowPhase, FlowError, InvalidFlowPhaseError

__all__ = [
    "ActionEconomy",
    "AffinityTracker",
    "ClueLedger",
    "relation_key",
    "DialogueEngine",
    "DialogueState",
    "DialogueSession",
    "LocationCatalog",
    "determine_ending",
    "FreeformBridge",
    # Action pipeline
    "FlowOrchestrator",
    "FlowPhase",
    "FlowError",
    "InvalidFlowPhaseError",
]
