"""Signals - vocabulary, evidence weights and URL heuristics"""

from .evidence_weights import AUX_CONSTANTS, AUX_SIGNAL_VALUES, EVIDENCE_WEIGHTS
from .vocabulary import KNOWN_SIGNAL_CODES, ActivityLevel, SignalCode, is_known_signal

__all__ = [
    "AUX_CONSTANTS",
    "AUX_SIGNAL_VALUES",
    "EVIDENCE_WEIGHTS",
    "KNOWN_SIGNAL_CODES",
    "ActivityLevel",
    "SignalCode",
    "is_known_signal",
]
