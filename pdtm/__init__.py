"""PDTM - passive domain trust monitoring: activity, federation and attention scoring"""

from __future__ import annotations

__version__ = "0.4.0"


# Lazy imports keep `import pdtm` cheap for the pure classification path
def __getattr__(name: str):
    if name in ("classify", "ActivityEstimation"):
        from pdtm.classification import classifier

        return getattr(classifier, name)

    if name in ("score", "decide"):
        from pdtm.risk import risk_model, state_mapper

        return risk_model.score if name == "score" else state_mapper.decide

    if name == "ActivityMonitorService":
        from pdtm.service import ActivityMonitorService

        return ActivityMonitorService

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "ActivityEstimation",
    "ActivityMonitorService",
    "classify",
    "decide",
    "score",
]
