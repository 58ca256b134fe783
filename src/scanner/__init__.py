from .loop import CycleReport, Decision, DirectionReport, ScanConfig, ScanLoop

__all__ = [
    "ScanLoop",
    "ScanConfig",
    "CycleReport",
    "DirectionReport",
    "Decision",
]
