from .evaluator import Evaluation, RouteEvaluator
from .opportunity import Direction, Opportunity
from .threshold import ProfitThreshold

__all__ = [
    "Opportunity",
    "Direction",
    "RouteEvaluator",
    "Evaluation",
    "ProfitThreshold",
]
