"""Dispatch layer.

Turns scheduled track points into timed sink deliveries. Owns all timing
and the pause/hold/resume semantics.
"""

from pygpxreplay.dispatch.queue import DispatchQueue, DispatchUnit, QueueState
from pygpxreplay.dispatch.scheduler import DeliveryScheduler

__all__ = [
    "DeliveryScheduler",
    "DispatchQueue",
    "DispatchUnit",
    "QueueState",
]
