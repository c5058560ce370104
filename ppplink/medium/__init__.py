"""
Link medium: collaborator interfaces plus minimal reference implementations
(queue, channel, error models, scheduler).
"""
from .interface import IQueue, IChannel, IErrorModel, IScheduler, ReceiveCallback
from .queue import DropTailQueue
from .channel import PointToPointChannel
from .error_model import RateErrorModel, ListErrorModel
from .scheduler import Simulator

__all__ = [
    "IQueue",
    "IChannel",
    "IErrorModel",
    "IScheduler",
    "ReceiveCallback",
    "DropTailQueue",
    "PointToPointChannel",
    "RateErrorModel",
    "ListErrorModel",
    "Simulator",
]
