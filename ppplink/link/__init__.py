"""
Link transmit state machine - pure functional.

LinkStateMachine.step() takes state and event and returns the new state plus
the actions the device must execute.
"""
from .state import LinkState, Phase
from .events import Event, FrameAvailable, TransmitComplete
from .actions import (
    Action,
    BeginTransmission,
    ScheduleCompletion,
    PullNextFrame,
    Trace,
    Log,
)
from .machine import LinkStateMachine

__all__ = [
    # State
    "LinkState",
    "Phase",
    # Events
    "Event",
    "FrameAvailable",
    "TransmitComplete",
    # Actions
    "Action",
    "BeginTransmission",
    "ScheduleCompletion",
    "PullNextFrame",
    "Trace",
    "Log",
    # Machine
    "LinkStateMachine",
]
