"""
Transmit state machine.

Implemented as a pure function:
    step(state, event) -> (new_state, actions)

No I/O and no clock. The device executes the returned actions; it never
calls the codec from here, since rewriting already happened before the
frame was queued.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Callable

from ..errors import StateViolation
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


# Type alias for the step function signature
StepResult = tuple[LinkState, list[Action]]


class LinkStateMachine:
    """
    Pure functional single-slot transmitter.

    Usage:
        state = LinkState(data_rate_bps=5_000_000)
        state, actions = LinkStateMachine.step(state, FrameAvailable(frame))
        # device executes actions, later:
        state, actions = LinkStateMachine.step(state, TransmitComplete())
    """

    @staticmethod
    def step(state: LinkState, event: Event) -> StepResult:
        """
        Process an event and return (new_state, actions).

        Raises StateViolation for a transition that must never happen;
        that is an invariant break in the caller, not a per-frame error.
        """
        handler = _HANDLERS.get((state.phase, type(event)))
        if handler is None:
            raise StateViolation(
                f"{type(event).__name__} not allowed in phase {state.phase.name}"
            )
        return handler(state, event)


# =============================================================================
# Handlers
# =============================================================================

def _handle_ready_frame(state: LinkState, event: FrameAvailable) -> StepResult:
    """READY + FrameAvailable -> BUSY, frame goes on the wire."""
    frame = event.frame
    tx_time = state.tx_time(frame)
    complete_in = tx_time + state.interframe_gap_s
    return (
        replace(state, phase=Phase.BUSY, current_frame=frame),
        [
            Trace("PhyTxBegin", frame),
            Log("debug", f"[LinkMachine] TX start {len(frame)}B, complete in {complete_in:.9f}s"),
            ScheduleCompletion(complete_in),
            BeginTransmission(frame, tx_time),
        ]
    )


def _handle_busy_frame(state: LinkState, event: FrameAvailable) -> StepResult:
    """BUSY + FrameAvailable -> second frame in the slot."""
    raise StateViolation("Must be READY to transmit")


def _handle_busy_complete(state: LinkState, event: TransmitComplete) -> StepResult:
    """BUSY + TransmitComplete -> READY, then try the queue."""
    if state.current_frame is None:
        raise StateViolation("TransmitComplete with an empty transmit slot")
    done = state.current_frame
    return (
        replace(state, phase=Phase.READY, current_frame=None, frames_sent=state.frames_sent + 1),
        [
            Trace("PhyTxEnd", done),
            PullNextFrame(),
        ]
    )


def _handle_ready_complete(state: LinkState, event: TransmitComplete) -> StepResult:
    raise StateViolation("Must be BUSY if transmitting")


# =============================================================================
# Handler dispatch table
# =============================================================================

_HANDLERS: dict[tuple, Callable[[LinkState, Event], StepResult]] = {
    (Phase.READY, FrameAvailable): _handle_ready_frame,
    (Phase.BUSY, FrameAvailable): _handle_busy_frame,
    (Phase.BUSY, TransmitComplete): _handle_busy_complete,
    (Phase.READY, TransmitComplete): _handle_ready_complete,
}
