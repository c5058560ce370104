from __future__ import annotations

from typing import Any, Callable, List, Optional

from .interface import IScheduler


class PointToPointChannel:
    """
    Full-duplex wire between two devices.

    A frame handed over by transmit_start() reaches the peer's receive()
    after its serialization time plus the propagation delay.
    """

    def __init__(
        self,
        scheduler: IScheduler,
        delay_s: float = 0.0,
        logger: Optional[Callable[[str, str], None]] = None,
    ):
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        self.scheduler = scheduler
        self.delay_s = float(delay_s)
        self._logger = logger or (lambda level, msg: None)
        self._devices: List[Any] = []

    def attach(self, device: Any) -> None:
        if device in self._devices:
            return
        if len(self._devices) >= 2:
            raise ValueError("point-to-point channel already has two devices")
        self._devices.append(device)
        self._logger("info", f"[Channel] attached device #{len(self._devices)}")

    @property
    def n_devices(self) -> int:
        return len(self._devices)

    def get_device(self, i: int) -> Any:
        return self._devices[i]

    def get_peer(self, device: Any) -> Any:
        for dev in self._devices:
            if dev is not device:
                return dev
        return None

    def transmit_start(self, frame: bytes, src: Any, tx_time_s: float) -> bool:
        if src not in self._devices:
            raise ValueError("source device is not attached to this channel")
        if len(self._devices) < 2:
            self._logger("warn", "[Channel] peer not attached, frame refused")
            return False
        peer = self.get_peer(src)
        self.scheduler.schedule(tx_time_s + self.delay_s, peer.receive, bytes(frame))
        return True
