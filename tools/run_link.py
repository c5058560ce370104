"""Run a YAML link scenario and print both devices' counters: python tools/run_link.py scenario.yaml"""
import json
import os
import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ppplink import RateErrorModel, Simulator, install, load_scenario, udp_packet

LOREM = (b"Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do "
         b"eiusmod tempor incididunt ut labore et dolore magna aliqua. ")


def make_payload(kind: str, size: int, rng: np.random.Generator) -> bytes:
    if kind == "zeros":
        return bytes(size)
    if kind == "random":
        return rng.integers(0, 256, size=size, dtype=np.uint8).tobytes()
    if kind == "text":
        reps = size // len(LOREM) + 1
        return (LOREM * reps)[:size]
    raise ValueError(f"unknown payload kind '{kind}' (text | zeros | random)")


def main():
    if len(sys.argv) < 2:
        print("Usage: python tools/run_link.py <scenario.yaml>")
        sys.exit(2)
    scenario = load_scenario(Path(sys.argv[1]))
    verbose = os.environ.get("PPPLINK_VERBOSE") == "1"

    def log(level: str, msg: str) -> None:
        if verbose or level in ("warn", "error"):
            print(f"[{level}] {msg}")

    rng = np.random.default_rng(scenario.seed)
    sim = Simulator(logger=log)
    link = install(sim, scenario.left, scenario.right, scenario.channel, logger=log)
    if scenario.error_rate > 0:
        link.right.set_receive_error_model(RateErrorModel(scenario.error_rate, rng=rng))

    delivered = []
    link.right.set_receive_callback(lambda dev, pkt, proto, remote: delivered.append(pkt))

    traffic = scenario.traffic
    sent = []
    for i in range(traffic.packets):
        packet = udp_packet(make_payload(traffic.payload, traffic.payload_size, rng), seq=i)
        sent.append(packet)
        sim.schedule(i * traffic.interval_s, link.left.send, packet, link.right.address, 0x0800)
    sim.run()

    intact = sum(1 for p in delivered if p in sent)
    print(f"t_end={sim.now:.6f}s sent={len(sent)} delivered={len(delivered)} intact={intact}")
    print("left:  " + json.dumps(link.left.counters))
    print("right: " + json.dumps(link.right.counters))


if __name__ == "__main__":
    main()
