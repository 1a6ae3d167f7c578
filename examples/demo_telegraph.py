"""Demo: two participants exchanging integers over a shared in-memory cap.

Both participants run in one process but share nothing except the
capped endpoint and the wall clock. Each cycle one of them wins the
negotiation race and sends; the other reads the digits back.

Usage:
    python examples/demo_telegraph.py
    python examples/demo_telegraph.py --cycles 5 --plot occupancy.png
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from poolparty.pool import PoolConfig
from poolparty.providers import CappedEndpoint, InMemoryProvider
from poolparty.engine import TelegraphSession, Role


async def run_pair(config: PoolConfig, cycles: int, value):
    endpoint = CappedEndpoint(capacity=config.max_slots)
    alice = TelegraphSession(InMemoryProvider(endpoint, owner="alice"), config)
    bob = TelegraphSession(InMemoryProvider(endpoint, owner="bob"), config)

    async with alice, bob:
        await asyncio.gather(
            alice.run(cycles=cycles, value=value),
            bob.run(cycles=cycles, value=value),
        )

    print(f"{'cycle':>5}  {'alice':>22}  {'bob':>22}  match")
    for i, (a, b) in enumerate(zip(alice.metrics.results, bob.metrics.results)):
        sent, got = (a, b) if a.role == Role.SENDER else (b, a)
        match = "✓" if got.valid and got.hex == sent.hex else "✗"
        print(
            f"{i:>5}  {a.role.value + ' ' + str(a.hex):>22}  "
            f"{b.role.value + ' ' + str(b.hex):>22}  {match}"
        )
    print(f"\nEndpoint in use after drain: {endpoint.in_use}")
    return alice, bob


def main():
    parser = argparse.ArgumentParser(description="In-process pool telegraphy demo")
    parser.add_argument("--cycles", type=int, default=3)
    parser.add_argument("--value", type=lambda s: int(s, 0), default=None)
    parser.add_argument("--plot", default=None, help="Write both traces to this file")
    args = parser.parse_args()

    print("=" * 70)
    print("Pool telegraphy - in-memory demo")
    print("=" * 70)

    config = PoolConfig.for_testing()
    alice, bob = asyncio.run(run_pair(config, args.cycles, args.value))

    if args.plot:
        from poolparty.experiments import plot_traces
        plot_traces({"alice": alice.trace, "bob": bob.trace}, output=Path(args.plot))
        print(f"Wrote figure to {args.plot}")


if __name__ == "__main__":
    main()
