#!/usr/bin/env python
"""Run one participant of a pool telegraphy session.

Start two copies against the same capped endpoint; one negotiates the
sender role, the other the receiver role, and each prints what it sent
or read every cycle.

Usage:
    python scripts/run_session.py --url ws://127.0.0.1:3500/websockets
    python scripts/run_session.py --preset firefox --cycles 20 --trace-out trace.json
    python scripts/run_session.py --kind event_stream --url http://127.0.0.1:3500/source
    python scripts/run_session.py --url ws://... probe      # manual commands

Commands:
    run (default), consume N, consume-all, release N, release-all,
    probe, is-sender, send [VALUE], receive
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
import time
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from poolparty.pool import PoolConfig
from poolparty.providers import build_provider
from poolparty.engine import TelegraphSession, HttpResultSink, CycleResult


def on_cycle_complete(result: CycleResult):
    """Print one line per cycle."""
    if result.valid:
        print(f"{result.role.value}: {result.hex}, elapsed, ms: {result.elapsed_ms:.0f}")
    else:
        print(f"{result.role.value}: INVALID {result.digits} ({result.reason})")


async def run_command(session: TelegraphSession, args) -> object:
    """Execute one manual command against the session's pool."""
    pool = session.pool
    engine = session.engine
    config = session.config

    if args.command == "consume":
        return await pool.consume(args.count)
    if args.command == "consume-all":
        return await pool.consume(config.max_slots * 2)
    if args.command == "release":
        return await pool.release(args.count)
    if args.command == "release-all":
        return await pool.release(pool.held_count)
    if args.command == "probe":
        return await pool.probe(config.max_slots)
    if args.command == "is-sender":
        return await engine.is_sender()
    if args.command == "send":
        value = args.value if args.value is not None else engine.random_payload()
        return (await engine.send_integer(value, session.clock.now_ms())).hex
    if args.command == "receive":
        received = await engine.receive_integer(session.clock.now_ms())
        return received.hex if received.valid else f"invalid {received.digits}: {received.reason}"
    raise ValueError(f"Unknown command {args.command}")


async def amain(args) -> int:
    config = PoolConfig.for_environment(args.kind, args.preset)
    if args.kind == "worker":
        provider = build_provider("worker")
    else:
        provider = build_provider(args.kind, args.url)
    sink = HttpResultSink(args.collector) if args.collector else None

    async with TelegraphSession(
        provider,
        config,
        sink=sink,
        on_cycle_complete=on_cycle_complete,
    ) as session:
        if args.command == "run":
            print(f"Payload: {config.num_bits:.1f} bits, cycle {config.cycle_ms:.0f} ms")
            metrics = await session.run(cycles=args.cycles, value=args.value)
            print("-" * 60)
            print(f"Cycles:    {metrics.total_cycles}")
            print(f"Sent:      {metrics.sent}")
            print(f"Received:  {metrics.received} ({metrics.invalid} invalid)")
            print(f"Valid:     {metrics.valid_receive_rate:.0%} of receptions")
            print(f"Avg cycle: {metrics.avg_cycle_time_ms:.0f}ms")
        else:
            t1 = time.perf_counter()
            result = await run_command(session, args)
            t2 = time.perf_counter()
            print(f"{args.command}: {result}, elapsed, ms: {(t2 - t1) * 1000:.0f}")

        summary = session.trace.summary()
        print(f"Trace: {summary.samples} samples, max held {summary.max_held}")

        if args.trace_out:
            Path(args.trace_out).write_text(session.trace.to_json())
            print(f"Wrote trace to {args.trace_out}")

        if args.plot:
            from poolparty.experiments import plot_trace
            results = session.metrics.results
            plot_trace(
                session.trace,
                pool_config=config,
                t0_ms=results[0].t0_ms if results else None,
                output=Path(args.plot),
            )
            print(f"Wrote figure to {args.plot}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Pool telegraphy participant")
    parser.add_argument("--kind", default="websocket",
                        choices=["websocket", "event_stream", "worker"])
    parser.add_argument("--url", default="ws://127.0.0.1:3500/websockets",
                        help="Capped endpoint to draw slots from")
    parser.add_argument("--preset", default=None,
                        help="Timing/size constants, e.g. chrome or firefox for websocket "
                             "(both sides must match; defaults per kind)")
    parser.add_argument("--cycles", type=int, default=10, help="Number of cycles to run")
    parser.add_argument("--value", type=lambda s: int(s, 0), default=None,
                        help="Payload to send when sender (random if omitted)")
    parser.add_argument("--collector", default=None, help="URL to POST cycle results to")
    parser.add_argument("--trace-out", default=None, help="Write occupancy trace JSON here")
    parser.add_argument("--plot", default=None, help="Write occupancy figure here")
    parser.add_argument("--verbose", "-v", action="store_true")
    parser.add_argument("command", nargs="?", default="run",
                        choices=["run", "consume", "consume-all", "release", "release-all",
                                 "probe", "is-sender", "send", "receive"])
    parser.add_argument("count", nargs="?", type=int, default=1,
                        help="Slot count for consume/release")
    args = parser.parse_args()
    try:
        PoolConfig.for_environment(args.kind, args.preset)
    except ValueError as exc:
        parser.error(str(exc))

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    async def runner():
        task = asyncio.current_task()
        loop = asyncio.get_running_loop()
        # Cancel on SIGINT/SIGTERM so the session drains before exit
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, task.cancel)
            except NotImplementedError:
                pass
        return await amain(args)

    try:
        sys.exit(asyncio.run(runner()))
    except asyncio.CancelledError:
        print("Interrupted; all slots released.")
        sys.exit(130)


if __name__ == "__main__":
    main()
