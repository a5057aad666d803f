"""CLI interface for perf_stream."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys

from . import __version__
from .collector.base import BaseCollector, CollectorStateError
from .collector.cpu import CpuCollector
from .config import ConfigError, PerfStreamConfig, load_config
from .exporter.base import BaseExporter
from .stream.metrics_stream import DATA_EVENT, MetricsStream

logger = logging.getLogger(__name__)


def _build_exporters(cfg: PerfStreamConfig) -> list[BaseExporter]:
    exporters: list[BaseExporter] = []

    if cfg.local_exporter.enabled:
        from .exporter.local import LocalExporter
        exporters.append(LocalExporter(cfg.local_exporter))

    if cfg.otel.enabled:
        from .exporter.otel import OtelExporter
        exporters.append(OtelExporter(cfg.otel))

    return exporters


async def run_collection(
    collector: BaseCollector,
    stream: MetricsStream,
    interval_seconds: float,
    iterations: int | None = None,
    stop: asyncio.Event | None = None,
) -> int:
    """Collect into *stream* until *stop* is set or *iterations* have run.

    Returns the number of successful collections. The stream is flushed
    before returning.
    """
    stop = stop or asyncio.Event()
    count = 0
    await collector.start()
    try:
        while not stop.is_set() and (iterations is None or count < iterations):
            try:
                batch = await collector.collect()
            except CollectorStateError:
                logger.exception("Collector %s is not running, aborting schedule", collector.name)
                break
            stream.push(batch)
            count += 1
            if iterations is not None and count >= iterations:
                break
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
    finally:
        await collector.stop()
        stream.flush()
    return count


async def _collect_main(cfg: PerfStreamConfig, iterations: int | None) -> int:
    collector = CpuCollector(cfg)
    stream = MetricsStream(cfg)
    exporters = _build_exporters(cfg)
    for exp in exporters:
        stream.on(DATA_EVENT, exp)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handlers unavailable for %s", sig)

    try:
        return await run_collection(
            collector,
            stream,
            cfg.collector.interval_seconds,
            iterations=iterations,
            stop=stop,
        )
    finally:
        for exp in exporters:
            exp.shutdown()


def _cmd_collect(args: argparse.Namespace) -> None:
    """Run CPU collection into the configured exporters."""
    cfg = load_config(args.config)
    if not cfg.collector.enabled:
        print("Collection is disabled in the configuration.")
        return

    print(
        f"perf_stream collector running (window={cfg.cpu_profiling_duration_ms}ms, "
        f"interval={cfg.collector.interval_seconds}s, buffer={cfg.metrics_buffer_size})"
    )
    print("Press Ctrl+C to stop.\n")
    count = asyncio.run(_collect_main(cfg, args.iterations))
    print(f"\nCollection stopped after {count} samples.")


async def _sample_once(cfg: PerfStreamConfig) -> list[dict]:
    collector = CpuCollector(cfg)
    await collector.start()
    try:
        metrics = await collector.collect()
    finally:
        await collector.stop()
    return collector.to_dict(metrics)


def _cmd_sample(args: argparse.Namespace) -> None:
    """Take a single CPU sample and print it as JSON lines."""
    cfg = load_config(args.config)
    for record in asyncio.run(_sample_once(cfg)):
        print(json.dumps(record))


def _cmd_version(_args: argparse.Namespace) -> None:
    print(f"perf_stream {__version__}")


def main(argv: list[str] | None = None) -> None:
    """Entry point for the perf-stream CLI."""
    parser = argparse.ArgumentParser(
        prog="perf-stream",
        description="Sample process CPU usage and stream buffered metric batches",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to perf_stream.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # collect
    collect_p = sub.add_parser("collect", help="Start periodic CPU collection")
    collect_p.add_argument(
        "--iterations", "-n", type=int, default=None, help="Stop after N samples"
    )
    collect_p.set_defaults(func=_cmd_collect)

    # sample
    sample_p = sub.add_parser("sample", help="Take one CPU sample and print it")
    sample_p.set_defaults(func=_cmd_sample)

    # version
    ver_p = sub.add_parser("version", help="Print version")
    ver_p.set_defaults(func=_cmd_version)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(2)


if __name__ == "__main__":
    main()
