from __future__ import annotations

import argparse
import logging
import os
import signal
from typing import Optional

from orbitbrot.config import PlotSettings, load_config, normalise_config
from orbitbrot.errors import BlackRenderError, ConfigError, HistogramSizeError
from orbitbrot.pipeline import merge_files, render_job, replot
from orbitbrot.util.logging_setup import configure_root_logging, create_log_queue, get_logger, start_queue_listener, stop_queue_listener
from orbitbrot.util.manifest import build_manifest, write_manifest


def _interrupt(signum, frame) -> None:
    # Fail fast: no partial output, no waiting for worker processes.
    os._exit(130)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="orbitbrot", description="Buddhabrot-family orbit density renderer.")
    p.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level.")
    p.add_argument("--log-file", type=str, default="render.log", help="Log file path (rotating). Set empty to disable file logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("render", help="Sample orbits from a blueprint and write the image.")
    r.add_argument("blueprint", type=str, help="Path to blueprint JSON.")
    r.add_argument("--output", type=str, default=None, help="Output filename without extension.")
    r.add_argument("--workers", type=int, default=None, help="Number of worker processes (defaults to CPU count).")
    r.add_argument("--seed", type=int, default=None, help="Override the blueprint seed.")
    r.add_argument("--tries", type=float, default=None, help="Override the blueprint tries multiplier.")
    r.add_argument("--save", action="store_true", help="Cache the histograms next to the image.")
    r.add_argument("--write-black", action="store_true", help="Write the image even if nothing was registered.")
    r.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    r.add_argument("--manifest", type=str, default=None, help="Run manifest path (defaults to OUTPUT.json).")

    pl = sub.add_parser("plot", help="Plot cached histograms again.")
    pl.add_argument("histogram", type=str, help="Cached .npz histogram file.")
    pl.add_argument("--output", type=str, default="out", help="Output filename without extension.")
    pl.add_argument("--function", type=str, default="exp", choices=["exp", "log", "sqrt", "lin"], help="Color scaling function.")
    pl.add_argument("--factor", type=float, default=1.0, help="Scaling function factor.")
    pl.add_argument("--exposure", type=float, default=1.0, help="Exposure.")
    pl.add_argument("--format", type=str, default="png", choices=["png", "jpg"], help="Image format.")

    m = sub.add_parser("merge", help="Merge cached histograms of identical size.")
    m.add_argument("inputs", nargs="+", help="Cached .npz histogram files.")
    m.add_argument("--output", type=str, required=True, help="Merged .npz file.")

    return p


def main(argv: Optional[list] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    signal.signal(signal.SIGINT, _interrupt)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    log_file = args.log_file if args.log_file and args.log_file.strip() else None
    listener_logger = configure_root_logging(level=log_level, console=True, log_file=log_file)

    queue = create_log_queue()
    listener = start_queue_listener(queue, listener_logger)

    logger = get_logger()

    try:
        if args.cmd == "render":
            cfg = load_config(args.blueprint)
            for key in ("output", "workers", "seed", "tries"):
                value = getattr(args, key)
                if value is not None:
                    cfg[key] = value
            if args.save:
                cfg["cache_histograms"] = True
            cfg = normalise_config(cfg)

            try:
                summary = render_job(cfg=cfg, log_queue=queue, log_level=log_level,
                                     progress=not args.no_progress, write_black=args.write_black)
            except BlackRenderError as e:
                logger.error("%s", e)
                return 2

            manifest_path = args.manifest or str(cfg["output"]) + ".json"
            sampling = {k: v for k, v in summary.items() if k != "config"}
            write_manifest(manifest_path, build_manifest(config=summary["config"], sampling=sampling))
            logger.info("Run manifest written: %s", manifest_path)
            return 2 if summary["black"] else 0

        if args.cmd == "plot":
            settings = PlotSettings(function=args.function, factor=args.factor, exposure=args.exposure,
                                    output=args.output, format=args.format)
            try:
                replot(histogram_path=args.histogram, settings=settings)
            except BlackRenderError as e:
                logger.error("%s", e)
                return 2
            return 0

        if args.cmd == "merge":
            merge_files(args.inputs, args.output)
            return 0

        raise RuntimeError("Unknown command.")
    except (ConfigError, HistogramSizeError) as e:
        logger.error("%s", e)
        return 1
    finally:
        stop_queue_listener(listener, queue)


if __name__ == "__main__":
    raise SystemExit(main())
