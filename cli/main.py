"""Train a vocals / no-vocals classifier on preprocessed audio features.

Without -d, trains on the .mfc feature files found in TEMP_DIR.  With
-d DATA_CSV AUDIO_DIR, the labeled wav files are first preprocessed into
TEMP_DIR and training then runs on the result.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable

from hasvocals.app import (
    HasVocalsConfig,
    build_network,
    collect_training_containers,
    load_config_file,
    merge_config,
    preprocess_audio,
    save_network,
    train_network,
)
from hasvocals.core.errors import HasVocalsError
from hasvocals.reporting import ConsoleProgress, CsvSink, JsonlSink, PlotAdapter

logger = logging.getLogger("hasvocals.cli")


def _positive_int(text: str) -> int:
    value = int(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"{text} must be a positive integer")
    return value


def _non_negative_int(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"{text} must be a non-negative integer")
    return value


def _non_negative_float(text: str) -> float:
    value = float(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"{text} must be non-negative")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hasvocals",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("temp_dir", type=Path, help="Directory holding .mfc feature files")
    parser.add_argument(
        "-r", "-R", dest="recurse", action="store_true", default=None,
        help="Search directories recursively",
    )
    parser.add_argument(
        "-n", "-N", dest="max_examples", type=_non_negative_int,
        help="Maximum number of files to train on",
    )
    parser.add_argument(
        "-m", "-M", dest="max_epochs", type=_positive_int,
        help="Maximum number of epochs (default 1000)",
    )
    parser.add_argument(
        "-e", "-E", dest="min_delta_error", type=_non_negative_float,
        help="Stop once the test error changes by less than this (default 1e-5)",
    )
    parser.add_argument(
        "-t", "-T", dest="max_threads", type=_positive_int,
        help="Maximum number of worker threads",
    )
    parser.add_argument(
        "-d", "-D", dest="data", nargs=2, metavar=("DATA_CSV", "AUDIO_DIR"), type=Path,
        help="Preprocess labeled audio from AUDIO_DIR into TEMP_DIR first",
    )
    parser.add_argument(
        "--preprocess-only", action="store_true", help="Stop after preprocessing (requires -d)"
    )
    parser.add_argument("--seed", type=int, help="Seed for file selection and weights")
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--metrics", type=Path, help="Write per-epoch metrics as JSONL")
    parser.add_argument("--metrics-csv", type=Path, help="Write per-epoch metrics as CSV")
    parser.add_argument("--plot", type=Path, help="Write the test error curve to this PNG")
    parser.add_argument("--save", type=Path, help="Save the trained network (.npz)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.preprocess_only and not args.data:
        parser.error("--preprocess-only requires -d DATA_CSV AUDIO_DIR")
    return args


def resolve_config(args: argparse.Namespace) -> HasVocalsConfig:
    values = HasVocalsConfig().to_dict()
    if args.config:
        values = merge_config(values, load_config_file(args.config))
    config = HasVocalsConfig.from_mapping(values)
    return config.with_overrides(
        max_examples=args.max_examples,
        max_epochs=args.max_epochs,
        min_delta_error=args.min_delta_error,
        max_threads=args.max_threads,
        recurse=args.recurse,
        seed=args.seed,
    )


def run(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    logger.debug("Resolved config: %s", json.dumps(config.to_dict(), sort_keys=True))

    if args.data:
        data_csv, audio_dir = args.data
        containers = preprocess_audio(
            data_csv,
            audio_dir,
            args.temp_dir,
            recurse=config.recurse,
            limit=config.max_examples,
            seed=config.seed,
        )
        print(f"Preprocessed {len(containers)} files into {args.temp_dir}")
        if args.preprocess_only:
            return 0
    else:
        containers = collect_training_containers(
            args.temp_dir, recurse=config.recurse, limit=config.max_examples, seed=config.seed
        )
    print(f"Found {len(containers)} training files")

    callbacks: list = [ConsoleProgress()]
    if args.metrics:
        callbacks.append(JsonlSink(args.metrics, seed=config.seed))
    if args.metrics_csv:
        callbacks.append(CsvSink(args.metrics_csv))
    plotter = None
    if args.plot:
        plotter = PlotAdapter(args.plot.parent, enable_plots=True, filename=args.plot.name)
        callbacks.append(plotter)

    network = build_network(config)
    state = train_network(containers, config, callbacks=callbacks, network=network)

    if plotter is not None:
        plotter.close()
    if args.save:
        save_network(network, args.save)

    payload = {
        "epochs": state.epoch,
        "error": state.error,
        "converged": state.converged,
        "exceeded_max_epochs": state.exceeded_max_epochs,
    }
    print(json.dumps(payload, sort_keys=True))
    return 0


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
    try:
        code = run(args)
    except HasVocalsError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from None
    raise SystemExit(code)


if __name__ == "__main__":
    main()
