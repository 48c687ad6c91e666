"""
Reorder AI - Forecast Runner
============================

Runs one forecast and prints the products that need reordering.

Usage:
    python -m reorder_ai.run_forecast [--csv PATH] [--seed N] [--export DIR]
"""

import argparse
import sys
from typing import List, Optional

from .config import Config
from .models.inventory import PipelineSnapshot, RunState
from .services.classifier import ReorderClassifier
from .services.inventory_source import CsvInventorySource, SyntheticInventorySource
from .services.output_generator import OutputGenerator
from .services.pipeline import PredictionPipeline
from .utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run the Reorder AI inventory forecast')
    parser.add_argument('--csv', help='Inventory CSV (id,name,stock,avgSales,leadTime); '
                                      'default: synthetic catalogue')
    parser.add_argument('--seed', type=int, help='Seed for the synthetic feed and the classifier')
    parser.add_argument('--epochs', type=int, help='Training passes over the seed set')
    parser.add_argument('--batch-size', type=int, help='Synthetic catalogue size')
    parser.add_argument('--latency', type=float, help='Simulated source latency in seconds')
    parser.add_argument('--export', metavar='DIR', help='Write the result table and summary to DIR')
    parser.add_argument('--log-level', help='Logging level (default: INFO)')
    parser.add_argument('--log-file', help='Also write logs to this file')
    return parser


def apply_args(config: Config, args: argparse.Namespace) -> Config:
    """Overlay command-line options on an environment-derived config."""
    if args.seed is not None:
        config.classifier.random_state = args.seed
        config.source.seed = args.seed
    if args.epochs is not None:
        config.classifier.epochs = args.epochs
    if args.batch_size is not None:
        config.source.batch_size = args.batch_size
    if args.latency is not None:
        config.source.latency_seconds = args.latency
    if args.log_level:
        config.logging.level = args.log_level.upper()
    if args.log_file:
        config.logging.log_file = args.log_file
    # Re-run validation after overrides
    config.__post_init__()
    return config


def format_report(snapshot: PipelineSnapshot) -> str:
    lines = [
        "=" * 60,
        f"Status: {snapshot.status_label}",
        f"Fetched this run: {snapshot.fetched_count}",
        f"Total products: {snapshot.record_count}",
        f"Immediate reorder needed: {snapshot.reorder_count}",
        "=" * 60,
    ]
    for view in snapshot.reorder_items():
        rec = view.record
        lines.append(
            f"  {rec.name:<40} stock={rec.stock:>4}  "
            f"supply={view.metrics.days_of_supply:5.1f}d  "
            f"safety={view.metrics.safety_stock:>4}  "
            f"score={view.prediction.display_score:.3f}"
        )
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    try:
        config = apply_args(Config.from_env(), args)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(config.logging.level, config.logging.log_file)

    if args.csv:
        source = CsvInventorySource(args.csv)
    else:
        source = SyntheticInventorySource(config.source)

    pipeline = PredictionPipeline(
        source,
        classifier=ReorderClassifier(config.classifier),
        config=config,
    )
    pipeline.start()
    snapshot = pipeline.snapshot

    if snapshot.state is RunState.FAILED:
        logger.error(f"Forecast failed: {snapshot.error_message}")
        print(f"Forecast failed ({snapshot.failure_reason.value}): {snapshot.error_message}",
              file=sys.stderr)
        return 1

    print(format_report(snapshot))

    if args.export:
        generator = OutputGenerator(output_dir=args.export)
        generator.export_all(generator.generate_output_package(snapshot))

    return 0


if __name__ == '__main__':
    sys.exit(main())
