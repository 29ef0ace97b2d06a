#!/usr/bin/env python3
"""
main.py - CLI for MSU-based re-identification risk analysis.

Usage:
    python main.py --data records.csv --columns age_decade gender zip3 --max-key-size 3
"""

import argparse
import logging
import sys
import threading
import time
from dataclasses import replace
from pathlib import Path
from datetime import datetime
from typing import List, Optional, Tuple

import yaml

from msu_risk.analysis_runner import AnalysisRunner
from msu_risk.config import AnalysisConfig
from msu_risk.data_loader import DataLoader
from msu_risk.exceptions import MSURiskError


def setup_logging(log_level: str = "INFO", log_file: str = None) -> None:
    """Configure logging for the application."""
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def run_full_analysis(
    config: AnalysisConfig,
    output_dir: str,
    k_values: Optional[List[int]] = None,
    timeout: Optional[float] = None
) -> dict:
    """
    Run the complete MSU analysis pipeline.

    Args:
        config: Analysis configuration (data path, columns, key size, ...)
        output_dir: Path for output files
        k_values: Maximum key sizes to analyse (default: config.max_key_size)
        timeout: Seconds after which running analyses are cancelled

    Returns:
        Dict with results summary
    """
    start_time = time.time()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(__name__)

    # Step 1: Load and encode data
    logger.info("Loading dataset...")

    loader = DataLoader(config.data_path)
    matrix = loader.build_matrix(config.columns)

    logger.info(f"Quasi-identifiers: {matrix.column_names}")

    # Step 2: Run analyses
    runner = AnalysisRunner(matrix, config)

    timer = None
    if timeout:
        timer = threading.Timer(timeout, runner.cancel, kwargs={'reason': f"timeout after {timeout}s"})
        timer.daemon = True
        timer.start()

    try:
        if k_values:
            outcomes = runner.run_many(k_values)
        else:
            outcome = runner.run()
            outcomes = {outcome.k_max: outcome}
    finally:
        if timer is not None:
            timer.cancel()

    # Step 3: Export tables
    tables_dir = output_dir / "tables"
    exported = {}
    for k_max, outcome in outcomes.items():
        exported[k_max] = runner.export_results(outcome, tables_dir)

    # Step 4: Summary report
    elapsed_time = time.time() - start_time

    report = {
        'analysis_timestamp': datetime.now().isoformat(),
        'elapsed_time_seconds': elapsed_time,
        'data_path': str(config.data_path),
        'output_dir': str(output_dir),
        'dataset': matrix.describe(),
        'config': config.to_dict(),
        'analyses': {int(k): outcome.to_dict() for k, outcome in outcomes.items()},
        'exported_files': {int(k): files for k, files in exported.items()},
    }

    report_path = output_dir / "analysis_report.yaml"
    with open(report_path, 'w') as f:
        yaml.dump(report, f, default_flow_style=False)

    logger.info(f"Analysis complete in {elapsed_time:.1f} seconds")
    logger.info(f"Results saved to: {output_dir}")

    # Print summary
    print("\n" + "=" * 60)
    print("MSU ANALYSIS SUMMARY")
    print("=" * 60)
    print(f"Records:            {matrix.n_rows:,}")
    print(f"Quasi-identifiers:  {matrix.n_columns}")

    for k_max, outcome in outcomes.items():
        print(f"\n  k_max = {k_max}: {outcome.status.upper()}")
        if outcome.completed:
            summary = outcome.result.summary()
            print(f"    - {summary['n_msus']:,} MSUs")
            print(f"    - {summary['n_rows_at_risk']:,} records isolated by at least one MSU")
            print(f"    - MSUs by size: {summary['msus_by_size']}")
            if outcome.validated:
                print("    - Exhaustive validation passed")

    print(f"\nOutput directory: {output_dir}")
    print("=" * 60)

    report['all_completed'] = all(outcome.completed for outcome in outcomes.values())
    return report


def build_config(args: argparse.Namespace) -> Tuple[AnalysisConfig, Optional[List[int]]]:
    """
    Load config if provided, then override it with explicit arguments.

    Returns:
        The validated configuration and the key sizes to analyse when more
        than one was given (None otherwise)

    Raises:
        InvalidInputError: If the merged settings are invalid
    """
    config = AnalysisConfig.from_yaml(args.config) if args.config else AnalysisConfig()

    overrides = {}
    if args.data:
        overrides['data_path'] = args.data
    if args.columns:
        overrides['columns'] = args.columns
    if args.validate:
        overrides['validate'] = True
    if args.n_jobs is not None:
        overrides['n_jobs'] = args.n_jobs

    k_values = None
    if args.max_key_size:
        if len(args.max_key_size) == 1:
            overrides['max_key_size'] = args.max_key_size[0]
        else:
            k_values = args.max_key_size

    # replace() runs the dataclass validation again
    return replace(config, **overrides), k_values


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Minimal Sample Unique (MSU) re-identification risk analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Search all MSUs up to size 3 over three quasi-identifiers
  python main.py --data records.csv --columns age gender zip --max-key-size 3

  # Compare several key sizes and validate against the exhaustive search
  python main.py --data records.csv --max-key-size 2 3 4 --validate --n-jobs 3

  # Read settings from YAML
  python main.py --config analysis.yaml
        """
    )

    parser.add_argument(
        '--data',
        type=str,
        help='Path to the CSV dataset'
    )

    parser.add_argument(
        '--columns',
        type=str,
        nargs='+',
        help='Quasi-identifier columns (default: all columns)'
    )

    parser.add_argument(
        '--max-key-size',
        type=int,
        nargs='+',
        help='Maximum MSU size(s) to search (default: all columns)'
    )

    parser.add_argument(
        '--validate',
        action='store_true',
        help='Cross-check results with the exhaustive search'
    )

    parser.add_argument(
        '--n-jobs',
        type=int,
        default=None,
        help='Parallel workers when several key sizes are given (default: 1)'
    )

    parser.add_argument(
        '--timeout',
        type=float,
        default=None,
        help='Cancel analyses still running after this many seconds'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        default='results',
        help='Path for output files (default: results/)'
    )

    parser.add_argument(
        '--config',
        type=str,
        help='Path to YAML configuration file'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Path to log file (optional)'
    )

    args = parser.parse_args()

    # Setup logging
    log_file = args.log_file or str(Path(args.output_dir) / 'analysis.log')
    setup_logging(args.log_level, log_file)

    try:
        config, k_values = build_config(args)

        if not config.data_path:
            parser.error("a dataset is required (--data or data.path in --config)")

        report = run_full_analysis(
            config,
            output_dir=args.output_dir,
            k_values=k_values,
            timeout=args.timeout
        )
        return 0 if report['all_completed'] else 2
    except (MSURiskError, FileNotFoundError) as e:
        logging.error(f"Analysis failed: {e}")
        return 1
    except Exception as e:
        logging.error(f"Analysis failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
