"""
Main CLI Module for Harmonic Pattern Detection

Replays historical OHLC data through the harmonic detector.

Commands:
- scan: Run pattern detection over a CSV file and report detections/expiries
- pivots: List confirmed pivots found in a CSV file
"""

import argparse
import logging
import sys
from datetime import timedelta
from typing import List, Optional

import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from src.data.ohlc_loader import load_ohlc, dataframe_to_bars
from src.harmonic_analysis import (
    HarmonicConfig,
    MatchStrategy,
    PatternDetectedEvent,
    PatternExpiredEvent,
    detect_pivot_indices,
    run_detection,
)
from src.harmonic_analysis.instruments import default_instrument_lookup, quantize_price


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_config(args) -> HarmonicConfig:
    """Detection config from CLI arguments, defaults for anything not given."""
    config = HarmonicConfig.default().with_strategy(MatchStrategy(args.strategy))
    config = config.with_pivots(
        pivot_lookback=args.lookback,
        max_pattern_bars=args.max_pattern_bars,
    )
    if args.visibility_days is not None:
        config = config.with_visibility_horizon(timedelta(days=args.visibility_days))
    return config


def run_scan_command(args) -> bool:
    """Replay a CSV through the detector, using bar time as the clock."""
    configure_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        df, gaps = load_ohlc(args.data)
        config = build_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return False

    bars = dataframe_to_bars(df)
    logger.info("Loaded %d bars from %s (%d gaps)", len(bars), args.data, len(gaps))

    detector, events = run_detection(bars, config, symbol=args.symbol)
    instrument = detector.instrument

    detections = 0
    for event in events:
        if isinstance(event, PatternDetectedEvent):
            detections += 1
            print(f"[{event.timestamp:%Y-%m-%d %H:%M}] DETECTED {event.get_explanation()}")
        elif isinstance(event, PatternExpiredEvent):
            print(f"[{event.timestamp:%Y-%m-%d %H:%M}] EXPIRED {event.get_explanation()}")

    print(f"\n{len(bars)} bars, {len(detector.pivots)} pivots stored, {detections} detections")
    print(f"Status: {detector.status_text()}")

    current = detector.current
    if current is not None:
        low, high = current.reversal_zone(instrument)
        print(f"Current: {current}")
        print(f"  C->D move value: {current.move_value(instrument):,.2f}")
        print(f"  Reversal zone: {low:.5g} - {high:.5g}")
    return True


def run_pivots_command(args) -> bool:
    """List confirmed pivot highs and lows."""
    configure_logging(args.verbose)

    try:
        df, _ = load_ohlc(args.data)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return False

    tick_size = default_instrument_lookup(args.symbol).tick_size
    high_positions, low_positions = detect_pivot_indices(
        df['high'].to_numpy(), df['low'].to_numpy(), args.lookback
    )

    rows = [(int(i), 'HIGH', df['high'].iloc[i]) for i in high_positions]
    rows += [(int(i), 'LOW', df['low'].iloc[i]) for i in low_positions]
    rows.sort()
    if args.limit:
        rows = rows[-args.limit:]

    for position, kind, price in rows:
        print(f"{df.index[position]:%Y-%m-%d %H:%M}  bar {position:>6}  {kind:<4}  {quantize_price(price, tick_size):.5g}")
    print(f"\n{len(high_positions)} highs, {len(low_positions)} lows")
    return True


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--data',
        required=True,
        help='Path to OHLC CSV file'
    )
    parser.add_argument(
        '--symbol',
        default='',
        help='Instrument symbol for tick size lookup, e.g. "ES 12-25"'
    )
    parser.add_argument(
        '--lookback',
        type=int,
        default=HarmonicConfig.pivot_lookback,
        help='Pivot confirmation bars on each side (default: 1)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )


def create_parser():
    """Create argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        description="Harmonic Pattern Detection CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    scan_parser = subparsers.add_parser(
        'scan',
        help='Detect harmonic patterns in historical data'
    )
    _add_common_arguments(scan_parser)
    scan_parser.add_argument(
        '--strategy',
        choices=[s.value for s in MatchStrategy],
        default=MatchStrategy.DIRECT.value,
        help='Ratio matching strategy (default: direct)'
    )
    scan_parser.add_argument(
        '--max-pattern-bars',
        type=int,
        default=HarmonicConfig.max_pattern_bars,
        help='Maximum bar span of the XA leg (default: 50)'
    )
    scan_parser.add_argument(
        '--visibility-days',
        type=float,
        help='Days a detected pattern stays current; 0 never expires (default: 5)'
    )

    pivots_parser = subparsers.add_parser(
        'pivots',
        help='List confirmed pivots'
    )
    _add_common_arguments(pivots_parser)
    pivots_parser.add_argument(
        '--limit',
        type=int,
        default=0,
        help='Show only the most recent N pivots'
    )

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = create_parser()
    argv = sys.argv[1:] if argv is None else argv

    # If no command specified, show help
    if not argv:
        parser.print_help()
        return

    args = parser.parse_args(argv)

    if args.command == 'scan':
        success = run_scan_command(args)
    elif args.command == 'pivots':
        success = run_pivots_command(args)
    else:
        parser.print_help()
        sys.exit(1)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
