"""Command-line entry point for headless physlab simulation runs."""

from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path
from typing import Dict, Iterable

from .analysis import run_headless
from .registry import SIMULATIONS, create_simulation


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.1f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"


def print_header(text: str, width: int = 70) -> None:
    """Print a formatted section header."""
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width)


def parse_overrides(pairs: Iterable[str]) -> Dict[str, str]:
    """Parse repeated ``key=value`` flags into a dict (later flags win)."""
    overrides: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(
                f"Malformed override '{pair}'.\n"
                f"Use --set key=value, e.g. --set rho=5 or --set track=double-well."
            )
        overrides[key] = value
    return overrides


def print_simulations() -> None:
    print_header("Available simulations")
    for name in SIMULATIONS:
        info = create_simulation(name).describe()
        params = ", ".join(f"{key}={value}" for key, value in info["params"].items())
        print(f"\n  {name}  (dt = {info['fixed_dt']:.4g}s)")
        print(f"    {params}")
    print()


def print_summary(artifacts, elapsed: float, verbose: bool) -> None:
    """Print run summary statistics."""
    print_header("Run Summary")

    print(f"\nRuntime: {format_duration(elapsed)}")
    print(f"Output Directory: {artifacts.output_dir}")

    print("\n--- Simulation ---")
    print(f"  Simulation:                 {artifacts.simulation}")
    print(f"  Frames rendered:            {artifacts.frames}")
    print(f"  Fixed steps:                {artifacts.steps}")
    if artifacts.times.size:
        print(f"  Simulated time:             {artifacts.times[-1]:.3f}s")

    print("\n--- Outputs ---")
    for path in artifacts.plots:
        print(f"  Plot:                       {path}")
    if artifacts.frame_path is not None:
        print(f"  Final frame:                {artifacts.frame_path}")

    if verbose:
        print("\n--- Parameters ---")
        print(f"  {artifacts.params}")


def validate_output_dir(output_dir: Path) -> None:
    """Validate that output directory can be created and is writable."""
    if output_dir.exists():
        if not output_dir.is_dir():
            print(
                f"Error: Output path exists but is not a directory: {output_dir}\n"
                f"Please specify a different path or remove the existing file.",
                file=sys.stderr
            )
            sys.exit(1)
    else:
        parent = output_dir.parent
        if not parent.exists():
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                print(
                    f"Error: Cannot create parent directory: {parent}\n"
                    f"Permission denied. Please check your file system permissions.",
                    file=sys.stderr
                )
                sys.exit(1)
            except OSError as e:
                print(
                    f"Error: Failed to create parent directory: {parent}\n"
                    f"Details: {e}",
                    file=sys.stderr
                )
                sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="physlab",
        description="Run a physlab simulation headless and write diagnostics, plots and a final frame.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s list                                  # Show available simulations
  %(prog)s energy-track --seconds 20             # Energy ledger over 20 s
  %(prog)s lorenz --set rho=5 --set epsilon=1e-5 # Non-chaotic twins
  %(prog)s sled --set push_right=15 --frame sled.png
  %(prog)s gauge-field --quiet                   # Minimal output
        """,
    )
    parser.add_argument(
        "simulation",
        choices=["list", *SIMULATIONS],
        help="Simulation to run, or 'list' to show the available simulations.",
    )
    parser.add_argument(
        "--seconds",
        type=float,
        default=10.0,
        help="Wall-clock seconds to simulate (default: 10).",
    )
    parser.add_argument(
        "--fps",
        type=float,
        default=60.0,
        help="Frames per second fed to the scheduler (default: 60).",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a parameter or config field; may be repeated.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("artifacts"),
        help="Directory where plots and summaries will be written (default: artifacts).",
    )
    parser.add_argument(
        "--frame",
        type=Path,
        default=None,
        help="Path of the final-frame PNG (default: <output-dir>/<simulation>_final.png).",
    )
    parser.add_argument(
        "--theme",
        choices=["light", "dark"],
        default="light",
        help="Colour theme of the rendered frame (default: light).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for randomised states.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output with detailed progress information.",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all output except errors and final results.",
    )
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)

    if args.simulation == "list":
        print_simulations()
        return

    validate_output_dir(args.output_dir)

    # Set global verbosity level (used by other modules)
    if args.quiet:
        os.environ["PHYSLAB_VERBOSITY"] = "0"
    elif args.verbose:
        os.environ["PHYSLAB_VERBOSITY"] = "2"
    else:
        os.environ["PHYSLAB_VERBOSITY"] = "1"

    if not args.quiet:
        print_header(f"physlab: {args.simulation}")
        print(f"\nOutput directory: {args.output_dir.resolve()}")
        print(f"Verbosity level: {'quiet' if args.quiet else 'verbose' if args.verbose else 'normal'}")

    start_time = time.time()

    try:
        overrides = parse_overrides(args.overrides)
        artifacts = run_headless(
            args.simulation,
            seconds=args.seconds,
            fps=args.fps,
            output_dir=args.output_dir,
            overrides=overrides,
            frame_path=args.frame,
            theme=args.theme,
            seed=args.seed,
        )
        elapsed = time.time() - start_time

        if args.quiet:
            print(artifacts.frame_path)
        else:
            print_summary(artifacts, elapsed, args.verbose)
            print("\n" + artifacts.table)

            print_header("Run Complete")
            print(f"Results written to: {args.output_dir.resolve()}\n")

    except ImportError as e:
        elapsed = time.time() - start_time
        print(
            f"\nError after {format_duration(elapsed)}:\n"
            f"Missing required dependency: {e}\n"
            f"Please install required packages: pip install numpy matplotlib tabulate tqdm",
            file=sys.stderr
        )
        sys.exit(1)
    except FileNotFoundError as e:
        elapsed = time.time() - start_time
        print(
            f"\nError after {format_duration(elapsed)}:\n"
            f"File not found: {e}",
            file=sys.stderr
        )
        sys.exit(1)
    except ValueError as e:
        elapsed = time.time() - start_time
        print(
            f"\nError after {format_duration(elapsed)}:\n"
            f"Invalid input: {e}",
            file=sys.stderr
        )
        sys.exit(1)
    except Exception as e:
        elapsed = time.time() - start_time
        print(
            f"\nError after {format_duration(elapsed)}: {e}\n"
            f"For help, run: python -m physlab --help",
            file=sys.stderr
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
