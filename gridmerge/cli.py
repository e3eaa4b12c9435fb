"""Command line entry point for batch map merging.

Examples:
  # Merge two maps built at 5 cm resolution
  python -m gridmerge.cli merge robot1.pgm robot2.pgm -o merged.pgm

  # Lower the pair confidence threshold and show estimator details
  python -m gridmerge.cli merge a.pgm b.pgm c.pgm -o merged.pgm \\
      --confidence 0.6 -v
"""

import argparse
import logging
import sys
from typing import List, Optional

from gridmerge.config import MergeConfig, load_config
from gridmerge.io import load_pgm_grid, save_pgm_grid
from gridmerge.merging import MergingPipeline
from gridmerge.merging.se2 import se2_from_matrix
from gridmerge.merging.transform import pose_to_matrix


def merge(args: argparse.Namespace) -> int:
    """Run one merge session; returns the process exit status."""
    config = load_config(args.config) if args.config else MergeConfig()
    if args.confidence is not None:
        data = config.to_dict()
        data["estimator"]["confidence"] = args.confidence
        config = MergeConfig.from_dict(data)

    grids = [load_pgm_grid(path, args.resolution) for path in args.maps]

    pipeline = MergingPipeline(config)
    pipeline.feed(grids)
    if not pipeline.estimate_transform():
        print("Alignment estimation failed", file=sys.stderr)
        return 1

    print("\nEstimated transforms:")
    for pose in pipeline.get_transforms():
        x, y, yaw = se2_from_matrix(pose_to_matrix(pose))
        print(f"  x={x:9.3f} m  y={y:9.3f} m  yaw={yaw:7.4f} rad")

    merged = pipeline.compose_grids()
    if merged is None:
        print("Nothing to compose", file=sys.stderr)
        return 1

    save_pgm_grid(args.output, merged)
    print(f"\nMerged map: {merged.width}x{merged.height} cells -> {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gridmerge",
        description="Merge occupancy grid maps of the same area",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("\n", 2)[2],
    )
    sub = parser.add_subparsers(dest="command", required=True)

    merge_parser = sub.add_parser("merge", help="Align and merge map images")
    merge_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    merge_parser.add_argument("maps", nargs="+", help="Input map images (PGM)")
    merge_parser.add_argument("-o", "--output", required=True, help="Output map image")
    merge_parser.add_argument(
        "--resolution", type=float, default=0.05,
        help="Resolution of the input maps in m/pixel (default: 0.05)",
    )
    merge_parser.add_argument("--config", type=str, help="JSON configuration file")
    merge_parser.add_argument(
        "--confidence", type=float,
        help="Minimum pair confidence (overrides the configuration)",
    )
    merge_parser.set_defaults(func=merge)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
