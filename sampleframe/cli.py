"""Command line entry point: ``sampleframe --country rwanda --workspace work``."""

import argparse
import logging
import sys
from typing import List, Optional

from sampleframe.errors import SampleFrameError
from sampleframe.logger import setup_logging
from sampleframe.model.config import available_presets, load_config
from sampleframe.pipeline import run_pipeline
from sampleframe.sampling.service import SamplingService
from sampleframe.sampling.types import SamplingMethod

logger = logging.getLogger("sampleframe.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sampleframe",
        description="Draw a spatially balanced field-sampling plan over cropland.",
    )
    parser.add_argument(
        "--country",
        choices=available_presets(),
        help="Packaged country preset",
    )
    parser.add_argument("--config", help="TOML file layered on top of the preset")
    parser.add_argument(
        "--workspace", required=True, help="Directory for downloads and outputs"
    )
    parser.add_argument("--raster", help="Use this raster stack instead of downloading")
    parser.add_argument("--admin", help="Use this admin layer instead of downloading")
    methods = SamplingService.get_available_methods()
    parser.add_argument(
        "--method",
        default=SamplingMethod.BALANCED.value,
        choices=[value for value, _, _ in methods],
        help="Sampling method (default: balanced). "
        + " ".join(f"{value}: {name}." for value, name, _ in methods),
    )
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--scale-factor", type=float, help="Sample-fraction scale factor")
    parser.add_argument("--sample-size", type=int, help="Fixed sample size n")
    parser.add_argument("--cropland-value", type=float, help="Cropland class value")
    parser.add_argument(
        "--building-distance", type=float, help="Maximum distance to buildings"
    )
    parser.add_argument("--grid-resolution", type=float, help="Grid id resolution")
    parser.add_argument("--zoom", type=int, help="Initial map zoom level")
    parser.add_argument("--no-map", action="store_true", help="Skip the HTML map")
    parser.add_argument("--log-config", help="Logging configuration TOML file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.country is None and args.config is None:
        parser.error("one of --country or --config is required")

    setup_logging(args.log_config)

    try:
        config = load_config(
            args.country,
            args.config,
            seed=args.seed,
            scale_factor=args.scale_factor,
            cropland_value=args.cropland_value,
            building_distance=args.building_distance,
            grid_resolution=args.grid_resolution,
            map_zoom=args.zoom,
        )
        result = run_pipeline(
            config,
            args.workspace,
            raster_path=args.raster,
            admin_path=args.admin,
            method=SamplingMethod.from_string(args.method),
            sample_size=args.sample_size,
            write_map=not args.no_map,
        )
    except SampleFrameError as e:
        logger.error(str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1

    for name, path in result.outputs.items():
        print(f"{name}: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
