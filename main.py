import argparse
import asyncio
import signal
import sys
from typing import List, Optional, Tuple

from loguru import logger

from geoinsights.clients import LLMGeocoder, NominatimClient, OpenAIClient
from geoinsights.config import LOG_LEVEL, PROXIMITY_THRESHOLD_M, REQUEST_DELAY_SECONDS
from geoinsights.geocoding import geocode_rows
from geoinsights.matchers.analysis_orchestrator import analyze_points
from geoinsights.matchers.column_matcher import merge_mapping, suggest_mapping
from geoinsights.matchers.comparison_matcher import compare_datasets
from geoinsights.models import (
    AnalysisOptions,
    ColumnMapping,
    ConfigurationError,
    ExactCell,
    MatchPolicy,
    Nearest,
    Radius,
    TabularData,
)
from geoinsights.reports import (
    comparison_report,
    comparison_summary,
    full_report,
    metrics_summary,
    problem_report,
)
from geoinsights.tabular import parse_file, write_rows


def load_dataset(path: str, explicit: ColumnMapping) -> Tuple[TabularData, ColumnMapping]:
    """Load a file and complete the column mapping with auto-detected columns."""
    data = parse_file(path)
    mapping = merge_mapping(explicit, suggest_mapping(data.headers))
    logger.info(f"{path}: {len(data.rows)} rows, mapping {mapping}")
    return data, mapping


def log_progress(label: str):
    def report(done: int, total: int):
        logger.debug(f"{label} {done}/{total}")
    return report


async def run_analyze(args, cancel_event: asyncio.Event) -> None:
    data, mapping = load_dataset(
        args.file, ColumnMapping(lat=args.lat, lon=args.lon, state=args.state, city=args.city)
    )
    options = AnalysisOptions(
        check_invalid=not args.no_invalid,
        check_duplicates=not args.no_duplicates,
        check_proximity=not args.no_proximity,
        check_geographic=args.geographic,
        proximity_threshold_m=args.proximity_threshold,
    )

    client = NominatimClient() if args.geographic else None
    try:
        result = await analyze_points(
            data.rows,
            mapping,
            options,
            reverse_geocoder=client,
            request_delay=args.delay,
            cancel_event=cancel_event,
            progress=log_progress("Verifying location"),
        )
    finally:
        if client is not None:
            await client.close()

    for key, value in metrics_summary(result.metrics).items():
        logger.info(f"{key}: {value}")
    if args.out_problems:
        write_rows(problem_report(result), args.out_problems)
    if args.out_full:
        write_rows(full_report(result), args.out_full)


async def run_compare(args, cancel_event: asyncio.Event) -> None:
    data_a, mapping_a = load_dataset(args.file_a, ColumnMapping(lat=args.lat_a, lon=args.lon_a))
    data_b, mapping_b = load_dataset(args.file_b, ColumnMapping(lat=args.lat_b, lon=args.lon_b))

    policy: MatchPolicy
    if args.nearest is not None:
        policy = Nearest(args.nearest)
    elif args.radius is not None:
        policy = Radius(args.radius)
    else:
        policy = ExactCell()

    result = compare_datasets(
        data_a.rows, mapping_a, data_b.rows, mapping_b, args.base, policy,
        cancel_event=cancel_event,
        progress=log_progress("Comparing base point"),
    )
    for key, value in comparison_summary(result).items():
        logger.info(f"{key}: {value}")
    if args.out:
        write_rows(comparison_report(result), args.out)


async def run_geocode(args, cancel_event: asyncio.Event) -> None:
    data, mapping = load_dataset(
        args.file,
        ColumnMapping(name=args.name, address=args.address, city=args.city, state=args.state),
    )
    if args.llm:
        geocoder = LLMGeocoder(OpenAIClient())
        client = None
    else:
        geocoder = client = NominatimClient()

    try:
        rows = await geocode_rows(
            data.rows, mapping, geocoder,
            request_delay=args.delay,
            cancel_event=cancel_event,
            progress=log_progress("Geocoding row"),
        )
    finally:
        if client is not None:
            await client.close()

    if args.out:
        write_rows(rows, args.out)


async def run_interruptible(args) -> bool:
    """
    Run the selected command with Ctrl-C mapped to a cancel event.

    The first SIGINT stops the running batch after its current row and the
    command still writes its reports. Returns True if that happened.
    """
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        installed = True
    except NotImplementedError:
        logger.debug("Signal handlers unsupported on this platform, Ctrl-C aborts immediately")
        installed = False

    try:
        await args.handler(args, cancel_event)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)
    return cancel_event.is_set()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate, deduplicate and cross-reference POI spreadsheets.")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Validate a single POI file")
    analyze.add_argument("file")
    analyze.add_argument("--lat")
    analyze.add_argument("--lon")
    analyze.add_argument("--state")
    analyze.add_argument("--city")
    analyze.add_argument("--proximity-threshold", type=float, default=PROXIMITY_THRESHOLD_M,
                         help="Meters; required unless --no-proximity")
    analyze.add_argument("--no-invalid", action="store_true")
    analyze.add_argument("--no-duplicates", action="store_true")
    analyze.add_argument("--no-proximity", action="store_true")
    analyze.add_argument("--geographic", action="store_true", help="Verify State/City by reverse geocoding")
    analyze.add_argument("--delay", type=float, default=REQUEST_DELAY_SECONDS)
    analyze.add_argument("--out-problems", default="problemas.xlsx")
    analyze.add_argument("--out-full", default="relatorio_completo.xlsx")
    analyze.set_defaults(handler=run_analyze)

    compare = sub.add_parser("compare", help="Find correspondences between two POI files")
    compare.add_argument("file_a")
    compare.add_argument("file_b")
    compare.add_argument("--lat-a")
    compare.add_argument("--lon-a")
    compare.add_argument("--lat-b")
    compare.add_argument("--lon-b")
    compare.add_argument("--base", choices=["A", "B"], default="A")
    method = compare.add_mutually_exclusive_group()
    method.add_argument("--exact", action="store_true", help="Same square meter (default)")
    method.add_argument("--nearest", type=int, metavar="N")
    method.add_argument("--radius", type=float, metavar="METERS")
    compare.add_argument("--out", default="comparacao.xlsx")
    compare.set_defaults(handler=run_compare)

    geocode = sub.add_parser("geocode", help="Find coordinates for addresses")
    geocode.add_argument("file")
    geocode.add_argument("--name")
    geocode.add_argument("--address")
    geocode.add_argument("--city")
    geocode.add_argument("--state")
    geocode.add_argument("--llm", action="store_true", help="Ask the language model instead of Nominatim")
    geocode.add_argument("--delay", type=float, default=REQUEST_DELAY_SECONDS)
    geocode.add_argument("--out", default="geocodificado.xlsx")
    geocode.set_defaults(handler=run_geocode)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Initialize logs
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=LOG_LEVEL, format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>")

    try:
        interrupted = asyncio.run(run_interruptible(args))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    if interrupted:
        logger.warning("Interrupted, reports hold the rows completed so far")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
