import argparse
import logging
import sys
from pathlib import Path

from .core.migration import ConversionEngine, FileStatus, ProjectReport
from .setting import get_settings, load_settings


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cy2pw",
        description="cy2pw - Convert Cypress test suites to Playwright Test"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", help="Convert a Cypress project or file")
    convert.add_argument(
        "-s", "--source",
        type=str,
        required=True,
        help="Cypress project root or a single file"
    )
    convert.add_argument(
        "-o", "--output",
        type=str,
        required=True,
        help="Directory for the converted Playwright files"
    )
    convert.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a cy2pw.yaml settings file"
    )
    convert.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (overrides config)"
    )
    convert.add_argument(
        "--no-assertions",
        action="store_true",
        help="Leave .should() assertions as review markers"
    )
    convert.add_argument(
        "--report",
        type=str,
        default=None,
        help="Write a JSON conversion report to this file"
    )
    return parser


def run_convert(args: argparse.Namespace) -> int:
    settings = load_settings(args.config) if args.config else get_settings().model_copy(deep=True)
    setup_logging(args.log_level or settings.logging.level)
    if args.no_assertions:
        settings.structure.convert_assertions = False

    engine = ConversionEngine(settings)
    source = Path(args.source)
    if not source.exists():
        logger.error(f"Source not found: {source}")
        return 2

    if source.is_file():
        project = ProjectReport(source_root=str(source.parent), output_root=args.output)
        project.files.append(engine.convert_file(str(source), str(source.parent), args.output))
    else:
        project = engine.convert_project(str(source), args.output)
    reports = project.files

    report_file = args.report or settings.output.report_file
    if report_file:
        project.write_json(report_file)
        logger.info(f"Report written to {report_file}")

    for report in reports:
        if report.status == FileStatus.SKIPPED:
            continue
        print(f"{report.status.value:8} {report.source_path} -> {report.output_path or '-'}"
              f" ({len(report.markers)} marker(s))")
        if report.error:
            print(f"         {report.error}")

    return 1 if any(r.status == FileStatus.FAILED for r in reports) else 0


def main():
    """Main entry point for cy2pw."""
    parser = build_parser()
    args = parser.parse_args()
    if args.command == "convert":
        sys.exit(run_convert(args))


if __name__ == "__main__":
    main()
