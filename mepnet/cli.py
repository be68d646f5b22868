"""mepnet command line.

Usage:
    mepnet analyze model.ifc --output reports/
    mepnet analyze model.json --min-spacing 7 --max-spacing 12 --markdown
    mepnet tree model.ifc 1234 --form bottom-up
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from mepnet import __version__
from mepnet.analysis.assembler import AnalysisError, ReportAssembler
from mepnet.analysis.writer import export_report
from mepnet.graph.traversal import TraversalTree
from mepnet.settings import AnalysisSettings, load_settings
from mepnet.sources import SourceError, open_source

logger = logging.getLogger("mepnet")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _cmd_analyze(args: argparse.Namespace, settings: AnalysisSettings) -> int:
    source = open_source(args.model)
    report = ReportAssembler(source, settings).analyze()
    if report.total_sprinklers == 0:
        print("No sprinkler instances found in the model.")

    output_dir = Path(args.output) if args.output else settings.output_dir
    path = export_report(report, output_dir, markdown=args.markdown)
    print(report.summary(str(path)))
    return 0


def _cmd_tree(args: argparse.Namespace, settings: AnalysisSettings) -> int:
    source = open_source(args.model)
    network = next(
        (n for n in source.enumerate_networks() if n.id == args.network_id), None
    )
    if network is None:
        print(f"Network {args.network_id} not found.", file=sys.stderr)
        return 1
    if args.root is not None and args.root not in network.element_ids:
        print(
            f"Element {args.root} is not a member of network {network.id}.",
            file=sys.stderr,
        )
        return 1

    tree = TraversalTree.from_elements(
        source.enumerate_elements(network),
        member_ids=network.element_ids,
        root_id=args.root,
        base_element_id=network.base_element_id,
    )
    if not tree.traverse():
        print(
            f"Network {network.id} ({network.name}) is not a single connected component.",
            file=sys.stderr,
        )
        return 1

    if args.form == "top-down":
        print(tree.dump_top_down_json())
    else:
        print(tree.dump_bottom_up_json())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mepnet",
        description="MEP network connectivity trees and sprinkler spacing analysis.",
    )
    parser.add_argument("--version", action="version", version=f"mepnet {__version__}")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: from settings, INFO)",
    )
    parser.add_argument(
        "--project-root",
        default=None,
        help="Directory holding .mepnet/config.json and .env (default: cwd)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyse every network and sprinkler in a model")
    analyze.add_argument("model", help="Model file (.ifc or .json)")
    analyze.add_argument("--output", "-o", default=None, help="Report output directory")
    analyze.add_argument("--min-spacing", type=float, default=None, help="Minimum spacing (ft)")
    analyze.add_argument("--max-spacing", type=float, default=None, help="Maximum spacing (ft)")
    analyze.add_argument(
        "--fire-protection-only",
        action="store_true",
        default=None,
        help="Only analyse fire protection networks",
    )
    analyze.add_argument(
        "--markdown", action="store_true", help="Also write a Markdown report"
    )
    analyze.set_defaults(handler=_cmd_analyze)

    tree = sub.add_parser("tree", help="Print the connectivity tree of one network")
    tree.add_argument("model", help="Model file (.ifc or .json)")
    tree.add_argument("network_id", type=int, help="Network (system) id")
    tree.add_argument("--root", type=int, default=None, help="Root element id")
    tree.add_argument(
        "--form",
        choices=("top-down", "bottom-up"),
        default="top-down",
        help="Serialization form",
    )
    tree.set_defaults(handler=_cmd_tree)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(
            args.project_root,
            log_level=args.log_level,
            min_spacing_ft=getattr(args, "min_spacing", None),
            max_spacing_ft=getattr(args, "max_spacing", None),
            fire_protection_only=getattr(args, "fire_protection_only", None),
        )
    except ValidationError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return 1

    _configure_logging(settings.log_level)

    try:
        return args.handler(args, settings)
    except (AnalysisError, SourceError, OSError) as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
