"""Write analysis reports and traversal trees to disk."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from mepnet.analysis.report import AnalysisReport
from mepnet.graph.traversal import TraversalTree

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.-]+")


def report_filename(model_name: str, when: datetime | None = None) -> str:
    """``<model>_SprinklerAnalysis_<YYYYmmdd_HHMMSS>.json``, stamped in UTC by default."""
    when = when or datetime.now(timezone.utc)
    stem = _UNSAFE_CHARS.sub("_", model_name).strip("_") or "model"
    return f"{stem}_SprinklerAnalysis_{when:%Y%m%d_%H%M%S}.json"


def export_report(
    report: AnalysisReport,
    output_dir: str | Path,
    markdown: bool = False,
) -> Path:
    """Write *report* as indented JSON into *output_dir*.

    With *markdown*, a ``.md`` rendering is written beside it.
    Returns the path of the JSON file.
    """
    folder = Path(output_dir)
    folder.mkdir(parents=True, exist_ok=True)

    path = folder / report_filename(report.model_name, report.analysis_date)
    path.write_text(report.to_json(), encoding="utf-8")
    if markdown:
        path.with_suffix(".md").write_text(report.to_markdown(), encoding="utf-8")

    logger.info("Report written to %s", path)
    return path


def write_tree(tree: TraversalTree, path: str | Path, form: str = "top-down") -> Path:
    """Write one tree serialization (``top-down`` or ``bottom-up``) to *path*."""
    if form == "top-down":
        text = tree.dump_top_down_json()
    elif form == "bottom-up":
        text = tree.dump_bottom_up_json()
    else:
        raise ValueError(f"Unknown tree form: {form!r}")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
