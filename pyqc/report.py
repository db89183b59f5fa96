# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""HTML analysis report"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, List, Sequence, Tuple

import pandas as pd
import plotly.graph_objects as go

from . import __version__

if TYPE_CHECKING:
    from .context import AnalysisContext

logger = logging.getLogger(__name__)

REPORT_NAME = "index.html"
PLOTLY_CDN = "https://cdn.plot.ly/plotly-2.35.2.min.js"

STYLE = """
body { font-family: 'Times New Roman', serif; margin: 2em; }
table { border-collapse: collapse; margin-bottom: 1em; }
th, td { border: 1px solid #7f7f7f; padding: 0.2em 0.6em; }
th { background: #1f77b4; color: white; }
"""


@dataclass
class ExtraPage:
    """Report section produced by an analysis mode"""
    title: str
    tables: List[Tuple[str, pd.DataFrame]] = field(default_factory=list)
    figures: List[go.Figure] = field(default_factory=list)

    def to_html(self) -> str:
        parts = [f"<section><h2>{html.escape(self.title)}</h2>"]
        for caption, table in self.tables:
            parts.append(f"<h3>{html.escape(caption)}</h3>")
            parts.append(table.to_html(index=False, float_format=lambda v: f"{v:.4f}"))
        for figure in self.figures:
            parts.append(figure.to_html(full_html=False, include_plotlyjs=False))
        parts.append("</section>")
        return "\n".join(parts)


class Report:
    """Analysis report of one context"""

    def __init__(self, ctx: "AnalysisContext"):
        self.ctx = ctx
        self.pages: List[ExtraPage] = []

    def customize(self, page: ExtraPage) -> None:
        """Attach an extra page"""
        self.pages.append(page)

    def summary_tables(self) -> List[Tuple[str, pd.DataFrame]]:
        ctx = self.ctx
        tables = [("Dataset", ctx.data.summary())]

        if ctx.rx_position is not None:
            tables.append(("Receiver position", _position_table(ctx.rx_position)))

        if ctx.reference_site is not None:
            site = ctx.reference_site
            tables.append(("Reference site", _position_table(site.position)))
            tables.append(("Reference site dataset", site.data.summary()))
            if ctx.rx_position is not None:
                baseline = ctx.rx_position.distance_to(site.position)
                tables.append(("Baseline", pd.DataFrame([{'baseline [m]': baseline}])))
        return tables

    def render(self) -> str:
        title = html.escape(f"pyqc: {self.ctx.name}")
        summary = ExtraPage("Summary", tables=self.summary_tables())
        body = [summary.to_html()] + [page.to_html() for page in self.pages]
        generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        return "\n".join([
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f"<title>{title}</title>",
            f'<script src="{PLOTLY_CDN}"></script>',
            f"<style>{STYLE}</style>",
            "</head>",
            "<body>",
            f"<h1>{title}</h1>",
            f"<p>generated by pyqc v{__version__} on {generated}</p>",
            *body,
            "</body>",
            "</html>",
        ])

    def generate(self) -> Path:
        """Write the report into the workspace"""
        path = self.ctx.workspace.path(REPORT_NAME)
        with open(path, 'w', encoding='utf-8') as fh:
            fh.write(self.render())
        logger.info("report generated \"%s\"", path)
        return path


def _position_table(position) -> pd.DataFrame:
    lat, lon, alt = position.geodetic
    return pd.DataFrame([{
        'x [m]': position.x, 'y [m]': position.y, 'z [m]': position.z,
        'latitude [deg]': lat, 'longitude [deg]': lon, 'altitude [m]': alt,
    }])


def assemble(ctx: "AnalysisContext", pages: Sequence[ExtraPage]) -> Path:
    """
    Build the report of an analysis run

    Every page is attached before the report is generated. The report is
    opened in a web browser unless the context is quiet.
    """
    report = Report(ctx)
    for page in pages:
        report.customize(page)
    path = report.generate()
    if not ctx.quiet:
        ctx.workspace.open_with_web_browser(path)
    return path
