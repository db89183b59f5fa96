#!/usr/bin/env python3
"""Test suite for the HTML report"""

import pandas as pd
import plotly.graph_objects as go
import pytest

from pyqc import __version__
from pyqc.context.builder import AnalysisContext
from pyqc.context.loader import load_user_data
from pyqc.context.position import GeodeticPosition
from pyqc.context.reference import ReferenceSite
from pyqc.context.workspace import Workspace
from pyqc.report import ExtraPage, Report, assemble


@pytest.fixture
def ctx(tmp_path, write_file, make_obs):
    data = load_user_data(files=[write_file('ROVR.rnx', make_obs())])
    workspace = Workspace(tmp_path / 'ws')
    workspace.root.mkdir()
    return AnalysisContext(name='ROVR', data=data, workspace=workspace, quiet=True,
                           rx_position=GeodeticPosition(4027894.0, 307045.6, 4919474.9))


def test_extra_page():
    fig = go.Figure(go.Scatter(x=[0, 1], y=[1, 2]))
    page = ExtraPage("PPP <1>", tables=[("Solutions", pd.DataFrame({'x [m]': [1.0]}))], figures=[fig])

    text = page.to_html()

    assert "<h2>PPP &lt;1&gt;</h2>" in text
    assert "<h3>Solutions</h3>" in text
    assert "x [m]" in text
    assert "plotly" in text.lower()


def test_summary_tables(ctx):
    captions = [caption for caption, _ in Report(ctx).summary_tables()]
    assert captions == ['Dataset', 'Receiver position']


def test_summary_with_reference_site(ctx):
    site = ReferenceSite(data=ctx.data, position=GeodeticPosition(4027881.3, 307016.8, 4919499.0))
    report = Report(AnalysisContext(name=ctx.name, data=ctx.data, workspace=ctx.workspace,
                                    reference_site=site, rx_position=ctx.rx_position))

    tables = dict(report.summary_tables())

    assert 'Reference site' in tables
    baseline = tables['Baseline']['baseline [m]'].iloc[0]
    assert baseline == pytest.approx(ctx.rx_position.distance_to(site.position))


def test_generate(ctx):
    report = Report(ctx)
    report.customize(ExtraPage("PPP"))

    path = report.generate()

    assert path == ctx.workspace.root / 'index.html'
    text = path.read_text(encoding='utf-8')
    assert "<title>pyqc: ROVR</title>" in text
    assert f"pyqc v{__version__}" in text
    assert "<h2>Summary</h2>" in text
    assert "<h2>PPP</h2>" in text


def test_assemble_attaches_every_page(ctx, monkeypatch):
    opened = []
    monkeypatch.setattr(Workspace, 'open_with_web_browser', lambda self, path=None: opened.append(path))

    path = assemble(ctx, [ExtraPage("PPP"), ExtraPage("RTK")])

    text = path.read_text(encoding='utf-8')
    assert text.index("<h2>PPP</h2>") < text.index("<h2>RTK</h2>")
    assert opened == []


def test_assemble_opens_browser_unless_quiet(ctx, monkeypatch):
    opened = []
    monkeypatch.setattr(Workspace, 'open_with_web_browser', lambda self, path=None: opened.append(path))
    loud = AnalysisContext(name=ctx.name, data=ctx.data, workspace=ctx.workspace, quiet=False)

    path = assemble(loud, [])

    assert opened == [path]
