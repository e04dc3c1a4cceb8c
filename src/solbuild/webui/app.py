# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Dash-based web UI listing recorded compilation jobs."""

from datetime import datetime, timezone
from pathlib import Path

import dash
from dash import html

from solbuild.cache.artifact_store import ArtifactStore
from solbuild.model.job import JobRecord, JobState

# ###############
# Public Interface
# ###############

APP_TITLE = "SolBuild Job History"
HISTORY_COLUMNS = ("Job", "Time (UTC)", "Contract", "Compiler", "Status", "Error")


def create_app(artifacts_dir: Path) -> dash.Dash:
    """Create and configure the SolBuild job history application."""
    app = dash.Dash(
        __name__,
        title=APP_TITLE,
    )
    # Re-read the store on every page load.
    app.layout = lambda: _build_layout(ArtifactStore(artifacts_dir))
    return app


# ################
# Implementation
# ################


def _build_layout(store: ArtifactStore) -> html.Div:
    """Build the application layout."""
    records = store.list_records()
    if records:
        body = _history_table(records)
    else:
        body = html.P("No compilation jobs recorded yet.", style={"color": "#666"})
    return html.Div(
        [
            html.H1(APP_TITLE),
            html.P(f"Artifacts: {store.root}"),
            html.Hr(),
            body,
        ],
        style={"fontFamily": "sans-serif", "padding": "2rem"},
    )


def _history_table(records: list[JobRecord]) -> html.Table:
    header = html.Tr([html.Th(name, style=_CELL_STYLE) for name in HISTORY_COLUMNS])
    return html.Table(
        [html.Thead(header), html.Tbody([_history_row(record) for record in records])],
        style={"borderCollapse": "collapse"},
    )


def _history_row(record: JobRecord) -> html.Tr:
    timestamp = datetime.fromtimestamp(record.timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    status = record.status.value + (" (cached)" if record.cached else "")
    color = "#2e7d32" if record.status is JobState.SUCCEEDED else "#c62828"
    error = f"[{record.error_type}] {record.error}" if record.error else ""
    cells = [
        html.Code(record.job_id[:12]),
        timestamp,
        record.contract_name or "",
        record.version or "",
        html.Span(status, style={"color": color}),
        error,
    ]
    return html.Tr([html.Td(cell, style=_CELL_STYLE) for cell in cells])


_CELL_STYLE = {"border": "1px solid #ddd", "padding": "0.25rem 0.75rem", "textAlign": "left"}
