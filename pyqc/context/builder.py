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

"""Analysis context: everything an operation needs, built once per run"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import CliOptions
from ..errors import MissingGeodeticMarkerError, MissingPositionError
from ..io.formats import DEFAULT_PROBES, FormatProbe
from .dataset import DataSet
from .loader import load_user_data
from .position import GeodeticPosition, resolve_position
from .reference import ReferenceSite, build_reference_site
from .workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisContext:
    """Immutable run context"""
    name: str
    data: DataSet
    workspace: Workspace
    quiet: bool = False
    reference_site: Optional[ReferenceSite] = None
    rx_position: Optional[GeodeticPosition] = None


def build_context(options: CliOptions,
                  probes: Sequence[FormatProbe] = DEFAULT_PROBES) -> AnalysisContext:
    """
    Load the user data and assemble the analysis context

    Parameters:
    -----------
    options : CliOptions
        Inputs of this run
    probes : Sequence[FormatProbe]
        Format parsers, in priority order

    Returns:
    --------
    AnalysisContext
        Context with ``reference_site`` set only when a differential run was
        requested and the base station declares its geodetic marker

    Raises:
    -------
    ContextInitError
        A dataset or the workspace could not be initialized
    """
    data = load_user_data(options.files, options.directories, options.max_depth,
                          options.filters, probes, rover=True)
    name = data.name()

    rx_position = resolve_position(options.manual_position, data)

    reference_site = None
    if options.differential:
        try:
            reference_site = build_reference_site(
                options.base_files, options.base_directories, options.max_depth,
                rover_position=rx_position, filters=options.filters, probes=probes)
        except MissingGeodeticMarkerError as exc:
            logger.error("%s: current limitation, the reference site must declare its position", exc)

    workspace = Workspace.new(name, options.workspace)

    return AnalysisContext(
        name=name,
        data=data,
        workspace=workspace,
        quiet=options.quiet,
        reference_site=reference_site,
        rx_position=rx_position,
    )


def require_position(ctx: AnalysisContext) -> GeodeticPosition:
    """Context position, for operations that can't run without it"""
    if ctx.rx_position is None:
        raise MissingPositionError(
            "receiver position is required: define it with --rx-ecef "
            "or load data that declares its geodetic marker")
    return ctx.rx_position
