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


"""
PyQC - GNSS data context and quality-check pipeline

Loads RINEX and SP3 files into analysis-ready datasets, resolves the
receiver reference position, optionally pairs a rover with a base station
and runs one file operation or positioning analysis, ending with an HTML
report.
"""

__version__ = "1.0.0"
__author__ = "PyQC Development Team"
__title__ = "pyqc"
__description__ = "GNSS data context assembly, file operations and positioning reports"

from .errors import *
from .context import AnalysisContext, DataSet, GeodeticPosition, ReferenceSite
