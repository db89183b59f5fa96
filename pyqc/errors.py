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


"""Exception hierarchy

File level problems (unrecognized formats, failed merges while loading) are
logged and skipped by the loader. Everything raised while executing an
operation propagates to :func:`pyqc.cli.main`, which reports the cause chain
and terminates with a non-zero status.
"""

__all__ = [
    'QcError', 'ContextInitError', 'FormatError', 'MergeError', 'SplitError',
    'MissingProductError', 'MissingObservationError', 'MissingNavigationError',
    'MissingGeodeticMarkerError', 'MissingReferenceSiteError',
    'MissingPositionError', 'PositioningSolverError',
]


class QcError(Exception):
    """Base class of every error raised by pyqc"""


class ContextInitError(QcError):
    """The (empty) aggregate dataset could not be initialized"""


class FormatError(QcError):
    """File content does not match the expected record format"""


class MergeError(QcError):
    """Two records cannot be merged"""


class SplitError(QcError):
    """A record cannot be split as requested"""


class MissingProductError(QcError):
    """An operation requires a product that was not loaded"""


class MissingObservationError(MissingProductError):
    """missing OBS RINEX"""

    def __init__(self, message: str = "missing OBS RINEX"):
        super().__init__(message)


class MissingNavigationError(MissingProductError):
    """missing (BRDC) NAV RINEX"""

    def __init__(self, message: str = "missing (BRDC) NAV RINEX"):
        super().__init__(message)


class MissingGeodeticMarkerError(QcError):
    """Base station dataset does not declare its reference position"""


class MissingReferenceSiteError(QcError):
    """Differential positioning requested without a reference site"""


class MissingPositionError(QcError):
    """An operation requires the receiver position but none is defined"""


class PositioningSolverError(QcError):
    """positioning solver error"""
