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


"""Context assembly: loading, position resolution, reference site"""

from .builder import AnalysisContext, build_context, require_position
from .dataset import DataSet, ProductType
from .loader import load_file, load_user_data, walk_files
from .position import GeodeticPosition, resolve_position
from .reference import ReferenceSite, build_reference_site, reference_site_from
from .workspace import Workspace

__all__ = [
    'AnalysisContext', 'build_context', 'require_position',
    'DataSet', 'ProductType',
    'load_file', 'load_user_data', 'walk_files',
    'GeodeticPosition', 'resolve_position',
    'ReferenceSite', 'build_reference_site', 'reference_site_from',
    'Workspace',
]
