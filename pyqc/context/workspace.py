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

"""Session workspace (output directory)"""

from __future__ import annotations

import logging
import webbrowser
from pathlib import Path
from typing import Optional

from ..config import workspace_root
from ..errors import ContextInitError

logger = logging.getLogger(__name__)


class Workspace:
    """Directory receiving every product of one session"""

    def __init__(self, root):
        self.root = Path(root)

    @classmethod
    def new(cls, name: str, base: Optional[str] = None) -> "Workspace":
        root = workspace_root(base) / name
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ContextInitError(f"failed to create workspace \"{root}\": {exc}") from exc
        logger.info("session workspace is \"%s\"", root)
        return cls(root)

    def path(self, *parts) -> Path:
        return self.root.joinpath(*parts)

    def create_subdir(self, name: str) -> Path:
        """Create (if needed) and return a sub directory"""
        path = self.root / name
        path.mkdir(parents=True, exist_ok=True)
        return path

    def open_with_web_browser(self, path=None) -> None:
        target = Path(path) if path is not None else self.root / "index.html"
        url = target.resolve().as_uri()
        if not webbrowser.open(url):
            logger.warning("failed to open \"%s\" with a web browser", url)
        else:
            logger.info("opened \"%s\"", url)

    def __repr__(self) -> str:
        return f"Workspace({str(self.root)!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Workspace) and self.root == other.root

    def __hash__(self) -> int:
        return hash(self.root)
