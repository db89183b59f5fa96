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

"""User data loading: directory discovery, classification and merging"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, Sequence

from ..errors import MergeError
from ..io.formats import DEFAULT_PROBES, FileKind, FormatProbe, classify
from .dataset import DataSet

logger = logging.getLogger(__name__)


def walk_files(directory, max_depth: int) -> Iterator[Path]:
    """Yield every file found below ``directory``, ``max_depth`` levels deep.

    Files directly inside ``directory`` are one level deep. Entries are
    visited in sorted order.
    """
    root = Path(directory)
    if root.is_file():
        yield root
        return
    if not root.is_dir():
        logger.warning("directory \"%s\" does not exist", root)
        return
    if max_depth < 1:
        return

    root_depth = len(root.parts)
    for dirpath, dirnames, filenames in os.walk(root):
        depth = len(Path(dirpath).parts) - root_depth
        dirnames.sort()
        # files of sub directories would lie at depth + 2
        if depth + 2 > max_depth:
            dirnames[:] = []
        for name in sorted(filenames):
            yield Path(dirpath) / name


def load_file(dataset: DataSet, path: Path,
              probes: Sequence[FormatProbe] = DEFAULT_PROBES) -> bool:
    """Classify one file and merge it into ``dataset``.

    Returns False when the file was skipped. Never raises for file level
    problems.
    """
    entry = classify(path, probes)
    if entry.kind is FileKind.RINEX:
        loader = dataset.load_rinex
    elif entry.kind is FileKind.SP3:
        loader = dataset.load_sp3
    else:
        logger.warning("non supported file format \"%s\"", path)
        return False

    try:
        loader(path, entry.record)
    except MergeError as exc:
        logger.warning("failed to load %s file \"%s\": %s", entry.kind.value, path, exc)
        return False

    logger.info("Loading %s file \"%s\"", entry.kind.value, path)
    return True


def load_user_data(files: Sequence = (),
                   directories: Sequence = (),
                   max_depth: int = 5,
                   filters: Sequence[str] = (),
                   probes: Sequence[FormatProbe] = DEFAULT_PROBES,
                   rover: bool = True) -> DataSet:
    """
    Parse and preprocess all files passed by the user

    Parameters:
    -----------
    files : Sequence
        Individual file paths
    directories : Sequence
        Directories loaded recursively
    max_depth : int
        Maximal directory recursion depth
    filters : Sequence[str]
        Preprocessing filter expressions
    probes : Sequence[FormatProbe]
        Format parsers, in priority order
    rover : bool
        Rover (True) or base station (False) dataset, for logging

    Returns:
    --------
    DataSet
        Preprocessed dataset, possibly empty

    Raises:
    -------
    ContextInitError
        The dataset could not be initialized
    """
    dataset = DataSet.new(filters)

    for directory in directories:
        for path in walk_files(directory, max_depth):
            load_file(dataset, path, probes)

    for fp in files:
        load_file(dataset, Path(fp), probes)

    dataset = dataset.preprocess()

    label = "ROVER" if rover else "BASE STATION"
    logger.debug("%s dataset: %s", label, dataset)
    return dataset
