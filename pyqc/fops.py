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

"""File operations: every product is written to ``<workspace>/OUTPUT``"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import List

from .context.builder import AnalysisContext
from .context.dataset import ProductType, Record
from .errors import FormatError, MissingObservationError, MissingProductError
from .io.formats import classify
from .io.rinex import Rinex, file_stem
from .io.sp3 import SP3
from .preprocessing import preprocess

logger = logging.getLogger(__name__)

OUTPUT_DIR = "OUTPUT"


def output_dir(ctx: AnalysisContext) -> Path:
    return ctx.workspace.create_subdir(OUTPUT_DIR)


def _stem(product: ProductType, record: Record) -> str:
    if record.path is not None:
        return file_stem(record.path)
    return product.name.lower()


def _extension(record: Record) -> str:
    return ".sp3" if isinstance(record, SP3) else ".rnx"


def _write(ctx: AnalysisContext, record: Record, name: str) -> Path:
    path = output_dir(ctx) / f"{name}{_extension(record)}"
    record.to_file(path)
    logger.info("\"%s\" has been generated", path)
    return path


def _records(ctx: AnalysisContext):
    if ctx.data.is_empty():
        raise MissingProductError("no data to process")
    return list(ctx.data.items())


def _parse_user_file(path) -> Record:
    entry = classify(Path(path))
    if not entry.recognized:
        raise FormatError(f"non supported file format \"{path}\"")
    return entry.record


def filegen(ctx: AnalysisContext) -> List[Path]:
    """Write every (preprocessed) record of the context"""
    return [_write(ctx, record, _stem(product, record)) for product, record in _records(ctx)]


def merge(ctx: AnalysisContext, path) -> Path:
    """Merge a file into the context record of the same product type"""
    other = _parse_user_file(path)
    product = ProductType.of(other)
    record = ctx.data.get(product)
    if record is None:
        raise MissingProductError(f"no {product.value} data to merge \"{path}\" into")
    merged = record.merge(other)
    return _write(ctx, merged, f"{_stem(product, record)}-merged")


def split(ctx: AnalysisContext, epoch: datetime) -> List[Path]:
    """Split every record at ``epoch``"""
    outputs = []
    for product, record in _records(ctx):
        before, after = record.split(epoch)
        stem = _stem(product, record)
        outputs.append(_write(ctx, before, f"{stem}-0"))
        outputs.append(_write(ctx, after, f"{stem}-1"))
    return outputs


def time_binning(ctx: AnalysisContext, duration: timedelta) -> List[Path]:
    """Write every record as consecutive batches of ``duration``"""
    outputs = []
    for product, record in _records(ctx):
        stem = _stem(product, record)
        for batch in record.split_duration(duration):
            t0 = batch.first_epoch()
            outputs.append(_write(ctx, batch, f"{stem}-{t0:%Y%m%dT%H%M%S}"))
    return outputs


def diff(ctx: AnalysisContext, path) -> Path:
    """Difference (context - file) of two observation records"""
    lhs = ctx.data.observation()
    if lhs is None:
        raise MissingObservationError()
    rhs = _parse_user_file(path)
    if not isinstance(rhs, Rinex) or not rhs.is_observation:
        raise MissingObservationError(f"\"{path}\" is not an OBS RINEX")
    rhs = preprocess(rhs, ctx.data.filters)
    differenced = lhs.difference(rhs)
    return _write(ctx, differenced, f"DIFFERENCED-{_stem(ProductType.OBSERVATION, lhs)}")
