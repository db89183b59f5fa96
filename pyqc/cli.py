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
Command Line Interface for pyqc
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from . import __version__
from .config import CliOptions, PositioningConfig
from .context.builder import build_context
from .core.constants import MAX_RECURSIVE_DEPTH
from .errors import QcError
from .logger import LogLevel, setup_logger
from .opmode import Diff, FileGen, Merge, OperationMode, Ppp, ReportOnly, Rtk, Split, TimeBin, run
from .preprocessing import parse_duration, parse_epoch

logger = logging.getLogger(__name__)


def _ecef(text: str) -> Tuple[float, float, float]:
    tokens = [token.strip() for token in text.split(',')]
    try:
        if len(tokens) != 3:
            raise ValueError
        x, y, z = (float(token) for token in tokens)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expecting X,Y,Z ECEF coordinates in meters, got {text!r}")
    return x, y, z


def _epoch(text: str):
    try:
        return parse_epoch(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def _duration(text: str):
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='pyqc',
        description='GNSS data context assembly, file operations and positioning reports',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-f', '--fp', dest='files', action='append', default=[],
                        metavar='FILE', help='Load a single file (repeatable)')
    parser.add_argument('-d', '--dir', dest='directories', action='append', default=[],
                        metavar='DIR', help='Load a directory recursively (repeatable)')
    parser.add_argument('-r', '--depth', dest='max_depth', type=int, default=MAX_RECURSIVE_DEPTH,
                        help='Maximal directory recursion depth (default: %(default)s)')
    parser.add_argument('--rx-ecef', type=_ecef, metavar='X,Y,Z',
                        help='Manually defined receiver position (ECEF, m)')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='Do not open the report in a web browser')
    parser.add_argument('-w', '--workspace', help='Workspace (default: $PYQC_WORKSPACE or ./WORKSPACE)')
    parser.add_argument('-P', '--preprocessing', dest='filters', action='append', default=[],
                        metavar='FILTER', help='Preprocessing filter, e.g. "gnss:G,E" (repeatable)')
    parser.add_argument('-v', '--log-level', choices=list(LogLevel.__members__),
                        type=str.upper, help='Log level (default: $PYQC_LOG or INFO)')

    subparsers = parser.add_subparsers(dest='command', help='Operating mode (default: report)')

    subparsers.add_parser('filegen', help='Write the preprocessed dataset')

    merge_parser = subparsers.add_parser('merge', help='Merge a file into the dataset')
    merge_parser.add_argument('file', type=Path)

    split_parser = subparsers.add_parser('split', help='Split the dataset at an epoch')
    split_parser.add_argument('epoch', type=_epoch, help='ISO 8601 epoch')

    tbin_parser = subparsers.add_parser('tbin', help='Split the dataset into time bins')
    tbin_parser.add_argument('duration', type=_duration, help='Bin duration: 1d, 2h, 30min, 15s')

    diff_parser = subparsers.add_parser('diff', help='Difference the observations with another OBS RINEX')
    diff_parser.add_argument('file', type=Path)

    ppp_parser = subparsers.add_parser('ppp', help='Single receiver positioning')
    ppp_parser.add_argument('--cfg', type=Path, help='Positioning configuration (TOML)')

    rtk_parser = subparsers.add_parser('rtk', help='Differential positioning')
    rtk_parser.add_argument('--fp', dest='base_files', action='append', default=[],
                            metavar='FILE', help='Base station file (repeatable)')
    rtk_parser.add_argument('--dir', dest='base_directories', action='append', default=[],
                            metavar='DIR', help='Base station directory (repeatable)')
    rtk_parser.add_argument('--cfg', type=Path, help='Positioning configuration (TOML)')

    return parser


def _positioning_config(path: Optional[Path]) -> PositioningConfig:
    if path is None:
        return PositioningConfig()
    return PositioningConfig.from_toml(path)


def operation_mode(args: argparse.Namespace) -> OperationMode:
    """Operating mode selected by the parsed arguments"""
    if args.command == 'filegen':
        return FileGen()
    if args.command == 'merge':
        return Merge(args.file)
    if args.command == 'split':
        return Split(args.epoch)
    if args.command == 'tbin':
        return TimeBin(args.duration)
    if args.command == 'diff':
        return Diff(args.file)
    if args.command == 'ppp':
        return Ppp(_positioning_config(args.cfg))
    if args.command == 'rtk':
        return Rtk(_positioning_config(args.cfg))
    return ReportOnly()


def cli_options(args: argparse.Namespace) -> CliOptions:
    return CliOptions(
        files=tuple(args.files),
        directories=tuple(args.directories),
        max_depth=args.max_depth,
        manual_position=args.rx_ecef,
        quiet=args.quiet,
        workspace=args.workspace,
        filters=tuple(args.filters),
        differential=args.command == 'rtk',
        base_files=tuple(getattr(args, 'base_files', ())),
        base_directories=tuple(getattr(args, 'base_directories', ())),
    )


def _report_error(exc: BaseException) -> None:
    logger.error("%s", exc)
    cause = exc.__cause__
    while cause is not None:
        logger.error("caused by: %s", cause)
        cause = cause.__cause__


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the pyqc command"""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logger(level=args.log_level)

    if not args.files and not args.directories:
        parser.error("at least one file (-f) or directory (-d) must be loaded")
    if args.command == 'rtk' and not args.base_files and not args.base_directories:
        parser.error("rtk requires base station data (--fp or --dir)")

    try:
        mode = operation_mode(args)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        ctx = build_context(cli_options(args))
        report = run(ctx, mode)
    except QcError as exc:
        _report_error(exc)
        return 1

    if report is not None:
        logger.info("report: \"%s\"", report)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
