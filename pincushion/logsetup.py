#
# This source file is part of the PinCushion open source project.
#
# Copyright 2012-present the PinCushion authors.
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
#


from __future__ import annotations

import logging

from pincushion.common import debug


LOG_LEVELS = {
    'S': 'SILENT',
    'D': 'DEBUG',
    'I': 'INFO',
    'E': 'ERROR',
    'W': 'WARN',
    'WARN': 'WARN',
    'ERROR': 'ERROR',
    'CRITICAL': 'CRITICAL',
    'INFO': 'INFO',
    'DEBUG': 'DEBUG',
    'SILENT': 'SILENT'
}

LOG_FORMAT = '{levelname} {process} {asctime} {name}: {message}'


class PinCushionLogFormatter(logging.Formatter):

    default_time_format = '%Y-%m-%dT%H:%M:%S'
    default_msec_format = '%s.%03d'


def setup_logging(log_level: str, log_destination: str = 'stderr') -> None:
    log_level = log_level.upper()
    try:
        log_level = LOG_LEVELS[log_level]
    except KeyError:
        raise RuntimeError('Invalid logging level {!r}'.format(log_level))

    logger = logging.getLogger('pincushion')

    if log_level == 'SILENT':
        logger.disabled = True
        logger.setLevel(logging.CRITICAL)
        return

    handler: logging.Handler
    if log_destination == 'stderr':
        handler = logging.StreamHandler()
    else:
        handler = logging.FileHandler(log_destination)
    handler.setFormatter(PinCushionLogFormatter(LOG_FORMAT, style='{'))

    logger.disabled = False
    if log_level == 'WARN':
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(getattr(logging, log_level))
    logger.addHandler(handler)

    # Channel warnings (e.g. unknown debug flags) into logging system
    logging.captureWarnings(True)

    if debug.flags.delta_execute:
        logging.getLogger('pincushion.mti').setLevel(logging.DEBUG)
