# log_utils.py -- Logging utilities for gitcas
# Copyright (C) 2010 Google, Inc.
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitcas is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Logging utilities for gitcas.

gitcas is mostly used as a library, so the package logger carries a no-op
handler until an application configures logging; this keeps "No handlers
could be found" warnings away from callers that never asked for output.

Modules obtain their logger through getLogger, which is re-exported here for
convenience. Trace output for the command line follows git's convention:
setting GITCAS_TRACE (or GIT_TRACE) enables debug logging.
"""

__all__ = [
    "TRACE_ENVIRONMENT_VARIABLES",
    "default_logging_config",
    "getLogger",
    "remove_null_handler",
]

import logging
import os
import sys
from collections.abc import Mapping

getLogger = logging.getLogger

# Checked in order; the first one that is set wins.
TRACE_ENVIRONMENT_VARIABLES = ("GITCAS_TRACE", "GIT_TRACE")

TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


class _NullHandler(logging.Handler):
    """No-op logging handler to avoid unexpected logging warnings."""

    def emit(self, record: logging.LogRecord) -> None:
        pass


_NULL_HANDLER = _NullHandler()
_GITCAS_LOGGER = getLogger("gitcas")
_GITCAS_LOGGER.addHandler(_NULL_HANDLER)


def _trace_setting(env: Mapping[str, str] | None = None) -> str:
    if env is None:
        env = os.environ
    for name in TRACE_ENVIRONMENT_VARIABLES:
        value = env.get(name)
        if value:
            return value
    return ""


def _get_trace_target(env: Mapping[str, str] | None = None) -> str | int | None:
    """Work out where trace output should go.

    Returns:
        - None if tracing is disabled
        - 2 for stderr output (values "1", "2", "true")
        - int (3-9) for a file descriptor
        - str for an absolute file or directory path
    """
    value = _trace_setting(env)
    if not value or value.lower() in ("0", "false"):
        return None
    if value.lower() in ("1", "2", "true"):
        return 2
    if value.isdigit():
        fd = int(value)
        return fd if 3 <= fd <= 9 else None
    if os.path.isabs(value):
        return value
    return None


def _configure_logging_from_trace(env: Mapping[str, str] | None = None) -> bool:
    """Configure debug logging from the trace environment variables.

    Returns True if tracing was set up, False otherwise.
    """
    target = _get_trace_target(env)
    if target is None:
        return False

    if target == 2:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format=TRACE_FORMAT)
        return True

    try:
        if isinstance(target, int):
            stream = os.fdopen(target, "w", buffering=1)
            logging.basicConfig(level=logging.DEBUG, stream=stream, format=TRACE_FORMAT)
            return True
        if os.path.isdir(target):
            # One file per process when pointed at a directory
            target = os.path.join(target, f"trace.{os.getpid()}")
        logging.basicConfig(
            level=logging.DEBUG, filename=target, filemode="a", format=TRACE_FORMAT
        )
    except OSError as e:
        sys.stderr.write(f"Warning: Failed to open trace target {target}: {e}\n")
        return False
    return True


def default_logging_config() -> None:
    """Set up the default gitcas loggers.

    Trace settings take precedence; without them, INFO and above go to
    stderr as bare messages, which is what the command line wants.
    """
    remove_null_handler()
    if not _configure_logging_from_trace():
        logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(message)s")


def remove_null_handler() -> None:
    """Remove the null handler from the gitcas loggers.

    If a caller wants to set up logging using something other than
    default_logging_config, calling this function first is a minor optimization
    to avoid the overhead of using the _NullHandler.
    """
    _GITCAS_LOGGER.removeHandler(_NULL_HANDLER)
