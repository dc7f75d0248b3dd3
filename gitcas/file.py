# file.py -- Safe access to git files
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

"""Safe access to git files."""

__all__ = [
    "GitFile",
    "ensure_dir_exists",
]

import os
import tempfile
import warnings
from types import TracebackType
from typing import IO, Literal, overload


def ensure_dir_exists(
    dirname: str | os.PathLike[str],
    mode: int | None = None,
) -> None:
    """Ensure a directory exists, creating if necessary.

    Args:
      dirname: Directory to create
      mode: Optional permission bits to apply to a newly created directory

    Raises:
      NotADirectoryError: if something other than a directory occupies
        ``dirname``
    """
    try:
        os.mkdir(dirname)
    except FileExistsError:
        if not os.path.isdir(dirname):
            raise NotADirectoryError(
                f"{os.fspath(dirname)} exists and is not a directory"
            ) from None
        return
    if mode is not None:
        os.chmod(dirname, mode)


@overload
def GitFile(
    filename: str | os.PathLike[str],
    mode: Literal["wb"],
    bufsize: int = -1,
    mask: int = 0o644,
    fsync: bool = True,
) -> "_GitFile": ...


@overload
def GitFile(
    filename: str | os.PathLike[str],
    mode: Literal["rb"] = "rb",
    bufsize: int = -1,
    mask: int = 0o644,
    fsync: bool = True,
) -> IO[bytes]: ...


def GitFile(
    filename: str | os.PathLike[str],
    mode: str = "rb",
    bufsize: int = -1,
    mask: int = 0o644,
    fsync: bool = True,
) -> "IO[bytes] | _GitFile":
    """Create a file object that never exposes a partially written file.

    Returns: a builtin file object or a _GitFile object

    Note: See _GitFile for a description of the write protocol.

    Only read-only and write-only (binary) modes are supported; r+, w+, and a
    are not.

    Args:
      filename: Path to the file
      mode: File mode (only 'rb' and 'wb' are supported)
      bufsize: Buffer size for file operations
      mask: Permission bits the file carries once it is in place
      fsync: Whether to call fsync() before closing (default: True)
    """
    if "a" in mode:
        raise OSError("append mode not supported for Git files")
    if "+" in mode:
        raise OSError("read/write mode not supported for Git files")
    if "b" not in mode:
        raise OSError("text mode not supported for Git files")
    if "w" in mode:
        return _GitFile(filename, mode, bufsize, mask, fsync)
    else:
        return open(filename, mode, bufsize)


class _GitFile:
    """File that is written next to its destination and renamed into place.

    All writes to a file foo go to a uniquely named temporary file in the
    same directory. On close the temporary file receives its final
    permissions and is atomically renamed over foo, so readers see either no
    file or the complete one. Several writers may target the same file at
    once; each has its own temporary file.

    Note: You *must* call close() or abort() on a _GitFile for the temporary
        file to be cleaned up. Typically this will happen in a with block.
    """

    _file: IO[bytes]
    _filename: str
    _tmpfilename: str
    _closed: bool

    def __init__(
        self,
        filename: str | os.PathLike[str],
        mode: str,
        bufsize: int,
        mask: int,
        fsync: bool = True,
    ) -> None:
        self._filename = os.fspath(filename)
        self._mask = mask
        self._fsync = fsync
        dirname, basename = os.path.split(self._filename)
        fd, self._tmpfilename = tempfile.mkstemp(
            prefix=f".{basename}.", suffix=".tmp", dir=dirname or "."
        )
        self._file = os.fdopen(fd, mode, bufsize)
        self._closed = False

    @property
    def name(self) -> str:
        """Name of the destination file."""
        return self._filename

    def abort(self) -> None:
        """Close and discard the temporary file without touching the target.

        If the file is already closed, this is a no-op.
        """
        if self._closed:
            return
        self._file.close()
        try:
            os.remove(self._tmpfilename)
        except FileNotFoundError:
            # The file may have been removed already, which is ok.
            pass
        self._closed = True

    def close(self) -> None:
        """Close this file, renaming the temporary file over the target.

        Raises:
          OSError: if the target could not be replaced. The temporary file
            is removed, and further writes raise ValueError.
        """
        if self._closed:
            return
        try:
            self._file.flush()
            if self._fsync:
                os.fsync(self._file.fileno())
            self._file.close()
            os.chmod(self._tmpfilename, self._mask)
            os.replace(self._tmpfilename, self._filename)
        finally:
            self.abort()

    def __del__(self) -> None:
        if not getattr(self, "_closed", True):
            warnings.warn(f"unclosed {self!r}", ResourceWarning, stacklevel=2)
            self.abort()

    def __enter__(self) -> "_GitFile":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.abort()
        else:
            self.close()

    def __fspath__(self) -> str:
        """Return the file path for os.fspath() compatibility."""
        return self._filename

    @property
    def closed(self) -> bool:
        """Return whether the file is closed."""
        return self._closed

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def writelines(self, lines: list[bytes]) -> None:
        return self._file.writelines(lines)

    def flush(self) -> None:
        return self._file.flush()

    def tell(self) -> int:
        return self._file.tell()

    def fileno(self) -> int:
        return self._file.fileno()
