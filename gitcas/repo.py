# repo.py -- For dealing with git repositories.
# Copyright (C) 2007 James Westby <jw+debian@jameswestby.net>
# Copyright (C) 2008-2013 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""Repository access.

A repository is a working directory with a ``.git`` control directory
holding ``objects/``, ``refs/`` and a ``HEAD`` file. Only the object
database is managed here; references are created but never interpreted.
"""

__all__ = [
    "BASE_DIRECTORIES",
    "CONTROLDIR",
    "DEFAULT_BRANCH",
    "OBJECTDIR",
    "REFSDIR",
    "Repo",
]

import os
import sys
from types import TracebackType

from .config import ConfigFile
from .errors import NotGitRepository
from .file import GitFile
from .log_utils import getLogger
from .object_store import DiskObjectStore
from .objects import ObjectID
from .tree import CONTROLDIR, build_tree

logger = getLogger(__name__)

OBJECTDIR = "objects"
REFSDIR = "refs"
HEAD_FILENAME = "HEAD"
CONFIG_FILENAME = "config"
DEFAULT_BRANCH = b"master"

BASE_DIRECTORIES = [
    [OBJECTDIR],
    [REFSDIR],
    [REFSDIR, "heads"],
    [REFSDIR, "tags"],
]


class Repo:
    """A git repository backed by local disk.

    Attributes:
      path: Path to the working tree
      object_store: The repository's DiskObjectStore
    """

    path: str
    object_store: DiskObjectStore

    def __init__(self, root: str | bytes | os.PathLike[str]) -> None:
        """Open a repository on disk.

        Args:
          root: Path to the repository's working tree.

        Raises:
          NotGitRepository: if the control directory skeleton is incomplete
        """
        root = os.fspath(root)
        if isinstance(root, bytes):
            root = os.fsdecode(root)
        self.path = root
        self._controldir = os.path.join(root, CONTROLDIR)
        if not (
            os.path.isdir(os.path.join(self._controldir, OBJECTDIR))
            and os.path.isdir(os.path.join(self._controldir, REFSDIR))
            and os.path.isfile(os.path.join(self._controldir, HEAD_FILENAME))
        ):
            raise NotGitRepository(f"No git repository was found at {root}")
        self.object_store = DiskObjectStore.from_config(
            os.path.join(self._controldir, OBJECTDIR), self.get_config()
        )

    def __repr__(self) -> str:
        """Return string representation of this repository."""
        return f"<Repo at {self.path!r}>"

    @classmethod
    def discover(cls, start: str | bytes | os.PathLike[str] = ".") -> "Repo":
        """Iterate parent directories to discover a repository.

        Return a Repo object for the first parent directory that looks like a
        Git repository.

        Args:
          start: The directory to start discovery from (defaults to '.')
        """
        start_str = os.fspath(start)
        if isinstance(start_str, bytes):
            start_str = os.fsdecode(start_str)
        path = os.path.abspath(start_str)
        while True:
            try:
                return cls(path)
            except NotGitRepository:
                new_path, _tail = os.path.split(path)
                if new_path == path:  # Root reached
                    break
                path = new_path
        raise NotGitRepository(f"No git repository was found at {start_str}")

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self._controldir

    def get_config(self) -> ConfigFile:
        """Retrieve the config object.

        Returns: `ConfigFile` object for the ``.git/config`` file, empty if
          the repository has none.
        """
        path = os.path.join(self._controldir, CONFIG_FILENAME)
        try:
            return ConfigFile.from_path(path)
        except FileNotFoundError:
            ret = ConfigFile()
            ret.path = path
            return ret

    def write_tree(self) -> ObjectID:
        """Store the working tree and return the id of its root tree."""
        return build_tree(self.object_store, self.path)

    @classmethod
    def init(
        cls,
        path: str | bytes | os.PathLike[str],
        *,
        mkdir: bool = False,
        default_branch: bytes = DEFAULT_BRANCH,
    ) -> "Repo":
        """Create a new repository.

        Args:
          path: Path in which to create the repository
          mkdir: Whether to create the directory
          default_branch: Branch HEAD points at

        Returns: `Repo` instance

        Raises:
          FileExistsError: if the control directory already exists
        """
        path = os.fspath(path)
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        if mkdir:
            os.mkdir(path)
        controldir = os.path.join(path, CONTROLDIR)
        os.mkdir(controldir)
        for d in BASE_DIRECTORIES:
            os.mkdir(os.path.join(controldir, *d))
        with GitFile(os.path.join(controldir, HEAD_FILENAME), "wb") as f:
            f.write(b"ref: refs/heads/" + default_branch + b"\n")
        cf = ConfigFile()
        cf.set("core", "repositoryformatversion", "0")
        cf.set("core", "filemode", sys.platform != "win32")
        cf.set("core", "bare", False)
        cf.write_to_path(os.path.join(controldir, CONFIG_FILENAME))
        logger.debug("initialized repository in %s", controldir)
        return cls(path)

    def close(self) -> None:
        """Close any files opened by this repository."""

    def __enter__(self) -> "Repo":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
