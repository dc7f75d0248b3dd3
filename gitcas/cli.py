#
# gitcas - Simple command-line interface to gitcas
# Copyright (C) 2008-2011 Jelmer Vernooij <jelmer@jelmer.uk>
# vim: expandtab
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

"""Simple command-line interface to gitcas.

Exposes the object database plumbing: creating a repository skeleton,
hashing and storing files, reading objects back and snapshotting a
directory as a tree.
"""

__all__ = [
    "EXIT_BAD_OBJECT",
    "Command",
    "commands",
    "main",
    "signal_int",
    "signal_quit",
]

import argparse
import logging
import os
import signal
import sys
import types
from collections.abc import Sequence
from contextlib import nullcontext
from io import BytesIO
from typing import BinaryIO

from .errors import (
    ConfigError,
    FileFormatException,
    InvalidInputError,
    InvalidObjectIDError,
    NotGitRepository,
    NotTreeError,
    ObjectNotFound,
)
from .hash import hash_object_stream
from .log_utils import default_logging_config
from .object_store import iter_tree_contents, read_tree
from .objects import ObjectKind, check_hexsha, parse_tree, pretty_format_tree_entry
from .repo import Repo
from .tree import build_tree

logger = logging.getLogger(__name__)

# git exits with 128 when it cannot resolve an object name
EXIT_BAD_OBJECT = 128


def signal_int(signal: int, frame: types.FrameType | None) -> None:
    """Handle interrupt signal by exiting.

    Args:
        signal: Signal number
        frame: Current stack frame
    """
    sys.exit(1)


def signal_quit(signal: int, frame: types.FrameType | None) -> None:
    """Handle quit signal by entering debugger.

    Args:
        signal: Signal number
        frame: Current stack frame
    """
    import pdb

    pdb.set_trace()


class Command:
    """A gitcas subcommand."""

    def run(self, args: Sequence[str]) -> int | None:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_init(Command):
    """Create an empty repository."""

    def run(self, args: Sequence[str]) -> int | None:
        """Execute the init command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcas init")
        parser.add_argument(
            "path", nargs="?", default=os.getcwd(), help="Repository path"
        )
        parsed_args = parser.parse_args(args)
        try:
            Repo.init(parsed_args.path)
        except FileExistsError:
            logger.error("fatal: %s already contains a repository", parsed_args.path)
            return 1
        sys.stdout.write("Initialized git directory\n")
        return 0


class cmd_hash_object(Command):
    """Compute the object id of a file, optionally storing it."""

    def run(self, args: Sequence[str]) -> int | None:
        """Execute the hash-object command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcas hash-object")
        parser.add_argument(
            "-w",
            dest="write",
            action="store_true",
            help="Write the object into the object database",
        )
        parser.add_argument(
            "-t",
            dest="kind",
            default="blob",
            choices=[kind.type_name.decode() for kind in ObjectKind],
            help="Kind of object to create (default: blob)",
        )
        parser.add_argument(
            "--stdin", action="store_true", help="Read the object from stdin"
        )
        parser.add_argument("file", nargs="?", help="File to hash")
        parsed_args = parser.parse_args(args)
        if parsed_args.stdin == (parsed_args.file is not None):
            parser.error("exactly one of --stdin or a file is required")
        kind = ObjectKind.from_token(parsed_args.kind)

        source: nullcontext[BinaryIO] | BinaryIO
        if parsed_args.stdin:
            # Leave stdin open for the caller
            source = nullcontext(sys.stdin.buffer)
        else:
            try:
                source = open(parsed_args.file, "rb")
            except OSError as e:
                logger.error("fatal: could not open '%s': %s", parsed_args.file, e.strerror)
                return 1
        with source as f:
            if parsed_args.write:
                with Repo.discover() as repo:
                    sha = repo.object_store.add_object(kind, f)
            elif f.seekable():
                start = f.tell()
                length = f.seek(0, os.SEEK_END) - start
                f.seek(start)
                sha = hash_object_stream(kind, f, length)
            else:
                data = f.read()
                sha = hash_object_stream(kind, BytesIO(data), len(data))
        sys.stdout.write(sha.decode("ascii") + "\n")
        return 0


class cmd_cat_file(Command):
    """Show the content, kind or size of an object."""

    def run(self, args: Sequence[str]) -> int | None:
        """Execute the cat-file command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcas cat-file")
        group = parser.add_mutually_exclusive_group(required=True)
        group.add_argument(
            "-p", dest="pretty", action="store_true", help="Pretty-print the content"
        )
        group.add_argument(
            "-t", dest="kind", action="store_true", help="Show the object kind"
        )
        group.add_argument(
            "-s", dest="size", action="store_true", help="Show the object size"
        )
        group.add_argument(
            "-e",
            dest="exists",
            action="store_true",
            help="Exit with zero status if the object exists",
        )
        parser.add_argument("object", help="Object id")
        parsed_args = parser.parse_args(args)

        try:
            sha = check_hexsha(parsed_args.object)
        except InvalidObjectIDError as e:
            if parsed_args.exists:
                return 1
            logger.error("fatal: %s", e)
            return EXIT_BAD_OBJECT

        with Repo.discover() as repo:
            if parsed_args.exists:
                return 0 if sha in repo.object_store else 1
            try:
                reader = repo.object_store.get(sha)
            except ObjectNotFound:
                logger.error("fatal: Not a valid object name %s", parsed_args.object)
                return EXIT_BAD_OBJECT
            with reader:
                if parsed_args.kind:
                    sys.stdout.write(reader.kind.type_name.decode("ascii") + "\n")
                elif parsed_args.size:
                    sys.stdout.write(f"{reader.length}\n")
                elif reader.kind is ObjectKind.TREE:
                    for entry in parse_tree(reader):
                        sys.stdout.write(pretty_format_tree_entry(*entry))
                else:
                    outstream = sys.stdout.buffer
                    for chunk in reader:
                        outstream.write(chunk)
                    outstream.flush()
        return 0


class cmd_ls_tree(Command):
    """List the contents of a tree object."""

    def run(self, args: Sequence[str]) -> int | None:
        """Execute the ls-tree command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcas ls-tree")
        parser.add_argument(
            "-r",
            "--recursive",
            action="store_true",
            help="Recursively list tree contents.",
        )
        parser.add_argument(
            "--name-only", action="store_true", help="Only display name."
        )
        parser.add_argument("treeish", help="Tree to list")
        parsed_args = parser.parse_args(args)
        try:
            sha = check_hexsha(parsed_args.treeish)
        except InvalidObjectIDError as e:
            logger.error("fatal: %s", e)
            return EXIT_BAD_OBJECT

        with Repo.discover() as repo:
            try:
                if parsed_args.recursive:
                    entries = list(iter_tree_contents(repo.object_store, sha))
                else:
                    entries = read_tree(repo.object_store, sha)
            except ObjectNotFound:
                logger.error("fatal: Not a valid object name %s", parsed_args.treeish)
                return EXIT_BAD_OBJECT
            except NotTreeError:
                logger.error("fatal: not a tree object")
                return EXIT_BAD_OBJECT
        for entry in entries:
            if parsed_args.name_only:
                sys.stdout.write(entry.name.decode("utf-8", "replace") + "\n")
            else:
                sys.stdout.write(pretty_format_tree_entry(*entry))
        return 0


class cmd_write_tree(Command):
    """Create a tree object from a directory."""

    def run(self, args: Sequence[str]) -> int | None:
        """Execute the write-tree command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcas write-tree")
        parser.add_argument(
            "path",
            nargs="?",
            help="Directory to store (default: the repository's working tree)",
        )
        parsed_args = parser.parse_args(args)
        with Repo.discover() as repo:
            if parsed_args.path is None:
                sha = repo.write_tree()
            else:
                sha = build_tree(repo.object_store, parsed_args.path)
        sys.stdout.write(sha.decode("ascii") + "\n")
        return 0


commands = {
    "cat-file": cmd_cat_file,
    "hash-object": cmd_hash_object,
    "init": cmd_init,
    "ls-tree": cmd_ls_tree,
    "write-tree": cmd_write_tree,
}


def main(argv: Sequence[str] | None = None) -> int | None:
    """Main entry point for the gitcas CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code or None
    """
    if argv is None:
        argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        parser = argparse.ArgumentParser(
            prog="gitcas", description="Simple command-line interface to gitcas"
        )
        parser.add_argument(
            "command",
            nargs="?",
            help=f"Command to run. Available: {', '.join(sorted(commands.keys()))}",
        )
        parser.print_help()
        return 1

    default_logging_config()

    cmd = argv[0]
    cmd_args = argv[1:]

    try:
        cmd_kls = commands[cmd]
    except KeyError:
        logging.fatal("No such subcommand: %s", cmd)
        return 1
    try:
        return cmd_kls().run(cmd_args)
    except NotGitRepository as e:
        logger.error("fatal: %s", e)
        return EXIT_BAD_OBJECT
    except ConfigError as e:
        logger.error("fatal: bad config: %s", e)
        return 1
    except FileFormatException as e:
        logger.error("fatal: corrupt object: %s", e)
        return EXIT_BAD_OBJECT
    except InvalidInputError as e:
        logger.error("fatal: %s", e)
        return 1
    except OSError as e:
        logger.error("fatal: %s", e)
        return 1


def _main() -> None:
    if "GITCAS_PDB" in os.environ and getattr(signal, "SIGQUIT", None):
        signal.signal(signal.SIGQUIT, signal_quit)  # type: ignore[attr-defined,unused-ignore]
    signal.signal(signal.SIGINT, signal_int)

    sys.exit(main())


if __name__ == "__main__":
    _main()
