# test_cli.py -- tests for gitcas.cli
# vim: expandtab
#
# Copyright (C) 2024 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""Tests for gitcas.cli."""

import io
import os
import sys
import zlib

from gitcas import cli
from gitcas.hash import hash_object
from gitcas.object_store import read_tree
from gitcas.objects import FileMode, ObjectKind, TreeEntry, serialize_tree
from gitcas.repo import Repo

from . import TestCase, make_tree

testobject = b"what is up, doc?\n"
testobject_id = "bd9dbf5aae1a3862dd1526723246b20206e5fc37"


class GitcasCliTestCase(TestCase):
    """Base class for CLI tests."""

    def setUp(self) -> None:
        super().setUp()
        self.test_dir = self.mkdtemp()
        self.repo_path = os.path.join(self.test_dir, "repo")
        os.mkdir(self.repo_path)
        self.repo = Repo.init(self.repo_path)
        self.addCleanup(self.repo.close)

    def _run_cli(self, *args, stdin=None):
        """Run CLI command and capture output."""

        class MockStream:
            def __init__(self, data=b""):
                self._buffer = io.BytesIO(data)
                self.buffer = self._buffer

            def write(self, data):
                if isinstance(data, bytes):
                    self._buffer.write(data)
                else:
                    self._buffer.write(data.encode("utf-8"))

            def getvalue(self):
                value = self._buffer.getvalue()
                try:
                    return value.decode("utf-8")
                except UnicodeDecodeError:
                    return value

            def __getattr__(self, name):
                return getattr(self._buffer, name)

        old_stdin = sys.stdin
        old_stdout = sys.stdout
        old_stderr = sys.stderr
        old_cwd = os.getcwd()

        try:
            sys.stdin = MockStream(stdin or b"")
            sys.stdout = MockStream()
            sys.stderr = MockStream()

            os.chdir(self.repo_path)
            result = cli.main(list(args))
            return result, sys.stdout.getvalue(), sys.stderr.getvalue()
        finally:
            sys.stdin = old_stdin
            sys.stdout = old_stdout
            sys.stderr = old_stderr
            os.chdir(old_cwd)

    def write_file(self, name: str, content: bytes) -> str:
        make_tree(self.repo_path, {name: content})
        return os.path.join(self.repo_path, name)


class MainTest(GitcasCliTestCase):
    def test_no_arguments(self) -> None:
        result, stdout, _stderr = self._run_cli()
        self.assertEqual(1, result)
        self.assertIn("usage: gitcas", stdout)

    def test_help(self) -> None:
        result, stdout, _stderr = self._run_cli("--help")
        self.assertEqual(1, result)
        self.assertIn("hash-object", stdout)

    def test_unknown_command(self) -> None:
        result, _stdout, _stderr = self._run_cli("frobnicate")
        self.assertEqual(1, result)

    def test_outside_repository(self) -> None:
        outside = os.path.join(self.test_dir, "outside")
        os.mkdir(outside)
        old_path = self.repo_path
        self.repo_path = outside
        try:
            with self.assertLogs("gitcas.cli", level="ERROR"):
                result, _stdout, _stderr = self._run_cli("write-tree")
        finally:
            self.repo_path = old_path
        self.assertEqual(cli.EXIT_BAD_OBJECT, result)


class InitCommandTest(GitcasCliTestCase):
    """Tests for init command."""

    def test_init_basic(self) -> None:
        new_repo_path = os.path.join(self.test_dir, "new_repo")
        os.mkdir(new_repo_path)
        result, stdout, _stderr = self._run_cli("init", new_repo_path)
        self.assertEqual(0, result)
        self.assertEqual("Initialized git directory\n", stdout)
        self.assertTrue(os.path.isdir(os.path.join(new_repo_path, ".git", "objects")))

    def test_init_existing(self) -> None:
        with self.assertLogs("gitcas.cli", level="ERROR"):
            result, _stdout, _stderr = self._run_cli("init", self.repo_path)
        self.assertEqual(1, result)


class HashObjectCommandTest(GitcasCliTestCase):
    """Tests for hash-object command."""

    def test_hash_file(self) -> None:
        self.write_file("doc.txt", testobject)
        result, stdout, _stderr = self._run_cli("hash-object", "doc.txt")
        self.assertEqual(0, result)
        self.assertEqual(testobject_id + "\n", stdout)
        self.assertNotIn(testobject_id.encode(), self.repo.object_store)

    def test_hash_and_write(self) -> None:
        self.write_file("doc.txt", testobject)
        result, stdout, _stderr = self._run_cli("hash-object", "-w", "doc.txt")
        self.assertEqual(0, result)
        self.assertEqual(testobject_id + "\n", stdout)
        self.assertEqual(
            (ObjectKind.BLOB, testobject), self.repo.object_store.get_raw(testobject_id)
        )

    def test_stdin(self) -> None:
        result, stdout, _stderr = self._run_cli("hash-object", "--stdin", stdin=testobject)
        self.assertEqual(0, result)
        self.assertEqual(testobject_id + "\n", stdout)

    def test_stdin_write(self) -> None:
        result, stdout, _stderr = self._run_cli(
            "hash-object", "-w", "--stdin", stdin=b""
        )
        self.assertEqual(0, result)
        self.assertEqual("e69de29bb2d1d6434b8b29ae775ad8c2e48c5391\n", stdout)
        self.assertIn(b"e69de29bb2d1d6434b8b29ae775ad8c2e48c5391", self.repo.object_store)

    def test_kind(self) -> None:
        self.write_file("t", b"")
        result, stdout, _stderr = self._run_cli("hash-object", "-t", "tree", "t")
        self.assertEqual(0, result)
        self.assertEqual("4b825dc642cb6eb9a060e54bf8d69288fbee4904\n", stdout)

    def test_missing_file(self) -> None:
        with self.assertLogs("gitcas.cli", level="ERROR"):
            result, _stdout, _stderr = self._run_cli("hash-object", "nonexistent")
        self.assertEqual(1, result)

    def test_file_and_stdin(self) -> None:
        self.assertRaises(
            SystemExit, self._run_cli, "hash-object", "--stdin", "doc.txt"
        )
        self.assertRaises(SystemExit, self._run_cli, "hash-object")


class CatFileCommandTest(GitcasCliTestCase):
    """Tests for cat-file command."""

    def setUp(self) -> None:
        super().setUp()
        self.blob = self.repo.object_store.add_bytes(ObjectKind.BLOB, testobject)

    def test_pretty_blob(self) -> None:
        result, stdout, _stderr = self._run_cli("cat-file", "-p", testobject_id)
        self.assertEqual(0, result)
        self.assertEqual(testobject.decode(), stdout)

    def test_pretty_binary_blob(self) -> None:
        data = bytes(range(256))
        sha = self.repo.object_store.add_bytes(ObjectKind.BLOB, data)
        result, stdout, _stderr = self._run_cli("cat-file", "-p", sha.decode())
        self.assertEqual(0, result)
        self.assertEqual(data, stdout)

    def test_pretty_tree(self) -> None:
        data = b"".join(serialize_tree([TreeEntry(b"doc.txt", FileMode.REGULAR, self.blob)]))
        tree = self.repo.object_store.add_bytes(ObjectKind.TREE, data)
        result, stdout, _stderr = self._run_cli("cat-file", "-p", tree.decode())
        self.assertEqual(0, result)
        self.assertEqual(f"100644 blob {testobject_id}\tdoc.txt\n", stdout)

    def test_kind(self) -> None:
        result, stdout, _stderr = self._run_cli("cat-file", "-t", testobject_id)
        self.assertEqual(0, result)
        self.assertEqual("blob\n", stdout)

    def test_size(self) -> None:
        result, stdout, _stderr = self._run_cli("cat-file", "-s", testobject_id)
        self.assertEqual(0, result)
        self.assertEqual("17\n", stdout)

    def test_uppercase_id(self) -> None:
        result, stdout, _stderr = self._run_cli("cat-file", "-t", testobject_id.upper())
        self.assertEqual(0, result)
        self.assertEqual("blob\n", stdout)

    def test_exists(self) -> None:
        result, stdout, _stderr = self._run_cli("cat-file", "-e", testobject_id)
        self.assertEqual((0, ""), (result, stdout))
        missing = hash_object(ObjectKind.BLOB, b"missing").decode()
        result, stdout, _stderr = self._run_cli("cat-file", "-e", missing)
        self.assertEqual((1, ""), (result, stdout))
        result, stdout, _stderr = self._run_cli("cat-file", "-e", "nonsense")
        self.assertEqual((1, ""), (result, stdout))

    def test_missing(self) -> None:
        missing = hash_object(ObjectKind.BLOB, b"missing").decode()
        with self.assertLogs("gitcas.cli", level="ERROR") as cm:
            result, _stdout, _stderr = self._run_cli("cat-file", "-p", missing)
        self.assertEqual(cli.EXIT_BAD_OBJECT, result)
        self.assertIn(f"Not a valid object name {missing}", cm.output[0])

    def test_invalid_id(self) -> None:
        with self.assertLogs("gitcas.cli", level="ERROR") as cm:
            result, _stdout, _stderr = self._run_cli("cat-file", "-t", "deadbeef")
        self.assertEqual(cli.EXIT_BAD_OBJECT, result)
        self.assertIn("Not a valid object name deadbeef", cm.output[0])

    def test_corrupt(self) -> None:
        sha = hash_object(ObjectKind.BLOB, b"corrupt")
        path = os.path.join(self.repo.object_store.path, sha[:2].decode(), sha[2:].decode())
        os.mkdir(os.path.dirname(path))
        with open(path, "wb") as f:
            f.write(zlib.compress(b"blob 100\0corrupt"))
        with self.assertLogs("gitcas.cli", level="ERROR"):
            result, _stdout, _stderr = self._run_cli("cat-file", "-p", sha.decode())
        self.assertEqual(cli.EXIT_BAD_OBJECT, result)

    def test_requires_one_mode(self) -> None:
        self.assertRaises(SystemExit, self._run_cli, "cat-file", testobject_id)
        self.assertRaises(
            SystemExit, self._run_cli, "cat-file", "-p", "-t", testobject_id
        )


class WriteTreeCommandTest(GitcasCliTestCase):
    """Tests for write-tree and ls-tree commands."""

    def setUp(self) -> None:
        super().setUp()
        self.write_file("doc.txt", testobject)
        self.write_file("sub/inner.txt", b"inner\n")

    def test_write_tree(self) -> None:
        result, stdout, _stderr = self._run_cli("write-tree")
        self.assertEqual(0, result)
        tree = stdout.strip().encode()
        self.assertEqual(tree, self.repo.write_tree())
        kind, _data = self.repo.object_store.get_raw(tree)
        self.assertIs(ObjectKind.TREE, kind)

    def test_write_tree_path(self) -> None:
        result, stdout, _stderr = self._run_cli(
            "write-tree", os.path.join(self.repo_path, "sub")
        )
        self.assertEqual(0, result)
        blob = hash_object(ObjectKind.BLOB, b"inner\n")
        self.assertEqual(
            [TreeEntry(b"inner.txt", FileMode.REGULAR, blob)],
            read_tree(self.repo.object_store, stdout.strip()),
        )

    def test_write_tree_not_a_directory(self) -> None:
        with self.assertLogs("gitcas.cli", level="ERROR"):
            result, _stdout, _stderr = self._run_cli("write-tree", "doc.txt")
        self.assertEqual(1, result)

    def test_ls_tree(self) -> None:
        tree = self.repo.write_tree().decode()
        sub = self.repo.object_store.get_raw(tree)
        self.assertIs(ObjectKind.TREE, sub[0])
        result, stdout, _stderr = self._run_cli("ls-tree", tree)
        self.assertEqual(0, result)
        lines = stdout.splitlines()
        self.assertEqual(2, len(lines))
        self.assertEqual(f"100644 blob {testobject_id}\tdoc.txt", lines[0])
        self.assertTrue(lines[1].startswith("040000 tree "))
        self.assertTrue(lines[1].endswith("\tsub"))

    def test_ls_tree_recursive_name_only(self) -> None:
        tree = self.repo.write_tree().decode()
        result, stdout, _stderr = self._run_cli("ls-tree", "-r", "--name-only", tree)
        self.assertEqual(0, result)
        self.assertEqual("doc.txt\nsub/inner.txt\n", stdout)

    def test_ls_tree_not_a_tree(self) -> None:
        self.repo.object_store.add_bytes(ObjectKind.BLOB, testobject)
        with self.assertLogs("gitcas.cli", level="ERROR"):
            result, _stdout, _stderr = self._run_cli("ls-tree", testobject_id)
        self.assertEqual(cli.EXIT_BAD_OBJECT, result)

    def test_ls_tree_missing(self) -> None:
        with self.assertLogs("gitcas.cli", level="ERROR"):
            result, _stdout, _stderr = self._run_cli("ls-tree", testobject_id)
        self.assertEqual(cli.EXIT_BAD_OBJECT, result)


class BadConfigTest(GitcasCliTestCase):
    """Malformed repository configuration is reported, not raised."""

    def write_config(self, content: bytes) -> None:
        with open(os.path.join(self.repo_path, ".git", "config"), "wb") as f:
            f.write(content)

    def test_bad_section_header(self) -> None:
        self.write_config(b"[core\n")
        with self.assertLogs("gitcas.cli", level="ERROR") as cm:
            result, _stdout, _stderr = self._run_cli("cat-file", "-e", testobject_id)
        self.assertEqual(1, result)
        self.assertIn("bad config", cm.output[0])

    def test_compression_not_an_integer(self) -> None:
        self.write_config(b"[core]\n\tcompression = high\n")
        with self.assertLogs("gitcas.cli", level="ERROR"):
            result, _stdout, _stderr = self._run_cli("write-tree")
        self.assertEqual(1, result)

    def test_compression_out_of_range(self) -> None:
        self.write_file("f", testobject)
        self.write_config(b"[core]\n\tcompression = 12\n")
        with self.assertLogs("gitcas.cli", level="ERROR"):
            result, stdout, _stderr = self._run_cli("hash-object", "-w", "f")
        self.assertEqual(1, result)
        self.assertEqual("", stdout)
