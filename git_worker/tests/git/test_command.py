#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Tests for GitCommandHelper.
"""

import os
import subprocess
import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from git_worker.errors import (
    GitCommandError,
    GitCommandTimeoutError,
    GitVersionError,
    TaskCancelledError,
)
from git_worker.git.command import CommitAuthor, GitCommandHelper, parse_version
from git_worker.tests.utils import requires_git, run_git, write_files

AUTHOR = CommitAuthor("Meta Network", "noreply@meta.io")


class TestParseVersion:
    """Test cases for parse_version."""

    def test_parse_plain(self):
        assert parse_version("git version 2.39.2") == (2, 39, 2)

    def test_parse_vendor_suffix(self):
        assert parse_version("git version 2.37.1 (Apple Git-137.1)") == (2, 37, 1)

    def test_parse_two_components(self):
        assert parse_version("git version 2.30") == (2, 30, 0)

    def test_parse_no_version(self):
        assert parse_version("command not found") is None


class TestGitCommandHelperMocked:
    """Test cases that stub out the git subprocess."""

    @patch("subprocess.run")
    def test_create_rejects_old_git(self, mock_run, temp_dir):
        mock_run.return_value = MagicMock(returncode=0, stdout="git version 2.27.0\n", stderr="")

        with pytest.raises(GitVersionError):
            GitCommandHelper.create(temp_dir)

    @patch("subprocess.run")
    def test_create_accepts_minimum_git(self, mock_run, temp_dir):
        mock_run.return_value = MagicMock(returncode=0, stdout="git version 2.28.0\n", stderr="")

        git = GitCommandHelper.create(temp_dir)

        assert git.version == (2, 28, 0)
        assert git.git_env["GIT_HTTP_USER_AGENT"].startswith("git/2.28.0 (")

    @patch("subprocess.run")
    def test_create_unparseable_version(self, mock_run, temp_dir):
        mock_run.return_value = MagicMock(returncode=0, stdout="garbage", stderr="")

        with pytest.raises(GitVersionError):
            GitCommandHelper.create(temp_dir)

    @patch("subprocess.run")
    def test_execute_uses_argv_and_non_interactive_env(self, mock_run, temp_dir):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        git = GitCommandHelper(temp_dir)

        with patch.dict(os.environ, {"KEEP_ME": "1"}):
            git.execute(["status"])

        call_args, call_kwargs = mock_run.call_args
        assert call_args[0] == ["git", "status"]
        assert call_kwargs["cwd"] == temp_dir
        assert "shell" not in call_kwargs
        env = call_kwargs["env"]
        assert env["GIT_TERMINAL_PROMPT"] == "0"
        assert env["GCM_INTERACTIVE"] == "Never"
        assert env["KEEP_ME"] == "1"

    @patch("subprocess.run")
    def test_execute_raises_on_failure(self, mock_run, temp_dir):
        mock_run.return_value = MagicMock(returncode=128, stdout="", stderr="fatal: bad thing")
        git = GitCommandHelper(temp_dir)

        with pytest.raises(GitCommandError) as exc_info:
            git.execute(["status"])

        assert exc_info.value.exit_code == 128
        assert exc_info.value.stderr == "fatal: bad thing"
        assert "fatal: bad thing" in str(exc_info.value)

    @patch("subprocess.run")
    def test_execute_allow_failure(self, mock_run, temp_dir):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="")
        git = GitCommandHelper(temp_dir)

        result = git.execute(["config", "--get", "missing.key"], allow_failure=True)

        assert result.exit_code == 1

    @patch("subprocess.run")
    def test_execute_timeout(self, mock_run, temp_dir):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git push", timeout=5)
        git = GitCommandHelper(temp_dir, timeout=5)

        with pytest.raises(GitCommandTimeoutError):
            git.execute(["push"])

    @patch("subprocess.run")
    def test_execute_clips_timeout_to_deadline(self, mock_run, temp_dir):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        git = GitCommandHelper(temp_dir, timeout=600, deadline=time.monotonic() + 30)

        git.execute(["status"])

        assert mock_run.call_args[1]["timeout"] <= 30

    @patch("subprocess.run")
    def test_execute_after_deadline(self, mock_run, temp_dir):
        git = GitCommandHelper(temp_dir, deadline=time.monotonic() - 1)

        with pytest.raises(GitCommandTimeoutError):
            git.execute(["status"])
        mock_run.assert_not_called()

    @patch("subprocess.run")
    def test_execute_cancelled(self, mock_run, temp_dir):
        event = threading.Event()
        event.set()
        git = GitCommandHelper(temp_dir, cancel_event=event)

        with pytest.raises(TaskCancelledError):
            git.execute(["status"])
        mock_run.assert_not_called()

    @patch("subprocess.run")
    def test_push_refspec_and_force(self, mock_run, temp_dir):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        git = GitCommandHelper(temp_dir)

        git.push("origin", "gh-pages", force=True)

        assert mock_run.call_args[0][0] == [
            "git", "push", "--force", "origin", "refs/heads/gh-pages:refs/heads/gh-pages"
        ]

    @patch("subprocess.run")
    def test_fetch_unshallows_shallow_repo(self, mock_run, temp_dir):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        os.makedirs(os.path.join(temp_dir, ".git"))
        with open(os.path.join(temp_dir, ".git", "shallow"), "w") as f:
            f.write("abc\n")
        git = GitCommandHelper(temp_dir)

        git.fetch(["+refs/heads/main:refs/remotes/origin/main"])

        args = mock_run.call_args[0][0]
        assert "--unshallow" in args
        assert args[-2:] == ["origin", "+refs/heads/main:refs/remotes/origin/main"]

    @patch("subprocess.run")
    def test_fetch_with_depth(self, mock_run, temp_dir):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        git = GitCommandHelper(temp_dir)

        git.fetch(["refs/heads/main"], depth=1)

        args = mock_run.call_args[0][0]
        assert "--depth=1" in args
        assert "--unshallow" not in args


@requires_git
class TestGitCommandHelper:
    """Test cases running the real git binary."""

    @pytest.fixture
    def git(self, temp_dir):
        return GitCommandHelper.create(temp_dir)

    def test_get_working_directory(self, git, temp_dir):
        assert git.get_working_directory() == temp_dir

    def test_init_creates_git_dir(self, git, temp_dir):
        git.init()

        assert os.path.isdir(os.path.join(temp_dir, ".git"))
        assert git.is_repository() is True

    def test_init_with_branch_name(self, git):
        git.init("feat/expected")

        assert git.branch_current() == "feat/expected"

    def test_add_pattern(self, git, temp_dir):
        git.init()
        write_files(temp_dir, {"file1.js": "", "file2.js": "", "file3.js": "", "file4.ts": ""})

        result = git.add("file*.js")

        assert result == ["add 'file1.js'", "add 'file2.js'", "add 'file3.js'"]

    def test_add_all(self, git, temp_dir):
        git.init()
        write_files(temp_dir, {"file1.js": "", "file2.js": "", "file3.js": "", "file4.ts": ""})

        result = git.add_all()

        assert result == ["add 'file1.js'", "add 'file2.js'", "add 'file3.js'", "add 'file4.ts'"]

    def test_commit_contains_all_files(self, git, temp_dir):
        git.init("main")
        files = {f"dir/file{i}.md": f"# {i}" for i in range(5)}
        write_files(temp_dir, files)

        git.add_all()
        git.commit("Initial commit", author=AUTHOR)

        tree = git.execute(["ls-tree", "-r", "--name-only", "HEAD"]).stdout.split()
        assert sorted(tree) == sorted(files)
        assert git.branch_current() == "main"
        author = git.execute(["log", "-1", "--format=%an <%ae>"]).stdout.strip()
        assert author == "Meta Network <noreply@meta.io>"

    def test_commit_allow_empty(self, git):
        git.init("main")

        git.commit("Empty", author=AUTHOR, allow_empty=True)

        count = git.execute(["rev-list", "--count", "HEAD"]).stdout.strip()
        assert count == "1"

    def test_commit_nothing_fails(self, git):
        git.init("main")

        with pytest.raises(GitCommandError):
            git.commit("Nothing", author=AUTHOR)

    def test_branch_list_and_checkout(self, git, temp_dir):
        git.init("main")
        write_files(temp_dir, {"a.txt": "a"})
        git.add_all()
        git.commit("first", author=AUTHOR)

        git.checkout("feature", is_new=True)

        assert git.branch_current() == "feature"
        assert git.branch_list() == ["feature", "main"]

        git.checkout("main")
        assert git.branch_current() == "main"

    def test_branch_list_empty_repo(self, git):
        git.init("main")

        assert git.branch_list() == []

    def test_config_lifecycle(self, git):
        git.init()
        key = "http.https://github.com/.extraheader"

        assert git.config_exists(key) is False
        git.config(key, "value")
        assert git.config_exists(key) is True
        assert git.config_get(key) == "value"
        assert git.config_unset(key) is True
        assert git.config_exists(key) is False
        assert git.config_get(key) is None

    def test_remote_add_show_remove(self, git):
        git.init()

        git.remote_add("origin", "https://github.com/octocat/Spoon-Knife.git")
        assert git.remote_show() == ["origin"]
        assert git.remote_get_url("origin") == "https://github.com/octocat/Spoon-Knife.git"

        git.remote_remove("origin")
        assert git.remote_show() == []
        assert git.remote_get_url("origin") is None

    def test_clone_local_repository(self, temp_dir):
        source = os.path.join(temp_dir, "source")
        target = os.path.join(temp_dir, "target")
        os.makedirs(target)
        run_git(["init", "--initial-branch=main", source])
        write_files(source, {"README.md": "hello"})
        run_git(["add", "--all"], cwd=source)
        run_git(["commit", "--message=seed"], cwd=source)

        git = GitCommandHelper.create(target)
        git.clone(source, branch="main")

        assert os.path.exists(os.path.join(target, "README.md"))
        assert git.branch_current() == "main"
