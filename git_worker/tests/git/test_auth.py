#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Tests for GitAuthHelper.
"""

import base64
import os
import stat
import subprocess
from unittest.mock import patch

import pytest

from shared.models.task import GitInfo
from git_worker.errors import AuthPlaceholderNotFoundError, GitAuthError
from git_worker.git.auth import TOKEN_PLACEHOLDER_CONFIG_VALUE, GitAuthHelper
from git_worker.git.command import GitCommandHelper
from git_worker.tests.utils import requires_git

GITHUB_KEY = "http.https://github.com/.extraheader"


def make_git_info(service_type="GITHUB", token="gho_supersecret", username="alice"):
    return GitInfo(
        service_type=service_type,
        token=token,
        username=username,
        repo_name="my-site",
        branch_name="main",
    )


class TestGitAuthHelperKeys:
    """Test cases for the computed config key and value."""

    def test_github_key(self):
        helper = GitAuthHelper(GitCommandHelper("/nonexistent"), make_git_info())

        assert helper.token_config_key == GITHUB_KEY

    def test_gitee_key(self):
        helper = GitAuthHelper(GitCommandHelper("/nonexistent"), make_git_info(service_type="GITEE"))

        assert helper.token_config_key == "http.https://gitee.com/.extraheader"

    def test_repr_does_not_leak_token(self):
        info = make_git_info()

        assert "gho_supersecret" not in repr(info)


@requires_git
class TestGitAuthHelper:
    """Test cases running against a real repository config."""

    @pytest.fixture
    def git(self, temp_dir):
        helper = GitCommandHelper.create(temp_dir)
        helper.init("main")
        return helper

    def _config_content(self, git):
        with open(os.path.join(git.get_working_directory(), ".git", "config"), encoding="utf-8") as f:
            return f.read()

    def test_configure_writes_real_value(self, git):
        helper = GitAuthHelper(git, make_git_info())

        helper.configure_auth()

        expected = base64.b64encode(b"x-access-token:gho_supersecret").decode("ascii")
        assert git.config_get(GITHUB_KEY) == f"AUTHORIZATION: basic {expected}"
        assert TOKEN_PLACEHOLDER_CONFIG_VALUE not in self._config_content(git)
        assert git.active_auth is helper

    def test_configure_restricts_config_permissions(self, git):
        GitAuthHelper(git, make_git_info()).configure_auth()

        config_path = os.path.join(git.get_working_directory(), ".git", "config")
        assert stat.S_IMODE(os.stat(config_path).st_mode) == 0o600

    def test_configure_twice_keeps_single_value(self, git):
        helper = GitAuthHelper(git, make_git_info())

        helper.configure_auth()
        helper.configure_auth()

        values = git.execute(["config", "--local", "--get-all", GITHUB_KEY]).stdout.strip().splitlines()
        assert len(values) == 1

    def test_remove_auth(self, git):
        helper = GitAuthHelper(git, make_git_info())
        helper.configure_auth()

        helper.remove_auth()

        assert git.config_exists(GITHUB_KEY) is False
        assert git.active_auth is None
        assert "AUTHORIZATION" not in self._config_content(git)

    def test_remove_auth_when_absent_is_noop(self, git):
        helper = GitAuthHelper(git, make_git_info())

        with patch.object(git, "config_unset", wraps=git.config_unset) as unset:
            helper.remove_auth()
            helper.remove_auth()

        unset.assert_not_called()
        assert git.config_exists(GITHUB_KEY) is False

    def test_session_removes_auth_on_error(self, git):
        helper = GitAuthHelper(git, make_git_info())

        with pytest.raises(RuntimeError):
            with helper.session():
                assert git.config_exists(GITHUB_KEY) is True
                raise RuntimeError("push failed")

        assert git.config_exists(GITHUB_KEY) is False
        assert git.active_auth is None

    def test_secret_never_in_argv(self, git):
        real_run = subprocess.run
        helper = GitAuthHelper(git, make_git_info())
        secret = base64.b64encode(b"x-access-token:gho_supersecret").decode("ascii")

        with patch("subprocess.run", side_effect=real_run) as spy:
            with helper.session():
                pass

        assert spy.call_count > 0
        for call in spy.call_args_list:
            argv = " ".join(call[0][0])
            assert secret not in argv
            assert "gho_supersecret" not in argv

    def test_placeholder_missing_is_fatal(self, git):
        helper = GitAuthHelper(git, make_git_info())

        with patch.object(git, "config"):
            with pytest.raises(AuthPlaceholderNotFoundError):
                helper.configure_auth()

    def test_second_identity_rejected_while_active(self, git):
        storage = GitAuthHelper(git, make_git_info())
        publisher = GitAuthHelper(git, make_git_info(token="gho_other"))

        with storage.session():
            with pytest.raises(GitAuthError):
                publisher.configure_auth()
            with pytest.raises(GitAuthError):
                with publisher.session():
                    pass
            # The rejected session must not have removed the active header
            assert git.config_exists(GITHUB_KEY) is True

        with publisher.session():
            assert git.active_auth is publisher
