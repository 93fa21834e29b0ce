#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Git Auth Helper - Configures and retracts a repository-local HTTP
authorization header.

The header is first written through `git config` with a placeholder value,
then the placeholder is replaced with the real credential by editing the
config file directly. The credential therefore never appears in a git
argument list, a process listing or the command trace log.
"""

import os
from contextlib import contextmanager
from typing import Iterator

from shared.logger import setup_logger
from shared.models.task import GitInfo
from git_worker.errors import AuthPlaceholderNotFoundError, GitAuthError
from git_worker.git.command import GitCommandHelper
from git_worker.git.providers import get_provider

logger = setup_logger("git_auth")

TOKEN_PLACEHOLDER_CONFIG_VALUE = "AUTHORIZATION: basic ***"


class GitAuthHelper:
    """Auth session for one repository and one git identity."""

    def __init__(self, git: GitCommandHelper, git_info: GitInfo):
        """
        Args:
            git: Command helper bound to the repository
            git_info: Identity whose token is injected
        """
        self.git = git
        self.git_info = git_info

        provider = get_provider(git_info.service_type)
        basic_credential = provider.get_basic_credential(
            git_info.token.get_secret_value(), git_info.username
        )
        self.token_config_key = f"http.{provider.get_server_origin()}/.extraheader"
        self._token_config_value = f"AUTHORIZATION: basic {basic_credential}"

    def _config_path(self) -> str:
        return os.path.join(self.git.get_working_directory(), ".git", "config")

    def configure_auth(self) -> None:
        """
        Write the authorization header into the repository config.

        Raises:
            GitAuthError: If another identity's session is active on the repository
            AuthPlaceholderNotFoundError: If the placeholder is missing after writing it
        """
        self._ensure_not_held_by_other()
        self.remove_auth()
        self.git.active_auth = self
        self._configure_token()

    def remove_auth(self) -> None:
        """Unset the authorization header if present. Safe to call repeatedly."""
        logger.debug(f"Remove Git config {self.token_config_key}")
        if self.git.config_exists(self.token_config_key):
            self.git.config_unset(self.token_config_key)
        if self.git.active_auth is self:
            self.git.active_auth = None

    @contextmanager
    def session(self) -> Iterator["GitAuthHelper"]:
        """Configure auth for the duration of the block and always remove it afterwards."""
        self._ensure_not_held_by_other()
        try:
            self.configure_auth()
            yield self
        finally:
            self.remove_auth()

    def _ensure_not_held_by_other(self) -> None:
        active = self.git.active_auth
        if active is not None and active is not self:
            raise GitAuthError(
                f"Repository {self.git.get_working_directory()} already has an active auth session"
            )

    def _configure_token(self) -> None:
        self.git.config(self.token_config_key, TOKEN_PLACEHOLDER_CONFIG_VALUE)
        self._replace_token_placeholder(self._config_path())

    def _replace_token_placeholder(self, config_path: str) -> None:
        logger.debug(f"Add auth token header to Git config {config_path}")
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()

        if TOKEN_PLACEHOLDER_CONFIG_VALUE not in content:
            raise AuthPlaceholderNotFoundError(f"Unable to find auth placeholder in {config_path}")

        content = content.replace(TOKEN_PLACEHOLDER_CONFIG_VALUE, self._token_config_value, 1)
        os.chmod(config_path, 0o600)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(content)
