#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Git hosting providers.

Each provider knows how to build canonical fetch URLs, basic-auth
credentials and archive download locations for its host. Providers are
stateless and do no I/O; callers look one up by GitServiceType.
"""

import base64
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple
from urllib.parse import quote, urlparse

from git_worker.config import config
from git_worker.errors import ConfigurationError
from shared.models.task import GitServiceType


class GitProvider(ABC):
    """Capabilities shared by every hosting provider."""

    service_type: GitServiceType
    server_url: str

    @property
    def host(self) -> str:
        return urlparse(self.server_url).hostname or ""

    def get_server_origin(self) -> str:
        parsed = urlparse(self.server_url)
        return f"{parsed.scheme}://{parsed.netloc}"

    def get_fetch_url(self, owner: str, repo: str) -> str:
        """
        Build the HTTPS clone/push URL of a repository.

        Examples:
            ("octocat", "Spoon-Knife") -> https://github.com/octocat/Spoon-Knife.git
        """
        return f"{self.get_server_origin()}/{quote(owner, safe='')}/{quote(repo, safe='')}.git"

    def parse_repo_url(self, url: str) -> Tuple[str, str]:
        """
        Extract owner and repository name from a repository URL.

        Args:
            url: e.g. https://github.com/owner/repo.git or https://github.com/owner/repo

        Returns:
            Tuple of (owner, repo)

        Raises:
            ConfigurationError: If the URL is not an owner/repo URL on this host
        """
        parsed = urlparse(url.strip())
        if (parsed.hostname or "").lower() != self.host:
            raise ConfigurationError(f"URL {url} does not belong to {self.host}")
        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) < 2:
            raise ConfigurationError(f"Unable to find owner and repository in {url}")
        owner, repo = parts[0], parts[1]
        if repo.endswith(".git"):
            repo = repo[:-4]
        return owner, repo

    @abstractmethod
    def get_basic_credential(self, token: str, owner: Optional[str] = None) -> str:
        """Base64 "<principal>:<token>" value for an HTTP basic authorization header."""

    @abstractmethod
    def get_archive_url(self, owner: str, repo: str, ref: Optional[str] = None) -> str:
        """URL of a zip archive of the repository at ref."""

    @abstractmethod
    def get_archive_find_str(self, owner: str, repo: str) -> str:
        """Best-effort prefix of the directory the archive wraps its content in."""


def _encode_basic(principal: str, token: str) -> str:
    return base64.b64encode(f"{principal}:{token}".encode("utf-8")).decode("ascii")


class GitHubProvider(GitProvider):
    service_type = GitServiceType.GITHUB
    server_url = "https://github.com"

    def get_basic_credential(self, token: str, owner: Optional[str] = None) -> str:
        return _encode_basic("x-access-token", token)

    def get_archive_url(self, owner: str, repo: str, ref: Optional[str] = None) -> str:
        url = f"{config.GITHUB_API_URL.rstrip('/')}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/zipball"
        if ref:
            url = f"{url}/{quote(ref, safe='')}"
        return url

    def get_archive_find_str(self, owner: str, repo: str) -> str:
        # GitHub names the wrapper <owner>-<repo>-<short sha>
        return f"{owner}-{repo}"


class GiteeProvider(GitProvider):
    service_type = GitServiceType.GITEE
    server_url = "https://gitee.com"

    def get_basic_credential(self, token: str, owner: Optional[str] = None) -> str:
        if not owner:
            raise ConfigurationError("Gitee basic credential requires the owner name")
        return _encode_basic(owner, token)

    def get_archive_url(self, owner: str, repo: str, ref: Optional[str] = None) -> str:
        return (
            f"{self.get_server_origin()}/{quote(owner, safe='')}/{quote(repo, safe='')}"
            f"/repository/archive/{quote(ref or 'master', safe='')}.zip"
        )

    def get_archive_find_str(self, owner: str, repo: str) -> str:
        return repo


_PROVIDERS: Dict[GitServiceType, GitProvider] = {
    GitServiceType.GITHUB: GitHubProvider(),
    GitServiceType.GITEE: GiteeProvider(),
}


def get_provider(service_type: GitServiceType) -> GitProvider:
    """
    Look up the provider for a service type.

    Raises:
        ConfigurationError: If the service type is not supported
    """
    provider = _PROVIDERS.get(service_type)
    if provider is None:
        raise ConfigurationError(f"Unsupported git service type: {service_type}")
    return provider


def get_provider_for_url(url: str) -> GitProvider:
    """
    Pick the provider whose host serves the given repository URL.

    Raises:
        ConfigurationError: If no provider serves the host
    """
    hostname = (urlparse(url.strip()).hostname or "").lower()
    for provider in _PROVIDERS.values():
        if provider.host == hostname:
            return provider
    raise ConfigurationError(f"Unsupported git host in URL: {url}")
