#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Git layer of the worker.

- Command helper driving the git binary
- Hosting provider URL and credential rules
- Repository-local authorization header lifecycle
- Repository archive download and extraction
"""

from git_worker.git.command import CommitAuthor, GitCommandHelper, GitCommandResult
from git_worker.git.providers import GitProvider, get_provider, get_provider_for_url
from git_worker.git.auth import GitAuthHelper
from git_worker.git.archive import RepositoryArchiveFetcher

__all__ = [
    "CommitAuthor",
    "GitCommandHelper",
    "GitCommandResult",
    "GitProvider",
    "get_provider",
    "get_provider_for_url",
    "GitAuthHelper",
    "RepositoryArchiveFetcher",
]
