#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Error types raised by the git worker.

None of these are retried or downgraded inside the worker; the task runner
reports them upstream and the task ends.
"""

import subprocess
from typing import Sequence


class WorkerError(Exception):
    """Base class for every failure raised by the worker."""


class ConfigurationError(WorkerError):
    """Unsupported provider, disallowed method or missing payload field."""


class GitVersionError(WorkerError):
    """Installed git is older than the supported minimum."""


class GitCommandError(WorkerError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, args: Sequence[str], exit_code: int, stdout: str = "", stderr: str = ""):
        self.git_args = list(args)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        command = subprocess.list2cmdline(["git", *self.git_args])
        detail = (stderr or stdout or "").strip()
        message = f"Git command failed ({exit_code}): {command}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


class GitCommandTimeoutError(WorkerError):
    """A git subprocess ran past its deadline and was killed."""


class TaskCancelledError(WorkerError):
    """The task runner asked the worker to stop."""


class GitAuthError(WorkerError):
    """Authorization header could not be configured safely."""


class AuthPlaceholderNotFoundError(GitAuthError):
    """The placeholder header was missing from the repository config after writing it."""


class AssemblyError(WorkerError):
    """Template or theme content could not be merged into the repository."""


class ArchiveError(AssemblyError):
    """A repository archive could not be downloaded or extracted."""
