#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Git Command Helper - Runs git subcommands in one working directory.

The helper invokes the git binary directly with an argument list, never
through a shell, and with a baseline environment that disables every
interactive credential prompt. Secrets must never be passed as arguments;
see git_worker.git.auth for how authorization is injected.
"""

import os
import re
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from shared.logger import setup_logger
from git_worker.config import config
from git_worker.errors import (
    GitCommandError,
    GitCommandTimeoutError,
    GitVersionError,
    TaskCancelledError,
)

logger = setup_logger("git_command")

_VERSION_PATTERN = re.compile(r"\d+\.\d+(\.\d+)?")


@dataclass
class GitCommandResult:
    """Captured output of one git invocation."""
    stdout: str
    stderr: str
    exit_code: int


@dataclass
class CommitAuthor:
    name: str
    email: str


def parse_version(text: str) -> Optional[Tuple[int, int, int]]:
    """
    Extract a semantic version from free-form output.

    Args:
        text: Output such as "git version 2.39.2 (Apple Git-143)"

    Returns:
        (major, minor, patch) or None when no version is present
    """
    match = _VERSION_PATTERN.search(text or "")
    if not match:
        return None
    parts = [int(p) for p in match.group(0).split(".")]
    while len(parts) < 3:
        parts.append(0)
    return parts[0], parts[1], parts[2]


class GitCommandHelper:
    """
    Executes git subcommands bound to a single working directory.

    Use GitCommandHelper.create() rather than the constructor: it verifies the
    installed git version before the helper is handed out.
    """

    def __init__(
        self,
        working_directory: str,
        timeout: int = config.GIT_COMMAND_TIMEOUT,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            working_directory: Absolute path every command runs in
            timeout: Per-command timeout in seconds
            deadline: Optional time.monotonic() value no command may run past
            cancel_event: Optional event set by the task runner to stop work
        """
        self.working_directory = working_directory
        self.timeout = timeout
        self.deadline = deadline
        self.cancel_event = cancel_event
        self.version: Optional[Tuple[int, int, int]] = None
        self.git_env: Dict[str, str] = {
            "GIT_TERMINAL_PROMPT": "0",
            "GCM_INTERACTIVE": "Never",
        }
        # Identity of the auth session currently written to this repository's config
        self.active_auth: Optional[object] = None

    @classmethod
    def create(
        cls,
        working_directory: str,
        timeout: int = config.GIT_COMMAND_TIMEOUT,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        minimum_version: str = config.MINIMUM_GIT_VERSION,
    ) -> "GitCommandHelper":
        """
        Create a helper and verify the git version.

        Raises:
            GitVersionError: If git is older than minimum_version
        """
        helper = cls(working_directory, timeout=timeout, deadline=deadline, cancel_event=cancel_event)
        helper._initialize(minimum_version)
        return helper

    def _initialize(self, minimum_version: str) -> None:
        logger.debug(f"Git working directory is {self.working_directory}")
        result = self.execute(["--version"])
        version = parse_version(result.stdout.strip())
        if version is None:
            raise GitVersionError(f"Unable to parse git version from: {result.stdout.strip()}")

        version_str = ".".join(str(v) for v in version)
        logger.debug(f"Git version: {version_str}")
        if version < parse_version(minimum_version):
            raise GitVersionError(
                f"Minimum Git version is {minimum_version}, current is {version_str}"
            )

        self.version = version
        user_agent = f"git/{version_str} ({config.GIT_USER_AGENT_SUFFIX})"
        logger.debug(f"Set git user agent to: {user_agent}")
        self.git_env["GIT_HTTP_USER_AGENT"] = user_agent

    def _remaining_timeout(self) -> float:
        timeout = float(self.timeout)
        if self.deadline is not None:
            remaining = self.deadline - time.monotonic()
            if remaining <= 0:
                raise GitCommandTimeoutError("Task deadline exceeded before running git command")
            timeout = min(timeout, remaining)
        return timeout

    def execute(self, args: Sequence[str], allow_failure: bool = False) -> GitCommandResult:
        """
        Run a git subcommand.

        Args:
            args: Arguments after "git"
            allow_failure: Return the result instead of raising on non-zero exit

        Returns:
            GitCommandResult with captured output

        Raises:
            GitCommandError: On non-zero exit when allow_failure is False
            GitCommandTimeoutError: If the command outlives its timeout
            TaskCancelledError: If the cancel event is set
        """
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise TaskCancelledError("Task cancelled before running git command")

        args = list(args)
        env = dict(os.environ)
        env.update(self.git_env)
        timeout = self._remaining_timeout()

        logger.debug(f"Exec git command: git {' '.join(args)}")
        try:
            completed = subprocess.run(
                ["git", *args],
                cwd=self.working_directory,
                env=env,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise GitCommandTimeoutError(
                f"Git command timed out after {timeout:.0f}s: git {' '.join(args)}"
            ) from e

        result = GitCommandResult(
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            exit_code=completed.returncode,
        )
        if result.exit_code != 0 and not allow_failure:
            raise GitCommandError(args, result.exit_code, result.stdout, result.stderr)
        return result

    def get_working_directory(self) -> str:
        return self.working_directory

    def is_repository(self) -> bool:
        """Whether the working directory holds its own .git metadata directory."""
        return os.path.isdir(os.path.join(self.working_directory, ".git"))

    def add(self, pattern: str) -> List[str]:
        result = self.execute(["add", "--verbose", pattern])
        logger.debug(f"Git add output: \n{result.stdout}")
        return _split_lines(result.stdout)

    def add_all(self) -> List[str]:
        result = self.execute(["add", "--verbose", "--all"])
        logger.debug(f"Git add output: \n{result.stdout}")
        return _split_lines(result.stdout)

    def branch_current(self) -> str:
        result = self.execute(["branch", "--no-color", "--show-current"])
        return result.stdout.strip()

    def branch_list(self, location: str = "local") -> List[str]:
        """
        List branch names.

        Args:
            location: "local", "remote" or "all"
        """
        args = ["branch", "--no-color", "--format=%(refname:short)", "--list"]
        if location == "remote":
            args.append("--remotes")
        elif location == "all":
            args.append("--all")
        result = self.execute(args)
        return _split_lines(result.stdout)

    def checkout(
        self,
        branch: str,
        is_new: bool = False,
        force: bool = False,
        start_point: Optional[str] = None,
    ) -> None:
        """
        Checkout a branch.

        Args:
            branch: Branch name
            is_new: Create the branch, resetting it if it already exists (-B)
            force: Discard local changes
            start_point: Commit or ref the new branch starts from
        """
        args = ["checkout", "--progress"]
        if force:
            args.append("--force")
        if is_new:
            args.extend(["-B", branch])
            if start_point:
                args.append(start_point)
        else:
            args.append(branch)
        result = self.execute(args)
        logger.debug(result.stdout)

    def clone(self, repo_url: str, branch: Optional[str] = None, depth: Optional[int] = None) -> None:
        args = ["clone", "--progress"]
        if branch:
            args.append(f"--branch={branch}")
        if depth and depth > 0:
            args.append(f"--depth={depth}")
        args.extend([repo_url, self.working_directory])
        result = self.execute(args)
        logger.debug(result.stdout)

    def commit(
        self,
        message: str,
        author: Optional[CommitAuthor] = None,
        allow_empty: bool = False,
    ) -> None:
        args = ["commit", f"--message={message}"]
        if author:
            args.append(f"--author={author.name} <{author.email}>")
            self.git_env.update({
                "GIT_AUTHOR_NAME": author.name,
                "GIT_AUTHOR_EMAIL": author.email,
                "GIT_COMMITTER_NAME": author.name,
                "GIT_COMMITTER_EMAIL": author.email,
            })
        if allow_empty:
            args.append("--allow-empty")
        result = self.execute(args)
        logger.debug(f"Git commit output: \n{result.stdout}")

    def config(self, config_key: str, config_value: str, add: bool = False) -> None:
        args = ["config", "--local"]
        if add:
            args.append("--add")
        args.extend([config_key, config_value])
        self.execute(args)

    def config_exists(self, config_key: str) -> bool:
        result = self.execute(
            ["config", "--local", "--name-only", "--get-regexp", re.escape(config_key)],
            allow_failure=True,
        )
        return result.exit_code == 0

    def config_get(self, config_key: str) -> Optional[str]:
        result = self.execute(["config", "--local", "--get", config_key], allow_failure=True)
        if result.exit_code != 0:
            return None
        return result.stdout.rstrip("\n")

    def config_unset(self, config_key: str) -> bool:
        result = self.execute(["config", "--local", "--unset-all", config_key], allow_failure=True)
        return result.exit_code == 0

    def fetch(self, ref_specs: Sequence[str], depth: Optional[int] = None) -> None:
        """
        Fetch ref specs from origin.

        Without a depth, a shallow repository is unshallowed so the fetch
        always ends with complete history.
        """
        args = ["fetch", "--no-tags", "--no-recurse-submodules", "--prune", "--progress"]
        if depth and depth > 0:
            args.append(f"--depth={depth}")
        elif os.path.exists(os.path.join(self.working_directory, ".git", "shallow")):
            args.append("--unshallow")
        args.append("origin")
        args.extend(ref_specs)
        self.execute(args)

    def init(self, branch_name: Optional[str] = None) -> None:
        args = ["init"]
        if branch_name:
            args.append(f"--initial-branch={branch_name}")
        args.append(self.working_directory)
        result = self.execute(args)
        logger.debug(result.stdout)

    def push(self, remote_name: str = "origin", branch: str = "master", force: bool = False) -> None:
        args = ["push"]
        if force:
            args.append("--force")
        args.extend([remote_name, f"refs/heads/{branch}:refs/heads/{branch}"])
        self.execute(args)

    def remote_add(self, remote_name: str, remote_url: str) -> None:
        self.execute(["remote", "add", remote_name, remote_url])

    def remote_remove(self, remote_name: str) -> None:
        self.execute(["remote", "remove", remote_name])

    def remote_show(self) -> List[str]:
        result = self.execute(["remote", "show"])
        return _split_lines(result.stdout)

    def remote_get_url(self, remote_name: str = "origin") -> Optional[str]:
        result = self.execute(["remote", "get-url", remote_name], allow_failure=True)
        if result.exit_code != 0:
            return None
        return result.stdout.strip()


def _split_lines(output: str) -> List[str]:
    return [line.strip() for line in output.strip().splitlines() if line.strip()]
