#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Helpers shared by the git worker tests.
"""

import os
import shutil
import subprocess
from typing import Any, Dict, List, Optional, Tuple

import pytest

from shared.models.task import TaskConfig
from git_worker.git.archive import FetchedContent

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git binary not installed")

TEST_GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@example.com",
    "GIT_TERMINAL_PROMPT": "0",
}


def write_files(root: str, files: Dict[str, str]) -> None:
    """Create files (with parent directories) under root."""
    for relative, content in files.items():
        path = os.path.join(root, relative)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)


def list_files(root: str, skip_git: bool = True) -> List[str]:
    """All file paths under root, relative and sorted."""
    result = []
    for dirpath, dirnames, filenames in os.walk(root):
        if skip_git and ".git" in dirnames:
            dirnames.remove(".git")
        for name in filenames:
            result.append(os.path.relpath(os.path.join(dirpath, name), root).replace(os.sep, "/"))
    return sorted(result)


def run_git(args: List[str], cwd: Optional[str] = None) -> str:
    """Run git outside the code under test, failing loudly."""
    env = dict(os.environ)
    env.update(TEST_GIT_ENV)
    completed = subprocess.run(
        ["git", *args], cwd=cwd, env=env, capture_output=True, text=True, check=True
    )
    return completed.stdout


def make_bare_remote(path: str) -> str:
    """Create a bare repository standing in for the hosting provider."""
    os.makedirs(path, exist_ok=True)
    run_git(["init", "--bare", path])
    return path


def seed_remote(bare_path: str, work_path: str, branch: str, files: Dict[str, str]) -> None:
    """Push one commit containing files to branch of a bare repository."""
    os.makedirs(work_path, exist_ok=True)
    run_git(["init", f"--initial-branch={branch}", work_path])
    write_files(work_path, files)
    run_git(["add", "--all"], cwd=work_path)
    run_git(["commit", "--message=seed"], cwd=work_path)
    run_git(["push", bare_path, f"refs/heads/{branch}:refs/heads/{branch}"], cwd=work_path)


def remote_files(bare_path: str, branch: str) -> List[str]:
    output = run_git(["--git-dir", bare_path, "ls-tree", "-r", "--name-only", branch])
    return sorted(line for line in output.splitlines() if line)


def remote_commit_count(bare_path: str, branch: str) -> int:
    return int(run_git(["--git-dir", bare_path, "rev-list", "--count", branch]).strip())


class FakeFetcher:
    """
    Stands in for the archive fetcher.

    Copies a prepared directory into the staging directory wrapped in a
    provider-style generated directory name.
    """

    def __init__(self, trees: Dict[str, str], wrapper: str = "owner-repo-1a2b3c4", find_str: str = "owner-repo"):
        self.trees = trees
        self.wrapper = wrapper
        self.find_str = find_str
        self.calls: List[Tuple[str, Optional[str], str]] = []

    def fetch(self, repo_url: str, branch: Optional[str], staging_dir: str, file_name: str = "template.zip") -> FetchedContent:
        self.calls.append((repo_url, branch, file_name))
        shutil.copytree(self.trees[repo_url], os.path.join(staging_dir, self.wrapper))
        return FetchedContent(directory=staging_dir, find_str=self.find_str)


TEMPLATE_URL = "https://github.com/owner/repo.git"
THEME_URL = "https://github.com/owner/theme.git"


def build_task(method: str, **overrides: Any) -> TaskConfig:
    """Build a valid task of the given method; overrides replace top-level fields."""
    data: Dict[str, Any] = {
        "task_id": "task-1",
        "task_method": method,
        "git": {
            "storage": {
                "service_type": "GITHUB",
                "token": "gho_storage_token",
                "username": "alice",
                "repo_name": "my-site",
                "branch_name": "main",
            },
            "publisher": {
                "service_type": "GITHUB",
                "token": "gho_publisher_token",
                "username": "alice",
                "repo_name": "alice.github.io",
                "branch_name": "gh-pages",
            },
        },
        "template": {
            "template_name": "Cactus",
            "template_repo_url": TEMPLATE_URL,
            "template_branch_name": "master",
            "template_type": "HEXO",
        },
        "theme": {
            "theme_name": "cactus",
            "theme_repo_url": THEME_URL,
            "theme_branch_name": "master",
            "theme_type": "HEXO",
        },
        "site": {"title": "My Site", "domain": "alice.example.com", "keywords": ["blog"]},
        "user": {"username": "alice", "nickname": "Alice"},
        "gateway": {"base_url": "https://gateway.example.com"},
        "metadata": {"storage": {"type": "ipfs"}},
    }
    data.update(overrides)
    return TaskConfig.model_validate(data)
