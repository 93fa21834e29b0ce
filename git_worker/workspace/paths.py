#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Workspace Paths - The per-task directory everything a task touches lives in.

Layout:
/tmp/<prefix>-<task id>/
├── <repo name>/   - Content repository working tree and .git
├── .template/     - Template staging, cleared before each use
├── .theme/        - Theme staging, cleared before each use
├── backup/        - User content preserved during template overwrite
└── *.zip          - Downloaded archives
"""

import os
import shutil
from typing import Optional

from shared.logger import setup_logger
from git_worker.config import config
from git_worker.errors import ConfigurationError

logger = setup_logger("workspace_paths")


def validate_path_component(name: str, what: str = "name") -> str:
    """
    Ensure a name is usable as exactly one path component.

    Raises:
        ConfigurationError: If the name is empty, "." / "..", or contains a separator
    """
    if not name or name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
        raise ConfigurationError(f"Invalid {what}: {name!r}")
    return name


def derive_workspace_name(task_id: str, task_workspace: Optional[str] = None) -> str:
    """
    Derive the workspace directory name of a task.

    The backend names the workspace shared by a chain of tasks on the same
    site, so a given name is used exactly as is. Tasks that carry no
    workspace name get a directory of their own.

    Examples:
        ("42", None)     -> meta-cms-worker-git-42
        ("42", "site-7") -> site-7
    """
    if task_workspace:
        return validate_path_component(task_workspace, "task workspace")
    task_id = validate_path_component(str(task_id), "task id")
    return f"{config.WORKSPACE_PREFIX}-{task_id}"


class WorkspacePaths:
    """
    Owns a task's workspace root and hands out paths inside it.

    Every path returned is checked to stay under the root, with symlinks
    resolved: repository content may contain links, and a linked directory
    such as themes/ or public/ must not redirect writes out of the workspace.
    """

    TEMPLATE_DIR = ".template"
    THEME_DIR = ".theme"
    BACKUP_DIR = "backup"

    def __init__(self, root: str):
        self.root = os.path.abspath(root)
        os.makedirs(self.root, exist_ok=True)
        self._real_root = os.path.realpath(self.root)
        logger.info(f"Git temporary directory is created, path: {self.root}")

    @classmethod
    def for_task(
        cls,
        task_id: str,
        task_workspace: Optional[str] = None,
        base_dir: Optional[str] = None,
    ) -> "WorkspacePaths":
        name = derive_workspace_name(task_id, task_workspace)
        return cls(os.path.join(base_dir or config.WORKSPACE_BASE_DIR, name))

    def _inside(self, *parts: str) -> str:
        path = os.path.abspath(os.path.join(self.root, *parts))
        if os.path.commonpath([self.root, path]) != self.root:
            raise ConfigurationError(f"Path {path} escapes workspace {self.root}")
        real_path = os.path.realpath(path)
        if os.path.commonpath([self._real_root, real_path]) != self._real_root:
            raise ConfigurationError(f"Path {path} resolves to {real_path} outside workspace {self.root}")
        return path

    def repo_path(self, repo_name: str) -> str:
        return self._inside(validate_path_component(repo_name, "repository name"))

    def sub_path(self, repo_path: str, *parts: str) -> str:
        """A path inside a repository working tree, confined to the workspace."""
        relative = os.path.relpath(os.path.join(repo_path, *parts), self.root)
        return self._inside(relative)

    @property
    def template_staging(self) -> str:
        return self._inside(self.TEMPLATE_DIR)

    @property
    def theme_staging(self) -> str:
        return self._inside(self.THEME_DIR)

    def backup_path(self, source_dir: str) -> str:
        return self._inside(self.BACKUP_DIR, source_dir)

    def archive_path(self, file_name: str) -> str:
        return self._inside(validate_path_component(file_name, "archive file name"))

    def clear(self, path: str) -> str:
        """Remove and recreate a directory inside the workspace."""
        path = self._inside(os.path.relpath(path, self.root))
        if path == self.root:
            raise ConfigurationError("Refusing to clear the workspace root")
        if os.path.lexists(path):
            remove_path(path)
        os.makedirs(path, exist_ok=True)
        return path


def remove_path(path: str) -> None:
    """Delete a file, symlink or directory tree."""
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.remove(path)
