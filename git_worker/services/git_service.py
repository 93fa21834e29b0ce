#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Git Service - Runs the git operation sequence a task method calls for.

Each task method maps to one handler. Handlers run strictly in sequence and
never catch errors: the first failing step aborts the task and the error
propagates to the task runner. Every push is bracketed by an auth session so
the token is removed from the repository config on every exit path.
"""

import os
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import ValidationError

from shared.logger import setup_logger
from shared.models.task import GitInfo, TaskConfig, TaskMethod, TemplateType
from git_worker.config import config
from git_worker.errors import AssemblyError, ConfigurationError
from git_worker.git.archive import RepositoryArchiveFetcher
from git_worker.git.auth import GitAuthHelper
from git_worker.git.command import CommitAuthor, GitCommandHelper
from git_worker.git.providers import get_provider
from git_worker.workspace.assembly import RepositoryAssembly
from git_worker.workspace.frameworks import get_framework_layout
from git_worker.workspace.meta_config import MetaSpaceConfigWriter
from git_worker.workspace.paths import WorkspacePaths

logger = setup_logger("git_service")

ORIGIN = "origin"

COMMIT_MESSAGES: Dict[TaskMethod, str] = {
    TaskMethod.COMMIT_PUSH: "Update site content",
    TaskMethod.INIT_PUSH: "Initial commit",
    TaskMethod.OVERWRITE_PUSH: "Overwrite site template",
    TaskMethod.PUBLISH_PAGES: "Publish site",
}

# Payload fields each method needs, as dotted attribute paths on TaskConfig
REQUIRED_FIELDS: Dict[TaskMethod, Tuple[str, ...]] = {
    TaskMethod.CLONE_CHECKOUT: ("git.storage",),
    TaskMethod.COMMIT_PUSH: ("git.storage",),
    TaskMethod.INIT_PUSH: ("git.storage", "template"),
    TaskMethod.OVERWRITE_PUSH: ("git.storage", "template"),
    TaskMethod.OVERWRITE_THEME: ("git.storage", "theme"),
    TaskMethod.PUBLISH_PAGES: ("git.storage", "git.publisher"),
    TaskMethod.GENERATE_CONFIG: ("git.storage",),
}

NOJEKYLL_FILE = ".nojekyll"
CNAME_FILE = "CNAME"


def parse_task_config(data: Dict[str, Any]) -> TaskConfig:
    """
    Validate a raw task payload.

    Raises:
        ConfigurationError: If the payload does not describe a valid task
    """
    try:
        return TaskConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid task payload: {e}") from e


def _get_field(task_config: TaskConfig, dotted: str) -> Any:
    value: Any = task_config
    for name in dotted.split("."):
        value = getattr(value, name, None)
        if value is None:
            return None
    return value


class GitService:
    """
    Executes one task against its own workspace.

    Construction validates the method and payload before creating the
    workspace, so a rejected task has no side effect.
    """

    def __init__(
        self,
        task_config: TaskConfig,
        fetcher: Optional[RepositoryArchiveFetcher] = None,
        base_dir: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
        task_timeout: int = config.TASK_TIMEOUT_SECONDS,
    ):
        """
        Args:
            task_config: Validated task
            fetcher: Template/theme fetcher, archive download by default
            base_dir: Directory the workspace is created under
            cancel_event: Set by the task runner to stop before the next git command
            task_timeout: Seconds the whole task may take, 0 for no limit
        """
        self.task_config = task_config
        self._validate_task()

        self.task_id = task_config.task_id
        self.method = task_config.task_method
        self.cancel_event = cancel_event
        self.deadline = time.monotonic() + task_timeout if task_timeout and task_timeout > 0 else None
        self.author = CommitAuthor(config.GIT_COMMIT_AUTHOR_NAME, config.GIT_COMMIT_AUTHOR_EMAIL)

        self.workspace = WorkspacePaths.for_task(
            task_config.task_id, task_config.task_workspace, base_dir
        )
        self.meta_config_writer = MetaSpaceConfigWriter(task_config)
        self.assembly = RepositoryAssembly(self.workspace, self.meta_config_writer, fetcher)

        self._handlers: Dict[TaskMethod, Callable[[], None]] = {
            TaskMethod.CLONE_CHECKOUT: self.clone_checkout,
            TaskMethod.COMMIT_PUSH: self.commit_push,
            TaskMethod.INIT_PUSH: self.init_push,
            TaskMethod.OVERWRITE_PUSH: self.overwrite_push,
            TaskMethod.OVERWRITE_THEME: self.overwrite_theme,
            TaskMethod.PUBLISH_PAGES: self.publish_pages,
            TaskMethod.GENERATE_CONFIG: self.generate_config,
        }

    def _validate_task(self) -> None:
        task = self.task_config
        required = REQUIRED_FIELDS.get(task.task_method)
        if required is None:
            raise ConfigurationError(f"Task method {task.task_method} is not allowed")

        missing = [name for name in required if _get_field(task, name) is None]
        if missing:
            raise ConfigurationError(
                f"Task {task.task_id} ({task.task_method.value}) is missing required fields: {', '.join(missing)}"
            )

        if task.task_method == TaskMethod.PUBLISH_PAGES and not task.publish_dir and task.template is None:
            raise ConfigurationError(
                f"Task {task.task_id} needs publish_dir or template to locate the publish directory"
            )

        for git_info in (task.git.storage, task.git.publisher):
            if git_info is not None:
                get_provider(git_info.service_type)

    def run(self) -> None:
        """Run the handler of the task's method."""
        handler = self._handlers[self.method]
        logger.info(f"Task[{self.task_id}] start, method {self.method.value}, workspace {self.workspace.root}")
        handler()
        logger.info(f"Task[{self.task_id}] method {self.method.value} finished")

    @property
    def storage(self) -> GitInfo:
        return self.task_config.git.storage

    @property
    def repo_path(self) -> str:
        return self.workspace.repo_path(self.storage.repo_name)

    def _create_git(self, path: str) -> GitCommandHelper:
        os.makedirs(path, exist_ok=True)
        return GitCommandHelper.create(path, deadline=self.deadline, cancel_event=self.cancel_event)

    def _open_git(self, path: str) -> GitCommandHelper:
        if not os.path.isdir(os.path.join(path, ".git")):
            raise AssemblyError(f"No git repository found at {path}")
        return self._create_git(path)

    def _template_type(self) -> TemplateType:
        task = self.task_config
        if task.template is not None:
            return task.template.template_type
        if task.theme is not None:
            return task.theme.theme_type
        raise ConfigurationError(f"Task {task.task_id} has neither template nor theme type")

    def set_repository_remote(self, git: GitCommandHelper, git_info: GitInfo) -> None:
        """Recreate origin so it points at the identity's repository."""
        remote_url = get_provider(git_info.service_type).get_fetch_url(git_info.username, git_info.repo_name)
        if ORIGIN in git.remote_show():
            logger.info(f"Remove existing remote {ORIGIN}")
            git.remote_remove(ORIGIN)
        git.remote_add(ORIGIN, remote_url)
        logger.info(f"Git remote {ORIGIN} set to {remote_url}")

    def _commit(self, git: GitCommandHelper, allow_empty: bool = False) -> None:
        git.add_all()
        git.commit(COMMIT_MESSAGES[self.method], author=self.author, allow_empty=allow_empty)
        logger.info(f"Task[{self.task_id}] committed to {git.get_working_directory()}")

    def _push(self, git: GitCommandHelper, git_info: GitInfo, force: bool = False) -> None:
        with GitAuthHelper(git, git_info).session():
            self.set_repository_remote(git, git_info)
            logger.info(
                f"Pushing {git.get_working_directory()} to {git_info.username}/{git_info.repo_name}, "
                f"branch {git_info.branch_name}, force {force}"
            )
            git.push(ORIGIN, git_info.branch_name, force=force)
        logger.info(f"Successfully pushed to {git_info.username}/{git_info.repo_name}")

    def _fetch_and_checkout(self) -> GitCommandHelper:
        """Bring the content repository's target branch into the workspace."""
        storage = self.storage
        branch = storage.branch_name
        git = self._create_git(self.repo_path)
        if not git.is_repository():
            git.init()

        with GitAuthHelper(git, storage).session():
            self.set_repository_remote(git, storage)
            git.fetch([f"+refs/heads/{branch}:refs/remotes/{ORIGIN}/{branch}"], depth=config.GIT_FETCH_DEPTH)

        git.checkout(branch, is_new=True, force=True, start_point=f"refs/remotes/{ORIGIN}/{branch}")
        logger.info(f"Task[{self.task_id}] checked out {branch} in {self.repo_path}")
        return git

    def clone_checkout(self) -> None:
        self._fetch_and_checkout()
        if self.task_config.theme is not None:
            theme = self.task_config.theme
            self.assembly.assemble_theme(theme, theme.theme_type, self.repo_path)

    def commit_push(self) -> None:
        branch = self.storage.branch_name
        git = self._open_git(self.repo_path)
        current = git.branch_current()
        if current != branch:
            logger.info(f"Current branch is {current or '(none)'}, checkout {branch}")
            git.checkout(branch, is_new=branch not in git.branch_list())
        self._commit(git, allow_empty=True)
        self._push(git, self.storage)

    def init_push(self) -> None:
        repo_path = self.repo_path
        if os.path.lexists(repo_path):
            logger.info(f"Clear existing directory {repo_path} before init")
            self.workspace.clear(repo_path)
        git = self._create_git(repo_path)
        logger.info(f"Initialize repo {self.storage.repo_name} to {repo_path}")
        git.init(self.storage.branch_name)
        self.assembly.assemble_from_template(self.task_config.template, repo_path)
        self._commit(git)
        self._push(git, self.storage)

    def overwrite_push(self) -> None:
        git = self._fetch_and_checkout()
        template = self.task_config.template
        self.assembly.overwrite_template_preserving_source(template, template.template_type, self.repo_path)
        self._commit(git, allow_empty=True)
        self._push(git, self.storage)

    def overwrite_theme(self) -> None:
        if not os.path.isdir(self.repo_path):
            raise AssemblyError(f"Repository path {self.repo_path} does not exist")
        theme = self.task_config.theme
        self.assembly.assemble_theme(theme, theme.theme_type, self.repo_path)

    def publish_pages(self) -> None:
        publisher = self.task_config.git.publisher
        publish_dir = self.task_config.publish_dir or get_framework_layout(self._template_type()).publish_dir
        publish_path = self.workspace.sub_path(self.repo_path, *publish_dir.split("/"))
        os.makedirs(publish_path, exist_ok=True)

        self._write_publish_markers(publish_path)

        git = self._create_git(publish_path)
        logger.info(f"Initialize publish repo at {publish_path}, branch {publisher.branch_name}")
        git.init(publisher.branch_name)
        if git.branch_current() != publisher.branch_name:
            git.checkout(publisher.branch_name, is_new=True, force=True)
        self._commit(git, allow_empty=True)
        self._push(git, publisher, force=True)

    def _write_publish_markers(self, publish_path: str) -> None:
        with open(self.workspace.sub_path(publish_path, NOJEKYLL_FILE), "w", encoding="utf-8"):
            pass
        site = self.task_config.site
        if site is not None and site.domain:
            with open(self.workspace.sub_path(publish_path, CNAME_FILE), "w", encoding="utf-8") as f:
                f.write(f"https://{site.domain}\n")
            logger.info(f"Write {CNAME_FILE} for domain {site.domain}")

    def generate_config(self) -> None:
        self.meta_config_writer.write(self.repo_path)
