#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Repository Assembly - Merges template and theme content into a repository.

Templates and themes are fetched into a staging directory of the workspace
and then copied over the repository working tree. A full template overwrite
keeps the user's content under the framework's source directory.
"""

import os
import shutil
from typing import Optional

from shared.logger import setup_logger
from shared.models.task import TemplateInfo, TemplateType, ThemeInfo
from git_worker.errors import AssemblyError
from git_worker.git.archive import FetchedContent, RepositoryArchiveFetcher
from git_worker.workspace.frameworks import get_framework_layout
from git_worker.workspace.meta_config import MetaSpaceConfigWriter
from git_worker.workspace.paths import WorkspacePaths, remove_path, validate_path_component

logger = setup_logger("repository_assembly")

GIT_METADATA_DIR = ".git"


def resolve_content_root(staging_dir: str, find_str: Optional[str]) -> str:
    """
    Locate the directory holding a fetched tree's actual content.

    Provider archives wrap content in one generated directory whose exact
    name is not stable, so the hint is matched as a prefix and the staging
    directory itself is used when nothing matches.

    Args:
        staging_dir: Directory the archive was extracted into
        find_str: Expected prefix of the wrapper directory, e.g. "owner-repo"

    Returns:
        Path of the content root
    """
    if find_str:
        needle = find_str.lower()
        for entry in sorted(os.listdir(staging_dir)):
            path = os.path.join(staging_dir, entry)
            if os.path.isdir(path) and entry.lower().startswith(needle):
                logger.info(f"Template directory is {path}")
                return path
        logger.warning(f"No directory matching {find_str} in {staging_dir}, using staging root")
    return staging_dir


def copy_tree(src: str, dst: str) -> None:
    """Copy a directory over another, overwriting files that exist in both."""
    logger.info(f"Copy files from {src} to {dst}")
    shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True)


class RepositoryAssembly:
    """Builds a repository working tree out of fetched template and theme content."""

    def __init__(
        self,
        workspace: WorkspacePaths,
        meta_config_writer: MetaSpaceConfigWriter,
        fetcher: Optional[RepositoryArchiveFetcher] = None,
    ):
        """
        Args:
            workspace: Task workspace holding staging and backup directories
            meta_config_writer: Writer invoked after a template is assembled
            fetcher: Collaborator fetching template/theme trees into staging
        """
        self.workspace = workspace
        self.meta_config_writer = meta_config_writer
        self.fetcher = fetcher or RepositoryArchiveFetcher(workspace.root)

    def _fetch(self, repo_url: str, branch: Optional[str], staging_dir: str, file_name: str) -> str:
        staging_dir = self.workspace.clear(staging_dir)
        fetched: FetchedContent = self.fetcher.fetch(repo_url, branch, staging_dir, file_name)
        return resolve_content_root(fetched.directory, fetched.find_str)

    def assemble_from_template(self, template: TemplateInfo, repo_path: str) -> None:
        """
        Copy a template over the repository and write the metadata config.
        """
        logger.info(f"Download template from {template.template_repo_url}")
        content_root = self._fetch(
            template.template_repo_url,
            template.template_branch_name,
            self.workspace.template_staging,
            "template.zip",
        )
        os.makedirs(repo_path, exist_ok=True)
        copy_tree(content_root, repo_path)
        self.meta_config_writer.write(repo_path)

    def overwrite_template_preserving_source(
        self,
        template: TemplateInfo,
        template_type: TemplateType,
        repo_path: str,
    ) -> None:
        """
        Replace the whole repository with a new template, keeping user content.

        Steps, in order:
        1. back up <repo>/<source dir> to <workspace>/backup/<source dir>
        2. delete everything in the repository except .git
        3. assemble the new template
        4. delete the source directory the template brought in
        5. restore the backup into place

        Raises:
            AssemblyError: If the repository does not exist or a step fails
        """
        if not os.path.isdir(repo_path):
            raise AssemblyError(f"Repository path {repo_path} does not exist")

        source_dir = get_framework_layout(template_type).source_dir
        repo_source = self.workspace.sub_path(repo_path, source_dir)
        backup = self.workspace.backup_path(source_dir)

        has_source = os.path.isdir(repo_source)
        if has_source:
            if os.path.lexists(backup):
                remove_path(backup)
            logger.info(f"Backup {repo_source} to {backup}")
            shutil.copytree(repo_source, backup, symlinks=True)
        else:
            logger.warning(f"Source directory {repo_source} not found, nothing to preserve")

        logger.info(f"Remove all files except {GIT_METADATA_DIR} from {repo_path}")
        for entry in os.listdir(repo_path):
            if entry == GIT_METADATA_DIR:
                continue
            remove_path(os.path.join(repo_path, entry))

        self.assemble_from_template(template, repo_path)

        if not has_source:
            return

        if os.path.lexists(repo_source):
            logger.info(f"Remove template source directory {repo_source}")
            remove_path(repo_source)

        if not os.path.isdir(backup):
            raise AssemblyError(f"Backup {backup} disappeared before restore")
        # Checked again: the new template may bring links of its own
        repo_source = self.workspace.sub_path(repo_path, source_dir)
        logger.info(f"Restore {backup} to {repo_source}")
        shutil.copytree(backup, repo_source, symlinks=True)

    def assemble_theme(self, theme: ThemeInfo, template_type: TemplateType, repo_path: str) -> None:
        """
        Copy a theme into <repo>/<themes dir>/<theme name>.

        Themes distributed as packages are installed by the site generator and
        are skipped here.
        """
        if theme.is_package:
            logger.info(f"Theme {theme.theme_name} is a package, skip assembling")
            return
        if not theme.theme_repo_url:
            raise AssemblyError(f"Theme {theme.theme_name} has no repository URL")

        themes_dir = get_framework_layout(template_type).themes_dir
        theme_path = self.workspace.sub_path(
            repo_path, themes_dir, validate_path_component(theme.theme_name, "theme name")
        )

        logger.info(f"Download theme {theme.theme_name} from {theme.theme_repo_url}")
        content_root = self._fetch(
            theme.theme_repo_url,
            theme.theme_branch_name,
            self.workspace.theme_staging,
            "theme.zip",
        )
        os.makedirs(theme_path, exist_ok=True)
        copy_tree(content_root, theme_path)
