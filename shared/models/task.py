#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Task payload models exchanged with the CMS backend.

A task arrives as JSON and is validated into a frozen TaskConfig. Tokens are
held as SecretStr so they never show up in reprs or log lines.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, SecretStr


class GitServiceType(str, Enum):
    GITHUB = "GITHUB"
    GITEE = "GITEE"


class TaskMethod(str, Enum):
    CLONE_CHECKOUT = "CLONE_CHECKOUT"
    COMMIT_PUSH = "COMMIT_PUSH"
    INIT_PUSH = "INIT_PUSH"
    OVERWRITE_PUSH = "OVERWRITE_PUSH"
    OVERWRITE_THEME = "OVERWRITE_THEME"
    PUBLISH_PAGES = "PUBLISH_PAGES"
    GENERATE_CONFIG = "GENERATE_CONFIG"


class TemplateType(str, Enum):
    """Static-site generator family a template or theme belongs to."""

    HEXO = "HEXO"
    HUGO = "HUGO"


class GitInfo(BaseModel):
    """Provider-scoped credential and target repository."""

    model_config = ConfigDict(frozen=True)

    service_type: GitServiceType
    token: SecretStr
    username: str
    repo_name: str
    branch_name: str


class GitConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    storage: Optional[GitInfo] = None
    publisher: Optional[GitInfo] = None


class TemplateInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    template_name: Optional[str] = None
    template_repo_url: str
    template_branch_name: Optional[str] = None
    template_type: TemplateType


class ThemeInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    theme_name: str
    theme_repo_url: Optional[str] = None
    theme_branch_name: Optional[str] = None
    theme_type: TemplateType
    # Themes distributed through a language package manager carry no content tree
    is_package: bool = False


class SiteInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    config_id: Optional[int] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    keywords: List[str] = []
    favicon: Optional[str] = None
    domain: Optional[str] = None
    language: Optional[str] = None
    timezone: Optional[str] = None


class UserInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    nickname: Optional[str] = None


class TaskConfig(BaseModel):
    """
    A single unit of work assigned to the worker.

    The method selects the operation sequence; every other field is payload
    that only some methods require.
    """

    model_config = ConfigDict(frozen=True)

    task_id: str
    task_method: TaskMethod
    task_workspace: Optional[str] = None
    git: GitConfig = GitConfig()
    template: Optional[TemplateInfo] = None
    theme: Optional[ThemeInfo] = None
    site: Optional[SiteInfo] = None
    user: Optional[UserInfo] = None
    gateway: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    publish_dir: Optional[str] = None
