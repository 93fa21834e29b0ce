#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Workspace management module for the git worker.

This module provides utilities for managing:
- Task workspace directories
- Framework directory conventions
- Template and theme assembly
- The site metadata config file
"""

from git_worker.workspace.paths import WorkspacePaths
from git_worker.workspace.frameworks import FrameworkLayout, get_framework_layout
from git_worker.workspace.meta_config import MetaSpaceConfigWriter
from git_worker.workspace.assembly import RepositoryAssembly

__all__ = [
    "WorkspacePaths",
    "FrameworkLayout",
    "get_framework_layout",
    "MetaSpaceConfigWriter",
    "RepositoryAssembly",
]
