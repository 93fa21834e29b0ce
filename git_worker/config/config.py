# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# coding: utf-8
import os
import tempfile

"""
Global configuration for the git worker, read once from the environment.
"""

# Workspace root: one <prefix>-<task id> directory per task is created under it
WORKSPACE_BASE_DIR = os.environ.get("WORKSPACE_BASE_DIR", tempfile.gettempdir())
WORKSPACE_PREFIX = os.environ.get("WORKSPACE_PREFIX", "meta-cms-worker-git")

# Git binary
MINIMUM_GIT_VERSION = os.environ.get("MINIMUM_GIT_VERSION", "2.28.0")
GIT_USER_AGENT_SUFFIX = os.environ.get("GIT_USER_AGENT_SUFFIX", "meta-cms-worker-git")
GIT_COMMAND_TIMEOUT = int(os.environ.get("GIT_COMMAND_TIMEOUT", "600"))
# 0 fetches full history
GIT_FETCH_DEPTH = int(os.environ.get("GIT_FETCH_DEPTH", "0"))
# 0 disables the task-level deadline
TASK_TIMEOUT_SECONDS = int(os.environ.get("TASK_TIMEOUT_SECONDS", "1800"))

# Machine identity used for every commit
GIT_COMMIT_AUTHOR_NAME = os.environ.get("GIT_COMMIT_AUTHOR_NAME", "Meta Network")
GIT_COMMIT_AUTHOR_EMAIL = os.environ.get("GIT_COMMIT_AUTHOR_EMAIL", "noreply@meta.io")

# Archive download and extraction
WORKER_7ZIP_BIN_NAME = os.environ.get("WORKER_7ZIP_BIN_NAME", "7z")
ARCHIVE_DOWNLOAD_TIMEOUT = int(os.environ.get("ARCHIVE_DOWNLOAD_TIMEOUT", "300"))
GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com")

# CMS backend task source / sink
BACKEND_URL = os.environ.get("BACKEND_URL", "")
BACKEND_TIMEOUT = int(os.environ.get("BACKEND_TIMEOUT", "10"))
BACKEND_MAX_RETRIES = int(os.environ.get("BACKEND_MAX_RETRIES", "3"))
BACKEND_RETRY_DELAY = int(os.environ.get("BACKEND_RETRY_DELAY", "2"))
WORKER_SECRET = os.environ.get("WORKER_SECRET", "")
WORKER_NAME = os.environ.get("WORKER_NAME", "meta-cms-worker-git")
