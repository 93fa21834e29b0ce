# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

from git_worker.services.git_service import GitService, parse_task_config

__all__ = ["GitService", "parse_task_config"]
