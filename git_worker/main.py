#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Worker entry point: fetch one git task, run it, report the outcome.
"""

import sys
from typing import Optional

import requests

from shared.logger import get_log_dir, setup_logger
from shared.status import TaskStatus
from git_worker.callback.task_client import TaskApiClient
from git_worker.services.git_service import GitService, parse_task_config

logger = setup_logger("git_worker")


def run_git_task(client: Optional[TaskApiClient] = None) -> TaskStatus:
    """
    Fetch a task from the backend, execute it and report the result once.

    Args:
        client: Backend client, built from configuration when omitted

    Returns:
        TaskStatus.SUCCESS, TaskStatus.FAILED or TaskStatus.NO_TASK
    """
    client = client or TaskApiClient()
    logger.info("Getting new Git task from CMS backend")
    try:
        data = client.fetch_task()
    except requests.RequestException as e:
        logger.error(f"Failed to get Git task from CMS backend: {e}")
        return TaskStatus.FAILED
    if not data:
        return TaskStatus.NO_TASK
    if not isinstance(data, dict):
        # Without a task id there is nothing the backend could match a report to
        logger.error(f"Invalid Git task payload of type {type(data).__name__}")
        return TaskStatus.FAILED

    task_id = str(data.get("task_id", "unknown"))
    method = data.get("task_method")
    try:
        task_config = parse_task_config(data)
        logger.info(f"Task {task_id} start, method {method}")
        GitService(task_config).run()
    except Exception as e:
        logger.exception(f"Task {task_id} ({method}) failed: {e}")
        client.report_task(task_id, TaskStatus.FAILED, method=method, error=str(e))
        return TaskStatus.FAILED

    logger.info(f"Task {task_id} ({method}) finished")
    client.report_task(task_id, TaskStatus.SUCCESS, method=method)
    return TaskStatus.SUCCESS


def main() -> int:
    client = TaskApiClient()
    if not client.is_configured:
        logger.error("BACKEND_URL is not configured")
        return 2

    if get_log_dir():
        logger.info(f"Log files saved to {get_log_dir()}")

    status = run_git_task(client)
    return 1 if status == TaskStatus.FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
