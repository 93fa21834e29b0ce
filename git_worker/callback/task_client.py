#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Task API client for fetching git tasks from the CMS backend and reporting
their outcome.
"""

import json
import time
from typing import Any, Dict, Optional

import requests

from shared.logger import setup_logger
from shared.status import TaskStatus
from git_worker.config import config

logger = setup_logger("task_client")


class TaskApiClient:
    """
    Talks to the CMS backend's git task endpoints.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: int = config.BACKEND_TIMEOUT,
        max_retries: int = config.BACKEND_MAX_RETRIES,
        retry_delay: int = config.BACKEND_RETRY_DELAY,
        worker_secret: Optional[str] = None,
    ):
        """
        Initialize the task API client.

        Args:
            base_url: Backend base URL, BACKEND_URL when omitted
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts per request
            retry_delay: Delay between retries in seconds
            worker_secret: Bearer secret identifying this worker
        """
        self.base_url = (base_url if base_url is not None else config.BACKEND_URL).rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.worker_secret = worker_secret if worker_secret is not None else config.WORKER_SECRET
        self.session = requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> Dict[str, str]:
        headers = {"User-Agent": config.WORKER_NAME}
        if self.worker_secret:
            headers["Authorization"] = f"Bearer {self.worker_secret}"
        return headers

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """
        Send a request, retrying on network errors and 5xx responses.

        Raises:
            requests.RequestException: When every attempt failed
        """
        url = f"{self.base_url}{path}"
        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                response = self.session.request(
                    method, url, headers=self._headers(), timeout=self.timeout, **kwargs
                )
                if response.status_code < 500:
                    response.raise_for_status()
                    return response
                last_error = requests.HTTPError(
                    f"Backend returned status {response.status_code}: {response.text}",
                    response=response,
                )
                logger.warning(f"{method} {path} attempt {attempt + 1} failed: {last_error}")
            except requests.HTTPError:
                raise
            except requests.RequestException as e:
                last_error = e
                logger.warning(f"{method} {path} attempt {attempt + 1} failed: {e}")

            if attempt < self.max_retries - 1:
                time.sleep(self.retry_delay)

        logger.error(f"All {self.max_retries} attempts of {method} {path} failed: {last_error}")
        raise last_error

    def fetch_task(self) -> Optional[Dict[str, Any]]:
        """
        Fetch the next git task.

        Returns:
            Raw task payload, or None when the backend has no task
        """
        response = self._request("GET", "/task/git")
        if response.status_code == 204 or not response.content:
            logger.info("No git task available")
            return None
        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise requests.RequestException(f"Invalid JSON task payload: {e}") from e
        # Some deployments wrap the task in {"data": {...}}
        if isinstance(data, dict) and "data" in data and "task_id" not in data:
            data = data["data"]
        return data or None

    def report_task(
        self,
        task_id: str,
        status: TaskStatus,
        method: Optional[str] = None,
        error: Optional[str] = None,
    ) -> bool:
        """
        Report the outcome of a task.

        Returns:
            True if the backend accepted the report
        """
        payload: Dict[str, Any] = {
            "task_id": task_id,
            "status": status.value,
            "worker_name": config.WORKER_NAME,
        }
        if method:
            payload["task_method"] = method
        if error:
            payload["error"] = {"message": error}

        logger.info(f"Reporting task {task_id} status {status.value} to backend")
        try:
            self._request("POST", "/task/git/report", json=payload)
            return True
        except requests.RequestException as e:
            logger.error(f"Failed to report task {task_id}: {e}")
            return False
