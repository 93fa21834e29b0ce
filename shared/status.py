#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

from enum import Enum


class TaskStatus(str, Enum):
    """Lifecycle status of a worker task as reported to the backend."""

    INITIALIZED = "INITIALIZED"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    NO_TASK = "NO_TASK"
