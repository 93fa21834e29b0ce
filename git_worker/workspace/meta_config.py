#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Writes the meta-space-config.yml file describing the site to the
generators that build it.
"""

import os
from typing import Any, Dict

import yaml

from shared.logger import setup_logger
from shared.models.task import TaskConfig

logger = setup_logger("meta_config")

META_SPACE_CONFIG_FILE = "meta-space-config.yml"


class MetaSpaceConfigWriter:
    """Serializes the user/site/theme/gateway/metadata fields of a task."""

    def __init__(self, task_config: TaskConfig):
        self.task_config = task_config

    def build(self) -> Dict[str, Any]:
        task = self.task_config
        data: Dict[str, Any] = {}
        for key in ("user", "site", "theme"):
            value = getattr(task, key)
            if value is not None:
                data[key] = value.model_dump(mode="json", exclude_none=True)
        if task.gateway is not None:
            data["gateway"] = dict(task.gateway)
        if task.metadata is not None:
            data["metadata"] = dict(task.metadata)
        return data

    def write(self, target_dir: str) -> str:
        """
        Write the config file at the root of target_dir.

        Returns:
            Path of the written file
        """
        os.makedirs(target_dir, exist_ok=True)
        file_path = os.path.join(target_dir, META_SPACE_CONFIG_FILE)
        if os.path.islink(file_path):
            # Replace the link itself rather than writing through it
            os.remove(file_path)
        with open(file_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                self.build(),
                f,
                allow_unicode=True,
                default_flow_style=False,
                sort_keys=False,
            )
        logger.info(f"Write meta space config to {file_path}")
        return file_path
