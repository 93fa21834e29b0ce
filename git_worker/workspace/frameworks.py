#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Directory conventions of each supported static-site generator.
"""

from dataclasses import dataclass
from typing import Dict

from git_worker.errors import ConfigurationError
from shared.models.task import TemplateType


@dataclass(frozen=True)
class FrameworkLayout:
    """Where a framework keeps user content, themes and generated output."""
    source_dir: str
    themes_dir: str
    publish_dir: str


FRAMEWORK_LAYOUTS: Dict[TemplateType, FrameworkLayout] = {
    TemplateType.HEXO: FrameworkLayout(source_dir="source", themes_dir="themes", publish_dir="public"),
    TemplateType.HUGO: FrameworkLayout(source_dir="content", themes_dir="themes", publish_dir="public"),
}


def get_framework_layout(template_type: TemplateType) -> FrameworkLayout:
    layout = FRAMEWORK_LAYOUTS.get(template_type)
    if layout is None:
        raise ConfigurationError(f"Unsupported template type: {template_type}")
    return layout
