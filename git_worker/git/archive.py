#!/usr/bin/env python

# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-

"""
Repository archive download and extraction.

Templates and themes are fetched as provider zip archives rather than
cloned. The archive is downloaded with requests and unpacked with the
7-Zip binary.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional

import requests

from shared.logger import setup_logger
from git_worker.config import config
from git_worker.errors import ArchiveError
from git_worker.git.providers import get_provider_for_url

logger = setup_logger("git_archive")


@dataclass
class DownloadedArchive:
    """A downloaded archive and the hint for locating its content root."""
    path: str
    find_str: str


@dataclass
class FetchedContent:
    """An extracted archive ready to be copied into a repository."""
    directory: str
    find_str: str


class RepositoryArchiveDownloader:
    """Downloads repository zip archives from a hosting provider."""

    def __init__(self, download_dir: str, timeout: int = config.ARCHIVE_DOWNLOAD_TIMEOUT):
        self.download_dir = download_dir
        self.timeout = timeout

    def download(
        self,
        repo_url: str,
        ref: Optional[str] = None,
        file_name: str = "template.zip",
    ) -> DownloadedArchive:
        """
        Download the archive of a repository.

        Args:
            repo_url: Repository URL on a supported host
            ref: Branch, tag or commit; provider default when omitted
            file_name: Name of the archive file in the download directory

        Returns:
            DownloadedArchive with the local path and content-root hint

        Raises:
            ArchiveError: If the download fails
        """
        provider = get_provider_for_url(repo_url)
        owner, repo = provider.parse_repo_url(repo_url)
        archive_url = provider.get_archive_url(owner, repo, ref)
        file_path = os.path.join(self.download_dir, file_name)

        logger.info(f"Start download {owner}/{repo} archive from branch {ref or 'default'}")
        try:
            with requests.get(archive_url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                disposition = response.headers.get("Content-Disposition", "")
                if disposition:
                    logger.info(f"Raw file name is {disposition.replace('attachment; filename=', '')}")
                with open(file_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=64 * 1024):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise ArchiveError(f"Failed to download archive {archive_url}: {e}") from e

        find_str = provider.get_archive_find_str(owner, repo)
        logger.info(f"File {file_path} download complete, find string is {find_str}")
        return DownloadedArchive(path=file_path, find_str=find_str)


class ZipArchiveExtractor:
    """Extracts archives with the 7-Zip command line tool."""

    def __init__(self, bin_name: str = config.WORKER_7ZIP_BIN_NAME):
        bin_path = shutil.which(bin_name)
        if not bin_path:
            raise ArchiveError(f"Can not find 7-Zip binary {bin_name} in PATH")
        self.bin_name = bin_name
        self.bin_path = bin_path
        logger.info(f"ZipArchiveExtractor use {self.bin_name} from {self.bin_path}")

    def extract_all_files(self, file_path: str, output_dir: str) -> str:
        """
        Extract every file of an archive, keeping directory structure.

        Returns:
            The output directory

        Raises:
            ArchiveError: If 7-Zip fails
        """
        logger.info(f"Extracting file {file_path} to {output_dir}")
        os.makedirs(output_dir, exist_ok=True)
        try:
            result = subprocess.run(
                [self.bin_path, "x", "-y", f"-o{output_dir}", file_path],
                capture_output=True,
                text=True,
                timeout=config.ARCHIVE_DOWNLOAD_TIMEOUT,
            )
        except subprocess.TimeoutExpired as e:
            raise ArchiveError(f"Extracting {file_path} timed out") from e

        if result.returncode != 0:
            raise ArchiveError(
                f"Failed to extract {file_path} ({result.returncode}): {result.stderr or result.stdout}"
            )
        logger.info("Extract completed")
        return output_dir


class RepositoryArchiveFetcher:
    """
    Fetches a repository's content into a staging directory.

    Composes the downloader and the extractor; this is the collaborator
    RepositoryAssembly uses to obtain template and theme trees.
    """

    def __init__(
        self,
        download_dir: str,
        downloader: Optional[RepositoryArchiveDownloader] = None,
        extractor: Optional[ZipArchiveExtractor] = None,
    ):
        self.downloader = downloader or RepositoryArchiveDownloader(download_dir)
        self._extractor = extractor

    @property
    def extractor(self) -> ZipArchiveExtractor:
        # Resolved lazily so tasks that never fetch do not require 7-Zip
        if self._extractor is None:
            self._extractor = ZipArchiveExtractor()
        return self._extractor

    def fetch(
        self,
        repo_url: str,
        branch: Optional[str],
        staging_dir: str,
        file_name: str = "template.zip",
    ) -> FetchedContent:
        archive = self.downloader.download(repo_url, branch, file_name)
        directory = self.extractor.extract_all_files(archive.path, staging_dir)
        return FetchedContent(directory=directory, find_str=archive.find_str)
