"""Extraction of `testlog.json` from downloaded result archives."""

from __future__ import annotations

import io
import json
import zipfile
from typing import Any

TESTLOG_FILENAME = "testlog.json"


class ArchiveError(Exception):
    """Archive is unreadable or lacks a test log."""


def extract_testlog(archive: bytes) -> Any:
    """Return the parsed `testlog.json` found anywhere in a zip archive.

    Raises:
        ArchiveError: If the archive is not a zip, has no test log, or the
            test log is not valid JSON
    """
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            member = next(
                (
                    info
                    for info in zf.infolist()
                    if not info.is_dir() and info.filename.endswith(TESTLOG_FILENAME)
                ),
                None,
            )
            if member is None:
                raise ArchiveError(f"{TESTLOG_FILENAME} not found in archive")
            raw = zf.read(member)
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Downloaded file is not a zip archive: {e}") from e

    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ArchiveError(f"{TESTLOG_FILENAME} is not valid JSON: {e}") from e
