"""Utility functions for the detection trigger service."""

import os
import re
from datetime import datetime
from typing import Iterable, Optional

from .logging_config import get_logger

logger = get_logger("utils")

_LINE_COMMENT = re.compile(r'^\s*//.*$', re.MULTILINE)


def ensure_directory_exists(path: str) -> None:
    """Ensure a directory exists, create if it doesn't."""
    if not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def cleanup_old_files(directory: str, max_age_minutes: float,
                      now: Optional[datetime] = None) -> int:
    """Delete files whose last access is older than max_age_minutes. Returns the deleted count."""
    if not os.path.exists(directory):
        return 0

    current_time = now or datetime.now()
    deleted_count = 0

    for filename in os.listdir(directory):
        file_path = os.path.join(directory, filename)
        if not os.path.isfile(file_path):
            continue

        try:
            last_access = datetime.fromtimestamp(os.stat(file_path).st_atime)
            age_minutes = (current_time - last_access).total_seconds() / 60
            if age_minutes > max_age_minutes:
                os.remove(file_path)
                deleted_count += 1
                logger.debug(f"Purging {file_path}. Age: {age_minutes:.0f} minutes.")
        except OSError as e:
            logger.warning(f"Unable to purge {file_path}: {e}")

    return deleted_count


def strip_json_comments(text: str) -> str:
    """Remove whole-line ``//`` comments so JSONC configuration files parse as JSON."""
    return _LINE_COMMENT.sub("", text)


def format_predictions(predictions: Iterable) -> str:
    """Render predictions as ``label (NN%)`` joined with commas."""
    return ", ".join(f"{p.label} ({p.percent_confidence:.0f}%)" for p in predictions)
