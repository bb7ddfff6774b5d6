"""File utilities for atomic writes and JSON operations."""
import json
import os
from typing import Optional

from tunnelsync.core.logger import logger


def atomic_write(file_path: str, content: str, mode: str = "w") -> Optional[str]:
    """
    Atomically write to a file to prevent corruption.
    Uses a temporary file and rename operation.

    Returns:
        None on success, otherwise the error message
    """
    temp_path = file_path + ".tmp"
    try:
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(temp_path, mode, encoding="utf-8") as f:
            f.write(content)
        os.replace(temp_path, file_path)
        return None
    except (OSError, IOError) as e:
        logger.error(f"Failed to write file {file_path}: {e}")
        try:
            if os.path.exists(temp_path):
                os.remove(temp_path)
        except OSError:
            pass
        return str(e)


def atomic_write_json(file_path: str, data) -> Optional[str]:
    """Atomically write JSON data to a file."""
    try:
        content = json.dumps(data, indent=2)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize JSON for {file_path}: {e}")
        return str(e)
    return atomic_write(file_path, content)
