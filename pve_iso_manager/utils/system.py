"""Host command helpers"""

import os
import shutil
import subprocess
from typing import List, Tuple

from pve_iso_manager.utils.logger import get_logger

LOG = get_logger(__name__)


def command_exists(name: str) -> bool:
    """Check whether an executable is on PATH"""
    return shutil.which(name) is not None


def run_command(cmd: List[str], timeout: int = 30) -> Tuple[int, str, str]:
    """
    Run a host command

    Args:
        cmd: Command as list of strings
        timeout: Command timeout in seconds

    Returns:
        Tuple of (returncode, stdout, stderr)
    """
    LOG.debug(f"Executing: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return -1, '', f'Command timeout after {timeout} seconds'
    except OSError as e:
        return -1, '', str(e)


def ensure_directory(path: str, mode: int = 0o755) -> bool:
    """
    Ensure directory exists

    Args:
        path: Directory path
        mode: Directory permissions

    Returns:
        True if created or exists
    """
    try:
        os.makedirs(path, mode=mode, exist_ok=True)
        return True
    except OSError as e:
        LOG.error(f"Failed to create directory {path}: {e}")
        return False
