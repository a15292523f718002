"""Local device-link credential storage helpers."""

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def wipe_auth_state(auth_dir: str) -> bool:
    """Delete the credential directory. Returns False if deletion failed.

    A missing directory counts as wiped.
    """
    path = Path(auth_dir).resolve()
    if not path.exists():
        logger.info(f"No credentials to delete at {path}")
        return True
    try:
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as e:
        logger.warning(f"Could not delete credentials at {path}: {e}")
        return False
    logger.info(f"Deleted credentials: {path}")
    return True
