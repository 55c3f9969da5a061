"""Best-effort removal of local staging files."""
import logging
from pathlib import Path
from typing import Iterable

import aiofiles.os

logger = logging.getLogger(__name__)


async def remove_local(path: Path) -> bool:
    """Delete a local file, returning True if it was removed.

    A missing file is not an error. Other OS errors are logged and reported
    as False so a failed cleanup never fails the request that triggered it.
    """
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Could not delete local file %s: %s", path, exc)
        return False
    logger.info("Deleted local file: %s", path)
    return True


async def remove_all(paths: Iterable[Path]) -> int:
    """Delete every path in *paths*; returns how many were removed."""
    removed = 0
    for path in paths:
        if await remove_local(path):
            removed += 1
    return removed
