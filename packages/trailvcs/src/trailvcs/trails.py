"""Where trail files live in a repository and how to find them."""

import json
import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor

from .errors import ForbiddenError, NotFoundError
from .models import RepositoryContent

logger = logging.getLogger(__name__)

TRAIL_SUFFIX = ".trail.json"

# Repository root first; order is fixed so results are reproducible
TRAIL_SEARCH_PATHS = ("", "tours", "trails", "src/trails", "src/tours")

DirectoryProbe = Callable[[str], list[RepositoryContent]]


def is_trail_file(name: str) -> bool:
    """Check whether a file name follows the trail naming convention."""
    return name.endswith(TRAIL_SUFFIX)


def make_branch_name(prefix: str = "trailguide/update-") -> str:
    """Build a per-invocation branch name with a millisecond timestamp."""
    return f"{prefix}{time.time_ns() // 1_000_000}"


def serialize_trail(trail: object) -> str:
    """Serialize a trail as pretty-printed JSON."""
    return json.dumps(trail, indent=2, ensure_ascii=False)


def probe_directories(
    probe: DirectoryProbe,
    paths: Iterable[str] = TRAIL_SEARCH_PATHS,
    max_workers: int = 5,
) -> list[RepositoryContent]:
    """
    Run a directory probe over every candidate path and collect trail files.

    A directory that does not exist or cannot be read contributes nothing;
    every other error propagates.

    Args:
        probe: Lists one directory, returning its entries
        paths: Candidate directories, repository root as ``""``
        max_workers: Thread pool size for the probes

    Returns:
        Trail files in search-path order
    """
    paths = list(paths)

    def safe_probe(path: str) -> list[RepositoryContent]:
        try:
            return probe(path)
        except (NotFoundError, ForbiddenError) as e:
            logger.debug("Skipping trail directory %r: %s", path or "/", e.message)
            return []

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        listings = list(pool.map(safe_probe, paths))

    trails = [
        item
        for listing in listings
        for item in listing
        if item.kind == "file" and is_trail_file(item.name)
    ]
    logger.debug("Found %d trail files across %d directories", len(trails), len(paths))
    return trails
