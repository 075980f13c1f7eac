from __future__ import annotations

"""
Per-service data directories under the blueprint data root.

Layout: <root>/<subdir>/<service_id>, e.g. <root>/workspaces/42. The path is a
pure function of (subdir, service_id). Directories are bind-mounted into the
container read-write and deleted wholesale on destroy.
"""

import logging
import shutil
from pathlib import Path
from typing import Tuple, Union

logger = logging.getLogger("tangle_mcp")


class WorkspaceStore:
    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).expanduser()

    def path_for(self, subdir: str, service_id: int) -> Path:
        if not subdir or "/" in subdir or subdir in (".", ".."):
            raise ValueError(f"Invalid data subdirectory: {subdir!r}")
        if isinstance(service_id, bool) or not isinstance(service_id, int) or service_id < 0:
            raise ValueError(f"service_id must be a non-negative integer, got {service_id!r}")
        return self.root / subdir / str(service_id)

    def exists(self, subdir: str, service_id: int) -> bool:
        return self.path_for(subdir, service_id).is_dir()

    def ensure(self, subdir: str, service_id: int) -> Tuple[Path, bool]:
        """
        Create the directory if needed.

        Returns:
            (absolute path, True if this call created it)
        """
        path = self.path_for(subdir, service_id)
        created = not path.exists()
        path.mkdir(parents=True, exist_ok=True)
        if created:
            logger.info("Created data directory %s", path)
        return path.resolve(), created

    def purge(self, subdir: str, service_id: int) -> bool:
        """
        Delete the directory tree. Returns False when there was nothing to delete.

        Raises:
            OSError from shutil.rmtree; callers treat deletion as best-effort.
        """
        path = self.path_for(subdir, service_id)
        if not path.exists():
            return False
        shutil.rmtree(path)
        logger.info("Removed data directory %s", path)
        return True


__all__ = ["WorkspaceStore"]
