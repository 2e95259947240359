"""Local file storage for originals, snapshots and annotated images."""

import os
import shutil
import threading
from enum import Enum
from typing import Optional

from ..config.defaults import DEFAULT_PATHS, DEFAULT_SETTINGS
from ..logging_config import get_logger
from ..utils import cleanup_old_files, ensure_directory_exists

logger = get_logger("local_storage")


class Locations(Enum):
    """Storage locations, each a sub-folder of the storage root."""
    ANNOTATIONS = "annotations"
    SNAPSHOTS = "snapshots"
    ORIGINALS = "originals"


class LocalStorage:
    """Maps storage locations to paths, copies files in, and purges old ones.

    Copy failures are logged and never raised.
    """

    def __init__(self,
                 root: str = DEFAULT_PATHS["local_storage_dir"],
                 purge_age: float = DEFAULT_SETTINGS["purgeAge"],
                 purge_interval: float = DEFAULT_SETTINGS["purgeInterval"]):
        """
        Args:
            root: Base directory for all locations
            purge_age: Minutes since last access after which a file is purged
            purge_interval: Minutes between purge runs, 0 disables the purge
        """
        self.root = root
        self.purge_age = purge_age
        self.purge_interval = purge_interval
        self._purge_timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._purging = False

    def initialize(self) -> None:
        """Create the storage folders."""
        logger.debug(f"Creating local storage folders in {self.root}.")
        for location in Locations:
            ensure_directory_exists(self.location_path(location))

    def location_path(self, location: Locations) -> str:
        return os.path.join(self.root, location.value)

    def map_to_local_storage(self, location: Locations, file_name: str) -> str:
        """Return the path the file's base name has in a storage location."""
        return os.path.join(self.root, location.value, os.path.basename(file_name))

    def copy_to_local_storage(self, location: Locations, file_name: str) -> Optional[str]:
        """Copy a file into a storage location. Returns the new path, or None on failure."""
        local_file_name = self.map_to_local_storage(location, file_name)
        try:
            shutil.copyfile(file_name, local_file_name)
        except OSError as e:
            logger.warning(f"Unable to copy {file_name} to local storage: {e}")
            return None

        return local_file_name

    def start_background_purge(self) -> None:
        """Run a purge now and then every purge_interval minutes."""
        if self.purge_interval <= 0:
            logger.debug("Background purge is disabled via settings.")
            return

        logger.debug(
            f"Enabling background purge every {self.purge_interval} minutes "
            f"for files older than {self.purge_age} minutes."
        )
        with self._lock:
            self._purging = True
        self._run_purge()

    def stop_background_purge(self) -> None:
        with self._lock:
            self._purging = False
            if self._purge_timer:
                self._purge_timer.cancel()
                self._purge_timer = None
        logger.debug("Background purge stopped.")

    def purge_old_files(self) -> int:
        """Purge every location once and return the number of deleted files."""
        logger.debug("Running purge")
        deleted = sum(cleanup_old_files(self.location_path(location), self.purge_age) for location in Locations)
        logger.debug(f"Purge complete, {deleted} file(s) removed")
        return deleted

    def _run_purge(self) -> None:
        try:
            self.purge_old_files()
        except Exception as e:
            logger.error(f"Background purge failed: {e}")

        with self._lock:
            if not self._purging:
                return
            self._purge_timer = threading.Timer(self.purge_interval * 60, self._run_purge)
            self._purge_timer.daemon = True
            self._purge_timer.start()
