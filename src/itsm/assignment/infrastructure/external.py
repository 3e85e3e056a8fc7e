"""
Assignment Policy File
=======================

YAML-backed assignment policy with hot reload via watchdog.

Example ``assignment_policy.yaml``:

    eligible_roles: [admin, agent]
    closed_statuses:
      incident: [closed]
      service_request: [completed, rejected, cancelled]
      change_request: [completed, failed, rejected, cancelled]
"""

import threading
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from itsm.assignment.application import IAssignmentPolicyProvider
from itsm.assignment.domain import AssignmentPolicy
from itsm.config import settings
from itsm.core import ConfigurationException
from itsm.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class PolicyFileHandler(FileSystemEventHandler):
    """Watchdog event handler for assignment policy file changes."""

    def __init__(self, policy_manager: "AssignmentPolicyManager", policy_path: Path):
        self.policy_manager = policy_manager
        self.policy_path = policy_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.policy_path.resolve():
            logger.info("Assignment policy file changed", extra={"path": str(event.src_path)})
            self.policy_manager.reload()


class AssignmentPolicyManager(IAssignmentPolicyProvider):
    """
    Thread-safe assignment policy holder with hot-reload support.

    A missing file yields the default policy. A broken file on reload keeps
    the previous policy in place.
    """

    def __init__(self):
        self._policy: Optional[AssignmentPolicy] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> AssignmentPolicy:
        """Initial policy load. Raises ConfigurationException on invalid content."""
        self._path = Path(path)
        policy = self._load_from_file(self._path)
        with self._lock:
            self._policy = policy
        return policy

    def _load_from_file(self, path: Path) -> AssignmentPolicy:
        if not path.exists():
            logger.warning(
                "Assignment policy file not found, using defaults",
                extra={"path": str(path)}
            )
            return AssignmentPolicy()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationException(
                f"Malformed assignment policy file {path}", {"error": str(e)}
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationException(
                f"Invalid assignment policy in {path}", {"error": "top level must be a mapping"}
            )

        try:
            return AssignmentPolicy(**data)
        except (ValidationError, TypeError) as e:
            raise ConfigurationException(
                f"Invalid assignment policy in {path}", {"error": str(e)}
            ) from e

    def reload(self) -> bool:
        """Reload policy from file."""
        if self._path is None:
            return False

        try:
            new_policy = self._load_from_file(self._path)
        except (ConfigurationException, OSError) as e:
            logger.error("Failed to reload assignment policy", extra={"error": str(e)})
            return False

        with self._lock:
            self._policy = new_policy
        logger.info("Assignment policy reloaded")
        return True

    def start_watching(self) -> None:
        """
        Start watching the policy file for changes.

        Skipped when the file does not exist or the platform cannot watch it.
        """
        if self._path is None:
            raise RuntimeError("Policy not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "Assignment policy file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = PolicyFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent), recursive=False)
            self._observer.start()
            logger.info("Watching assignment policy file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static policy", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def get_policy(self) -> AssignmentPolicy:
        with self._lock:
            if self._policy is None:
                raise RuntimeError("Assignment policy not loaded")
            return self._policy


@lru_cache()
def get_policy_manager() -> AssignmentPolicyManager:
    """Process-wide policy manager, loaded from the configured path."""
    manager = AssignmentPolicyManager()
    manager.load(settings.assignment_policy_path)
    return manager
