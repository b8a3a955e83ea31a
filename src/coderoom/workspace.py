"""Ephemeral workspaces for code execution.

Every execution attempt gets its own uniquely named scratch directory under a
configurable base directory.  The directory holds the submitted source file
and whatever artifact the toolchain produces.  It is removed when the attempt
ends, whatever the outcome: successful run, compile failure, timeout or an
unexpected exception.

Workspaces are not shared between executions and are never reused.
"""

from __future__ import annotations

import logging
import shutil
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Workspace:
    """Paths owned by one in-flight execution."""

    root_dir: Path
    source_path: Path
    artifact_path: Path


class WorkspaceManager:
    """Allocate and remove workspaces under ``base_dir``."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    def create(self, source_name: str, artifact_name: str) -> Workspace:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        root_dir = self.base_dir / f"run_{uuid.uuid4().hex}"
        root_dir.mkdir(mode=0o700)
        return Workspace(
            root_dir=root_dir,
            source_path=root_dir / source_name,
            artifact_path=root_dir / artifact_name,
        )

    def remove(self, workspace: Workspace) -> None:
        shutil.rmtree(workspace.root_dir, ignore_errors=True)
        if workspace.root_dir.exists():
            logger.warning("Workspace %s could not be fully removed", workspace.root_dir)

    def list(self) -> List[Path]:
        """Return the workspaces currently present on disk."""
        if not self.base_dir.exists():
            return []
        return sorted(p for p in self.base_dir.iterdir() if p.is_dir())

    @contextmanager
    def open(self, source_name: str, artifact_name: str) -> Iterator[Workspace]:
        workspace = self.create(source_name, artifact_name)
        logger.debug("Created workspace %s", workspace.root_dir)
        try:
            yield workspace
        finally:
            self.remove(workspace)
            logger.debug("Removed workspace %s", workspace.root_dir)
