# core/scope.py
import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional
from util.errors import ResourceCleanupFailed

logger = logging.getLogger(__name__)


class ScopeCollisionError(RuntimeError):
    """The working area for a job id already exists."""


class ScopeHandle:
    """
    Per-job working directory. Disposal is idempotent and never raises;
    a failed removal is logged and kept on `cleanup_error`.
    """

    def __init__(self, job_id: str, path: Path) -> None:
        self.job_id = job_id
        self.path = path
        self.cleanup_error: Optional[ResourceCleanupFailed] = None
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        try:
            await asyncio.to_thread(shutil.rmtree, self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            self.cleanup_error = ResourceCleanupFailed(
                f"Failed to remove working area: {e}", target=str(self.path)
            )
            logger.warning(
                "scope.dispose.error job=%s err=%s", self.job_id, type(e).__name__
            )
            return
        logger.debug("scope.dispose.ok job=%s", self.job_id)

    async def __aenter__(self) -> "ScopeHandle":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()


class ResourceScopes:
    """Allocates job working areas under a common root (settings.TEMP_DIR)."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def open(self, job_id: str) -> ScopeHandle:
        path = self._root / job_id
        self._root.mkdir(parents=True, exist_ok=True)
        try:
            path.mkdir()
        except FileExistsError as e:
            raise ScopeCollisionError(f"working area already exists for job {job_id}") from e
        logger.debug("scope.open job=%s path=%s", job_id, path)
        return ScopeHandle(job_id, path)
