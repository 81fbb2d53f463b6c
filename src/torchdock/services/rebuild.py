# services/rebuild.py
"""
Service for incremental PyTorch rebuilds inside the container.
"""

import time
from typing import Optional

from torchdock.core.exceptions import TorchdockError
from torchdock.core.rebuild import rebuild, refresh_library_links
from torchdock.models.rebuild import RebuildResult

from .base import BaseService, ServiceResult


class RebuildService(BaseService):
    """Service wrapping `python setup.py build` and the torch/lib symlinks."""

    def rebuild(
        self,
        source_dir: Optional[str] = None,
        refresh_links: bool = True,
    ) -> ServiceResult[RebuildResult]:
        """
        Rebuild changed PyTorch sources.

        Args:
            source_dir: PyTorch checkout (default: [rebuild].source_dir)
            refresh_links: Re-point torch/lib at the rebuilt libraries

        Returns:
            ServiceResult containing RebuildResult
        """
        source_dir = source_dir or self.config.get("rebuild", "source_dir", "/workspace/pytorch")
        started = time.monotonic()

        try:
            rebuild(source_dir)
            links = refresh_library_links(source_dir) if refresh_links else []
        except TorchdockError as e:
            return ServiceResult.fail(e.message)

        return ServiceResult.ok(
            data=RebuildResult(
                source_dir=str(source_dir),
                duration_seconds=time.monotonic() - started,
                links=[str(link) for link in links],
            ),
            message="Build complete! The symlinks in torch/lib/ now point to the updated libraries.",
        )
