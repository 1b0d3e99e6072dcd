from __future__ import annotations

import threading

from morpheus_pipeline.core.exceptions import BuildNotFoundError
from morpheus_pipeline.pipeline.build import Build


class BuildRegistry:
    """Builds keyed by id.

    Safe for lookups from any thread while each build has a single writer,
    the orchestrator generator driving it.
    """

    def __init__(self) -> None:
        self._builds: dict[str, Build] = {}
        self._lock = threading.Lock()

    def add(self, build: Build) -> None:
        with self._lock:
            self._builds[build.id] = build

    def get(self, build_id: str) -> Build | None:
        with self._lock:
            return self._builds.get(build_id)

    def require(self, build_id: str) -> Build:
        """Like :meth:`get` but raises :class:`BuildNotFoundError` for an unknown id."""
        build = self.get(build_id)
        if build is None:
            raise BuildNotFoundError(f"Build not found: {build_id}", details={"build_id": build_id})
        return build

    def remove(self, build_id: str) -> Build | None:
        with self._lock:
            return self._builds.pop(build_id, None)

    def list_builds(self) -> list[Build]:
        with self._lock:
            return list(self._builds.values())

    def __contains__(self, build_id: object) -> bool:
        with self._lock:
            return build_id in self._builds

    def __len__(self) -> int:
        with self._lock:
            return len(self._builds)
