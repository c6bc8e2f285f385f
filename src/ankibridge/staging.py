"""Transient media staging.

Inbound media bytes are written to a private per-call directory, exposed to the host
through a content URI with an explicit read grant, and deleted once the host
call that consumed them returns.
"""

from __future__ import annotations

import logging
import re
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass
from pathlib import Path

import aiofiles

from ankibridge.config.models import MediaConfig
from ankibridge.host import UriGrants

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s")


def sanitize_media_name(preferred_name: str) -> str:
    """Replace every whitespace character with an underscore."""
    return _WHITESPACE.sub("_", preferred_name)


@dataclass(frozen=True, slots=True)
class MediaCapability:
    """Single-use handle the host can dereference to read a staged file."""

    uri: str
    path: Path
    grantee: str


class MediaStager:
    """Stages media payloads for the host's add-media call."""

    def __init__(self, grants: UriGrants, config: MediaConfig | None = None) -> None:
        config = config or MediaConfig()
        self._grants = grants
        self._staging_dir = config.staging_dir
        self._authority = config.authority
        self._host_package = config.host_package
        self._leftovers: set[Path] = set()

    @property
    def staging_dir(self) -> Path:
        return self._staging_dir

    def _uri_for(self, path: Path) -> str:
        return f"content://{self._authority}/{path.parent.name}/{path.name}"

    @asynccontextmanager
    async def stage(
        self, data: bytes, preferred_name: str
    ) -> AsyncIterator[MediaCapability]:
        """Write ``data`` to a staged file and yield a capability for it.

        The backing file is scheduled for deletion when the block exits,
        whether or not the host accepted it.
        """
        name = sanitize_media_name(preferred_name)
        if not name or name in (".", "..") or "/" in name or "\x00" in name:
            raise ValueError(f"invalid media name: {preferred_name!r}")

        self._staging_dir.mkdir(parents=True, exist_ok=True)
        # Concurrent calls may share a preferred name
        call_dir = Path(tempfile.mkdtemp(prefix="call-", dir=self._staging_dir))
        path = call_dir / name

        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)

            capability = MediaCapability(
                uri=self._uri_for(path), path=path, grantee=self._host_package
            )
            logger.debug(
                "media_staged",
                extra={"path": str(path), "size": len(data), "uri": capability.uri},
            )
            self._grants.grant_read(self._host_package, capability.uri)
            yield capability
        finally:
            self._discard(path)

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
            with suppress(FileNotFoundError):
                path.parent.rmdir()
        except OSError:
            logger.warning(
                "media_cleanup_deferred", extra={"path": str(path)}, exc_info=True
            )
            self._leftovers.add(path)
        else:
            self._leftovers.discard(path)

    def cleanup(self) -> int:
        """Retry deletion of staged files that could not be removed earlier.

        Returns:
            Number of files still left behind.
        """
        for path in list(self._leftovers):
            self._discard(path)
        return len(self._leftovers)

    @property
    def pending_cleanup(self) -> frozenset[Path]:
        return frozenset(self._leftovers)
