"""Versioned, lazily loaded cache of manifest definition tables."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol, Type, TypeVar

from pydantic import TypeAdapter

from .config import get_settings
from .errors import DefinitionNotFoundError, ManifestError, UnknownTableError
from .models import Manifest

logger = logging.getLogger(__name__)

M = TypeVar("M")


class ContentSource(Protocol):
    async def get_manifest(self) -> Manifest:
        ...

    async def fetch_table(self, path: str) -> Dict[int, Any]:
        ...


class CachedTable:
    """One definition table; contents always belong to exactly one version."""

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.version = ""
        self.defs: Dict[int, Any] = {}

    def replace(self, version: str, defs: Dict[int, Any]) -> None:
        self.defs = defs
        self.version = version

    def get(self, hash_identifier: int) -> Optional[Any]:
        return self.defs.get(hash_identifier)


class DefinitionCache:
    """Resolves hashes against definition tables named by the current manifest.

    ``_lock`` guards the manifest reference and the table directory and is
    never held across network I/O. Each table's own lock serializes its
    compare/fetch/replace, so a stale table is fetched once per version while
    other tables load independently.
    """

    def __init__(self, source: ContentSource, locale: Optional[str] = None) -> None:
        self.source = source
        self.locale = locale or get_settings().locale
        self._lock = asyncio.Lock()
        self._manifest_fetch = asyncio.Lock()
        self._manifest: Optional[Manifest] = None
        self._tables: Dict[str, CachedTable] = {}

    @property
    def manifest_version(self) -> str:
        return self._manifest.version if self._manifest else ""

    async def _load_manifest(self) -> Manifest:
        manifest = await self.source.get_manifest()
        if not manifest.version:
            raise ManifestError("missing manifest")
        async with self._lock:
            self._manifest = manifest
        logger.info("Loaded manifest version %s", manifest.version)
        return manifest

    async def ensure_manifest(self) -> Manifest:
        async with self._lock:
            if self._manifest is not None:
                return self._manifest
        async with self._manifest_fetch:
            async with self._lock:
                if self._manifest is not None:
                    return self._manifest
            return await self._load_manifest()

    async def check_updates(self) -> Manifest:
        """Unconditionally refetch the manifest."""
        async with self._manifest_fetch:
            return await self._load_manifest()

    async def ensure_table(self, table: str) -> CachedTable:
        await self.ensure_manifest()
        async with self._lock:
            cached = self._tables.setdefault(table, CachedTable())

        async with cached.lock:
            async with self._lock:
                manifest = self._manifest
            if manifest is None:
                raise ManifestError("missing manifest")
            if cached.version == manifest.version:
                return cached
            path = manifest.content_path(self.locale, table)
            if path is None:
                raise UnknownTableError(table)
            defs = await self.source.fetch_table(path)
            cached.replace(manifest.version, defs)
            logger.info(
                "Loaded %s (%d entries) for manifest %s", table, len(defs), manifest.version
            )
        return cached

    async def resolve(self, table: str, hash_identifier: int) -> Any:
        cached = await self.ensure_table(table)
        record = cached.get(hash_identifier)
        if record is None:
            logger.debug("Miss for %s in %s; refreshing manifest", hash_identifier, table)
            await self.check_updates()
            cached = await self.ensure_table(table)
            record = cached.get(hash_identifier)
        if record is None:
            raise DefinitionNotFoundError(table, hash_identifier)
        return record

    async def get_definition(self, table: str, hash_identifier: int) -> Any:
        return await self.resolve(table, hash_identifier)

    async def get_def(self, table: str, hash_identifier: int, model: Type[M]) -> M:
        record = await self.resolve(table, hash_identifier)
        return TypeAdapter(model).validate_python(record)
