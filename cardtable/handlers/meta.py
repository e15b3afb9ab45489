"""
Meta progression: legacy shards and unlocks that survive run resets.
"""

from __future__ import annotations
import logging
from typing import Callable

from ..engine_core.state import MetaData
from ..session.context import SessionContext

logger = logging.getLogger(__name__)


class MetaProgression:

    def __init__(self, ctx: SessionContext):
        self.ctx = ctx

    async def load(self) -> MetaData:
        return await self.ctx.repo.get(MetaData)

    async def update(self, fn: Callable[[MetaData], MetaData | None]) -> MetaData:
        return await self.ctx.repo.update(MetaData, fn)

    async def add_shards(self, amount: int) -> MetaData:
        def add(meta: MetaData) -> None:
            meta.legacy_shards += amount

        meta = await self.update(add)
        logger.info("Legacy shards %+d (now %d)", amount, meta.legacy_shards)
        return meta

    async def set_shards(self, amount: int) -> MetaData:
        def assign(meta: MetaData) -> None:
            meta.legacy_shards = amount

        return await self.update(assign)
