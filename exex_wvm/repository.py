"""
State repository: the pipeline-facing seam over the BigQuery adapter.

Callers depend on ``StateRepository``; the store behind it only has to satisfy
the ``StateStore`` protocol, so tests can hand in an in-memory double.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic_core import to_jsonable_python

from exex_wvm.domain.models import ExecutionTipState
from exex_wvm.domain.schema import STATE_TABLE


@runtime_checkable
class StateStore(Protocol):
    """
    Storage operations the repository needs.

    ``BigQueryClient`` implements this protocol.
    """

    async def insert_state(self, table_name: str, state: ExecutionTipState) -> None:
        ...

    async def query_state(self, block_id: str) -> Optional[str]:
        ...

    async def fetch_state(self, block_id: str) -> Optional[str]:
        ...


class StateRepository:
    def __init__(self, store: StateStore) -> None:
        self.store = store

    async def save(self, state: ExecutionTipState) -> None:
        await self.store.insert_state(STATE_TABLE, state)

    async def get_by_block_id(self, block_id: str) -> Optional[str]:
        """Stored payload for ``block_id``; None on no match or on query failure."""
        return await self.store.query_state(block_id)

    async def fetch_by_block_id(self, block_id: str) -> Optional[str]:
        """Stored payload for ``block_id``; query failures raise QueryError."""
        return await self.store.fetch_state(block_id)


def serialize_block(block: Any) -> str:
    return json.dumps(to_jsonable_python(block))


async def save_block(
    repository: StateRepository,
    block: Any,
    block_number: int,
    arweave_id: str,
    block_hash: str,
) -> ExecutionTipState:
    """
    Serialize ``block`` to JSON and persist it as the execution tip state.

    Returns the state that was written.
    """
    state = ExecutionTipState(
        block_number=block_number,
        arweave_id=arweave_id,
        sealed_block_with_senders_serialized=serialize_block(block),
        block_hash=block_hash,
    )
    await repository.save(state)
    return state


__all__ = ["StateRepository", "StateStore", "save_block", "serialize_block"]
