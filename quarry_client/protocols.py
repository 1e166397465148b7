#!/usr/bin/env python3
"""
Quarry Client Protocol Models

The transport contract consumed by the dispatcher, plus the request models
used to validate command arguments before they reach the transport.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Protocol, runtime_checkable

from pydantic import BaseModel, Field, field_validator

from quarry_common.constants import DEFAULT_MULTIPLE_QUERIES_STRATEGY, MULTIPLE_QUERIES_STRATEGIES

from .query import Query


# ============================================================================
# TRANSPORT CONTRACT
# ============================================================================

@runtime_checkable
class Transport(Protocol):
    """
    Synchronous search API operations.

    Implementations perform the network I/O. Each call returns the decoded
    response or raises a QuarryError subclass; retries and timeouts are the
    implementation's business.
    """

    def list_indexes(self) -> Dict[str, Any]: ...

    def delete_index(self, index_name: str) -> Dict[str, Any]: ...

    def move_index(self, src_index_name: str, dst_index_name: str) -> Dict[str, Any]: ...

    def copy_index(self, src_index_name: str, dst_index_name: str) -> Dict[str, Any]: ...

    def multiple_queries(self, queries: List["IndexQuery"], strategy: str) -> Dict[str, Any]: ...

    def batch(self, actions: List[Dict[str, Any]]) -> Dict[str, Any]: ...


@dataclass
class IndexQuery:
    """A query targeting one index, as sent in a multiple-queries request."""
    index_name: str
    query: Query

    def to_request(self) -> Dict[str, str]:
        """Request entry for the multiple-queries payload."""
        return {"indexName": self.index_name, "params": self.query.build()}


# ============================================================================
# COMMAND ARGUMENT MODELS
# ============================================================================

class IndexNameArguments(BaseModel):
    """Arguments for DELETE_INDEX"""
    index_name: str = Field(..., description="Name of the index")

    @field_validator('index_name')
    def validate_index_name(cls, v):
        if not v:
            raise ValueError("index_name must not be empty")
        return v


class IndexPairArguments(BaseModel):
    """Arguments for MOVE_INDEX and COPY_INDEX"""
    src_index_name: str = Field(..., description="Index to move or copy")
    dst_index_name: str = Field(..., description="Destination index, overwritten if it exists")

    @field_validator('src_index_name', 'dst_index_name')
    def validate_names(cls, v):
        if not v:
            raise ValueError("index names must not be empty")
        return v


class MultipleQueriesArguments(BaseModel):
    """Arguments for MULTIPLE_QUERIES"""
    queries: List[Any] = Field(..., description="IndexQuery entries, one per target index")
    strategy: str = Field(default=DEFAULT_MULTIPLE_QUERIES_STRATEGY)

    @field_validator('queries')
    def validate_queries(cls, v):
        if not v:
            raise ValueError("at least one query is required")
        for entry in v:
            if not isinstance(entry, IndexQuery):
                raise ValueError(f"expected IndexQuery, got {type(entry).__name__}")
        return v

    @field_validator('strategy')
    def validate_strategy(cls, v):
        if v not in MULTIPLE_QUERIES_STRATEGIES:
            raise ValueError(f"strategy must be one of {MULTIPLE_QUERIES_STRATEGIES}, got {v!r}")
        return v


class BatchArguments(BaseModel):
    """Arguments for BATCH"""
    actions: List[Dict[str, Any]] = Field(..., description="Batch operations")
