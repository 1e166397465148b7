#!/usr/bin/env python3
"""
Quarry Client Library - search query parameters and asynchronous API calls

This package provides:
- Query, a typed view over an untyped, canonical parameter store
- A deterministic URL query-string codec for queries
- APIClient, whose *_async calls run in the background and report back to a
  listener on the calling event loop, with best-effort cancellation

Usage:
    from quarry_client import APIClient, CallbackListener, IndexQuery, Query

    query = Query("jazz", hits_per_page=20)
    query.build()  # 'hitsPerPage=20&query=jazz'

    async with APIClient(transport) as client:
        request = client.multiple_queries_async(
            [IndexQuery("albums", query)],
            CallbackListener(lambda result, error: print(result or error))
        )
        # request.cancel() suppresses the callback
"""

from quarry_common import __version__
from quarry_common.exceptions import (
    InvalidParameterError,
    InvalidRequestError,
    QuarryError,
    QuarryTimeoutError,
    ServerError,
    TransportError,
)

from .client import APIClient
from .codec import deserialize, serialize
from .commands import APIMethod, Command, CommandState, Request
from .dispatcher import CommandDispatcher
from .geo import GeoRect, LatLng
from .listeners import APIClientListener, CallbackListener
from .protocols import IndexQuery, Transport
from .query import (
    AlternativesAsExact,
    ExactOnSingleWordQuery,
    Query,
    QueryType,
    RemoveWordsIfNoResults,
    TypoTolerance,
)
from .store import ParameterStore

__all__ = [
    # Queries
    "Query",
    "ParameterStore",
    "LatLng",
    "GeoRect",
    "QueryType",
    "RemoveWordsIfNoResults",
    "TypoTolerance",
    "ExactOnSingleWordQuery",
    "AlternativesAsExact",
    "serialize",
    "deserialize",

    # Asynchronous API
    "APIClient",
    "APIClientListener",
    "CallbackListener",
    "APIMethod",
    "Command",
    "CommandState",
    "CommandDispatcher",
    "Request",
    "IndexQuery",
    "Transport",

    # Exceptions
    "QuarryError",
    "TransportError",
    "QuarryTimeoutError",
    "ServerError",
    "InvalidRequestError",
    "InvalidParameterError",
]
