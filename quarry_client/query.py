#!/usr/bin/env python3
"""
Search query parameters.

There are two ways to access parameters:

1. The typed properties declared on Query (recommended):

       query = Query("jazz")
       query.hits_per_page = 20
       query.around_lat_lng = LatLng(48.85, 2.35)

2. The untyped get()/set() accessors, for parameters this client does not
   model yet:

       query.set("someNewParameter", "value")

Typed properties only encode into and decode out of the untyped store, so
both views always agree. build() serializes the store into a URL query string
and parse() reads one back.
"""

from enum import Enum
from typing import Any, List, Optional

from .codec import deserialize, serialize
from .parameters import (
    RADIUS_ALL,
    BooleanParameter,
    BoundingBoxParameter,
    EnumParameter,
    EnumSetParameter,
    IntegerParameter,
    JSONArrayParameter,
    LatLngParameter,
    Parameter,
    PolygonParameter,
    RadiusParameter,
    StopWordsParameter,
    StringListParameter,
    StringParameter,
)
from .store import ParameterStore


class QueryType(Enum):
    """How query words are interpreted as prefixes."""
    PREFIX_ALL = "prefixAll"    # All query words are interpreted as prefixes
    PREFIX_LAST = "prefixLast"  # Only the last word is interpreted as a prefix
    PREFIX_NONE = "prefixNone"  # No query word is interpreted as a prefix


class RemoveWordsIfNoResults(Enum):
    """Strategy when a query does not return any result."""
    LAST_WORDS = "lastWords"
    FIRST_WORDS = "firstWords"
    NONE = "none"
    ALL_OPTIONAL = "allOptional"


class TypoTolerance(Enum):
    TRUE = "true"
    FALSE = "false"
    MIN = "min"
    STRICT = "strict"


class ExactOnSingleWordQuery(Enum):
    NONE = "none"
    ATTRIBUTE = "attribute"
    WORD = "word"


class AlternativesAsExact(Enum):
    IGNORE_PLURALS = "ignorePlurals"
    SINGLE_WORD_SYNONYM = "singleWordSynonym"
    MULTI_WORDS_SYNONYM = "multiWordsSynonym"


class Query:
    """Describes all parameters of a search query."""

    RADIUS_ALL = RADIUS_ALL

    # ------------------------------------------------------------------
    # Typed parameters. Please keep them sorted by wire key.
    # ------------------------------------------------------------------

    advanced_syntax = BooleanParameter(
        "advancedSyntax",
        doc="Enable the advanced query syntax (phrase queries, prohibit operator).")
    allow_typos_on_numeric_tokens = BooleanParameter(
        "allowTyposOnNumericTokens",
        doc="If false, disable typo-tolerance on numeric tokens.")
    alternatives_as_exact = EnumSetParameter("alternativesAsExact", AlternativesAsExact)
    analytics = BooleanParameter(
        "analytics",
        doc="If false, this query is not taken into account in analytics.")
    analytics_tags = StringListParameter("analyticsTags", doc="Tags identifying the query in analytics.")
    around_lat_lng = LatLngParameter("aroundLatLng", doc="Search for entries around a given point.")
    around_lat_lng_via_ip = BooleanParameter(
        "aroundLatLngViaIP",
        doc="Search around the user's location, using IP geolocation.")
    around_precision = IntegerParameter("aroundPrecision")
    around_radius = RadiusParameter(
        "aroundRadius",
        doc="Radius in meters for around queries, or Query.RADIUS_ALL for no limit.")
    attributes_to_highlight = StringListParameter("attributesToHighlight")
    attributes_to_retrieve = StringListParameter("attributesToRetrieve", legacy_keys=("attributes",))
    attributes_to_snippet = StringListParameter(
        "attributesToSnippet",
        doc="Attributes to snippet, as 'attributeName:nbWords'.")
    disable_typo_tolerance_on_attributes = StringListParameter("disableTypoToleranceOnAttributes")
    distinct = IntegerParameter("distinct", doc="Maximum number of hits to keep per distinct value.")
    exact_on_single_word_query = EnumParameter("exactOnSingleWordQuery", ExactOnSingleWordQuery)
    facet_filters = JSONArrayParameter("facetFilters")
    facets = StringListParameter("facets", doc="Attributes to use for faceting ('*' for all).")
    filters = StringParameter("filters")
    get_ranking_info = BooleanParameter(
        "getRankingInfo",
        doc="If true, hits carry ranking information in _rankingInfo.")
    highlight_post_tag = StringParameter("highlightPostTag")
    highlight_pre_tag = StringParameter("highlightPreTag")
    hits_per_page = IntegerParameter("hitsPerPage", doc="Number of hits per page. Defaults to 10.")
    ignore_plurals = BooleanParameter("ignorePlurals", doc="If true, plurals are not considered typos.")
    inside_bounding_box = BoundingBoxParameter(
        "insideBoundingBox",
        doc="Search inside one or more rectangles (OR).")
    inside_polygon = PolygonParameter(
        "insidePolygon",
        doc="Search inside a polygon of at least three points.")
    max_values_per_facet = IntegerParameter("maxValuesPerFacet")
    min_proximity = IntegerParameter("minProximity")
    min_word_size_for_1_typo = IntegerParameter("minWordSizefor1Typo")
    min_word_size_for_2_typos = IntegerParameter("minWordSizefor2Typos")
    minimum_around_radius = IntegerParameter("minimumAroundRadius")
    numeric_filters = JSONArrayParameter("numericFilters")
    optional_words = StringListParameter("optionalWords")
    page = IntegerParameter("page", doc="Page to retrieve, zero based.")
    query = StringParameter("query", doc="Full text query.")
    query_type = EnumParameter("queryType", QueryType)
    remove_stop_words = StopWordsParameter("removeStopWords")
    remove_words_if_no_results = EnumParameter("removeWordsIfNoResults", RemoveWordsIfNoResults)
    replace_synonyms_in_highlight = BooleanParameter("replaceSynonymsInHighlight")
    restrict_searchable_attributes = StringListParameter("restrictSearchableAttributes")
    snippet_ellipsis_text = StringParameter("snippetEllipsisText")
    synonyms = BooleanParameter("synonyms", doc="If false, synonyms are not used for this query.")
    tag_filters = JSONArrayParameter("tagFilters")
    typo_tolerance = EnumParameter("typoTolerance", TypoTolerance)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(self, query_text: Optional[str] = None, **params: Any):
        """
        Create a query.

        Args:
            query_text: Optional full text query
            **params: Typed parameters by attribute name, e.g. hits_per_page=20

        Raises:
            TypeError: If a keyword is not a known parameter
        """
        self._store = ParameterStore()
        if query_text is not None:
            self.query = query_text
        for name, value in params.items():
            if not isinstance(getattr(type(self), name, None), Parameter):
                raise TypeError(f"Unknown query parameter: {name}")
            setattr(self, name, value)

    @classmethod
    def from_store(cls, store: ParameterStore) -> "Query":
        """Wrap a copy of an existing store."""
        query = cls()
        query._store = store.copy()
        return query

    @classmethod
    def parameter_names(cls) -> List[str]:
        """Attribute names of all typed parameters."""
        return [name for name in dir(cls) if isinstance(getattr(cls, name), Parameter)]

    @property
    def store(self) -> ParameterStore:
        return self._store

    def copy(self) -> "Query":
        return type(self).from_store(self._store)

    __copy__ = copy

    # ------------------------------------------------------------------
    # Low-level (untyped) accessors
    # ------------------------------------------------------------------

    def set(self, name: str, value: Any) -> "Query":
        """
        Set a parameter in an untyped fashion.

        Intended for parameters this client does not support yet.

        Args:
            name: The parameter's wire name
            value: The value, or None to remove it; stored as a string

        Returns:
            This query, for chaining
        """
        self._store.set(name, value)
        return self

    def get(self, name: str) -> Optional[str]:
        """Get a parameter's raw value, or None if it is not set."""
        return self._store.get(name)

    def __getitem__(self, name: str) -> Optional[str]:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: str) -> bool:
        return name in self._store

    # ------------------------------------------------------------------
    # Parsing/serialization
    # ------------------------------------------------------------------

    def build(self) -> str:
        """Build the URL query string (the part after '?') for this query."""
        return serialize(self._store)

    @classmethod
    def parse(cls, query_parameters: str) -> "Query":
        """Parse a query from a URL query string."""
        query = cls()
        query._store = deserialize(query_parameters)
        return query

    # ------------------------------------------------------------------
    # Equality
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Query):
            return NotImplemented
        return self._store == other._store

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return f"{type(self).__name__}{{{self.build()}}}"
