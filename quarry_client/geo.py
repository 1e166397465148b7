"""Geo value types used by geo-search parameters."""

from dataclasses import dataclass


@dataclass(frozen=True)
class LatLng:
    """A pair of (latitude, longitude) in decimal degrees."""
    lat: float
    lng: float

    def encode(self) -> str:
        return f"{float(self.lat)!r},{float(self.lng)!r}"


@dataclass(frozen=True)
class GeoRect:
    """A rectangle in geo coordinates, given by two opposite corners."""
    p1: LatLng
    p2: LatLng

    def encode(self) -> str:
        return f"{self.p1.encode()},{self.p2.encode()}"
