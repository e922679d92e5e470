"""Optional geo annotation backed by a local MaxMind database.

The database is opened once at startup; when it is missing or unreadable
the monitor runs without location annotations.
"""
from __future__ import annotations

import dataclasses
import logging
import typing as t

import geoip2.database
import geoip2.errors
import maxminddb

log = logging.getLogger("bandwatch.geo")


@dataclasses.dataclass(frozen=True)
class GeoRecord:
    country: t.Optional[str] = None
    region: t.Optional[str] = None
    city: t.Optional[str] = None

    def label(self) -> str:
        return " ".join(p for p in (self.country, self.region, self.city) if p)


class GeoLookup:
    def __init__(self, reader):
        self._reader = reader

    @classmethod
    def open(cls, path: t.Optional[str]) -> t.Optional["GeoLookup"]:
        """Open `path`, or return None if it is empty or cannot be read."""
        if not path:
            return None
        try:
            reader = geoip2.database.Reader(path)
        except (OSError, ValueError, maxminddb.InvalidDatabaseError) as e:
            log.warning("Error opening geo database %s: %s", path, e)
            log.info("Continuing without geo database")
            return None
        log.info("Geo database: %s", path)
        return cls(reader)

    def lookup(self, ip: str) -> t.Optional[GeoRecord]:
        try:
            res = self._reader.city(ip)
        except (geoip2.errors.GeoIP2Error, maxminddb.InvalidDatabaseError, ValueError, TypeError):
            return None
        rec = GeoRecord(
            country=res.country.name,
            region=res.subdivisions.most_specific.name,
            city=res.city.name,
        )
        if not rec.label():
            return None
        return rec

    def close(self) -> None:
        self._reader.close()
