"""
Shared fixtures for the location cache test suite.

Provides an in-memory stand-in for the async Valkey command surface, a
cache store wired to it, and a seeded in-memory SQLite listing store.
"""

import asyncio
import fnmatch
import math
import re
import time
from decimal import Decimal

import pytest
import pytest_asyncio
from valkey import exceptions as valkey_errors

from realty_cache.cache import CacheStore, ValkeyClient, ValkeyConfig
from realty_cache.database import DatabaseConfig, Location, Property
from realty_cache.services import SqlLocationRepository


class FakeValkey:
    """
    In-memory async Valkey with expiry and an outage switch.

    Set ``down = True`` to make every command raise a connection error.
    """

    def __init__(self):
        self.data = {}
        self.down = False
        self.clock_offset = 0.0
        self.evicted_keys = 0
        self.commands = []
        self.scan_delay = 0.0
        self._order = []

    @staticmethod
    def _key(key):
        return key.decode() if isinstance(key, bytes) else str(key)

    def _now(self):
        return time.monotonic() + self.clock_offset

    def advance(self, seconds):
        """Move the expiry clock forward."""
        self.clock_offset += seconds

    def _check(self, command):
        self.commands.append(command)
        if self.down:
            raise valkey_errors.ConnectionError("Connection refused")

    def _live(self, key):
        entry = self.data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._now():
            del self.data[key]
            return None
        return entry

    async def ping(self):
        self._check("ping")
        return True

    async def get(self, key):
        self._check("get")
        entry = self._live(self._key(key))
        return entry[0] if entry else None

    async def set(self, key, value, ex=None):
        self._check("set")
        if isinstance(value, str):
            value = value.encode()
        expires_at = self._now() + ex if ex else None
        key = self._key(key)
        if key not in self._order:
            self._order.append(key)
        self.data[key] = (value, expires_at)
        return True

    async def delete(self, *keys):
        self._check("delete")
        removed = 0
        for key in keys:
            key = self._key(key)
            if self._live(key) is not None:
                del self.data[key]
                removed += 1
        return removed

    async def exists(self, key):
        self._check("exists")
        return 1 if self._live(self._key(key)) else 0

    async def ttl(self, key):
        self._check("ttl")
        entry = self._live(self._key(key))
        if entry is None:
            return -2
        if entry[1] is None:
            return -1
        return max(1, math.ceil(entry[1] - self._now()))

    async def flushdb(self):
        self._check("flushdb")
        self.data.clear()
        return True

    async def info(self, section=None):
        self._check("info")
        if section == "memory":
            return {"used_memory": 2 * 1024 * 1024 + sum(len(v) for v, _ in self.data.values())}
        return {"evicted_keys": self.evicted_keys}

    async def dbsize(self):
        self._check("dbsize")
        return len([key for key in list(self.data) if self._live(key)])

    async def scan(self, cursor=0, match=None, count=None):
        """
        Page through keys in first-write order.

        The cursor is a position in that order, so keys deleted mid-walk
        never shift later pages.
        """
        self._check("scan")
        if self.scan_delay:
            await asyncio.sleep(self.scan_delay)

        # Glob escapes become single-character classes for fnmatch
        glob = re.sub(r"\\(.)", r"[\1]", match) if match else None
        end = cursor + (count or 10)
        keys = []
        for key in self._order[cursor:end]:
            if self._live(key) is None:
                continue
            if glob is None or fnmatch.fnmatchcase(key, glob):
                keys.append(key.encode())
        return (end if end < len(self._order) else 0), keys

    async def aclose(self):
        pass


@pytest.fixture
def fake_valkey():
    return FakeValkey()


@pytest.fixture
def valkey_config():
    return ValkeyConfig(
        host="cache.test",
        operation_timeout=0.5,
        reconnect_interval=0.01,
        reconnect_retry_interval=0.01,
    )


@pytest_asyncio.fixture
async def store(fake_valkey, valkey_config):
    cache_store = CacheStore(client=ValkeyClient(valkey_config, connection=fake_valkey))
    await cache_store.initialize()
    yield cache_store
    await cache_store.close()


def _add_location(session, name, slug, type_, parent=None, **content):
    location = Location(
        name=name,
        slug=slug,
        type=type_,
        parent_id=parent.location_id if parent else None,
        **content,
    )
    session.add(location)
    session.flush()
    return location


@pytest.fixture
def db_config():
    config = DatabaseConfig("sqlite://")
    config.create_tables()
    yield config
    config.close()


@pytest.fixture
def seeded_locations(db_config):
    """
    Gauteng -> Sandton -> Sandown with 42 published listings in Sandown,
    plus Pretoria -> Hatfield with 3 listings and one sold listing.

    Returns a dict of location ids and the id of one Sandown listing.
    """
    with db_config.get_session_context() as session:
        gauteng = _add_location(
            session, "Gauteng", "gauteng", "province",
            hero_image="gauteng.jpg", latitude=-26.27, longitude=28.11,
        )
        sandton = _add_location(
            session, "Sandton", "sandton", "city", gauteng,
            seo_title="Sandton Property Guide",
            seo_description="Homes and apartments in Sandton.",
            hero_image="sandton.jpg",
            latitude=-26.1076, longitude=28.0567,
            viewport_ne_lat=-26.05, viewport_ne_lng=28.10,
            viewport_sw_lat=-26.15, viewport_sw_lng=28.00,
        )
        sandown = _add_location(session, "Sandown", "sandown", "suburb", sandton)
        pretoria = _add_location(session, "Pretoria", "pretoria", "city", gauteng)
        hatfield = _add_location(session, "Hatfield", "hatfield", "suburb", pretoria)

        listings = []
        for index in range(42):
            listing_type = "sale" if index < 30 else "rent"
            price = Decimal(2_000_000 + index * 10_000) if listing_type == "sale" else Decimal(15_000 + index * 100)
            listings.append(Property(
                title=f"Sandown listing {index}",
                listing_type=listing_type,
                status="published",
                price=price,
                suburb_id=sandown.location_id,
                city_id=sandton.location_id,
                province_id=gauteng.location_id,
            ))
        for index in range(3):
            listings.append(Property(
                title=f"Hatfield listing {index}",
                listing_type="sale",
                status="published",
                price=Decimal(900_000 + index * 50_000),
                suburb_id=hatfield.location_id,
                city_id=pretoria.location_id,
                province_id=gauteng.location_id,
            ))
        listings.append(Property(
            title="Hatfield sold listing",
            listing_type="sale",
            status="sold",
            price=Decimal(5_000_000),
            suburb_id=hatfield.location_id,
            city_id=pretoria.location_id,
            province_id=gauteng.location_id,
        ))
        session.add_all(listings)
        session.flush()

        return {
            "gauteng": gauteng.location_id,
            "sandton": sandton.location_id,
            "sandown": sandown.location_id,
            "pretoria": pretoria.location_id,
            "hatfield": hatfield.location_id,
            "sandown_listing": listings[0].property_id,
        }


@pytest.fixture
def repository(db_config, seeded_locations):
    return SqlLocationRepository(db_config)
