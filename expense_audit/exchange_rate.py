# -*- coding: utf-8 -*-
"""
Exchange Rate Service Module

This module provides exchange rate lookups against Open Exchange Rates:
1. In-memory cache of full rate tables, keyed by date (optional)
2. Redis-backed KV store (optional, shared across runs)
3. Open Exchange Rates API (latest.json for today, historical/{date}.json otherwise)

Rates follow the API semantics: rates[currency] = units of that currency
per 1 unit of the base currency.
"""

import requests
import logging
import threading
import time
from datetime import date, datetime
from typing import Optional, Dict, Union
from zoneinfo import ZoneInfo

from expense_audit.errors import RateLookupError
from expense_audit.services.kv_store import KVStore

logger = logging.getLogger(__name__)


def today_key() -> str:
    """Current UTC calendar date as YYYY-MM-DD"""
    return datetime.now(ZoneInfo("UTC")).strftime("%Y-%m-%d")


def _date_key(rate_date: Union[date, str]) -> str:
    if isinstance(rate_date, date):
        return rate_date.isoformat()
    return rate_date


def _pick_rate(rates: Dict[str, float], date_key: str, currency: str) -> float:
    rate = rates.get(currency)
    if not rate:
        raise RateLookupError(
            f"Currency {currency} not found in rate table for {date_key}",
            date=date_key,
            currency=currency,
        )
    return float(rate)


class ExchangeRateClient:
    """Open Exchange Rates client with a per-date rate table cache"""

    API_BASE_URL = "https://openexchangerates.org/api"

    # Historical tables never change; today's table does
    HISTORICAL_CACHE_TTL = 86400 * 30

    KV_KEY = "exchange_rate:{date}"

    def __init__(
        self,
        api_key: str,
        cache_enabled: bool = True,
        kv_store: Optional[KVStore] = None,
        timeout: int = 10,
        latest_cache_ttl: int = 3600,
    ):
        """
        Initialize exchange rate client

        Args:
            api_key: Open Exchange Rates app id
            cache_enabled: When False every call hits the API and the cache is never read or written
            kv_store: Optional KV store persisting rate tables (only used when caching is enabled)
            timeout: HTTP timeout in seconds
            latest_cache_ttl: KV TTL for today's table
        """
        self.api_key = api_key
        self.cache_enabled = cache_enabled
        self.kv_store = kv_store
        self.timeout = timeout
        self.latest_cache_ttl = latest_cache_ttl

        self._cache: Dict[str, Dict[str, float]] = {}
        self._cache_lock = threading.Lock()
        self._date_locks: Dict[str, threading.Lock] = {}

    def build_url(self, date_key: str) -> str:
        """Pick latest.json for today, historical/{date}.json for any other date"""
        if date_key == today_key():
            return f"{self.API_BASE_URL}/latest.json"
        return f"{self.API_BASE_URL}/historical/{date_key}.json"

    def get_rate(self, rate_date: Union[date, str], currency: str) -> float:
        """
        Get the rate of a currency against the base currency on a date

        A cached table is authoritative for its date: a currency missing from
        it fails without re-fetching.

        Args:
            rate_date: Calendar date (date or YYYY-MM-DD)
            currency: Currency code (ISO 4217)

        Returns:
            Units of currency per 1 base unit

        Raises:
            RateLookupError: upstream failure, malformed response or unknown currency
        """
        date_key = _date_key(rate_date)

        if not self.cache_enabled:
            return _pick_rate(self.fetch_rates(date_key), date_key, currency)

        rates = self._cache.get(date_key)
        if rates is not None:
            logger.debug(f"Cache hit for {date_key}")
            return _pick_rate(rates, date_key, currency)

        # Serialize first-time lookups per date; late arrivals read what the first stored
        with self._lock_for(date_key):
            rates = self._cache.get(date_key)
            if rates is not None:
                logger.debug(f"Cache filled by concurrent lookup for {date_key}")
                return _pick_rate(rates, date_key, currency)

            rates = self._get_stored_rates(date_key)
            if rates is not None:
                rate = _pick_rate(rates, date_key, currency)
                self._store_memory(date_key, rates)
                return rate

            logger.info(f"Cache miss for {date_key}, querying Open Exchange Rates")
            rates = self.fetch_rates(date_key)
            rate = _pick_rate(rates, date_key, currency)
            self._store_memory(date_key, rates)
            self._store_kv(date_key, rates)
            return rate

    def fetch_rates(self, date_key: str) -> Dict[str, float]:
        """
        Fetch the full rate table for a date (single attempt, no retry)

        Args:
            date_key: Date as YYYY-MM-DD

        Returns:
            Mapping of currency code to rate

        Raises:
            RateLookupError: request failed, non-2xx status, or no 'rates' field
        """
        url = self.build_url(date_key)

        try:
            response = requests.get(url, params={"app_id": self.api_key}, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Open Exchange Rates request error for {date_key}: {e}")
            raise RateLookupError(f"Exchange rate request failed for {date_key}: {e}", date=date_key) from e

        if not response.ok:
            logger.error(f"Open Exchange Rates returned {response.status_code} for {date_key}")
            raise RateLookupError(
                f"Exchange rate request failed: {response.status_code} {response.reason}. URL: {url}",
                date=date_key,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RateLookupError(f"Invalid JSON in exchange rate response for {date_key}", date=date_key) from e

        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, dict):
            raise RateLookupError(
                f"Invalid exchange rate response for {date_key}: expected a 'rates' field",
                date=date_key,
            )

        logger.info(f"Got {len(rates)} rates for {date_key} (base: {data.get('base', 'USD')})")
        return dict(rates)

    def clear_cache(self) -> None:
        """Drop every cached rate table"""
        with self._cache_lock:
            self._cache = {}
            self._date_locks = {}

        if self.kv_store:
            deleted = self.kv_store.delete_matching(self.KV_KEY.format(date="*"))
            logger.info(f"Cleared {deleted} rate tables from KV store")

    def clear_cache_date(self, rate_date: Union[date, str]) -> None:
        """Drop the cached rate table of a single date"""
        date_key = _date_key(rate_date)
        with self._cache_lock:
            cache = dict(self._cache)
            cache.pop(date_key, None)
            self._cache = cache
            self._date_locks.pop(date_key, None)

        if self.kv_store:
            self.kv_store.delete(self.KV_KEY.format(date=date_key))

    def cache_size(self) -> int:
        """Number of dates held in the in-memory cache"""
        return len(self._cache)

    def _lock_for(self, date_key: str) -> threading.Lock:
        with self._cache_lock:
            lock = self._date_locks.get(date_key)
            if lock is None:
                lock = threading.Lock()
                self._date_locks[date_key] = lock
            return lock

    def _store_memory(self, date_key: str, rates: Dict[str, float]) -> None:
        # Swap in a new dict so readers never observe a partially written table
        with self._cache_lock:
            cache = dict(self._cache)
            cache[date_key] = dict(rates)
            self._cache = cache

    def _get_stored_rates(self, date_key: str) -> Optional[Dict[str, float]]:
        """Read a rate table persisted by a previous run"""
        if not self.kv_store:
            return None

        cached_data = self.kv_store.get(self.KV_KEY.format(date=date_key))
        if cached_data and isinstance(cached_data, dict) and isinstance(cached_data.get("rates"), dict):
            logger.info(f"KV store hit for {date_key}")
            return cached_data["rates"]
        return None

    def _store_kv(self, date_key: str, rates: Dict[str, float]) -> None:
        if not self.kv_store:
            return

        ttl = self.latest_cache_ttl if date_key == today_key() else self.HISTORICAL_CACHE_TTL
        cache_data = {
            "date": date_key,
            "rates": rates,
            "queried_at": datetime.now(ZoneInfo("UTC")).isoformat(),
        }
        if self.kv_store.set(self.KV_KEY.format(date=date_key), cache_data, ttl=ttl):
            logger.info(f"Cached rate table for {date_key} in KV store")


class MockExchangeRateClient:
    """
    Offline rate source for development and tests

    Returns a fixed table after a short delay. Unknown currencies fall back
    to 1:1 with a warning instead of failing.
    """

    MOCK_RATES = {
        "USD": 1.0,
        "CLP": 950.0,  # 1 USD = 950 CLP
        "MXN": 20.0,   # 1 USD = 20 MXN
        "EUR": 0.85,   # 1 USD = 0.85 EUR
    }

    def __init__(self, rates: Optional[Dict[str, float]] = None, delay: float = 0.01):
        self.rates = dict(rates) if rates is not None else dict(self.MOCK_RATES)
        self.delay = delay

    def get_rate(self, rate_date: Union[date, str], currency: str) -> float:
        if self.delay:
            time.sleep(self.delay)

        rate = self.rates.get(currency)
        if not rate:
            logger.warning(f"Currency {currency} not in mock table, using rate 1")
            return 1.0

        return rate
