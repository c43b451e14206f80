"""
Requester location helpers.

Nearby requesters are grouped into ~11 km buckets (lat/lon rounded to one
decimal) so everyone in a bucket hears the same bird on the same day.
This is a cache-sharing property, not a privacy guarantee.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

import httpx
from pytz import UnknownTimeZoneError, timezone, utc
from timezonefinder import TimezoneFinder

from birdsong.config import HTTP_TIMEOUT_SECONDS
from birdsong.content_generator.helpers import log
from birdsong.errors import NotFound, UpstreamUnavailable

IP_API_URL = "http://ip-api.com/json/{ip}"
LOCAL_IPS = {"", "::1", "127.0.0.1"}

_tf: TimezoneFinder | None = None


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    city: str = ""
    region: str = ""
    country: str = ""
    source_ip: str | None = None


# Representative locations for devices that only report a timezone
TIMEZONE_LOCATIONS = {
    "America/New_York": Location(40.7128, -74.0060, "New York", "New York", "United States"),
    "America/Chicago": Location(41.8781, -87.6298, "Chicago", "Illinois", "United States"),
    "America/Denver": Location(39.7392, -104.9903, "Denver", "Colorado", "United States"),
    "America/Los_Angeles": Location(34.0522, -118.2437, "Los Angeles", "California", "United States"),
    "America/Toronto": Location(43.6532, -79.3832, "Toronto", "Ontario", "Canada"),
    "America/Vancouver": Location(49.2827, -123.1207, "Vancouver", "British Columbia", "Canada"),
    "Europe/London": Location(51.5074, -0.1278, "London", "England", "United Kingdom"),
    "Europe/Paris": Location(48.8566, 2.3522, "Paris", "Île-de-France", "France"),
    "Europe/Berlin": Location(52.5200, 13.4050, "Berlin", "Berlin", "Germany"),
    "Australia/Sydney": Location(-33.8688, 151.2093, "Sydney", "New South Wales", "Australia"),
    "Pacific/Auckland": Location(-36.8485, 174.7633, "Auckland", "Auckland", "New Zealand"),
}


def location_key(latitude: float, longitude: float) -> str:
    return f"{latitude:.1f}_{longitude:.1f}"


def cache_key(card_id: str, day: date | str, loc_key: str) -> str:
    day_str = day.isoformat() if isinstance(day, date) else day
    return f"{card_id}_{day_str}_{loc_key}"


def location_for_timezone(tz_name: str) -> Location | None:
    return TIMEZONE_LOCATIONS.get(tz_name)


def _timezone_finder() -> TimezoneFinder:
    global _tf
    if _tf is None:
        _tf = TimezoneFinder()
    return _tf


def local_now(location: Location | None = None, tz_name: str | None = None, now: datetime | None = None) -> datetime:
    """Current time for the requester.

    Order: explicit timezone name, timezone looked up from coordinates,
    then a longitude/15 hour-offset estimate.
    """
    if now is None:
        now_utc = datetime.now(utc)
    elif now.tzinfo is None:
        now_utc = utc.localize(now)
    else:
        now_utc = now.astimezone(utc)

    if tz_name:
        try:
            return now_utc.astimezone(timezone(tz_name))
        except UnknownTimeZoneError:
            log(f"[USER_TIME] Unknown timezone {tz_name!r}, estimating from location")

    if location is None:
        return now_utc

    found = _timezone_finder().timezone_at(lng=location.longitude, lat=location.latitude)
    if found:
        return now_utc.astimezone(timezone(found))

    hours_offset = int(location.longitude / 15.0)
    return now_utc + timedelta(hours=hours_offset)


def local_date(location: Location | None = None, tz_name: str | None = None, now: datetime | None = None) -> date:
    return local_now(location, tz_name, now).date()


def lookup_ip_location(ip: str, client: httpx.Client | None = None) -> Location:
    if ip in LOCAL_IPS:
        raise NotFound(f"invalid IP address for geolocation: {ip!r}")

    http = client or httpx.Client(timeout=HTTP_TIMEOUT_SECONDS)
    try:
        response = http.get(IP_API_URL.format(ip=ip))
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        log(f"[LOCATION] Failed to get IP location for {ip}: {exc}")
        raise UpstreamUnavailable(f"IP geolocation failed: {exc}") from exc
    finally:
        if client is None:
            http.close()

    if data.get("status") != "success":
        log(f"[LOCATION] IP geolocation failed for {ip}: {data.get('message')}")
        raise NotFound(f"IP geolocation failed: {data.get('message')}")

    log(f"[LOCATION] Resolved IP {ip} to {data.get('city')}, {data.get('country')}")
    return Location(
        latitude=float(data.get("lat", 0.0)),
        longitude=float(data.get("lon", 0.0)),
        city=data.get("city", ""),
        region=data.get("regionName", ""),
        country=data.get("country", ""),
        source_ip=ip,
    )
