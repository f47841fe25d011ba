"""
ELD / Telematics Integration

Provider clients for Samsara, Motive (formerly KeepTruckin) and Geotab.
Each provider returns normalized driver locations, truck status and
hours-of-service rows. Providers never raise to callers: missing
credentials and failed requests are logged and yield an empty list.
"""

import asyncio
import json
import math
import random
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from ..config import Settings, settings as default_settings
from ..errors import InvalidRequestError, NotFoundError
from ..log import get_logger

logger = get_logger(__name__)

ENDPOINTS = ("driver-locations", "truck-status", "hos")


# =============================================================================
# Normalized rows
# =============================================================================

class DriverLocation(BaseModel):
    id: str
    name: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    status: Optional[str] = None
    updated_at: Optional[str] = None
    provider: str


class TruckStatus(BaseModel):
    id: str
    name: str
    status: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    updated_at: Optional[str] = None
    provider: str


class HosStatus(BaseModel):
    id: str
    name: str
    hos_status: Optional[str] = None
    updated_at: Optional[str] = None
    provider: str


# =============================================================================
# Payload helpers
# =============================================================================

def to_number(value: Any) -> Optional[float]:
    """Float for numeric-looking values, None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def dig(data: Any, *path: str) -> Any:
    """Walk nested dicts, None when any step is missing."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def first(*values: Any) -> Any:
    """First truthy value."""
    for value in values:
        if value:
            return value
    return None


def first_number(*values: Any) -> Optional[float]:
    """First value that parses as a number."""
    for value in values:
        number = to_number(value)
        if number is not None:
            return number
    return None


def as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def extract_list(payload: Any, *keys: str) -> list:
    """The first list found under keys, or the payload itself if it is a list."""
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
        return []
    return payload if isinstance(payload, list) else []


def full_name(record: dict) -> str:
    return " ".join(p for p in (record.get("first_name"), record.get("last_name")) if p)


# =============================================================================
# Base provider
# =============================================================================

class ELDProvider(ABC):
    """
    Abstract base class for ELD providers.

    Subclasses implement the raw fetches; the public fetch methods wrap
    them so that callers always get a list back.
    """

    name: str = "ELD"
    key: str = "eld"

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the provider.

        Args:
            config: Settings to read credentials from
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.config = config or default_settings
        self.transport = transport

    @abstractmethod
    def is_configured(self) -> bool:
        """Credentials are present."""

    @abstractmethod
    async def _driver_locations(self, client: httpx.AsyncClient) -> list[DriverLocation]:
        pass

    @abstractmethod
    async def _truck_status(self, client: httpx.AsyncClient) -> list[TruckStatus]:
        pass

    @abstractmethod
    async def _hos(self, client: httpx.AsyncClient) -> list[HosStatus]:
        pass

    async def fetch_driver_locations(self) -> list[DriverLocation]:
        return await self._run("fetch_driver_locations", self._driver_locations)

    async def fetch_truck_status(self) -> list[TruckStatus]:
        return await self._run("fetch_truck_status", self._truck_status)

    async def fetch_hos(self) -> list[HosStatus]:
        return await self._run("fetch_hos", self._hos)

    async def fetch(self, endpoint: str) -> list:
        """Fetch by endpoint name: driver-locations, truck-status or hos."""
        if endpoint == "driver-locations":
            return await self.fetch_driver_locations()
        if endpoint == "truck-status":
            return await self.fetch_truck_status()
        if endpoint == "hos":
            return await self.fetch_hos()
        raise InvalidRequestError(f"Unknown ELD endpoint: {endpoint}")

    async def _run(self, operation: str, fetcher) -> list:
        if not self.is_configured():
            logger.warning("eld_credentials_missing", provider=self.key, operation=operation)
            return []
        try:
            async with self._client() as client:
                return await fetcher(client)
        except Exception as e:
            logger.error("eld_request_failed", provider=self.key, operation=operation, error=str(e))
            return []

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.ELD_TIMEOUT_SECONDS,
            transport=self.transport,
        )

    @staticmethod
    async def _request_json(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> Any:
        """Send a request; non-2xx raises, empty body is None, non-JSON is text."""
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        if not response.text:
            return None
        try:
            return response.json()
        except json.JSONDecodeError:
            return response.text


# =============================================================================
# Samsara
# =============================================================================

class SamsaraProvider(ELDProvider):
    """Samsara fleet API (Bearer API key)."""

    name = "Samsara"
    key = "samsara"

    DRIVER_LOCATIONS_PATH = "/v1/fleet/drivers/locations"
    VEHICLES_PATH = "/v1/fleet/vehicles"
    HOS_PATH = "/v1/fleet/hos/duty_status"

    def is_configured(self) -> bool:
        return bool(self.config.SAMSARA_API_KEY)

    async def _get(self, client: httpx.AsyncClient, path: str) -> Any:
        url = self.config.SAMSARA_API_BASE_URL.rstrip("/") + path
        headers = {
            "Authorization": f"Bearer {self.config.SAMSARA_API_KEY}",
            "Accept": "application/json",
        }
        return await self._request_json(client, "GET", url, headers=headers)

    async def _driver_locations(self, client: httpx.AsyncClient) -> list[DriverLocation]:
        payload = await self._get(client, self.DRIVER_LOCATIONS_PATH)
        return [
            DriverLocation(
                id=str(first(d.get("id"), d.get("driverId"), dig(d, "driver", "id")) or "unknown"),
                name=first(d.get("name"), d.get("driverName"), dig(d, "driver", "name")) or "Unknown",
                lat=first_number(dig(d, "location", "latitude"), d.get("latitude"), d.get("lat")),
                lon=first_number(dig(d, "location", "longitude"), d.get("longitude"), d.get("lon")),
                status=first(d.get("status"), d.get("driverStatus"), d.get("hosStatus"), d.get("dutyStatus")),
                updated_at=as_text(first(
                    dig(d, "location", "time"),
                    dig(d, "location", "timestamp"),
                    d.get("updatedAt"),
                    d.get("timestamp"),
                )),
                provider=self.key,
            )
            for d in extract_list(payload, "drivers", "data", "items")
        ]

    async def _truck_status(self, client: httpx.AsyncClient) -> list[TruckStatus]:
        payload = await self._get(client, self.VEHICLES_PATH)
        return [
            TruckStatus(
                id=str(first(v.get("id"), v.get("vehicleId")) or "unknown"),
                name=first(v.get("name"), v.get("label"), v.get("vin")) or "Vehicle",
                status=first(v.get("status"), v.get("vehicleStatus")),
                lat=first_number(dig(v, "location", "latitude"), v.get("latitude"), v.get("lat")),
                lon=first_number(dig(v, "location", "longitude"), v.get("longitude"), v.get("lon")),
                updated_at=as_text(first(
                    dig(v, "location", "time"),
                    dig(v, "location", "timestamp"),
                    v.get("updatedAt"),
                    v.get("timestamp"),
                )),
                provider=self.key,
            )
            for v in extract_list(payload, "vehicles", "data", "items")
        ]

    async def _hos(self, client: httpx.AsyncClient) -> list[HosStatus]:
        payload = await self._get(client, self.HOS_PATH)
        return [
            HosStatus(
                id=str(first(d.get("id"), d.get("driverId")) or "unknown"),
                name=first(d.get("name"), d.get("driverName")) or "Driver",
                hos_status=first(
                    d.get("hosStatus"),
                    d.get("currentDutyStatus"),
                    d.get("dutyStatus"),
                    d.get("status"),
                ),
                updated_at=as_text(first(
                    d.get("hosStatusUpdatedAt"),
                    d.get("updatedAt"),
                    d.get("timestamp"),
                    dig(d, "location", "time"),
                )),
                provider=self.key,
            )
            for d in extract_list(payload, "drivers", "data", "items")
        ]


# =============================================================================
# Motive (KeepTruckin)
# =============================================================================

class MotiveProvider(ELDProvider):
    """Motive, formerly KeepTruckin (Bearer API key)."""

    name = "Motive"
    key = "motive"

    USERS_PATH = "/users"
    VEHICLES_PATH = "/vehicles"
    HOS_PATH = "/hos"

    def is_configured(self) -> bool:
        return bool(self.config.MOTIVE_API_KEY)

    async def _get(self, client: httpx.AsyncClient, path: str) -> Any:
        url = self.config.MOTIVE_API_BASE_URL.rstrip("/") + path
        headers = {
            "Authorization": f"Bearer {self.config.MOTIVE_API_KEY}",
            "Accept": "application/json",
        }
        return await self._request_json(client, "GET", url, headers=headers)

    async def _driver_locations(self, client: httpx.AsyncClient) -> list[DriverLocation]:
        payload = await self._get(client, self.USERS_PATH)
        return [
            DriverLocation(
                id=str(first(d.get("id"), d.get("driver_id"), d.get("user_id")) or "unknown"),
                name=first(d.get("name"), full_name(d)) or "Driver",
                lat=first_number(
                    dig(d, "location", "lat"),
                    dig(d, "location", "latitude"),
                    dig(d, "last_location", "lat"),
                    dig(d, "last_location", "latitude"),
                ),
                lon=first_number(
                    dig(d, "location", "lon"),
                    dig(d, "location", "longitude"),
                    dig(d, "last_location", "lon"),
                    dig(d, "last_location", "longitude"),
                ),
                status=first(d.get("status"), d.get("duty_status")),
                updated_at=as_text(first(
                    dig(d, "location", "timestamp"),
                    dig(d, "location", "time"),
                    dig(d, "last_location", "timestamp"),
                )),
                provider=self.key,
            )
            for d in extract_list(payload, "users", "drivers", "data")
        ]

    async def _truck_status(self, client: httpx.AsyncClient) -> list[TruckStatus]:
        payload = await self._get(client, self.VEHICLES_PATH)
        return [
            TruckStatus(
                id=str(first(v.get("id"), v.get("vehicle_id")) or "unknown"),
                name=first(v.get("name"), v.get("label"), v.get("vin")) or "Vehicle",
                status=first(v.get("status"), v.get("vehicle_status")),
                lat=first_number(
                    dig(v, "location", "lat"),
                    dig(v, "location", "latitude"),
                    dig(v, "last_location", "lat"),
                ),
                lon=first_number(
                    dig(v, "location", "lon"),
                    dig(v, "location", "longitude"),
                    dig(v, "last_location", "lon"),
                ),
                updated_at=as_text(first(
                    dig(v, "location", "timestamp"),
                    dig(v, "location", "time"),
                    dig(v, "last_location", "timestamp"),
                )),
                provider=self.key,
            )
            for v in extract_list(payload, "vehicles", "data")
        ]

    async def _hos(self, client: httpx.AsyncClient) -> list[HosStatus]:
        payload = await self._get(client, self.HOS_PATH)
        return [
            HosStatus(
                id=str(first(d.get("id"), d.get("driver_id")) or "unknown"),
                name=first(d.get("name"), full_name(d)) or "Driver",
                hos_status=first(
                    d.get("hos_status"),
                    d.get("duty_status"),
                    d.get("status"),
                    d.get("current_status"),
                ),
                updated_at=as_text(first(d.get("updated_at"), d.get("last_updated"), d.get("timestamp"))),
                provider=self.key,
            )
            for d in extract_list(payload, "drivers", "data", "hos")
        ]


# =============================================================================
# Geotab
# =============================================================================

class GeotabProvider(ELDProvider):
    """
    Geotab MyGeotab JSON-RPC API.

    Every fetch authenticates first, then issues Get calls with the
    session credentials.
    """

    name = "Geotab"
    key = "geotab"

    RESULTS_LIMIT = 250

    def is_configured(self) -> bool:
        return bool(
            self.config.GEOTAB_USERNAME
            and self.config.GEOTAB_PASSWORD
            and self.config.GEOTAB_DATABASE
        )

    @property
    def api_url(self) -> str:
        server = self.config.GEOTAB_SERVER.rstrip("/")
        return server if server.endswith("/apiv1") else f"{server}/apiv1"

    async def _rpc(self, client: httpx.AsyncClient, method: str, params: dict) -> Any:
        payload = {"method": method, "params": params, "id": random.randint(0, 99999)}
        return await self._request_json(client, "POST", self.api_url, json=payload)

    async def _authenticate(self, client: httpx.AsyncClient) -> Optional[dict]:
        response = await self._rpc(client, "Authenticate", {
            "database": self.config.GEOTAB_DATABASE,
            "userName": self.config.GEOTAB_USERNAME,
            "password": self.config.GEOTAB_PASSWORD,
        })
        result = dig(response, "result") or {}
        credentials = result.get("credentials") or result
        if not credentials.get("sessionId"):
            logger.warning("geotab_authentication_failed")
            return None
        return {
            "database": credentials.get("database") or self.config.GEOTAB_DATABASE,
            "sessionId": credentials["sessionId"],
            "userName": credentials.get("userName") or self.config.GEOTAB_USERNAME,
        }

    async def _get_entities(self, client: httpx.AsyncClient, credentials: dict, type_name: str, search: dict) -> list:
        response = await self._rpc(client, "Get", {
            "typeName": type_name,
            "search": search,
            "resultsLimit": self.RESULTS_LIMIT,
            "credentials": credentials,
        })
        result = dig(response, "result")
        return result if isinstance(result, list) else []

    def _since(self) -> str:
        since = datetime.utcnow() - timedelta(hours=self.config.ELD_LOOKBACK_HOURS)
        return since.isoformat(timespec="seconds") + "Z"

    async def _status_info(self, client: httpx.AsyncClient) -> tuple[list, list, list]:
        credentials = await self._authenticate(client)
        if credentials is None:
            return [], [], []
        devices, status_info, users = await asyncio.gather(
            self._get_entities(client, credentials, "Device", {}),
            self._get_entities(client, credentials, "DeviceStatusInfo", {"fromDate": self._since()}),
            self._get_entities(client, credentials, "User", {"isDriver": True}),
        )
        return devices, status_info, users

    @staticmethod
    def _device_id(info: dict) -> str:
        return str(first(dig(info, "device", "id"), info.get("deviceId"), dig(info, "device", "deviceId")) or "unknown")

    async def _driver_locations(self, client: httpx.AsyncClient) -> list[DriverLocation]:
        devices, status_info, users = await self._status_info(client)
        device_names = {d.get("id"): d.get("name") for d in devices}
        user_names = {u.get("id"): u.get("name") for u in users}

        locations = []
        for info in status_info:
            device_id = self._device_id(info)
            driver_id = str(first(dig(info, "driver", "id"), info.get("driverId")) or device_id)
            locations.append(DriverLocation(
                id=driver_id,
                name=first(user_names.get(driver_id), dig(info, "driver", "name"), device_names.get(device_id)) or "Driver",
                lat=first_number(info.get("latitude"), dig(info, "position", "latitude")),
                lon=first_number(info.get("longitude"), dig(info, "position", "longitude")),
                status=first(info.get("status"), info.get("driverStatus"), info.get("engineStatus")),
                updated_at=as_text(first(info.get("dateTime"), info.get("timestamp"))),
                provider=self.key,
            ))
        return locations

    async def _truck_status(self, client: httpx.AsyncClient) -> list[TruckStatus]:
        devices, status_info, _ = await self._status_info(client)
        device_names = {d.get("id"): d.get("name") for d in devices}

        trucks = []
        for info in status_info:
            device_id = self._device_id(info)
            trucks.append(TruckStatus(
                id=device_id,
                name=first(device_names.get(device_id), dig(info, "device", "name")) or "Vehicle",
                status=first(info.get("status"), info.get("engineStatus")),
                lat=first_number(info.get("latitude"), dig(info, "position", "latitude")),
                lon=first_number(info.get("longitude"), dig(info, "position", "longitude")),
                updated_at=as_text(first(info.get("dateTime"), info.get("timestamp"))),
                provider=self.key,
            ))
        return trucks

    async def _hos(self, client: httpx.AsyncClient) -> list[HosStatus]:
        credentials = await self._authenticate(client)
        if credentials is None:
            return []
        logs, users = await asyncio.gather(
            self._get_entities(client, credentials, "DutyStatusLog", {"fromDate": self._since()}),
            self._get_entities(client, credentials, "User", {"isDriver": True}),
        )
        user_names = {u.get("id"): u.get("name") for u in users}

        # First log per driver wins
        latest: dict[str, dict] = {}
        for log in logs:
            driver_id = first(dig(log, "driver", "id"), dig(log, "user", "id"), log.get("driverId"))
            if driver_id and driver_id not in latest:
                latest[driver_id] = log

        return [
            HosStatus(
                id=str(driver_id),
                name=first(user_names.get(driver_id), dig(log, "driver", "name")) or "Driver",
                hos_status=first(log.get("status"), log.get("dutyStatus"), log.get("state")) or "Unknown",
                updated_at=as_text(first(log.get("dateTime"), log.get("timestamp"))),
                provider=self.key,
            )
            for driver_id, log in latest.items()
        ]


# =============================================================================
# Registry
# =============================================================================

PROVIDERS: dict[str, type[ELDProvider]] = {
    "samsara": SamsaraProvider,
    "motive": MotiveProvider,
    "keeptruckin": MotiveProvider,
    "geotab": GeotabProvider,
}


def get_provider(
    name: str,
    config: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ELDProvider:
    """
    Provider by name (keeptruckin is an alias for motive).

    Raises:
        NotFoundError: Unknown provider
    """
    provider_cls = PROVIDERS.get(name.lower())
    if provider_cls is None:
        raise NotFoundError("ELD provider", name)
    return provider_cls(config=config, transport=transport)


def ping_providers(config: Optional[Settings] = None) -> dict[str, dict[str, Any]]:
    """Configuration state per provider."""
    config = config or default_settings
    return {
        key: {"name": provider_cls.name, "configured": provider_cls(config=config).is_configured()}
        for key, provider_cls in PROVIDERS.items()
        if key != "keeptruckin"
    }
