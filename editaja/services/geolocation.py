"""Client IP extraction and IP geolocation (ip-api.com, then ipapi.co)."""

from typing import Any, Dict, Mapping, Optional

import httpx

from editaja.utils.logger import get_logger

logger = get_logger(__name__)

IP_API_URL = "http://ip-api.com/json/{ip}?fields=status,country,city,countryCode,query"
IPAPI_CO_URL = "https://ipapi.co/{ip}/json/"
UNKNOWN = "Unknown"

_LOCAL_IPS = {"unknown", "::1", "127.0.0.1", "localhost", "testclient"}


def get_client_ip(headers: Mapping[str, str], fallback: Optional[str] = None) -> str:
    """First ``x-forwarded-for`` hop, else ``x-real-ip``, else the socket peer."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return headers.get("x-real-ip") or fallback or "unknown"


def is_local_ip(ip: str) -> bool:
    return not ip or ip in _LOCAL_IPS or ip.startswith("::ffff:127") or ip.startswith("127.")


def unknown_location(ip: str) -> Dict[str, Any]:
    return {"country": UNKNOWN, "city": UNKNOWN, "ip": ip, "countryCode": ""}


class GeolocationClient:
    """Looks up an IP with two free providers, giving up quietly."""

    def __init__(self, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport

    async def lookup(self, ip: str) -> Dict[str, Any]:
        """
        Resolve an IP to ``{country, city, ip, countryCode}``.

        Local addresses and provider failures resolve to "Unknown".
        """
        if is_local_ip(ip):
            return unknown_location(ip)

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": "Mozilla/5.0"},
        ) as client:
            location = await self._ip_api(client, ip)
            if location is None:
                location = await self._ipapi_co(client, ip)
        return location or unknown_location(ip)

    async def _ip_api(self, client: httpx.AsyncClient, ip: str) -> Optional[Dict[str, Any]]:
        try:
            resp = await client.get(IP_API_URL.format(ip=ip))
            data = resp.json() if resp.status_code == 200 else {}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"ip-api.com lookup failed for {ip}: {e}")
            return None
        if data.get("status") != "success":
            return None
        return {
            "country": data.get("country") or UNKNOWN,
            "city": data.get("city") or UNKNOWN,
            "ip": data.get("query") or ip,
            "countryCode": data.get("countryCode") or "",
        }

    async def _ipapi_co(self, client: httpx.AsyncClient, ip: str) -> Optional[Dict[str, Any]]:
        try:
            resp = await client.get(IPAPI_CO_URL.format(ip=ip))
            data = resp.json() if resp.status_code == 200 else {"error": True}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"ipapi.co lookup failed for {ip}: {e}")
            return None
        if data.get("error"):
            return None
        return {
            "country": data.get("country_name") or UNKNOWN,
            "city": data.get("city") or UNKNOWN,
            "ip": ip,
            "countryCode": data.get("country_code") or "",
        }
