"""Availability Query Port and its HTTP adapter.

The railway site's own protocol is handled by a separate crawler service; this
adapter only speaks that service's JSON search endpoint:

    POST {AVAILABILITY_API_URL}
    {"fromStationId": "98", "toStationId": "796", "date": "01-06-2025 00:00:00",
     "passengerCount": 1, "departureTimeRange": null, "preferredCabinClass": null,
     "wantHighSpeedTrain": true}

    -> {"data": [{"trainNumber": ..., "departureTime": ..., "arrivalTime": ...,
                  "isHighSpeed": ..., "cabinClassAvailabilities": [...]}],
        "error": null}
"""

from typing import Any, Protocol

import httpx
import structlog
from opentelemetry.trace import SpanKind
from pydantic import ValidationError

from seatalert.core.config import settings
from seatalert.core.telemetry import service_span
from seatalert.exceptions import AvailabilityQueryError
from seatalert.schemas.availability import AvailabilityQuery, AvailabilityResult, CandidateTrain

logger = structlog.get_logger(__name__)


class AvailabilityQueryPort(Protocol):
    """Looks up seat availability for a route and date."""

    async def query(self, query: AvailabilityQuery) -> AvailabilityResult:
        """
        Run one availability lookup.

        Raises:
            AvailabilityQueryError: Upstream failed or returned no usable data (transient)
        """
        ...


def build_search_payload(query: AvailabilityQuery) -> dict[str, Any]:
    """
    Translate a query into the crawler service's request body.

    Example:
        >>> import datetime as dt
        >>> payload = build_search_payload(AvailabilityQuery(
        ...     from_station_id="98", to_station_id="796", date=dt.date(2025, 6, 1)))
        >>> payload["date"]
        '01-06-2025 00:00:00'
    """
    time_range = None
    if query.departure_time_range is not None:
        time_range = {
            "start": query.departure_time_range.start.strftime("%H:%M"),
            "end": query.departure_time_range.end.strftime("%H:%M"),
        }
    return {
        "fromStationId": query.from_station_id,
        "toStationId": query.to_station_id,
        "date": query.date.strftime("%d-%m-%Y 00:00:00"),
        "passengerCount": query.passenger_count,
        "departureTimeRange": time_range,
        "preferredCabinClass": query.cabin_class,
        "wantHighSpeedTrain": query.high_speed_only,
    }


def parse_search_response(body: Any) -> AvailabilityResult:  # noqa: ANN401 - decoded JSON
    """
    Parse the crawler service's response body.

    Raises:
        AvailabilityQueryError: If the body reports an error or is malformed
    """
    if not isinstance(body, dict):
        msg = f"Unexpected availability response type: {type(body).__name__}"
        raise AvailabilityQueryError(msg)

    if body.get("error"):
        raise AvailabilityQueryError(str(body["error"]))

    raw_trains = body.get("data") or []
    if not isinstance(raw_trains, list):
        msg = "Availability response 'data' is not a list"
        raise AvailabilityQueryError(msg)

    try:
        trains = [CandidateTrain.model_validate(item) for item in raw_trains]
    except ValidationError as e:
        msg = f"Malformed train in availability response: {e.error_count()} error(s)"
        raise AvailabilityQueryError(msg) from e

    return AvailabilityResult(trains=trains)


class HttpAvailabilityClient:
    """AvailabilityQueryPort that calls the crawler service over HTTP."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url or settings.AVAILABILITY_API_URL
        if not self.base_url:
            msg = "Required configuration missing: AVAILABILITY_API_URL"
            raise ValueError(msg)
        self.api_key = api_key if api_key is not None else settings.AVAILABILITY_API_KEY
        self.timeout = timeout if timeout is not None else settings.AVAILABILITY_API_TIMEOUT
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def query(self, query: AvailabilityQuery) -> AvailabilityResult:
        """
        Search the crawler service for trains on a route and date.

        Raises:
            AvailabilityQueryError: On transport errors, non-2xx responses,
                upstream-reported errors or malformed bodies
        """
        with service_span(
            "availability.query",
            "availability-api",
            kind=SpanKind.CLIENT,
            **{
                "availability.from_station_id": query.from_station_id,
                "availability.to_station_id": query.to_station_id,
                "availability.date": query.date.isoformat(),
            },
        ) as span:
            payload = build_search_payload(query)
            try:
                if self._client is not None:
                    response = await self._client.post(
                        self.base_url, json=payload, headers=self._headers(), timeout=self.timeout
                    )
                else:
                    async with httpx.AsyncClient() as client:
                        response = await client.post(
                            self.base_url, json=payload, headers=self._headers(), timeout=self.timeout
                        )
                response.raise_for_status()
                body = response.json()
            except httpx.HTTPError as e:
                logger.warning(
                    "availability_request_failed",
                    from_station_id=query.from_station_id,
                    to_station_id=query.to_station_id,
                    date=query.date.isoformat(),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                msg = f"Availability request failed: {e}"
                raise AvailabilityQueryError(msg) from e
            except ValueError as e:
                msg = f"Availability response is not JSON: {e}"
                raise AvailabilityQueryError(msg) from e

            result = parse_search_response(body)
            span.set_attribute("availability.train_count", len(result.trains))
            logger.debug(
                "availability_query_completed",
                from_station_id=query.from_station_id,
                to_station_id=query.to_station_id,
                date=query.date.isoformat(),
                train_count=len(result.trains),
            )
            return result
