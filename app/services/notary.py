"""
Client for the external blockchain notary.

Entities are projected into the flat shape the notary expects and POSTed
after the local write has been committed. Every optional value is sent as
an empty string (or 0 for numbers) because the notary rejects nulls.
Nothing here ever raises into request handling: failures are logged and
returned as an unsuccessful `NotaryResult`.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import httpx
from loguru import logger
from sqlmodel import SQLModel

from app.core.config import settings
from app.db.schema import CollectionEvent, FinishedGood, SupplyChainEvent


USER_AGENT = "AyuTrace-Backend/1.0.0"


class NotaryProjectionError(ValueError):
    """A required business field is missing, so the entity cannot be notarized."""


class NotaryResult(SQLModel):
    success: bool
    status: Optional[int] = None
    data: Optional[Any] = None
    error: Optional[str] = None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def _number(value: Any) -> float:
    try:
        return float(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0


def format_coordinates(latitude: Optional[float], longitude: Optional[float]) -> str:
    return f"{latitude if latitude is not None else 0}, {longitude if longitude is not None else 0}"


def project_collection_event(event: CollectionEvent, location: Optional[str] = None) -> Dict[str, Any]:
    latitude = event.latitude if event.latitude is not None else 0
    longitude = event.longitude if event.longitude is not None else 0

    return {
        "eventId": _text(event.id),
        "collectorId": _text(event.collector_id),
        "farmerId": _text(event.farmer_id),
        "herbSpeciesId": _text(event.species_id),
        "collectionDate": _iso(event.collection_date),
        "location": location or format_coordinates(event.latitude, event.longitude),
        "geoTag": f"geo:{latitude},{longitude}",
        "networkId": settings.notary_network_id,
        "gasLimit": settings.notary_gas_limit,
        "quantity": _number(event.quantity),
        "unit": _text(event.unit).upper(),
        "qualityNotes": event.quality_notes or "No quality notes provided",
        "notes": event.notes or "Collection event created via API",
    }


def project_finished_good(good: FinishedGood, source_collection_event_ids: Optional[List[Any]] = None) -> Dict[str, Any]:
    if not good.batch_number:
        raise NotaryProjectionError(
            f"Finished good {good.id} has no batch number and cannot be notarized.")

    return {
        "productId": _text(good.id),
        "manufacturerId": _text(good.manufacturer_id),
        "productName": _text(good.product_name),
        "productType": _text(good.product_type),
        "quantity": _number(good.quantity),
        "unit": _text(good.unit),
        "description": _text(good.description),
        "batchNumber": good.batch_number,
        "expiryDate": _iso(good.expiry_date),
        "sourceCollectionEventIds": [_text(i) for i in (source_collection_event_ids or [])],
    }


def project_supply_chain_event(event: SupplyChainEvent) -> Dict[str, Any]:
    return {
        "eventId": _text(event.id),
        "eventType": _text(event.event_type),
        "handlerId": _text(event.handler_id),
        "fromLocationId": _text(event.from_location_id),
        "toLocationId": _text(event.to_location_id),
        "finishedGoodId": _text(event.finished_good_id),
        "rawMaterialBatchId": _text(event.raw_material_batch_id),
        "notes": _text(event.notes),
        "timestamp": _iso(event.timestamp),
    }


def reverse_geocode(latitude: float, longitude: float, client: Optional[httpx.Client] = None) -> str:
    """
    Resolves coordinates to 'City, State, Country' via Nominatim.
    Falls back to the raw coordinates on any failure.
    """
    fallback = format_coordinates(latitude, longitude)
    params = {
        "lat": latitude,
        "lon": longitude,
        "format": "json",
        "zoom": 10,
        "addressdetails": 1,
    }

    try:
        http = client or httpx.Client(timeout=settings.geocoder_timeout)
        try:
            response = http.get(settings.geocoder_url, params=params,
                                headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
            address = response.json().get("address") or {}
        finally:
            if client is None:
                http.close()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Reverse geocoding failed for {fallback}: {e}")
        return fallback

    parts = [
        address.get("city") or address.get("town") or address.get("village"),
        address.get("state"),
        address.get("country"),
    ]
    return ", ".join(p for p in parts if p) or fallback


class NotaryClient:
    COLLECTION_EVENT = "collectionEvent"
    FINISHED_GOOD = "finishedGood"
    SUPPLY_CHAIN_EVENT = "supplyChainEvent"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.notary_base_url) or ""
        self.timeout = timeout if timeout is not None else settings.notary_timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def submit(self, path: str, payload: Dict[str, Any]) -> NotaryResult:
        if not self.enabled:
            logger.warning(f"Notary not configured; skipping {path} submission.")
            return NotaryResult(success=False, error="Notary base URL not configured")

        url = f"{self.base_url.rstrip('/')}/{path}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(url, json=payload,
                                       headers={"User-Agent": USER_AGENT})
        except httpx.HTTPError as e:
            logger.error(f"Notary call to {url} failed: {e}")
            return NotaryResult(success=False, error=str(e))

        try:
            body = response.json()
        except ValueError:
            body = response.text

        if response.is_success:
            logger.info(f"Notary accepted {path} ({response.status_code})")
            return NotaryResult(success=True, status=response.status_code, data=body)

        logger.error(
            f"Notary rejected {path}: status={response.status_code} body={body}")
        return NotaryResult(
            success=False,
            status=response.status_code,
            data=body,
            error=f"HTTP {response.status_code}",
        )


def notarize(path: str, payload: Dict[str, Any], coordinates: Optional[Tuple[float, float]] = None) -> NotaryResult:
    """
    Background task entry point. Optionally swaps the coordinate string in
    `payload['location']` for a reverse-geocoded place name first.
    """
    if coordinates and settings.enable_reverse_geocoding:
        payload = {**payload, "location": reverse_geocode(*coordinates)}
    return NotaryClient().submit(path, payload)
