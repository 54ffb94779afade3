"""Map raw provider payloads onto the canonical Quote.

Providers answer in several shapes. classify_payload() tags a decoded payload
with its shape, and normalize_quote() is the single place that turns any of
them into a Quote:

    ParallelArrayPayload  {"symbol": ["AAPL"], "last": [150.0], "mid": [148.0], ...}
    FlatQuotePayload      {"symbol": "AAPL", "price": 150.0, "changePercent": 1.2, ...}
    GlobalQuotePayload    {"Global Quote": {"01. symbol": "AAPL", "05. price": "150.00", ...}}
    ProviderErrorPayload  {"Note": "..."}, {"Error Message": "..."}, {"s": "error", ...}
"""

from __future__ import annotations

import json
import math
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from .errors import NormalizationError, RateLimited
from .models import Quote

# Anything above this is a millisecond epoch, not seconds
_MILLIS_THRESHOLD = 1e11


@dataclass(frozen=True, slots=True)
class ParallelArrayPayload:
    fields: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class FlatQuotePayload:
    fields: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class GlobalQuotePayload:
    fields: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ProviderErrorPayload:
    message: str
    rate_limited: bool = False


RawPayload = Union[ParallelArrayPayload, FlatQuotePayload, GlobalQuotePayload, ProviderErrorPayload]


def decode_frame(raw: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    """Decode a JSON text/bytes frame into a mapping."""
    if isinstance(raw, Mapping):
        return raw
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise NormalizationError("payload is not valid JSON") from exc
    if not isinstance(decoded, Mapping):
        raise NormalizationError("payload must be a JSON object")
    return decoded


def classify_payload(data: Mapping[str, Any]) -> RawPayload:
    """Tag a decoded payload with the shape it arrived in."""
    for key in ("Note", "Information"):
        if key in data:
            return ProviderErrorPayload(str(data[key]), rate_limited=True)
    if "Error Message" in data:
        return ProviderErrorPayload(str(data["Error Message"]))
    if data.get("s") in ("error", "no_data"):
        return ProviderErrorPayload(str(data.get("errmsg") or "no data for symbol"))
    if isinstance(data.get("Global Quote"), Mapping):
        return GlobalQuotePayload(data["Global Quote"])
    if any(isinstance(data.get(key), list) for key in ("symbol", "last", "price")):
        return ParallelArrayPayload(data)
    return FlatQuotePayload(data)


def normalize_quote(
    raw: str | bytes | Mapping[str, Any] | RawPayload,
    *,
    symbol: str | None = None,
    now: float | None = None,
) -> Quote:
    """Build a Quote from any supported payload.

    `symbol` is used when the payload does not name one. Raises
    NormalizationError for unusable payloads and RateLimited when the
    provider signalled a limit instead of answering.
    """
    if isinstance(raw, (str, bytes, Mapping)):
        payload = classify_payload(decode_frame(raw))
    else:
        payload = raw
    ts = time.time() if now is None else now

    if isinstance(payload, ProviderErrorPayload):
        if payload.rate_limited:
            raise RateLimited(payload.message)
        raise NormalizationError(payload.message)
    if isinstance(payload, ParallelArrayPayload):
        fields = {key: _first(key, value) for key, value in payload.fields.items()}
        return _build(fields, symbol, ts)
    if isinstance(payload, GlobalQuotePayload):
        return _build(_unnumber(payload.fields), symbol, ts)
    if isinstance(payload, FlatQuotePayload):
        return _build(payload.fields, symbol, ts)
    raise NormalizationError(f"unsupported payload type: {type(payload).__name__}")


def derive_change_percent(last: float, mid: float) -> float:
    """(last - mid) / mid * 100, with a zero mid treated as no change."""
    if mid == 0:
        return 0.0
    return round((last - mid) / mid * 100, 4)


# --- Internals ---


def _first(key: str, value: Any) -> Any:
    if isinstance(value, list):
        if not value:
            raise NormalizationError(f"empty array for {key}")
        return value[0]
    return value


def _unnumber(fields: Mapping[str, Any]) -> dict[str, Any]:
    """'05. price' -> 'price'."""
    out: dict[str, Any] = {}
    for key, value in fields.items():
        _, _, name = key.partition(". ")
        out[name or key] = value
    return out


def _to_float(value: Any, name: str) -> float:
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    if value is None or value == "" or isinstance(value, bool):
        raise NormalizationError(f"missing value for {name}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise NormalizationError(f"invalid numeric value for {name}: {value!r}") from exc
    if not math.isfinite(number):
        raise NormalizationError(f"non-finite value for {name}: {value!r}")
    return number


def _optional_float(fields: Mapping[str, Any], name: str) -> float:
    value = fields.get(name)
    if value is None or value == "":
        return 0.0
    return _to_float(value, name)


def _optional_count(fields: Mapping[str, Any], *names: str) -> int:
    for name in names:
        value = fields.get(name)
        if value is None or value == "":
            continue
        count = int(_to_float(value, name))
        if count < 0:
            raise NormalizationError(f"{name} must be non-negative, got {count}")
        return count
    return 0


def _pick(fields: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = fields.get(name)
        if value is not None and value != "":
            return value
    return None


def _build(fields: Mapping[str, Any], symbol: str | None, now: float) -> Quote:
    raw_symbol = _pick(fields, "symbol", "ticker") or symbol
    if not raw_symbol:
        raise NormalizationError("missing symbol in payload")
    sym = str(raw_symbol).strip().upper()

    raw_price = _pick(fields, "last", "price")
    if raw_price is None:
        raise NormalizationError(f"missing price for {sym}")
    price = _to_float(raw_price, "price")
    if price <= 0:
        raise NormalizationError(f"price for {sym} must be positive, got {price}")

    supplied = _pick(fields, "changePercent", "change_percent", "change percent")
    if supplied is not None:
        change_percent = round(_to_float(supplied, "changePercent"), 4)
    elif _pick(fields, "mid") is not None:
        change_percent = derive_change_percent(price, _to_float(fields["mid"], "mid"))
    elif _pick(fields, "change") is not None:
        previous = price - _to_float(fields["change"], "change")
        change_percent = round((price - previous) / previous * 100, 4) if previous else 0.0
    else:
        change_percent = 0.0

    updated = _pick(fields, "updated", "updatedAt", "updated_at", "timestamp")
    if updated is None:
        updated_at = now
    else:
        updated_at = _to_float(updated, "updated")
        if updated_at > _MILLIS_THRESHOLD:
            updated_at /= 1000.0

    company = _pick(fields, "companyName", "company_name", "name")

    return Quote(
        symbol=sym,
        price=price,
        change_percent=change_percent,
        bid=_optional_float(fields, "bid"),
        ask=_optional_float(fields, "ask"),
        bid_size=_optional_count(fields, "bidSize", "bid_size"),
        ask_size=_optional_count(fields, "askSize", "ask_size"),
        volume=_optional_count(fields, "volume"),
        updated_at=updated_at,
        company_name=str(company) if company is not None else None,
    )
