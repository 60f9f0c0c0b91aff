# talenthunt/services/gateway_normalizer.py
"""
Map raw gateway payloads onto one of three outcomes.

Gateways disagree on field names and on how success is encoded. ``normalize``
is a pure function: it looks only at the payload and the configured
``StatusConvention`` and never touches the database. Anything it cannot map
with certainty comes back as ``Ambiguous`` so the reconciler can hold it for
manual review instead of guessing.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Union

REFERENCE_KEYS = ("reference", "transRef", "businessRef", "paymentReference")
STATUS_KEYS = ("status", "transaction_status", "paymentStatus")
AMOUNT_KEYS = ("transAmount", "amount")

IN_PROGRESS = frozenset({"pending", "processing", "ongoing", "queued", "abandoned"})


@dataclass(frozen=True)
class StatusConvention:
    name: str
    success: frozenset
    failure: frozenset
    numeric_success: frozenset = frozenset()
    numeric_failure: frozenset = frozenset()

    def classify(self, value: Any) -> Optional[bool]:
        """True for success, False for failure, None when it can't tell."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            if value in self.numeric_success:
                return True
            if value in self.numeric_failure:
                return False
            return None
        text = str(value).strip().lower()
        if text.lstrip("-").isdecimal():
            try:
                return self.classify(int(text))
            except ValueError:
                return None
        if text in self.success:
            return True
        if text in self.failure:
            return False
        return None


DEFAULT = StatusConvention(
    name="default",
    success=frozenset({"successful", "success", "completed", "paid"}),
    failure=frozenset({"failed", "failure", "declined", "error"}),
    numeric_success=frozenset({0}),
    numeric_failure=frozenset({1}),
)

TEXTUAL = StatusConvention(
    name="textual",
    success=DEFAULT.success,
    failure=DEFAULT.failure | {"cancelled", "reversed"},
)

CONVENTIONS = {c.name: c for c in (DEFAULT, TEXTUAL)}


def get_convention(name: str) -> StatusConvention:
    try:
        return CONVENTIONS[name]
    except KeyError:
        raise ValueError(f"Unknown payment status convention: {name}") from None


@dataclass(frozen=True)
class Success:
    reference: str
    amount: Optional[int]
    metadata: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Failure:
    reference: str
    reason: str
    amount: Optional[int] = None
    metadata: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Ambiguous:
    raw: dict
    reason: str
    reference: Optional[str] = None
    metadata: dict = field(default_factory=dict)


GatewayOutcome = Union[Success, Failure, Ambiguous]


def _first(data: dict, keys) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _unwrap(payload: dict) -> dict:
    """Webhooks arrive as {"event": ..., "data": {...}}; verification calls don't."""
    data = payload.get("data")
    if isinstance(data, dict) and ("event" in payload or _first(data, REFERENCE_KEYS) is not None):
        return data
    return payload


def parse_amount(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).replace(",", ""))
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    try:
        return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError):
        return None


def parse_metadata(value: Any) -> dict:
    """Accepts [{"insightTag", "insightTagValue"}] lists or a plain dict."""
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, list):
        result = {}
        for item in value:
            if isinstance(item, dict) and "insightTag" in item:
                result[str(item["insightTag"])] = item.get("insightTagValue")
        return result
    return {}


def normalize(payload: Any, convention: StatusConvention = DEFAULT) -> GatewayOutcome:
    if not isinstance(payload, dict):
        return Ambiguous(raw={"payload": payload}, reason="payload is not an object")

    data = _unwrap(payload)
    reference = _first(data, REFERENCE_KEYS)
    reference = str(reference).strip() if reference is not None else None
    metadata = parse_metadata(data.get("metadata"))

    if not reference:
        return Ambiguous(raw=payload, reason="missing reference", metadata=metadata)

    status = _first(data, STATUS_KEYS)
    raw_amount = _first(data, AMOUNT_KEYS)
    amount = parse_amount(raw_amount)

    if isinstance(status, str) and status.strip().lower() in IN_PROGRESS:
        return Ambiguous(raw=payload, reason=f"payment still {status.strip().lower()}", reference=reference, metadata=metadata)

    verdict = convention.classify(status)
    if verdict is True:
        if raw_amount is not None and amount is None:
            return Ambiguous(raw=payload, reason=f"unreadable amount {raw_amount!r}", reference=reference, metadata=metadata)
        return Success(reference=reference, amount=amount, metadata=metadata, raw=payload)
    if verdict is False:
        reason = data.get("gateway_response") or data.get("message") or f"gateway status {status}"
        return Failure(reference=reference, reason=str(reason), amount=amount, metadata=metadata, raw=payload)
    return Ambiguous(raw=payload, reason=f"unrecognised status {status!r}", reference=reference, metadata=metadata)
