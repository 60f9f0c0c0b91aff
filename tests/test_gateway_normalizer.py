import pytest

from talenthunt.services.gateway_normalizer import (
    DEFAULT,
    TEXTUAL,
    Ambiguous,
    Failure,
    Success,
    get_convention,
    normalize,
    parse_amount,
    parse_metadata,
)


def test_paystack_webhook_envelope():
    outcome = normalize({
        "event": "charge.success",
        "data": {"reference": "ETH_1", "status": "success", "amount": "1090", "channel": "card"},
    })
    assert outcome == Success(reference="ETH_1", amount=1090, metadata={}, raw=outcome.raw)


def test_alternate_field_names_and_numeric_success():
    outcome = normalize({
        "transRef": "VOTE_9",
        "paymentStatus": 0,
        "transAmount": "1,000.00",
        "metadata": [
            {"insightTag": "type", "insightTagValue": "vote_payment"},
            {"insightTag": "contestantId", "insightTagValue": "c-1"},
        ],
    })
    assert isinstance(outcome, Success)
    assert outcome.reference == "VOTE_9"
    assert outcome.amount == 1000
    assert outcome.metadata == {"type": "vote_payment", "contestantId": "c-1"}


def test_failure_carries_reason():
    outcome = normalize({"reference": "ETH_2", "status": "failed", "gateway_response": "Declined by bank"})
    assert isinstance(outcome, Failure)
    assert outcome.reason == "Declined by bank"

    numeric = normalize({"reference": "ETH_3", "transaction_status": "1"})
    assert isinstance(numeric, Failure)


@pytest.mark.parametrize("payload, reason", [
    ({"status": "success"}, "missing reference"),
    ({"reference": "R", "status": "pending"}, "payment still pending"),
    ({"reference": "R", "status": "processing"}, "payment still processing"),
    ({"reference": "R"}, "unrecognised status None"),
    ({"reference": "R", "status": True}, "unrecognised status True"),
    ({"reference": "R", "status": "weird"}, "unrecognised status 'weird'"),
    ({"reference": "R", "status": 7}, "unrecognised status 7"),
    ({"reference": "R", "status": "\u00b2"}, "unrecognised status '\u00b2'"),
    ({"reference": "R", "status": "--1"}, "unrecognised status '--1'"),
    ({"reference": "R", "status": "success", "amount": "NaN"}, "unreadable amount 'NaN'"),
    ({"reference": "R", "status": "success", "amount": "1e40"}, "unreadable amount '1e40'"),
    ({"reference": "R", "status": "success", "amount": "Infinity"}, "unreadable amount 'Infinity'"),
])
def test_ambiguous_outcomes(payload, reason):
    outcome = normalize(payload)
    assert isinstance(outcome, Ambiguous)
    assert outcome.reason == reason


def test_non_object_payload_is_ambiguous():
    assert isinstance(normalize(["not", "a", "dict"]), Ambiguous)


def test_textual_convention_rejects_numeric_codes():
    assert isinstance(normalize({"reference": "R", "status": 0}, TEXTUAL), Ambiguous)
    assert isinstance(normalize({"reference": "R", "status": "reversed"}, TEXTUAL), Failure)
    assert isinstance(normalize({"reference": "R", "status": "reversed"}, DEFAULT), Ambiguous)
    assert get_convention("textual") is TEXTUAL
    with pytest.raises(ValueError):
        get_convention("nope")


def test_amount_and_metadata_parsing():
    assert parse_amount("1090.5") == 1091
    assert parse_amount(None) is None
    assert parse_amount("abc") is None
    assert parse_amount("NaN") is None
    assert parse_amount("-Infinity") is None
    assert parse_amount("1e40") is None
    assert parse_metadata({"a": 1}) == {"a": 1}
    assert parse_metadata("junk") == {}
