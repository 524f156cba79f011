import pytest

from vrng.errors import (
    AddressCollision,
    InvalidFulfillment,
    InvalidNormalizationMethod,
    InvalidRequestId,
    NotInitialized,
    NotOwner,
    OnlyProvider,
    VRNGError,
)


@pytest.mark.parametrize(
    "err,code",
    [
        (NotInitialized(), "NOT_INITIALIZED"),
        (InvalidRequestId(request_id=1, status="REQUESTED"), "INVALID_REQUEST_ID"),
        (InvalidFulfillment(request_id=1, status="NONE"), "INVALID_FULFILLMENT"),
        (OnlyProvider(caller=b"\x01", provider=None), "ONLY_PROVIDER"),
        (InvalidNormalizationMethod(7), "INVALID_NORMALIZATION_METHOD"),
        (AddressCollision(address=b"\x02" * 32), "ADDRESS_COLLISION"),
        (NotOwner(caller=b"\x03"), "NOT_OWNER"),
    ],
)
def test_codes_and_hierarchy(err, code):
    assert isinstance(err, VRNGError)
    assert err.code == code
    d = err.to_dict()
    assert d["code"] == code
    assert d["message"] == err.message
    assert str(err).startswith(code)


def test_details_render_bytes_as_hex():
    err = OnlyProvider(caller=b"\xab\xcd", provider=b"\x01")
    assert err.details == {"caller": "0xabcd", "provider": "0x01"}
    assert err.caller == b"\xab\xcd"


def test_large_details_are_truncated():
    err = VRNGError("x", details={"blob": b"\x00" * 1000, "s": "y" * 1000})
    assert err.details["blob"].endswith("...")
    assert len(err.details["s"]) == 256 + 3


def test_invalid_method_reason():
    err = InvalidNormalizationMethod(2, reason="needs history")
    assert err.message == "needs history"
    assert err.method == 2
    assert err.details == {"method": "2"}
