"""Provider client: signing, payload shape, status normalization, transport failures."""
import asyncio
import hashlib

import pytest
import requests

from conftest import FakeHttp, FakeResponse
from vmtopup.core.exceptions import TransportFailure
from vmtopup.core.signatures import make_sign
from vmtopup.services.provider_client import ProviderClient, generate_ref_id

API_URL = "https://provider.test/api/v4"


def _client(http, ref_id="REF1"):
    return ProviderClient(
        api_url=API_URL,
        username="bosuser",
        api_key="secretkey",
        timeout_seconds=5,
        http=http,
        ref_id_factory=lambda: ref_id,
    )


def test_make_sign_is_md5_of_concatenation():
    assert make_sign("a", "b", "c") == "900150983cd24fb0d6963f7d28e17f72"
    assert make_sign("bosuser", "secretkey", "REF1") == hashlib.md5(b"bosusersecretkeyREF1").hexdigest()


def test_make_sign_changes_with_any_input():
    base = make_sign("user", "key", "1")
    assert make_sign("user2", "key", "1") != base
    assert make_sign("user", "key2", "1") != base
    assert make_sign("user", "key", "2") != base


def test_build_payload_sends_signed_inputs_unmodified():
    payload = _client(FakeHttp()).build_payload("REF1", " 123456789 ", "HD30M")
    assert payload == {
        "username": "bosuser",
        "ref_id": "REF1",
        "userid": " 123456789 ",
        "sku_code": "HD30M",
        "sign": make_sign("bosuser", "secretkey", "REF1"),
    }


def test_place_order_success():
    http = FakeHttp(FakeResponse(body={"status": "success", "sn": "XYZ"}))
    result = asyncio.run(_client(http).place_order("123456789", "HD30M"))

    assert result.ref_id == "REF1"
    assert result.status == "success"
    assert result.raw_response == {"status": "success", "sn": "XYZ"}

    assert len(http.calls) == 1
    call = http.calls[0]
    assert call["url"] == API_URL
    assert call["timeout"] == 5
    assert call["json"]["ref_id"] == "REF1"
    assert call["json"]["userid"] == "123456789"
    assert call["json"]["sku_code"] == "HD30M"


@pytest.mark.parametrize("body", [{}, {"status": None}, {"status": ""}, {"message": "queued"}])
def test_missing_status_is_unknown(body):
    result = _client(FakeHttp(FakeResponse(body=body))).place_order_sync("1", "HD30M")
    assert result.status == "unknown"


def test_provider_status_passes_through():
    result = _client(FakeHttp(FakeResponse(body={"status": "Sukses"}))).place_order_sync("1", "HD30M")
    assert result.status == "Sukses"


def test_http_error_is_transport_failure():
    http = FakeHttp(FakeResponse(status_code=502, body=None, text="Bad Gateway"))
    with pytest.raises(TransportFailure) as exc:
        _client(http, ref_id="REF9").place_order_sync("1", "HD30M")
    assert exc.value.ref_id == "REF9"


def test_non_json_body_is_transport_failure():
    http = FakeHttp(FakeResponse(status_code=200, body=None, text="<html>oops</html>"))
    with pytest.raises(TransportFailure):
        _client(http).place_order_sync("1", "HD30M")


def test_non_object_json_is_transport_failure():
    http = FakeHttp(FakeResponse(body=["success"]))
    with pytest.raises(TransportFailure):
        _client(http).place_order_sync("1", "HD30M")


@pytest.mark.parametrize(
    "error",
    [requests.Timeout("read timed out"), requests.ConnectionError("connection refused")],
)
def test_network_errors_are_transport_failures(error):
    with pytest.raises(TransportFailure):
        asyncio.run(_client(FakeHttp(error=error)).place_order("1", "HD30M"))


def test_each_placement_gets_a_fresh_ref_id():
    http = FakeHttp()
    client = ProviderClient(API_URL, "u", "k", http=http)
    first = client.place_order_sync("1", "HD30M")
    second = client.place_order_sync("1", "HD30M")
    assert first.ref_id != second.ref_id
    assert http.calls[0]["json"]["sign"] != http.calls[1]["json"]["sign"]


def test_generate_ref_id_unique_in_tight_loop():
    ids = {generate_ref_id() for _ in range(10000)}
    assert len(ids) == 10000
