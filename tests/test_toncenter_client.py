import asyncio
import base64
import json

import httpx
import pytest
from tonsdk.boc import begin_cell
from tonsdk.utils import Address

from adapters.chain.toncenter_client import ToncenterClient, parse_transaction
from core.services.exceptions import ChainClientError
from fakes import CHILD, USER


def _client(handler):
    return ToncenterClient(base_url="https://toncenter.test/api/v2", api_key="k", transport=httpx.MockTransport(handler))


def test_get_wallet_seqno_sends_api_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.headers.get("X-API-Key")
        seen["address"] = request.url.params.get("address")
        return httpx.Response(200, json={"ok": True, "result": {"wallet": True, "seqno": 17}})

    seqno = asyncio.run(_client(handler).get_wallet_seqno(USER))

    assert seqno == 17
    assert seen == {"path": "/api/v2/getWalletInformation", "key": "k", "address": USER}


def test_error_envelope_raises_chain_client_error():
    def handler(request):
        return httpx.Response(429, json={"ok": False, "error": "Ratelimit exceed", "code": 429})

    with pytest.raises(ChainClientError) as exc:
        asyncio.run(_client(handler).get_account_state(USER))

    assert exc.value.status_code == 429
    assert exc.value.method == "getAddressInformation"


def test_run_get_method_decodes_stack_and_checks_exit_code():
    def handler(request):
        payload = json.loads(request.content)
        assert payload["method"] == "getExpiry"
        assert payload["stack"][0][0] == "tvm.Slice"
        exit_code = 0 if payload["address"] == CHILD else 11
        return httpx.Response(
            200,
            json={"ok": True, "result": {"exit_code": exit_code, "stack": [["num", "0x6553f100"]]}},
        )

    client = _client(handler)
    assert asyncio.run(client.run_get_method(CHILD, "getExpiry", [Address(USER)])) == [0x6553F100]
    with pytest.raises(ChainClientError):
        asyncio.run(client.run_get_method(USER, "getExpiry", [Address(USER)]))


def test_send_boc_posts_base64():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"ok": True, "result": {"@type": "ok"}})

    asyncio.run(_client(handler).send_boc(b"\x01\x02"))

    assert seen == {"boc": "AQI="}


def test_parse_transaction_text_comment():
    raw = {
        "utime": 1_700_000_100,
        "transaction_id": {"lt": "123", "hash": base64.b64encode(b"\xab" * 32).decode()},
        "in_msg": {
            "source": USER,
            "destination": CHILD,
            "value": "9950000000",
            "msg_data": {"@type": "msg.dataText", "text": base64.b64encode(b"Subscribe").decode()},
        },
    }

    tx = parse_transaction(raw)

    assert tx.lt == 123
    assert tx.hash_hex == "ab" * 32
    assert tx.value_nano == 9_950_000_000
    assert tx.comment == "Subscribe"
    assert tx.is_internal


def test_parse_transaction_raw_body_comment():
    body = begin_cell().store_uint(0, 32).store_string("Subscribe").end_cell()
    raw = {
        "utime": 1,
        "transaction_id": {"lt": "5", "hash": ""},
        "in_msg": {
            "source": USER,
            "value": "1",
            "msg_data": {"@type": "msg.dataRaw", "body": base64.b64encode(bytes(body.to_boc(False))).decode()},
        },
    }

    assert parse_transaction(raw).comment == "Subscribe"


def test_parse_external_in_has_no_source():
    tx = parse_transaction({"utime": 1, "transaction_id": {"lt": "1", "hash": ""}, "in_msg": {"source": "", "value": "0"}})

    assert not tx.is_internal
