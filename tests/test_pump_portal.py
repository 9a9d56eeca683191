import json

import pytest
from solders.keypair import Keypair
from solders.signature import Signature

from errors import LaunchError
from fakes import CONNECTION_REFUSED, FakeResponse, FakeSession, make_metadata, unsigned_create_tx
from pump_portal import RPC_FORBIDDEN_HINT, PumpPortalClient


def make_client(*replies):
    session = FakeSession(*replies)
    client = PumpPortalClient(api_url="https://pp.test/api/", ipfs_url="https://ipfs.test/api/ipfs", session=session)
    return client, session


def test_upload_metadata_posts_multipart_form():
    client, session = make_client(FakeResponse(json_data={"metadataUri": "https://ipfs.io/ipfs/abc"}))

    uri = client.upload_metadata(make_metadata(telegram=""))

    assert uri == "https://ipfs.io/ipfs/abc"
    url, kwargs = session.calls[0]
    assert url == "https://ipfs.test/api/ipfs"
    assert kwargs["data"]["showName"] == "true"
    assert kwargs["data"]["telegram"] == ""
    assert kwargs["data"]["twitter"] == "https://x.com/lobster"
    assert kwargs["files"]["file"][0] == "lobster.png"


@pytest.mark.parametrize("reply", [
    CONNECTION_REFUSED,
    FakeResponse(status_code=500, text="boom"),
    FakeResponse(json_data={"other": 1}),
])
def test_upload_metadata_failures_are_ipfs_stage(reply):
    client, _ = make_client(reply)
    with pytest.raises(LaunchError) as exc:
        client.upload_metadata(make_metadata())
    assert exc.value.stage == "ipfs"


def test_create_request_body():
    client, session = make_client(FakeResponse(content=b"\x01tx"))

    raw = client.request_create_transaction("SIGNER", "MINT", make_metadata(), "https://meta", amount=0.5)

    assert raw == b"\x01tx"
    url, kwargs = session.calls[0]
    assert url == "https://pp.test/api/trade-local"
    body = kwargs["json"]
    assert body["action"] == "create"
    assert body["tokenMetadata"] == {"name": "Lobster King", "symbol": "LOBSTR", "uri": "https://meta"}
    assert body["amount"] == 0.5
    assert body["slippage"] == 10
    assert body["priorityFee"] == 0.0005
    assert body["pool"] == "pump"
    assert body["denominatedInSol"] == "true"
    assert body["isMayhemMode"] == "false"


def test_unreachable_pumpportal_gets_hint():
    client, _ = make_client(CONNECTION_REFUSED)
    with pytest.raises(LaunchError) as exc:
        client.request_create_transaction("S", "M", make_metadata(), "uri")
    assert exc.value.stage == "trade"
    assert "Could not reach PumpPortal" in str(exc.value)


def test_pumpportal_error_status():
    client, _ = make_client(FakeResponse(status_code=400, text="bad mint"))
    with pytest.raises(LaunchError, match="bad mint"):
        client.request_create_transaction("S", "M", make_metadata(), "uri")


def test_sign_with_mint_and_signer():
    signer, mint = Keypair(), Keypair()
    raw = unsigned_create_tx(signer.pubkey(), mint.pubkey())

    tx = PumpPortalClient.sign_transaction(raw, mint, signer)

    assert len(tx.signatures) == 2
    assert Signature.default() not in tx.signatures
    assert all(tx.verify_with_results())


def test_sign_garbage_fails():
    with pytest.raises(LaunchError) as exc:
        PumpPortalClient.sign_transaction(b"garbage", Keypair(), Keypair())
    assert exc.value.stage == "sign"


def _signed_tx():
    signer, mint = Keypair(), Keypair()
    return PumpPortalClient.sign_transaction(unsigned_create_tx(signer.pubkey(), mint.pubkey()), mint, signer)


def test_submit_returns_signature_with_preflight():
    client, session = make_client(FakeResponse(json_data={"jsonrpc": "2.0", "id": 0, "result": "5igSig"}))

    assert client.submit_transaction(_signed_tx(), "https://rpc.test") == "5igSig"

    url, kwargs = session.calls[0]
    assert url == "https://rpc.test"
    payload = json.loads(kwargs["data"])
    assert payload["method"] == "sendTransaction"
    options = payload["params"][1]
    assert options["skipPreflight"] is False
    assert options["preflightCommitment"] == "confirmed"


def test_forbidden_rpc_gets_remediation():
    client, _ = make_client(FakeResponse(status_code=403, text="Forbidden"))
    with pytest.raises(LaunchError) as exc:
        client.submit_transaction(_signed_tx(), "https://api.mainnet-beta.solana.com")
    assert exc.value.stage == "rpc"
    assert str(exc.value) == RPC_FORBIDDEN_HINT
    assert "private RPC" in str(exc.value)


@pytest.mark.parametrize("reply", [
    FakeResponse(status_code=500, text="oops"),
    FakeResponse(json_data={"jsonrpc": "2.0", "id": 0, "error": {"code": -32002, "message": "insufficient funds"}}),
    CONNECTION_REFUSED,
])
def test_other_rpc_failures_are_generic(reply):
    client, _ = make_client(reply)
    with pytest.raises(LaunchError) as exc:
        client.submit_transaction(_signed_tx(), "https://rpc.test")
    assert str(exc.value).startswith("Transaction submission failed")
    assert str(exc.value) != RPC_FORBIDDEN_HINT
