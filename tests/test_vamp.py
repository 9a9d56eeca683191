import httpx
import pytest

from errors import CloneError
from vamp import MetadataCloner, apply_to_form, extract_field, resolve_uri

MINT = "7eMJmn1bYWSQEwxAX7CyngBzGNGu1cT582asKxxRpump"


def test_extensions_sub_object_is_searched():
    assert extract_field([{"extensions": {"twitter_url": "T"}}], "twitter") == "T"


def test_no_match_returns_empty_and_form_keeps_value():
    value = extract_field([{"name": "x"}, {"extensions": {}}], "twitter")
    assert value == ""
    form = apply_to_form({"twitter": "https://x.com/mine", "name": "old"}, {"twitter": value, "name": "new"})
    assert form == {"twitter": "https://x.com/mine", "name": "new"}


def test_synonym_precedence_and_blank_values():
    source = {"x": "from-x", "twitter_url": "  ", "x_url": "from-x-url"}
    assert extract_field([source], "twitter") == "from-x-url"
    assert extract_field([{"twitter": "first"}, {"twitter": "second"}], "twitter") == "first"


def test_non_string_values_ignored():
    assert extract_field([{"website": 42, "extensions": {"website": "https://site"}}], "website") == "https://site"


def test_ipfs_scheme_translated():
    assert resolve_uri("ipfs://Qm123") == "https://ipfs.io/ipfs/Qm123"
    assert resolve_uri("https://arweave.net/x") == "https://arweave.net/x"


def make_cloner(handler, api_key="test-key"):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return MetadataCloner(client=client, api_key=api_key, api_base="https://solana-gateway.moralis.io")


MORALIS_PAYLOAD = {
    "mint": MINT,
    "name": "Clippy",
    "symbol": "CLIPPY",
    "logo": "https://logo.test/clippy.png",
    "metaplex": {"metadataUri": "ipfs://QmMeta"},
}
EXTERNAL_PAYLOAD = {
    "name": "Clippy PFP",
    "symbol": "CLIPPY",
    "description": "paperclip energy",
    "image": "ipfs://QmImage",
    "extensions": {"twitter_url": "https://x.com/clippy", "telegram": "https://t.me/clippy"},
}


def test_clone_follows_metadata_uri_and_uses_proxy():
    seen = []

    def handler(request):
        seen.append(request.url)
        if request.url.host == "solana-gateway.moralis.io":
            assert request.headers["X-API-Key"] == "test-key"
            assert request.url.path == f"/token/mainnet/{MINT}/metadata"
            return httpx.Response(200, json=MORALIS_PAYLOAD)
        if request.url.host == "ipfs.io" and request.url.path == "/ipfs/QmMeta":
            return httpx.Response(200, json=EXTERNAL_PAYLOAD)
        if request.url.host == "images.weserv.nl":
            assert request.url.params["url"] == "https://ipfs.io/ipfs/QmImage"
            assert request.url.params["output"] == "webp"
            return httpx.Response(200, content=b"WEBP", headers={"content-type": "image/webp"})
        return httpx.Response(404)

    result = make_cloner(handler).clone(MINT)

    assert result.fields == {
        "name": "Clippy PFP",
        "symbol": "CLIPPY",
        "description": "paperclip energy",
        "twitter": "https://x.com/clippy",
        "telegram": "https://t.me/clippy",
        "website": "",
    }
    assert result.image == b"WEBP"
    assert result.image_filename == "CLIPPY.webp"
    assert not result.partial
    assert len(seen) == 3


def test_resolved_metadata_skips_external_fetch():
    payload = dict(MORALIS_PAYLOAD, metadata={"name": "Resolved", "twitter": "https://x.com/r"})

    def handler(request):
        if request.url.host == "solana-gateway.moralis.io":
            return httpx.Response(200, json=payload)
        if request.url.host == "ipfs.io":
            raise AssertionError("external metadata should not be fetched")
        return httpx.Response(200, content=b"IMG", headers={"content-type": "image/webp"})

    result = make_cloner(handler).clone(MINT)
    assert result.fields["name"] == "Resolved"
    assert result.fields["twitter"] == "https://x.com/r"
    assert result.fields["symbol"] == "CLIPPY"


def test_image_falls_back_to_direct_fetch():
    def handler(request):
        if request.url.host == "solana-gateway.moralis.io":
            return httpx.Response(200, json={"name": "Logo", "symbol": "LG", "logo": "https://logo.test/lg.png"})
        if request.url.host == "images.weserv.nl":
            return httpx.Response(502)
        if request.url.host == "logo.test":
            return httpx.Response(200, content=b"PNG", headers={"content-type": "image/png"})
        return httpx.Response(404)

    result = make_cloner(handler).clone(MINT)
    assert result.image == b"PNG"
    assert result.image_content_type == "image/png"
    assert result.image_filename == "LG.png"


def test_image_failure_is_partial_success():
    def handler(request):
        if request.url.host == "solana-gateway.moralis.io":
            return httpx.Response(200, json={"name": "NoPic", "symbol": "NP", "logo": "https://logo.test/np.png"})
        return httpx.Response(500)

    result = make_cloner(handler).clone(MINT)
    assert result.fields["name"] == "NoPic"
    assert result.partial
    assert result.image_error
    assert "upload it manually" in result.message


def test_external_metadata_failure_is_tolerated():
    def handler(request):
        if request.url.host == "solana-gateway.moralis.io":
            return httpx.Response(200, json=dict(MORALIS_PAYLOAD, description="from moralis"))
        if request.url.host == "ipfs.io":
            return httpx.Response(504)
        return httpx.Response(200, content=b"IMG", headers={"content-type": "image/webp"})

    result = make_cloner(handler).clone(MINT)
    assert result.fields["name"] == "Clippy"
    assert result.fields["description"] == "from moralis"
    assert not result.partial


def test_moralis_error_raises_clone_error():
    with pytest.raises(CloneError, match="404"):
        make_cloner(lambda request: httpx.Response(404)).clone(MINT)


def test_missing_api_key_makes_no_request():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(CloneError, match="MORALIS_API_KEY"):
        make_cloner(handler, api_key="").clone(MINT)


def test_blank_mint_rejected():
    with pytest.raises(CloneError):
        make_cloner(lambda request: httpx.Response(200, json={})).clone("  ")
