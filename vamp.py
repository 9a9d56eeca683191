"""
Token metadata cloner ("vamp")
Copies name/symbol/description/socials/image from an existing token via Moralis,
falling back to the token's own metadata URI when Moralis hasn't resolved it.
"""

import logging
from typing import Dict, List, Optional, Tuple

import httpx

import config
from errors import CloneError
from models import CloneResult

logger = logging.getLogger(__name__)

FIELD_KEYS = {
    "name": ("name",),
    "symbol": ("symbol",),
    "description": ("description",),
    "twitter": ("twitter", "twitter_url", "x_url", "x"),
    "telegram": ("telegram", "telegram_url", "tg"),
    "website": ("website", "website_url", "external_url", "url"),
    "image": ("image", "image_uri", "logo"),
}
FORM_FIELDS = ("name", "symbol", "description", "twitter", "telegram", "website")


def resolve_uri(uri: str) -> str:
    if uri.startswith("ipfs://"):
        return f"{config.IPFS_GATEWAY}{uri[len('ipfs://'):]}"
    return uri


def _first_string(obj, keys) -> str:
    if not isinstance(obj, dict):
        return ""
    for key in keys:
        value = obj.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def extract_field(sources: List[dict], field: str) -> str:
    """First non-empty string for field across sources; each source is checked before its extensions"""
    keys = FIELD_KEYS.get(field, (field,))
    for source in sources:
        if not isinstance(source, dict):
            continue
        value = _first_string(source, keys) or _first_string(source.get("extensions"), keys)
        if value:
            return value
    return ""


def apply_to_form(form: dict, fields: Dict[str, str]) -> dict:
    """Overwrite only with non-empty cloned values; anything not found keeps its prior value"""
    updated = dict(form)
    for key, value in fields.items():
        if value:
            updated[key] = value
    return updated


class MetadataCloner:
    def __init__(self, client: httpx.Client = None, api_key: str = None, api_base: str = None):
        self.client = client or httpx.Client(timeout=config.HTTP_TIMEOUT, follow_redirects=True)
        self.api_key = config.MORALIS_API_KEY if api_key is None else api_key
        self.api_base = (api_base or config.MORALIS_API_BASE).rstrip("/")

    def fetch_moralis_metadata(self, mint: str) -> dict:
        if not self.api_key:
            raise CloneError("MORALIS_API_KEY is not configured")
        url = f"{self.api_base}/token/mainnet/{mint}/metadata"
        try:
            r = self.client.get(url, headers={"accept": "application/json", "X-API-Key": self.api_key})
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[VAMP] Moralis returned {e.response.status_code} for {mint}")
            raise CloneError(f"Could not fetch token metadata ({e.response.status_code})") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[VAMP] Moralis metadata fetch failed for {mint}: {e}")
            raise CloneError(f"Could not fetch token metadata: {e}") from e
        if not isinstance(data, dict):
            raise CloneError("Unexpected metadata response shape")
        return data

    def fetch_external_metadata(self, uri: str) -> Optional[dict]:
        """Best effort; None on any failure"""
        url = resolve_uri(uri)
        try:
            r = self.client.get(url)
            r.raise_for_status()
            data = r.json()
            return data if isinstance(data, dict) else None
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[VAMP] external metadata fetch failed for {uri}: {e}")
            return None

    def download_image(self, url: str, name: str) -> Tuple[bytes, str, str]:
        """Proxy first (re-encoded to webp), direct download as fallback"""
        url = resolve_uri(url)
        try:
            r = self.client.get(config.IMAGE_PROXY_URL, params={"url": url, "output": "webp"})
            r.raise_for_status()
            content_type = r.headers.get("content-type", "image/webp").split(";")[0] or "image/webp"
        except httpx.HTTPError as e:
            logger.warning(f"[VAMP] image proxy failed, trying direct fetch: {e}")
            r = self.client.get(url)
            r.raise_for_status()
            content_type = r.headers.get("content-type", "image/png").split(";")[0] or "image/png"
        extension = content_type.split("/")[-1] or "png"
        return r.content, f"{name}.{extension}", content_type

    def clone(self, mint: str) -> CloneResult:
        mint = (mint or "").strip()
        if not mint:
            raise CloneError("Token address is required")

        data = self.fetch_moralis_metadata(mint)
        sources = []
        resolved = data.get("metadata") if isinstance(data.get("metadata"), dict) else None
        if not resolved:
            metaplex = data.get("metaplex") if isinstance(data.get("metaplex"), dict) else {}
            uri = _first_string(metaplex, ("metadataUri",)) or _first_string(data, ("metadataUri", "uri", "tokenUri"))
            if uri:
                resolved = self.fetch_external_metadata(uri)
        if resolved:
            sources.append(resolved)
        sources.append(data)
        sources.append(data.get("links") if isinstance(data.get("links"), dict) else {})

        fields = {f: extract_field(sources, f) for f in FORM_FIELDS}
        result = CloneResult(mint=mint, fields=fields)
        logger.info(f"[VAMP] cloned {mint}: {fields.get('name')} ({fields.get('symbol')})")

        image_url = extract_field(sources, "image")
        if not image_url:
            result.image_error = "No image found in token metadata"
            return result
        try:
            result.image, result.image_filename, result.image_content_type = self.download_image(
                image_url, fields.get("symbol") or "token"
            )
        except httpx.HTTPError as e:
            logger.error(f"[VAMP] image download failed for {mint}: {e}")
            result.image_error = str(e)
        return result
