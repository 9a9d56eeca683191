# Filename: models.py

import time
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

import config

REQUIRED_METADATA_FIELDS = ("name", "symbol", "description")


@dataclass
class Wallet:
    """A Solana wallet: base58 address + base58 64-byte secret key."""
    address: str
    private_key: str
    imported: bool = False
    created: int = field(default_factory=lambda: int(time.time()))

    def masked(self) -> str:
        return self.private_key[:8] + "*" * 32

    def public_view(self) -> dict:
        return {
            "address": self.address,
            "private_key": self.masked(),
            "imported": self.imported,
            "created": self.created,
        }


@dataclass
class TokenMetadata:
    """Token launch form: text fields plus the raw image bytes."""
    name: str
    symbol: str
    description: str
    twitter: str = ""
    telegram: str = ""
    website: str = ""
    image: Optional[bytes] = None
    image_filename: str = "image.png"
    image_content_type: str = "image/png"

    def missing_fields(self) -> List[str]:
        missing = [f for f in REQUIRED_METADATA_FIELDS if not (getattr(self, f) or "").strip()]
        if not self.image:
            missing.append("image")
        return missing


@dataclass(frozen=True)
class LaunchResult:
    signature: str
    mint: str
    explorer_url: str
    name: str = ""
    symbol: str = ""
    created_at: float = field(default_factory=time.time)

    @classmethod
    def from_signature(cls, signature: str, mint: str, name: str = "", symbol: str = ""):
        return cls(
            signature=signature,
            mint=mint,
            explorer_url=f"{config.EXPLORER_TX_URL}{signature}",
            name=name,
            symbol=symbol,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CloneResult:
    """Metadata cloned from an existing token; image is optional (partial success)."""
    mint: str
    fields: Dict[str, str]
    image: Optional[bytes] = None
    image_filename: str = ""
    image_content_type: str = ""
    image_error: str = ""

    @property
    def partial(self) -> bool:
        return self.image is None

    @property
    def message(self) -> str:
        if self.partial:
            return "Metadata cloned, but the image could not be downloaded. Please upload it manually."
        return "Metadata and image cloned!"
