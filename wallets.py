# wallets.py
import json
import logging
import threading

import base58
from solders.keypair import Keypair

from errors import InvalidPrivateKeyError
from models import Wallet

logger = logging.getLogger(__name__)

SECRET_KEY_LEN = 64


def encode_private_key(keypair: Keypair) -> str:
    return base58.b58encode(bytes(keypair)).decode()


def create_wallet() -> Wallet:
    """Generate a fresh keypair"""
    keypair = Keypair()
    return Wallet(address=str(keypair.pubkey()), private_key=encode_private_key(keypair))


def keypair_from_private_key(private_key: str) -> Keypair:
    """Decode a base58 secret key (or a Solana CLI JSON byte array) into a Keypair"""
    text = (private_key or "").strip()
    if not text:
        raise InvalidPrivateKeyError("Private key is required")
    try:
        if text.startswith("["):
            secret = bytes(json.loads(text))
        else:
            secret = base58.b58decode(text)
        if len(secret) != SECRET_KEY_LEN:
            raise ValueError(f"expected {SECRET_KEY_LEN} bytes, got {len(secret)}")
        return Keypair.from_bytes(secret)
    except Exception as e:
        logger.warning("[WALLET] private key decode failed: %s", type(e).__name__)
        raise InvalidPrivateKeyError() from e


def import_wallet(private_key: str) -> Wallet:
    keypair = keypair_from_private_key(private_key)
    return Wallet(address=str(keypair.pubkey()), private_key=encode_private_key(keypair), imported=True)


class WalletBook:
    """In-memory wallet list with an active selection (the wallet manager panel)"""

    def __init__(self, vault=None):
        self._wallets = []
        self._active = None
        self._lock = threading.Lock()
        self.vault = vault
        if vault is not None:
            self._wallets = vault.load()
            self._active = 0 if self._wallets else None

    def _persist(self):
        if self.vault is not None:
            self.vault.save(self._wallets)

    def _add(self, wallet: Wallet) -> Wallet:
        with self._lock:
            self._wallets.append(wallet)
            self._active = len(self._wallets) - 1
            self._persist()
        logger.info("[WALLET] added %s (imported=%s)", wallet.address, wallet.imported)
        return wallet

    def generate(self) -> Wallet:
        return self._add(create_wallet())

    def import_key(self, private_key: str) -> Wallet:
        return self._add(import_wallet(private_key))

    def select(self, index: int) -> Wallet:
        with self._lock:
            if not 0 <= index < len(self._wallets):
                raise IndexError(f"No wallet at index {index}")
            self._active = index
            return self._wallets[index]

    def remove(self, index: int) -> Wallet:
        with self._lock:
            if not 0 <= index < len(self._wallets):
                raise IndexError(f"No wallet at index {index}")
            wallet = self._wallets.pop(index)
            if not self._wallets:
                self._active = None
            elif self._active is not None and self._active >= index:
                self._active = max(0, self._active - 1)
            self._persist()
        logger.info("[WALLET] removed %s", wallet.address)
        return wallet

    def get(self, index: int) -> Wallet:
        with self._lock:
            if not 0 <= index < len(self._wallets):
                raise IndexError(f"No wallet at index {index}")
            return self._wallets[index]

    @property
    def active(self):
        with self._lock:
            return self._wallets[self._active] if self._active is not None else None

    @property
    def active_index(self):
        return self._active

    def list(self):
        with self._lock:
            return list(self._wallets)

    def __len__(self):
        return len(self._wallets)
