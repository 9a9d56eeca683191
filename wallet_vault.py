"""
Encrypted wallet persistence for LobsterPad
The only place private keys touch disk; disabled unless LOBSTERPAD_PERSIST_WALLETS=true
"""

import json
import logging
import os

from cryptography.fernet import Fernet, InvalidToken

import config
from models import Wallet

logger = logging.getLogger(__name__)

WALLETS_KEY = "lobsterpad_wallets"


class WalletVault:
    """Fernet-encrypted wallet storage under a fixed key"""

    def __init__(self, wallets_file=None, key_file=None):
        self.wallets_file = wallets_file or config.WALLETS_FILE
        self.key_file = key_file or config.WALLET_KEY_FILE
        self._ensure_encryption_key()

    def _ensure_encryption_key(self):
        """Create or load encryption key"""
        if os.path.exists(self.key_file):
            with open(self.key_file, "rb") as f:
                self.encryption_key = f.read()
        else:
            os.makedirs(os.path.dirname(self.key_file) or ".", exist_ok=True)
            self.encryption_key = Fernet.generate_key()
            fd = os.open(self.key_file, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(self.encryption_key)
            logger.info("Created wallet encryption key: %s", self.key_file)

        self.fernet = Fernet(self.encryption_key)

    def _read(self) -> dict:
        if not os.path.exists(self.wallets_file):
            return {}
        try:
            with open(self.wallets_file) as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading wallets: {e}")
            return {}

    def load(self) -> list:
        entries = self._read().get(WALLETS_KEY, [])
        wallets = []
        for entry in entries:
            try:
                private_key = self.fernet.decrypt(entry["encrypted_private_key"].encode()).decode()
            except (InvalidToken, KeyError) as e:
                logger.error("Skipping unreadable wallet %s: %s", entry.get("address"), type(e).__name__)
                continue
            wallets.append(Wallet(
                address=entry["address"],
                private_key=private_key,
                imported=entry.get("imported", False),
                created=entry.get("created", 0),
            ))
        logger.info("Loaded %d wallets from %s", len(wallets), self.wallets_file)
        return wallets

    def save(self, wallets):
        data = self._read()
        data[WALLETS_KEY] = [
            {
                "address": w.address,
                "encrypted_private_key": self.fernet.encrypt(w.private_key.encode()).decode(),
                "imported": w.imported,
                "created": w.created,
            }
            for w in wallets
        ]
        os.makedirs(os.path.dirname(self.wallets_file) or ".", exist_ok=True)
        with open(self.wallets_file, "w") as f:
            json.dump(data, f, indent=2)
        logger.info("Saved %d wallets to %s: %s", len(wallets), self.wallets_file,
                    ", ".join(w.address for w in wallets))
