"""
Token launch orchestration
Validate -> decode signer -> mint keypair -> IPFS -> create tx -> sign -> submit -> record.
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from solders.keypair import Keypair

import config
from errors import LauncherBusyError, LobsterPadError, ValidationError
from eventbus import BUS
from launch_store import LaunchHistory
from models import LaunchResult, TokenMetadata
from pump_portal import PumpPortalClient
from vanity import generate_vanity_keypair, validate_suffix
from wallets import keypair_from_private_key

logger = logging.getLogger(__name__)


@dataclass
class SpamLaunchReport:
    requested: int
    results: List[LaunchResult] = field(default_factory=list)
    error: Optional[str] = None
    stage: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and len(self.results) == self.requested

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "requested": self.requested,
            "launched": len(self.results),
            "results": [r.to_dict() for r in self.results],
            "error": self.error,
            "stage": self.stage,
        }


def validate_launch(private_key: str, metadata: TokenMetadata, amount: float):
    if not metadata.image:
        raise ValidationError("Please select an image")
    if not (private_key or "").strip():
        raise ValidationError("Private key is required")
    missing = metadata.missing_fields()
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if amount is None or not math.isfinite(amount) or amount < 0:
        raise ValidationError("Buy amount must be zero or more SOL")


class Launcher:
    """One launch at a time; errors reset the busy flag and propagate"""

    def __init__(self, client: PumpPortalClient = None, history: LaunchHistory = None, bus=BUS,
                 mint_suffix: str = None):
        self.client = client or PumpPortalClient()
        self.history = history if history is not None else LaunchHistory()
        self.bus = bus
        self.mint_suffix = config.MINT_SUFFIX if mint_suffix is None else mint_suffix
        self._busy = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def _mint_keypair(self, suffix: str) -> Keypair:
        if suffix:
            logger.info(f"Searching for a mint address ending in '{suffix}'")
            return generate_vanity_keypair(suffix)
        return Keypair()

    def launch(
        self,
        private_key: str,
        metadata: TokenMetadata,
        rpc_url: str = None,
        amount: float = None,
        slippage: float = None,
        priority_fee: float = None,
        mint_suffix: str = None,
        mint_keypair: Keypair = None,
    ) -> LaunchResult:
        amount = config.DEFAULT_BUY_SOL if amount is None else amount
        validate_launch(private_key, metadata, amount)
        suffix = self.mint_suffix if mint_suffix is None else mint_suffix
        try:
            suffix = validate_suffix(suffix)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if not self._busy.acquire(blocking=False):
            raise LauncherBusyError()
        try:
            self.bus.publish("launch.started", {"message": "Launching token on PumpFun...",
                                                "name": metadata.name, "symbol": metadata.symbol})
            signer = keypair_from_private_key(private_key)
            if mint_keypair is None:
                mint_keypair = self._mint_keypair(suffix)
            mint_address = str(mint_keypair.pubkey())
            logger.info(f"🚀 Launching {metadata.symbol}: signer={signer.pubkey()} mint={mint_address}")

            metadata_uri = self.client.upload_metadata(metadata)
            raw_tx = self.client.request_create_transaction(
                str(signer.pubkey()), mint_address, metadata, metadata_uri,
                amount=amount, slippage=slippage, priority_fee=priority_fee,
            )
            tx = self.client.sign_transaction(raw_tx, mint_keypair, signer)
            signature = self.client.submit_transaction(tx, rpc_url)

            result = LaunchResult.from_signature(signature, mint_address, metadata.name, metadata.symbol)
            self.history.record(result)
            self.bus.publish("launch.success", {"message": "Successfully launched!", **result.to_dict()})
            logger.info(f"🎉 Launched {metadata.symbol}: {result.explorer_url}")
            return result
        except LobsterPadError as e:
            logger.error(f"Launch failed at {e.stage}: {e}")
            self.bus.publish("launch.error", {"message": f"Launch failed: {e}", "stage": e.stage})
            raise
        finally:
            self._busy.release()

    def spam_launch(self, count: int, private_key: str, metadata: TokenMetadata,
                    mint_keypair: Keypair = None, **launch_kwargs) -> SpamLaunchReport:
        """Sequential launches; the first failure stops the run. A given mint_keypair is used for the first launch only"""
        if count < 1:
            raise ValidationError("Launch count must be at least 1")
        if count > config.MAX_SPAM_LAUNCHES:
            raise ValidationError(f"Launch count is capped at {config.MAX_SPAM_LAUNCHES}")

        report = SpamLaunchReport(requested=count)
        for i in range(count):
            logger.info(f"🔄 Spam launch {i + 1}/{count}")
            try:
                mint = mint_keypair if i == 0 else None
                report.results.append(self.launch(private_key, metadata, mint_keypair=mint, **launch_kwargs))
            except ValidationError:
                # same inputs every round, so this can only happen on the first
                raise
            except LobsterPadError as e:
                report.error, report.stage = str(e), e.stage
                break
        self.bus.publish("launch.spam_done", {"requested": count, "launched": len(report.results),
                                              "error": report.error})
        return report
