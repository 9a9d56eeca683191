"""
PumpPortal token creation client
IPFS metadata upload -> trade-local create transaction -> local signing -> RPC submission.
Nothing here retries; every failure raises LaunchError tagged with its stage.
"""

import logging

import requests
from solders.commitment_config import CommitmentLevel
from solders.keypair import Keypair
from solders.rpc.config import RpcSendTransactionConfig
from solders.rpc.requests import SendVersionedTransaction
from solders.transaction import VersionedTransaction

import config
from errors import LaunchError
from models import TokenMetadata

logger = logging.getLogger(__name__)

RPC_FORBIDDEN_HINT = (
    "RPC endpoint refused the transaction (HTTP 403). Public RPC nodes often block "
    "sendTransaction; use a private RPC URL (Helius, QuickNode, Triton...) and try again."
)


class PumpPortalClient:
    """Thin wrapper over the pump.fun IPFS endpoint, PumpPortal and a Solana RPC node"""

    def __init__(self, api_url=None, ipfs_url=None, timeout=None, session=None):
        self.api_url = (api_url or config.PUMPPORTAL_API).rstrip("/")
        self.ipfs_url = ipfs_url or config.IPFS_API
        self.timeout = timeout or config.HTTP_TIMEOUT
        self.session = session or requests.Session()

    def upload_metadata(self, metadata: TokenMetadata) -> str:
        """Pin token metadata + image, return the metadata URI"""
        form = {
            "name": metadata.name,
            "symbol": metadata.symbol,
            "description": metadata.description,
            "twitter": metadata.twitter or "",
            "telegram": metadata.telegram or "",
            "website": metadata.website or "",
            "showName": "true",
        }
        files = {"file": (metadata.image_filename, metadata.image, metadata.image_content_type)}

        logger.info(f"Uploading metadata for {metadata.name} ({metadata.symbol}) to IPFS")
        try:
            response = self.session.post(self.ipfs_url, data=form, files=files, timeout=self.timeout)
        except requests.RequestException as e:
            raise LaunchError("ipfs", f"IPFS upload failed: {e}") from e

        if response.status_code != 200:
            raise LaunchError("ipfs", f"IPFS upload failed ({response.status_code}): {response.text[:200]}")

        try:
            metadata_uri = response.json().get("metadataUri")
        except ValueError as e:
            raise LaunchError("ipfs", "IPFS upload returned invalid JSON") from e
        if not metadata_uri:
            raise LaunchError("ipfs", "IPFS upload response had no metadataUri")

        logger.info(f"✅ Metadata pinned: {metadata_uri}")
        return metadata_uri

    def request_create_transaction(
        self,
        signer_address: str,
        mint_address: str,
        metadata: TokenMetadata,
        metadata_uri: str,
        amount: float = None,
        slippage: float = None,
        priority_fee: float = None,
    ) -> bytes:
        """Ask PumpPortal for an unsigned create transaction, return its raw bytes"""
        trade_data = {
            "publicKey": signer_address,
            "action": "create",
            "tokenMetadata": {
                "name": metadata.name,
                "symbol": metadata.symbol,
                "uri": metadata_uri,
            },
            "mint": mint_address,
            "denominatedInSol": "true",
            "amount": config.DEFAULT_BUY_SOL if amount is None else amount,
            "slippage": config.DEFAULT_SLIPPAGE if slippage is None else slippage,
            "priorityFee": config.DEFAULT_PRIORITY_FEE if priority_fee is None else priority_fee,
            "pool": "pump",
            "isMayhemMode": "false",
        }
        url = f"{self.api_url}/trade-local"

        logger.info(f"📤 Create request: mint={mint_address} signer={signer_address} amount={trade_data['amount']}")
        try:
            response = self.session.post(url, json=trade_data, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise LaunchError(
                "trade",
                f"Could not reach PumpPortal at {url}. Check your connection or whether the service is down ({e})",
            ) from e
        except requests.RequestException as e:
            raise LaunchError("trade", f"PumpPortal request failed: {e}") from e

        if response.status_code != 200:
            raise LaunchError("trade", f"PumpPortal API failed ({response.status_code}): {response.text[:200]}")
        if not response.content:
            raise LaunchError("trade", "PumpPortal returned an empty transaction")

        logger.info("✅ PumpPortal transaction received")
        return response.content

    @staticmethod
    def sign_transaction(raw: bytes, mint_keypair: Keypair, signer_keypair: Keypair) -> VersionedTransaction:
        """Both signatures are required: the mint account is created and the signer pays"""
        try:
            unsigned = VersionedTransaction.from_bytes(raw)
            return VersionedTransaction(unsigned.message, [mint_keypair, signer_keypair])
        except Exception as e:
            raise LaunchError("sign", f"Could not sign PumpPortal transaction: {e}") from e

    def submit_transaction(self, tx: VersionedTransaction, rpc_url: str = None) -> str:
        """Send with preflight checks at confirmed commitment, return the signature"""
        rpc_url = rpc_url or config.SOLANA_RPC_URL
        commitment = CommitmentLevel.Confirmed
        send_config = RpcSendTransactionConfig(skip_preflight=False, preflight_commitment=commitment)

        try:
            response = self.session.post(
                rpc_url,
                headers={"Content-Type": "application/json"},
                data=SendVersionedTransaction(tx, send_config).to_json(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise LaunchError("rpc", f"Transaction submission failed: {e}") from e

        if response.status_code == 403:
            logger.warning(f"RPC {rpc_url} returned 403")
            raise LaunchError("rpc", RPC_FORBIDDEN_HINT)
        if response.status_code != 200:
            raise LaunchError("rpc", f"Transaction submission failed ({response.status_code}): {response.text[:200]}")

        try:
            response_json = response.json()
        except ValueError as e:
            raise LaunchError("rpc", "Transaction submission failed: RPC returned invalid JSON") from e

        if "result" in response_json:
            signature = response_json["result"]
            logger.info(f"✅ Transaction sent: {signature}")
            return signature

        error = response_json.get("error", "Unknown error")
        if isinstance(error, dict):
            error = error.get("message", error)
        raise LaunchError("rpc", f"Transaction submission failed: {error}")
