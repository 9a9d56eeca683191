"""
Configuration settings for LobsterPad
Environment variables and endpoint constants
"""

import os

# Endpoints
SOLANA_RPC_URL = os.getenv("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
PUMPPORTAL_API = os.getenv("PUMPPORTAL_API", "https://pumpportal.fun/api")
IPFS_API = os.getenv("IPFS_API", "https://pump.fun/api/ipfs")
MORALIS_API_BASE = os.getenv("MORALIS_API_BASE", "https://solana-gateway.moralis.io")
MORALIS_API_KEY = os.getenv("MORALIS_API_KEY", "")
IMAGE_PROXY_URL = os.getenv("IMAGE_PROXY_URL", "https://images.weserv.nl/")
IPFS_GATEWAY = os.getenv("IPFS_GATEWAY", "https://ipfs.io/ipfs/")
EXPLORER_TX_URL = "https://solscan.io/tx/"

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "30"))

# Launch defaults
DEFAULT_BUY_SOL = float(os.getenv("DEFAULT_BUY_SOL", "0.01"))
DEFAULT_SLIPPAGE = float(os.getenv("DEFAULT_SLIPPAGE", "10"))
DEFAULT_PRIORITY_FEE = float(os.getenv("DEFAULT_PRIORITY_FEE", "0.0005"))
MINT_SUFFIX = os.getenv("LOBSTERPAD_MINT_SUFFIX", "")  # "" = plain random mint
MAX_SPAM_LAUNCHES = int(os.getenv("MAX_SPAM_LAUNCHES", "20"))
VANITY_JOB_TTL = float(os.getenv("VANITY_JOB_TTL", "600"))  # seconds a finished job is kept
MAX_VANITY_JOBS = int(os.getenv("MAX_VANITY_JOBS", "16"))

# Storage
DATA_DIR = os.getenv("DATA_DIR", "data")
PERSIST_WALLETS = os.getenv("LOBSTERPAD_PERSIST_WALLETS", "false").lower() == "true"
WALLETS_FILE = os.getenv("WALLETS_FILE", os.path.join(DATA_DIR, "wallets.json"))
WALLET_KEY_FILE = os.getenv("WALLET_KEY_FILE", os.path.join(DATA_DIR, "wallet_encryption.key"))
LAUNCHES_FILE = os.getenv("LAUNCHES_FILE", os.path.join(DATA_DIR, "launches.json"))

# System Settings
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/app.log")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5000"))
DEBUG_MODE = os.getenv("DEBUG", "false").lower() == "true"
