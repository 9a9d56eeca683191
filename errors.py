"""
Error types for LobsterPad
Validation problems never reach the network; stage errors carry the stage that failed.
"""


class LobsterPadError(Exception):
    """Base class for every error surfaced to the user"""

    stage = "general"

    def to_dict(self) -> dict:
        return {"success": False, "error": str(self), "stage": self.stage}


class ValidationError(LobsterPadError):
    stage = "validation"


class InvalidPrivateKeyError(ValidationError):
    def __init__(self, message="Invalid private key format"):
        super().__init__(message)


class LauncherBusyError(LobsterPadError):
    stage = "busy"

    def __init__(self, message="A launch is already in progress"):
        super().__init__(message)


class LaunchError(LobsterPadError):
    """Upstream failure during one launch stage: ipfs, trade or rpc"""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


class CloneError(LobsterPadError):
    stage = "clone"
