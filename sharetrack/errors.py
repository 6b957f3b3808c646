"""Domain errors rendered as {"status": false, "code": ..., "message": ...}."""

from typing import Optional


class ShareTrackError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"status": False, "code": self.code, "message": self.message}


class ShareValidationError(ShareTrackError):
    code = "invalid_request"


class ShareNotFoundError(ShareTrackError):
    status_code = 404
    code = "share_not_found"

    def __init__(self, share_id: str):
        super().__init__(f"Share with ID {share_id} not found")
        self.share_id = share_id


class ShareNotActiveError(ShareTrackError):
    status_code = 404
    code = "share_not_active"

    def __init__(self, share_id: str):
        super().__init__(f"No running share with ID {share_id}")
        self.share_id = share_id


class PlatformNotConfiguredError(ShareTrackError):
    status_code = 500
    code = "platform_not_configured"
