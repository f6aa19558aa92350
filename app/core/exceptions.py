from fastapi import HTTPException, status


class NotConnectedError(HTTPException):
    """Raised when the user has no connection for the requested provider."""

    def __init__(self, provider: str = "GitHub"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": f"{provider} not connected", "code": "NOT_CONNECTED"},
        )


class ReauthenticationRequired(HTTPException):
    """Raised when a stored provider token is expired or revoked."""

    def __init__(self, provider: str = "GitHub"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": f"{provider} token expired. Please reconnect your account.",
                "code": "TOKEN_EXPIRED",
            },
        )
