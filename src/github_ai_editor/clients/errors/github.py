ExtraInfoType = dict[str, str | None]


class ClientError(Exception):
    """An error from a collaborator client."""

    def __init__(self, message: str, extra_info: ExtraInfoType | None = None):
        msg = message
        if extra_info:
            msg += " (" + ", ".join([f"{key}: {value}" for key, value in extra_info.items() if value is not None]) + ")"
        super().__init__(msg)


class RequestError(ClientError):
    """A request error from the repository host client."""

    def __init__(self, action: str, message: str | None = None, extra_info: ExtraInfoType | None = None):
        if not extra_info:
            extra_info = {}
        super().__init__(message="A request error occurred.", extra_info={"action": action, "message": message, **extra_info})


class HttpError(RequestError):
    """The repository host answered with a non-2xx status, or could not be reached at all (no status)."""

    status: int | None
    reason: str | None

    def __init__(self, action: str, status: int | None, message: str | None = None, extra_info: ExtraInfoType | None = None):
        self.status = status
        self.reason = message
        if not extra_info:
            extra_info = {}
        super().__init__(
            action=action,
            message=message,
            extra_info={"status": str(status) if status is not None else None, **extra_info},
        )


class ResourceNotFoundError(HttpError):
    """A not found error from the repository host client."""

    def __init__(self, action: str, resource: str | None = None, extra_info: ExtraInfoType | None = None):
        if not extra_info:
            extra_info = {}
        super().__init__(
            action=action,
            status=404,
            message="The resource could not be found.",
            extra_info={"resource": resource, **extra_info},
        )


class DecodeError(ClientError):
    """File content could not be turned into text: malformed base64, binary data, or a blob too large to inline."""

    def __init__(self, resource: str, reason: str | None = None):
        super().__init__(message="The file content could not be decoded.", extra_info={"resource": resource, "reason": reason})
