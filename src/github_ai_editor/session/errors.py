ExtraInfoType = dict[str, str | None]


class SessionError(Exception):
    """An error raised by the editor session before any collaborator is called."""

    def __init__(self, message: str, extra_info: ExtraInfoType | None = None):
        msg = message
        if extra_info:
            msg += " (" + ", ".join([f"{key}: {value}" for key, value in extra_info.items() if value is not None]) + ")"
        super().__init__(msg)


class ValidationError(SessionError):
    """Malformed user input."""

    def __init__(self, action: str, message: str, value: str | None = None):
        super().__init__(message=message, extra_info={"action": action, "value": value})


class SessionBusyError(SessionError):
    """An operation of the same category is already in flight."""

    def __init__(self, action: str, in_flight: str | None = None):
        super().__init__(message="Another operation of this kind is still in progress.", extra_info={"action": action, "in_flight": in_flight})


class InvalidTransitionError(SessionError):
    """The operation is not permitted in the current state of the session."""

    def __init__(self, action: str, state: str):
        super().__init__(message="The operation is not available right now.", extra_info={"action": action, "state": state})
