class LinkError(Exception):
    """Base class for errors reported back to API clients."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidLinkError(LinkError):
    status_code = 400


class CodeConflictError(LinkError):
    status_code = 409


class LinkNotFoundError(LinkError):
    status_code = 404


class CodeSpaceExhausted(LinkError):
    """Raised when the allocator cannot find a free code."""

    status_code = 500
