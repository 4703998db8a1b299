"""Error kinds surfaced by the library operations.

Every rejected precondition maps to exactly one of these classes; the API
layer turns them into JSON responses with the matching status code.
"""


class LibraryError(Exception):
    status_code = 500
    code = "internal_error"
    default_message = "Internal error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(LibraryError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class Unavailable(LibraryError):
    status_code = 409
    code = "unavailable"
    default_message = "No available copies of this book"


class AlreadyBorrowed(LibraryError):
    status_code = 409
    code = "already_borrowed"
    default_message = "You already have this book borrowed"


class AlreadyReturned(LibraryError):
    status_code = 409
    code = "already_returned"
    default_message = "This book has already been returned"


class Unauthorized(LibraryError):
    status_code = 401
    code = "unauthorized"
    default_message = "Not authenticated"


class Forbidden(LibraryError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class Conflict(LibraryError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class InvalidOperation(LibraryError):
    status_code = 400
    code = "invalid_operation"
    default_message = "Invalid operation"


class StoreFailure(LibraryError):
    status_code = 500
    code = "internal_error"
    default_message = "Internal error"
