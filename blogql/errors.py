"""
Error taxonomy for the API.

Every error raised by the gateway, the credential module or the
authorization gate derives from :class:`BlogError`.  Each class carries a
stable ``code`` exposed through ``extensions``; graphql-core copies the
``extensions`` of the original exception onto the ``GraphQLError`` it
builds, so clients receive ``errors[].extensions.code`` without the
resolvers knowing anything about the wire format.
"""


class BlogError(Exception):
    code = "INTERNAL_SERVER_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.extensions = {"code": self.code}


class ValidationError(BlogError):
    code = "BAD_USER_INPUT"
    default_message = "Invalid input"


class Unauthenticated(BlogError):
    code = "UNAUTHENTICATED"
    default_message = "Not authenticated"


class InvalidToken(Unauthenticated):
    code = "INVALID_TOKEN"
    default_message = "Invalid token"


class Forbidden(BlogError):
    code = "FORBIDDEN"
    default_message = "Not allowed"


class NoSuchUser(BlogError):
    code = "NO_SUCH_USER"
    default_message = "No such user found"


class InvalidPassword(BlogError):
    code = "INVALID_PASSWORD"
    default_message = "Invalid password"


class NotFound(BlogError):
    code = "NOT_FOUND"
    default_message = "Not found"


class PersistenceError(BlogError):
    code = "PERSISTENCE_ERROR"
    default_message = "Database operation failed"
