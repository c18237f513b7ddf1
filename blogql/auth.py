"""
Authorization gate.

``resolve_caller`` turns the request's ``Authorization`` header into a
user id (or ``None`` for anonymous callers).  ``AuthorizationPolicy``
is the single allow/deny step every mutating resolver goes through.
"""
import enum
import logging

from starlette.requests import HTTPConnection

from blogql.errors import Forbidden, Unauthenticated
from blogql.security import Credentials

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def resolve_caller(request: HTTPConnection, credentials: Credentials) -> int | None:
    """
    Return the id of the user whose token accompanies *request*.

    No header means an anonymous caller (``None``).  A header whose token
    does not verify raises ``InvalidToken``; a forged credential is never
    downgraded to anonymous.
    """
    header = request.headers.get("Authorization")
    if not header:
        return None
    token = header.removeprefix(BEARER_PREFIX)
    return credentials.verify_token(token)


class Action(str, enum.Enum):
    CREATE_POST = "create_post"
    UPDATE_POST = "update_post"
    DELETE_POST = "delete_post"
    ADD_COMMENT = "add_comment"


# Actions on an existing resource whose owner may be enforced.
OWNED_ACTIONS = frozenset({Action.UPDATE_POST, Action.DELETE_POST})


class AuthorizationPolicy:
    """
    Evaluate (caller, action, resource owner) -> allow / deny.

    With ``require_authorship`` off, any authenticated caller may perform
    every action, including editing and deleting posts written by
    someone else.  With it on, ``OWNED_ACTIONS`` are restricted to the
    resource's author.
    """

    def __init__(self, require_authorship: bool = False) -> None:
        self.require_authorship = require_authorship

    def authorize(self, caller_id: int | None, action: Action, owner_id: int | None = None) -> int:
        if caller_id is None:
            raise Unauthenticated()
        if (
            self.require_authorship
            and action in OWNED_ACTIONS
            and owner_id is not None
            and owner_id != caller_id
        ):
            logger.info(
                "Denied %s for user %s on resource owned by %s",
                action.value, caller_id, owner_id,
            )
            raise Forbidden("Only the author may perform this action")
        return caller_id
