from typing import Optional

from flask import has_request_context, session


SESSION_USER_KEY = "user_id"


def resolve_user_id() -> Optional[str]:
    """Return the signed-in user's id for the current request, or None.

    Credentials are checked elsewhere; only the presence of a resolved
    identity in the session matters here.
    """
    if not has_request_context():
        return None
    uid = session.get(SESSION_USER_KEY)
    return str(uid) if uid else None
