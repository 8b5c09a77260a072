"""Pydantic model describing the front-end request being rendered."""

from __future__ import annotations

import pydantic


class RequestContext(pydantic.BaseModel):
    """What the injector needs to know about the current page request.

    ``url`` may be a full URL or a bare path.  ``post_id`` is only set
    when the request renders a single post or page.
    """

    url: str = "/"
    is_admin: bool = False
    is_logged_in: bool = False
    user_roles: list[str] = pydantic.Field(default_factory=list)
    post_id: int | None = None
