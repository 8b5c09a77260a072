"""
Tracking script injection for front-end page output.

Decides whether the current request is excluded from tracking and,
if not, renders the analytics ``<script>`` tag with its data
attributes.
"""

from __future__ import annotations

import html
import json
import re

from src.models.request import RequestContext
from src.models.settings import DEFAULT_DEBOUNCE_DELAY, TrackingSettings
from src.tracking import patterns
from src.utils import logger, url

log = logger.create_logger("ScriptInjector")

_HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.I)


def should_exclude_user(settings: TrackingSettings, ctx: RequestContext) -> bool:
    """True when a logged-in visitor holds one of the excluded roles."""
    if not ctx.is_logged_in or not settings.exclude_roles:
        return False
    return any(role in ctx.user_roles for role in settings.exclude_roles)


def should_exclude_page(settings: TrackingSettings, ctx: RequestContext) -> bool:
    """True when the current request must not be tracked.

    Checks, in order: excluded user roles, skip patterns against the
    request path, and individually excluded posts/pages.
    """
    if should_exclude_user(settings, ctx):
        log.debug("Excluded by user role", {"roles": ctx.user_roles})
        return True

    if settings.skip_patterns and patterns.matches_any(ctx.url, settings.skip_patterns):
        log.debug("Excluded by skip pattern", {"url": ctx.url})
        return True

    # post_id 0 marks an exclusion that was never tied to a post.
    if ctx.post_id and any(e.post_id == ctx.post_id for e in settings.exclusions if e.post_id):
        log.debug("Excluded post", {"postId": ctx.post_id})
        return True

    return False


def _json_attr(name: str, values: list[str]) -> str:
    """Render a JSON-encoded, HTML-escaped data attribute."""
    return f' {name}="{html.escape(json.dumps(values), quote=True)}"'


def render_tracking_script(settings: TrackingSettings, ctx: RequestContext) -> str:
    """Build the tracking snippet for a request, or ``""`` when not tracked."""
    if ctx.is_admin or not settings.site_id:
        return ""
    if should_exclude_page(settings, ctx):
        return ""
    if not url.is_http_url(settings.script_url):
        log.warn("Script URL is not an http(s) URL, skipping snippet", {"scriptUrl": settings.script_url})
        return ""

    script_url = html.escape(settings.script_url, quote=True)
    site_id = html.escape(settings.site_id, quote=True)

    tag = f'<script async src="{script_url}" data-site-id="{site_id}"'
    if settings.skip_patterns:
        tag += _json_attr("data-skip-patterns", settings.skip_patterns)
    if settings.mask_patterns:
        tag += _json_attr("data-mask-patterns", settings.mask_patterns)
    if settings.replay_mask_selectors:
        tag += _json_attr("data-replay-mask-text-selectors", settings.replay_mask_selectors)
    if settings.debounce_delay and settings.debounce_delay != DEFAULT_DEBOUNCE_DELAY:
        tag += f' data-debounce="{settings.debounce_delay}"'
    tag += "></script>"

    return f"\n<!-- Rybbit Analytics -->\n{tag}\n<!-- End Rybbit Analytics -->\n"


def inject_into_html(document: str, snippet: str) -> str:
    """Insert *snippet* before the closing ``</head>`` tag.

    Documents without a head get the snippet prepended.
    """
    if not snippet:
        return document
    match = _HEAD_CLOSE_RE.search(document)
    if match is None:
        return snippet + document
    return document[: match.start()] + snippet + document[match.start():]
