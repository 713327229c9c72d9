"""
Slot identity and fetch URL helpers for hosts.

A slot key must not depend on the value currently shown, only on where it
is shown and which expression produced it. The fetch URL carries the
resource identifier as a query parameter.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Mapping
from urllib.parse import urlencode

from uuid6 import uuid7

DEFAULT_FETCH_PARAM = "rid"
CACHE_BUST_PARAM = "stager_nocache"


def slot_key_for(site_id: str, expression: str) -> str:
    """Derive a stable slot key from a site id and the value expression.

    Two expressions at the same site never share a key; the same pair
    always maps to the same key.

    Args:
        site_id: Stable identity of the rendering site (e.g. a component id).
        expression: Source text of the expression that produces the value.

    Returns:
        A 40-character hex key.
    """
    material = f"{len(site_id)}:{site_id}|{expression}".encode("utf-8")
    return hashlib.sha1(material).hexdigest()


def build_fetch_url(
    resource_path: str,
    identifier: str,
    params: Mapping[str, object] | Iterable[tuple[str, object]] | None = None,
    cache: bool = True,
    param_name: str = DEFAULT_FETCH_PARAM,
) -> str:
    """Build the URL a browser uses to fetch staged bytes.

    Args:
        resource_path: Base path of the fetch endpoint; may already carry a
            query string.
        identifier: Resource identifier returned by ``stage``.
        params: Extra query parameters, appended in order.
        cache: When False, a random parameter is added so the browser
            never reuses a cached copy.
        param_name: Query parameter carrying the identifier.

    Returns:
        The fetch URL with all parameters percent-encoded.
    """
    query: list[tuple[str, object]] = [(param_name, identifier)]
    if params is not None:
        items = params.items() if isinstance(params, Mapping) else params
        query.extend((str(k), "" if v is None else v) for k, v in items)
    if not cache:
        query.append((CACHE_BUST_PARAM, uuid7().hex))

    separator = "&" if "?" in resource_path else "?"
    if resource_path.endswith(("?", "&")):
        separator = ""
    return f"{resource_path}{separator}{urlencode(query)}"
