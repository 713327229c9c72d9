"""
Tests for slot keys and fetch URLs.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit

from stager.slots import CACHE_BUST_PARAM, build_fetch_url, slot_key_for


class TestSlotKey:
    """Tests for slot_key_for."""

    def test_stable(self) -> None:
        """The same site and expression always give the same key."""
        assert slot_key_for("form:img", "#{bean.photo}") == slot_key_for(
            "form:img", "#{bean.photo}"
        )

    def test_expressions_at_same_site_do_not_alias(self) -> None:
        """Two expressions at one site get different keys."""
        assert slot_key_for("form:img", "#{bean.photo}") != slot_key_for(
            "form:img", "#{bean.thumbnail}"
        )

    def test_site_and_expression_boundary(self) -> None:
        """Moving text between site id and expression changes the key."""
        assert slot_key_for("a|b", "c") != slot_key_for("a", "b|c")

    def test_key_shape(self) -> None:
        """Keys are 40 hex characters."""
        key = slot_key_for("site", "expr")
        assert len(key) == 40
        int(key, 16)


class TestFetchUrl:
    """Tests for build_fetch_url."""

    def test_identifier_param(self) -> None:
        """The identifier is carried in the fetch parameter."""
        assert build_fetch_url("/fetch", "abc-1") == "/fetch?rid=abc-1"

    def test_existing_query_string(self) -> None:
        """Parameters are appended to an existing query string."""
        url = build_fetch_url("/res?ln=primary", "abc-1", param_name="img")
        assert url == "/res?ln=primary&img=abc-1"

    def test_extra_params_in_order_and_encoded(self) -> None:
        """Extra parameters keep their order and are percent-encoded."""
        url = build_fetch_url("/fetch", "abc-1", [("w", 100), ("label", "a b&c")])
        assert url == "/fetch?rid=abc-1&w=100&label=a+b%26c"

    def test_mapping_params(self) -> None:
        """A mapping of parameters works like a list of pairs."""
        url = build_fetch_url("/fetch", "x-2", {"size": "large", "empty": None})
        assert parse_qsl(urlsplit(url).query, keep_blank_values=True) == [
            ("rid", "x-2"),
            ("size", "large"),
            ("empty", ""),
        ]

    def test_uncached_adds_random_param(self) -> None:
        """Disabling cache adds a parameter that differs per call."""
        first = build_fetch_url("/fetch", "x-2", cache=False)
        second = build_fetch_url("/fetch", "x-2", cache=False)

        assert first != second
        names = [name for name, _ in parse_qsl(urlsplit(first).query)]
        assert names == ["rid", CACHE_BUST_PARAM]
