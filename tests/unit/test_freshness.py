"""
Unit tests for the conditional-request freshness check.
"""

import pytest

from staticmount.http.freshness import etag_matches, is_fresh, parse_token_list


LAST_MODIFIED = "Thu, 15 Jan 2026 10:00:00 GMT"
ETAG = 'W/"400-19bc1f2a6c0"'

RESPONSE = {"ETag": ETAG, "Last-Modified": LAST_MODIFIED}


class TestTokenList:
    """Tests for If-None-Match parsing."""

    def test_splits_on_commas_and_spaces(self):
        assert parse_token_list('W/"a", "b" ,"c"') == ['W/"a"', '"b"', '"c"']

    def test_weak_comparison(self):
        assert etag_matches('"x"', 'W/"x"')
        assert etag_matches('W/"x"', '"x"')
        assert etag_matches('W/"x"', 'W/"x"')
        assert not etag_matches('"y"', 'W/"x"')


class TestIsFresh:
    """Tests for is_fresh."""

    def test_unconditional_request_is_stale(self):
        assert is_fresh({}, RESPONSE) is False

    def test_matching_etag(self):
        assert is_fresh({"if-none-match": ETAG}, RESPONSE) is True

    def test_matching_etag_in_list(self):
        assert is_fresh({"if-none-match": f'"other", {ETAG}'}, RESPONSE) is True

    def test_strong_form_matches_weak_tag(self):
        assert is_fresh({"if-none-match": '"400-19bc1f2a6c0"'}, RESPONSE) is True

    def test_star_matches(self):
        assert is_fresh({"if-none-match": "*"}, RESPONSE) is True

    def test_mismatched_etag(self):
        assert is_fresh({"if-none-match": '"nope"'}, RESPONSE) is False

    def test_header_names_any_case(self):
        assert is_fresh({"If-None-Match": ETAG}, {"etag": ETAG}) is True

    @pytest.mark.parametrize("since, fresh", [
        (LAST_MODIFIED, True),
        ("Fri, 16 Jan 2026 10:00:00 GMT", True),
        ("Wed, 14 Jan 2026 10:00:00 GMT", False),
        ("not a date", False),
    ])
    def test_if_modified_since(self, since, fresh):
        assert is_fresh({"if-modified-since": since}, RESPONSE) is fresh

    def test_both_validators_must_pass(self):
        headers = {
            "if-none-match": ETAG,
            "if-modified-since": "Wed, 14 Jan 2026 10:00:00 GMT",
        }

        assert is_fresh(headers, RESPONSE) is False

    def test_no_cache_forces_reload(self):
        headers = {"if-none-match": ETAG, "cache-control": "max-age=0, no-cache"}

        assert is_fresh(headers, RESPONSE) is False

    def test_no_etag_on_response(self):
        assert is_fresh({"if-none-match": ETAG}, {"Last-Modified": LAST_MODIFIED}) is False
