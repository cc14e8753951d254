"""
Freshness lifetime and age calculation, RFC 9111 Section 4.2.
https://www.rfc-editor.org/rfc/rfc9111.html#section-4.2
"""

from typing import Dict, Optional

import pytest

from httpsource import CacheEntry, CacheOptions, Headers, Request, Response
from httpsource._spec import (
    ONE_DAY,
    effective_cache_control,
    exclude_unstorable_headers,
    forbids_reuse,
    get_freshness_lifetime,
    get_heuristic_freshness,
    get_initial_age,
    make_conditional_request,
    refresh_response_headers,
    vary_headers_match,
)

NOW = 1704067200.0  # Mon, 01 Jan 2024 00:00:00 GMT
DATE = "Mon, 01 Jan 2024 00:00:00 GMT"


def create_response(headers: Optional[Dict[str, str]] = None, status_code: int = 200) -> Response:
    return Response(status_code=status_code, headers=Headers(headers or {}))


def create_entry(response: Response, request_headers: Optional[Dict[str, str]] = None) -> CacheEntry:
    return CacheEntry(
        request=Request("GET", "https://api.example.com/a", headers=Headers(request_headers or {})),
        response=response,
        freshness_lifetime=get_freshness_lifetime(response, CacheOptions(), NOW),
        stored_at=NOW,
    )


class TestFreshnessLifetime:
    def test_s_maxage_wins_in_shared_cache(self) -> None:
        response = create_response({"cache-control": "max-age=60, s-maxage=120"})

        assert get_freshness_lifetime(response, CacheOptions(shared=True), NOW) == 120

    def test_s_maxage_ignored_in_private_cache(self) -> None:
        response = create_response({"cache-control": "max-age=60, s-maxage=120"})

        assert get_freshness_lifetime(response, CacheOptions(shared=False), NOW) == 60

    def test_proxy_revalidate_makes_shared_entries_stale(self) -> None:
        response = create_response({"cache-control": "max-age=60, proxy-revalidate"})

        assert get_freshness_lifetime(response, CacheOptions(shared=True), NOW) == 0
        assert get_freshness_lifetime(response, CacheOptions(shared=False), NOW) == 60

    def test_expires_minus_date(self) -> None:
        response = create_response({"date": DATE, "expires": "Mon, 01 Jan 2024 01:00:00 GMT"})

        assert get_freshness_lifetime(response, CacheOptions(), NOW) == 3600

    def test_expires_in_the_past_or_invalid_is_stale(self) -> None:
        past = create_response({"date": DATE, "expires": "Sun, 31 Dec 2023 00:00:00 GMT"})
        invalid = create_response({"date": DATE, "expires": "0"})

        assert get_freshness_lifetime(past, CacheOptions(), NOW) == 0
        assert get_freshness_lifetime(invalid, CacheOptions(), NOW) == 0

    def test_max_age_beats_expires(self) -> None:
        response = create_response(
            {"cache-control": "max-age=10", "date": DATE, "expires": "Mon, 01 Jan 2024 01:00:00 GMT"}
        )

        assert get_freshness_lifetime(response, CacheOptions(), NOW) == 10

    def test_heuristic_from_last_modified(self) -> None:
        response = create_response({"date": DATE, "last-modified": "Sun, 31 Dec 2023 00:00:00 GMT"})

        assert get_heuristic_freshness(response, CacheOptions(), NOW) == pytest.approx(8640)
        assert get_freshness_lifetime(response, CacheOptions(heuristic_fraction=0.5), NOW) == pytest.approx(43200)

    def test_heuristic_uses_receive_time_without_date(self) -> None:
        response = create_response({"last-modified": "Sun, 31 Dec 2023 00:00:00 GMT"})

        assert get_freshness_lifetime(response, CacheOptions(), NOW) == pytest.approx(8640)

    def test_heuristic_needs_an_older_last_modified(self) -> None:
        response = create_response({"date": DATE, "last-modified": "Tue, 02 Jan 2024 00:00:00 GMT"})

        assert get_heuristic_freshness(response, CacheOptions(), NOW) is None
        assert get_freshness_lifetime(response, CacheOptions(), NOW) == 0

    def test_no_information_means_stale(self) -> None:
        assert get_freshness_lifetime(create_response(), CacheOptions(), NOW) == 0

    def test_immutable_gets_minimum_lifetime(self) -> None:
        response = create_response({"cache-control": "immutable"})

        assert get_freshness_lifetime(response, CacheOptions(), NOW) == ONE_DAY
        assert get_freshness_lifetime(response, CacheOptions(immutable_min_time_to_live=60), NOW) == 60

    def test_immutable_minimum_applies_to_past_or_invalid_expires(self) -> None:
        past = create_response({"cache-control": "immutable", "date": DATE, "expires": "Sun, 31 Dec 2023 00:00:00 GMT"})
        invalid = create_response({"cache-control": "immutable", "date": DATE, "expires": "0"})

        assert get_freshness_lifetime(past, CacheOptions(), NOW) == ONE_DAY
        assert get_freshness_lifetime(invalid, CacheOptions(), NOW) == ONE_DAY

    def test_explicit_max_age_beats_immutable_minimum(self) -> None:
        response = create_response({"cache-control": "immutable, max-age=5"})

        assert get_freshness_lifetime(response, CacheOptions(), NOW) == 5


class TestLegacyDirectives:
    def test_pragma_no_cache_without_cache_control(self) -> None:
        response = create_response({"pragma": "no-cache"})

        assert effective_cache_control(response, CacheOptions()).no_cache is True

    def test_pragma_ignored_when_cache_control_present(self) -> None:
        response = create_response({"pragma": "no-cache", "cache-control": "max-age=60"})

        assert effective_cache_control(response, CacheOptions()).no_cache is False

    def test_pre_check_post_check_ignored_when_configured(self) -> None:
        response = create_response(
            {
                "cache-control": "no-store, no-cache, must-revalidate, pre-check=0, post-check=0",
                "date": DATE,
                "expires": "Thu, 19 Nov 1981 08:52:00 GMT",
                "last-modified": "Sun, 31 Dec 2023 00:00:00 GMT",
            }
        )
        options = CacheOptions(ignore_nonstandard_directives=True)

        cache_control = effective_cache_control(response, options)
        assert (cache_control.no_store, cache_control.no_cache, cache_control.must_revalidate) == (False, False, False)
        assert get_freshness_lifetime(response, options, NOW) == pytest.approx(8640)

    def test_pre_check_post_check_kept_by_default(self) -> None:
        response = create_response({"cache-control": "no-store, pre-check=0, post-check=0"})

        assert effective_cache_control(response, CacheOptions()).no_store is True


class TestReuse:
    @pytest.mark.parametrize(
        "cache_control",
        ["no-store", "no-cache", "must-revalidate", "max-age=0", "s-maxage=0, max-age=60"],
    )
    def test_forbids_reuse(self, cache_control: str) -> None:
        assert forbids_reuse(create_response({"cache-control": cache_control}), CacheOptions())

    def test_allows_reuse(self) -> None:
        assert not forbids_reuse(create_response({"cache-control": "public, max-age=60"}), CacheOptions())
        assert not forbids_reuse(create_response(), CacheOptions())

    def test_age_header(self) -> None:
        assert get_initial_age(create_response({"age": "30"})) == 30
        assert get_initial_age(create_response({"age": "bogus"})) == 0
        assert get_initial_age(create_response()) == 0

    def test_entry_age_and_freshness(self) -> None:
        response = create_response({"cache-control": "max-age=60"})
        entry = create_entry(response)
        entry.initial_age = 10

        assert entry.age(NOW + 20) == 30
        assert entry.is_fresh(NOW + 49)
        assert not entry.is_fresh(NOW + 50)

    def test_time_to_live(self) -> None:
        fresh = create_entry(create_response({"cache-control": "max-age=60, stale-if-error=200"}))
        stale = create_entry(create_response({"cache-control": "max-age=0"}))

        assert fresh.time_to_live(NOW) == 260
        assert fresh.time_to_live(NOW + 100) == 160
        assert stale.time_to_live(NOW) is None


class TestValidation:
    def test_vary_matching(self) -> None:
        response = create_response({"vary": "Accept-Language"})
        entry = create_entry(response, {"accept-language": "en"})

        assert vary_headers_match(
            Request("GET", "https://api.example.com/a", Headers({"Accept-Language": "en"})), entry
        )
        assert not vary_headers_match(
            Request("GET", "https://api.example.com/a", Headers({"Accept-Language": "de"})), entry
        )

    def test_vary_star_never_matches(self) -> None:
        entry = create_entry(create_response({"vary": "*"}))

        assert not vary_headers_match(Request("GET", "https://api.example.com/a"), entry)

    def test_conditional_request_carries_validators(self) -> None:
        entry = create_entry(create_response({"etag": '"v1"', "last-modified": "Sun, 31 Dec 2023 00:00:00 GMT"}))
        request = make_conditional_request(Request("GET", "https://api.example.com/a"), entry)

        assert request.headers["if-none-match"] == '"v1"'
        assert request.headers["if-modified-since"] == "Sun, 31 Dec 2023 00:00:00 GMT"

    def test_refresh_keeps_stored_content_headers(self) -> None:
        stored = create_response({"content-type": "application/json", "etag": '"v1"', "cache-control": "max-age=1"})
        revalidation = create_response(
            {"content-type": "text/plain", "cache-control": "max-age=60", "date": DATE}, status_code=304
        )

        refreshed = refresh_response_headers(stored, revalidation, is_cache_shared=True)

        assert refreshed.status_code == 200
        assert refreshed.headers["content-type"] == "application/json"
        assert refreshed.headers["cache-control"] == "max-age=60"
        assert refreshed.headers["etag"] == '"v1"'

    def test_unstorable_headers_are_dropped(self) -> None:
        response = create_response(
            {"connection": "keep-alive", "set-cookie": "a=1", "x-secret": "s", "cache-control": 'private="X-Secret"'}
        )

        shared = exclude_unstorable_headers(response, is_cache_shared=True)
        private = exclude_unstorable_headers(response, is_cache_shared=False)

        assert "connection" not in shared.headers
        assert "x-secret" not in shared.headers
        assert "x-secret" in private.headers
        assert "set-cookie" in shared.headers
