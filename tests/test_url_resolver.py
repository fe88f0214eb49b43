"""Tests for URL normalization.

Every URL the engine emits goes through resolve_url(); these tests pin down
how each kind of href is composed with the base URL.
"""

import pytest

from anidock.common.exceptions import InvalidUrlError
from anidock.common.url_resolver import (
    is_absolute_http_url,
    origin_of,
    resolve_url,
    slug_from_url,
)


class TestResolveUrl:
    """Tests for resolve_url()."""

    def test_absolute_https_href_is_returned_unchanged(self):
        """Absolute http(s) hrefs shall be returned verbatim."""
        href = "https://other.test/path?q=1#frag"
        assert resolve_url(href, "https://site.test/catalog") == href

    def test_absolute_http_href_keeps_its_scheme(self):
        """An http:// href on an https:// page shall not be upgraded."""
        assert (
            resolve_url("http://old.test/a", "https://site.test")
            == "http://old.test/a"
        )

    def test_root_relative_href_uses_base_origin(self):
        """A /path href shall be composed with the base URL's origin."""
        assert (
            resolve_url("/anime/x", "https://site.test/catalog/page/2")
            == "https://site.test/anime/x"
        )

    def test_path_relative_href_lands_under_origin(self):
        """A path-relative href shall resolve directly under the origin."""
        assert (
            resolve_url("ep-1", "https://site.test/anime/x/")
            == "https://site.test/ep-1"
        )

    def test_dot_segments_are_normalized(self):
        """./ and ../ segments shall be collapsed."""
        assert (
            resolve_url("./a/../b", "https://site.test/deep/path")
            == "https://site.test/b"
        )

    def test_protocol_relative_href_takes_base_scheme(self):
        """A //host/path href shall take the base URL's scheme."""
        assert (
            resolve_url("//cdn.test/img.jpg", "http://site.test/")
            == "http://cdn.test/img.jpg"
        )

    def test_port_is_preserved(self):
        """The base URL's port shall be part of the origin."""
        assert (
            resolve_url("/a", "http://127.0.0.1:8080/catalog")
            == "http://127.0.0.1:8080/a"
        )

    def test_query_string_is_kept(self):
        """Query strings on relative hrefs shall be kept."""
        assert (
            resolve_url("/watch?ep=3", "https://site.test")
            == "https://site.test/watch?ep=3"
        )

    def test_surrounding_whitespace_is_stripped(self):
        """Whitespace around an href shall be ignored."""
        assert resolve_url("  /a \n", "https://site.test") == "https://site.test/a"

    @pytest.mark.parametrize(
        "href",
        ["", "   ", "#top", "javascript:void(0)", "mailto:a@b.test"],
    )
    def test_unusable_hrefs_raise(self, href):
        """Empty, fragment-only and non-http hrefs shall be rejected."""
        with pytest.raises(InvalidUrlError):
            resolve_url(href, "https://site.test")

    @pytest.mark.parametrize(
        "href",
        ["https://site.test:abc/show", "https://site\xa0.test/show"],
    )
    def test_absolute_href_with_bad_host_or_port_raises(self, href):
        """An absolute href that httpx could not request shall be rejected."""
        with pytest.raises(InvalidUrlError) as exc_info:
            resolve_url(href, "https://site.test")

        assert exc_info.value.message.endswith("malformed host or port")

    def test_relative_href_with_relative_base_raises(self):
        """A relative href cannot be resolved without an absolute base."""
        with pytest.raises(InvalidUrlError) as exc_info:
            resolve_url("/a", "/not/absolute")

        assert exc_info.value.href == "/a"
        assert exc_info.value.base_url == "/not/absolute"

    def test_invalid_url_error_is_a_value_error(self):
        """InvalidUrlError shall be catchable as ValueError."""
        with pytest.raises(ValueError):
            resolve_url("#", "https://site.test")


class TestHelpers:
    """Tests for the smaller URL helpers."""

    def test_is_absolute_http_url(self):
        """Only http(s) URLs with a host shall count as absolute."""
        assert is_absolute_http_url("https://site.test/a")
        assert is_absolute_http_url("HTTP://SITE.TEST")
        assert not is_absolute_http_url("/a")
        assert not is_absolute_http_url("ftp://site.test/a")
        assert not is_absolute_http_url("https://")

    def test_is_absolute_http_url_rejects_bad_port_and_host(self):
        """Unparseable ports and hosts with spaces shall not count as absolute."""
        assert is_absolute_http_url("https://site.test:8443/show")
        assert not is_absolute_http_url("https://site.test:abc/show")
        assert not is_absolute_http_url("https://site.test:99999/show")
        assert not is_absolute_http_url("https://site\xa0.test/show")
        assert not is_absolute_http_url("https://site .test/show")

    def test_origin_of_rejects_bad_port(self):
        """origin_of() shall raise for a base URL with an unparseable port."""
        with pytest.raises(InvalidUrlError):
            origin_of("https://site.test:abc/catalog")

    def test_origin_of_drops_path_and_query(self):
        """origin_of() shall keep only scheme, host and port."""
        assert origin_of("https://site.test:8443/a/b?c=d") == "https://site.test:8443"

    def test_origin_of_rejects_relative_url(self):
        """origin_of() shall raise for a URL without scheme and host."""
        with pytest.raises(InvalidUrlError):
            origin_of("site.test/a")

    def test_slug_from_url(self):
        """The slug shall be the last non-empty path segment, decoded."""
        assert slug_from_url("https://x.test/anime/my-title") == "my-title"
        assert slug_from_url("https://x.test/anime/my-title/") == "my-title"
        assert slug_from_url("https://x.test/a/caf%C3%A9") == "café"
        assert slug_from_url("https://x.test/") is None
