"""
Unit tests for HTTP request parsing.
"""

import pytest

from minihttp.http.request import (
    HTTPRequest,
    Method,
    MalformedRequest,
    RequestParser,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method is Method.GET
        assert request.raw_method == "GET"
        assert request.path == "/echo/abc"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)
        assert request.body == b""

    def test_parse_known_headers(self, sample_get_request: bytes):
        """Test that the three recognised headers are extracted."""
        request = parse_request(sample_get_request)

        assert request.host == "localhost:4221"
        assert request.user_agent == "pytest"
        assert request.accept_encoding == "gzip"

    def test_missing_headers_are_empty(self):
        """Test that absent headers give empty strings, not errors."""
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n")

        assert request.host == ""
        assert request.user_agent == ""
        assert request.accept_encoding == ""

    def test_header_order_does_not_matter(self):
        """Test headers are found wherever they appear."""
        raw = (
            b"GET /user-agent HTTP/1.1\r\n"
            b"Accept: */*\r\n"
            b"User-Agent: foobar/1.2.3\r\n"
            b"Host: localhost:4221\r\n"
            b"\r\n"
        )
        request = parse_request(raw)

        assert request.user_agent == "foobar/1.2.3"
        assert request.host == "localhost:4221"

    def test_header_prefix_is_case_sensitive(self):
        """Test that 'user-agent: ' is not the User-Agent header."""
        raw = b"GET /user-agent HTTP/1.1\r\nuser-agent: lower\r\n\r\n"
        request = parse_request(raw)

        assert request.user_agent == ""

    def test_first_header_occurrence_wins(self):
        """Test that a repeated header keeps its first value."""
        raw = (
            b"GET / HTTP/1.1\r\n"
            b"User-Agent: first\r\n"
            b"User-Agent: second\r\n"
            b"\r\n"
        )
        assert parse_request(raw).user_agent == "first"

    def test_parse_post_with_body(self, sample_post_request: bytes):
        """Test parsing a POST request with a body."""
        request = parse_request(sample_post_request)

        assert request.method is Method.POST
        assert request.path == "/files/report.txt"
        assert request.body == b"hello"

    def test_post_body_is_raw_bytes(self):
        """Test that binary bodies are passed through untouched."""
        body = bytes(range(256))
        raw = b"POST /files/bin HTTP/1.1\r\nContent-Length: 256\r\n\r\n" + body

        assert parse_request(raw).body == body

    def test_post_with_empty_body(self):
        """Test a POST with nothing after the blank line."""
        request = parse_request(b"POST /files/empty HTTP/1.1\r\n\r\n")

        assert request.body == b""

    def test_post_without_blank_line(self):
        """Test that a POST with no header terminator is malformed."""
        with pytest.raises(MalformedRequest):
            parse_request(b"POST /files/x HTTP/1.1\r\nHost: localhost")

    def test_get_without_blank_line(self):
        """Test that a GET is parsed even without the header terminator."""
        request = parse_request(b"GET /user-agent HTTP/1.1\r\nUser-Agent: curl")

        assert request.path == "/user-agent"
        assert request.user_agent == "curl"

    def test_get_ignores_body(self):
        """Test that bytes after the blank line are not a GET body."""
        request = parse_request(b"GET / HTTP/1.1\r\n\r\nleftover")

        assert request.body == b""

    @pytest.mark.parametrize("token", ["PUT", "DELETE", "HEAD", "get", "BREW"])
    def test_other_methods(self, token: str):
        """Test that anything but GET/POST parses as Method.OTHER."""
        request = parse_request(f"{token} / HTTP/1.1\r\n\r\n".encode())

        assert request.method is Method.OTHER
        assert request.raw_method == token

    @pytest.mark.parametrize("line", [
        b"GET\r\n\r\n",
        b"GET /\r\n\r\n",
        b"GET / HTTP/1.1 extra\r\n\r\n",
        b"\r\n\r\n",
    ])
    def test_invalid_request_line(self, line: bytes):
        """Test that a request line without exactly three tokens is rejected."""
        with pytest.raises(MalformedRequest):
            parse_request(line)

    def test_path_must_start_with_slash(self):
        """Test that a relative or absolute-URI target is rejected."""
        with pytest.raises(MalformedRequest):
            parse_request(b"GET echo/abc HTTP/1.1\r\n\r\n")

        with pytest.raises(MalformedRequest):
            parse_request(b"GET http://example.com/ HTTP/1.1\r\n\r\n")

    def test_empty_request(self):
        """Test that no bytes at all is malformed."""
        with pytest.raises(MalformedRequest):
            parse_request(b"")

    def test_request_too_large(self):
        """Test the request size limit."""
        parser = RequestParser(max_request_size=64)
        raw = b"POST /files/x HTTP/1.1\r\n\r\n" + b"x" * 100

        with pytest.raises(MalformedRequest, match="too large"):
            parser.parse(raw)

    def test_invalid_utf8_in_headers(self):
        """Test that undecodable header bytes don't break parsing."""
        raw = b"GET /user-agent HTTP/1.1\r\nUser-Agent: \xff\xfe\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/user-agent"
        assert request.user_agent.encode("utf-8", errors="surrogateescape") == b"\xff\xfe"

    def test_invalid_utf8_in_path(self):
        """Test that raw path bytes are kept, not replaced."""
        request = parse_request(b"GET /echo/\xff\xfe HTTP/1.1\r\n\r\n")

        assert request.path.encode("utf-8", errors="surrogateescape") == b"/echo/\xff\xfe"


class TestHTTPRequest:
    """Tests for HTTPRequest class."""

    @pytest.mark.parametrize("value", [
        "gzip",
        "deflate, gzip",
        "invalid-encoding, gzip, br",
        "gzip;q=0",
    ])
    def test_accepts_gzip(self, value: str):
        """Test gzip detection by substring."""
        request = HTTPRequest(method=Method.GET, path="/", accept_encoding=value)
        assert request.accepts_gzip is True

    @pytest.mark.parametrize("value", ["", "deflate", "br, identity", "GZIP"])
    def test_does_not_accept_gzip(self, value: str):
        """Test that other encodings (and upper-case GZIP) don't count."""
        request = HTTPRequest(method=Method.GET, path="/", accept_encoding=value)
        assert request.accepts_gzip is False

    def test_raw_method_defaults_to_method(self):
        """Test raw_method is filled from method when not given."""
        request = HTTPRequest(method=Method.POST, path="/files/a")
        assert request.raw_method == "POST"

    def test_path_params_default_empty(self):
        """Test that each request gets its own params dict."""
        a = HTTPRequest(method=Method.GET, path="/")
        b = HTTPRequest(method=Method.GET, path="/")

        a.path_params["x"] = "1"
        assert b.path_params == {}


class TestMethod:
    """Tests for Method enum."""

    def test_from_token(self):
        assert Method.from_token("GET") is Method.GET
        assert Method.from_token("POST") is Method.POST
        assert Method.from_token("PATCH") is Method.OTHER
