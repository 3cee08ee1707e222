import base64

import pytest
import requests

from odt_image_replacer import sources
from odt_image_replacer.errors import FileTooLarge, SourceError
from odt_image_replacer.sources import (
    decode_base64_payload,
    detect_image_extension,
    fetch_url,
    load_source,
)


class FakeResponse:
    def __init__(self, body=b"", status_code=200):
        self.body = body
        self.status_code = status_code
        self.closed = False

    def iter_content(self, chunk_size):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def get(self, url, timeout=None, stream=False):
        self.calls.append((url, timeout, stream))
        if self.exc:
            raise self.exc
        return self.response


def test_decode_raw_base64():
    assert decode_base64_payload(base64.b64encode(b"hello").decode()) == b"hello"


def test_decode_repairs_padding_and_whitespace():
    encoded = base64.b64encode(b"hello!!").decode().rstrip("=")
    assert decode_base64_payload(encoded[:4] + "\n" + encoded[4:]) == b"hello!!"


@pytest.mark.parametrize("prefix", ["data:image/png;base64,", "base64:", "base64,"])
def test_decode_prefixed(prefix):
    assert decode_base64_payload(prefix + base64.b64encode(b"\x89PNG").decode()) == b"\x89PNG"


def test_decode_plain_data_uri():
    assert decode_base64_payload("data:text/plain,a%20b") == b"a b"


@pytest.mark.parametrize("text", ["", "   ", "not base64 at all!", "data:image/png;base64,"])
def test_decode_invalid(text):
    with pytest.raises(SourceError):
        decode_base64_payload(text)


def test_fetch_url_streams_body():
    resp = FakeResponse(b"x" * 200000)
    session = FakeSession(resp)
    assert fetch_url("https://example.com/a.png", 300000, session=session) == b"x" * 200000
    url, timeout, stream = session.calls[0]
    assert url == "https://example.com/a.png"
    assert timeout == 30.0
    assert stream is True
    assert resp.closed


def test_fetch_url_timeout_from_env(monkeypatch):
    monkeypatch.setenv("FETCH_TIMEOUT", "2.5")
    session = FakeSession(FakeResponse(b"x"))
    fetch_url("https://example.com/a.png", 10, session=session)
    assert session.calls[0][1] == 2.5

    monkeypatch.setenv("FETCH_TIMEOUT", "soon")
    assert sources.fetch_timeout() == 30.0


def test_fetch_url_over_limit():
    resp = FakeResponse(b"x" * 1000)
    with pytest.raises(FileTooLarge):
        fetch_url("https://example.com/big", 999, session=FakeSession(resp))
    assert resp.closed


def test_fetch_url_http_error():
    with pytest.raises(SourceError) as exc:
        fetch_url("https://example.com/404", 10, session=FakeSession(FakeResponse(status_code=404)))
    assert "404" in str(exc.value)


def test_fetch_url_connection_error():
    session = FakeSession(exc=requests.ConnectionError("refused"))
    with pytest.raises(SourceError):
        fetch_url("https://example.com/a.png", 10, session=session)


@pytest.mark.parametrize("url", ["", "null"])
def test_fetch_url_blank(url):
    with pytest.raises(SourceError):
        fetch_url(url, 10, session=FakeSession())


def test_load_source_prefers_url():
    session = FakeSession(FakeResponse(b"from url"))
    data = load_source("https://example.com/a", base64.b64encode(b"from b64").decode(), 100, session=session)
    assert data == b"from url"


def test_load_source_null_url_falls_back_to_base64():
    session = FakeSession()
    data = load_source("null", base64.b64encode(b"from b64").decode(), 100, session=session)
    assert data == b"from b64"
    assert session.calls == []


def test_load_source_decoded_over_limit():
    with pytest.raises(FileTooLarge):
        load_source(None, base64.b64encode(b"123456").decode(), 5)


def test_load_source_nothing_given():
    with pytest.raises(SourceError) as exc:
        load_source("null", "", 5, what="template")
    assert "template" in str(exc.value)


def test_detect_image_extension(png_bytes, jpeg_bytes):
    assert detect_image_extension(png_bytes) == ".png"
    assert detect_image_extension(jpeg_bytes) == ".jpg"
    assert detect_image_extension(b"fake image data") == ""
    assert detect_image_extension(b"") == ""


def test_fetch_url_accepts_any_2xx():
    session = FakeSession(FakeResponse(b"created", status_code=201))
    assert fetch_url("https://example.com/a.png", 10, session=session) == b"created"


@pytest.mark.parametrize("status", [199, 302, 500])
def test_fetch_url_rejects_non_2xx(status):
    with pytest.raises(SourceError):
        fetch_url("https://example.com/a.png", 10, session=FakeSession(FakeResponse(b"x", status_code=status)))
