from hogwatch.utils.url import extract_domain, is_capture_endpoint


def test_extract_domain_uses_hostname() -> None:
    assert extract_domain("https://app.example.com/pricing?x=1") == "app.example.com"
    assert extract_domain("http://localhost:3000/") == "localhost"
    assert extract_domain("https://User@Example.COM/") == "example.com"


def test_extract_domain_falls_back_to_regex_when_parsing_fails() -> None:
    assert extract_domain("http://[::1/admin") == "[::1"


def test_extract_domain_returns_raw_value_when_unparseable() -> None:
    assert extract_domain("not a url") == "not a url"
    assert extract_domain("") == ""


def test_is_capture_endpoint_matches_gzip_batches_only() -> None:
    assert is_capture_endpoint("https://us.i.posthog.com/e/?compression=gzip-js&ver=1.0", "POST")
    assert is_capture_endpoint("https://eu.posthog.com/i/v0/e/?compression=gzip-js", "post")
    assert not is_capture_endpoint("https://us.i.posthog.com/e/?compression=gzip-js", "GET")
    assert not is_capture_endpoint("https://us.i.posthog.com/e/?compression=base64", "POST")
    assert not is_capture_endpoint("https://us.i.posthog.com/decide/?v=3", "POST")
