import pytest

from rkube.ctl.exec import exec_url


def test_exec_url_uses_ws_and_encodes_spaces():
    url = exec_url("http://127.0.0.1:8080/", "nginx", "web", "ls -la")
    assert url == "ws://127.0.0.1:8080/api/v1/pods/nginx/containers/web/exec?command=ls%20-la"


def test_exec_url_without_trailing_slash_matches():
    assert exec_url("http://127.0.0.1:8080", "p", "c", "sh") == exec_url(
        "http://127.0.0.1:8080/", "p", "c", "sh"
    )


@pytest.mark.parametrize("base", ["https://api.test/", "http://api.test/"])
def test_exec_url_scheme_is_ws(base):
    assert exec_url(base, "p", "c", "sh").startswith("ws://api.test/api/v1/pods/p/")


def test_exec_url_keeps_query_safe_characters():
    url = exec_url("http://api.test/", "p", "c", "a=b/c&d")
    assert url.endswith("?command=a=b/c&d")


def test_exec_url_encodes_hash_and_quotes():
    url = exec_url("http://api.test/", "p", "c", 'echo "#"')
    query = url.split("?command=", 1)[1]
    assert "#" not in query and '"' not in query and " " not in query
    assert "%23" in query