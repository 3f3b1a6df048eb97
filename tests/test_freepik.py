import dataclasses

import pytest
from conftest import FakeResponse, FakeSession

from image_gin.errors import ConfigError, NetworkError, ParseError
from image_gin.freepik import FreepikClient, FreepikImage, image_markdown

SEARCH = {
    "data": [
        {
            "id": 7,
            "title": "Mountain lake",
            "url": "https://www.freepik.com/photo/7",
            "image": {"source": {"url": "https://img.freepik.test/7.jpg", "size": "626x417"}},
            "author": {"name": "ana", "avatar": "https://a.test/ana.png"},
        }
    ],
    "meta": {"current_page": 1, "last_page": 4, "per_page": 1, "total": 4},
}


def test_search_sends_query_and_header(config):
    session = FakeSession([FakeResponse(200, SEARCH)])
    result = FreepikClient(config, session=session, sleep=lambda s: None).search("lake", 1)

    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://api.freepik.com/v1/resources"
    assert call["params"] == {"term": "lake", "per_page": "1", "page": "1", "clean_search": "true"}
    assert call["headers"]["x-freepik-api-key"] == "fk"

    image = result.images[0]
    assert (image.id, image.title, image.source_url) == (7, "Mountain lake", "https://img.freepik.test/7.jpg")
    assert image.author_name == "ana"
    assert result.meta.last_page == 4


def test_search_uses_default_count(config):
    session = FakeSession([FakeResponse(200, {"data": []})])
    result = FreepikClient(config, session=session).search("x")
    assert session.calls[0]["params"]["per_page"] == "10"
    assert result.images == []
    assert result.meta.total == 0


def test_search_requires_key(config):
    config = dataclasses.replace(config, freepik=dataclasses.replace(config.freepik, api_key=" "))
    client = FreepikClient(config, session=FakeSession())
    assert not client.has_api_key()
    with pytest.raises(ConfigError):
        client.search("x")


def test_search_malformed_and_network_errors(config, connection_error):
    config = dataclasses.replace(config, retries=0)
    session = FakeSession([FakeResponse(200, {"data": [{"title": "no id"}]}), connection_error])
    client = FreepikClient(config, session=session)
    with pytest.raises(ParseError):
        client.search("x")
    with pytest.raises(NetworkError):
        client.search("x")


def test_image_markdown():
    image = FreepikImage.from_response(SEARCH["data"][0])
    assert image_markdown(image) == "![Mountain lake](https://img.freepik.test/7.jpg)"
    assert image_markdown(image, "cache/f.jpg") == "![Mountain lake](cache/f.jpg)"
