import pytest
import requests

from doodlerace.pairing.types import Drawing
from doodlerace.store.drawings import DrawingStoreError, HttpDrawingStore, StaticDrawingStore, YamlDrawingStore


class FakeResponse:
    def __init__(self, data=None, status=200, bad_json=False):
        self.data = data
        self.status = status
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Server Error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value")
        return self.data


class FakeSession:
    def __init__(self, resp=None, exc=None):
        self.resp = resp
        self.exc = exc
        self.urls = []

    def get(self, url, **kw):
        self.urls.append(url)
        if self.exc is not None:
            raise self.exc
        return self.resp


def test_http_store_reads_items():
    sess = FakeSession(FakeResponse({"items": [{"id": "a", "url": "https://x/a.png"}, {"id": "b"}]}))
    store = HttpDrawingStore("https://draw.example/", session=sess)
    assert store.list_drawings() == [Drawing("a", "https://x/a.png")]
    assert sess.urls == ["https://draw.example/api/blobs"]


def test_http_store_missing_items_is_empty():
    store = HttpDrawingStore("https://d", session=FakeSession(FakeResponse({})))
    assert store.list_drawings() == []


@pytest.mark.parametrize("sess", [
    FakeSession(FakeResponse(status=500)),
    FakeSession(exc=requests.ConnectionError("refused")),
    FakeSession(FakeResponse(bad_json=True)),
    FakeSession(FakeResponse(["not", "an", "object"])),
    FakeSession(FakeResponse({"items": "nope"})),
])
def test_http_store_failures_raise_store_error(sess):
    with pytest.raises(DrawingStoreError):
        HttpDrawingStore("https://d", session=sess).list_drawings()


def test_yaml_store(tmp_path):
    f = tmp_path / "drawings.yaml"
    f.write_text("items:\n  - id: cat\n    url: file:///cat.png\n  - id: 7\n    url: file:///7.png\n")
    assert YamlDrawingStore(f).list_drawings() == [Drawing("cat", "file:///cat.png"), Drawing("7", "file:///7.png")]


def test_yaml_store_missing_file(tmp_path):
    with pytest.raises(DrawingStoreError):
        YamlDrawingStore(tmp_path / "missing.yaml").list_drawings()


def test_static_store_returns_copy():
    store = StaticDrawingStore([Drawing("a", "u")])
    got = store.list_drawings()
    got.clear()
    assert store.list_drawings() == [Drawing("a", "u")]
