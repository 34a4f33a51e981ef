import pytest
from PIL import Image

from edge_images.dimensions import (
    DimensionResolver,
    Dimensions,
    SizeRegistry,
    read_image_size,
    reduce_ratio,
)


def _png(path, size):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, "white").save(path)
    return path


def test_dimensions_helpers():
    dims = Dimensions(1200, 800)
    assert dims.reduced() == (3, 2)
    assert dims.height_for(300) == 200
    assert dims.constrain(600) == Dimensions(600, 400)
    assert dims.constrain(None) is dims
    assert dims.constrain(2000) is dims
    assert reduce_ratio(1920, 1080) == (16, 9)


def test_dimensions_coerce():
    assert Dimensions.coerce("300px", "200") == Dimensions(300, 200)
    assert Dimensions.coerce("auto", 200) is None
    assert Dimensions.coerce(0, 200) is None
    assert Dimensions.coerce(None, None) is None
    with pytest.raises(ValueError):
        Dimensions(0, 1)


def test_registry_named_size_class_and_suffix():
    registry = SizeRegistry({"large": (1024, 768)})
    assert registry.lookup({"class": "wp-image-5 size-large"}) == Dimensions(1024, 768)
    assert registry.lookup({"data-size": "640x480"}) == Dimensions(640, 480)
    assert registry.lookup({"src": "/uploads/a-300x200.jpg"}) == Dimensions(300, 200)
    assert registry.lookup({"src": "/uploads/a.jpg"}) is None


def test_registry_external_lookup():
    registry = SizeRegistry(lookup=lambda name: (50, 40) if name == "thumb" else None)
    assert registry.get("thumb") == Dimensions(50, 40)
    assert registry.get("other") is None


def test_read_image_size(tmp_path):
    path = _png(tmp_path / "a.png", (40, 30))
    assert read_image_size(path) == Dimensions(40, 30)
    assert read_image_size(path, max_bytes=10) is None
    assert read_image_size(tmp_path / "missing.png") is None


def test_read_image_size_not_an_image(tmp_path):
    path = tmp_path / "b.jpg"
    path.write_bytes(b"not an image")
    assert read_image_size(path) is None


def test_resolver_priority(tmp_path):
    _png(tmp_path / "img" / "a.png", (40, 30))
    resolver = DimensionResolver(SizeRegistry({"large": (1024, 768)}), media_root=tmp_path,
                                 site_url="https://example.com")
    assert resolver.resolve({"src": "/img/a.png", "width": "10", "height": "5", "class": "size-large"}) == \
        Dimensions(10, 5)
    assert resolver.resolve({"src": "/img/a.png", "class": "size-large"}) == Dimensions(1024, 768)
    assert resolver.resolve({"src": "https://example.com/img/a.png"}) == Dimensions(40, 30)
    # half the pair is not enough for the attribute source
    assert resolver.resolve({"src": "/img/a.png", "width": "10"}) == Dimensions(40, 30)


def test_resolver_never_leaves_media_root(tmp_path):
    resolver = DimensionResolver(media_root=tmp_path / "site")
    assert resolver.local_path("https://other.test/a.png") is None
    assert resolver.local_path("/../outside.png") is None
    assert resolver.local_path("data:image/png;base64,AAAA") is None
    assert resolver.resolve({"src": "/img/missing.png"}) is None


def test_resolver_without_media_root():
    assert DimensionResolver().resolve({"src": "/img/a.png"}) is None


def test_dimensions_bounded():
    assert Dimensions(6000, 4000).bounded(5000) == Dimensions(5000, 3333)
    assert Dimensions(1000, 8000).bounded(5000) == Dimensions(625, 5000)
    dims = Dimensions(1200, 800)
    assert dims.bounded(5000) is dims
