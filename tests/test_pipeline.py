import pytest

import edge_images
from edge_images import Dimensions, Pipeline, Settings
from edge_images.errors import ConfigurationError


def test_build_transformed_url_merges_defaults_and_drops_unknown():
    pipeline = Pipeline()
    assert pipeline.build_transformed_url("/a.jpg", {"width": 300, "foo": "bar"}) == \
        "/cdn-cgi/image/dpr=1,f=auto,fit=cover,g=auto,q=85,w=300/a.jpg"


def test_build_transformed_url_leaves_transformed_alone():
    pipeline = Pipeline()
    url = "/cdn-cgi/image/w=300/a.jpg"
    assert pipeline.build_transformed_url(url, {"w": 600}) == url
    assert pipeline.build_transformed_url("", {"w": 600}) == ""


def test_build_srcset_accepts_dimension_shapes():
    pipeline = Pipeline()
    expected = pipeline.build_srcset("/a.jpg", Dimensions(800, 600))
    assert expected
    assert pipeline.build_srcset("/a.jpg", (800, 600)) == expected
    assert pipeline.build_srcset("/a.jpg", {"width": "800", "height": "600"}) == expected
    assert pipeline.build_srcset("/a.jpg", None) == ""


def test_preload_link():
    pipeline = Pipeline()
    tag = pipeline.preload_link("/hero.jpg", (1600, 900), "100vw")
    assert tag.startswith('<link rel="preload" as="image" href="/cdn-cgi/image/')
    assert 'imagesrcset="' in tag
    assert tag.endswith('imagesizes="100vw">')
    assert pipeline.preload_link("/hero.svg", (1600, 900), "100vw") == ""


def test_imgix_pipeline():
    pipeline = Pipeline(Settings(provider="imgix", subdomain="acme", default_quality=70))
    url = pipeline.build_transformed_url("/a.jpg", {"w": 300})
    assert url == "https://acme.imgix.net/a.jpg?dpr=1&auto=format&fit=crop&crop=entropy&q=70&w=300"


def test_subdomain_provider_without_subdomain_fails_at_configuration():
    with pytest.raises(ConfigurationError):
        Pipeline(Settings(provider="bunny"))


def test_module_level_helpers_use_environment(monkeypatch):
    monkeypatch.setenv("EDGE_IMAGES_PROVIDER", "accelerated_domains")
    edge_images.default_pipeline.cache_clear()
    try:
        assert edge_images.build_transformed_url("/a.jpg", {"w": 300}).startswith("/acd-cgi/img/v1/a.jpg?")
        out = edge_images.rewrite('<img src="/a.jpg" width="300" height="200">')
        assert "/acd-cgi/img/v1/a.jpg" in out
        assert edge_images.build_srcset("/a.jpg", (300, 200))
    finally:
        edge_images.default_pipeline.cache_clear()
