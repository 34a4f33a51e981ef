from edge_images.dimensions import Dimensions
from edge_images.preloads import preload_link, preload_links
from edge_images.providers import get_provider
from edge_images.srcset import SrcsetTransformer


def _transformer():
    return SrcsetTransformer(get_provider("imgix", subdomain="acme"))


def test_preload_link_escapes_query_urls():
    tag = preload_link(_transformer(), "/hero.jpg", Dimensions(1200, 600), "100vw", {"quality": 50})
    assert tag.startswith('<link rel="preload" as="image" href="https://acme.imgix.net/hero.jpg?')
    assert "&amp;w=1200" in tag
    assert "q=50" in tag
    assert "&w=" not in tag


def test_preload_link_empty_without_dimensions():
    assert preload_link(_transformer(), "/hero.jpg", None, "100vw") == ""


def test_preload_links_skips_unusable():
    out = preload_links(_transformer(), [
        ("/a.jpg", Dimensions(800, 600), "100vw"),
        ("/b.svg", Dimensions(800, 600), "100vw"),
        ("/c.jpg", Dimensions(400, 300), "50vw"),
    ])
    lines = out.split("\n")
    assert len(lines) == 2
    assert 'imagesizes="50vw"' in lines[1]
