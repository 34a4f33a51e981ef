import pytest

from edge_images.args import TransformArgs
from edge_images.errors import ConfigurationError
from edge_images.providers import ProviderKind, get_provider


def test_provider_kind_from_name():
    assert ProviderKind.from_name("Accelerated-Domains") is ProviderKind.ACCELERATED_DOMAINS
    assert ProviderKind.from_name(ProviderKind.IMGIX) is ProviderKind.IMGIX
    with pytest.raises(ConfigurationError):
        ProviderKind.from_name("akamai")


def test_default_args():
    provider = get_provider("cloudflare", default_quality=70)
    assert dict(provider.default_args()) == {"fit": "cover", "dpr": 1, "f": "auto", "g": "auto", "q": 70}


# ---------- Cloudflare ----------

def test_cloudflare_sorted_options():
    provider = get_provider("cloudflare", domain="https://example.com")
    url = provider.build_url("/uploads/a.jpg", TransformArgs({"w": 300, "f": "auto", "dpr": 1}))
    assert url == "https://example.com/cdn-cgi/image/dpr=1,f=auto,w=300/uploads/a.jpg"


def test_cloudflare_parses_raw_args_and_keeps_host_and_query():
    provider = get_provider("cloudflare")
    url = provider.build_url("https://site.test/a.jpg?v=2", {"width": "300", "foo": "bar"})
    assert url == "https://site.test/cdn-cgi/image/w=300/a.jpg?v=2"


def test_cloudflare_without_params_returns_original():
    provider = get_provider("cloudflare")
    assert provider.build_url("/a.jpg", {}) == "/a.jpg"


def test_cloudflare_no_double_transform():
    provider = get_provider("cloudflare")
    once = provider.build_url("/a.jpg", {"w": 300})
    assert provider.is_transformed(once)
    assert provider.build_url(once, {"w": 600}) == once


def test_cloudflare_strip():
    provider = get_provider("cloudflare")
    url = "https://site.test/cdn-cgi/image/w=300,f=auto/uploads/a.jpg"
    assert provider.strip_transformation(url) == "https://site.test/uploads/a.jpg"
    assert provider.strip_transformation("/plain.jpg") == "/plain.jpg"


# ---------- Accelerated Domains ----------

def test_accelerated_domains_query_grammar():
    provider = get_provider("accelerated_domains")
    url = provider.build_url("/uploads/a.jpg", TransformArgs({"w": 300, "f": "auto"}))
    assert url == "/acd-cgi/img/v1/uploads/a.jpg?format=auto&width=300"
    assert provider.is_transformed(url)
    assert provider.strip_transformation(url) == "/uploads/a.jpg"


# ---------- Bunny ----------

def test_bunny_requires_subdomain():
    with pytest.raises(ConfigurationError):
        get_provider("bunny")


def test_bunny_scales_box_by_dpr():
    provider = get_provider("bunny", subdomain="acme")
    url = provider.build_url("/uploads/a.jpg", TransformArgs({"w": 300, "h": 200, "dpr": 2, "q": 80}))
    assert url == "https://acme.b-cdn.net/uploads/a.jpg?height=400&quality=80&width=600"


def test_bunny_strip_returns_site_path():
    provider = get_provider("bunny", subdomain="acme", domain="https://example.com")
    assert provider.strip_transformation("https://acme.b-cdn.net/uploads/a.jpg?width=600") == \
        "https://example.com/uploads/a.jpg"


# ---------- Imgix ----------

def test_imgix_parameter_mapping():
    provider = get_provider("imgix", subdomain="acme")
    args = TransformArgs({"fit": "contain", "f": "auto", "g": "north", "w": 300})
    assert provider.build_url("/a.jpg", args) == "https://acme.imgix.net/a.jpg?auto=format&fit=clip&crop=top&w=300"


def test_imgix_background_only_for_hex():
    provider = get_provider("imgix", subdomain="acme")
    assert "bg=ffcc00" in provider.build_url("/a.jpg", {"bg": "#FFCC00"})
    assert "bg=" not in provider.build_url("/a.jpg", {"bg": "white", "w": 10})
