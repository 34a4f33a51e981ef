import json

import pytest

from edge_images.config import Settings, load_sizes_map
from edge_images.errors import ConfigurationError
from edge_images.providers import ProviderKind


def test_defaults():
    s = Settings()
    assert s.provider_kind is ProviderKind.CLOUDFLARE
    assert s.default_quality == 85
    assert (s.min_width, s.max_width, s.max_gap) == (300, 2400, 200)
    assert s.wrap_in_picture is True
    assert s.content_width is None


def test_invalid_settings_raise():
    with pytest.raises(ConfigurationError):
        Settings(provider="nope")
    with pytest.raises(ConfigurationError):
        Settings(default_quality=0)
    with pytest.raises(ConfigurationError):
        Settings(min_width=500, max_width=100)
    with pytest.raises(ConfigurationError):
        Settings(multipliers=())


def test_from_env():
    s = Settings.from_env({
        "EDGE_IMAGES_PROVIDER": "imgix",
        "EDGE_IMAGES_SUBDOMAIN": "acme",
        "EDGE_IMAGES_QUALITY": "70",
        "EDGE_IMAGES_DISABLE_PICTURE_WRAP": "1",
        "EDGE_IMAGES_CONTENT_WIDTH": "800",
        "EDGE_IMAGES_DOMAIN": "  ",
    })
    assert s.provider == "imgix"
    assert s.subdomain == "acme"
    assert s.default_quality == 70
    assert s.wrap_in_picture is False
    assert s.content_width == 800
    assert s.domain == ""


def test_from_env_rejects_bad_integer():
    with pytest.raises(ConfigurationError):
        Settings.from_env({"EDGE_IMAGES_QUALITY": "high"})


def test_from_file(tmp_path):
    path = tmp_path / "edge.json"
    path.write_text(json.dumps({
        "provider": "bunny",
        "subdomain": "acme",
        "sizes_map": {"hero_*": "100vw"},
        "image_sizes": {"large": [1024, 768]},
    }), encoding="utf-8")
    s = Settings.from_file(path)
    assert s.provider_kind is ProviderKind.BUNNY
    assert s.sizes_map == [("hero_*", "100vw")]
    assert s.image_sizes == {"large": (1024, 768)}


def test_from_file_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        Settings.from_file(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text('{"colour": "red"}', encoding="utf-8")
    with pytest.raises(ConfigurationError):
        Settings.from_file(bad)


def test_load_sizes_map(tmp_path):
    assert load_sizes_map(tmp_path / "missing.json") == []
    path = tmp_path / "sizes.json"
    path.write_text(json.dumps({"hero_*": "100vw", "logo_*": 120, "": "x"}), encoding="utf-8")
    assert load_sizes_map(path) == [("hero_*", "100vw")]
    path.write_text("not json", encoding="utf-8")
    assert load_sizes_map(path) == []
