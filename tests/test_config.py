"""Tests for configuration loading: defaults, files and environment overrides."""

import json

import pytest

from tokenlens.core.config import ConfigError, ReconcilerConfig, load_config
from tokenlens.core.types import Framework


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

TOML_CONFIG = """
[tokenlens]
framework = "react-tailwind"
pixel_threshold = 1.5
viewport = "1280x720"

[tokenlens.tokens.colors]
brand = "#2563eb"

[tokenlens.tokens.spacing]
space-4 = "16px"

[tokenlens.tokens.typography.body]
fontSize = 16
fontWeight = 400
"""


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------

class TestDefaults:
    def test_no_file_no_env(self, workdir):
        config = load_config(environ={})
        assert config.framework is Framework.HTML_CSS
        assert config.pixel_threshold == 2.0
        assert config.color_delta_e_threshold == 0.05
        assert (config.high_confidence, config.low_confidence) == (70, 60)
        assert config.major_delta == 8.0
        assert config.metrics.viewport_width == 1920

    def test_dataclass_defaults_match(self):
        config = ReconcilerConfig()
        assert config.framework is Framework.HTML_CSS
        assert config.tokens.colors == {}


class TestFiles:
    def test_toml_with_section(self, workdir):
        path = workdir / "custom.toml"
        path.write_text(TOML_CONFIG)
        config = load_config(path, environ={})
        assert config.framework is Framework.REACT_TAILWIND
        assert config.pixel_threshold == 1.5
        assert config.tokens.colors == {"brand": "#2563eb"}
        assert config.tokens.spacing == {"space-4": "16px"}
        assert config.tokens.typography["body"].font_size == 16
        assert (config.metrics.viewport_width, config.metrics.viewport_height) == (1280, 720)

    def test_default_file_in_working_directory(self, workdir):
        (workdir / "tokenlens.toml").write_text(TOML_CONFIG)
        assert load_config(environ={}).framework is Framework.REACT_TAILWIND

    def test_json_file(self, workdir):
        path = workdir / "tokenlens.json"
        path.write_text(json.dumps({
            "framework": "vue-css",
            "major_delta": 4,
            "root_font_size": 20,
            "viewport": [390, 844],
            "tokens": {"borderRadius": {"card": "12px"}},
        }))
        config = load_config(path, environ={})
        assert config.framework is Framework.VUE_CSS
        assert config.major_delta == 4.0
        assert config.metrics.root_font_size == 20
        assert config.metrics.viewport_width == 390
        assert config.tokens.border_radius == {"card": "12px"}

    def test_metrics_table(self, workdir):
        path = workdir / "tokenlens.json"
        path.write_text(json.dumps({"metrics": {"rootFontSize": 18, "viewportWidth": 1024}}))
        config = load_config(path, environ={})
        assert config.metrics.root_font_size == 18
        assert config.metrics.viewport_width == 1024

    def test_missing_explicit_file(self, workdir):
        with pytest.raises(ConfigError, match="not found"):
            load_config(workdir / "nope.toml", environ={})

    def test_malformed_toml(self, workdir):
        path = workdir / "broken.toml"
        path.write_text("framework = [")
        with pytest.raises(ConfigError, match="cannot read"):
            load_config(path, environ={})

    def test_top_level_must_be_table(self, workdir):
        path = workdir / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            load_config(path, environ={})


class TestEnvironment:
    def test_env_overrides_file(self, workdir):
        (workdir / "tokenlens.toml").write_text(TOML_CONFIG)
        config = load_config(environ={
            "TOKENLENS_FRAMEWORK": "SVELTE-CSS",
            "TOKENLENS_PIXEL_THRESHOLD": "3",
            "OTHER_SETTING": "ignored",
        })
        assert config.framework is Framework.SVELTE_CSS
        assert config.pixel_threshold == 3.0
        assert config.tokens.colors == {"brand": "#2563eb"}

    def test_env_viewport(self, workdir):
        config = load_config(environ={"TOKENLENS_VIEWPORT": "375X667"})
        assert config.metrics.viewport_width == 375
        assert config.metrics.visual_viewport_height == 667

    @pytest.mark.parametrize("key,value", [
        ("TOKENLENS_FRAMEWORK", "jquery"),
        ("TOKENLENS_PIXEL_THRESHOLD", "wide"),
        ("TOKENLENS_HIGH_CONFIDENCE", "1.5x"),
        ("TOKENLENS_VIEWPORT", "1280"),
        ("TOKENLENS_VIEWPORT", "0x720"),
        ("TOKENLENS_ROOT_FONT_SIZE", "-16"),
    ])
    def test_invalid_values(self, workdir, key, value):
        with pytest.raises(ConfigError):
            load_config(environ={key: value})

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)
