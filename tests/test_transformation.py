"""Tests for transformation.py module.

Tests parameter rendering, html size hints, nested transformations and
device pixel ratio handling.
"""

import pytest

from cdn_image.models import Environment
from cdn_image.transformation import (
    build_array,
    device_pixel_ratio,
    format_dpr,
    generate_transformation,
    process_border,
    process_color,
)
from cdn_image.url import build_url


BASE = "http://res.cloudinary.com/test123/image/upload"


def url_for(config, public_id, **options):
    return build_url(public_id, options, config)


class TestSizeHints:
    """Tests for width/height handling."""

    def test_width_and_height_without_crop(self, config):
        """Without crop the size only goes to the html hints."""
        result = url_for(config, "test", width=100, height=100)
        assert result.url == f"{BASE}/test"
        assert result.html_width == 100
        assert result.html_height == 100

    def test_width_and_height_with_crop(self, config):
        """With crop the size goes to the path and the hints."""
        result = url_for(config, "test", width=100, height=100, crop="crop")
        assert result.url == f"{BASE}/c_crop,h_100,w_100/test"
        assert result.html_attributes == {"width": 100, "height": 100}

    @pytest.mark.parametrize("crop", ["limit", "lfill", "fit"])
    def test_no_html_size_for_unpredictable_crops(self, config, crop):
        """fit, lfill and limit keep the size in the path only."""
        result = url_for(config, "test", width=100, height=100, crop=crop)
        assert result.url == f"{BASE}/c_{crop},h_100,w_100/test"
        assert result.html_attributes == {}

    def test_no_html_size_with_angle(self, config):
        """Rotation changes the output size."""
        result = url_for(config, "test", width=100, height=100, crop="scale", angle="auto")
        assert result.url == f"{BASE}/a_auto,c_scale,h_100,w_100/test"
        assert result.html_attributes == {}

    def test_size_shorthand(self, config):
        """size="WxH" should expand to width and height."""
        result = url_for(config, "test", size="10x10", crop="crop")
        assert result.url == f"{BASE}/c_crop,h_10,w_10/test"
        assert result.html_width == "10"
        assert result.html_height == "10"

    def test_auto_width_is_not_an_html_hint(self, config):
        """width="auto" cannot size an img tag."""
        result = url_for(config, "test", width="auto", crop="scale")
        assert result.url == f"{BASE}/c_scale,w_auto/test"
        assert result.html_width is None


class TestParameters:
    """Tests for individual parameter codes."""

    def test_simple_parameters(self, config):
        """Should sort codes and render values as given."""
        result = url_for(
            config, "test", x=1, y=2, radius=3, gravity="center", quality=0.4, prefix="a",
        )
        assert result.url == f"{BASE}/g_center,p_a,q_0.4,r_3,x_1,y_2/test"

    @pytest.mark.parametrize("options,segment", [
        ({"background": "red"}, "b_red"),
        ({"background": "#112233"}, "b_rgb:112233"),
        ({"default_image": "default"}, "d_default"),
        ({"angle": 12}, "a_12"),
        ({"effect": "sepia"}, "e_sepia"),
        ({"effect": ["sepia", 10]}, "e_sepia:10"),
        ({"density": 150}, "dn_150"),
        ({"page": 5}, "pg_5"),
        ({"flags": "abc"}, "fl_abc"),
        ({"flags": ["abc", "def"]}, "fl_abc.def"),
        ({"opacity": 30}, "o_30"),
        ({"zoom": 1.2}, "z_1.2"),
        ({"border": {"width": 5}}, "bo_5px_solid_black"),
        ({"border": {"width": 5, "color": "#ffaabbdd"}}, "bo_5px_solid_rgb:ffaabbdd"),
        ({"border": "1px_solid_blue"}, "bo_1px_solid_blue"),
        ({"overlay": "text:hello"}, "l_text:hello"),
        ({"underlay": "text:hello"}, "u_text:hello"),
        ({"dpr": 1}, "dpr_1.0"),
        ({"dpr": 1.5}, "dpr_1.5"),
        ({"dpr": "auto"}, "dpr_1.0"),
    ])
    def test_parameter(self, config, options, segment):
        assert url_for(config, "test", **options).url == f"{BASE}/{segment}/test"

    @pytest.mark.parametrize("layer,code", [("overlay", "l"), ("underlay", "u")])
    def test_layers_keep_size_out_of_html(self, config, layer, code):
        """Layers put width/height in the path even without crop."""
        result = url_for(config, "test", width=100, height=100, **{layer: "text:hello"})
        assert result.url == f"{BASE}/h_100,{code}_text:hello,w_100/test"
        assert result.html_attributes == {}

    def test_ignores_unknown_keys(self, config):
        """Unknown options should not appear in the URL."""
        assert url_for(config, "test", not_an_option="x").url == f"{BASE}/test"

    def test_zero_is_rendered(self):
        assert generate_transformation({"angle": 0}).path == "a_0"

    def test_raw_transformation_is_appended(self):
        assert generate_transformation({"crop": "fill", "raw_transformation": "e_grayscale"}).path == \
            "c_fill,e_grayscale"


class TestNestedTransformations:
    """Tests for named and base transformations."""

    def test_named_transformation(self, config):
        assert url_for(config, "test", transformation="blip").url == f"{BASE}/t_blip/test"

    def test_array_of_named_transformations(self, config):
        assert url_for(config, "test", transformation=["blip", "blop"]).url == \
            f"{BASE}/t_blip.blop/test"

    def test_base_transformation(self, config):
        """A mapping renders as its own segment ahead of the primary frame."""
        result = url_for(
            config, "test",
            transformation={"x": 100, "y": 100, "crop": "fill"}, crop="crop", width=100,
        )
        assert result.url == f"{BASE}/c_fill,x_100,y_100/c_crop,w_100/test"
        assert result.html_width == 100
        assert result.html_height is None

    def test_array_of_base_transformations(self, config):
        """Only the primary frame contributes html hints."""
        result = url_for(
            config, "test",
            transformation=[{"x": 100, "y": 100, "width": 200, "crop": "fill"}, {"radius": 10}],
            crop="crop",
            width=100,
        )
        assert result.url == f"{BASE}/c_fill,w_200,x_100,y_100/r_10/c_crop,w_100/test"
        assert result.html_attributes == {"width": 100}

    def test_skips_empty_transformations(self, config):
        result = url_for(config, "test", transformation=[{}, {"x": 100, "y": 100, "crop": "fill"}, {}])
        assert result.url == f"{BASE}/c_fill,x_100,y_100/test"
        assert result.html_attributes == {}

    def test_mixed_named_and_base(self):
        """Named entries in a mixed list become their own segments."""
        assert generate_transformation({"transformation": ["blip", {"angle": 5}]}).path == \
            "t_blip/a_5"


class TestDevicePixelRatio:
    """Tests for device_pixel_ratio and dpr formatting."""

    def test_defaults_to_one(self):
        assert device_pixel_ratio() == 1.0

    def test_rounds_up(self):
        assert device_pixel_ratio(lambda: 1.3) == 2.0

    def test_without_rounding(self):
        assert device_pixel_ratio(lambda: 1.5, round_dpr=False) == 1.5

    @pytest.mark.parametrize("bad", [0, -1, None, "nope", float("nan")])
    def test_invalid_ratio_falls_back(self, bad):
        assert device_pixel_ratio(lambda: bad) == 1.0

    def test_auto_uses_environment(self, config):
        """dpr="auto" should pick up the device ratio at call time."""
        retina = Environment(device_pixel_ratio=lambda: 2)
        assert build_url("test", {"dpr": "auto"}, config, retina).url == \
            f"{BASE}/dpr_2.0/test"

    def test_format_dpr(self):
        assert format_dpr(2) == "2.0"
        assert format_dpr("auto", lambda: 3.0) == "3.0"
        assert format_dpr(None) is None


class TestHelpers:
    """Tests for small value helpers."""

    def test_build_array(self):
        assert build_array(None) == []
        assert build_array("a") == ["a"]
        assert build_array(("a", "b")) == ["a", "b"]

    def test_process_color(self):
        assert process_color("#fff") == "rgb:fff"
        assert process_color("blue") == "blue"

    def test_process_border_defaults(self):
        assert process_border({}) == "2px_solid_black"

    def test_process_border_zero_width(self):
        assert process_border({"width": 0}) == "0px_solid_black"
