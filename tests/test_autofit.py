import pytest

from editor.core.autofit import MIN_SCALE, compute_autofit, is_single_line, prepare_lines
from editor.core.fonts import PillowTextMeasurer, font_candidates


def fake_measure(text, font_size, font_family):
    return len(text) * font_size * 0.5


def test_text_that_fits_is_not_scaled():
    result = compute_autofit("abc", "title", 10, 100, 20, measure=fake_measure)
    assert (result.scale_x, result.scale_y) == (1.0, 1.0)
    assert not result.is_compressed


def test_wide_text_is_compressed_horizontally():
    result = compute_autofit("x" * 30, "artist", 10, 100, 20, measure=fake_measure)
    assert result.natural_width == 150
    assert result.scale_x == pytest.approx(100 / 150)
    assert result.scale_y == 1.0


def test_compression_stops_at_half():
    result = compute_autofit("x" * 100, "artist", 10, 100, 20, measure=fake_measure)
    assert result.scale_x == MIN_SCALE


def test_single_line_bindings_collapse_newlines():
    result = compute_autofit("Miles\nDavis", "artist", 10, 100, 8, measure=fake_measure)
    assert result.lines == ("Miles Davis",)
    assert result.natural_height == 10
    assert result.scale_y == pytest.approx(0.8)


def test_multi_line_text_uses_line_height():
    result = compute_autofit("a\nb\nc", "comment", 10, 100, 24, measure=fake_measure)
    assert result.lines == ("a", "b", "c")
    assert result.natural_height == pytest.approx(36)
    assert result.scale_y == pytest.approx(24 / 36)

    squeezed = compute_autofit("a\nb\nc", "comment", 10, 100, 10, measure=fake_measure)
    assert squeezed.scale_y == MIN_SCALE


def test_longer_text_never_scales_up():
    previous = 1.0
    for length in range(1, 80):
        scale = compute_autofit("w" * length, "title", 12, 120, 20, measure=fake_measure).scale_x
        assert scale <= previous
        previous = scale


def test_empty_text():
    result = compute_autofit("", "custom", 12, 50, 10, measure=fake_measure)
    assert result.lines == ("",)
    assert result.natural_width == 0
    assert not result.is_compressed


def test_prepare_lines():
    assert prepare_lines("a\r\nb", "custom") == ["a", "b"]
    assert prepare_lines(None, "price") == [""]
    assert is_single_line("countryYear")
    assert not is_single_line("comment")


def test_pillow_measurer_grows_with_text():
    measure = PillowTextMeasurer()
    short = measure("Jazz", 24, "Arial, sans-serif")
    long = measure("Jazz Fusion Classics", 24, "Arial, sans-serif")
    assert 0 < short < long
    assert measure("", 24, "Arial") == 0.0


def test_default_measurer_is_used_when_none_given():
    result = compute_autofit("W" * 200, "title", 24, 100, 40)
    assert result.scale_x == MIN_SCALE


def test_font_candidates():
    candidates = font_candidates("'Noto Sans', serif", bold=True)
    assert candidates[:4] == ["NotoSans-Bold.ttf", "NotoSansbd.ttf", "NotoSans.ttf", "Noto Sans.ttf"]
    assert "DejaVuSerif.ttf" in candidates
    assert candidates[-1] == "Arial.ttf"
