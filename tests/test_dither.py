import numpy as np
import pytest

from asciiraster.buffer import CharBuffer
from asciiraster.config import DitherOptions, HalftoneOptions
from asciiraster.dither import (
    ATKINSON,
    BAYER_MATRICES,
    FLOYD_STEINBERG,
    KERNELS,
    DitherAlgorithm,
    apply_dither_to_buffer,
    apply_halftone,
    atkinson_dither,
    bayer_dither,
    blue_noise_dither,
    create_gradient,
    dither_field,
    dither_to_ascii,
    error_diffusion,
    floyd_steinberg_dither,
    halftone_char,
    noise_threshold,
    ordered_dither,
    pattern_dither,
    random_dither,
    threshold_dither,
)


@pytest.fixture
def ramp():
    return create_gradient(16, 8, "diagonal")


def test_parse_names_and_aliases():
    assert DitherAlgorithm.parse("floyd-steinberg") is DitherAlgorithm.FLOYD_STEINBERG
    assert DitherAlgorithm.parse("floydSteinberg") is DitherAlgorithm.FLOYD_STEINBERG
    assert DitherAlgorithm.parse("blue_noise") is DitherAlgorithm.BLUE_NOISE
    assert DitherAlgorithm.parse("none") is DitherAlgorithm.THRESHOLD
    assert DitherAlgorithm.parse(DitherAlgorithm.JARVIS) is DitherAlgorithm.JARVIS


def test_parse_unknown_falls_back_to_bayer():
    assert DitherAlgorithm.parse("sparkle") is DitherAlgorithm.BAYER
    assert DitherAlgorithm.parse(None) is DitherAlgorithm.BAYER


def test_threshold_dither_bins():
    assert threshold_dither(0.74, 4) == 0.5
    assert threshold_dither(0.2, 2) == 0.0
    assert threshold_dither(1.0, 4) == 1.0


@pytest.mark.parametrize("size", [2, 4, 8])
def test_bayer_extremes(size):
    for y in range(size):
        for x in range(size):
            assert bayer_dither(1.0, x, y, size) == 1.0
            assert bayer_dither(0.0, x, y, size) == 0.0


def test_bayer_half_grey_is_half_on():
    ys, xs = np.indices((4, 4))
    out = bayer_dither(np.full((4, 4), 0.5), xs, ys, 4)
    assert out.sum() == 8


def test_bayer_unknown_size_uses_4x4():
    ys, xs = np.indices((4, 4))
    field = np.full((4, 4), 0.3)
    assert np.array_equal(bayer_dither(field, xs, ys, 5), bayer_dither(field, xs, ys, 4))


def test_ordered_dither_is_periodic_and_deterministic():
    matrix = BAYER_MATRICES["bayer4"]
    for x in range(4):
        for y in range(4):
            first = ordered_dither(0.37, x, y, matrix, 3)
            assert first == ordered_dither(0.37, x, y, matrix, 3)
            assert first == ordered_dither(0.37, x + 4, y + 8, matrix, 3)
            assert first in (0.0, 0.5)


def test_pattern_dither_checker():
    assert pattern_dither(0.5, 0, 0, "checker") == 1.0
    assert pattern_dither(0.5, 1, 0, "checker") == 0.0
    assert pattern_dither(0.5, 1, 1, "checker") == 1.0


def test_pattern_dither_unknown_pattern_uses_checker():
    assert pattern_dither(0.5, 1, 0, "wiggles") == pattern_dither(0.5, 1, 0, "checker")


def test_random_dither_is_seedable():
    field = np.full((6, 6), 0.5)
    a = random_dither(field, 0.5, np.random.default_rng(7))
    b = random_dither(field, 0.5, np.random.default_rng(7))
    assert np.array_equal(a, b)
    assert set(np.unique(a)) <= {0.0, 1.0}


def test_random_dither_zero_strength_is_threshold():
    assert random_dither(0.8, 0.0) == 1.0
    assert random_dither(0.2, 0.0) == 0.0


def test_noise_threshold_range_and_determinism():
    ys, xs = np.indices((32, 32))
    t = noise_threshold(xs, ys, 3)
    assert t.shape == (32, 32)
    assert t.min() >= 0.0
    assert t.max() < 1.0
    assert np.array_equal(t, noise_threshold(xs, ys, 3))
    assert not np.array_equal(t, noise_threshold(xs, ys, 4))
    assert isinstance(noise_threshold(5, 9), float)


def test_blue_noise_is_two_level():
    ys, xs = np.indices((16, 16))
    out = blue_noise_dither(np.full((16, 16), 0.5), xs, ys, 1)
    assert set(np.unique(out)) == {0.0, 1.0}
    assert blue_noise_dither(1.0, 3, 3) == 1.0
    assert blue_noise_dither(0.0, 3, 3) == 0.0


def test_kernel_retained_share():
    assert FLOYD_STEINBERG.retained == 1.0
    assert ATKINSON.retained == 0.75
    assert KERNELS["stucki"].retained == 1.0


@pytest.mark.parametrize("name", sorted(KERNELS))
def test_error_diffusion_conserves_intensity(name, ramp):
    result = error_diffusion(ramp, 2, KERNELS[name])
    assert result.values.sum() + result.residual == pytest.approx(ramp.sum())


@pytest.mark.parametrize("levels", [2, 3, 5])
def test_error_diffusion_outputs_levels(levels, ramp):
    values = error_diffusion(ramp, levels).values
    allowed = np.linspace(0.0, 1.0, levels)
    assert np.all(np.isclose(values[..., None], allowed).any(axis=-1))


def test_error_diffusion_single_cell_spills_everything():
    result = error_diffusion([[0.3]])
    assert result.values.tolist() == [[0.0]]
    assert result.residual == pytest.approx(0.3)


def test_error_diffusion_does_not_mutate_input(ramp):
    original = ramp.copy()
    nested = ramp.tolist()
    floyd_steinberg_dither(ramp)
    atkinson_dither(nested)
    assert np.array_equal(ramp, original)
    assert nested == original.tolist()


def test_error_diffusion_empty():
    result = error_diffusion([])
    assert result.values.size == 0
    assert result.residual == 0.0


def test_error_diffusion_clamps_out_of_range():
    values = error_diffusion([[1.6, -0.4]]).values
    assert values.min() >= 0.0
    assert values.max() <= 1.0


def test_dither_field_uses_palette_levels(ramp):
    out = dither_field(ramp, DitherOptions(algorithm="floyd-steinberg", palette="blocks"))
    assert np.all(np.isclose(out[..., None], np.linspace(0, 1, 5)).any(axis=-1))


def test_dither_field_explicit_levels(ramp):
    out = dither_field(ramp, DitherOptions(algorithm="bayer8", levels=2))
    assert set(np.unique(out)) <= {0.0, 1.0}


def test_dither_field_unknown_algorithm_matches_bayer(ramp):
    fallback = dither_field(ramp, DitherOptions(algorithm="mystery"))
    assert np.array_equal(fallback, dither_field(ramp, DitherOptions(algorithm="bayer")))


@pytest.mark.parametrize("algorithm", [a.value for a in DitherAlgorithm])
def test_dither_field_every_algorithm(algorithm, ramp):
    opts = DitherOptions(algorithm=algorithm, palette="simple", seed=11)
    out = dither_field(ramp, opts)
    assert out.shape == ramp.shape
    assert np.array_equal(out, dither_field(ramp, opts))


def test_dither_field_empty():
    assert dither_field([]).size == 0


def test_dither_to_ascii_rows():
    rows = dither_to_ascii(np.ones((2, 3)), DitherOptions(palette="binary"))
    assert rows == ["███", "███"]
    rows = dither_to_ascii(np.zeros((1, 4)), DitherOptions(palette="binary", algorithm="atkinson"))
    assert rows == ["    "]


def test_apply_dither_to_buffer_clips():
    buf = CharBuffer(2, 2, fill_char=".")
    apply_dither_to_buffer(buf, np.ones((3, 3)), DitherOptions(palette="binary", depth=4))
    assert buf.to_string() == "██\n██"
    assert buf.depth[1, 1] == 4


def test_create_gradient_directions():
    assert create_gradient(5, 2)[0].tolist() == [0.0, 0.25, 0.5, 0.75, 1.0]
    assert create_gradient(2, 3, "vertical")[:, 1].tolist() == [0.0, 0.5, 1.0]
    diagonal = create_gradient(3, 3, "diagonal")
    assert diagonal[0, 0] == 0.0
    assert diagonal[2, 2] == 1.0
    radial = create_gradient(4, 4, "radial")
    assert radial[2, 2] == 0.0
    assert radial[0, 0] == pytest.approx(1.0)
    assert np.all(create_gradient(3, 2, "spiral") == 0.5)
    assert create_gradient(1, 1).tolist() == [[0.0]]


def test_halftone_char():
    assert halftone_char(0.0, 2, 2) == " "
    assert halftone_char(1.0, 2, 2) == "█"
    assert halftone_char(0.3, 6, 6, cell_size=4, shape="diamond") == "█"


def test_apply_halftone():
    rows = apply_halftone(np.ones((4, 4)), HalftoneOptions(shape="square"))
    assert rows == ["████"] * 4
    assert apply_halftone(np.zeros((2, 3))) == ["   ", "   "]


@pytest.mark.parametrize("name", sorted(BAYER_MATRICES))
def test_ordered_full_on_stays_at_maximum(name):
    matrix = BAYER_MATRICES[name]
    ys, xs = np.indices(matrix.shape)
    out = ordered_dither(np.ones(matrix.shape), xs, ys, matrix, 2)
    assert np.all(out == 1.0)
