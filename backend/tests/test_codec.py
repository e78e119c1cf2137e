import pickle

import pytest

from helpers import decoded_size, make_image_bytes
from imageopt.codec import OpenCVCodec, fit_inside
from imageopt.errors import CodecError


def test_fit_inside_downscales_preserving_aspect():
    assert fit_inside(2400, 1200, (1920, 1080)) == (1920, 960)
    assert fit_inside(1000, 2000, (350, 350)) == (175, 350)


def test_fit_inside_never_enlarges():
    assert fit_inside(200, 100, (350, 350)) == (200, 100)


def test_encode_fits_bounding_box():
    codec = OpenCVCodec()
    src = make_image_bytes(2400, 1200, noise=False)
    out = codec.encode(src, (1920, 1080), 80)
    assert decoded_size(out) == (1920, 960)


def test_encode_keeps_small_source_dimensions():
    codec = OpenCVCodec()
    src = make_image_bytes(200, 100, ext=".png")
    out = codec.encode(src, (350, 350), 20)
    assert decoded_size(out) == (200, 100)
    assert out[:2] == b"\xff\xd8"


def test_lower_quality_gives_smaller_output():
    codec = OpenCVCodec()
    src = make_image_bytes(400, 300)
    assert len(codec.encode(src, (1920, 1080), 20)) < len(codec.encode(src, (1920, 1080), 80))


def test_encode_is_deterministic():
    codec = OpenCVCodec()
    src = make_image_bytes(320, 240)
    assert codec.encode(src, (1920, 1080), 55) == codec.encode(src, (1920, 1080), 55)


def test_alpha_png_is_flattened():
    codec = OpenCVCodec()
    src = make_image_bytes(120, 80, ext=".png", channels=4)
    assert codec.probe(src) == (120, 80)
    assert decoded_size(codec.encode(src, (350, 350), 20)) == (120, 80)


@pytest.mark.parametrize("data", [b"", b"this is not an image"])
def test_undecodable_input_raises_codec_error(data):
    with pytest.raises(CodecError):
        OpenCVCodec().encode(data, (1920, 1080), 80)


def test_degenerate_bounding_box_raises_codec_error():
    with pytest.raises(CodecError):
        OpenCVCodec().encode(make_image_bytes(10, 10), (0, 350), 20)


@pytest.mark.parametrize("quality", [0, 101])
def test_quality_out_of_range(quality):
    with pytest.raises(ValueError):
        OpenCVCodec().encode(make_image_bytes(10, 10), (350, 350), quality)


def test_codec_survives_pickling():
    codec = pickle.loads(pickle.dumps(OpenCVCodec()))
    assert codec.probe(make_image_bytes(30, 20)) == (30, 20)
