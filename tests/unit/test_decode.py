"""Unit tests for the safe decoder and its platform guard."""

import io
from pathlib import Path

import pytest
from PIL import Image

from app.errors import DecodeFailedError, OversizedForPlatformError, ReadFailedError
from app.imaging.decode import (
    DESKTOP, MOBILE, PillowDecoder, PlatformProfile, PyMuPDFDecoder, SafeDecoder,
    clamp_dimensions, platform_profile, to_rgb,
)
from app.imaging.sources import read_source
from app.models.raster import RasterSurface


class TestClampDimensions:
    def test_small_image_untouched(self):
        assert clamp_dimensions(800, 600, 4096) == (800, 600)

    def test_exact_limit_untouched(self):
        assert clamp_dimensions(4096, 4096, 4096) == (4096, 4096)

    def test_wide_image(self):
        assert clamp_dimensions(8192, 3000, 4096) == (4096, 1500)

    def test_tall_image_floors(self):
        # ratio = 4096 / 5000 = 0.8192 → 3333 * 0.8192 = 2730.39
        assert clamp_dimensions(3333, 5000, 4096) == (2730, 4096)


class TestPlatformProfile:
    def test_desktop_has_no_limit(self):
        assert platform_profile("desktop") is DESKTOP
        assert DESKTOP.max_input_bytes is None

    def test_mobile_limit(self):
        assert MOBILE.max_input_bytes == 25 * 1024 * 1024
        assert platform_profile("mobile", 10).max_input_bytes == 10 * 1024 * 1024


class TestToRgb:
    def test_transparent_becomes_white(self):
        img = Image.new("RGBA", (2, 2), (0, 0, 0, 0))
        assert to_rgb(img).getpixel((0, 0)) == (255, 255, 255)

    def test_grayscale(self):
        assert to_rgb(Image.new("L", (2, 2), 128)).mode == "RGB"


class TestStrategies:
    def test_pillow_jpeg(self, make_image):
        s = PillowDecoder().decode(make_image(64, 48, "JPEG"), 4096)
        assert (s.width, s.height, s.mode) == (64, 48, "RGB")
        assert s.decoder == "pillow"

    def test_pillow_clamps(self, make_image):
        s = PillowDecoder().decode(make_image(300, 100, "JPEG"), 120)
        assert (s.width, s.height) == (120, 40)

    def test_pillow_png_alpha(self, png_bytes):
        s = PillowDecoder().decode(png_bytes, 4096)
        assert (s.width, s.height, s.mode) == (30, 60, "RGB")

    def test_pillow_applies_exif_orientation(self, make_image):
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 CW on display
        s = PillowDecoder().decode(make_image(80, 40, "JPEG", exif=exif), 4096)
        assert (s.width, s.height) == (40, 80)

    def test_pymupdf_png(self, png_bytes):
        s = PyMuPDFDecoder().decode(png_bytes, 4096)
        assert (s.width, s.height, s.mode) == (30, 60, "RGB")

    def test_pymupdf_clamps(self, make_image):
        s = PyMuPDFDecoder().decode(make_image(100, 300, "PNG"), 120)
        assert (s.width, s.height) == (40, 120)


class BrokenDecoder:
    name = "broken"

    def __init__(self):
        self.calls = 0

    def decode(self, data, max_dimension):
        self.calls += 1
        raise OSError("cannot identify image")


class FixedDecoder:
    name = "fixed"

    def __init__(self):
        self.calls = 0

    def decode(self, data, max_dimension):
        self.calls += 1
        return RasterSurface(image=Image.new("RGB", (5, 5)), decoder=self.name)


@pytest.mark.asyncio
class TestSafeDecoder:
    async def test_falls_back_to_second_strategy(self):
        broken, fixed = BrokenDecoder(), FixedDecoder()
        s = await SafeDecoder(strategies=(broken, fixed)).decode(b"data", "a.jpg")
        assert s.decoder == "fixed"
        assert broken.calls == 1

    async def test_first_success_wins(self):
        first, second = FixedDecoder(), FixedDecoder()
        await SafeDecoder(strategies=(first, second)).decode(b"data")
        assert (first.calls, second.calls) == (1, 0)

    async def test_all_fail(self):
        with pytest.raises(DecodeFailedError) as info:
            await SafeDecoder(strategies=(BrokenDecoder(), BrokenDecoder())).decode(b"data")
        assert len(info.value.detail) == 2

    async def test_real_strategies_reject_garbage(self):
        with pytest.raises(DecodeFailedError):
            await SafeDecoder().decode(b"definitely not an image")

    async def test_oversized_rejected_before_any_strategy(self):
        fixed = FixedDecoder()
        decoder = SafeDecoder(profile=PlatformProfile("mobile", max_input_bytes=10), strategies=(fixed,))
        with pytest.raises(OversizedForPlatformError):
            await decoder.decode(b"x" * 11)
        assert fixed.calls == 0

    async def test_limit_is_inclusive(self):
        decoder = SafeDecoder(profile=PlatformProfile("mobile", max_input_bytes=10), strategies=(FixedDecoder(),))
        s = await decoder.decode(b"x" * 10)
        assert s.width == 5

    async def test_profile_without_fast_tier_skips_it(self):
        fast, slow = FixedDecoder(), FixedDecoder()
        profile = PlatformProfile("legacy", prefer_fast_decode_tier=False)
        await SafeDecoder(profile=profile, strategies=(fast, slow)).decode(b"data")
        assert (fast.calls, slow.calls) == (0, 1)

    async def test_decodes_real_jpeg(self, make_image):
        s = await SafeDecoder(max_dimension=50).decode(make_image(200, 100, "JPEG"))
        assert (s.width, s.height) == (50, 25)


@pytest.mark.asyncio
class TestReadSource:
    async def test_bytes(self):
        assert await read_source(b"abc") == b"abc"

    async def test_path(self, tmp_path):
        p = tmp_path / "a.jpg"
        p.write_bytes(b"abc")
        assert await read_source(p) == b"abc"

    async def test_missing_path(self, tmp_path):
        with pytest.raises(ReadFailedError):
            await read_source(tmp_path / "gone.jpg", "gone.jpg")

    async def test_async_reader(self):
        async def reader():
            return b"abc"
        assert await read_source(reader) == b"abc"

    async def test_reader_error(self):
        async def reader():
            raise OSError("closed")
        with pytest.raises(ReadFailedError):
            await read_source(reader, "a.jpg")

    async def test_any_reader_exception_is_read_failure(self):
        async def reader():
            raise RuntimeError("upload stream reset")
        with pytest.raises(ReadFailedError) as info:
            await read_source(reader, "a.jpg")
        assert "upload stream reset" in info.value.message
