"""
Tests for the animation assembler.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image, ImageSequence

from gifspin.assembly import AnimationAssembler, FrameDelay, OutputConfig
from gifspin.exceptions import JoinError
from gifspin.frames import render_frames
from gifspin.types import AlphaMode, Area, CanvasPlan, CompositionPlan, Frame, FrameSpec


def _frame(index: int, size=(12, 8), color=(0, 0, 0)) -> Frame:
    spec = FrameSpec(
        index=index,
        angle=0.0,
        matrix=(1.0, 0.0, 0.0, 1.0),
        input_center=(0.0, 0.0),
        output_center=(0.0, 0.0),
        area=Area(0, 0, *size),
        background=(0.0, 0.0, 0.0),
    )
    return Frame(spec=spec, image=Image.new("RGB", size, color))


class TestFrameDelay:
    def test_uniform_delay(self):
        assert FrameDelay(default_ms=40).resolve(3) == [40, 40, 40]

    def test_every_page_gets_default(self):
        assert FrameDelay().resolve(2) == [100, 100]

    def test_empty(self):
        assert FrameDelay().resolve(0) == []


class TestBuild:
    def test_strip_layout(self):
        frames = [_frame(i, color=(i * 60, 0, 0)) for i in range(4)]
        anim = AnimationAssembler(OutputConfig(frame_delay=FrameDelay(70))).build(frames)
        assert anim.strip.size == (12, 32)
        assert anim.page_height == 8
        assert anim.page_count == 4
        assert anim.delays == [70, 70, 70, 70]
        for i in range(4):
            assert anim.strip.getpixel((0, i * 8)) == (i * 60, 0, 0)

    def test_index_order_wins(self):
        frames = [_frame(1, color=(255, 0, 0)), _frame(0, color=(0, 255, 0))]
        anim = AnimationAssembler(OutputConfig()).build(frames)
        assert anim.strip.getpixel((0, 0)) == (0, 255, 0)

    def test_mismatched_sizes(self):
        with pytest.raises(JoinError, match="differ in size"):
            AnimationAssembler(OutputConfig()).build([_frame(0), _frame(1, size=(8, 8))])

    def test_no_frames(self):
        with pytest.raises(JoinError):
            AnimationAssembler(OutputConfig()).build([])


class TestAssemble:
    def test_gif_has_every_frame(self, tmp_dir, marker_rgb):
        canvas = CanvasPlan(100, 100)
        comp = CompositionPlan(3, AlphaMode.FLATTENED, (0.0, 0.0, 0.0))
        frames = render_frames(marker_rgb, canvas, comp, 4)
        out = AnimationAssembler(OutputConfig(
            output_path=tmp_dir / "spin.gif",
            frame_delay=FrameDelay(default_ms=50),
        )).assemble(frames)
        assert out == tmp_dir / "spin.gif"
        with Image.open(out) as gif:
            assert gif.n_frames == 4
            assert gif.size == (100, 100)
            assert [f.info["duration"] for f in ImageSequence.Iterator(gif)] == [50] * 4

    def test_default_output_config(self):
        cfg = OutputConfig()
        assert cfg.output_path == Path("output.gif")
        assert cfg.comment == "Generated by gifspin"
