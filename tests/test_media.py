"""
Tests for media inspection, normalization and tool invocation.

FFprobeInspector and FFmpegNormalizer are run against small shell scripts
standing in for the real binaries, so the subprocess handling is exercised
without ffmpeg installed.
"""
import asyncio
import os
import stat
import time

import pytest

from tubely.errors import NormalizeFailed, ProbeFailed
from tubely.media.inspector import (
    FFprobeInspector,
    MediaProbe,
    classify_aspect_ratio,
    parse_probe_output,
)
from tubely.media.normalizer import PROCESSING_SUFFIX, FFmpegNormalizer
from tubely.media.tools import run_tool


def write_script(path, body: str) -> str:
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture
def input_file(staging_dir):
    path = staging_dir / "input.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42 fake video")
    return str(path)


class TestClassifyAspectRatio:
    """Tests for aspect ratio classification."""

    @pytest.mark.parametrize("ratio,expected", [
        ("16:9", "landscape"),
        ("9:16", "portrait"),
        ("4:3", "other"),
        ("1:1", "other"),
        ("32:18", "other"),
        ("", "other"),
        (None, "other"),
        ("not a ratio", "other"),
    ])
    def test_classification(self, ratio, expected):
        assert classify_aspect_ratio(ratio) == expected


class TestParseProbeOutput:
    """Tests for ffprobe JSON parsing."""

    def test_first_stream_wins(self):
        output = (
            b'{"streams": ['
            b'{"codec_name": "h264", "width": 1080, "height": 1920, "display_aspect_ratio": "9:16"},'
            b'{"codec_name": "aac"}'
            b']}'
        )
        probe = parse_probe_output(output)
        assert probe == MediaProbe(aspect_ratio="9:16", width=1080, height=1920, codec_name="h264")
        assert probe.classification == "portrait"

    def test_missing_ratio_is_other(self):
        probe = parse_probe_output(b'{"streams": [{"codec_name": "aac"}]}')
        assert probe.aspect_ratio is None
        assert probe.classification == "other"

    def test_non_string_ratio_ignored(self):
        probe = parse_probe_output(b'{"streams": [{"display_aspect_ratio": 1.77}]}')
        assert probe.aspect_ratio is None

    def test_no_streams(self):
        with pytest.raises(ProbeFailed):
            parse_probe_output(b'{"streams": []}')

    def test_not_json(self):
        with pytest.raises(ProbeFailed) as exc_info:
            parse_probe_output(b"Invalid data found when processing input")
        assert exc_info.value.stage == "probe"


class TestFFprobeInspector:
    """Tests for the ffprobe-backed inspector."""

    @pytest.mark.asyncio
    async def test_probe_landscape(self, settings, tmp_path, input_file):
        script = write_script(
            tmp_path / "ffprobe",
            'for last; do :; done\n'
            '[ -f "$last" ] || exit 2\n'
            'echo \'{"streams": [{"display_aspect_ratio": "16:9", "width": 1920, "height": 1080}]}\'',
        )
        inspector = FFprobeInspector(settings.model_copy(update={"ffprobe_path": script}))

        probe = await inspector.probe(input_file)

        assert probe.classification == "landscape"
        assert probe.width == 1920

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, settings, tmp_path, input_file):
        script = write_script(tmp_path / "ffprobe", 'echo "moov atom not found" >&2\nexit 1')
        inspector = FFprobeInspector(settings.model_copy(update={"ffprobe_path": script}))

        with pytest.raises(ProbeFailed) as exc_info:
            await inspector.probe(input_file)

        assert exc_info.value.status_code == 422
        assert "moov atom not found" in exc_info.value.detail
        # stderr stays out of the client-facing body
        assert "moov" not in exc_info.value.to_dict()["error"]

    @pytest.mark.asyncio
    async def test_missing_binary(self, settings, tmp_path, input_file):
        inspector = FFprobeInspector(settings.model_copy(update={"ffprobe_path": str(tmp_path / "missing")}))

        with pytest.raises(ProbeFailed):
            await inspector.probe(input_file)


class TestFFmpegNormalizer:
    """Tests for the ffmpeg-backed normalizer."""

    @pytest.mark.asyncio
    async def test_writes_processing_output(self, settings, tmp_path, input_file):
        # $5 is the input path: -y -v error -i <path> ...
        script = write_script(tmp_path / "ffmpeg", 'for last; do :; done\ncp "$5" "$last"')
        normalizer = FFmpegNormalizer(settings.model_copy(update={"ffmpeg_path": script}))

        output = await normalizer.normalize(input_file)

        assert output == input_file + PROCESSING_SUFFIX
        with open(output, "rb") as f, open(input_file, "rb") as g:
            assert f.read() == g.read()

    @pytest.mark.asyncio
    async def test_failure_removes_partial_output(self, settings, tmp_path, input_file):
        script = write_script(
            tmp_path / "ffmpeg",
            'for last; do :; done\necho partial > "$last"\necho "Invalid data" >&2\nexit 1',
        )
        normalizer = FFmpegNormalizer(settings.model_copy(update={"ffmpeg_path": script}))

        with pytest.raises(NormalizeFailed) as exc_info:
            await normalizer.normalize(input_file)

        assert "Invalid data" in exc_info.value.detail
        assert not os.path.exists(input_file + PROCESSING_SUFFIX)
        assert os.path.exists(input_file)

    @pytest.mark.asyncio
    async def test_cancellation_removes_partial_output(self, settings, tmp_path, input_file):
        script = write_script(
            tmp_path / "ffmpeg",
            'for last; do :; done\necho partial > "$last"\nexec sleep 30',
        )
        normalizer = FFmpegNormalizer(settings.model_copy(update={"ffmpeg_path": script}))

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(normalizer.normalize(input_file), timeout=0.5)

        assert not os.path.exists(input_file + PROCESSING_SUFFIX)

    @pytest.mark.asyncio
    async def test_missing_binary(self, settings, tmp_path, input_file):
        normalizer = FFmpegNormalizer(settings.model_copy(update={"ffmpeg_path": str(tmp_path / "missing")}))

        with pytest.raises(NormalizeFailed):
            await normalizer.normalize(input_file)


class TestRunTool:
    """Tests for child process handling."""

    @pytest.mark.asyncio
    async def test_captures_output(self, tmp_path):
        script = write_script(tmp_path / "tool", 'echo out\necho err >&2\nexit 3')

        result = await run_tool([script])

        assert result.returncode == 3
        assert not result.ok
        assert result.stdout == b"out\n"
        assert result.stderr_text() == "err\n"

    @pytest.mark.asyncio
    async def test_cancel_kills_child(self, tmp_path):
        script = write_script(tmp_path / "tool", "exec sleep 30")
        started = time.monotonic()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(run_tool([script]), timeout=0.2)

        assert time.monotonic() - started < 10
