"""Tests for encoder selection, quality mapping and invocation."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from epub2speech.audio.encoders import (
    CopyEncoder,
    FfmpegEncoder,
    FlacEncoder,
    LameEncoder,
    OggencEncoder,
    flac_level,
    lame_vbr,
    probe_encoders,
    select_encoder,
    vorbis_quality,
)
from epub2speech.errors import EncoderNotFoundError, EncodingError
from epub2speech.models import AudioFormat


def _only(*names):
    return lambda exe: f"/usr/bin/{exe}" if exe in names else None


class TestQualityMapping:
    def test_vorbis(self):
        assert vorbis_quality(0.0) == 0
        assert vorbis_quality(0.7) == 7
        assert vorbis_quality(1.0) == 10

    def test_flac(self):
        assert flac_level(0.0) == 0
        assert flac_level(0.5) == 4
        assert flac_level(1.0) == 8

    def test_lame_is_inverted(self):
        assert lame_vbr(0.0) == 9
        assert lame_vbr(1.0) == 0
        assert lame_vbr(0.5) == 4


class TestSelection:
    def test_preferred_encoder_for_each_format(self):
        with patch(
            "epub2speech.audio.encoders.find_executable",
            side_effect=_only("oggenc", "flac", "lame"),
        ):
            assert isinstance(select_encoder(AudioFormat.VORBIS), OggencEncoder)
            assert isinstance(select_encoder(AudioFormat.FLAC), FlacEncoder)
            assert isinstance(select_encoder(AudioFormat.MP3), LameEncoder)

    def test_falls_back_to_ffmpeg(self):
        with (
            patch("epub2speech.audio.encoders.find_executable", return_value=None),
            patch("epub2speech.audio.encoders.get_ffmpeg", return_value="/opt/ffmpeg"),
        ):
            encoder = select_encoder(AudioFormat.MP3)
        assert isinstance(encoder, FfmpegEncoder)

    def test_wav_needs_no_encoder(self):
        with (
            patch("epub2speech.audio.encoders.find_executable", return_value=None),
            patch("epub2speech.audio.encoders.get_ffmpeg", return_value=None),
        ):
            assert isinstance(select_encoder(AudioFormat.WAV), CopyEncoder)

    def test_no_encoder_raises(self):
        with (
            patch("epub2speech.audio.encoders.find_executable", return_value=None),
            patch("epub2speech.audio.encoders.get_ffmpeg", return_value=None),
        ):
            with pytest.raises(EncoderNotFoundError, match="No flac encoder found") as exc_info:
                select_encoder(AudioFormat.FLAC)
        assert exc_info.value.candidates == ["flac", "ffmpeg"]

    def test_probe_lists_candidates_in_order(self):
        with (
            patch("epub2speech.audio.encoders.find_executable", side_effect=_only("lame")),
            patch("epub2speech.audio.encoders.get_ffmpeg", return_value=None),
        ):
            assert probe_encoders(AudioFormat.MP3) == {"lame": True, "ffmpeg": False}


class TestCommands:
    def test_oggenc_command(self):
        cmd = OggencEncoder().build_command(Path("in.wav"), Path("out.ogg"), AudioFormat.VORBIS, 0.7)
        assert cmd[cmd.index("-q") + 1] == "7"
        assert cmd[cmd.index("-o") + 1] == "out.ogg"
        assert cmd[-1] == "in.wav"

    def test_lame_command(self):
        cmd = LameEncoder().build_command(Path("in.wav"), Path("out.mp3"), AudioFormat.MP3, 1.0)
        assert cmd[cmd.index("-V") + 1] == "0"
        assert cmd[-2:] == ["in.wav", "out.mp3"]

    def test_flac_command(self):
        cmd = FlacEncoder().build_command(Path("in.wav"), Path("out.flac"), AudioFormat.FLAC, 1.0)
        assert "--compression-level-8" in cmd

    @pytest.mark.parametrize("fmt, codec", [
        (AudioFormat.VORBIS, "libvorbis"),
        (AudioFormat.FLAC, "flac"),
        (AudioFormat.MP3, "libmp3lame"),
    ])
    def test_ffmpeg_codec_per_format(self, fmt, codec):
        cmd = FfmpegEncoder().build_command(Path("in.wav"), Path(f"out.{fmt.extension}"), fmt, 0.5)
        assert cmd[cmd.index("-c:a") + 1] == codec
        assert cmd[-1] == f"out.{fmt.extension}"


class TestEncode:
    def test_copy_encoder_copies_bytes(self, tmp_path):
        src = tmp_path / "in.wav"
        src.write_bytes(b"RIFFdata")
        dst = tmp_path / "out.wav"

        CopyEncoder().encode(src, dst, AudioFormat.WAV, 0.5)

        assert dst.read_bytes() == b"RIFFdata"

    def test_encode_uses_resolved_path(self, tmp_path):
        encoder = OggencEncoder()
        with patch("epub2speech.audio.encoders.find_executable", return_value="/usr/local/bin/oggenc"):
            assert encoder.is_available()

        with patch("epub2speech.audio.encoders.subprocess.run",
                   return_value=MagicMock(returncode=0)) as run:
            encoder.encode(tmp_path / "a.wav", tmp_path / "a.ogg", AudioFormat.VORBIS, 0.7)

        assert run.call_args.args[0][0] == "/usr/local/bin/oggenc"

    def test_nonzero_exit_raises_encoding_error(self, tmp_path):
        encoder = LameEncoder()
        failed = MagicMock(returncode=2, stderr=b"bad input")

        with (
            patch("epub2speech.audio.encoders.find_executable", return_value="/usr/bin/lame"),
            patch("epub2speech.audio.encoders.subprocess.run", return_value=failed),
        ):
            with pytest.raises(EncodingError, match="bad input"):
                encoder.encode(tmp_path / "a.wav", tmp_path / "a.mp3", AudioFormat.MP3, 0.5)
