"""Tests for cache keys and the content-addressed speech cache."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from epub2speech.cache import SpeechCache, cache_key
from epub2speech.errors import SynthesisError
from epub2speech.models import VoiceParameters


class TestCacheKey:
    def test_deterministic(self):
        voice = VoiceParameters(speed=1.0, pitch=1.0, sample_rate=22050)
        assert cache_key("Hello.", voice) == cache_key("Hello.", VoiceParameters())

    def test_is_hex_sha256(self):
        key = cache_key("Hello.", VoiceParameters())
        assert len(key) == 64
        int(key, 16)

    @pytest.mark.parametrize("voice", [
        VoiceParameters(speed=1.1),
        VoiceParameters(speed=1.00000001),
        VoiceParameters(pitch=1.0 + 1e-12),
        VoiceParameters(pitch=0.9),
        VoiceParameters(sample_rate=44100),
    ])
    def test_any_voice_field_changes_key(self, voice):
        assert cache_key("Hello.", voice) != cache_key("Hello.", VoiceParameters())

    def test_text_changes_key(self):
        voice = VoiceParameters()
        assert cache_key("Hello.", voice) != cache_key("Hello!", voice)

    def test_engine_changes_key(self):
        voice = VoiceParameters()
        assert cache_key("Hello.", voice, "espeak-ng") != cache_key("Hello.", voice, "festival")


class TestSpeechCache:
    def test_miss_writes_entry_named_by_key(self, tmp_path):
        cache = SpeechCache(tmp_path / "cache")
        path = cache.get_or_create("abc123", lambda: b"RIFF-data")

        assert path == tmp_path / "cache" / "abc123.wav"
        assert path.read_bytes() == b"RIFF-data"

    def test_hit_does_not_invoke_generator(self, tmp_path):
        cache = SpeechCache(tmp_path)
        first = cache.get_or_create("k", lambda: b"first")

        generator = MagicMock(return_value=b"second")
        second = cache.get_or_create("k", generator)

        generator.assert_not_called()
        assert second == first
        assert second.read_bytes() == b"first"

    def test_failed_generator_leaves_no_entry(self, tmp_path):
        cache = SpeechCache(tmp_path)

        def boom():
            raise SynthesisError("engine crashed")

        with pytest.raises(SynthesisError):
            cache.get_or_create("k", boom)

        assert list(tmp_path.iterdir()) == []

    def test_no_temporary_files_left_behind(self, tmp_path):
        cache = SpeechCache(tmp_path)
        cache.get_or_create("k1", lambda: b"a")
        cache.get_or_create("k2", lambda: b"b")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["k1.wav", "k2.wav"]

    def test_disabled_always_generates_ephemeral_file(self, tmp_path):
        cache = SpeechCache(tmp_path / "unused", enabled=False)
        generator = MagicMock(return_value=b"audio")

        first = cache.get_or_create("k", generator)
        second = cache.get_or_create("k", generator)

        try:
            assert generator.call_count == 2
            assert first != second
            assert first.read_bytes() == b"audio"
            assert not (tmp_path / "unused").exists()
        finally:
            Path(first).unlink(missing_ok=True)
            Path(second).unlink(missing_ok=True)
