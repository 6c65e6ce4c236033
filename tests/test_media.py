"""Tests for local media storage."""

import pytest

from relaybot.bus.events import AudioAttachment
from relaybot.utils.media import MediaStore


class TestMediaStore:
    """Test saving audio attachments."""

    @pytest.mark.asyncio
    async def test_save_audio(self, tmp_path):
        store = MediaStore(tmp_path / "media")

        path = await store.save_audio(AudioAttachment(name="voice.mp3", data=b"ID3"))

        assert path.parent == tmp_path / "media"
        assert path.name.startswith("voice-")
        assert path.suffix == ".mp3"
        assert path.read_bytes() == b"ID3"

    @pytest.mark.asyncio
    async def test_same_name_never_overwritten(self, tmp_path):
        store = MediaStore(tmp_path)

        first = await store.save_audio(AudioAttachment(name="voice.mp3", data=b"alice"))
        second = await store.save_audio(AudioAttachment(name="voice.mp3", data=b"bob"))

        assert first != second
        assert first.read_bytes() == b"alice"
        assert second.read_bytes() == b"bob"

    @pytest.mark.asyncio
    async def test_unsafe_name(self, tmp_path):
        store = MediaStore(tmp_path)
        path = await store.save_audio(AudioAttachment(name="../x:y.mp3", data=b"1"))
        assert path.parent == tmp_path

    def test_empty_name_generated(self, tmp_path):
        path = MediaStore(tmp_path).path_for("")
        assert path.name.startswith("audio-")
        assert path.suffix == ""
