"""Test the YAML-backed settings store."""

import pytest
import yaml

from focusguard.services.settings_store import CUSTOM_AUDIO_KEY, SettingsStore

CLIP = "data:audio/webm;base64,GkXfo0AgQoaBAUL3gQFC8oEEQvOBCEKChHdlYm0="


class TestSettingsStore:
    """Durable key/value behavior."""

    def test_missing_file_is_empty(self, tmp_path):
        store = SettingsStore(str(tmp_path / "settings.yaml"))

        assert store.load() == {}
        assert store.get("anything", "default") == "default"

    def test_set_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "nested" / "settings.yaml")
        SettingsStore(path).set("volume", 3)

        assert SettingsStore(path).get("volume") == 3

    def test_delete(self, tmp_path):
        path = str(tmp_path / "settings.yaml")
        store = SettingsStore(path)
        store.set("a", 1)

        assert store.delete("a") is True
        assert store.delete("a") is False
        assert SettingsStore(path).get("a") is None

    def test_no_temporary_file_left_behind(self, tmp_path):
        store = SettingsStore(str(tmp_path / "settings.yaml"))
        store.set("a", 1)

        assert sorted(p.name for p in tmp_path.iterdir()) == ["settings.yaml"]

    def test_non_mapping_file_rejected(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("just a string\n", encoding="utf-8")

        with pytest.raises(ValueError):
            SettingsStore(str(path)).load()


class TestCustomAudioClip:
    """The custom reminder clip key."""

    def test_save_and_read(self, tmp_path):
        path = tmp_path / "settings.yaml"
        store = SettingsStore(str(path))

        store.save_custom_audio(CLIP)

        assert SettingsStore(str(path)).get_custom_audio() == CLIP
        assert yaml.safe_load(path.read_text(encoding="utf-8")) == {CUSTOM_AUDIO_KEY: CLIP}

    @pytest.mark.parametrize("empty", ["", None])
    def test_empty_clip_deletes(self, tmp_path, empty):
        store = SettingsStore(str(tmp_path / "settings.yaml"))
        store.save_custom_audio(CLIP)

        store.save_custom_audio(empty)

        assert store.get_custom_audio() is None
        assert CUSTOM_AUDIO_KEY not in store.load()

    def test_non_string_value_ignored(self, tmp_path):
        store = SettingsStore(str(tmp_path / "settings.yaml"))
        store.set(CUSTOM_AUDIO_KEY, 12)

        assert store.get_custom_audio() is None
