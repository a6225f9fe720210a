"""
Tests for storage key derivation.
"""
import re

import pytest

from tubely.storage.keys import derive_key, get_extension, random_token

TOKEN_RE = r"[A-Za-z0-9_-]+"


class TestGetExtension:
    """Tests for content type to extension mapping."""

    def test_known_types(self):
        assert get_extension("video/mp4") == ".mp4"
        assert get_extension("image/png") == ".png"
        assert get_extension("image/jpeg") == ".jpg"

    def test_case_insensitive(self):
        assert get_extension("IMAGE/PNG") == ".png"

    def test_unknown_type_uses_subtype(self):
        assert get_extension("video/webm") == ".webm"

    def test_no_subtype(self):
        assert get_extension("garbage") == ".bin"


class TestRandomToken:
    """Tests for the random key component."""

    def test_default_length(self):
        """32 bytes encode to 43 unpadded base64url characters."""
        token = random_token()
        assert len(token) == 43
        assert re.fullmatch(TOKEN_RE, token)

    def test_sixteen_bytes(self):
        """16 bytes encode to 22 characters."""
        assert len(random_token(16)) == 22

    def test_no_padding(self):
        assert "=" not in random_token(17)

    def test_rejects_low_entropy(self):
        with pytest.raises(ValueError):
            random_token(8)

    def test_tokens_are_unique(self):
        tokens = {random_token(16) for _ in range(1000)}
        assert len(tokens) == 1000


class TestDeriveKey:
    """Tests for full key generation."""

    @pytest.mark.parametrize("classification", ["landscape", "portrait", "other"])
    def test_video_key_shape(self, classification):
        key = derive_key(classification, "video/mp4")
        assert re.fullmatch(rf"{classification}/{TOKEN_RE}\.mp4", key)

    def test_thumbnail_key_shape(self):
        key = derive_key("thumbnails", "image/png", 16)
        assert re.fullmatch(rf"thumbnails/{TOKEN_RE}\.png", key)
        assert len(key.split("/")[1]) == len("x" * 22 + ".png")

    def test_no_classification(self):
        key = derive_key(None, "image/jpeg")
        assert "/" not in key
        assert key.endswith(".jpg")

    def test_keys_differ_for_identical_input(self):
        assert derive_key("landscape", "video/mp4") != derive_key("landscape", "video/mp4")
