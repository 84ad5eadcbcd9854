"""Tests for public id resolution from asset URLs."""

import pytest

from services.blob_codec import (
    MediaKind,
    build_asset_url,
    destroy_request,
    resolve_public_id,
    resource_type_for,
)


class TestResolvePublicId:
    def test_version_segment_is_stripped(self):
        assert resolve_public_id("https://host/x/image/upload/v123/pashto_dict/a.jpg") == "pashto_dict/a"

    def test_transform_and_version_segments_are_stripped(self):
        url = "https://host/x/image/upload/q_auto,f_auto/v123/pashto_dict/b.mp3"
        assert resolve_public_id(url) == "pashto_dict/b"

    def test_url_without_version(self):
        url = "https://res.cloudinary.com/demo/video/upload/pashto_dict/clip.webm"
        assert resolve_public_id(url) == "pashto_dict/clip"

    def test_nested_folders_are_kept(self):
        url = "https://res.cloudinary.com/demo/image/upload/v1/pashto_dict/cats/animals/dog.png"
        assert resolve_public_id(url) == "pashto_dict/cats/animals/dog"

    def test_version_like_segment_after_path_start_is_kept(self):
        url = "https://host/image/upload/pashto_dict/v2/a.jpg"
        assert resolve_public_id(url) == "pashto_dict/v2/a"

    def test_only_last_extension_is_removed(self):
        url = "https://host/image/upload/v9/pashto_dict/archive.tar.gz"
        assert resolve_public_id(url) == "pashto_dict/archive.tar"

    @pytest.mark.parametrize(
        "value",
        [
            None,
            "",
            "not a url",
            "https://host/x/image/v123/pashto_dict/a.jpg",
            "https://host/x/image/upload/",
            "https://host/x/image/upload/v123/",
            "https://host/x/image/upload/q_auto,f_auto/v123",
            12345,
        ],
    )
    def test_malformed_input_returns_none(self, value):
        assert resolve_public_id(value) is None

    def test_public_id_survives_rebuilding_the_url(self):
        public_id = resolve_public_id("https://host/x/image/upload/v123/pashto_dict/a.jpg")
        rebuilt = build_asset_url("demo", "image", public_id, "png", version=456, transform="w_100,h_100")

        assert resolve_public_id(rebuilt) == public_id


class TestDestroyRequest:
    def test_audio_is_deleted_as_video_resource(self):
        url = "https://res.cloudinary.com/demo/video/upload/v1/pashto_dict/a.mp3"
        assert destroy_request(url, MediaKind.AUDIO) == ("pashto_dict/a", "video")

    def test_image_resource_type(self):
        assert resource_type_for("image") == "image"
        assert resource_type_for(MediaKind.AUDIO) == "video"

    def test_unresolvable_url_gives_nothing_to_delete(self):
        assert destroy_request("https://example.com/a.jpg", "image") is None
