"""
Unit tests for media_mover.policy.

Pure classification rules; no filesystem access.
"""

from pathlib import Path

import pytest

from media_mover.config import Config
from media_mover.policy import PathPolicy, is_hidden


class TestIsImageCapable:
    """Tests for camera-folder classification."""

    @pytest.mark.parametrize(
        "path",
        ["Camera", "OpenCamera", "Camera/Burst", "100_PRO", "100ANDRO", "100ANDRO/x"],
    )
    def test_camera_folders(self, policy: PathPolicy, path: str):
        assert policy.is_image_capable(Path(path))

    @pytest.mark.parametrize(
        "path", [".", "Screenshots", "Screenshots/Camera", "CameraRoll", "200ANDRO"]
    )
    def test_other_folders(self, policy: PathPolicy, path: str):
        assert not policy.is_image_capable(Path(path))

    def test_depth_selects_segment(self):
        policy = PathPolicy(image_dir_depth=1)

        assert policy.is_image_capable("Pictures/Camera")
        assert not policy.is_image_capable("Camera")
        assert not policy.is_image_capable("Camera/Burst")


class TestIsIgnorableDirectory:
    """Tests for the in-place ignore prefix."""

    def test_only_in_place(self, policy: PathPolicy):
        assert policy.is_ignorable_directory("DSC_2023_01", in_place=True)
        assert not policy.is_ignorable_directory("DSC_2023_01", in_place=False)

    def test_other_names(self, policy: PathPolicy):
        assert not policy.is_ignorable_directory("DSC_1999", in_place=True)
        assert not policy.is_ignorable_directory("Camera", in_place=True)


class TestMatches:
    """Tests for file-name matching."""

    @pytest.mark.parametrize("name", ["VID_1.mp4", "VID_1.MP4", "RAW_1.dng", "a.b.Dng"])
    def test_video_and_raw_always_match(self, policy: PathPolicy, name: str):
        assert policy.matches(name, directory_eligible=True)
        assert policy.matches(name, directory_eligible=False)

    @pytest.mark.parametrize("name", ["IMG_1.jpg", "shot.PNG", "anim.apng", "x.jxl"])
    def test_images_only_outside_camera_folders(self, policy: PathPolicy, name: str):
        assert policy.matches(name, directory_eligible=False)
        assert not policy.matches(name, directory_eligible=True)

    @pytest.mark.parametrize("name", [".VID_1.mp4", ".pending-IMG.jpg", ".dng"])
    def test_hidden_never_matches(self, policy: PathPolicy, name: str):
        assert not policy.matches(name, directory_eligible=False)

    @pytest.mark.parametrize("name", ["notes.txt", "README", "archive.mp4.part", "mp4"])
    def test_other_files(self, policy: PathPolicy, name: str):
        assert not policy.matches(name, directory_eligible=False)


def test_is_hidden():
    assert is_hidden(".nomedia")
    assert not is_hidden("IMG.jpg")


def test_from_config(tmp_path: Path):
    """Policy built from config uses normalised extension lists."""
    cfg_path = tmp_path / "config.json"
    cfg_path.write_text(
        '{"always_extensions": [".MKV"], "image_extensions": ["HEIC"],'
        ' "camera_dir_suffixes": ["Cam"], "camera_dir_names": []}'
    )
    policy = PathPolicy.from_config(Config(cfg_path))

    assert policy.matches("clip.mkv", directory_eligible=True)
    assert not policy.matches("clip.mp4", directory_eligible=True)
    assert policy.matches("p.heic", directory_eligible=False)
    assert policy.is_image_capable("MyCam")
    assert not policy.is_image_capable("100ANDRO")
