"""Tests for ImagegateConfig: defaults, validation, from_env and repr."""

from __future__ import annotations

import math

import pytest

from imagegate.config import DEFAULT_ALLOWED_FORMATS, ImagegateConfig


class TestDefaults:
    def test_policy_defaults(self):
        config = ImagegateConfig()
        assert config.max_images == 10
        assert config.max_image_size_mb == 5.0
        assert config.allowed_formats == ["jpeg", "jpg", "png", "webp"]
        assert config.max_dimension == 1600
        assert config.transcode_format == "webp"
        assert config.transcode_quality == 80

    def test_behaviour_defaults(self):
        config = ImagegateConfig()
        assert config.cleanup_on_failure is False
        assert config.delete_superseded is False
        assert config.max_concurrent_uploads == 1

    def test_storage_folder(self):
        assert ImagegateConfig().storage_folder == "marketplace/products"
        assert ImagegateConfig(app_name="shop").storage_folder == "shop/products"
        assert ImagegateConfig(folder="x/y").storage_folder == "x/y"

    def test_max_image_size_bytes(self):
        assert ImagegateConfig(max_image_size_mb=1.0).max_image_size_bytes == 1024 * 1024

    def test_allowed_formats_not_shared(self):
        config = ImagegateConfig()
        config.allowed_formats.append("gif")
        assert "gif" not in DEFAULT_ALLOWED_FORMATS

    def test_formats_lowercased(self):
        config = ImagegateConfig(allowed_formats=["PNG", "Jpeg"], transcode_format="JPEG")
        assert config.allowed_formats == ["png", "jpeg"]
        assert config.transcode_format == "jpeg"


class TestValidation:
    @pytest.mark.parametrize("kwargs, match", [
        ({"max_images": 0}, "max_images"),
        ({"max_image_size_mb": 0}, "max_image_size_mb"),
        ({"max_image_size_mb": -1.0}, "max_image_size_mb"),
        ({"allowed_formats": []}, "allowed_formats"),
        ({"max_dimension": 0}, "max_dimension"),
        ({"transcode_format": "gif"}, "transcode_format"),
        ({"transcode_quality": 101}, "transcode_quality"),
        ({"transcode_quality": -1}, "transcode_quality"),
        ({"max_concurrent_uploads": 0}, "max_concurrent_uploads"),
        ({"timeout_seconds": 0}, "timeout_seconds"),
        ({"timeout_seconds": math.inf}, "timeout_seconds"),
        ({"timeout_seconds": math.nan}, "timeout_seconds"),
    ])
    def test_out_of_range(self, kwargs, match):
        with pytest.raises(ValueError, match=match):
            ImagegateConfig(**kwargs)


class TestFromEnv:
    def test_empty_environment_uses_defaults(self):
        config = ImagegateConfig.from_env(environ={})
        assert config.max_images == 10
        assert config.cloud_name == ""

    def test_reads_variables(self):
        config = ImagegateConfig.from_env(environ={
            "MAX_IMAGES_PER_PRODUCT": "4",
            "MAX_IMAGE_SIZE_MB": "2.5",
            "IMAGE_MAX_DIMENSION": "800",
            "IMAGE_TRANSCODE_FORMAT": "JPEG",
            "IMAGE_TRANSCODE_QUALITY": "70",
            "APP_NAME": "shop",
            "CLOUDINARY_CLOUD_NAME": "demo",
            "CLOUDINARY_API_KEY": "123",
            "CLOUDINARY_API_SECRET": "s3cr3t",
            "IMAGE_UPLOAD_TIMEOUT_SECONDS": "12",
        })
        assert config.max_images == 4
        assert config.max_image_size_mb == 2.5
        assert config.max_dimension == 800
        assert config.transcode_format == "jpeg"
        assert config.transcode_quality == 70
        assert config.storage_folder == "shop/products"
        assert (config.cloud_name, config.api_key, config.api_secret) == ("demo", "123", "s3cr3t")
        assert config.timeout_seconds == 12.0

    def test_blank_values_are_ignored(self):
        config = ImagegateConfig.from_env(environ={"MAX_IMAGES_PER_PRODUCT": "  "})
        assert config.max_images == 10

    def test_unparseable_value(self):
        with pytest.raises(ValueError, match="MAX_IMAGES_PER_PRODUCT"):
            ImagegateConfig.from_env(environ={"MAX_IMAGES_PER_PRODUCT": "ten"})

    def test_out_of_range_value(self):
        with pytest.raises(ValueError, match="max_images"):
            ImagegateConfig.from_env(environ={"MAX_IMAGES_PER_PRODUCT": "0"})

    def test_overrides_win(self):
        config = ImagegateConfig.from_env(
            environ={"MAX_IMAGES_PER_PRODUCT": "4"}, max_images=6,
        )
        assert config.max_images == 6

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "CLOUDINARY_CLOUD_NAME=from-file\n"
            "IMAGE_UPLOAD_FOLDER=listings/images\n"
            "MAX_IMAGE_SIZE_MB=3\n"
        )
        config = ImagegateConfig.from_env(
            environ={"MAX_IMAGE_SIZE_MB": "4"}, env_file=env_file,
        )
        assert config.cloud_name == "from-file"
        assert config.storage_folder == "listings/images"
        # The process environment takes precedence over the file.
        assert config.max_image_size_mb == 4.0

    def test_missing_env_file_is_ignored(self, tmp_path):
        config = ImagegateConfig.from_env(environ={}, env_file=tmp_path / "missing.env")
        assert config.max_images == 10

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "env-cloud")
        assert ImagegateConfig.from_env().cloud_name == "env-cloud"


class TestRepr:
    def test_secret_masked(self):
        text = repr(ImagegateConfig(api_secret="supersecretvalue1234"))
        assert "supersecretvalue1234" not in text
        assert "api_secret='...1234'" in text

    def test_short_secret_fully_masked(self):
        text = repr(ImagegateConfig(api_secret="abc"))
        assert "api_secret='****'" in text

    def test_other_fields_visible(self):
        text = repr(ImagegateConfig(cloud_name="demo"))
        assert text.startswith("ImagegateConfig(")
        assert "cloud_name='demo'" in text
