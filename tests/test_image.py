"""Unit tests for ecr_cleaner/utils/image.py"""

from conftest import ecr_uri

from ecr_cleaner.utils.image import (
    ImageRef,
    build_deletion_plan,
    count_images,
    parse_image_uri,
    parse_image_uris,
)


class TestParseImageUri:
    """Tests for parse_image_uri"""

    def test_parses_ecr_uri(self):
        ref = parse_image_uri("123456789012.dkr.ecr.eu-west-1.amazonaws.com/team/app:v1.2")

        assert ref == ImageRef("123456789012", "eu-west-1", "team/app", "v1.2")

    def test_str_round_trips_to_uri(self):
        uri = ecr_uri("service", "abc123")
        assert str(parse_image_uri(uri)) == uri

    def test_non_ecr_uris_are_ignored(self):
        """Docker Hub, public ECR, digests and untagged references are not ours"""
        for uri in [
            "nginx:latest",
            "public.ecr.aws/docker/library/redis:7",
            "docker.io/library/busybox:1.36",
            "123456789012.dkr.ecr.us-east-1.amazonaws.com/app",
            "123456789012.dkr.ecr.us-east-1.amazonaws.com/app@sha256:" + "a" * 64,
            "12345.dkr.ecr.us-east-1.amazonaws.com/app:v1",
            "",
            None,
        ]:
            assert parse_image_uri(uri) is None, uri

    def test_digest_reference_is_not_a_repository(self):
        uri = "123456789012.dkr.ecr.us-east-1.amazonaws.com/team/app@sha256:" + "b" * 64

        assert parse_image_uri(uri) is None

    def test_tag_pinned_by_digest_is_not_parsed(self):
        uri = ecr_uri("app", "v1") + "@sha256:" + "c" * 64

        assert parse_image_uri(uri) is None

    def test_parse_many_drops_foreign_and_duplicates(self):
        refs = parse_image_uris([ecr_uri("a", "1"), "nginx:1", ecr_uri("a", "1"), ecr_uri("b", "2")])

        assert refs == {parse_image_uri(ecr_uri("a", "1")), parse_image_uri(ecr_uri("b", "2"))}


class TestImageRefIdentity:
    """ImageRef equality is exact on all four fields"""

    def test_different_registry_is_different_image(self):
        assert ImageRef("111111111111", "us-east-1", "app", "v1") != ImageRef("222222222222", "us-east-1", "app", "v1")

    def test_different_region_is_different_image(self):
        assert ImageRef("111111111111", "us-east-1", "app", "v1") != ImageRef("111111111111", "us-west-2", "app", "v1")

    def test_tags_are_case_sensitive(self):
        assert ImageRef("111111111111", "us-east-1", "app", "V1") != ImageRef("111111111111", "us-east-1", "app", "v1")

    def test_hashable(self):
        ref = ImageRef("111111111111", "us-east-1", "app", "v1")
        assert len({ref, ImageRef("111111111111", "us-east-1", "app", "v1")}) == 1


class TestDeletionPlan:
    """Tests for build_deletion_plan and count_images"""

    def test_groups_tags_by_repository(self):
        targets = [
            ImageRef("123456789012", "us-east-1", "web", "v2"),
            ImageRef("123456789012", "us-east-1", "api", "v1"),
            ImageRef("123456789012", "us-east-1", "web", "v1"),
        ]

        plan = build_deletion_plan(targets)

        assert plan == {"api": ["v1"], "web": ["v1", "v2"]}
        assert list(plan) == ["api", "web"]
        assert count_images(plan) == 3

    def test_empty(self):
        assert build_deletion_plan([]) == {}
        assert count_images({}) == 0
