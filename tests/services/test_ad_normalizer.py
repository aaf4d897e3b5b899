"""
Tests for ad_normalizer - raw ad-library items to ranked NormalizedAd rows.

Uses Apify facebook-ads-library-scraper shaped payloads with missing keys,
wrong types, empty lists and malformed batch entries.
"""

import copy
from datetime import datetime, timezone

import pytest

from adpulse.services.ad_normalizer import (
    UNKNOWN_ADVERTISER,
    build_library_url,
    extract_hashtags,
    normalize_ad,
    normalize_and_score,
    resolve_advertiser,
    resolve_media,
)
from adpulse.services.models import ActiveStatus, AdType, Platform, Verified


NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def _raw_ad(**overrides):
    """A fully populated raw video ad (score 88)."""
    item = {
        "ad_archive_id": "1111",
        "ad_library_url": "https://www.facebook.com/ads/library/?id=1111",
        "is_active": True,
        "total_active_time": 864000,  # 240 hours
        "collation_count": 6,
        "publisher_platform": ["FACEBOOK", "INSTAGRAM"],
        "page_name": "Top Level Page",
        "advertiser": {
            "ad_library_page_info": {
                "page_info": {
                    "page_name": "Nested Page",
                    "page_verification": "BLUE_VERIFIED",
                }
            }
        },
        "aaa_info": {"eu_total_reach": 15},
        "snapshot": {
            "page_name": "Snapshot Page",
            "body": {"text": "Great deal! #SALE #newyear2024 check it out"},
            "title": "Winter Sale",
            "cta_text": "Learn more",
            "link_url": "https://shop.example.com",
            "page_like_count": 12000,
            "display_format": "VIDEO",
            "cards": [{
                "video_hd_url": "https://video.example.com/hd.mp4",
                "video_sd_url": "https://video.example.com/sd.mp4",
                "video_preview_image_url": "https://img.example.com/preview.jpg",
                "original_image_url": "https://img.example.com/card.jpg",
            }],
            "videos": [],
            "images": [],
        },
    }
    item.update(overrides)
    return item


def _scored(ad_id, active_seconds):
    """Minimal item whose score is driven by active time only."""
    return {"ad_archive_id": ad_id, "total_active_time": active_seconds}


# ============================================================================
# normalize_ad: full record
# ============================================================================

class TestNormalizeAdFullRecord:
    def setup_method(self):
        self.item = _raw_ad()
        self.ad = normalize_ad(self.item, Platform.FACEBOOK, NOW)

    def test_identifiers(self):
        assert self.ad.ad_id == "1111"
        assert self.ad.url == "https://www.facebook.com/ads/library/?id=1111"
        assert self.ad.platform == Platform.FACEBOOK

    def test_video_media(self):
        assert self.ad.type == AdType.VIDEO
        assert self.ad.download_url == "https://video.example.com/hd.mp4"
        assert self.ad.thumbnail == "https://img.example.com/preview.jpg"

    def test_copy_fields(self):
        assert self.ad.ad_copy == "Great deal! #SALE #newyear2024 check it out"
        assert self.ad.title == "Winter Sale"
        assert self.ad.cta_text == "Learn more"
        assert self.ad.landing_url == "https://shop.example.com"
        assert self.ad.hashtags == "#SALE, #newyear2024"
        assert self.ad.ad_format == "VIDEO"

    def test_advertiser_fields(self):
        assert self.ad.advertiser_name == "Snapshot Page"
        assert self.ad.page_likes == 12000
        assert self.ad.verified == Verified.YES

    def test_activity_fields(self):
        assert self.ad.active_status == ActiveStatus.ACTIVE
        assert self.ad.active_hours == 240
        assert self.ad.variants == 6
        assert self.ad.platforms_used == "FACEBOOK, INSTAGRAM"

    def test_score_and_reach(self):
        assert self.ad.performance_score == 88
        assert self.ad.est_reach == "EU: 15k"

    def test_raw_data_and_timestamp(self):
        assert self.ad.raw_data == self.item
        assert self.ad.scraped_at == NOW

    def test_platform_accepts_string(self):
        ad = normalize_ad(self.item, "tiktok", NOW)
        assert ad.platform == Platform.TIKTOK


# ============================================================================
# normalize_ad: defaults
# ============================================================================

class TestNormalizeAdDefaults:
    def test_empty_item_gets_all_defaults(self):
        ad = normalize_ad({}, Platform.FACEBOOK, NOW)

        assert ad.type == AdType.IMAGE
        assert ad.download_url == ""
        assert ad.thumbnail == ""
        assert ad.advertiser_name == UNKNOWN_ADVERTISER
        assert ad.ad_copy == ""
        assert ad.title == ""
        assert ad.cta_text == "Shop now"
        assert ad.landing_url == ""
        assert ad.active_status == ActiveStatus.INACTIVE
        assert ad.active_hours == 0
        assert ad.variants == 1
        assert ad.platforms_used == ""
        assert ad.page_likes == 0
        assert ad.verified == Verified.NO
        assert ad.est_reach == "No data"
        assert ad.ad_format == "UNKNOWN"
        assert ad.hashtags == ""

    def test_empty_item_score_counts_one_platform_and_variant(self):
        # 0 days, 1 variant (6), 1 platform minimum (4)
        ad = normalize_ad({}, Platform.FACEBOOK, NOW)
        assert ad.performance_score == 10

    def test_missing_id_is_generated(self):
        ad = normalize_ad({}, Platform.FACEBOOK, NOW)
        assert ad.ad_id
        assert ad.url == build_library_url(Platform.FACEBOOK, ad.ad_id)

    def test_generated_ids_are_unique(self):
        first = normalize_ad({}, Platform.FACEBOOK, NOW)
        second = normalize_ad({}, Platform.FACEBOOK, NOW)
        assert first.ad_id != second.ad_id

    def test_missing_url_built_from_id(self):
        item = _raw_ad()
        del item["ad_library_url"]
        ad = normalize_ad(item, Platform.FACEBOOK, NOW)
        assert ad.url == "https://www.facebook.com/ads/library/?id=1111"

    def test_tiktok_library_url(self):
        ad = normalize_ad({"ad_archive_id": "77"}, Platform.TIKTOK, NOW)
        assert ad.url == "https://library.tiktok.com/ads/detail/?ad_id=77"

    def test_numeric_id_is_stringified(self):
        ad = normalize_ad({"ad_archive_id": 123456789}, Platform.FACEBOOK, NOW)
        assert ad.ad_id == "123456789"

    def test_blank_cta_uses_default(self):
        item = _raw_ad()
        item["snapshot"]["cta_text"] = "  "
        assert normalize_ad(item, Platform.FACEBOOK, NOW).cta_text == "Shop now"

    def test_zero_variants_becomes_one(self):
        ad = normalize_ad({"collation_count": 0}, Platform.FACEBOOK, NOW)
        assert ad.variants == 1

    def test_negative_values_are_floored(self):
        ad = normalize_ad(
            {"total_active_time": -7200, "snapshot": {"page_like_count": -5}},
            Platform.FACEBOOK,
            NOW,
        )
        assert ad.active_hours == 0
        assert ad.page_likes == 0

    def test_non_blue_verification_is_no(self):
        item = _raw_ad()
        item["advertiser"]["ad_library_page_info"]["page_info"]["page_verification"] = "GREY_VERIFIED"
        assert normalize_ad(item, Platform.FACEBOOK, NOW).verified == Verified.NO

    def test_zero_reach_is_no_data(self):
        ad = normalize_ad(_raw_ad(aaa_info={"eu_total_reach": 0}), Platform.FACEBOOK, NOW)
        assert ad.est_reach == "No data"

    @pytest.mark.parametrize("reach,expected", [
        (15, "EU: 15k"),
        (15.0, "EU: 15k"),
        (12.5, "EU: 12.5k"),
        ("7", "EU: 7k"),
    ])
    def test_reach_formatting(self, reach, expected):
        ad = normalize_ad(_raw_ad(aaa_info={"eu_total_reach": reach}), Platform.FACEBOOK, NOW)
        assert ad.est_reach == expected

    def test_inactive_flag(self):
        ad = normalize_ad(_raw_ad(is_active=False), Platform.FACEBOOK, NOW)
        assert ad.active_status == ActiveStatus.INACTIVE


# ============================================================================
# normalize_ad: wrong types never raise
# ============================================================================

class TestNormalizeAdWrongTypes:
    @pytest.mark.parametrize("item", [
        {"snapshot": "not a dict"},
        {"snapshot": {"cards": {"video_hd_url": "x"}}},
        {"snapshot": {"cards": ["not a dict"], "videos": [None]}},
        {"snapshot": {"body": "plain string body"}},
        {"snapshot": {"body": {"text": 42}}},
        {"advertiser": ["list"]},
        {"publisher_platform": "FACEBOOK"},
        {"total_active_time": "not a number", "collation_count": None},
        {"total_active_time": float("nan")},
        {"aaa_info": {"eu_total_reach": {"nested": True}}},
        {"ad_archive_id": True},
    ])
    def test_does_not_raise(self, item):
        ad = normalize_ad(item, Platform.FACEBOOK, NOW)
        assert 0 <= ad.performance_score <= 100
        assert ad.advertiser_name

    def test_numeric_strings_are_parsed(self):
        ad = normalize_ad(
            {"total_active_time": "90000", "collation_count": "3"},
            Platform.FACEBOOK,
            NOW,
        )
        assert ad.active_hours == 25
        assert ad.variants == 3

    def test_huge_integers_are_ignored(self):
        items = [
            {"ad_archive_id": "a", "total_active_time": 10 ** 400},
            {"ad_archive_id": "b", "snapshot": {"page_like_count": 10 ** 400}},
            {"ad_archive_id": "c", "collation_count": 10 ** 400, "total_active_time": "1e400"},
        ]
        result = normalize_and_score(items, Platform.FACEBOOK, "job-1")

        assert len(result.ads) == 3
        by_id = {ad.ad_id: ad for ad in result.ads}
        assert by_id["a"].active_hours == 0
        assert by_id["b"].page_likes == 0
        assert by_id["c"].variants == 1
        assert by_id["c"].active_hours == 0


# ============================================================================
# Active hours rounding
# ============================================================================

class TestActiveHours:
    @pytest.mark.parametrize("seconds,hours", [
        (90000, 25),
        (3600, 1),
        (5400, 2),   # 1.5 rounds up
        (1800, 1),   # 0.5 rounds up
        (1799, 0),
        (0, 0),
    ])
    def test_rounding(self, seconds, hours):
        ad = normalize_ad({"total_active_time": seconds}, Platform.FACEBOOK, NOW)
        assert ad.active_hours == hours


# ============================================================================
# resolve_media
# ============================================================================

class TestResolveMedia:
    def test_card_hd_preferred(self):
        media = resolve_media(_raw_ad())
        assert media.download_url == "https://video.example.com/hd.mp4"

    def test_card_sd_when_hd_missing(self):
        item = _raw_ad()
        del item["snapshot"]["cards"][0]["video_hd_url"]
        media = resolve_media(item)
        assert media.type == AdType.VIDEO
        assert media.download_url == "https://video.example.com/sd.mp4"

    def test_videos_list_when_card_has_no_video(self):
        item = {"snapshot": {
            "cards": [{"original_image_url": "https://img.example.com/card.jpg"}],
            "videos": [{
                "video_sd_url": "https://video.example.com/list-sd.mp4",
                "video_preview_image_url": "https://img.example.com/list-preview.jpg",
            }],
        }}
        media = resolve_media(item)
        assert media.type == AdType.VIDEO
        assert media.download_url == "https://video.example.com/list-sd.mp4"
        assert media.thumbnail == "https://img.example.com/list-preview.jpg"

    def test_video_without_preview_has_empty_thumbnail(self):
        media = resolve_media({"snapshot": {"videos": [{"video_hd_url": "https://v/hd.mp4"}]}})
        assert media.type == AdType.VIDEO
        assert media.thumbnail == ""

    def test_image_from_images_list(self):
        item = {"snapshot": {
            "images": [{"original_image_url": "https://img.example.com/main.jpg"}],
            "cards": [{"original_image_url": "https://img.example.com/card.jpg"}],
        }}
        media = resolve_media(item)
        assert media.type == AdType.IMAGE
        assert media.download_url == "https://img.example.com/main.jpg"
        assert media.thumbnail == "https://img.example.com/main.jpg"

    def test_image_falls_back_to_card_image(self):
        item = {"snapshot": {"images": [], "cards": [{"original_image_url": "https://img.example.com/card.jpg"}]}}
        media = resolve_media(item)
        assert media.type == AdType.IMAGE
        assert media.download_url == "https://img.example.com/card.jpg"

    def test_no_video_fields_is_image(self):
        item = _raw_ad()
        item["snapshot"]["cards"] = [{"original_image_url": "https://img.example.com/card.jpg"}]
        assert resolve_media(item).type == AdType.IMAGE

    def test_no_media_at_all(self):
        media = resolve_media({"snapshot": {}})
        assert media.type == AdType.IMAGE
        assert media.download_url == ""
        assert media.thumbnail == ""


# ============================================================================
# resolve_advertiser
# ============================================================================

class TestResolveAdvertiser:
    def test_snapshot_page_name_first(self):
        assert resolve_advertiser(_raw_ad()) == "Snapshot Page"

    def test_top_level_page_name_second(self):
        item = _raw_ad()
        item["snapshot"]["page_name"] = ""
        assert resolve_advertiser(item) == "Top Level Page"

    def test_advertiser_page_name_then_name(self):
        item = {"advertiser": {"page_name": "Adv Page", "name": "Adv Name"}}
        assert resolve_advertiser(item) == "Adv Page"
        item = {"advertiser": {"name": "Adv Name"}}
        assert resolve_advertiser(item) == "Adv Name"

    def test_nested_page_info_last(self):
        item = {"advertiser": {"ad_library_page_info": {"page_info": {"page_name": "Nested Page"}}}}
        assert resolve_advertiser(item) == "Nested Page"

    def test_all_absent_is_unknown(self):
        assert resolve_advertiser({}) == "Unknown Advertiser"

    def test_all_blank_is_unknown(self):
        item = {
            "page_name": "",
            "snapshot": {"page_name": "   "},
            "advertiser": {"page_name": None, "name": ""},
        }
        assert resolve_advertiser(item) == "Unknown Advertiser"


# ============================================================================
# extract_hashtags
# ============================================================================

class TestExtractHashtags:
    def test_example_copy(self):
        assert extract_hashtags("Great deal! #SALE #newyear2024 check it out") == "#SALE, #newyear2024"

    def test_no_hashtags(self):
        assert extract_hashtags("No tags here") == ""

    def test_none(self):
        assert extract_hashtags(None) == ""

    def test_lone_hash_is_ignored(self):
        assert extract_hashtags("# not a tag #real_tag!") == "#real_tag"


# ============================================================================
# normalize_and_score: batch behaviour
# ============================================================================

class TestNormalizeAndScore:
    def test_empty_batch(self):
        result = normalize_and_score([], Platform.FACEBOOK, "job-1")
        assert result.ads == []
        assert result.stats.total_ads == 0
        assert result.stats.average_active_hours == 0
        assert result.stats.average_variants == 0
        assert result.stats.top_performer is None

    def test_none_batch_is_empty(self):
        result = normalize_and_score(None, "facebook", "job-1")
        assert result.ads == []

    def test_carries_job_and_platform(self):
        result = normalize_and_score([_raw_ad()], "tiktok", "job-9")
        assert result.job_id == "job-9"
        assert result.platform == Platform.TIKTOK
        assert result.ads[0].platform == Platform.TIKTOK

    def test_sorted_by_score_descending(self):
        items = [_scored("low", 0), _scored("high", 30 * 86400), _scored("mid", 3 * 86400)]
        result = normalize_and_score(items, Platform.FACEBOOK, "job-1", now=NOW)
        assert [ad.ad_id for ad in result.ads] == ["high", "mid", "low"]
        scores = [ad.performance_score for ad in result.ads]
        assert scores == sorted(scores, reverse=True)

    def test_ties_keep_input_order(self):
        items = [_scored("a", 0), _scored("top", 864000), _scored("b", 0), _scored("c", 0)]
        result = normalize_and_score(items, Platform.FACEBOOK, "job-1", now=NOW)
        assert [ad.ad_id for ad in result.ads] == ["top", "a", "b", "c"]

    def test_malformed_entries_are_skipped(self):
        items = [None, "string", 42, ["list"], _raw_ad()]
        result = normalize_and_score(items, Platform.FACEBOOK, "job-1")
        assert len(result.ads) == 1
        assert result.skipped == 4

    def test_shared_timestamp(self):
        result = normalize_and_score([_raw_ad(), {}], Platform.FACEBOOK, "job-1", now=NOW)
        assert all(ad.scraped_at == NOW for ad in result.ads)

    def test_duplicates_kept_by_default(self):
        items = [_raw_ad(), _raw_ad()]
        result = normalize_and_score(items, Platform.FACEBOOK, "job-1")
        assert len(result.ads) == 2

    def test_dedupe_keeps_first(self):
        first = _raw_ad()
        second = _raw_ad()
        second["snapshot"]["title"] = "Second copy"
        result = normalize_and_score([first, second, {}], Platform.FACEBOOK, "job-1", dedupe=True)
        assert len(result.ads) == 2
        assert result.ads[0].title == "Winter Sale"

    def test_input_not_mutated(self):
        items = [_raw_ad()]
        before = copy.deepcopy(items)
        normalize_and_score(items, Platform.FACEBOOK, "job-1")
        assert items == before

    def test_invalid_platform_raises(self):
        with pytest.raises(ValueError):
            normalize_and_score([], "myspace", "job-1")

    def test_stats_reflect_batch(self):
        image_ad = {"ad_archive_id": "img", "is_active": False, "collation_count": 2, "total_active_time": 0}
        result = normalize_and_score([image_ad, _raw_ad()], Platform.FACEBOOK, "job-1")
        stats = result.stats

        assert stats.total_ads == 2
        assert stats.active_ads == 1
        assert stats.video_count == 1
        assert stats.image_count == 1
        assert stats.average_active_hours == 120
        assert stats.average_variants == 4.0
        assert stats.top_performer.ad_id == "1111"
        assert stats.top_performer.score == 88
        assert stats.top_performer.title == "Winter Sale"
