"""
Feature string parsing and display
"""
import pytest

from crm.features import display_features, normalize_features, parse_features


class TestParseFeatures:
    def test_empty_string_gives_empty_list(self):
        assert parse_features("") == []
        assert parse_features(None) == []

    def test_concatenated_known_features_with_unknown_remainder(self):
        assert parse_features("contact-formblogseo") == ["contact-form", "blog", "seo"]

    def test_unknown_string_is_kept_verbatim(self):
        assert parse_features("totally-unknown") == ["totally-unknown"]

    def test_comma_separated_is_split_and_trimmed(self):
        assert parse_features(" blog, gallery ,,booking ") == ["blog", "gallery", "booking"]

    def test_longest_match_wins(self):
        assert parse_features("portfolio-gallery") == ["portfolio-gallery"]

    @pytest.mark.parametrize("raw,expected", [
        ("shopping-cartpayment-processing", ["payment-processing", "shopping-cart"]),
        ("dark-modesync", ["dark-mode", "sync"]),
    ])
    def test_matches_are_ordered_by_length(self, raw, expected):
        assert parse_features(raw) == expected


class TestNormalizeFeatures:
    def test_lists_pass_through(self):
        assert normalize_features(["blog", "", "cms"]) == ["blog", "cms"]

    def test_none_becomes_empty_list(self):
        assert normalize_features(None) == []

    def test_legacy_string_is_parsed(self):
        assert normalize_features("blogcms") == ["blog", "cms"]


class TestDisplayFeatures:
    def test_tiers_are_dropped_and_hyphens_spaced(self):
        assert display_features(["contact-form", "premium", "basic-only", "blog"]) == ["contact form", "blog"]

    def test_legacy_strings_are_displayed(self):
        assert display_features("contact-formenterprise") == ["contact form"]
