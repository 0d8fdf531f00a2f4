"""Tests for brand detection and the per-sample analysis pipeline."""

import pytest

from brandmonitor.analysis.brand_detector import detect_brands, find_brand_occurrences
from brandmonitor.analysis.pipeline import analyze_sample
from brandmonitor.analysis.types import BrandContext, domain_from_website


class TestFindOccurrences:
    def test_whole_word_only(self):
        assert find_brand_occurrences("acme, ACME and Acmes", "acme") == [0, 6]

    def test_prefix_of_longer_word(self):
        assert find_brand_occurrences("Acmetech is different", "Acme") == []

    def test_empty(self):
        assert find_brand_occurrences("", "Acme") == []
        assert find_brand_occurrences("Acme", "") == []


class TestDetectBrands:
    def test_ranked_by_first_occurrence(self):
        analysis = detect_brands("Top picks: HubSpot, Acme and Pipedrive.", "Acme", ["HubSpot", "Pipedrive"])
        assert analysis.brand_names == ["HubSpot", "Acme", "Pipedrive"]
        assert analysis.our_brand_mentioned is True
        assert analysis.our_brand_position == 2
        assert analysis.relevancy_score == 100
        assert analysis.competitor_mentions == 2
        assert analysis.brand_positions[0] == {"brand": "HubSpot", "position": 1}

    def test_competitors_only(self):
        analysis = detect_brands("HubSpot is the leader.", "Acme", ["HubSpot"])
        assert analysis.our_brand_mentioned is False
        assert analysis.our_brand_position is None
        assert analysis.relevancy_score == 50

    def test_no_brands(self):
        analysis = detect_brands("Nothing relevant.", "Acme", ["HubSpot"])
        assert analysis.total_brands_mentioned == 0
        assert analysis.relevancy_score == 0

    def test_competitor_equal_to_our_brand_ignored(self):
        analysis = detect_brands("Acme rocks", "Acme", ["acme"])
        assert analysis.total_brands_mentioned == 1
        assert analysis.brands_detected[0].is_our_brand is True

    def test_empty_text(self):
        analysis = detect_brands("", "Acme", ["HubSpot"])
        assert analysis.brands_detected == ()


class TestBrandContext:
    def test_domain_from_website(self):
        assert domain_from_website("https://www.Acme.com/pricing?x=1") == "acme.com"
        assert domain_from_website("acme.io") == "acme.io"
        assert domain_from_website(None) == ""

    def test_from_website_cleans_competitors(self):
        brand = BrandContext.from_website(" Acme ", "http://acme.com", None, ["HubSpot", " ", ""])
        assert brand.name == "Acme"
        assert brand.domain == "acme.com"
        assert brand.competitors == ("HubSpot",)


class TestAnalyzeSample:
    def test_signals(self):
        brand = BrandContext(name="Acme", domain="acme.com", competitors=("HubSpot",))
        text = "1. Acme (https://acme.com) is the best option.\n2. HubSpot is fine."
        metrics = analyze_sample(text, brand, native_citations=["https://g2.com/crm"])

        assert metrics.mention_present is True
        assert metrics.position == 1
        assert metrics.citation_domains == {"acme.com", "g2.com"}
        assert metrics.citation_count == 2
        assert metrics.citations[0].is_native is True
        assert metrics.sentiment == pytest.approx(1 / 3)
        assert metrics.prominence == pytest.approx(0.9)
        assert metrics.competitor_mentions == 1
        assert metrics.relevancy_score == 100

    def test_alignment_override(self):
        brand = BrandContext(name="Acme")
        metrics = analyze_sample("Acme is fine", brand, alignment=0.42)
        assert metrics.alignment == 0.42

    def test_not_mentioned(self):
        metrics = analyze_sample("HubSpot only", BrandContext(name="Acme", competitors=("HubSpot",)))
        assert metrics.mention_present is False
        assert metrics.position is None
        assert metrics.citation_count == 0
