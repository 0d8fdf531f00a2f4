"""Tests for the text-signal heuristics."""

import pytest

from brandmonitor.analysis.heuristics import (
    alignment_score,
    citation_authority,
    detect_mention,
    extract_citations,
    extract_urls,
    prominence_score,
    sentiment_score,
    url_to_domain,
)


class TestCitations:
    def test_domains_normalised(self):
        text = "See https://www.example.com/a, http://docs.python.org/3/ and www.foo.org."
        assert extract_citations(text) == {"example.com", "docs.python.org", "foo.org"}

    def test_duplicate_domains_collapse(self):
        text = "https://example.com/a and https://example.com/b"
        assert extract_citations(text) == {"example.com"}

    def test_malformed_url_dropped(self):
        assert extract_citations("broken http://[oops here") == set()

    def test_empty_text(self):
        assert extract_citations("") == set()
        assert extract_urls("") == []

    def test_extract_urls_keeps_order(self):
        text = "b https://b.com then a https://a.com then b again https://b.com"
        assert extract_urls(text) == ["https://b.com", "https://a.com"]

    def test_url_to_domain_without_scheme(self):
        assert url_to_domain("WWW.Example.COM/path") == "example.com"


class TestMention:
    def test_brand_case_insensitive(self):
        assert detect_mention("We recommend ACME for this", "Acme") is True

    def test_domain_match(self):
        assert detect_mention("see acme.com for pricing", None, "www.acme.com") is True

    def test_no_match(self):
        assert detect_mention("HubSpot and Pipedrive", "Acme", "acme.com") is False

    def test_nothing_to_look_for(self):
        assert detect_mention("Acme", None, None) is False


class TestSentiment:
    def test_positive(self):
        assert sentiment_score("This is the best and most trusted tool") == pytest.approx(2 / 3)

    def test_negative_clamped(self):
        assert sentiment_score("Avoid it: poor support, bad docs and many issues") == -1.0

    def test_words_count_once(self):
        assert sentiment_score("best best best") == pytest.approx(1 / 3)

    def test_neutral_is_zero(self):
        assert sentiment_score("The weather is mild today") == 0.0

    def test_empty_is_none(self):
        assert sentiment_score("") is None


class TestProminence:
    def test_early_mention(self):
        text = "Acme is a CRM. " + "x" * 200
        assert prominence_score(text, "Acme") == pytest.approx(0.6)

    def test_list_and_link_bonus(self):
        text = "1. Acme https://acme.com " + "x" * 200
        assert prominence_score(text, "Acme") == pytest.approx(0.9)

    def test_middle_mention(self):
        text = "y" * 20 + "Acme" + "z" * 76
        assert prominence_score(text, "Acme") == pytest.approx(0.35)

    def test_late_mention(self):
        text = "x" * 100 + " Acme"
        assert prominence_score(text, "Acme") == pytest.approx(0.15)

    def test_domain_used_without_name(self):
        text = "acme.com " + "x" * 200
        assert prominence_score(text, None, "acme.com") == pytest.approx(0.6)

    @pytest.mark.parametrize("marker", ["", "1. ", "https://acme.com "])
    def test_never_increases_as_mention_moves_later(self, marker):
        words = ("teams often compare pricing support and integrations before choosing " * 6).split()
        scores = []
        for i in range(len(words) + 1):
            text = " ".join(words[:i] + [f"{marker}Acme"] + words[i:])
            scores.append(prominence_score(text, "Acme"))

        assert all(later <= earlier for earlier, later in zip(scores, scores[1:]))
        assert scores[0] > scores[-1]

    def test_not_found(self):
        assert prominence_score("nothing here", "Acme") == 0.0

    def test_empty_is_none(self):
        assert prominence_score("", "Acme") is None


class TestAlignment:
    def test_long_answer_saturates(self):
        assert alignment_score("word " * 200) == pytest.approx(1.0)

    def test_half_length(self):
        assert alignment_score("word " * 100) == pytest.approx(0.5)

    def test_structure_bonus(self):
        assert alignment_score("word " * 100 + "\n\nmore") == pytest.approx(0.6 + 1 / 200)

    def test_empty_is_none(self):
        assert alignment_score("") is None


class TestCitationAuthority:
    def test_gov_short(self):
        assert citation_authority("nih.gov") == pytest.approx(0.7)

    def test_edu(self):
        assert citation_authority("stanford.edu") == pytest.approx(0.7)

    def test_short_commercial(self):
        assert citation_authority("example.com") == pytest.approx(0.4)

    def test_long_commercial(self):
        assert citation_authority("verylongdomainname.com") == pytest.approx(0.3)
