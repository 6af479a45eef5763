"""
Test suite for gazette notice extraction and the per-court summary.

Every test feeds decoded gazette text straight into extract(); no files.

Run: pytest tests/ -v
"""

import pytest

from gazette_matcher.extractor import UNKNOWN_COURT, extract, read_header, split_lines
from gazette_matcher.models import GazetteRecord, MatchStatus
from gazette_matcher.summary import summarize_courts


# ─── Test Data ───────────────────────────────────────────────────────

SINGLE_NOTICE = """\
IN THE HIGH COURT OF KENYA AT NAIROBI
SUCCESSION CAUSE NO. 123 OF 2020
IN THE MATTER OF THE ESTATE OF JOHN KAMAU (DECEASED)
"""

GAZETTE_ISSUE = """\
THE KENYA GAZETTE
Published by Authority of the Republic of Kenya
Vol. CXXVI—No. 45            NAIROBI, 12th March, 2021

GAZETTE NOTICE NO. 2291
IN THE HIGH COURT OF KENYA AT NAIROBI
SUCCESSION CAUSE NO. 123 OF 2020
IN THE MATTER OF THE ESTATE OF JOHN KAMAU MWANGI (DECEASED)
TAKE NOTICE that a petition has been filed in this registry.

SUCCESSION CAUSE NO. E456 OF 2021
BY (1) MARY WANJIKU, the widow, of P.O. Box 12, Thika,
for letters of administration to the estate of Grace Atieno Otieno, late of
Kisumu, who died at Kisumu on 3rd January, 2020.

GAZETTE NOTICE NO. 2292
IN THE CHIEF MAGISTRATE’S COURT AT KIBERA
SUCCESSION CAUSE NO. 789 OF 2021
ESTATE OF THE LATE PETER OCHIENG ODHIAMBO, who died on 1st June, 2019
"""


# ═══════════════════════════════════════════════════════════════════════
# BODY PASS
# ═══════════════════════════════════════════════════════════════════════


class TestSingleNotice:
    def test_exactly_one_record(self):
        records = extract(SINGLE_NOTICE)
        assert records == [
            GazetteRecord(
                court_station="Nairobi High Court",
                cause_no="123 OF 2020",
                name_of_deceased="JOHN KAMAU",
                volume_no="",
                date_published="",
            )
        ]

    def test_defaults_to_published(self):
        (record,) = extract(SINGLE_NOTICE)
        assert record.status_at_gp == MatchStatus.PUBLISHED

    def test_deterministic(self):
        assert extract(GAZETTE_ISSUE) == extract(GAZETTE_ISSUE)


class TestGazetteIssue:
    @pytest.fixture
    def records(self):
        return extract(GAZETTE_ISSUE)

    def test_all_notices_found_in_order(self, records):
        assert [r.name_of_deceased for r in records] == [
            "JOHN KAMAU MWANGI",
            "Grace Atieno Otieno",
            "PETER OCHIENG ODHIAMBO",
        ]

    def test_cause_numbers(self, records):
        assert [r.cause_no for r in records] == ["123 OF 2020", "E456 OF 2021", "789 OF 2021"]

    def test_court_carries_over_until_next_heading(self, records):
        assert [r.court_station for r in records] == [
            "Nairobi High Court",
            "Nairobi High Court",
            "Kibera Magistrates Court",
        ]

    def test_header_applies_to_every_record(self, records):
        assert {r.volume_no for r in records} == {"Vol. CXXVI - No. 45"}
        assert {r.date_published for r in records} == {"12 March 2021"}


class TestNameCleaning:
    def _name(self, estate_line: str) -> str:
        text = f"IN THE HIGH COURT OF KENYA AT NYERI\nSUCCESSION CAUSE NO. 7 OF 2022\n{estate_line}"
        (record,) = extract(text)
        return record.name_of_deceased

    def test_strips_the_late(self):
        assert self._name("ESTATE OF THE LATE MARY WANJIRU") == "MARY WANJIRU"

    def test_cuts_at_who_died(self):
        assert self._name("ESTATE OF JAMES MUTUA who died on 2nd May, 2021") == "JAMES MUTUA"

    def test_cuts_at_comma(self):
        assert self._name("ESTATE OF JAMES MUTUA, a retired teacher") == "JAMES MUTUA"

    def test_strips_trailing_place(self):
        assert self._name("ESTATE OF MARY WANJIRU NJOROGE of Nyeri") == "MARY WANJIRU NJOROGE"

    def test_name_block_spans_lines(self):
        text = (
            "IN THE HIGH COURT OF KENYA AT NYERI\n"
            "SUCCESSION CAUSE NO. 7 OF 2022\n"
            "IN THE MATTER OF THE ESTATE OF\n"
            "WANJIKU NJERI KARIUKI (DECEASED)\n"
        )
        (record,) = extract(text)
        assert record.name_of_deceased == "WANJIKU NJERI KARIUKI"


class TestNoticeBoundaries:
    def test_estate_not_borrowed_from_next_cause(self):
        text = "CAUSE NO. 1 OF 2020\nCAUSE NO. 2 OF 2020\nESTATE OF MARY WANJIRU"
        records = extract(text)
        assert [(r.cause_no, r.name_of_deceased) for r in records] == [("2 OF 2020", "MARY WANJIRU")]

    def test_missing_court_heading_is_unknown(self):
        (record,) = extract("SUCCESSION CAUSE NO. 55 OF 2019\nESTATE OF OMONDI OTIENO")
        assert record.court_station == UNKNOWN_COURT

    def test_heading_and_cause_on_one_line(self):
        text = (
            "IN THE HIGH COURT OF KENYA AT MOMBASA SUCCESSION CAUSE NO. 12 OF 2019\n"
            "ESTATE OF HAMISI JUMA (DECEASED)"
        )
        (record,) = extract(text)
        assert record.court_station == "Mombasa High Court"
        assert record.cause_no == "12 OF 2019"
        assert record.name_of_deceased == "HAMISI JUMA"

    def test_estate_beyond_lookahead_not_attached_to_cause(self):
        filler = "\n".join(f"Objection line {n} to be lodged within thirty days" for n in range(6))
        text = (
            "IN THE HIGH COURT OF KENYA AT NYERI\n"
            "SUCCESSION CAUSE NO. 5 OF 2020\n"
            f"{filler}\n"
            "ESTATE OF JANE AKINYI."
        )
        records = extract(text)
        # Picked up by the whole-text fallback, so court and cause stay blank.
        assert records == [GazetteRecord(name_of_deceased="JANE AKINYI")]


# ═══════════════════════════════════════════════════════════════════════
# HEADER
# ═══════════════════════════════════════════════════════════════════════


class TestHeader:
    def test_volume_with_em_dash(self):
        volume, _ = read_header(split_lines("Vol. CXXIV—No. 201"))
        assert volume == "Vol. CXXIV - No. 201"

    def test_date_ordinal_and_comma(self):
        _, date = read_header(split_lines("Vol. CXXIV-No. 201\nNAIROBI, 3rd September, 2022"))
        assert date == "3 September 2022"

    def test_date_searched_outside_volume_window(self):
        lines = ["Vol. CXXIV-No. 201"] + [f"line {n}" for n in range(10)] + ["21st June 2019"]
        assert read_header(lines) == ("Vol. CXXIV - No. 201", "21 June 2019")

    def test_missing_header(self):
        assert read_header(split_lines("nothing to see here")) == ("", "")

    def test_split_lines_normalises_layout(self):
        assert split_lines("A\r\n\r\n  B\t C  \rD’s") == ["A", "B C", "D's"]


# ═══════════════════════════════════════════════════════════════════════
# FALLBACK PASS
# ═══════════════════════════════════════════════════════════════════════


class TestFallback:
    def test_estate_of_anywhere(self):
        records = extract("Notice regarding the estate of Jane Akinyi Okoth, herein the deceased.")
        assert [r.name_of_deceased for r in records] == ["Jane Akinyi Okoth"]
        assert records[0].court_station == ""
        assert records[0].cause_no == ""

    def test_duplicates_by_token_signature(self):
        text = "Notice on the estate of John Kamau. Further notice on the estate of Kamau John."
        assert [r.name_of_deceased for r in extract(text)] == ["John Kamau"]

    def test_capitalised_name_before_deceased(self):
        records = extract("Notice is given regarding JOHN DOE KARANJA deceased of Nakuru")
        assert [r.name_of_deceased for r in records] == ["JOHN DOE KARANJA"]

    def test_title_case_name_before_deceased(self):
        records = extract("Take notice that John Kamau Mwangi deceased of Nakuru left no will")
        assert [r.name_of_deceased for r in records] == ["John Kamau Mwangi"]

    def test_header_still_applied(self):
        text = "Vol. CXX-No. 9\n4th July, 2018\nthe estate of Amina Hassan."
        (record,) = extract(text)
        assert record.volume_no == "Vol. CXX - No. 9"
        assert record.date_published == "4 July 2018"


class TestGarbageInput:
    @pytest.mark.parametrize("text", [None, "", "   \n\t  ", "%%%\n@@@ 12345", "CAUSE"])
    def test_returns_empty_list(self, text):
        assert extract(text) == []


# ═══════════════════════════════════════════════════════════════════════
# COURT SUMMARY
# ═══════════════════════════════════════════════════════════════════════


class TestCourtSummary:
    def test_groups_by_court(self):
        summaries = summarize_courts(extract(GAZETTE_ISSUE))
        assert [(s.court, s.total_cases) for s in summaries] == [
            ("Nairobi High Court", 2),
            ("Kibera Magistrates Court", 1),
        ]
        assert summaries[0].dates == ["12 March 2021"]
        assert summaries[0].date_range == "12 March 2021"
        assert summaries[0].volumes == ["Vol. CXXVI - No. 45"]

    def test_date_range_is_chronological(self):
        records = [
            GazetteRecord(court_station="Eldoret High Court", name_of_deceased="A", date_published="2 April 2021"),
            GazetteRecord(court_station="Eldoret High Court", name_of_deceased="B", date_published="15 January 2021"),
        ]
        (summary,) = summarize_courts(records)
        assert summary.dates == ["15 January 2021", "2 April 2021"]
        assert summary.date_range == "15 January 2021 - 2 April 2021"

    def test_blank_court_and_dates(self):
        (summary,) = summarize_courts([GazetteRecord(name_of_deceased="A")])
        assert summary.court == UNKNOWN_COURT
        assert summary.date_range == "N/A"

    def test_empty(self):
        assert summarize_courts([]) == []
