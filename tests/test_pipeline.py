"""
End-to-end tests for GazetteReconciler: text + rows in, report and store out.

Run: pytest tests/ -v
"""

import hashlib
from unittest.mock import patch

import pytest

from gazette_matcher.exceptions import InputValidationError, UnknownModeError
from gazette_matcher.models import MatchMode, MatchStatus, MatchThresholds
from gazette_matcher.pipeline import GazetteReconciler
from gazette_matcher.store import MatchStore


# ─── Test Data ───────────────────────────────────────────────────────

GAZETTE = """\
Vol. CXXVI—No. 45            NAIROBI, 12th March, 2021
IN THE HIGH COURT OF KENYA AT NAIROBI
SUCCESSION CAUSE NO. 123 OF 2020
IN THE MATTER OF THE ESTATE OF JOHN KAMAU MWANGI (DECEASED)

SUCCESSION CAUSE NO. E456 OF 2021
IN THE MATTER OF THE ESTATE OF GRACE ATIENO OTIENO (DECEASED)

IN THE CHIEF MAGISTRATE’S COURT AT KIBERA
SUCCESSION CAUSE NO. 789 OF 2021
ESTATE OF THE LATE PETER OCHIENG ODHIAMBO, who died on 1st June, 2019
"""

REGISTRY = [
    {"No.": 1, "Name of the Deceased": "Kamau Mwangi John"},
    {"No.": 2, "Deceased's Name": "Grace Atieno Otieno"},
    {"No.": 3, "Name of the Deceased": "Peter Ochieng Odhiambo"},
    {"No.": 4, "Remarks": "no name column"},
]

SHORT_GAZETTE = """\
IN THE HIGH COURT OF KENYA AT NAIROBI
SUCCESSION CAUSE NO. 123 OF 2020
IN THE MATTER OF THE ESTATE OF JOHN KAMAU (DECEASED)
"""


@pytest.fixture
def reconciler(tmp_path):
    return GazetteReconciler(MatchStore(tmp_path / "pipeline.db"))


# ═══════════════════════════════════════════════════════════════════════
# FULL RUNS
# ═══════════════════════════════════════════════════════════════════════


class TestRun:
    def test_tokens_mode_accepts_reordered_names(self, reconciler):
        report = reconciler.run(GAZETTE, REGISTRY, mode="tokens")
        assert report.mode == MatchMode.TOKENS
        assert len(report.accepted) == 3
        assert report.review == []
        assert report.gazette_total == 3
        assert report.registry_total == 4
        assert report.registry_unresolved == 1

    def test_exact_mode_misses_reordered_name(self, reconciler):
        report = reconciler.run(GAZETTE, REGISTRY, mode="exact")
        assert sorted(c.gazette.name_of_deceased for c in report.accepted) == [
            "GRACE ATIENO OTIENO",
            "PETER OCHIENG ODHIAMBO",
        ]

    def test_accepted_matches_are_stored_approved(self, reconciler):
        report = reconciler.run(GAZETTE, REGISTRY, mode="tokens")
        assert report.persisted is True
        assert report.inserted_count == 3
        assert report.failed_batches == []

        stored = {m.name_norm: m for m in reconciler.list_matches()}
        assert set(stored) == {"john kamau mwangi", "grace atieno otieno", "peter ochieng odhiambo"}
        assert all(m.status_at_gp == MatchStatus.APPROVED for m in stored.values())
        assert stored["john kamau mwangi"].excel_name == "Kamau Mwangi John"
        assert stored["john kamau mwangi"].match_type == "tokens"
        assert stored["peter ochieng odhiambo"].court_station == "Kibera Magistrates Court"

    def test_rerun_updates_instead_of_inserting(self, reconciler):
        reconciler.run(GAZETTE, REGISTRY, mode="tokens")
        report = reconciler.run(GAZETTE, REGISTRY, mode="tokens")
        assert (report.inserted_count, report.updated_count) == (0, 3)
        assert len(reconciler.list_matches()) == 3

    def test_dry_run_stores_nothing(self, reconciler):
        report = reconciler.run(GAZETTE, REGISTRY, mode="tokens", persist=False)
        assert len(report.accepted) == 3
        assert report.persisted is False
        assert reconciler.store.count() == 0

    def test_review_tier_never_stored(self, reconciler):
        report = reconciler.run(SHORT_GAZETTE, [{"Name": "Jon Kamau"}], mode="fuzzy")
        assert report.accepted == []
        assert len(report.review) == 1
        assert report.review[0].score == pytest.approx(0.7813, abs=1e-4)
        assert reconciler.store.count() == 0

    def test_threshold_override(self, reconciler):
        report = reconciler.run(
            SHORT_GAZETTE,
            [{"Name": "Jon Kamau"}],
            mode="fuzzy",
            thresholds=MatchThresholds(accept=0.75, review=0.5),
        )
        assert len(report.accepted) == 1
        (stored,) = reconciler.list_matches()
        assert stored.match_type == "fuzzy"
        assert stored.score == pytest.approx(0.7813, abs=1e-4)

    def test_document_hash(self, reconciler):
        report = reconciler.run(SHORT_GAZETTE, [], mode="exact")
        assert report.document_hash == hashlib.sha256(SHORT_GAZETTE.encode("utf-8")).hexdigest()

    def test_empty_inputs_are_not_errors(self, reconciler):
        report = reconciler.run("", [], mode="exact")
        assert report.gazette_total == 0
        assert report.accepted == []

    def test_clear_matches(self, reconciler):
        reconciler.run(GAZETTE, REGISTRY, mode="tokens")
        assert reconciler.clear_matches() == 3
        assert reconciler.list_matches() == []


# ═══════════════════════════════════════════════════════════════════════
# PRECONDITIONS
# ═══════════════════════════════════════════════════════════════════════


class TestPreconditions:
    def test_unknown_mode_fails_before_extraction(self, reconciler):
        with patch("gazette_matcher.pipeline.extract") as mock_extract:
            with pytest.raises(UnknownModeError):
                reconciler.run(GAZETTE, REGISTRY, mode="phonetic")
            mock_extract.assert_not_called()

    def test_invalid_thresholds_fail_before_extraction(self, reconciler):
        with patch("gazette_matcher.pipeline.extract") as mock_extract:
            with pytest.raises(InputValidationError):
                reconciler.run(
                    GAZETTE, REGISTRY, thresholds=MatchThresholds(accept=0.4, review=0.6)
                )
            mock_extract.assert_not_called()

    def test_missing_text(self, reconciler):
        with pytest.raises(InputValidationError):
            reconciler.run(None, REGISTRY)

    def test_missing_rows(self, reconciler):
        with pytest.raises(InputValidationError):
            reconciler.run(GAZETTE, None)


# ═══════════════════════════════════════════════════════════════════════
# COURT SUMMARY ACROSS GAZETTES
# ═══════════════════════════════════════════════════════════════════════


class TestSummarize:
    def test_aggregates_several_gazettes(self, reconciler):
        later = SHORT_GAZETTE.replace("123 OF 2020", "321 OF 2021")
        later = "Vol. CXXVI—No. 60\n2nd April, 2021\n" + later
        summaries = reconciler.summarize([GAZETTE, later])

        nairobi = next(s for s in summaries if s.court == "Nairobi High Court")
        assert nairobi.total_cases == 3
        assert nairobi.date_range == "12 March 2021 - 2 April 2021"
        assert nairobi.volumes == ["Vol. CXXVI - No. 45", "Vol. CXXVI - No. 60"]
        assert summaries[0] == nairobi
