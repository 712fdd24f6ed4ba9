# tests for library helpers: search, tab filters, plan stats, duplication
# unit tests for app/services/library.py

import itertools

import pytest

from tests.conftest import SAMPLE_PATIENT, SAMPLE_PATIENT_2, SAMPLE_PLAN, SAMPLE_PLAN_2, THERAPIST_ID
from app.services.library import (
    COPY_SUFFIX,
    duplicate_plan,
    filter_by_tab,
    new_record_id,
    plan_stats_by_patient,
    plan_status,
    search_patients,
    search_plans,
)

DRAFT_PLAN = dict(
    SAMPLE_PLAN,
    plan_id="plan_draft0000001",
    patient_name="Robert Hayes (Copy)",
    status="draft",
    created_at="2025-06-12T09:00:00+00:00",
)
PLANS = [SAMPLE_PLAN, SAMPLE_PLAN_2, DRAFT_PLAN]
TABS = ["all", "active", "completed", "draft"]
QUERIES = [None, "", "robert", "PARK", "dexterity", "brain", "nothing-matches"]


def _ids(plans):
    return [p["plan_id"] for p in plans]


class TestRecordIds:
    def test_prefix_and_length(self):
        record_id = new_record_id("plan", THERAPIST_ID)
        assert record_id.startswith("plan_")
        assert len(record_id) == len("plan_") + 12

    def test_unique(self):
        assert new_record_id("patient", THERAPIST_ID) != new_record_id("patient", THERAPIST_ID)


class TestSearch:
    """case-insensitive substring search"""

    def test_patients_by_name_and_diagnosis(self):
        patients = [SAMPLE_PATIENT, SAMPLE_PATIENT_2]
        assert search_patients(patients, "LENA") == [SAMPLE_PATIENT_2]
        assert search_patients(patients, "parkinson") == [SAMPLE_PATIENT]

    def test_patients_empty_query(self):
        patients = [SAMPLE_PATIENT, SAMPLE_PATIENT_2]
        assert search_patients(patients, None) == patients
        assert search_patients(patients, "") == patients

    def test_plans_match_primary_goal(self):
        assert _ids(search_plans(PLANS, "attention")) == [SAMPLE_PLAN_2["plan_id"]]

    def test_plans_missing_fields(self):
        assert search_plans([{"plan_id": "p1"}], "x") == []

    @pytest.mark.parametrize("query", QUERIES)
    def test_search_idempotent(self, query):
        once = search_plans(PLANS, query)
        assert search_plans(once, query) == once


class TestTabs:
    def test_all(self):
        assert filter_by_tab(PLANS, "all") == PLANS

    def test_draft_tab_reaches_duplicates(self):
        assert _ids(filter_by_tab(PLANS, "draft")) == ["plan_draft0000001"]

    def test_active_excludes_drafts(self):
        assert _ids(filter_by_tab(PLANS, "active")) == [SAMPLE_PLAN["plan_id"]]

    @pytest.mark.parametrize("stored", ["archived", "", None])
    def test_unknown_status_reads_as_draft(self, stored):
        plan = {"plan_id": "plan_odd", "status": stored}
        assert plan_status(plan) == "draft"
        assert filter_by_tab([plan], "draft") == [plan]
        assert filter_by_tab([plan], "active") == []

    @pytest.mark.parametrize("tab,query", list(itertools.product(TABS, QUERIES)))
    def test_tab_and_search_commute(self, tab, query):
        assert search_plans(filter_by_tab(PLANS, tab), query) == filter_by_tab(search_plans(PLANS, query), tab)


class TestPlanStats:
    def test_counts_active_only(self):
        stats = plan_stats_by_patient(PLANS)
        assert stats["Robert Hayes"]["active_plans"] == 1
        assert stats["Lena Park"]["active_plans"] == 0
        # the copy is a draft under a suffixed name
        assert stats["Robert Hayes (Copy)"]["active_plans"] == 0

    def test_last_plan_date_is_newest(self):
        older = dict(SAMPLE_PLAN, plan_id="plan_old", created_at="2024-01-01T00:00:00+00:00")
        stats = plan_stats_by_patient([older, SAMPLE_PLAN])
        assert stats["Robert Hayes"]["last_plan_date"] == SAMPLE_PLAN["created_at"]
        assert stats["Robert Hayes"]["active_plans"] == 2

    def test_no_plans(self):
        assert plan_stats_by_patient([]) == {}


class TestDuplicatePlan:
    def test_duplicate_fields(self):
        copy = duplicate_plan(SAMPLE_PLAN, THERAPIST_ID)
        assert copy["plan_id"] != SAMPLE_PLAN["plan_id"]
        assert copy["status"] == "draft"
        assert copy["patient_name"] == SAMPLE_PLAN["patient_name"] + COPY_SUFFIX
        assert copy["created_at"] != SAMPLE_PLAN["created_at"]
        for key in ("user_id", "patient_age", "diagnosis", "primary_goal", "plan_data"):
            assert copy[key] == SAMPLE_PLAN[key]

    def test_duplicate_does_not_touch_source(self):
        source = dict(SAMPLE_PLAN)
        duplicate_plan(source, THERAPIST_ID)
        assert source == SAMPLE_PLAN

    def test_duplicate_of_duplicate(self):
        twice = duplicate_plan(duplicate_plan(SAMPLE_PLAN, THERAPIST_ID), THERAPIST_ID)
        assert twice["patient_name"] == "Robert Hayes (Copy) (Copy)"
