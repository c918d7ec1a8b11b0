# tests/query/test_criteria.py

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from taskboard.base.exceptions import InvalidCriteriaException
from taskboard.query.criteria import (ProjectCriteria, TaskCriteria,
                                      UserCriteria, lower_bound, upper_bound)


def test_defaults():
    criteria = TaskCriteria()
    assert criteria.page == 1
    assert criteria.page_size == 10
    assert criteria.search is None
    assert criteria.sort_by is None
    assert criteria.sort_order == "desc"
    assert criteria.skip == 0


def test_accepts_camel_case_params():
    criteria = TaskCriteria.from_params(
        {
            "page": "3",
            "pageSize": "25",
            "sortBy": "name",
            "sortOrder": "asc",
            "projectId": "p1",
            "createdAfter": "2024-01-10",
        }
    )
    assert criteria.page == 3
    assert criteria.page_size == 25
    assert criteria.skip == 50
    assert criteria.sort_by == "name"
    assert criteria.project_id == "p1"
    assert criteria.created_after == date(2024, 1, 10)


@pytest.mark.parametrize(
    "params",
    [{"page": 0}, {"page": -1}, {"pageSize": 0}, {"pageSize": 101}],
)
def test_out_of_range_paging_is_rejected(params):
    with pytest.raises(InvalidCriteriaException):
        UserCriteria.from_params(params)


def test_out_of_range_is_not_clamped_on_direct_construction():
    with pytest.raises(ValidationError):
        UserCriteria(page_size=500)


def test_page_size_bounds_are_inclusive():
    assert UserCriteria(page_size=1).page_size == 1
    assert UserCriteria(page_size=100).page_size == 100


def test_criteria_is_immutable():
    criteria = ProjectCriteria(status="Completed")
    with pytest.raises(ValidationError):
        criteria.status = "Pending"


@pytest.mark.parametrize("blank", ["", "   "])
def test_blank_filters_mean_absent(blank):
    criteria = ProjectCriteria.from_params(
        {"search": blank, "status": blank, "assignedUser": blank, "deadlineTo": blank}
    )
    assert criteria.search is None
    assert criteria.status is None
    assert criteria.assigned_user is None
    assert criteria.deadline_to is None


def test_datetime_strings_keep_time():
    criteria = TaskCriteria.from_params({"updatedBefore": "2024-01-10T08:30:00+00:00"})
    assert criteria.updated_before == datetime(2024, 1, 10, 8, 30, tzinfo=timezone.utc)


def test_malformed_date_is_rejected():
    with pytest.raises(InvalidCriteriaException, match="createdAfter"):
        UserCriteria.from_params({"createdAfter": "2024-13-45"})


def test_inverted_range_is_rejected():
    with pytest.raises(InvalidCriteriaException, match="deadlineFrom"):
        ProjectCriteria.from_params(
            {"deadlineFrom": "2024-02-01", "deadlineTo": "2024-01-01"}
        )


def test_same_day_range_is_valid():
    criteria = TaskCriteria.from_params(
        {"createdAfter": "2024-01-10", "createdBefore": "2024-01-10"}
    )
    assert criteria.created_after == criteria.created_before


def test_unknown_params_are_ignored():
    criteria = UserCriteria.from_params({"role": "admin", "status": "whatever"})
    assert criteria.role == "admin"
    assert not hasattr(criteria, "status")


def test_date_bounds_cover_whole_day():
    day = date(2024, 1, 10)
    assert lower_bound(day) == datetime(2024, 1, 10, tzinfo=timezone.utc)
    assert upper_bound(day) == datetime(
        2024, 1, 10, 23, 59, 59, 999999, tzinfo=timezone.utc
    )


def test_naive_datetime_bounds_are_utc():
    naive = datetime(2024, 1, 10, 12, 0)
    assert lower_bound(naive).tzinfo == timezone.utc
    assert upper_bound(naive) == datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)
