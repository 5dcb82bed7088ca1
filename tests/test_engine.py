import inspect
from datetime import date

import pytest

from conftest import make_record
from vitalstats import config, engine, models, report
from vitalstats.models import UNKNOWN, LocationEntry

REF = {
    "00100": LocationEntry("Alpha Town", "North Province", "Philippines"),
    "00200": LocationEntry("Beta City", "South Province", "Philippines"),
}


@pytest.mark.parametrize(
    "value, exp",
    (
        ("Metro City|00123", "00123"),
        ("Metro City", UNKNOWN),
        ("Metro City| ", UNKNOWN),
        ("A|B|  00999 ", "00999"),
        ("", UNKNOWN),
        (None, UNKNOWN),
    ),
)
def test_location_code(value, exp):
    assert engine.location_code(value) == exp


def test_enrich_adds_week_fields_without_mutating(birth_records):
    enriched = engine.enrich(birth_records)
    assert enriched[0].week.week_number == 3
    assert enriched[3].week.week_number is None
    assert birth_records[0].week.week_number is None


def test_group_by_municipality_prefers_primary_then_fallback(birth_records):
    rows = engine.group_by_municipality(
        birth_records, REF, location="residence_municipality", fallback="event_municipality",
    )

    assert [(r.no, r.code) for r in rows] == [(1, "00100"), (2, "00200"), (3, UNKNOWN)]
    alpha, beta, unknown = rows
    assert (alpha.municipality, alpha.male, alpha.female, alpha.total) == ("Alpha Town", 0, 2, 2)
    assert (beta.province, beta.male, beta.female, beta.total) == ("South Province", 1, 0, 1)
    assert (unknown.municipality, unknown.province, unknown.country) == (
        "Not Stated", "Not Stated", "Philippines",
    )


def test_group_by_municipality_without_fallback(birth_records):
    rows = engine.group_by_municipality(birth_records, REF, location="residence_municipality")
    by_code = {r.code: r.total for r in rows}
    assert by_code == {"00100": 1, "00200": 1, UNKNOWN: 2}


def test_unknown_sorts_last_even_against_high_codes():
    records = [
        make_record("1", sex="MALE", residence_municipality="No code"),
        make_record("2", sex="MALE", residence_municipality="Z|ZZZZZZ"),
        make_record("3", sex="MALE", residence_municipality="Z|~~~"),
    ]
    rows = engine.group_by_municipality(records)
    assert [r.code for r in rows] == ["ZZZZZZ", "~~~", UNKNOWN]
    assert rows[-1].no == 3


def test_other_sex_values_only_count_in_total():
    records = [
        make_record("1", sex=" male ", residence_municipality="A|00100"),
        make_record("2", sex="FEMALE", residence_municipality="A|00100"),
        make_record("3", sex="UNKNOWN", residence_municipality="A|00100"),
        make_record("4", sex="", residence_municipality="A|00100"),
    ]
    (row,) = engine.group_by_municipality(records, REF)
    assert (row.male, row.female, row.total) == (1, 1, 4)
    assert row.male + row.female <= row.total


def test_missing_reference_code_shows_unknown_form():
    records = [make_record("1", sex="MALE", residence_municipality="X|55555")]
    (row,) = engine.group_by_municipality(records, REF)
    assert (row.municipality, row.province, row.country) == (
        "Unknown (55555)", "Unknown", "Philippines",
    )


def test_threshold_inclusive_scenario():
    records = [
        make_record("1", mother_age=15, residence_municipality="A|00100"),
        make_record("2", mother_age=19, residence_municipality="B|00200"),
        make_record("3", mother_age=25, residence_municipality="A|00100"),
    ]
    rows = engine.group_by_threshold(records, "mother_age", 19, REF)
    assert [(r.code, r.count) for r in rows] == [("00100", 1), ("00200", 1)]
    assert sum(r.count for r in rows) == 2


def test_threshold_skips_non_numeric_and_has_no_fallback():
    records = [
        make_record("1", mother_age=None, residence_municipality="A|00100"),
        make_record("2", mother_age=16, residence_municipality="",
                    event_municipality="A|00100"),
        make_record("3", mother_age=18, residence_municipality="B|00200"),
    ]
    rows = engine.group_by_threshold(records, "mother_age", 19, REF)
    assert [(r.no, r.code, r.count) for r in rows] == [(1, "00200", 1), (2, UNKNOWN, 1)]


def test_aggregation_is_deterministic(birth_records):
    a = engine.group_by_municipality(birth_records, REF, fallback="event_municipality")
    b = engine.group_by_municipality(list(reversed(birth_records)), REF, fallback="event_municipality")
    assert a == b


def test_cause_of_death_rows():
    records = [
        make_record("2023-1", last_name="Cruz", event_date=date(2023, 4, 2),
                    cause_underlying="Pneumonia", cause_underlying_interval="3 days"),
        make_record("2023-2", cause_immediate="   "),
        make_record("2023-3", cause_other="Sepsis"),
    ]
    rows = engine.cause_of_death_rows(records)
    assert [(r.no, r.registry_num) for r in rows] == [(1, "2023-1"), (2, "2023-3")]
    assert rows[0].date_of_death == "2023-04-02"
    assert rows[0].underlying_interval == "3 days"
    assert rows[1].date_of_death == ""


@pytest.mark.parametrize(
    "status, exp",
    (
        ("Dead on arrival", True),
        (" doa ", True),
        ("Hospital - ER death", True),
        ("DEADLINE", True),
        ("Hospital", False),
        ("", False),
        ("Not dead", False),
    ),
)
def test_is_dead_on_arrival(status, exp):
    assert engine.is_dead_on_arrival(make_record("1", attended_from=status)) is exp


def test_dead_on_arrival_rows_keep_input_order():
    records = [
        make_record("2023-9", attended_from="DOA"),
        make_record("2023-1", attended_from="Home"),
        make_record("2023-2", attended_from="Dead on Arrival"),
    ]
    rows = engine.dead_on_arrival_rows(records)
    assert [(r.no, r.registry_num) for r in rows] == [(1, "2023-9"), (2, "2023-2")]


@pytest.mark.parametrize("module", (engine, config, report))
def test_shared_helpers_come_from_models(module):
    assert "from .loader import" not in inspect.getsource(module)
    assert getattr(module, "BIRTH", models.BIRTH) is models.BIRTH


def test_to_int_is_shared_with_engine():
    assert engine.to_int is models.to_int
    assert models.to_int(" 19 ") == 19
    assert models.to_int(float("nan")) is None
