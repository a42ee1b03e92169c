from __future__ import annotations

import pytest

from linkedin_profile_pkg.config import DEFAULT_MONTH_TABLES, MonthTables
from linkedin_profile_pkg.models import ExperienceEntry, ProfileRecord, RawEntry, RawScrape
from linkedin_profile_pkg.normalize import PRESENT, Normalizer


@pytest.fixture
def normalizer():
    return Normalizer()


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Nov. 2025–Heute", ("2025-11", PRESENT)),
        ("2020 - 2024", ("2020", "2024")),
        ("Jan 2019 - Mar 2021", ("2019-01", "2021-03")),
        ("März 2018 – Dez. 2019", ("2018-03", "2019-12")),
        ("Sep 2021 to Present", ("2021-09", PRESENT)),
        ("Okt. 2022 bis heute", ("2022-10", PRESENT)),
        ("2020-2024", ("2020", "2024")),
        ("Jan 2020 – Present · 5 yrs 2 mos", ("2020-01", PRESENT)),
        ("2019", ("2019", "")),
        ("", ("", "")),
    ],
)
def test_parse_date_range(normalizer, text, expected):
    assert normalizer.parse_date_range(text) == expected


def test_normalize_date_is_idempotent_on_canonical_output(normalizer):
    for text in ("Nov. 2025", "2020", "Feb 2017", "Mai 2016"):
        once = normalizer.normalize_date(text)
        assert normalizer.normalize_date(once) == once


def test_normalize_date_without_year_is_empty(normalizer):
    assert normalizer.normalize_date("Heute") == ""
    assert normalizer.normalize_date("November") == ""


def test_ongoing_word_next_to_a_year_is_not_present(normalizer):
    # "current" appears in the text but the end side carries a real year
    assert normalizer.parse_date_range("2019 – 2021 (current role ended)") == ("2019", "2021")


def test_custom_month_tables_are_used():
    tables = MonthTables(german={}, english={"jan": "01"}, ongoing=("ongoing",))
    n = Normalizer(tables)
    assert n.parse_date_range("Jan 2020 – ongoing") == ("2020-01", PRESENT)
    assert n.normalize_date("Nov. 2025") == "2025"


def test_default_tables_are_read_only():
    with pytest.raises(TypeError):
        DEFAULT_MONTH_TABLES.german["neu"] = "13"


def test_split_duration(normalizer):
    assert normalizer.split_duration("Jan 2020 – Present · 5 yrs") == ("Jan 2020 – Present", "5 yrs")
    assert normalizer.split_duration("2019 - 2020") == ("2019 - 2020", "")


def _raw_experience(title, company, dates="Jan 2020 - Dec 2021"):
    return RawEntry(primary=title, secondary=company, date_text=dates)


def test_identical_experience_entries_collapse_to_one(normalizer):
    raw = RawScrape(
        profile=ProfileRecord(name="Jane Doe"),
        experience=[_raw_experience("Engineer", "Acme GmbH")] * 3,
    )
    result = normalizer.normalize(raw)
    assert len(result.experience) == 1
    assert result.experience[0].start_date == "2020-01"
    assert result.experience[0].end_date == "2021-12"


def test_same_role_with_different_dates_is_kept_twice(normalizer):
    raw = RawScrape(
        profile=ProfileRecord(name="Jane Doe"),
        experience=[
            _raw_experience("Engineer", "Acme GmbH", "2018 - 2019"),
            _raw_experience("Engineer", "Acme GmbH", "2021 - 2022"),
        ],
    )
    assert len(normalizer.normalize(raw).experience) == 2


def test_entries_with_title_equal_to_company_are_discarded(normalizer):
    raw = RawScrape(
        profile=ProfileRecord(name="Jane Doe"),
        experience=[
            _raw_experience("Acme GmbH", "Acme GmbH"),
            _raw_experience("Globex", "Globex", "2015 - 2016"),
            _raw_experience("Engineer", "Acme GmbH"),
        ],
    )
    result = normalizer.normalize(raw)
    assert [e.title for e in result.experience] == ["Engineer"]


def test_dedupe_is_idempotent(normalizer):
    entries = [
        ExperienceEntry(title="Engineer", company="Acme", date_range="2020 - 2021"),
        ExperienceEntry(title="Engineer", company="Acme", date_range="2020 - 2021"),
        ExperienceEntry(title="Lead", company="Acme", date_range="2021 - 2022"),
    ]
    once = normalizer.dedupe_experience(entries)
    assert normalizer.dedupe_experience(once) == once
    assert len(once) == 2


def test_skills_dedupe_case_insensitive_keeps_first_casing(normalizer):
    assert normalizer.dedupe_skills(["Python", "python", " Go ", "", "PYTHON", "Docker"]) == [
        "Python",
        "Go",
        "Docker",
    ]


def test_education_entries_are_normalized(normalizer):
    raw = RawScrape(
        profile=ProfileRecord(name="Jane Doe"),
        education=[
            RawEntry(primary="TU Wien", secondary="Master", field="Informatik", date_text="2016 - 2019"),
            RawEntry(primary="TU Wien", secondary="Master", field="Informatik", date_text="2016 - 2019"),
        ],
    )
    (edu,) = normalizer.normalize(raw).education
    assert (edu.school, edu.degree, edu.field) == ("TU Wien", "Master", "Informatik")
    assert (edu.start_date, edu.end_date) == ("2016", "2019")


def test_duration_is_kept_and_date_range_not_serialized(normalizer):
    entry = normalizer.to_experience(_raw_experience("Engineer", "Acme", "Jan 2020 - Present · 4 yrs"))
    assert entry.duration == "4 yrs"
    assert entry.end_date == PRESENT
    assert "date_range" not in entry.model_dump()
