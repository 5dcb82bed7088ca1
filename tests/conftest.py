from datetime import date

import pytest
from openpyxl import Workbook

from vitalstats.models import EventRecord


def make_record(registry_num="2023-1", **kwargs):
    return EventRecord(registry_num=registry_num, **kwargs)


def write_template(path, sheets=("Data Source", "ByMunicipality", "TeenAge")):
    wb = Workbook()
    wb.remove(wb.active)
    for name in sheets:
        ws = wb.create_sheet(name)
        ws["B2"] = f"{name} title"
    wb.save(path)
    return path


@pytest.fixture
def template_dir(tmp_path):
    d = tmp_path / "ExcelTemplate"
    d.mkdir()
    write_template(d / "birthtemplate.xlsx")
    write_template(
        d / "deathtemplate.xlsx",
        sheets=("Data Source", "ByMunicipality", "CauseOfDeath", "DeadonArrival"),
    )
    return d


@pytest.fixture
def reference_file(tmp_path):
    p = tmp_path / "RMunicipality.ref"
    p.write_text(
        "Alpha Town|North Province|Philippines|00100\n"
        "Beta City|South Province|Philippines|00200\n",
        encoding="utf-8",
    )
    return p


@pytest.fixture
def birth_records():
    return [
        make_record("2023-1", sex="MALE", event_date=date(2023, 2, 15),
                    residence_municipality="Beta City|00200", mother_age=17),
        make_record("2023-2", sex="female", event_date=date(2023, 2, 28),
                    residence_municipality="", event_municipality="Alpha Town|00100",
                    mother_age=25),
        make_record("2023-3", sex="FEMALE", event_date=date(2023, 3, 1),
                    residence_municipality="Alpha Town|00100", mother_age=19),
        make_record("2023-4", sex="MALE", event_date=None,
                    residence_municipality="Somewhere", mother_age=None),
    ]
