import io
from datetime import date

import pytest
from openpyxl import Workbook

from territory.models.domain import DEFAULT_BRAND, DEFAULT_MANAGER
from territory.services.ingest import (
    EmptyFileError,
    MissingColumnsError,
    UnsupportedFileTypeError,
    map_columns,
    parse_date,
    parse_number,
    parse_rows,
    read_table,
)


def _sales_table():
    return [
        ["Отчет по продажам за квартал"],
        ["Адрес ТТ", "РМ", "Бренд", "Вес, кг", "Дата"],
        ["г. Москва, ул. Ленина 1", "Иванов", "Alpha", "100", "15.01.2024"],
        ["Москва Ленина 1", "Иванов", "Alpha", "50,5", "20.02.2024"],
        ["г. Казань", "Петров", "Beta", 0, "01.03.2024"],
        ["Итого", "", "", "150,5", ""],
        ["г. Сочи", "нет", "", "abc", ""],
        ["г. Сочи, ул. Морская 3", "нет", "", "7", None],
    ]


def test_parse_rows_maps_columns_and_counts_drops():
    result = parse_rows(_sales_table())

    assert result.header_index == 1
    assert result.column_map.as_dict() == {
        "address": "Адрес ТТ",
        "manager": "РМ",
        "volume": "Вес, кг",
        "brand": "Бренд",
        "order_date": "Дата",
    }
    assert [row.volume for row in result.rows] == [100.0, 50.5, 7.0]
    assert result.dropped_rows == 2
    assert result.skipped_total_rows == 1

    first = result.rows[0]
    assert first.manager == "Иванов"
    assert first.order_date == date(2024, 1, 15)
    assert first.month_key == "2024-01"
    assert first.raw["Адрес ТТ"] == "г. Москва, ул. Ленина 1"
    assert "order_date" in first.resolved_fields


def test_parse_rows_applies_defaults_for_missing_manager_and_brand():
    last = parse_rows(_sales_table()).rows[-1]

    assert last.manager == DEFAULT_MANAGER
    assert last.brand == DEFAULT_BRAND
    assert last.month_key == "unknown"
    assert "manager" not in last.resolved_fields


def test_parse_rows_month_window_keeps_undated_rows():
    result = parse_rows(_sales_table(), start_month="2024-02", end_month="2024-02")

    assert [row.volume for row in result.rows] == [50.5, 7.0]
    assert result.filtered_rows == 1


def test_parse_rows_rejects_malformed_month():
    with pytest.raises(ValueError):
        parse_rows(_sales_table(), start_month="2024-13")


def test_missing_required_columns_are_reported_together():
    with pytest.raises(MissingColumnsError) as excinfo:
        parse_rows([["Адрес", "Город"], ["г. Москва", "Москва"]])

    assert excinfo.value.missing == ["manager", "volume"]
    assert "Менеджер" in str(excinfo.value)


def test_empty_table_raises():
    with pytest.raises(EmptyFileError):
        parse_rows([])


def test_required_columns_are_claimed_before_optional_ones():
    column_map = map_columns(["Адрес", "Региональный менеджер", "Регион", "Объем"])

    assert column_map.get("manager") == 1
    assert column_map.get("region_hint") == 2
    assert column_map.get("volume") == 3


def test_short_aliases_match_whole_headers_only():
    column_map = map_columns(["Адрес", "Фирма", "РМ", "Объем"])

    assert column_map.get("manager") == 2


def test_parse_rows_validates_coordinates():
    table = [
        ["Адрес", "РМ", "Объем", "Широта", "Долгота"],
        ["г. Москва", "Иванов", 10, "55,75", "37.61"],
        ["г. Москва", "Иванов", 10, 95, 37.61],
    ]

    rows = parse_rows(table).rows

    assert rows[0].latitude == pytest.approx(55.75)
    assert rows[0].longitude == pytest.approx(37.61)
    assert rows[1].latitude is None


@pytest.mark.parametrize(
    "value, expected",
    [("1 234,5", 1234.5), ("\u00a0250", 250.0), (12, 12.0), ("", None), ("abc", None), (True, None)],
)
def test_parse_number(value, expected):
    assert parse_number(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (45292, date(2024, 1, 1)),
        ("2024-03-05", date(2024, 3, 5)),
        ("05.03.2024", date(2024, 3, 5)),
        ("2024-03-05T10:00:00", date(2024, 3, 5)),
        ("2024-03", date(2024, 3, 1)),
        (12, None),
        ("not a date", None),
    ],
)
def test_parse_date(value, expected):
    assert parse_date(value) == expected


def test_read_table_csv_with_semicolons_and_bom():
    content = (
        "Адрес;РМ;Объем\n"
        "г. Москва ул. Ленина 1;Иванов;10\n"
        "г. Казань ул. Баумана 5;Петров;20\n"
        ";;\n"
    ).encode("utf-8-sig")

    rows = read_table(content, "sales.csv")

    assert rows[0] == ["Адрес", "РМ", "Объем"]
    assert rows[2] == ["г. Казань ул. Баумана 5", "Петров", "20"]
    assert len(rows) == 3


def test_read_table_csv_falls_back_to_cp1251():
    content = "Адрес;РМ;Объем\nг. Москва;Иванов;10\ng. Казань;Петров;5\n".encode("cp1251")

    rows = read_table(content, "sales.CSV")

    assert rows[1][1] == "Иванов"


def test_read_table_xlsx():
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["Адрес", "РМ", "Объем"])
    sheet.append(["г. Москва", "Иванов", 10])
    buffer = io.BytesIO()
    workbook.save(buffer)

    rows = read_table(buffer.getvalue(), "sales.xlsx")

    assert rows == [["Адрес", "РМ", "Объем"], ["г. Москва", "Иванов", 10]]


def test_read_table_rejects_unknown_suffix_and_empty_files():
    with pytest.raises(UnsupportedFileTypeError):
        read_table(b"a,b", "sales.txt")
    with pytest.raises(EmptyFileError):
        read_table(b"", "sales.csv")
