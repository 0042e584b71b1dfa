# tests/test_csv_ingest.py
# ==============================================================================
# Tests for CSV ingestion — header/row validation, preview, batched import
# ==============================================================================

import sys
import os
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from csv_ingest import (
    check_csv_filename, import_sales, parse_sales_csv, MAX_REPORTED_ERRORS
)
from errors import CsvValidationError, ImportFailedError

HEADER = "Product Name,Date,Quantity Sold,Unit Price,Current Stock,Reorder Point\n"


def csv_bytes(*lines, header=HEADER):
    return (header + "\n".join(lines) + "\n").encode('utf-8')


class TestHeaderValidation:
    def test_missing_column_named(self):
        """A missing required column is reported by name."""
        data = b"Product Name,Date,Quantity Sold,Unit Price,Current Stock\nA,2024-01-01,1,2,3\n"
        with pytest.raises(CsvValidationError) as exc:
            parse_sales_csv(data, file_name='x.csv')
        assert exc.value.errors == ["Missing columns: Reorder Point"]

    def test_several_missing_columns(self):
        data = b"Product Name,Date\nA,2024-01-01\n"
        with pytest.raises(CsvValidationError) as exc:
            parse_sales_csv(data, file_name='x.csv')
        assert exc.value.errors == [
            "Missing columns: Quantity Sold, Unit Price, Current Stock, Reorder Point"]

    def test_extra_columns_ignored(self):
        data = csv_bytes("A,2024-01-01,1,2,3,4,note",
                         header=HEADER.strip() + ",Notes\n")
        parsed = parse_sales_csv(data, file_name='x.csv')
        assert parsed.row_count == 1

    def test_bom_is_stripped(self):
        data = b'\xef\xbb\xbf' + csv_bytes("A,2024-01-01,1,2,3,4")
        parsed = parse_sales_csv(data, file_name='x.csv')
        assert parsed.rows[0]['product_name'] == 'A'

    def test_non_csv_filename(self):
        with pytest.raises(CsvValidationError) as exc:
            check_csv_filename('data.xlsx')
        assert exc.value.errors == ["Please upload a CSV file."]
        check_csv_filename('DATA.CSV')


class TestRowValidation:
    def test_valid_rows_normalised(self):
        parsed = parse_sales_csv(csv_bytes("  Mouse ,2024-01-05,10,25.5,120,50"),
                                 file_name='x.csv')
        row = parsed.rows[0]
        assert row['product_name'] == 'Mouse'
        assert row['sale_date'] == date(2024, 1, 5)
        assert row['quantity_sold'] == 10.0
        assert row['unit_price'] == 25.5
        assert row['current_stock'] == 120.0
        assert row['reorder_point'] == 50.0
        assert row['line_no'] == 1

    def test_missing_product_name(self):
        with pytest.raises(CsvValidationError) as exc:
            parse_sales_csv(csv_bytes(",2024-01-01,1,2,3,4"), file_name='x.csv')
        assert exc.value.errors == ["Row 1: Missing Product Name"]

    def test_invalid_date_quoted(self):
        with pytest.raises(CsvValidationError) as exc:
            parse_sales_csv(csv_bytes("A,2024-01-01,1,2,3,4", "B,not-a-date,1,2,3,4"),
                            file_name='x.csv')
        assert exc.value.errors == ['Row 2: Invalid date "not-a-date"']

    def test_invalid_numbers(self):
        with pytest.raises(CsvValidationError) as exc:
            parse_sales_csv(csv_bytes("A,2024-01-01,abc,x,1,2"), file_name='x.csv')
        assert exc.value.errors == ["Row 1: Invalid Quantity Sold",
                                    "Row 1: Invalid Unit Price"]

    def test_digit_separators_rejected(self):
        with pytest.raises(CsvValidationError) as exc:
            parse_sales_csv(csv_bytes("A,2024-01-01,1_000,2,3,4"), file_name='x.csv')
        assert exc.value.errors == ["Row 1: Invalid Quantity Sold"]

    def test_signed_and_exponent_numbers(self):
        parsed = parse_sales_csv(csv_bytes("A,2024-01-01,-3,1.5e2,.5,4."), file_name='x.csv')
        row = parsed.rows[0]
        assert row['quantity_sold'] == -3.0
        assert row['unit_price'] == 150.0
        assert row['current_stock'] == 0.5
        assert row['reorder_point'] == 4.0

    def test_mixed_timezone_dates(self):
        parsed = parse_sales_csv(
            csv_bytes("A,2024-01-01,1,2,3,4", "A,2024-01-02T00:00:00Z,1,2,3,4",
                      "B,2024-01-03T10:00:00+01:00,1,2,3,4",
                      "B,2024-01-04T10:00:00+05:00,1,2,3,4"),
            file_name='x.csv')
        assert [r['sale_date'] for r in parsed.rows] == [
            date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3), date(2024, 1, 4)]

    def test_blank_number_is_zero(self):
        parsed = parse_sales_csv(csv_bytes("A,2024-01-01,,2,3,4"), file_name='x.csv')
        assert parsed.rows[0]['quantity_sold'] == 0.0

    def test_error_list_truncated(self):
        lines = [f",2024-01-0{i},1,2,3,4" for i in range(1, 9)]
        with pytest.raises(CsvValidationError) as exc:
            parse_sales_csv(csv_bytes(*lines), file_name='x.csv')
        errors = exc.value.errors
        assert len(errors) == MAX_REPORTED_ERRORS + 1
        assert errors[-1] == "...and 3 more errors"

    def test_empty_file(self):
        with pytest.raises(CsvValidationError) as exc:
            parse_sales_csv(b"", file_name='x.csv')
        assert exc.value.errors[0].startswith("Missing columns: Product Name")


class TestPreview:
    def test_preview_caps_rows(self):
        lines = [f"P{i},2024-01-01,1,2,3,4" for i in range(30)]
        parsed = parse_sales_csv(csv_bytes(*lines), file_name='x.csv')
        preview = parsed.preview()
        assert len(preview) == 20
        assert list(preview.columns)[0] == 'Product Name'
        assert parsed.row_count == 30


class TestImport:
    def test_preview_count_equals_inserted(self, dl, sample_csv):
        parsed = parse_sales_csv(sample_csv, file_name='sample.csv')
        result = import_sales(dl, 'u1', parsed)
        assert result.inserted == parsed.row_count == 4
        assert len(dl.get_sales('u1')) == 4
        assert dl.list_uploads('u1')[0]['row_count'] == 4
        assert dl.list_uploads('u1')[0]['file_name'] == 'sample.csv'

    def test_batches_of_at_most_batch_size(self, dl):
        lines = [f"P{i % 3},2024-01-{(i % 28) + 1:02d},1,2,3,4" for i in range(1201)]
        parsed = parse_sales_csv(csv_bytes(*lines), file_name='big.csv')
        sizes = []
        original = dl.insert_sales_batch

        def spy(user_id, upload_id, rows):
            sizes.append(len(rows))
            return original(user_id, upload_id, rows)

        dl.insert_sales_batch = spy
        result = import_sales(dl, 'u1', parsed, batch_size=500)
        assert sizes == [500, 500, 201]
        assert result.batches == 3
        assert result.inserted == 1201

    def test_failed_batch_keeps_earlier_ones(self, dl):
        lines = [f"P,2024-01-01,1,2,3,4" for _ in range(5)]
        parsed = parse_sales_csv(csv_bytes(*lines), file_name='x.csv')
        original = dl.insert_sales_batch
        calls = []

        def flaky(user_id, upload_id, rows):
            calls.append(1)
            if len(calls) == 2:
                raise OperationalError("INSERT", {}, Exception("disk full"))
            return original(user_id, upload_id, rows)

        dl.insert_sales_batch = flaky
        with pytest.raises(ImportFailedError) as exc:
            import_sales(dl, 'u1', parsed, batch_size=2)
        assert exc.value.inserted == 2
        assert str(exc.value).startswith("Upload failed:")
        assert len(dl.get_sales('u1')) == 2

    def test_rejected_csv_inserts_nothing(self, dl):
        with pytest.raises(CsvValidationError):
            parse_sales_csv(b"Product Name\nA\n", file_name='x.csv')
        assert dl.list_uploads('u1') == []
