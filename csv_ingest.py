# csv_ingest.py
# ==============================================================================
# CSV Ingestion — parse an inventory/sales file, validate it, and insert it
# in fixed-size batches. No transaction spans the whole import.
# ==============================================================================

import io
import logging
import math
import re

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError

import config
from errors import CsvValidationError, ImportFailedError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['Product Name', 'Date', 'Quantity Sold', 'Unit Price',
                    'Current Stock', 'Reorder Point']
MAX_REPORTED_ERRORS = 5

# decimal or exponent notation only (no "1_000")
NUMBER_RE = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')


class ParsedUpload:
    """A validated CSV, ready to import."""

    def __init__(self, file_name, rows):
        self.file_name = file_name
        self.rows = rows

    @property
    def row_count(self):
        return len(self.rows)

    def preview(self, n=20):
        """First n rows, with the original column headers."""
        return pd.DataFrame([
            {
                'Product Name': r['product_name'],
                'Date': r['sale_date'].isoformat(),
                'Quantity Sold': r['quantity_sold'],
                'Unit Price': r['unit_price'],
                'Current Stock': r['current_stock'],
                'Reorder Point': r['reorder_point'],
            }
            for r in self.rows[:n]
        ], columns=REQUIRED_COLUMNS)


class ImportResult:
    def __init__(self, upload, inserted, batches):
        self.upload = upload
        self.inserted = inserted
        self.batches = batches

    def __repr__(self):
        return (f"ImportResult(upload={self.upload['id']}, "
                f"inserted={self.inserted}, batches={self.batches})")


def check_csv_filename(file_name):
    if not file_name or not file_name.lower().endswith('.csv'):
        raise CsvValidationError(["Please upload a CSV file."])


def _to_number(raw):
    """Parse a numeric cell; blank means 0, anything unparsable is None."""
    text = (raw or '').strip()
    if not text:
        return 0.0
    if not NUMBER_RE.fullmatch(text):
        return None
    value = float(text)
    return value if math.isfinite(value) else None


def _truncate(errors):
    if len(errors) > MAX_REPORTED_ERRORS:
        extra = len(errors) - MAX_REPORTED_ERRORS
        return errors[:MAX_REPORTED_ERRORS] + [f"...and {extra} more errors"]
    return errors


def _read_frame(source):
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    try:
        return pd.read_csv(source, dtype=str, keep_default_na=False,
                           skip_blank_lines=True, encoding='utf-8-sig')
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise CsvValidationError([f"Could not parse CSV: {e}"]) from e


def parse_sales_csv(source, file_name=None):
    """Parse and validate a sales CSV.

    Args:
        source: path, bytes, or a file-like object (e.g. a Streamlit upload)
        file_name: name stored on the Upload row; defaults to source.name

    Returns:
        ParsedUpload with normalised rows

    Raises:
        CsvValidationError: missing columns or bad values (at most 5 listed)
    """
    if file_name is None:
        file_name = getattr(source, 'name', None) or (
            source if isinstance(source, str) else 'upload.csv')

    frame = _read_frame(source)
    headers = list(frame.columns)
    missing = [c for c in REQUIRED_COLUMNS if c not in headers]
    if missing:
        raise CsvValidationError([f"Missing columns: {', '.join(missing)}"])

    # zoned and naive cells can share a column; normalise everything to UTC
    dates = pd.to_datetime(frame['Date'].str.strip(), errors='coerce',
                           format='mixed', utc=True)

    errors = []
    rows = []
    for i, record in enumerate(frame[REQUIRED_COLUMNS].itertuples(index=False)):
        n = i + 1
        name, raw_date, raw_qty, raw_price, raw_stock, raw_reorder = record
        name = (name or '').strip()
        qty = _to_number(raw_qty)
        price = _to_number(raw_price)
        stock = _to_number(raw_stock)
        reorder = _to_number(raw_reorder)
        sale_date = dates.iloc[i]

        if not name:
            errors.append(f"Row {n}: Missing Product Name")
        if pd.isna(sale_date):
            errors.append(f'Row {n}: Invalid date "{raw_date}"')
        if qty is None:
            errors.append(f"Row {n}: Invalid Quantity Sold")
        if price is None:
            errors.append(f"Row {n}: Invalid Unit Price")
        if stock is None:
            errors.append(f"Row {n}: Invalid Current Stock")
        if reorder is None:
            errors.append(f"Row {n}: Invalid Reorder Point")
        if errors:
            continue

        rows.append({
            'product_name': name,
            'sale_date': sale_date.date(),
            'quantity_sold': qty,
            'unit_price': price,
            'current_stock': stock,
            'reorder_point': reorder,
            'line_no': n,
        })

    if errors:
        logger.info("Rejected %s: %d validation errors", file_name, len(errors))
        raise CsvValidationError(_truncate(errors))

    logger.info("Parsed %s: %d rows", file_name, len(rows))
    return ParsedUpload(file_name, rows)


def import_sales(data_layer, user_id, parsed, batch_size=None):
    """Insert the upload row, then the sales rows in batches.

    Each batch commits on its own. If one fails, earlier batches stay and
    ImportFailedError reports how many rows made it in.
    """
    batch_size = batch_size or config.import_batch_size()
    upload = data_layer.create_upload(user_id, parsed.file_name, parsed.row_count)

    inserted = 0
    batches = 0
    for start in range(0, parsed.row_count, batch_size):
        chunk = parsed.rows[start:start + batch_size]
        try:
            inserted += data_layer.insert_sales_batch(user_id, upload['id'], chunk)
        except SQLAlchemyError as e:
            logger.error("Batch %d of %s failed after %d rows: %s",
                         batches + 1, parsed.file_name, inserted, e)
            raise ImportFailedError(f"Upload failed: {e}", upload_id=upload['id'],
                                    inserted=inserted) from e
        batches += 1

    logger.info("Imported %s for user %s: %d rows in %d batches",
                parsed.file_name, user_id, inserted, batches)
    return ImportResult(upload, inserted, batches)
