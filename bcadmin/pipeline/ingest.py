# ==============================================================================
# bcadmin/pipeline/ingest.py
# ------------------------------------------------------------------------------
# Reads an uploaded CSV or spreadsheet into a header list and row dictionaries.
# ==============================================================================

import os
import logging
import pandas as pd
from .schema import DUPLICATE_HEADER_ALIASES

EXCEL_EXTENSIONS = {'.xlsx', '.xls'}


class IngestError(Exception):
    """The file could not be parsed at all."""


def disambiguate_headers(raw_headers):
    """
    Trims every header and renames repeated headers positionally so that no
    column is lost when rows become dictionaries.

    Headers listed in DUPLICATE_HEADER_ALIASES get their known aliases
    (1st, 2nd, 3rd occurrence). Any other repeat keeps a '.N' suffix.
    """
    seen = {}
    headers = []
    for raw in raw_headers:
        header = str(raw if raw is not None else '').strip()
        occurrence = seen.get(header, 0)
        seen[header] = occurrence + 1

        aliases = DUPLICATE_HEADER_ALIASES.get(header)
        if aliases and occurrence < len(aliases):
            headers.append(aliases[occurrence])
        elif occurrence:
            logging.warning(f"Header '{header}' repeated {occurrence + 1} times; renaming to '{header}.{occurrence}'.")
            headers.append(f"{header}.{occurrence}")
        else:
            headers.append(header)
    return headers


def _read_frame(source, extension):
    if extension in EXCEL_EXTENSIONS:
        # First sheet only
        return pd.read_excel(source, header=None, dtype=str, keep_default_na=False)
    return pd.read_csv(source, header=None, dtype=str, keep_default_na=False, skip_blank_lines=True)


def read_tabular_file(source, filename=None):
    """
    Parses an uploaded file into (headers, rows).

    Args:
        source: A filesystem path or a binary file-like object.
        filename (str): Original file name; used for the extension when
            `source` is not a path.

    Returns:
        tuple: (list of header strings, list of row dicts keyed by header).
            Cell values are strings; blank cells are ''.

    Raises:
        IngestError: If the file cannot be read as CSV or spreadsheet.
    """
    name = filename or (source if isinstance(source, str) else '')
    extension = os.path.splitext(name)[1].lower()

    try:
        frame = _read_frame(source, extension)
    except pd.errors.EmptyDataError:
        return [], []
    except Exception as e:
        logging.error(f"Could not parse uploaded file '{name}': {e}", exc_info=True)
        raise IngestError(f"File could not be read: {e}") from e

    frame = frame.fillna('')
    if frame.empty:
        return [], []

    headers = disambiguate_headers(frame.iloc[0].tolist())
    rows = []
    for values in frame.iloc[1:].itertuples(index=False, name=None):
        cells = [str(value) for value in values]
        if not any(cell.strip() for cell in cells):
            continue
        rows.append(dict(zip(headers, cells)))

    logging.info(f"Ingested '{name}': {len(headers)} columns, {len(rows)} data rows.")
    return headers, rows
