from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd
from loguru import logger

from geoinsights.models import ConfigurationError, TabularData

EXCEL_SUFFIXES = (".xlsx",)
# Legacy binary workbooks need a reader pandas does not bundle
UNSUPPORTED_SUFFIXES = (".xls",)


def detect_delimiter(header_line: str) -> str:
    """';' when the header line has more semicolons than commas, ',' otherwise."""
    return ";" if header_line.count(";") > header_line.count(",") else ","


def _frame_to_tabular(df: pd.DataFrame) -> TabularData:
    df = df.fillna("").astype(str)
    df.columns = [str(c).strip() for c in df.columns]
    if len(df):
        df = df.apply(lambda col: col.str.strip())
    return TabularData(headers=list(df.columns), rows=df.to_dict(orient="records"))


def parse_file(path: Union[str, Path]) -> TabularData:
    """
    Load a CSV or spreadsheet into headers and string-valued rows.

    .xlsx workbooks use their first sheet. Anything else is read as UTF-8 CSV
    with the delimiter detected from the header line. Cell values are trimmed,
    empty or missing cells become "" and values beyond the header width are
    dropped.

    Args:
        path (Union[str, Path]): File to read.

    Returns:
        TabularData: Headers in file order and one dict per data row.

    Raises:
        ConfigurationError: For legacy .xls workbooks.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in UNSUPPORTED_SUFFIXES:
        raise ConfigurationError(f"{path}: {suffix} workbooks are not supported, save the file as .xlsx or .csv")
    if suffix in EXCEL_SUFFIXES:
        df = pd.read_excel(path, sheet_name=0, dtype=str, keep_default_na=False)
        return _frame_to_tabular(df)

    with open(path, "r", encoding="utf-8-sig") as f:
        header_line = f.readline()
    if not header_line.strip():
        logger.warning(f"{path} is empty")
        return TabularData(headers=[], rows=[])

    sep = detect_delimiter(header_line)
    width = len(header_line.rstrip("\r\n").split(sep))

    def truncate(bad_line: List[str]) -> List[str]:
        logger.debug(f"{path}: dropping {len(bad_line) - width} extra value(s) in a row")
        return bad_line[:width]

    # Rows longer than the header keep their first `width` values and never shift into an index
    df = pd.read_csv(
        path,
        sep=sep,
        dtype=str,
        keep_default_na=False,
        encoding="utf-8-sig",
        index_col=False,
        engine="python",
        on_bad_lines=truncate,
    )
    data = _frame_to_tabular(df)
    logger.debug(f"Parsed {len(data.rows)} rows with {len(data.headers)} columns from {path}")
    return data


def write_rows(rows: List[Dict[str, Any]], filename: Union[str, Path]) -> None:
    """
    Write rows to a single-sheet .xlsx file, or to CSV for any other suffix.

    Columns are the union of the rows' keys in first-seen order.
    """
    if not rows:
        logger.warning(f"No data to write to {filename}")
        return

    columns: List[str] = []
    seen = set()
    for row in rows:
        for key in row:
            if key not in seen:
                seen.add(key)
                columns.append(key)

    df = pd.DataFrame(rows, columns=columns)
    path = Path(filename)
    if path.suffix.lower() == ".xlsx":
        df.to_excel(path, index=False, sheet_name="Results", engine="openpyxl")
    else:
        df.to_csv(path, index=False)
    logger.info(f"Wrote {len(df)} rows to {path}")
