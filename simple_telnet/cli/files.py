"""Host list input and batch result output files."""

from __future__ import annotations

from csv import DictReader as CSVReader, DictWriter as CSVWriter
from dataclasses import dataclass, field
from io import StringIO
from json import dumps as json_dumps, loads as json_loads
from typing import TYPE_CHECKING, Any, Literal, TypeAlias

from openpyxl import load_workbook as openpyxl_load_workbook
from openpyxl.workbook import Workbook as OpenPyXLWorkbook

if TYPE_CHECKING:
    from pathlib import Path

    from simple_telnet.types import JSON_TYPE

Row: TypeAlias = dict[str, Any]


@dataclass(slots=True)
class FileReader:
    """Read rows of host details from a file.

    Each row is a dictionary with at least a ``host`` key, optionally ``port``,
    ``username`` and ``password``.
    """

    path: Path
    type: Literal["csv", "json", "xlsx"]
    data: list[Row] = field(init=False)

    def __post_init__(self) -> None:
        """Read the file.

        Raises:
            ValueError: If the file type is invalid or the content is not a list of rows
        """
        match self.type:
            case "csv":
                self._read_csv()
            case "json":
                self._read_json()
            case "xlsx":
                self._read_xlsx()
            case _:
                msg = f"Invalid file type: {self.type}"
                raise ValueError(msg)

    def _read_csv(self) -> None:
        self.data = list(CSVReader(self.path.read_text(encoding="utf-8").splitlines()))

    def _read_json(self) -> None:
        data = json_loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
            msg = f"Expected a JSON list of objects in {self.path}"
            raise ValueError(msg)  # noqa: TRY004
        self.data = data

    def _read_xlsx(self) -> None:
        """Read the active worksheet, using the first row as headers."""
        workbook = openpyxl_load_workbook(filename=self.path, data_only=True, read_only=True)
        try:
            rows = workbook.active.iter_rows(values_only=True)
            headers = [str(value) for value in next(rows, ())]
            self.data = [
                dict(zip(headers, values, strict=False))
                for values in rows
                if any(value is not None for value in values)
            ]
        finally:
            workbook.close()


@dataclass(slots=True)
class FileWriter:
    """Write batch results to a file in various formats."""

    path: Path
    type: Literal["csv", "json", "plain", "xlsx"]
    data: list[Row]

    def __post_init__(self) -> None:
        """Write the file.

        Raises:
            ValueError: If the file type is invalid
        """
        match self.type:
            case "csv":
                self.path.write_text(render_csv(self.data), encoding="utf-8")
            case "json":
                self.path.write_text(render_json(self.data), encoding="utf-8")
            case "plain":
                self.path.write_text(render_plain(self.data), encoding="utf-8")
            case "xlsx":
                self._write_xlsx()
            case _:
                msg = f"Invalid file type: {self.type}"
                raise ValueError(msg)

    def _write_xlsx(self) -> None:
        """Write rows to a worksheet with the keys of the first row as headers.

        Raises:
            ValueError: If there are no rows to write
        """
        if not self.data:
            msg = "No data to write to file"
            raise ValueError(msg)

        workbook = OpenPyXLWorkbook()
        worksheet = workbook.active
        headers = list(self.data[0])
        worksheet.append(headers)
        for row in self.data:
            worksheet.append([row.get(header) for header in headers])
        workbook.save(self.path)


def render_csv(data: list[Row]) -> str:
    """Format rows as CSV with the keys of the first row as headers.

    Returns:
        The CSV text, empty if there are no rows
    """
    if not data:
        return ""
    buffer = StringIO()
    writer = CSVWriter(buffer, fieldnames=list(data[0]), extrasaction="ignore")
    writer.writeheader()
    writer.writerows(data)
    return buffer.getvalue()


def render_json(data: JSON_TYPE) -> str:
    """Format data as indented JSON.

    Returns:
        The JSON text
    """
    return json_dumps(data, indent=2, default=str)


def render_plain(data: list[Row]) -> str:
    """Format rows for reading in a terminal.

    Each row starts with a header line built from its host, port and status,
    followed by its output or error.

    Returns:
        The formatted text
    """
    blocks = []
    for row in data:
        status = "ok" if row.get("success") else "failed"
        header = f"### {row.get('host')}:{row.get('port')} ({status})"
        body = row.get("output") if row.get("success") else row.get("error")
        blocks.append(f"{header}\n{body or ''}".rstrip("\n"))
    return "\n\n".join(blocks) + ("\n" if blocks else "")
