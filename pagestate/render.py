"""Module to render pages of rows as HTML fragments."""

import html
import urllib.parse

from collections.abc import Iterable, Iterator, Sequence
from pagestate.batch import Row
from pagestate.codec import encode_value


STYLE = (
    "<style>"
    "table { border-collapse: collapse }"
    "table, th, td { border: 1px solid black }"
    "tr:nth-child(even) { background-color: lightgray }"
    "td { padding: 0 30px 0 30px }"
    "</style>"
)

NO_RESULTS = "<div>No more results</div>"


def _cell(value) -> str:
    return html.escape(encode_value(value))


def table(rows: Sequence[Row], columns: Sequence[str] | None = None) -> Iterator[str]:
    """
    Generate an HTML table of rows. Columns are taken from the first row unless specified.
    Column names are used as headings, with underscores replaced by spaces and capitalized.
    """
    columns = list(columns or (rows[0].keys() if rows else ()))
    yield STYLE
    yield "<table><tr>"
    for column in columns:
        yield f"<th>{html.escape(column.replace('_', ' ').capitalize())}</th>"
    yield "</tr>"
    for row in rows:
        yield "<tr>"
        for column in columns:
            yield f"<td>{_cell(row.get(column))}</td>"
        yield "</tr>"
    yield "</table>"


def link(path: str, label: str, **params) -> str:
    """Return an HTML anchor to a path with query string parameters."""
    href = f"{path}?{urllib.parse.urlencode(params)}" if params else path
    return f'<a href="{html.escape(href)}">{html.escape(label)}</a>'


def page(
    rows: Sequence[Row],
    *,
    previous: str | None = None,
    next: str | None = None,
    columns: Sequence[str] | None = None,
) -> Iterable[str]:
    """
    Generate an HTML fragment for a page: a table of rows, or a "no results" message if there
    are none, followed by optional previous and next links.

    Parameters:
    • rows: rows in the page
    • previous: rendered link to the previous page, or None
    • next: rendered link to the next page, or None
    • columns: names of the columns to render
    """
    if rows:
        yield from table(rows, columns)
    else:
        yield NO_RESULTS
    if previous:
        yield f"{previous}&nbsp;&nbsp;&nbsp;"
    if next:
        yield next
