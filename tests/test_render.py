from pagestate.batch import make_row
from pagestate.render import NO_RESULTS, link, page, table


def test_table():
    rows = [make_row({"id": 1, "user_name": "<b>"}), make_row({"id": 2, "user_name": None})]
    text = "".join(table(rows))
    assert "<th>Id</th><th>User name</th>" in text
    assert "<tr><td>1</td><td>&lt;b&gt;</td></tr>" in text
    assert "<tr><td>2</td><td></td></tr>" in text


def test_table_columns():
    rows = [make_row({"id": 1, "name": "user1"})]
    text = "".join(table(rows, ["name"]))
    assert "<th>Name</th>" in text
    assert "<th>Id</th>" not in text


def test_link():
    assert link("/users", "Next", page=2) == '<a href="/users?page=2">Next</a>'
    assert link("/users", "Start") == '<a href="/users">Start</a>'


def test_page_no_results():
    text = "".join(page([], previous=link("/users", "Previous", page=1)))
    assert NO_RESULTS in text
    assert "<table>" not in text
    assert 'href="/users?page=1"' in text


def test_page_links():
    rows = [make_row({"id": 1})]
    text = "".join(page(rows, previous="PREV", next="NEXT"))
    assert text.index("</table>") < text.index("PREV") < text.index("NEXT")
