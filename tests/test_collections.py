from pathlib import PurePosixPath

from inkwell.collections import ArticleCollection
from inkwell.content import Page


def make_page(name, date):
    return Page(
        source_path=PurePosixPath(f"articles/{name}.md"),
        permalink=f"/articles/{name}/",
        title=name,
        date=date,
    )


def test_prepend_keeps_newest_first():
    a = make_page("a", "2020-01-01T00:00:00-07:00")
    b = make_page("b", "2020-02-01T00:00:00-07:00")
    articles = ArticleCollection()
    articles.prepend(a)
    articles.prepend(b)
    assert articles == [b, a]
    assert articles[0] is b
    assert len(articles) == 2


def test_latest():
    pages = [make_page(str(i), f"2020-01-0{i}") for i in range(1, 8)]
    latest = ArticleCollection(pages).latest(3)
    assert [p.title for p in latest] == ["1", "2", "3"]


def test_by_year_keeps_order():
    articles = ArticleCollection(
        [
            make_page("c", "2021-03-01T00:00:00-07:00"),
            make_page("b", "2020-06-01T00:00:00-07:00"),
            make_page("a", "2020-01-01T00:00:00-07:00"),
        ]
    )
    groups = articles.by_year()
    assert [year for year, _ in groups] == ["2021", "2020"]
    assert [p.title for p in groups[1][1]] == ["b", "a"]


def test_discard_removes_only_that_page():
    a = make_page("a", "2020-01-01")
    b = make_page("b", "2020-01-02")
    articles = ArticleCollection([b, a])
    articles.discard(b)
    articles.discard(make_page("c", "2020-01-03"))
    assert articles == [a]
