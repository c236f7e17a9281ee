import json
import logging
from pathlib import Path

import pytest

from inkwell.build import build_pages, build_site, clean, find_collisions
from inkwell.config import load_config
from inkwell.errors import BuildFailed, DestinationCollisionError
from inkwell.templates import OutputFile

PAGE_TEMPLATE = """<html>
  <head>
    <title>{{ page.title }} | {{ site.title }}</title>
    <link rel="stylesheet" href="{{ asset_url('assets/css/main.css') }}">
  </head>
  <body>{{ page.content }}</body>
</html>
"""

ARTICLE_TEMPLATE = """<html><body>
<h1>{{ page.title }}</h1>
<time>{{ page.date | date_format }}</time>
{{ page.content }}
</body></html>
"""

ATOM_TEMPLATE = (
    "<feed>{% for a in site.articles %}"
    "<entry>{{ a.title }}|{{ a.date | isoformat }}|{{ site.base_url }}{{ a.permalink }}</entry>"
    "{% endfor %}</feed>\n"
)

INDEX_PAGE = """---
title: Home
---
<ul>{% for a in site.articles %}<li><a href="{{ a.link }}">{{ a.title }}</a>{{ a.excerpt }}</li>{% endfor %}</ul>
"""

CONFIG = """site:
  title: Test Blog
  url: https://blog.example.com
  build_time: "2020-03-01T00:00:00+00:00"
"""


def create_project(root: Path, config: str = "") -> Path:
    for folder in ["articles", "pages", "templates", "static/img", "assets/js", "assets/css"]:
        (root / folder).mkdir(parents=True, exist_ok=True)
    (root / "inkwell.yaml").write_text(CONFIG + config, encoding="utf-8")
    (root / "templates" / "page.html").write_text(PAGE_TEMPLATE, encoding="utf-8")
    (root / "templates" / "article.html").write_text(ARTICLE_TEMPLATE, encoding="utf-8")
    (root / "templates" / "atom.xml").write_text(ATOM_TEMPLATE, encoding="utf-8")
    (root / "articles" / "2020-01-01-first.md").write_text(
        "---\ntitle: First\n---\nFirst post body.\n\nMore.\n", encoding="utf-8"
    )
    (root / "articles" / "2020-02-01-second.md").write_text(
        "---\ntitle: Second\nlink: https://example.com/\n---\nA link post.\n",
        encoding="utf-8",
    )
    (root / "pages" / "index.html").write_text(INDEX_PAGE, encoding="utf-8")
    (root / "pages" / "about.md").write_text(
        "---\ntitle: About\n---\n## Who\n\nMe.\n", encoding="utf-8"
    )
    (root / "pages" / "atom.xml").write_text(
        "---\ntemplate: atom.xml\n---\n", encoding="utf-8"
    )
    (root / "pages" / "robots.txt").write_text("User-agent: *\n", encoding="utf-8")
    (root / "static" / ".nojekyll").write_text("", encoding="utf-8")
    (root / "static" / "img" / "dot.txt").write_text("dot", encoding="utf-8")
    (root / "assets" / "js" / "app.js").write_text(
        "function add(a, b) {\n  // sum\n  return a + b;\n}\n", encoding="utf-8"
    )
    (root / "assets" / "css" / "main.less").write_text(
        "body {\n  color: red;\n}\n", encoding="utf-8"
    )
    return root


@pytest.fixture(autouse=True)
def no_lessc(monkeypatch):
    monkeypatch.setattr("inkwell.asset_processors.find_executable", lambda *a, **k: None)


def snapshot(root: Path) -> dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


def test_build_site_writes_expected_tree(tmp_path):
    settings = load_config(create_project(tmp_path), production=False)
    result = build_site(settings)
    assert result.ok
    build = settings.build_root

    files = snapshot(build)
    for name in [
        "index.html",
        "about/index.html",
        "articles/first/index.html",
        "articles/second/index.html",
        "atom.xml",
        "robots.txt",
        ".nojekyll",
        "img/dot.txt",
        "assets/js/app.js",
        "assets/css/main.css",
    ]:
        assert name in files

    index = files["index.html"].decode("utf-8")
    assert index.index("Second") < index.index("First")
    assert '<a href="https://example.com/">Second</a>' in index
    assert '<a href="/articles/first/">First</a><p>First post body.</p>' in index
    assert 'href="/assets/css/main.css"' in index

    first = files["articles/first/index.html"].decode("utf-8")
    assert "<time>1 January 2020</time>" in first

    about = files["about/index.html"].decode("utf-8")
    assert 'id="who"' in about

    atom = files["atom.xml"].decode("utf-8")
    assert "Second|2020-02-01T00:00:00-07:00|http://localhost:4000/articles/second/" in atom
    assert files["robots.txt"] == b"User-agent: *\n"
    assert files["assets/css/main.css"] == b"body {\n  color: red;\n}\n"


def test_builds_are_byte_identical(tmp_path):
    settings = load_config(create_project(tmp_path), production=False)
    build_site(settings)
    first = snapshot(settings.build_root)
    build_site(settings)
    assert snapshot(settings.build_root) == first


def test_failing_page_does_not_stop_the_build(tmp_path):
    project = create_project(tmp_path)
    (project / "pages" / "broken.html").write_text(
        "---\ntitle: Broken\n---\n{% if %}\n", encoding="utf-8"
    )
    settings = load_config(project, production=False)
    result = build_site(settings)
    assert not result.ok
    assert [e.source_path for e in result.errors] == [Path("pages/broken.html")]
    assert (settings.build_root / "about" / "index.html").exists()
    assert not (settings.build_root / "broken").exists()


def test_failed_article_is_left_out_of_listings(tmp_path):
    project = create_project(tmp_path)
    (project / "articles" / "2020-03-01-broken.md").write_text(
        "---\ntitle: Broken\n---\n{% if %}\n", encoding="utf-8"
    )
    settings = load_config(project, production=False)
    result = build_site(settings)
    assert [e.source_path for e in result.errors] == [Path("articles/2020-03-01-broken.md")]
    assert [a.title for a in result.site.articles] == ["Second", "First"]
    assert not (settings.build_root / "articles" / "broken").exists()
    assert "Broken" not in (settings.build_root / "index.html").read_text(encoding="utf-8")
    assert "Broken" not in (settings.build_root / "atom.xml").read_text(encoding="utf-8")


def test_fail_fast_stops_at_first_error(tmp_path):
    project = create_project(tmp_path, "fail_fast: true\n")
    (project / "articles" / "undated.md").write_text("---\ntitle: U\n---\nx", encoding="utf-8")
    settings = load_config(project, production=False)
    with pytest.raises(BuildFailed) as excinfo:
        build_site(settings)
    assert excinfo.value.errors[0].source_path == Path("articles/undated.md")


def test_collision_is_an_error_before_writing(tmp_path):
    project = create_project(tmp_path)
    (project / "pages" / "about.html").write_text(
        "---\ntitle: Other about\n---\nother", encoding="utf-8"
    )
    settings = load_config(project, production=False)
    with pytest.raises(DestinationCollisionError) as excinfo:
        build_site(settings)
    dest = settings.build_root / "about" / "index.html"
    assert excinfo.value.collisions == {
        dest: [Path("pages/about.html"), Path("pages/about.md")]
    }
    assert not dest.exists()
    assert not (settings.build_root / "index.html").exists()


def test_collision_warn_keeps_last_write(tmp_path, caplog):
    project = create_project(tmp_path, "on_collision: warn\n")
    (project / "pages" / "about.html").write_text(
        "---\ntitle: Other about\n---\nother", encoding="utf-8"
    )
    settings = load_config(project, production=False)
    with caplog.at_level(logging.WARNING, logger="inkwell"):
        result = build_site(settings)
    assert result.ok
    assert "about/index.html is written by" in caplog.text
    about = (settings.build_root / "about" / "index.html").read_text(encoding="utf-8")
    assert "<title>About | Test Blog</title>" in about


def test_production_build_minifies_and_fingerprints(tmp_path):
    settings = load_config(create_project(tmp_path), production=True)
    result = build_site(settings)
    assert result.ok
    build = settings.build_root

    manifest = json.loads((build / "assets" / "manifest.json").read_text(encoding="utf-8"))
    css = manifest["assets/css/main.css"]
    js = manifest["assets/js/app.js"]
    assert css.startswith("assets/css/main.") and css != "assets/css/main.css"
    assert js.startswith("assets/js/app.") and js != "assets/js/app.js"
    assert not (build / "assets" / "css" / "main.css").exists()
    assert (build / css).read_text(encoding="utf-8") == "body{color:red}"
    assert "// sum" not in (build / js).read_text(encoding="utf-8")

    index = (build / "index.html").read_text(encoding="utf-8")
    assert f"/{css}" in index
    assert "\n    <title>" not in index

    atom = (build / "atom.xml").read_text(encoding="utf-8")
    assert "https://blog.example.com/articles/second/" in atom


def test_build_pages_alone_uses_existing_manifest(tmp_path):
    settings = load_config(create_project(tmp_path), production=True)
    build_site(settings)
    manifest = json.loads(
        (settings.build_root / "assets" / "manifest.json").read_text(encoding="utf-8")
    )
    result = build_pages(settings)
    assert result.ok
    index = (settings.build_root / "index.html").read_text(encoding="utf-8")
    assert manifest["assets/css/main.css"] in index


def test_clean_removes_build_root(tmp_path):
    settings = load_config(create_project(tmp_path), production=False)
    build_site(settings)
    clean(settings)
    assert not settings.build_root.exists()
    clean(settings)


def test_find_collisions():
    outputs = [
        OutputFile(Path("/b/x/index.html"), b"1", Path("pages/x.md")),
        OutputFile(Path("/b/y/index.html"), b"2", Path("pages/y.md")),
        OutputFile(Path("/b/x/index.html"), b"3", Path("pages/x.html")),
    ]
    assert find_collisions(outputs) == {
        Path("/b/x/index.html"): [Path("pages/x.md"), Path("pages/x.html")]
    }
