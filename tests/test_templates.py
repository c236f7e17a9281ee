from datetime import date, datetime, timezone
from pathlib import Path, PurePosixPath

import pytest

from inkwell.asset_resolver import AssetManifest
from inkwell.config import Settings
from inkwell.content import Page, Site
from inkwell.templates import TemplateEngine, format_date, isoformat


def make_engine(tmp_path, strict=False, templates=None, manifest=None):
    tpl = tmp_path / "templates"
    tpl.mkdir(parents=True)
    templates = templates or {
        "page.html": "<title>{{ page.title }} | {{ site.title }}</title>{{ page.content }}",
        "article.html": "<article>{{ page.date | date_format }}{{ page.content }}</article>",
    }
    for name, body in templates.items():
        (tpl / name).write_text(body, encoding="utf-8")
    settings = Settings(project_root=tmp_path, strict_templates=strict)
    settings.site.update({"title": "Test Site", "build_time": "2020-03-01T00:00:00+00:00"})
    site = Site.from_settings(settings)
    return TemplateEngine(settings, site, manifest=manifest), settings


def make_page(path="pages/about.md", permalink="/about/", **kwargs):
    return Page(source_path=PurePosixPath(path), permalink=permalink, **kwargs)


def test_body_is_rendered_as_template(tmp_path):
    engine, settings = make_engine(tmp_path)
    page = make_page(title="About", contents="<p>Hello {{ site.title }}</p>")
    result = engine.render_page(page)
    assert result.ok
    assert result.output.path == settings.build_root / "about" / "index.html"
    assert result.output.data.decode("utf-8") == (
        "<title>About | Test Site</title><p>Hello Test Site</p>"
    )
    assert page.content == "<p>Hello Test Site</p>"


def test_named_template(tmp_path):
    engine, _ = make_engine(tmp_path)
    page = make_page(
        path="articles/2020-01-02-a.md",
        permalink="/articles/a/",
        template="article.html",
        date="2020-01-02T00:00:00-07:00",
        contents="Body",
    )
    result = engine.render_page(page)
    assert result.output.data.decode("utf-8") == "<article>2 January 2020Body</article>"


def test_missing_template_is_reported(tmp_path):
    engine, _ = make_engine(tmp_path)
    result = engine.render_page(make_page(template="missing.html"))
    assert not result.ok
    assert result.output is None
    assert result.error.source_path == Path("pages/about.md")
    assert "Template not found: missing.html" in result.error.message


def test_syntax_error_in_body_is_reported(tmp_path):
    engine, _ = make_engine(tmp_path)
    result = engine.render_page(make_page(contents="{% if %}"))
    assert not result.ok
    assert "Template syntax error" in result.error.message


def test_undefined_variables(tmp_path):
    lenient, _ = make_engine(tmp_path / "lenient")
    assert lenient.render_page(make_page(contents="[{{ nope }}]")).ok

    strict, _ = make_engine(tmp_path / "strict", strict=True)
    result = strict.render_page(make_page(contents="[{{ nope }}]"))
    assert not result.ok
    assert "Undefined variable" in result.error.message


def test_listing_reads_site_articles(tmp_path):
    engine, _ = make_engine(
        tmp_path, templates={"page.html": "{{ page.content }}"}
    )
    for name in ["a", "b"]:
        engine.site.articles.prepend(
            make_page(path=f"articles/{name}.md", permalink=f"/articles/{name}/", title=name)
        )
    page = make_page(
        path="pages/index.html",
        permalink="/",
        contents="{% for a in site.articles %}<li>{{ a.title }}</li>{% endfor %}",
    )
    assert engine.render_page(page).output.data == b"<li>b</li><li>a</li>"


def test_asset_url(tmp_path):
    build = tmp_path / "build" / "assets" / "css"
    build.mkdir(parents=True)
    (build / "main.1a2b3c4d.css").write_text("body{}", encoding="utf-8")
    manifest = AssetManifest(
        tmp_path / "build", {"assets/css/main.css": "assets/css/main.1a2b3c4d.css"}
    )
    engine, _ = make_engine(
        tmp_path,
        templates={
            "page.html": "{{ asset_url('assets/css/main.css') }}"
            "|{{ inline_asset('/assets/css/main.css') }}"
        },
        manifest=manifest,
    )
    result = engine.render_page(make_page())
    assert result.output.data == b"/assets/css/main.1a2b3c4d.css|body{}"

    broken = make_page(contents="{{ asset_url('assets/js/missing.js') }}")
    result = engine.render_page(broken)
    assert not result.ok
    assert "missing.js" in result.error.message


def test_format_date():
    assert format_date("2020-01-02T00:00:00-07:00", "%-d %B %Y") == "2 January 2020"
    # converted to UTC before formatting
    assert format_date("2020-01-02T20:00:00-07:00", "%Y-%m-%d") == "2020-01-03"
    assert format_date(date(2020, 3, 4), "%-d/%-m/%Y") == "4/3/2020"
    with pytest.raises(TypeError):
        format_date(42, "%Y")


def test_isoformat():
    assert isoformat("2020-01-02T00:00:00-07:00") == "2020-01-02T00:00:00-07:00"
    moment = datetime(2020, 1, 2, tzinfo=timezone.utc)
    assert isoformat(moment) == "2020-01-02T00:00:00+00:00"
