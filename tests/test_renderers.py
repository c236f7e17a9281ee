from inkwell.renderers import MarkdownRenderer, generate_heading_id


def render(text):
    return MarkdownRenderer().render(text)


def test_paragraph_and_emphasis():
    assert "<p>Hello <em>world</em></p>" in render("Hello *world*")


def test_level_one_heading_has_no_anchor():
    html = render("# Title")
    assert "<h1>Title</h1>" in html
    assert "header-anchor" not in html


def test_level_two_heading_gets_anchor():
    html = render("## Getting Started")
    assert '<h2 id="getting-started">' in html
    assert '<a class="header-anchor" href="#getting-started"' in html


def test_duplicate_headings_get_unique_ids():
    html = render("## Notes\n\ntext\n\n## Notes\n")
    assert 'id="notes"' in html
    assert 'id="notes-1"' in html


def test_heading_ids_reset_between_documents():
    renderer = MarkdownRenderer()
    renderer.render("## Notes")
    assert 'id="notes"' in renderer.render("## Notes")


def test_footnotes():
    html = render("Text[^1]\n\n[^1]: The note.\n")
    assert 'class="footnote-ref"' in html
    assert "The note." in html


def test_highlighted_code_block():
    html = render("```python\nprint('hi')\n```\n")
    assert 'class="highlight"' in html


def test_plain_code_block_marks_bold_spans():
    html = render("```\nlet **x** = 1 < 2\n```\n")
    assert "<mark>x</mark>" in html
    assert "&lt;" in html


def test_unknown_language_falls_back_to_plain_block():
    html = render("```nosuchlang\nsome code\n```\n")
    assert '<code class="language-nosuchlang">' in html


def test_tables_and_raw_html():
    html = render('| a | b |\n|---|---|\n| 1 | 2 |\n\n<div class="x">y</div>\n')
    assert "<table>" in html
    assert '<div class="x">y</div>' in html


def test_generate_heading_id():
    assert generate_heading_id("Hello <code>World</code>!") == "hello-world"
