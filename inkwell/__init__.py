"""Inkwell static site builder.

Inkwell turns a tree of articles and pages (Markdown or HTML with a YAML
front-matter block) into a static site using Jinja2 templates. It also
compiles and minifies the site's stylesheet and script, copies static files,
and runs a development server with live reload.

The CLI module is the main entry point and exposes one command per build
task (``clean``, ``js``, ``less``, ``static``, ``pages``, ``build``,
``serve``) plus ``article`` for starting a new article.
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
