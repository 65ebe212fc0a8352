import textwrap
from pathlib import Path

import pytest

from mab2erb.config import ConvertOptions
from mab2erb.converter import convert_source
from mab2erb.engine import NodeDispatcher, convert

from tests.infrastructure.file_utils import write_mab


@pytest.fixture
def options() -> ConvertOptions:
    return ConvertOptions()


@pytest.fixture
def dispatcher(options) -> NodeDispatcher:
    return NodeDispatcher(options)


@pytest.fixture
def to_erb():
    """Converts a node tree; keyword arguments become ConvertOptions fields."""
    def _convert(root, **opts):
        return convert(root, ConvertOptions(**opts))
    return _convert


@pytest.fixture
def mab_to_erb():
    """Converts Markaby source (dedented) into ERB."""
    def _convert(source: str, **opts):
        return convert_source(textwrap.dedent(source).strip() + "\n", ConvertOptions(**opts))
    return _convert


@pytest.fixture
def mab_project(tmp_path: Path) -> Path:
    """Small view tree: two templates, a partial and a file that does not parse."""
    views = tmp_path / "views"
    write_mab(views / "posts" / "index.html.mab", """
        h1 "Posts"
        @posts.each do |post|
          div.post do
            h2 post.title
          end
        end
    """)
    write_mab(views / "posts" / "_form.html.mab", """
        form_tag posts_path do
          text_field_tag :title
        end
    """)
    write_mab(views / "layouts" / "application.html.mab", """
        html do
          body do
            yield
          end
        end
    """)
    write_mab(views / "broken" / "bad.html.mab", """
        div do
          p "unterminated"
    """)
    return tmp_path
