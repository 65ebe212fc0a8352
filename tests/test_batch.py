import io

import pytest

from mab2erb.batch import SourceFile, discover, run_batch, target_path
from mab2erb.config import ConvertOptions
from mab2erb.errors import ConfigError

from tests.infrastructure import read_erb, write_mab


INDEX_ERB = """\
<h1>Posts</h1>
<% @posts.each do |post| %>
  <div class="post">
    <h2><%= post.title %></h2>
  </div>
<% end %>"""


class TestDiscover:

    def test_finds_templates_recursively(self, mab_project):
        found = discover([mab_project / "views"])
        assert [f.relative.as_posix() for f in found] == [
            "broken/bad.html.mab",
            "layouts/application.html.mab",
            "posts/_form.html.mab",
            "posts/index.html.mab",
        ]

    def test_exclude_patterns(self, mab_project):
        found = discover([mab_project / "views"], exclude=["broken/"])
        assert len(found) == 3
        assert all(not f.relative.as_posix().startswith("broken/") for f in found)

    def test_glob_exclude(self, mab_project):
        found = discover([mab_project / "views"], exclude=["_*.mab"])
        assert "posts/_form.html.mab" not in [f.relative.as_posix() for f in found]

    def test_explicit_file_and_duplicates(self, mab_project):
        index = mab_project / "views" / "posts" / "index.html.mab"
        found = discover([index, mab_project / "views" / "posts"])
        assert [f.path.name for f in found] == ["index.html.mab", "_form.html.mab"]

    def test_missing_path(self, tmp_path):
        with pytest.raises(ConfigError, match="Path not found"):
            discover([tmp_path / "nope"])


class TestTargetPath:

    def test_suffix_is_replaced(self, tmp_path):
        item = SourceFile(tmp_path / "posts" / "index.html.mab", tmp_path)
        assert target_path(item) == tmp_path / "posts" / "index.html.erb"

    def test_other_suffix_is_kept(self, tmp_path):
        item = SourceFile(tmp_path / "page.rb", tmp_path)
        assert target_path(item) == tmp_path / "page.rb.erb"

    def test_out_dir_mirrors_tree(self, tmp_path):
        item = SourceFile(tmp_path / "src" / "posts" / "index.html.mab", tmp_path / "src")
        assert target_path(item, tmp_path / "out") == tmp_path / "out" / "posts" / "index.html.erb"


class TestRunBatch:

    def test_converts_and_reports_failures(self, mab_project):
        views = mab_project / "views"
        report = run_batch([views])

        assert report.total == 4
        assert report.converted == 3
        assert not report.ok
        (failure,) = report.failures
        assert failure.error == "ParseError"
        assert failure.path.endswith("bad.html.mab")
        assert read_erb(views / "posts" / "index.html.erb") == INDEX_ERB
        assert not (views / "broken" / "bad.html.erb").exists()

    def test_helper_block(self, mab_project):
        views = mab_project / "views"
        run_batch([views / "posts" / "_form.html.mab"])
        assert read_erb(views / "posts" / "_form.html.erb").split("\n") == [
            "<% form_tag posts_path do %>",
            "  <%= text_field_tag :title %>",
            "<% end %>",
        ]

    def test_layout(self, mab_project):
        views = mab_project / "views"
        run_batch([views / "layouts"])
        assert read_erb(views / "layouts" / "application.html.erb").split("\n") == [
            "<html>",
            "  <body>",
            "    <%= yield %>",
            "  </body>",
            "</html>",
        ]

    def test_out_dir(self, mab_project, tmp_path):
        out = tmp_path / "out"
        report = run_batch([mab_project / "views"], out_dir=out, exclude=["broken/"])
        assert report.ok
        assert len(report.written) == 3
        assert read_erb(out / "posts" / "index.html.erb") == INDEX_ERB
        assert not (mab_project / "views" / "posts" / "index.html.erb").exists()

    def test_check_writes_nothing(self, mab_project):
        views = mab_project / "views"
        report = run_batch([views], check=True, exclude=["broken/"])
        assert report.converted == 3
        assert report.written == []
        assert list(views.rglob("*.erb")) == []

    def test_stream(self, mab_project):
        out = io.StringIO()
        run_batch([mab_project / "views" / "posts" / "index.html.mab"], stream=out)
        assert out.getvalue() == INDEX_ERB + "\n"

    def test_conversion_error_does_not_stop_the_run(self, tmp_path):
        write_mab(tmp_path / "a.mab", "def helper\nend")
        write_mab(tmp_path / "b.mab", 'p "ok"')
        report = run_batch([tmp_path])
        assert report.converted == 1
        assert report.failures[0].error == "ConversionError"
        assert read_erb(tmp_path / "b.erb") == "<p>ok</p>"

    def test_options_are_applied(self, tmp_path):
        write_mab(tmp_path / "page.mab", "h1 title")
        run_batch([tmp_path], ConvertOptions(default_to_instance_scope=True))
        assert read_erb(tmp_path / "page.erb") == "<h1><%= @title %></h1>"
