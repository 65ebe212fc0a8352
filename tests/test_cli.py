import io
import logging
import sys

import pytest

from mab2erb.cli import main

from tests.infrastructure import jload, read_erb, run_cli, write, write_mab


def _cli_handlers():
    return [h for h in logging.getLogger("mab2erb").handlers if h.get_name() == "mab2erb-cli"]


@pytest.fixture(autouse=True)
def detach_cli_logging():
    yield
    log = logging.getLogger("mab2erb")
    for handler in _cli_handlers():
        log.removeHandler(handler)
    log.setLevel(logging.NOTSET)


@pytest.fixture
def in_project(mab_project, monkeypatch):
    monkeypatch.chdir(mab_project)
    return mab_project


class TestConvertCommand:

    def test_failure_gives_exit_code_1(self, in_project, capsys):
        assert main(["convert", "views"]) == 1
        err = capsys.readouterr().err
        assert "3 of 4 file(s) converted, 1 failed" in err
        assert "bad.html.mab" in err
        assert (in_project / "views" / "posts" / "index.html.erb").is_file()

    def test_exclude(self, in_project, capsys):
        assert main(["convert", "views", "--exclude", "broken/"]) == 0
        assert "3 of 3 file(s) converted, 0 failed" in capsys.readouterr().err

    def test_check(self, in_project):
        assert main(["convert", "views", "--check", "--exclude", "broken/"]) == 0
        assert list((in_project / "views").rglob("*.erb")) == []

    def test_stdout(self, in_project, capsys):
        assert main(["convert", "views/posts/_form.html.mab", "--stdout"]) == 0
        assert capsys.readouterr().out == (
            "<% form_tag posts_path do %>\n"
            "  <%= text_field_tag :title %>\n"
            "<% end %>\n"
        )

    def test_out_dir(self, in_project):
        assert main(["convert", "views", "--out-dir", "erb", "--exclude", "broken/"]) == 0
        assert (in_project / "erb" / "layouts" / "application.html.erb").is_file()

    def test_instance_scope_flag(self, in_project, capsys):
        write_mab(in_project / "page.mab", "h1 title")
        assert main(["convert", "page.mab", "--stdout", "--instance-scope"]) == 0
        assert capsys.readouterr().out == "<h1><%= @title %></h1>\n"

    def test_errors_json(self, in_project):
        assert main(["convert", "views", "--errors-json", "errors.json"]) == 1
        data = jload(in_project / "errors.json")
        assert data["total"] == 4
        assert [f["error"] for f in data["failures"]] == ["ParseError"]
        assert data["failures"][0]["path"].endswith("bad.html.mab")


class TestUsageErrors:

    def test_stdout_with_out_dir(self, in_project, capsys):
        assert main(["convert", "views", "--stdout", "--out-dir", "erb"]) == 2
        assert "--stdout cannot be combined with --out-dir" in capsys.readouterr().err

    def test_missing_config(self, in_project, capsys):
        assert main(["convert", "views", "--config", "missing.yaml"]) == 2
        assert "Config file not found" in capsys.readouterr().err

    def test_missing_path(self, in_project, capsys):
        assert main(["convert", "nowhere"]) == 2
        assert "Path not found" in capsys.readouterr().err


class TestConfigFile:

    def test_project_config_is_picked_up(self, in_project, capsys):
        write(in_project / "mab2erb.yaml", "exclude:\n  - broken/\noptions:\n  default_to_instance_scope: true\n")
        write_mab(in_project / "views" / "page.mab", "h1 title")
        assert main(["convert", "views"]) == 0
        assert read_erb(in_project / "views" / "page.erb") == "<h1><%= @title %></h1>"

    def test_vocabulary_extension(self, in_project, capsys):
        write(in_project / "extra.yaml", "vocabulary:\n  helpers: [javascript_tag]\n")
        write_mab(in_project / "js.mab", 'javascript_tag "go()"')
        assert main(["convert", "js.mab", "--stdout", "--config", "extra.yaml"]) == 0
        assert capsys.readouterr().out == '<%= javascript_tag "go()" %>\n'


class TestSubprocess:

    def test_module_entry_point(self, mab_project):
        cp = run_cli(mab_project, "convert", "views", "--exclude", "broken/")
        assert cp.returncode == 0, cp.stderr
        assert read_erb(mab_project / "views" / "posts" / "_form.html.erb").startswith("<% form_tag")

    def test_failure_exit_code(self, mab_project):
        cp = run_cli(mab_project, "convert", "views")
        assert cp.returncode == 1
        assert "Syntax error" in cp.stderr

    def test_version(self, mab_project):
        cp = run_cli(mab_project, "--version")
        assert cp.returncode == 0
        assert cp.stdout.startswith("mab2erb ")


class TestLogging:

    def test_each_run_writes_to_current_stderr(self, in_project, monkeypatch):
        first = io.StringIO()
        monkeypatch.setattr(sys, "stderr", first)
        assert main(["convert", "views", "--exclude", "broken/"]) == 0
        first.close()

        second = io.StringIO()
        monkeypatch.setattr(sys, "stderr", second)
        assert main(["convert", "views", "--exclude", "broken/", "-v"]) == 0
        assert "3 of 3 file(s) converted, 0 failed" in second.getvalue()
        (handler,) = _cli_handlers()
        assert handler.stream is second
        assert logging.getLogger("mab2erb").level == logging.INFO
