"""Test the command line launcher."""

import pytest

from autoqa import cli
from autoqa.cli import APP_PATH, build_streamlit_argv, create_parser


class TestCLI:

    def test_defaults(self):
        args = create_parser().parse_args([])

        assert args.port == 8501
        assert args.settings_file is None
        assert not args.verbose

    def test_streamlit_argv(self):
        args = create_parser().parse_args(["--port", "8600"])

        assert build_streamlit_argv(args) == ["streamlit", "run", str(APP_PATH), "--server.port", "8600"]

    def test_app_path_points_at_ui(self):
        assert APP_PATH.name == "app.py"
        assert APP_PATH.exists()

    def test_main_passes_settings_to_app(self, tmp_path, monkeypatch):
        from streamlit.web import cli as stcli

        calls = []

        def fake_main():
            calls.append(list(cli.sys.argv))
            raise SystemExit(0)

        monkeypatch.setattr(stcli, "main", fake_main)
        monkeypatch.setattr(cli.sys, "argv", ["autoqa"])
        # main() writes these; setenv registers them for restore on teardown
        monkeypatch.setenv("AUTOQA_SETTINGS_FILE", "")
        monkeypatch.setenv("AUTOQA_VERBOSE", "")
        settings_file = tmp_path / "settings.json"

        code = cli.main(["--settings-file", str(settings_file), "-v"])

        assert code == 0
        assert calls[0][:2] == ["streamlit", "run"]
        assert cli.os.environ["AUTOQA_SETTINGS_FILE"] == str(settings_file)
        assert cli.os.environ["AUTOQA_VERBOSE"] == "1"

    def test_interrupt(self, monkeypatch):
        from streamlit.web import cli as stcli

        def interrupted():
            raise KeyboardInterrupt

        monkeypatch.setattr(stcli, "main", interrupted)
        monkeypatch.setattr(cli.sys, "argv", ["autoqa"])

        assert cli.main([]) == 130

    def test_invalid_port(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--port", "http"])
