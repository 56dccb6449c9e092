"""Tests for the command line entry point."""

from __future__ import annotations

from unittest.mock import patch

import pytest

import main


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    monkeypatch.setattr(main, "setup_logging", lambda *args, **kwargs: None)


class TestParseMaxDepth:
    def test_valid_depth(self) -> None:
        assert main.parse_max_depth("3", 10) == 3

    @pytest.mark.parametrize("value", ["three", "", "1.5", "-2"])
    def test_invalid_depth_falls_back_with_warning(self, value: str, capsys) -> None:
        assert main.parse_max_depth(value, 10) == 10
        assert "using default [10]" in capsys.readouterr().out


class TestMain:
    def test_missing_arguments_print_usage(self, capsys) -> None:
        assert main.main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_incorrect_url(self, capsys) -> None:
        assert main.main(["not a url", "1"]) == 0
        assert "Incorrect URL: not a url" in capsys.readouterr().out

    def test_incorrect_url_does_not_touch_redis(self, tmp_path, capsys) -> None:
        config_path = tmp_path / "redis.yaml"
        config_path.write_text("registry:\n  type: redis\n")

        with patch("wordcrawler.crawler.scheduler.redis.Redis") as redis_cls:
            code = main.main(["not a url", "1", "--config", str(config_path)])

        assert code == 0
        assert "Incorrect URL: not a url" in capsys.readouterr().out
        redis_cls.assert_not_called()

    def test_wrongly_typed_config_value(self, tmp_path, capsys) -> None:
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("crawler:\n  max_depth: deep\n")

        assert main.main(["http://site.test/", "1", "--config", str(config_path)]) == 1
        assert "crawler.max_depth" in capsys.readouterr().out

    def test_missing_config_file(self, tmp_path, capsys) -> None:
        code = main.main(["http://site.test/", "1", "--config", str(tmp_path / "nope.yaml")])
        assert code == 1
        assert "Configuration file not found" in capsys.readouterr().out

    def test_report_for_local_site(self, tmp_path, capsys) -> None:
        (tmp_path / "index.html").write_text(
            '<html><body>apple apple banana <a href="/next.html">next</a></body></html>'
        )
        (tmp_path / "next.html").write_text("<html><body>apple cherry</body></html>")

        assert main.main([(tmp_path / "index.html").as_uri(), "oops"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "Incorrect max_depth [oops], using default [10]"
        assert lines[1].startswith("Visited urls: ['file://")
        assert "next.html" in lines[1]
        assert lines[2:] == ["apple: 3", "banana: 1", "cherry: 1", "next: 1"]
