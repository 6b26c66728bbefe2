"""main モジュールのテスト（HTTP はモック）."""

from unittest.mock import MagicMock, patch

import pytest
import requests
from PIL import Image

from conftest import load_fixture_bytes, make_response, png_bytes
from storesearch.main import run


@pytest.fixture(autouse=True)
def log_dir(tmp_path):
    with patch("storesearch.main.LOG_DIR", tmp_path / "logs"):
        yield tmp_path / "logs"


def _http(get) -> MagicMock:
    http = MagicMock()
    http.get.side_effect = get
    return http


class TestRun:
    """run のテスト."""

    @patch("storesearch.main.requests.Session")
    def test_list(self, mock_session_cls, capsys):
        mock_session_cls.return_value = _http(
            lambda url, **kw: make_response(200, load_fixture_bytes("search_response.json"))
        )

        code = run(["drake", "--category", "music"])

        assert code == 0
        out = capsys.readouterr().out
        lines = out.splitlines()
        assert lines[0] == "  1. Drake Calculator"
        assert lines[1] == "     Drake Labs (App)"
        assert "Unknown" in lines[3]
        url = mock_session_cls.return_value.get.call_args.args[0]
        assert url.endswith("term=drake&limit=200&entity=musicTrack")

    @patch("storesearch.main.requests.Session")
    def test_nothing_found(self, mock_session_cls, capsys):
        mock_session_cls.return_value = _http(
            lambda url, **kw: make_response(200, b'{"results": []}')
        )

        assert run(["qwertyuiop"]) == 0
        assert capsys.readouterr().out.strip() == "(Nothing found)"

    @patch("storesearch.main.requests.Session")
    def test_network_error(self, mock_session_cls, capsys):
        def get(url, **kw):
            raise requests.ConnectionError("dns")

        mock_session_cls.return_value = _http(get)

        assert run(["drake"]) == 1
        assert "error accessing the iTunes Store" in capsys.readouterr().err

    @patch("storesearch.main.requests.Session")
    def test_invalid_input(self, mock_session_cls, capsys):
        mock_session_cls.return_value = _http(lambda url, **kw: None)

        assert run(["   "]) == 1
        mock_session_cls.return_value.get.assert_not_called()

    @patch("storesearch.main.requests.Session")
    def test_detail_with_artwork(self, mock_session_cls, capsys, tmp_path):
        def get(url, **kw):
            if "itunes.apple.com" in url:
                return make_response(200, load_fixture_bytes("search_response.json"))
            return make_response(200, png_bytes((4, 4)))

        mock_session_cls.return_value = _http(get)
        out_path = tmp_path / "art.png"

        code = run(["drake", "--detail", "2", "--artwork-out", str(out_path)])

        assert code == 0
        out = capsys.readouterr().out
        assert "Name:   Drake's Voyage" in out
        assert "Artist: Unknown" in out
        assert "Type:   EBook" in out
        assert "Price:  $9.99" in out
        with Image.open(out_path) as image:
            assert image.size == (4, 4)

    @patch("storesearch.main.requests.Session")
    def test_detail_artwork_failure(self, mock_session_cls, capsys, tmp_path):
        def get(url, **kw):
            if "itunes.apple.com" in url:
                return make_response(200, load_fixture_bytes("search_response.json"))
            return make_response(404, b"")

        mock_session_cls.return_value = _http(get)
        out_path = tmp_path / "art.png"

        assert run(["drake", "-d", "1", "--artwork-out", str(out_path)]) == 0
        assert not out_path.exists()

    @patch("storesearch.main.requests.Session")
    def test_detail_out_of_range(self, mock_session_cls):
        mock_session_cls.return_value = _http(
            lambda url, **kw: make_response(200, load_fixture_bytes("search_response.json"))
        )

        assert run(["drake", "--detail", "99"]) == 2

    @patch("storesearch.main.webbrowser.open")
    @patch("storesearch.main.requests.Session")
    def test_open_store(self, mock_session_cls, mock_open):
        mock_session_cls.return_value = _http(
            lambda url, **kw: make_response(200, load_fixture_bytes("search_response.json"))
        )

        assert run(["drake", "--detail", "1", "--open"]) == 0
        mock_open.assert_called_once_with(
            "https://apps.apple.com/us/app/drake-calculator/id123456789?uo=4"
        )
