"""Tests for the qrpath command line."""

import pytest

from qrpath.cli import build_parser, main


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args(["generate", "hi"])
        assert args.ecc == "M"
        assert args.mask == -1
        assert (args.min_version, args.max_version) == (1, 40)
        assert args.output == "output/qr.svg"

    @pytest.mark.parametrize("value, expected", [("auto", -1), ("0", 0), ("7", 7)])
    def test_mask_values(self, value, expected):
        assert build_parser().parse_args(["generate", "hi", "-m", value]).mask == expected

    @pytest.mark.parametrize("value", ["8", "-1", "x"])
    def test_bad_mask(self, value):
        with pytest.raises(SystemExit) as excinfo:
            build_parser().parse_args(["generate", "hi", "-m", value])
        assert excinfo.value.code == 2


class TestGenerate:

    def test_svg(self, tmp_path, capsys):
        out = tmp_path / "nested" / "qr.svg"
        main(["generate", "hello", "-o", str(out), "--color", "#333"])
        svg = out.read_text(encoding="utf-8")
        assert svg.startswith("<svg ")
        assert 'stroke="#333"' in svg
        assert "Generated:" in capsys.readouterr().out

    def test_png(self, tmp_path):
        from PIL import Image

        out = tmp_path / "qr.png"
        main(["generate", "hello", "-o", str(out), "--box-size", "3", "--border", "1"])
        with Image.open(out) as img:
            assert img.size == (23 * 3, 23 * 3)

    def test_terminal(self, capsys):
        main(["generate", "hello", "-o", "-"])
        assert "█" in capsys.readouterr().out

    def test_text_file(self, tmp_path):
        out = tmp_path / "qr.txt"
        main(["generate", "hello", "-o", str(out), "--border", "0"])
        assert len(out.read_text(encoding="utf-8").splitlines()) == 11

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(SystemExit, match="Unsupported output format"):
            main(["generate", "hello", "-o", str(tmp_path / "qr.pdf")])

    def test_data_too_long(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["generate", "A" * 18, "-e", "H", "--max-version", "1", "-o", str(tmp_path / "qr.svg")])
        assert excinfo.value.code == 2
        assert "Data too long" in capsys.readouterr().err

    def test_bad_version_range(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            main(["generate", "hi", "--min-version", "5", "--max-version", "3", "-o", str(tmp_path / "qr.svg")])
        assert excinfo.value.code == 2


class TestOtherCommands:

    def test_bitmap(self, tmp_path, capsys):
        out = tmp_path / "bitmap.png"
        main(["bitmap", "hello", "-o", str(out)])
        assert out.exists()
        stdout = capsys.readouterr().out
        assert "QR Version 1 (21x21 = 441 modules)" in stdout
        assert "Data+ECC:    208" in stdout

    def test_verify_round_trip(self, tmp_path, capsys):
        out = tmp_path / "qr.png"
        main(["generate", "round trip", "-o", str(out)])
        with pytest.raises(SystemExit) as excinfo:
            main(["verify", str(out), "--expected", "round trip", "-d", "opencv"])
        assert excinfo.value.code == 0
        assert "[opencv      ] PASS" in capsys.readouterr().out

    def test_verify_mismatch_exits_1(self, tmp_path, capsys):
        out = tmp_path / "qr.png"
        main(["generate", "one thing", "-o", str(out)])
        with pytest.raises(SystemExit) as excinfo:
            main(["verify", str(out), "--expected", "another", "-d", "opencv"])
        assert excinfo.value.code == 1
        assert "Data mismatch" in capsys.readouterr().out

    def test_no_command(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 1
