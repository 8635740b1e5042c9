from __future__ import annotations

from pathlib import Path

from conftest import make_png
from pagefolio.cli import main, parse_args


def _site(root: Path, pages=(1, 2), fmt: str = "png") -> Path:
    folder = root / "images" / fmt
    folder.mkdir(parents=True)
    for page_number in pages:
        (folder / f"page_{page_number:02d}.{fmt}").write_bytes(make_png(120, 60))
    return root


def test_build_is_the_default_command():
    args = parse_args(["gallery-root", "--max-pages", "10"])
    assert args.command == "build"
    assert args.base == "gallery-root"
    assert args.max_pages == 10
    assert args.formats == ["avif", "webp", "png"]

    args = parse_args([])
    assert args.command == "build"
    assert args.base == "."


def test_probe_arguments():
    args = parse_args(["probe", "site", "--formats", "webp, png"])
    assert args.command == "probe"
    assert args.formats == ["webp", "png"]


def test_build_writes_gallery_html(tmp_path):
    site = _site(tmp_path / "site")
    (site / "config").mkdir()
    (site / "config" / "hotspots.txt").write_text(
        "2, dQw4w9WgXcQ, 10, 10, 20, 20\n", encoding="utf-8"
    )
    output = tmp_path / "out" / "gallery.html"

    code = main(["build", str(site), "--output", str(output), "--goto", "2"])

    assert code == 0
    html = output.read_text(encoding="utf-8")
    assert 'data-page="1"' in html
    assert 'data-page="2"' in html
    assert 'data-video-id="dQw4w9WgXcQ"' in html


def test_build_debug_prints_render_summary(tmp_path, capsys):
    site = _site(tmp_path / "site", pages=(1,))
    output = tmp_path / "gallery.html"

    assert main([str(site), "--output", str(output), "--debug"]) == 0
    assert "Page renders:" in capsys.readouterr().out


def test_probe_lists_pages_and_formats(tmp_path, capsys):
    site = _site(tmp_path / "site", pages=(1, 2, 4), fmt="webp")

    assert main(["probe", str(site), "--formats", "webp,png"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    rows = [line.split("\t") for line in lines]
    assert [row[:2] for row in rows] == [["1", "webp"], ["2", "webp"], ["4", "webp"]]
    assert {row[3] for row in rows} == {"png"}


def test_probe_without_pages_fails(tmp_path):
    assert main(["probe", str(tmp_path), "--max-pages", "2"]) == 1


def test_invalid_configuration_is_rejected(tmp_path):
    assert main(["probe", str(tmp_path), "--max-pages", "0"]) == 2
