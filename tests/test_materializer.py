"""Tests for turning attachments into message segments."""

from __future__ import annotations

from quarry.materializer import image_mime, materialize, materialize_one
from quarry.models.content import BinarySegment, TextSegment


class TestImageMime:
    def test_known_extensions(self):
        assert image_mime("a.PNG") == "image/png"
        assert image_mime("a.jpg") == "image/jpeg"
        assert image_mime("a.jpeg") == "image/jpeg"
        assert image_mime("a.webp") == "image/webp"

    def test_non_image(self):
        assert image_mime("notes.txt") is None
        assert image_mime("Makefile") is None


class TestMaterialize:
    def test_image_becomes_label_and_bytes(self, tmp_path):
        img = tmp_path / "page-1.png"
        img.write_bytes(b"\x89PNG\r\n")
        assert materialize_one(img) == [
            TextSegment("[Image: page-1.png]"),
            BinarySegment(b"\x89PNG\r\n", "image/png"),
        ]

    def test_text_file_is_inlined(self, tmp_path):
        f = tmp_path / "notes.md"
        f.write_text("# Notes\nline", encoding="utf-8")
        assert materialize_one(str(f)) == [
            TextSegment("\n\n--- Content of notes.md ---\n# Notes\nline\n---\n")
        ]

    def test_undecodable_bytes_are_replaced(self, tmp_path):
        f = tmp_path / "blob.bin"
        f.write_bytes(b"ok\xff\xfe")
        (seg,) = materialize_one(f)
        assert "ok�" in seg.text

    def test_unreadable_image(self, tmp_path):
        assert materialize_one(tmp_path / "gone.jpg") == [
            TextSegment("[Could not read image: gone.jpg]")
        ]

    def test_unreadable_file(self, tmp_path):
        assert materialize_one(tmp_path / "gone.txt") == [
            TextSegment("[Could not read file: gone.txt]")
        ]

    def test_batch_keeps_order_and_survives_failures(self, tmp_path):
        a = tmp_path / "a.txt"
        a.write_text("A")
        b = tmp_path / "b.png"
        b.write_bytes(b"B")
        segments = materialize([a, tmp_path / "missing.txt", b])
        assert [type(s) for s in segments] == [TextSegment, TextSegment, TextSegment, BinarySegment]
        assert "Content of a.txt" in segments[0].text
        assert segments[1].text == "[Could not read file: missing.txt]"
        assert segments[2].text == "[Image: b.png]"

    def test_empty_locators_skipped(self):
        assert materialize([None, ""]) == []

    def test_directory_is_unreadable(self, tmp_path):
        d = tmp_path / "folder"
        d.mkdir()
        assert materialize([d]) == [TextSegment("[Could not read file: folder]")]
