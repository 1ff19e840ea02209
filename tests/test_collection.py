"""Tests for pixel sources and directory loading."""

import cv2
import numpy as np
import pytest

from image_retrieval import InvalidInputError, RetrievalEngine
from image_retrieval.collection import (
    ArrayPixelSource, ImageCollection, list_image_files, natural_compare,
    natural_sort_key,
)

from conftest import pack, solid


def write_rgb(path, rgb):
    """Write an RGB image to disk through OpenCV's BGR interface."""
    assert cv2.imwrite(str(path), cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))


class TestNaturalSort:
    """Tests for numeric-aware filename ordering."""

    def test_numbers_sorted_by_value(self):
        names = ["img10.png", "img2.png", "img1.png"]
        assert sorted(names, key=lambda n: n) == ["img1.png", "img10.png", "img2.png"]
        assert sorted(names, key=natural_sort_key) == ["img1.png", "img2.png", "img10.png"]

    def test_leading_zeros_break_ties(self):
        assert natural_compare("a01", "a1") < 0

    def test_prefix_sorts_first(self):
        assert natural_compare("a", "a1") < 0
        assert natural_compare("a1", "a") > 0

    def test_equal(self):
        assert natural_compare("shot7.jpg", "shot7.jpg") == 0

    def test_text_runs_lexicographic(self):
        assert natural_compare("b1", "a2") > 0

    def test_non_decimal_digits_compared_as_text(self):
        # Superscripts are digits to str.isdigit but not to int()
        assert natural_compare("\u00b2a.png", "\u00b2b.png") < 0
        assert sorted(["\u00b2b.png", "\u00b2a.png"], key=natural_sort_key) == [
            "\u00b2a.png", "\u00b2b.png"]


class TestListImageFiles:
    """Tests for directory scanning."""

    def test_filters_and_orders(self, tmp_path):
        for name in ["3.png", "10.jpg", "1.jpeg", "notes.txt", "2.PNG"]:
            (tmp_path / name).write_bytes(b"")
        (tmp_path / "sub.png").mkdir()
        assert list_image_files(str(tmp_path)) == ["1.jpeg", "2.PNG", "3.png", "10.jpg"]

    def test_custom_extensions(self, tmp_path):
        (tmp_path / "a.png").write_bytes(b"")
        (tmp_path / "b.bmp").write_bytes(b"")
        assert list_image_files(str(tmp_path), extensions=["bmp"]) == ["b.bmp"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(InvalidInputError):
            list_image_files(str(tmp_path / "missing"))


class TestImageCollection:
    """Tests for the directory-backed pixel source."""

    def test_loads_in_natural_order(self, tmp_path):
        write_rgb(tmp_path / "img10.png", solid((0, 0, 255), 2, 3))
        write_rgb(tmp_path / "img2.png", solid((255, 0, 0), 4, 4))
        collection = ImageCollection(str(tmp_path))
        assert collection.names == ["img2.png", "img10.png"]
        assert collection.sizes == [16, 6]
        assert len(collection) == 2

    def test_pixels_are_rgb(self, tmp_path):
        write_rgb(tmp_path / "red.png", solid((255, 0, 0), 2, 2))
        collection = ImageCollection(str(tmp_path))
        assert collection.image_at(0)[0, 0].tolist() == [255, 0, 0]
        np.testing.assert_array_equal(collection.pixel_values(0), [pack(255, 0, 0)] * 4)
        assert collection.name_at(0) == "red.png"
        assert collection.size_of(0) == 4

    def test_unreadable_file_skipped(self, tmp_path):
        (tmp_path / "broken.png").write_bytes(b"not an image")
        write_rgb(tmp_path / "ok.png", solid((0, 255, 0)))
        collection = ImageCollection(str(tmp_path))
        assert collection.names == ["ok.png"]

    def test_empty_directory_rejected_by_engine(self, tmp_path):
        collection = ImageCollection(str(tmp_path))
        assert len(collection) == 0
        with pytest.raises(InvalidInputError):
            RetrievalEngine(collection)

    def test_engine_over_directory(self, tmp_path):
        write_rgb(tmp_path / "1.png", solid((255, 0, 0), 3, 3))
        write_rgb(tmp_path / "2.png", solid((0, 255, 0), 3, 3))
        write_rgb(tmp_path / "3.png", solid((250, 5, 5), 5, 5))
        engine = RetrievalEngine(ImageCollection(str(tmp_path)))
        matrix = engine.intensity_distance_matrix()
        assert matrix[0, 1] == pytest.approx(2.0)
        assert engine.rank(matrix, 0) == [0, 2, 1]


class TestArrayPixelSource:
    """Tests for the in-memory pixel source."""

    def test_packed_sequences_pass_through(self):
        source = ArrayPixelSource([[pack(1, 2, 3), pack(4, 5, 6)]])
        np.testing.assert_array_equal(source.pixel_values(0), [pack(1, 2, 3), pack(4, 5, 6)])

    def test_bgr_arrays(self):
        source = ArrayPixelSource([solid((0, 0, 255))], bgr=True)
        assert source.pixel_values(0).tolist() == [pack(255, 0, 0)]
