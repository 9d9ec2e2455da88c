"""Tests for upload id generation."""

import random
import re
import string
from collections import Counter

import pytest
from pydantic import ValidationError

from folio import BASE62, IdGenerator, UploadId


class TestAlphabet:
    """Test the base62 alphabet."""

    def test_contains_digits_upper_lower(self):
        assert set(BASE62) == set(string.digits + string.ascii_uppercase + string.ascii_lowercase)
        assert len(BASE62) == 62


class TestIdGenerator:
    """Test IdGenerator."""

    def test_default_length(self):
        upload_id = IdGenerator(random.Random(1)).generate()
        assert re.fullmatch(r"[0-9A-Za-z]{8}", upload_id.value)

    def test_explicit_length(self):
        generator = IdGenerator(random.Random(1))
        assert len(generator.generate(12).value) == 12

    def test_constructor_length(self):
        generator = IdGenerator(random.Random(1), length=16)
        assert generator.length == 16
        assert len(generator.generate().value) == 16

    def test_only_alphabet_symbols(self):
        generator = IdGenerator(random.Random(5))
        for _ in range(200):
            assert set(generator.generate().value) <= set(BASE62)

    def test_no_collisions_in_thousand_ids(self):
        generator = IdGenerator(random.Random(1234))
        ids = {generator.generate(8).value for _ in range(1000)}
        assert len(ids) == 1000

    def test_seeded_generators_are_deterministic(self):
        first = IdGenerator(random.Random(99))
        second = IdGenerator(random.Random(99))

        assert [first.generate() for _ in range(5)] == [second.generate() for _ in range(5)]

    def test_symbols_roughly_uniform(self):
        generator = IdGenerator(random.Random(2024))
        counts = Counter("".join(generator.generate(62).value for _ in range(200)))

        assert set(counts) == set(BASE62)
        # 200 expected per symbol
        assert all(100 < count < 300 for count in counts.values())

    @pytest.mark.parametrize("length", [0, -1])
    def test_rejects_non_positive_length(self, length):
        with pytest.raises(ValueError):
            IdGenerator(random.Random(1)).generate(length)
        with pytest.raises(ValueError):
            IdGenerator(random.Random(1), length=length)

    def test_default_random_source(self):
        assert len(IdGenerator().generate().value) == 8


class TestUploadId:
    """Test UploadId."""

    def test_file_name_without_extension(self):
        assert UploadId(value="abc123XY").file_name() == "abc123XY"

    def test_file_name_with_extension(self):
        assert UploadId(value="abc123XY").file_name("txt") == "abc123XY.txt"

    def test_file_name_with_dotted_extension(self):
        assert UploadId(value="abc123XY").file_name("tar.gz") == "abc123XY.tar.gz"

    def test_rejects_non_alphanumeric(self):
        with pytest.raises(ValidationError):
            UploadId(value="ab-c")
