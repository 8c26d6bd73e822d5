"""Unit tests for documents module."""

import random

import pytest

from transaction_agent.documents import (
    join_chunks,
    load_transactions,
    split_transactions,
)
from transaction_agent.errors import ConfigError


class TestLoadTransactions:
    """Test reading the transactions file."""

    def test_returns_content_unchanged(self, transactions_file, sample_transactions):
        """The whole file comes back as one text blob."""
        assert load_transactions(transactions_file) == sample_transactions

    def test_accepts_string_path(self, transactions_file, sample_transactions):
        assert load_transactions(str(transactions_file)) == sample_transactions

    def test_garbage_is_passed_through(self, tmp_path):
        """No CSV validation happens."""
        path = tmp_path / "transactions.csv"
        path.write_text("not,a\nreal;;csv at all", encoding="utf-8")

        assert load_transactions(path) == "not,a\nreal;;csv at all"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_transactions(tmp_path / "missing.csv")

    def test_directory_raises_oserror(self, tmp_path):
        with pytest.raises(OSError):
            load_transactions(tmp_path)

    def test_crlf_line_endings_are_kept(self, tmp_path):
        raw = b"2024-01-05,Groceries,54.20\r\n2024-01-12,Groceries,30.10\r\n"
        path = tmp_path / "transactions.csv"
        path.write_bytes(raw)

        content = load_transactions(path)

        assert content.encode("utf-8") == raw
        assert content.count("\r\n") == 2

    def test_invalid_utf8_raises_oserror(self, tmp_path):
        path = tmp_path / "transactions.csv"
        path.write_bytes(b"2024-01-05,Caf\xe9,4.50\n")

        with pytest.raises(OSError):
            load_transactions(path)


class TestSplitTransactions:
    """Test chunking of the transactions text."""

    def test_chunks_respect_size(self, sample_transactions):
        chunks = split_transactions(sample_transactions, chunk_size=80, chunk_overlap=20)

        assert len(chunks) > 1
        assert all(len(chunk.text) <= 80 for chunk in chunks)

    def test_positions_follow_order_of_appearance(self, sample_transactions):
        chunks = split_transactions(sample_transactions, chunk_size=80, chunk_overlap=20)

        assert [chunk.position for chunk in chunks] == list(range(len(chunks)))
        offsets = [chunk.start_offset for chunk in chunks]
        assert offsets == sorted(offsets)

    def test_offsets_point_at_chunk_text(self, sample_transactions):
        chunks = split_transactions(sample_transactions, chunk_size=80, chunk_overlap=20)

        for chunk in chunks:
            assert sample_transactions[chunk.start_offset : chunk.end_offset] == chunk.text

    def test_deterministic(self, sample_transactions):
        first = split_transactions(sample_transactions, chunk_size=60, chunk_overlap=15)
        second = split_transactions(sample_transactions, chunk_size=60, chunk_overlap=15)

        assert first == second

    def test_small_text_is_one_chunk(self):
        chunks = split_transactions("2024-01-05,Groceries,54.20", source="tx.csv")

        assert len(chunks) == 1
        assert chunks[0].text == "2024-01-05,Groceries,54.20"
        assert chunks[0].start_offset == 0
        assert chunks[0].source == "tx.csv"

    def test_empty_text_has_no_chunks(self):
        assert split_transactions("") == []

    @pytest.mark.parametrize(
        "chunk_size, chunk_overlap",
        [(10, 10), (10, 20), (0, 0), (10, -1)],
    )
    def test_invalid_sizes_raise_config_error(self, chunk_size, chunk_overlap):
        with pytest.raises(ConfigError):
            split_transactions("2024-01-05,Groceries,54.20", chunk_size, chunk_overlap)


class TestJoinChunks:
    """Splitting then joining without the overlaps gives back the original text."""

    @pytest.mark.parametrize(
        "chunk_size, chunk_overlap",
        [(1000, 100), (80, 20), (40, 39), (25, 0), (7, 3)],
    )
    def test_reproduces_csv(self, sample_transactions, chunk_size, chunk_overlap):
        chunks = split_transactions(sample_transactions, chunk_size, chunk_overlap)

        assert join_chunks(chunks) == sample_transactions

    @pytest.mark.parametrize(
        "text",
        [
            "2024-01-05,Groceries,54.20\n" * 50,
            "ab" * 300,
            "a" * 257,
            "   \n\n  \n ",
            "Café,Crème brûlée,7.50\n\nÜber,Fahrt,12.00\n" * 10,
            "no separators at all just one very long line " * 12,
        ],
    )
    def test_reproduces_awkward_text(self, text):
        chunks = split_transactions(text, chunk_size=30, chunk_overlap=10)

        assert join_chunks(chunks) == text

    def test_empty(self):
        assert join_chunks([]) == ""

    @pytest.mark.parametrize("seed", range(5))
    def test_random_texts_and_sizes(self, seed):
        rng = random.Random(seed)
        alphabets = ["ab", "a \n", "x,y\n\n", "12.50,Rent \r\n", "é ü\n"]

        for _ in range(40):
            alphabet = rng.choice(alphabets)
            text = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 400)))
            chunk_size = rng.randint(1, 60)
            chunk_overlap = rng.randint(0, chunk_size - 1)

            chunks = split_transactions(text, chunk_size, chunk_overlap)

            assert join_chunks(chunks) == text, (text, chunk_size, chunk_overlap)
