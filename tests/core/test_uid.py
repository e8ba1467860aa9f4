"""Tests for sortable unique identifiers."""
import pytest

from core.uid import BASE62_ALPHABET, UID_STRING_LENGTH, is_valid_uid, new_uid, uid_timestamp


def test_new_uid_has_fixed_length_and_base62_alphabet() -> None:
    uid = new_uid()
    assert len(uid) == UID_STRING_LENGTH
    assert all(char in BASE62_ALPHABET for char in uid)
    assert is_valid_uid(uid)


def test_new_uid_embeds_the_clock_timestamp() -> None:
    uid = new_uid(clock=lambda: 1_700_000_000.75)
    assert uid_timestamp(uid) == 1_700_000_000


def test_new_uid_sorts_by_generation_time() -> None:
    """Test that UIDs sort in generation order."""
    earlier = new_uid(clock=lambda: 1_600_000_000)
    later = new_uid(clock=lambda: 1_600_000_001)
    assert earlier < later


def test_new_uid_is_unique() -> None:
    uids = {new_uid(clock=lambda: 1_600_000_000) for _ in range(1000)}
    assert len(uids) == 1000


def test_new_uid_zero_timestamp_is_zero_padded() -> None:
    uid = new_uid(clock=lambda: 0)
    assert len(uid) == UID_STRING_LENGTH
    assert uid_timestamp(uid) == 0


def test_new_uid_rejects_out_of_range_clock() -> None:
    """Test that a clock outside the 32-bit range is an error."""
    with pytest.raises(OverflowError):
        new_uid(clock=lambda: 2 ** 32)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "tooshort",
        "0" * (UID_STRING_LENGTH + 1),
        "!" * UID_STRING_LENGTH,
        "z" * UID_STRING_LENGTH,  # exceeds 160 bits
    ],
)
def test_is_valid_uid_rejects_malformed_values(text: str) -> None:
    assert not is_valid_uid(text)


def test_uid_timestamp_raises_for_invalid_uid() -> None:
    with pytest.raises(ValueError):
        uid_timestamp("not-a-uid")
