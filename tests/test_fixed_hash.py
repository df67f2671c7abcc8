import pytest

from minerkit.common_data import BadHexCharacter
from minerkit.fixed_hash import (
    H64,
    H128,
    H160,
    H256,
    H512,
    Align,
    FixedHash,
    hashes_to_string,
)

SAMPLE_HEX = "0102030405060708"


def test_sizes_of_subclasses():
    assert [len(cls()) for cls in (H64, H128, H160, H256, H512)] == [8, 16, 20, 32, 64]


def test_default_is_empty():
    h = H256()
    assert not h
    assert int(h) == 0


def test_base_class_cannot_be_built():
    with pytest.raises(TypeError):
        FixedHash()


def test_hex_round_trip():
    h = H64.from_hex(SAMPLE_HEX)
    assert h.hex() == SAMPLE_HEX
    assert h.hex(prefix=True) == "0x" + SAMPLE_HEX
    assert str(h) == SAMPLE_HEX


def test_from_hex_accepts_prefix():
    assert H64.from_hex("0x" + SAMPLE_HEX) == H64.from_hex(SAMPLE_HEX)


def test_from_hex_wrong_length_gives_empty_hash():
    assert not H64.from_hex("0102")


def test_from_hex_bad_character_raises():
    with pytest.raises(BadHexCharacter):
        H64.from_hex("zz02030405060708")


def test_int_round_trip():
    value = 0x0102030405060708
    h = H64.from_int(value)
    assert int(h) == value
    assert bytes(h) == value.to_bytes(8, "big")


def test_from_int_drops_high_bits():
    assert int(H64.from_int((1 << 64) + 5)) == 5


def test_align_left_and_right():
    data = bytes([1, 2, 3])
    left = H64(data, Align.LEFT)
    right = H64(data, Align.RIGHT)
    assert bytes(left)[:3] == data and not any(bytes(left)[3:])
    assert bytes(right)[-3:] == data and not any(bytes(right)[:-3])


def test_fail_if_different_gives_zeros():
    assert bytes(H64(b"\x01\x02")) == bytes(8)


def test_cropping_keeps_ends():
    data = bytes(range(1, 11))
    assert bytes(H64(data, Align.LEFT)) == data[:8]
    assert bytes(H64(data, Align.RIGHT)) == data[-8:]


def test_resized():
    h = H256.random()
    small = h.resized(H160)
    assert isinstance(small, H160)
    assert bytes(small) == bytes(h)[:20]
    tail = h.resized(H160, Align.RIGHT)
    assert bytes(tail) == bytes(h)[-20:]
    back = small.resized(H256, Align.RIGHT)
    assert bytes(back)[-20:] == bytes(small)
    assert not any(bytes(back)[:12])


def test_incremented_carries():
    h = H64.from_int(0xFF)
    assert int(h.incremented()) == 0x100


def test_incremented_wraps():
    top = ~H64()
    assert not top.incremented()


def test_comparisons():
    a = H64.from_int(1)
    b = H64.from_int(2)
    assert a < b
    assert b > a
    assert a <= a
    assert b >= a
    assert a == H64.from_int(1)


def test_different_sizes_not_equal_and_not_ordered():
    assert H64() != H128()
    with pytest.raises(TypeError):
        H64() < H128()


def test_bitwise_ops():
    a = H64.from_int(0b1100)
    b = H64.from_int(0b1010)
    assert int(a ^ b) == 0b1100 ^ 0b1010
    assert int(a | b) == 0b1100 | 0b1010
    assert int(a & b) == 0b1100 & 0b1010
    assert isinstance(a ^ b, H64)


def test_bitwise_size_mismatch_raises():
    with pytest.raises(TypeError):
        H64() ^ H128()


def test_invert_is_involution():
    h = H256.random()
    assert ~~h == h
    assert (h ^ ~h) == ~H256()


def test_getitem_and_len():
    h = H64.from_hex(SAMPLE_HEX)
    assert h[0] == 1
    assert h[7] == 8
    assert len(h) == 8


def test_abridged():
    h = H64.from_hex(SAMPLE_HEX)
    assert h.abridged() == SAMPLE_HEX[:8] + "\u2026"


def test_hashes_to_string():
    a = H64.from_hex(SAMPLE_HEX)
    text = hashes_to_string([a, a])
    assert text == "[ " + a.abridged() + ", " + a.abridged() + ", ]"
    assert hashes_to_string([]) == "[ ]"


def test_hashable_and_usable_in_sets():
    a = H256.from_int(7)
    assert len({a, H256.from_int(7), H256.from_int(8)}) == 2


def test_random_has_right_size():
    assert len(bytes(H512.random())) == 64