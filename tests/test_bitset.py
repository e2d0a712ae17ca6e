import pytest

from linkit.bitset import Bitset


def test_new_bitset_is_empty():
    b = Bitset(130)
    assert b.popcount() == 0
    assert not any(b.get(i) for i in range(130))


def test_set_get_clear():
    b = Bitset(200)
    b.set(0).set(63).set(64).set(199)
    assert b.get(0) and b.get(63) and b.get(64) and b.get(199)
    assert not b.get(1)
    assert b.popcount() == 4
    b.clear(63)
    assert not b.get(63)
    assert b.popcount() == 3


def test_set_returns_same_object():
    b = Bitset(8)
    assert b.set(3) is b
    assert b.clear(3) is b


def test_clone_is_independent():
    b = Bitset(70)
    b.set(5)
    c = b.clone()
    c.set(69)
    assert b.get(5) and c.get(5)
    assert not b.get(69)
    assert c.get(69)


def test_equality_and_hash():
    a = Bitset(100).set(1).set(99)
    b = Bitset(100).set(99).set(1)
    assert a == b
    assert hash(a) == hash(b)
    b.clear(1)
    assert a != b


def test_usable_as_dict_key():
    a = Bitset(10).set(2)
    table = {a.clone(): "x"}
    assert table[Bitset(10).set(2)] == "x"


@pytest.mark.parametrize("pos", [-1, 10, 64])
def test_out_of_range(pos):
    b = Bitset(10)
    with pytest.raises(IndexError):
        b.set(pos)
    with pytest.raises(IndexError):
        b.get(pos)


def test_negative_size_rejected():
    with pytest.raises(ValueError):
        Bitset(-1)


def test_contains():
    b = Bitset(16).set(4)
    assert 4 in b
    assert 5 not in b
    assert 100 not in b