import numpy as np
import pytest

from h5image_io.values import MetaKind, MetaValue


def test_classify_scalars():
    assert MetaValue.of(True).kind == MetaKind.BOOL
    assert MetaValue.of(np.bool_(False)).kind == MetaKind.BOOL
    assert MetaValue.of(5).kind == MetaKind.LONG
    assert MetaValue.of(-(2**63)).kind == MetaKind.LONG
    assert MetaValue.of(2**63).kind == MetaKind.ULONG
    assert MetaValue.of(1.5).kind == MetaKind.DOUBLE
    assert MetaValue.of(np.float32(1.5)).kind == MetaKind.FLOAT
    assert MetaValue.of(np.int16(-3)).kind == MetaKind.SHORT
    assert MetaValue.of(np.uint8(200)).kind == MetaKind.UCHAR
    assert MetaValue.of("text").kind == MetaKind.STRING

    # C-style strings are stored as strings
    val = MetaValue.of(b"abc")
    assert val.kind == MetaKind.STRING
    assert val.value == "abc"


def test_classify_unsupported():
    for obj in [
        None,
        {"a": 1},
        object(),
        2**64,
        -(2**63) - 1,
        b"\xff\xfe",
        [True, False],
        np.array([True, False]),
        [[1, 2], [3, 4]],
        ["a", "b"],
        1j,
    ]:
        val = MetaValue.of(obj)
        assert not val.supported
        assert val.kind == MetaKind.UNSUPPORTED


def test_classify_arrays():
    val = MetaValue.of([1.0, 2.5])
    assert val.kind == MetaKind.DOUBLE
    assert val.is_array
    assert len(val) == 2

    val = MetaValue.of(np.array([1, 2, 3], dtype=np.uint16))
    assert val.kind == MetaKind.USHORT
    assert val.value.dtype == np.uint16

    val = MetaValue.of((1, 2))
    assert val.kind == MetaKind.LONG
    assert val.value.dtype == np.int64


def test_normalization():
    val = MetaValue.scalar(MetaKind.INT, np.int32(7))
    assert type(val.value) is int
    val = MetaValue.scalar(MetaKind.FLOAT, 0.1)
    assert val.value == float(np.float32(0.1))
    assert MetaValue.array(MetaKind.UINT, [1, 2]).value.dtype == np.uint32

    with pytest.raises(OverflowError):
        MetaValue.scalar(MetaKind.UCHAR, 300)
    with pytest.raises(ValueError):
        MetaValue.array(MetaKind.STRING, ["a"])
    with pytest.raises(ValueError):
        MetaValue.array(MetaKind.INT, [[1], [2]])


def test_equality():
    assert MetaValue.of(3) == MetaValue.scalar(MetaKind.LONG, 3)
    assert MetaValue.of(3) != MetaValue.scalar(MetaKind.INT, 3)
    assert MetaValue.of([1, 2]) == MetaValue.array(MetaKind.LONG, [1, 2])
    assert MetaValue.of([1, 2]) != MetaValue.of([1, 3])
    assert MetaValue.of([1]) != MetaValue.of(1)
    assert "long" in repr(MetaValue.of(3))
