import pytest

from advscript.core.properties import CaseInsensitiveDict, PropertyBag, is_blank


def test_lookup_ignores_case_and_keeps_first_spelling() -> None:
    values = CaseInsensitiveDict({"FlagName": "door"})
    values["flagname"] = "gate"

    assert values["FLAGNAME"] == "gate"
    assert list(values) == ["FlagName"]
    assert "flagName" in values
    assert len(values) == 1


def test_equality_folds_keys() -> None:
    assert CaseInsensitiveDict({"Amount": 3}) == {"amount": 3}
    assert CaseInsensitiveDict({"Amount": 3}) != {"amount": 4}


def test_delete_and_copy() -> None:
    values = CaseInsensitiveDict({"A": 1, "B": 2})
    copied = values.copy()
    del values["a"]

    assert "A" not in values
    assert copied["a"] == 1


def test_property_bag_rejects_non_scalar_values() -> None:
    bag = PropertyBag()
    bag["Message"] = "hi"
    bag["Amount"] = 2
    bag["Ratio"] = 0.5
    bag["Enabled"] = True
    bag["Missing"] = None

    with pytest.raises(TypeError):
        bag["Items"] = ["a", "b"]  # type: ignore[assignment]


def test_property_bag_is_set() -> None:
    bag = PropertyBag({"Message": "  ", "Amount": 0, "Flag": False})

    assert not bag.is_set("message")
    assert bag.is_set("amount")
    assert bag.is_set("flag")
    assert not bag.is_set("absent")


def test_is_blank() -> None:
    assert is_blank(None)
    assert is_blank("")
    assert is_blank(" \t")
    assert not is_blank(0)
    assert not is_blank(False)
    assert not is_blank("x")
