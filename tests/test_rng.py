import pytest

from advscript.core.rng import RNG


def test_rng_determinism_same_seed() -> None:
    rng_a = RNG(12345)
    rng_b = RNG(12345)

    ints_a = [rng_a.randint(1, 100) for _ in range(5)]
    ints_b = [rng_b.randint(1, 100) for _ in range(5)]
    floats_a = [rng_a.random() for _ in range(5)]
    floats_b = [rng_b.random() for _ in range(5)]
    weighted_a = [rng_a.weighted_index([3, 1, 1]) for _ in range(5)]
    weighted_b = [rng_b.weighted_index([3, 1, 1]) for _ in range(5)]

    assert ints_a == ints_b
    assert floats_a == floats_b
    assert weighted_a == weighted_b


def test_rng_different_seed() -> None:
    rng_a = RNG(11111)
    rng_b = RNG(22222)

    draws_a = [rng_a.randint(1, 100) for _ in range(5)]
    draws_b = [rng_b.randint(1, 100) for _ in range(5)]

    assert draws_a != draws_b


def test_weighted_index_never_picks_zero_weight() -> None:
    rng = RNG(7)

    picks = {rng.weighted_index([0, 2, 0, 1]) for _ in range(200)}

    assert picks <= {1, 3}


def test_weighted_index_rejects_bad_weights() -> None:
    rng = RNG(1)

    with pytest.raises(ValueError):
        rng.weighted_index([])
    with pytest.raises(ValueError):
        rng.weighted_index([1, -1])
