import pytest

from enchls.keys import KEY_SIZE, NONCE_SIZE, CounterNonceGenerator, KeyNonceGenerator, make_generator


def test_sizes(generator):
    assert len(generator.generate_key()) == KEY_SIZE == 32
    assert len(generator.generate_nonce()) == NONCE_SIZE == 12


def test_random_draws_differ(generator):
    keys = {generator.generate_key() for _ in range(64)}
    nonces = {generator.generate_nonce() for _ in range(1000)}
    assert len(keys) == 64
    assert len(nonces) == 1000


def test_counter_nonces_are_sequential():
    gen = CounterNonceGenerator()
    assert gen.generate_nonce() == bytes(12)
    assert gen.generate_nonce() == bytes(11) + b"\x01"
    assert len(gen.generate_key()) == KEY_SIZE


def test_counter_start_and_exhaustion():
    gen = CounterNonceGenerator(start=(1 << 96) - 1)
    assert gen.generate_nonce() == b"\xff" * 12
    with pytest.raises(OverflowError):
        gen.generate_nonce()
    with pytest.raises(ValueError):
        CounterNonceGenerator(start=-1)


def test_make_generator():
    assert type(make_generator("random")) is KeyNonceGenerator
    assert isinstance(make_generator(" Counter "), CounterNonceGenerator)
    with pytest.raises(ValueError):
        make_generator("sequential")
