# enchls/keys.py
import secrets

KEY_SIZE = 32     # 256-bit master key
NONCE_SIZE = 12   # 96-bit AEAD nonce


class KeyNonceGenerator:
    """Random master keys and random per-segment nonces.

    Nonces are independent 96-bit draws. Uniqueness under one key rests on the
    birthday bound, which is fine for assets of up to a few thousand segments;
    use CounterNonceGenerator for anything larger.
    """

    def generate_key(self) -> bytes:
        return secrets.token_bytes(KEY_SIZE)

    def generate_nonce(self) -> bytes:
        return secrets.token_bytes(NONCE_SIZE)


class CounterNonceGenerator(KeyNonceGenerator):
    """Deterministic nonces: the segment index, big-endian, zero-padded to 12 bytes.

    One instance per asset. Never reuse an instance across master keys.
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("counter start must be >= 0")
        self._next = start

    def generate_nonce(self) -> bytes:
        value = self._next
        if value >= 1 << (8 * NONCE_SIZE):
            raise OverflowError("nonce counter exhausted")
        self._next += 1
        return value.to_bytes(NONCE_SIZE, "big")


def make_generator(strategy: str = "random") -> KeyNonceGenerator:
    strategy = strategy.strip().lower()
    if strategy == "random":
        return KeyNonceGenerator()
    if strategy == "counter":
        return CounterNonceGenerator()
    raise ValueError(f"Invalid nonce strategy '{strategy}'. Expected 'random' or 'counter'.")
