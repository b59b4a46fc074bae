import pytest

from enchls.keys import KeyNonceGenerator
from enchls.manifest import ManifestCodec


@pytest.fixture
def generator():
    return KeyNonceGenerator()


@pytest.fixture
def key(generator):
    return generator.generate_key()


@pytest.fixture
def nonce(generator):
    return generator.generate_nonce()


@pytest.fixture
def codec():
    return ManifestCodec(content_base_url="http://cdn.test/output/asset/")
